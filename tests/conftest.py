"""Pytest hooks and fixtures."""

import os
import sys
from pathlib import Path

import pytest

from mcpbridge.config.schema import McpSettings
from mcpbridge.credentials.store import reset_credential_store

STUB_SERVER = str(Path(__file__).parent / "stub_mcp_server.py")


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "subprocess: spawns the stub MCP server as a child process",
    )


def pytest_collection_modifyitems(config, items):
    """Skip subprocess tests when MCPBRIDGE_SKIP_SUBPROCESS=true."""
    if os.environ.get("MCPBRIDGE_SKIP_SUBPROCESS") != "true":
        return
    skip = pytest.mark.skip(reason="Subprocess tests disabled (MCPBRIDGE_SKIP_SUBPROCESS)")
    for item in items:
        if "subprocess" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def stub_settings() -> McpSettings:
    """Settings that launch tests/stub_mcp_server.py with the current interpreter."""
    return McpSettings(runner=[sys.executable], timeout_ms=10_000, debug=True, kill_grace_seconds=5.0)


@pytest.fixture(autouse=True)
def _fresh_credential_store():
    reset_credential_store()
    yield
    reset_credential_store()


@pytest.fixture
def stub_module() -> str:
    """Module identifier that makes the runner execute the stub server script."""
    return STUB_SERVER
