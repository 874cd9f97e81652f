"""End-to-end tests for McpClient / invoke against the stub MCP server."""

import json
import os
import time

import pytest

import mcpbridge.mcp.client as client_module
from mcpbridge.mcp.client import InvocationRequest, McpClient, invoke
from mcpbridge.mcp.session import ProcessSession
from mcpbridge.utils.exceptions import McpTimeoutError, ProtocolError, ValidationError


@pytest.fixture
def sessions(monkeypatch):
    """Record every ProcessSession the client creates."""
    created = []

    class RecordingSession(ProcessSession):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            created.append(self)

    monkeypatch.setattr(client_module, "ProcessSession", RecordingSession)
    return created


def _assert_single_process_gone(sessions):
    assert len(sessions) == 1
    assert sessions[0].pid is not None
    assert sessions[0].returncode is not None


@pytest.mark.subprocess
@pytest.mark.asyncio
async def test_invoke_returns_tool_result(stub_settings, stub_module, sessions):
    result = await invoke(
        stub_module,
        "anything",
        {"query": "q"},
        environment={"STUB_MODE": "echo"},
        settings=stub_settings,
    )
    assert result == {"ok": True}
    _assert_single_process_gone(sessions)


@pytest.mark.subprocess
@pytest.mark.asyncio
async def test_invoke_environment_precedence(stub_settings, stub_module):
    client = McpClient(settings=stub_settings, base_environ={**os.environ, "A": "1"})
    result = await client.invoke(
        stub_module,
        "env",
        access_token="T",
        environment={"A": "2", "STUB_MODE": "env"},
    )
    assert result == {"A": "2", "ACCESS_TOKEN": "T"}


@pytest.mark.subprocess
@pytest.mark.asyncio
async def test_invoke_initialize_error_never_sends_tool_call(stub_settings, stub_module, sessions, tmp_path):
    log_path = tmp_path / "received.log"
    with pytest.raises(ProtocolError) as exc_info:
        await invoke(
            stub_module,
            "anything",
            environment={"STUB_MODE": "init_error", "STUB_LOG": str(log_path)},
            settings=stub_settings,
        )
    assert exc_info.value.stage == "initialize"
    assert exc_info.value.payload["message"] == "unsupported protocol"
    methods = [json.loads(line)["method"] for line in log_path.read_text().splitlines()]
    assert methods == ["initialize"]
    _assert_single_process_gone(sessions)


@pytest.mark.subprocess
@pytest.mark.asyncio
async def test_invoke_tool_error_surfaces_payload(stub_settings, stub_module, sessions):
    with pytest.raises(ProtocolError) as exc_info:
        await invoke(stub_module, "anything", environment={"STUB_MODE": "tool_error"}, settings=stub_settings)
    assert exc_info.value.stage == "tools/call"
    assert exc_info.value.payload == {"code": -32000, "message": "tool exploded"}
    _assert_single_process_gone(sessions)


@pytest.mark.subprocess
@pytest.mark.asyncio
async def test_invoke_without_result_returns_whole_response(stub_settings, stub_module):
    result = await invoke(stub_module, "anything", environment={"STUB_MODE": "no_result"}, settings=stub_settings)
    assert result == {"jsonrpc": "2.0", "id": 2}


@pytest.mark.subprocess
@pytest.mark.asyncio
async def test_invoke_times_out_and_kills_process(stub_settings, stub_module, sessions):
    started = time.monotonic()
    with pytest.raises(McpTimeoutError) as exc_info:
        await invoke(
            stub_module,
            "anything",
            environment={"STUB_MODE": "silent"},
            timeout_ms=50,
            settings=stub_settings,
        )
    elapsed = time.monotonic() - started
    assert 0.05 <= elapsed < 0.5
    assert exc_info.value.elapsed_ms >= 50
    assert exc_info.value.module == stub_module
    assert "timed out after" in exc_info.value.message
    _assert_single_process_gone(sessions)


@pytest.mark.subprocess
@pytest.mark.asyncio
async def test_invoke_timeout_after_handshake(stub_settings, stub_module, sessions, tmp_path):
    log_path = tmp_path / "received.log"
    with pytest.raises(McpTimeoutError):
        await invoke(
            stub_module,
            "slow_tool",
            environment={"STUB_MODE": "hang_tool", "STUB_LOG": str(log_path)},
            timeout_ms=1500,
            settings=stub_settings,
        )
    methods = [json.loads(line)["method"] for line in log_path.read_text().splitlines()]
    assert methods == ["initialize", "tools/call"]
    _assert_single_process_gone(sessions)


@pytest.mark.subprocess
@pytest.mark.asyncio
async def test_invoke_request_is_independent_per_call(stub_settings, stub_module, sessions):
    client = McpClient(settings=stub_settings)
    request = InvocationRequest(module=stub_module, tool_name="t", environment={"STUB_MODE": "echo"})
    assert await client.invoke_request(request) == {"ok": True}
    assert await client.invoke_request(request) == {"ok": True}
    assert len(sessions) == 2
    assert sessions[0].pid != sessions[1].pid
    assert all(s.returncode is not None for s in sessions)


@pytest.mark.asyncio
async def test_invoke_rejects_negative_timeout(stub_settings, sessions):
    with pytest.raises(ValidationError):
        await invoke("module", "tool", timeout_ms=-1, settings=stub_settings)
    assert sessions == []


@pytest.mark.asyncio
async def test_invoke_rejects_empty_tool_name(stub_settings, sessions):
    with pytest.raises(ValidationError):
        await invoke("module", " ", settings=stub_settings)
    assert sessions == []
