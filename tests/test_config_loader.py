"""Tests for configuration loading."""

import json

import pytest

from mcpbridge.config.access import clear_config_cache, get_config
from mcpbridge.config.loader import camel_to_snake, load_config


def test_defaults_without_file(tmp_path):
    cfg = load_config(tmp_path / "missing.json", environ={})
    assert cfg.mcp.runner == ["npx", "-y"]
    assert cfg.mcp.timeout_ms == 60_000
    assert cfg.mcp.debug is False
    assert cfg.server.port == 3000
    assert cfg.supabase.configured is False


def test_legacy_env_vars_are_applied(tmp_path):
    cfg = load_config(
        tmp_path / "missing.json",
        environ={
            "SUPABASE_URL": "https://db.example.com",
            "SUPABASE_SERVICE_ROLE_KEY": "key",
            "PORT": "8080",
            "DEBUG_MCP": "true",
            "NODE_ENV": "development",
        },
    )
    assert cfg.supabase.configured is True
    assert cfg.server.port == 8080
    assert cfg.server.environment == "development"
    assert cfg.mcp.debug is True


def test_debug_flag_accepts_only_truthy_values(tmp_path):
    assert load_config(tmp_path / "x.json", environ={"DEBUG_MCP": "1"}).mcp.debug is True
    assert load_config(tmp_path / "x.json", environ={"DEBUG_MCP": "0"}).mcp.debug is False


def test_file_with_camel_case_keys_wins_over_legacy_env(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"mcp": {"timeoutMs": 5000, "runner": ["bunx"]}, "server": {"port": 9000}}))
    cfg = load_config(path, environ={"PORT": "8080"})
    assert cfg.mcp.timeout_ms == 5000
    assert cfg.mcp.runner == ["bunx"]
    assert cfg.server.port == 9000


def test_invalid_file_raises_value_error(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with pytest.raises(ValueError, match="Failed to load config"):
        load_config(path, environ={})


def test_negative_timeout_is_rejected(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"mcp": {"timeoutMs": -5}}))
    with pytest.raises(ValueError, match="Invalid configuration"):
        load_config(path, environ={})


def test_get_config_caches_until_file_changes(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"mcp": {"timeoutMs": 1234}}))
    loaded = get_config(config_path=path)
    assert loaded.mcp.timeout_ms == 1234
    assert get_config(config_path=path) is loaded

    path.write_text(json.dumps({"mcp": {"timeoutMs": 4321}}))
    assert get_config(config_path=path, force_reload=True).mcp.timeout_ms == 4321
    clear_config_cache(config_path=path)


def test_camel_to_snake():
    assert camel_to_snake("serviceRoleKey") == "service_role_key"
    assert camel_to_snake("url") == "url"
