"""Configuration module for mcpbridge."""

from mcpbridge.config.loader import load_config, get_config_path
from mcpbridge.config.schema import Config, McpSettings, ServerSettings, SupabaseSettings
from mcpbridge.config.access import get_config, clear_config_cache

__all__ = [
    "Config",
    "McpSettings",
    "ServerSettings",
    "SupabaseSettings",
    "load_config",
    "get_config_path",
    "get_config",
    "clear_config_cache",
]
