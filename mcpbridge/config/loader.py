"""Configuration loading utilities."""

import json
import os
import re
from pathlib import Path
from typing import Any, Mapping

from mcpbridge.config.schema import Config

_CAMEL_BOUNDARY = re.compile(r"(?<=.)(?=[A-Z])")

# Plain environment variables honoured for compatibility with existing deployments.
# (env var, config section, field)
LEGACY_ENV_VARS: tuple[tuple[str, str, str], ...] = (
    ("SUPABASE_URL", "supabase", "url"),
    ("SUPABASE_SERVICE_ROLE_KEY", "supabase", "service_role_key"),
    ("PORT", "server", "port"),
    ("NODE_ENV", "server", "environment"),
    ("DEBUG_MCP", "mcp", "debug"),
)


def get_config_path() -> Path:
    """Get the default configuration file path."""
    override = os.environ.get("MCPBRIDGE_CONFIG")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".mcpbridge" / "config.json"


def get_data_dir() -> Path:
    """Get the mcpbridge data directory (logs etc.)."""
    path = Path.home() / ".mcpbridge"
    path.mkdir(parents=True, exist_ok=True)
    return path


def load_config(config_path: Path | None = None, environ: Mapping[str, str] | None = None) -> Config:
    """
    Load configuration from file and environment.

    Values from the config file win over the plain legacy variables
    (SUPABASE_URL, PORT, DEBUG_MCP, ...); MCPBRIDGE_* variables fill whatever
    neither of those set.

    Args:
        config_path: Optional path to config file. Uses default if not provided.
        environ: Environment to read legacy variables from (defaults to os.environ).

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()
    data: dict[str, Any] = {}

    if path.exists():
        try:
            with open(path) as f:
                raw = json.load(f)
        except (json.JSONDecodeError, ValueError) as e:
            raise ValueError(
                f"Failed to load config from {path}: {e}. "
                "Fix the file or remove it to regenerate defaults."
            ) from e
        if not isinstance(raw, dict):
            raise ValueError(f"Failed to load config from {path}: top level must be an object")
        data = convert_keys(raw)

    _apply_legacy_env_vars(data, os.environ if environ is None else environ)
    try:
        return Config(**data)
    except ValueError as e:
        raise ValueError(f"Invalid configuration: {e}") from e


def _apply_legacy_env_vars(data: dict[str, Any], environ: Mapping[str, str]) -> None:
    """Fill config fields from plain env vars when the file does not set them."""
    for env_name, section, field in LEGACY_ENV_VARS:
        value = environ.get(env_name)
        if value is None or not str(value).strip():
            continue
        target = data.setdefault(section, {})
        if not isinstance(target, dict) or field in target:
            continue
        if field == "debug":
            target[field] = is_truthy(value)
        else:
            target[field] = value.strip()


def is_truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """serviceRoleKey -> service_role_key"""
    return _CAMEL_BOUNDARY.sub("_", name).lower()
