"""Resolve a user's provider credentials into an environment for an MCP module."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping

from loguru import logger

from mcpbridge.credentials.store import CredentialStore
from mcpbridge.utils.exceptions import CredentialError, sanitize_error_message


@dataclass(frozen=True)
class TokenRequirements:
    """Fields a provider needs and the env var each one is exported as."""
    required: tuple[str, ...] = ()
    env_map: dict[str, str] = field(default_factory=dict)  # token field -> ENV_VAR_NAME


@dataclass
class UserTokens:
    tokens: dict[str, Any]
    env: dict[str, str]


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


async def get_user_tokens(
    user_id: str,
    provider: str,
    requirements: TokenRequirements | None = None,
    *,
    store: CredentialStore | None = None,
    environ: Mapping[str, str] | None = None,
) -> UserTokens:
    """
    Merge stored credentials with env-var fallbacks and validate them.

    Stored values win; a field that is missing or blank in the store is taken
    from the env var named in requirements.env_map. Raises CredentialError
    listing every required field still missing.
    """
    environ = os.environ if environ is None else environ
    row: dict[str, Any] | None = None
    if store is not None:
        try:
            row = await store.fetch(user_id, provider)
        except Exception as e:
            logger.warning(
                f"Unexpected error while fetching credentials for provider '{provider}'. Using env-only tokens: "
                f"{sanitize_error_message(str(e))}"
            )

    merged: dict[str, Any] = dict(row or {})
    env_map = requirements.env_map if requirements else {}

    for token_key, env_name in env_map.items():
        if _is_missing(merged.get(token_key)):
            env_value = environ.get(env_name)
            if not _is_missing(env_value):
                merged[token_key] = env_value

    if requirements and requirements.required:
        missing = [key for key in requirements.required if _is_missing(merged.get(key))]
        if missing:
            raise CredentialError(provider, missing)

    env: dict[str, str] = {}
    for token_key, env_name in env_map.items():
        value = merged.get(token_key)
        if value is not None:
            env[env_name] = str(value)

    return UserTokens(tokens=merged, env=env)
