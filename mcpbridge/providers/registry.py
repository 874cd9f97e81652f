"""Known provider integrations: which MCP module to run and which credentials it needs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from mcpbridge.config.schema import McpSettings
from mcpbridge.credentials.store import CredentialStore
from mcpbridge.credentials.tokens import TokenRequirements, get_user_tokens
from mcpbridge.mcp.client import McpClient


@dataclass(frozen=True)
class ProviderSpec:
    name: str
    module: str
    requirements: TokenRequirements
    access_token_field: str | None = None  # Exported as ACCESS_TOKEN when set


GMAIL = ProviderSpec(
    name="gmail",
    module="@gongrzhe/server-gmail-autoauth-mcp",
    requirements=TokenRequirements(
        required=("refresh_token", "client_id", "client_secret"),
        env_map={
            "refresh_token": "GOOGLE_REFRESH_TOKEN",
            "client_id": "GOOGLE_CLIENT_ID",
            "client_secret": "GOOGLE_CLIENT_SECRET",
        },
    ),
    access_token_field="access_token",
)

BRAVE = ProviderSpec(
    name="brave",
    module="@modelcontextprotocol/server-brave-search",
    requirements=TokenRequirements(
        required=("api_key",),
        env_map={"api_key": "BRAVE_API_KEY"},
    ),
)

PROVIDERS: dict[str, ProviderSpec] = {spec.name: spec for spec in (GMAIL, BRAVE)}


def get_provider(name: str) -> ProviderSpec | None:
    return PROVIDERS.get((name or "").strip().lower())


async def call_provider_tool(
    spec: ProviderSpec,
    user_id: str,
    tool_name: str,
    args: dict[str, Any] | None = None,
    *,
    store: CredentialStore | None = None,
    settings: McpSettings | None = None,
) -> Any:
    """Resolve the user's credentials for a provider, then run one tool call."""
    resolved = await get_user_tokens(user_id, spec.name, spec.requirements, store=store)
    access_token = None
    if spec.access_token_field:
        value = resolved.tokens.get(spec.access_token_field)
        access_token = str(value) if value else None
    logger.debug(f"[{spec.name}] Calling {tool_name} for userId={user_id}")
    client = McpClient(settings=settings)
    return await client.invoke(
        spec.module,
        tool_name,
        args or {},
        access_token=access_token,
        environment=resolved.env,
    )
