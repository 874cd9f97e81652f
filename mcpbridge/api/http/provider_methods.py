"""Helpers for provider tool-call HTTP endpoints (/gmail/*, /brave/*)."""

from __future__ import annotations

from typing import Any

from loguru import logger

from mcpbridge.api.http.error_helpers import classify_http_status, error_response_body
from mcpbridge.config.schema import Config
from mcpbridge.credentials.store import CredentialStore
from mcpbridge.providers.registry import ProviderSpec, call_provider_tool
from mcpbridge.utils.exceptions import sanitize_error_message


async def provider_tool_response(
    *,
    spec: ProviderSpec,
    tool_name: str,
    user_id: str | None,
    args: dict[str, Any] | None,
    store: CredentialStore | None,
    config: Config,
) -> tuple[int, Any]:
    """Run one provider tool call for an HTTP request. Returns (status_code, payload)."""
    if not user_id or not user_id.strip():
        return 400, {"error": "Missing required field: userId"}

    logger.info(f"[{spec.name}] {tool_name} request for userId: {user_id}")
    try:
        result = await call_provider_tool(
            spec,
            user_id,
            tool_name,
            args or {},
            store=store,
            settings=config.mcp,
        )
    except Exception as e:
        status = classify_http_status(e)
        logger.error(
            f"[{spec.name}] {tool_name} failed for userId: {user_id} "
            f"(status {status}): {sanitize_error_message(str(e))}"
        )
        return status, error_response_body(
            e,
            user_id=user_id,
            include_stack=config.server.environment == "development",
        )
    logger.info(f"[{spec.name}] {tool_name} completed successfully for userId: {user_id}")
    return 200, result
