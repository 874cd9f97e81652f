"""Single entry point for running one MCP tool call in a fresh module process."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping

from loguru import logger

from mcpbridge.config.schema import McpSettings
from mcpbridge.mcp.protocol import McpProtocol
from mcpbridge.mcp.session import ProcessSession, build_environment
from mcpbridge.utils.exceptions import ValidationError


@dataclass(frozen=True)
class InvocationRequest:
    """One tool call against one module."""
    module: str
    tool_name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    access_token: str | None = None
    environment: dict[str, str] = field(default_factory=dict)
    timeout_ms: int | None = None  # None uses the configured default


class McpClient:
    """
    Runs tool calls, one module process per call.

    Nothing is kept between calls: every invoke spawns, handshakes, calls the
    tool, and kills the process before returning or raising.
    """

    def __init__(
        self,
        settings: McpSettings | None = None,
        base_environ: Mapping[str, str] | None = None,
    ):
        self.settings = settings
        self.base_environ = base_environ

    def _resolve_settings(self) -> McpSettings:
        if self.settings is not None:
            return self.settings
        from mcpbridge.config.access import get_config

        return get_config().mcp

    async def invoke(
        self,
        module: str,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
        *,
        access_token: str | None = None,
        environment: Mapping[str, str] | None = None,
        timeout_ms: int | None = None,
    ) -> Any:
        request = InvocationRequest(
            module=module,
            tool_name=tool_name,
            arguments=dict(arguments or {}),
            access_token=access_token,
            environment=dict(environment or {}),
            timeout_ms=timeout_ms,
        )
        return await self.invoke_request(request)

    async def invoke_request(self, request: InvocationRequest) -> Any:
        if not request.module or not request.module.strip():
            raise ValidationError("Module identifier is required", field="module")
        if not request.tool_name or not request.tool_name.strip():
            raise ValidationError("Tool name is required", field="tool_name")
        settings = self._resolve_settings()
        timeout_ms = settings.timeout_ms if request.timeout_ms is None else request.timeout_ms
        if timeout_ms < 0:
            raise ValidationError("timeout_ms must be >= 0", field="timeout_ms")

        base = os.environ if self.base_environ is None else self.base_environ
        env = build_environment(base, request.access_token, request.environment)

        logger.info(
            f"[MCP] Spawning module={request.module} tool={request.tool_name} timeoutMs={timeout_ms}"
        )
        async with ProcessSession(request.module, env=env, settings=settings, timeout_ms=timeout_ms) as session:
            protocol = McpProtocol(session, label=request.module)
            return await protocol.run(request.tool_name, request.arguments)


async def invoke(
    module: str,
    tool_name: str,
    arguments: dict[str, Any] | None = None,
    *,
    access_token: str | None = None,
    environment: Mapping[str, str] | None = None,
    timeout_ms: int | None = None,
    settings: McpSettings | None = None,
) -> Any:
    """Call one tool on a freshly spawned module and return its result."""
    client = McpClient(settings=settings)
    return await client.invoke(
        module,
        tool_name,
        arguments,
        access_token=access_token,
        environment=environment,
        timeout_ms=timeout_ms,
    )
