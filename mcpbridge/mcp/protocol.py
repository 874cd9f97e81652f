"""
MCP handshake and tool invocation over a request/response transport.

Every invocation is the same two-step exchange:
  1. "initialize" with the protocol version and client identity
  2. "tools/call" with the tool name and its arguments

The steps run strictly in order; the tool call is never sent when the
handshake fails.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Protocol

from loguru import logger

from mcpbridge.utils.exceptions import ProtocolError

PROTOCOL_VERSION = "2024-06-01"
CLIENT_INFO = {"name": "mcpserver", "version": "0.1.0"}

INITIALIZE_ID = 1
TOOLS_CALL_ID = 2

METHOD_INITIALIZE = "initialize"
METHOD_TOOLS_CALL = "tools/call"


@dataclass
class JsonRpcRequest:
    """JSON-RPC 2.0 request."""
    id: int | str
    method: str
    params: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps({
            "jsonrpc": "2.0",
            "id": self.id,
            "method": self.method,
            "params": self.params,
        })


def build_initialize_params() -> dict[str, Any]:
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "capabilities": {},
        "clientInfo": dict(CLIENT_INFO),
    }


class RequestTransport(Protocol):
    async def send_request(self, request_id: int | str, method: str, params: dict[str, Any]) -> Any:
        ...


class McpProtocol:
    """Runs initialize followed by tools/call on one transport."""

    def __init__(self, transport: RequestTransport, label: str = "mcp"):
        self.transport = transport
        self.label = label

    async def initialize(self) -> Any:
        try:
            return await self.transport.send_request(
                INITIALIZE_ID, METHOD_INITIALIZE, build_initialize_params()
            )
        except ProtocolError as e:
            raise e.with_stage(METHOD_INITIALIZE) from None

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        params = {"name": name, "arguments": arguments or {}}
        try:
            return await self.transport.send_request(TOOLS_CALL_ID, METHOD_TOOLS_CALL, params)
        except ProtocolError as e:
            raise e.with_stage(METHOD_TOOLS_CALL) from None

    async def run(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        await self.initialize()
        logger.debug(f"[MCP:{self.label}] Initialized, calling tool '{name}'")
        return await self.call_tool(name, arguments)
