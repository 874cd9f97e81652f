"""MCP stdio client: framing, request correlation, handshake and process supervision."""

from mcpbridge.mcp.client import InvocationRequest, McpClient, invoke
from mcpbridge.mcp.correlation import CorrelationTable
from mcpbridge.mcp.framer import LineFramer
from mcpbridge.mcp.protocol import JsonRpcRequest, McpProtocol
from mcpbridge.mcp.session import ProcessSession, build_environment

__all__ = [
    "CorrelationTable",
    "InvocationRequest",
    "JsonRpcRequest",
    "LineFramer",
    "McpClient",
    "McpProtocol",
    "ProcessSession",
    "build_environment",
    "invoke",
]
