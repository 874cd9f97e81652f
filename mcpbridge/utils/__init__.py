"""Utility functions for mcpbridge."""

from mcpbridge.utils.exceptions import (
    CredentialError,
    DuplicateRequestIdError,
    ErrorCategory,
    FramingOverflowError,
    McpBridgeError,
    McpTimeoutError,
    ProcessExitedError,
    ProtocolError,
    SessionClosedError,
    SpawnError,
    ValidationError,
    sanitize_error_message,
)

__all__ = [
    "CredentialError",
    "DuplicateRequestIdError",
    "ErrorCategory",
    "FramingOverflowError",
    "McpBridgeError",
    "McpTimeoutError",
    "ProcessExitedError",
    "ProtocolError",
    "SessionClosedError",
    "SpawnError",
    "ValidationError",
    "sanitize_error_message",
]
