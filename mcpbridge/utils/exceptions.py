"""
Exception hierarchy and error handling utilities for mcpbridge.

Provides:
- Custom exception classes with error codes
- Error categorization (fatal, timeout, validation)
- Safe error message formatting (no credential leak)
"""

from __future__ import annotations

import json
import re
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    FATAL = "fatal"
    VALIDATION = "validation"
    TIMEOUT = "timeout"


class McpBridgeError(Exception):
    """Base exception for all mcpbridge errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ValidationError(McpBridgeError):
    """Input validation error."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", category=ErrorCategory.VALIDATION, details=details)


class SpawnError(McpBridgeError):
    """The MCP module process could not be started."""

    def __init__(self, module: str, reason: str):
        super().__init__(
            f"Failed to spawn MCP module '{module}': {reason}",
            code="SPAWN_ERROR",
            category=ErrorCategory.FATAL,
            details={"module": module},
        )
        self.module = module


class ProtocolError(McpBridgeError):
    """A response carried an error payload, or the protocol was violated."""

    def __init__(
        self,
        payload: Any,
        stage: str | None = None,
        message: str | None = None,
        code: str = "PROTOCOL_ERROR",
    ):
        if message is None:
            message = _payload_message(payload)
            if stage:
                message = f"MCP '{stage}' failed: {message}"
        super().__init__(
            message,
            code=code,
            category=ErrorCategory.FATAL,
            details={"stage": stage, "payload": payload},
        )
        self.payload = payload
        self.stage = stage

    def with_stage(self, stage: str) -> "ProtocolError":
        """Return the same error labelled with the protocol step that produced it."""
        if self.stage is None and type(self) is ProtocolError:
            return ProtocolError(self.payload, stage=stage)
        return self


class ProcessExitedError(ProtocolError):
    """The module closed its output (or input) before answering."""

    def __init__(self, module: str, returncode: int | None = None, stderr_tail: str = ""):
        message = f"MCP module '{module}' exited before responding"
        if returncode is not None:
            message += f" (exit code {returncode})"
        if stderr_tail:
            message += f". stderr: {stderr_tail[-500:]}"
        super().__init__(
            {"returncode": returncode, "stderr": stderr_tail},
            message=message,
            code="PROCESS_EXITED",
        )
        self.module = module
        self.returncode = returncode


class DuplicateRequestIdError(ProtocolError):
    """A request id was registered twice within one session."""

    def __init__(self, request_id: int | str):
        super().__init__(
            {"id": request_id},
            message=f"Request id {request_id!r} is already pending",
            code="DUPLICATE_REQUEST_ID",
        )
        self.request_id = request_id


class McpTimeoutError(McpBridgeError):
    """No terminal response arrived within the configured duration."""

    def __init__(self, module: str, elapsed_ms: float):
        super().__init__(
            f"MCP module '{module}' timed out after {int(elapsed_ms)}ms",
            code="TIMEOUT",
            category=ErrorCategory.TIMEOUT,
            details={"module": module, "elapsed_ms": int(elapsed_ms)},
        )
        self.module = module
        self.elapsed_ms = elapsed_ms


class SessionClosedError(McpBridgeError):
    """The session was torn down while a request was still pending."""

    def __init__(self, module: str):
        super().__init__(
            f"Session for MCP module '{module}' was closed",
            code="SESSION_CLOSED",
            category=ErrorCategory.FATAL,
            details={"module": module},
        )


class FramingOverflowError(McpBridgeError):
    """An unterminated line grew past the framer's buffer limit."""

    def __init__(self, size: int, limit: int):
        super().__init__(
            f"Unterminated output line of {size} bytes exceeds limit of {limit} bytes",
            code="FRAMING_OVERFLOW",
            category=ErrorCategory.FATAL,
            details={"size": size, "limit": limit},
        )


class CredentialError(McpBridgeError):
    """Required provider credentials are missing."""

    def __init__(self, provider: str, missing: list[str]):
        super().__init__(
            f"Missing required credentials for provider '{provider}': {', '.join(missing)}. "
            "Ensure they are present in the credential store or provided via environment variables as configured.",
            code="MISSING_CREDENTIALS",
            category=ErrorCategory.VALIDATION,
            details={"provider": provider, "missing": list(missing)},
        )
        self.provider = provider
        self.missing = list(missing)


def _payload_message(payload: Any) -> str:
    if isinstance(payload, dict):
        msg = payload.get("message")
        if msg:
            code = payload.get("code")
            return f"{msg} (code {code})" if code is not None else str(msg)
        return json.dumps(payload, default=str)
    return str(payload)


_SENSITIVE_PATTERNS = [
    re.compile(r"(api[_-]?key|token|secret|password|auth)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"bearer\s+[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"[a-zA-Z0-9]{32,}"),
    re.compile(r"sk-[a-zA-Z0-9]{20,}"),
    re.compile(r"ya29\.[a-zA-Z0-9\-_]+"),
    re.compile(r"1//[a-zA-Z0-9\-_]{20,}"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove sensitive information from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized

