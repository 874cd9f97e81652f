"""Shared helpers for consistent HTTP error formatting."""

from __future__ import annotations

import traceback
from datetime import datetime, timezone
from typing import Any

from mcpbridge.utils.exceptions import ErrorCategory, McpBridgeError, sanitize_error_message

_CATEGORY_TO_STATUS = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.TIMEOUT: 504,
    ErrorCategory.FATAL: 502,
}


def unknown_error_detail(exc: Exception | None) -> str:
    """Format generic unknown-error detail consistently across endpoints."""
    return str(exc) if exc else "Unknown error occurred"


def classify_http_status(exc: Exception) -> int:
    """Map exception to HTTP status: bridge errors by category, anything else is a 500."""
    if isinstance(exc, McpBridgeError):
        return _CATEGORY_TO_STATUS.get(exc.category, 502)
    return 500


def error_response_body(
    exc: Exception,
    *,
    user_id: str | None = None,
    include_stack: bool = False,
) -> dict[str, Any]:
    """Build the JSON body returned to clients for a failed tool call."""
    if isinstance(exc, McpBridgeError):
        message, code = exc.message, exc.code
    else:
        message, code = unknown_error_detail(exc), "INTERNAL_ERROR"
    body: dict[str, Any] = {
        "error": sanitize_error_message(message),
        "code": code,
        "userId": user_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if include_stack:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body
