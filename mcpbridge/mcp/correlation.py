"""Correlation of JSON-RPC responses with the requests awaiting them."""

from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from mcpbridge.utils.exceptions import DuplicateRequestIdError, ProtocolError

RequestId = int | str


class CorrelationTable:
    """
    Pending requests keyed by id, each with a future settled exactly once.

    Entries are popped before their future is settled, so a late or duplicate
    response for the same id finds nothing and is only logged.
    """

    def __init__(self, label: str = "mcp"):
        self.label = label
        self._pending: dict[RequestId, asyncio.Future[Any]] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    def register(self, request_id: RequestId) -> asyncio.Future[Any]:
        """Create the completion handle for a request about to be sent."""
        if request_id in self._pending:
            raise DuplicateRequestIdError(request_id)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        return future

    def resolve(self, request_id: RequestId, result: Any) -> bool:
        future = self._pending.pop(request_id, None)
        if future is None:
            logger.warning(f"[MCP:{self.label}] Unmatched response id={request_id!r}, ignoring")
            return False
        if not future.done():
            future.set_result(result)
        return True

    def reject(self, request_id: RequestId, error: BaseException) -> bool:
        future = self._pending.pop(request_id, None)
        if future is None:
            logger.warning(f"[MCP:{self.label}] Unmatched error response id={request_id!r}, ignoring")
            return False
        if not future.done():
            future.set_exception(error)
        return True

    def drain_all(self, error: BaseException) -> int:
        """Reject every pending entry with the same error. Returns how many were rejected."""
        pending, self._pending = self._pending, {}
        count = 0
        for future in pending.values():
            if not future.done():
                future.set_exception(error)
                count += 1
        if count:
            logger.debug(f"[MCP:{self.label}] Drained {count} pending request(s): {error}")
        return count

    def dispatch(self, message: Any) -> bool:
        """Route one parsed inbound message. Returns True when a pending entry was settled."""
        if not isinstance(message, dict):
            logger.warning(f"[MCP:{self.label}] Ignoring non-object message: {message!r}")
            return False
        request_id = message.get("id")
        if request_id is None:
            # Notification (e.g. notifications/message); nothing awaits it.
            logger.debug(f"[MCP:{self.label}] Ignoring notification: {message.get('method')}")
            return False
        if isinstance(request_id, bool) or not isinstance(request_id, (int, str)):
            logger.warning(f"[MCP:{self.label}] Ignoring message with invalid id {request_id!r}")
            return False
        if "method" in message and "result" not in message and "error" not in message:
            logger.debug(f"[MCP:{self.label}] Ignoring server request '{message.get('method')}' id={request_id!r}")
            return False
        if message.get("error") is not None:
            return self.reject(request_id, ProtocolError(message["error"]))
        result = message.get("result")
        return self.resolve(request_id, result if result is not None else message)
