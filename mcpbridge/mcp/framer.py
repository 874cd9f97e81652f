"""Newline framing for the stdio JSON-RPC stream.

Output from the module arrives in arbitrary chunks; a chunk may end in the
middle of a line (or in the middle of a multibyte UTF-8 character). The framer
keeps the unterminated tail and only ever emits whole lines, so the same stream
yields the same lines however it is chunked.
"""

from __future__ import annotations

import codecs
from typing import Iterator

from mcpbridge.utils.exceptions import FramingOverflowError

DEFAULT_MAX_BUFFER_SIZE = 16 * 1024 * 1024


class LineFramer:
    """Incremental splitter turning a text/byte stream into complete lines."""

    def __init__(self, max_buffer_size: int = DEFAULT_MAX_BUFFER_SIZE):
        if max_buffer_size <= 0:
            raise ValueError("max_buffer_size must be positive")
        self.max_buffer_size = max_buffer_size
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def pending(self) -> int:
        """Length of the buffered, not yet terminated line."""
        return len(self._buffer)

    def feed(self, chunk: str | bytes) -> Iterator[str]:
        """Append a chunk and yield every line it completes.

        Blank lines are skipped. Leftover text stays buffered for the next call.
        Raises FramingOverflowError once the unterminated tail exceeds the limit.
        """
        if isinstance(chunk, (bytes, bytearray)):
            chunk = self._decoder.decode(bytes(chunk))
        self._buffer += chunk
        while True:
            idx = self._buffer.find("\n")
            if idx < 0:
                break
            line = self._buffer[:idx]
            self._buffer = self._buffer[idx + 1:]
            if line.endswith("\r"):
                line = line[:-1]
            if line.strip():
                yield line
        if len(self._buffer) > self.max_buffer_size:
            size = len(self._buffer)
            self._buffer = ""
            raise FramingOverflowError(size, self.max_buffer_size)

    def flush(self) -> str | None:
        """Return and clear any unterminated remainder (used at end of stream)."""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        self._decoder.reset()
        return tail if tail.strip() else None
