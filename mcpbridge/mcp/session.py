"""
Process supervision for one MCP module invocation.

A ProcessSession owns exactly one child process for its whole life:

    spawn -> pump stdout/stderr -> exchange requests -> teardown

Teardown (timer cancel, stdin close, kill, reap) runs once on every exit
path, whether the call succeeded, failed, or timed out.
"""

from __future__ import annotations

import asyncio
import json
import os
import signal
from collections import deque
from typing import Any, Mapping

from loguru import logger

from mcpbridge.config.schema import McpSettings
from mcpbridge.mcp.correlation import CorrelationTable
from mcpbridge.mcp.framer import LineFramer
from mcpbridge.mcp.protocol import JsonRpcRequest
from mcpbridge.utils.exceptions import (
    FramingOverflowError,
    McpBridgeError,
    McpTimeoutError,
    ProcessExitedError,
    SessionClosedError,
    SpawnError,
)

ACCESS_TOKEN_ENV = "ACCESS_TOKEN"

_READ_CHUNK_SIZE = 64 * 1024


def build_environment(
    base: Mapping[str, str],
    access_token: str | None = None,
    overrides: Mapping[str, str | None] | None = None,
) -> dict[str, str]:
    """Child environment: base, then ACCESS_TOKEN, then caller overrides (later wins)."""
    env = dict(base)
    if access_token:
        env[ACCESS_TOKEN_ENV] = access_token
    for key, value in (overrides or {}).items():
        if value is not None:
            env[key] = str(value)
    return env


class ProcessSession:
    """A single spawned MCP module and the request bookkeeping around it."""

    def __init__(
        self,
        module: str,
        *,
        env: Mapping[str, str] | None = None,
        settings: McpSettings | None = None,
        timeout_ms: int | None = None,
    ):
        self.module = module
        self.settings = settings or McpSettings()
        self.env = dict(env) if env is not None else dict(os.environ)
        self.timeout_ms = self.settings.timeout_ms if timeout_ms is None else timeout_ms
        self.command = [*self.settings.runner, module]

        self._table = CorrelationTable(label=module)
        self._framer = LineFramer(max_buffer_size=self.settings.max_buffer_size)
        self._stderr_tail: deque[str] = deque(maxlen=max(1, self.settings.stderr_tail_lines))
        self._process: asyncio.subprocess.Process | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._pumps: list[asyncio.Task[None]] = []
        self._started_at: float | None = None
        self._abort_error: McpBridgeError | None = None
        self._closing = False

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process else None

    @property
    def stderr_tail(self) -> str:
        return "\n".join(self._stderr_tail)

    @property
    def pending_requests(self) -> int:
        return len(self._table)

    async def __aenter__(self) -> "ProcessSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        """Launch the module and begin pumping its output."""
        if self._process is not None:
            raise RuntimeError("Session already started")
        logger.debug(f"[MCP] Starting {' '.join(self.command)}")
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.env,
                start_new_session=(os.name == "posix"),
            )
        except (OSError, ValueError) as e:
            raise SpawnError(self.module, str(e)) from e

        loop = asyncio.get_running_loop()
        self._started_at = loop.time()
        self._pumps = [
            asyncio.create_task(self._pump_stdout()),
            asyncio.create_task(self._pump_stderr()),
        ]
        if self.timeout_ms > 0:
            self._timer = loop.call_later(self.timeout_ms / 1000, self._on_timeout)

    async def send_request(self, request_id: int | str, method: str, params: dict[str, Any]) -> Any:
        """Write one request line and suspend until its response (or a session abort)."""
        if self._process is None or self._process.stdin is None:
            raise RuntimeError("Session not started")
        if self._abort_error is not None:
            raise self._abort_error
        if self._closing:
            raise SessionClosedError(self.module)

        future = self._table.register(request_id)
        line = JsonRpcRequest(id=request_id, method=method, params=params).to_json()
        if self.settings.debug:
            logger.debug(f"[MCP] -> {self.module}: {line}")
        try:
            self._process.stdin.write((line + "\n").encode("utf-8"))
            await self._process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.warning(f"[MCP] Failed writing to {self.module}: {e}")
            self._abort(ProcessExitedError(self.module, self.returncode, self.stderr_tail))
        return await future

    async def close(self) -> None:
        """Tear the session down. Safe to call more than once."""
        if self._closing:
            return
        self._closing = True

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        process = self._process
        if process is not None:
            if process.stdin is not None:
                try:
                    process.stdin.close()
                except (OSError, RuntimeError) as e:
                    logger.debug(f"[MCP] Closing stdin of {self.module} failed: {e}")
            self._kill()
            try:
                await asyncio.wait_for(process.wait(), timeout=self.settings.kill_grace_seconds)
            except asyncio.TimeoutError:
                logger.warning(f"[MCP] {self.module} (pid {process.pid}) not reaped after kill")

        if self._pumps:
            # Let the pumps reach EOF so buffered stderr still lands in the tail.
            _, still_running = await asyncio.wait(self._pumps, timeout=self.settings.kill_grace_seconds)
            for task in still_running:
                task.cancel()
            await asyncio.gather(*self._pumps, return_exceptions=True)
        self._pumps = []
        self._table.drain_all(SessionClosedError(self.module))
        logger.debug(f"[MCP] Session for {self.module} closed (returncode={self.returncode})")

    def _abort(self, error: McpBridgeError) -> None:
        """Fail every pending request; the first abort reason wins."""
        if self._abort_error is None:
            self._abort_error = error
        self._table.drain_all(self._abort_error)

    def _on_timeout(self) -> None:
        self._timer = None
        loop = asyncio.get_running_loop()
        elapsed_ms = (loop.time() - (self._started_at or loop.time())) * 1000
        logger.warning(f"[MCP] Module {self.module} timed out after {self.timeout_ms}ms, killing")
        self._kill()
        self._abort(McpTimeoutError(self.module, elapsed_ms))

    def _kill(self) -> None:
        """Best-effort forced termination of the module (and its process group)."""
        process = self._process
        if process is None or process.returncode is not None:
            return
        try:
            if os.name == "posix":
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            pass
        except PermissionError:
            try:
                process.kill()
            except ProcessLookupError:
                pass

    async def _pump_stdout(self) -> None:
        assert self._process is not None and self._process.stdout is not None
        reader = self._process.stdout
        try:
            while True:
                chunk = await reader.read(_READ_CHUNK_SIZE)
                if not chunk:
                    break
                for line in self._framer.feed(chunk):
                    self._handle_line(line)
        except FramingOverflowError as e:
            logger.error(f"[MCP] {self.module}: {e}")
            self._kill()
            self._abort(e)
            return

        tail = self._framer.flush()
        if tail:
            logger.warning(f"[MCP] Discarding unterminated output from {self.module}: {tail[:200]}")
        if self._closing or self._abort_error is not None:
            return
        returncode = await self._wait_exit()
        stderr_pumps = [task for task in self._pumps if task is not asyncio.current_task()]
        if stderr_pumps:
            await asyncio.wait(stderr_pumps, timeout=self.settings.kill_grace_seconds)
        logger.warning(f"[MCP] {self.module} closed stdout (returncode={returncode})")
        self._abort(ProcessExitedError(self.module, returncode, self.stderr_tail))

    async def _wait_exit(self) -> int | None:
        assert self._process is not None
        try:
            return await asyncio.wait_for(self._process.wait(), timeout=self.settings.kill_grace_seconds)
        except asyncio.TimeoutError:
            return self._process.returncode

    def _handle_line(self, line: str) -> None:
        if self.settings.debug:
            logger.debug(f"[MCP] <- {self.module}: {line}")
        try:
            message = json.loads(line)
        except json.JSONDecodeError:
            logger.warning(f"[MCP] Non-JSON line from {self.module}: {line[:500]}")
            return
        self._table.dispatch(message)

    async def _pump_stderr(self) -> None:
        assert self._process is not None and self._process.stderr is not None
        reader = self._process.stderr
        framer = LineFramer(max_buffer_size=self.settings.max_buffer_size)
        while True:
            chunk = await reader.read(_READ_CHUNK_SIZE)
            if not chunk:
                break
            try:
                for line in framer.feed(chunk):
                    self._stderr_tail.append(line)
                    logger.warning(f"[MCP:{self.module}] STDERR: {line}")
            except FramingOverflowError as e:
                logger.warning(f"[MCP:{self.module}] STDERR line dropped: {e}")
        tail = framer.flush()
        if tail:
            self._stderr_tail.append(tail)
            logger.warning(f"[MCP:{self.module}] STDERR: {tail}")
