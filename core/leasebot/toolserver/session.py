# Licensed to the Apache Software Foundation (ASF) under one
# or more contributor license agreements.  See the NOTICE file
# distributed with this work for additional information
# regarding copyright ownership.  The ASF licenses this file
# to you under the Apache License, Version 2.0 (the
# "License"); you may not use this file except in compliance
# with the License.  You may obtain a copy of the License at
#
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing,
# software distributed under the License is distributed on an
# "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF ANY
# KIND, either express or implied.  See the License for the
# specific language governing permissions and limitations
# under the License.
#
# Authors
# - Leasebot contributors, 2026

"""
Tool-server session management.

This module owns the single, lazily established MCP session to the remote
tool-execution server. Three transports are supported:

  - SSE (default): the hosted tenant-leasing server exposes ``/sse``
  - Streamable HTTP: MCP endpoint URL such as ``http://localhost:8000/mcp``
  - STDIO (dev): spawns a local MCP server subprocess

Why a background task per connection?
The MCP transports and `ClientSession` are anyio context managers that must be
entered and exited in the same task. HTTP requests are served from many
different tasks, so each connection is driven by one dedicated task that
enters the contexts, publishes the initialized session through a ready future
and then waits for a stop event. Any request task can issue calls on the
session; teardown always happens in the owning task.

Reconnection is lazy: nothing retries in the background. A failed handshake
leaves the manager unconnected and the next `acquire()` starts over.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
import sys
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Literal

import httpx
from mcp.client.session import ClientSession
from mcp.client.sse import sse_client
from mcp.client.stdio import StdioServerParameters, stdio_client
from mcp.types import Implementation

from leasebot.config import Config
from leasebot.toolserver.exceptions import ToolConnectionError

logger = logging.getLogger(__name__)

TransportType = Literal["sse", "http", "stdio"]

# Grace period for a connection task to leave its contexts after stop is set.
_TEARDOWN_TIMEOUT_S = 5.0


@dataclass
class ToolServerConfig:
    """Configuration for connecting to the tool server.

    Attributes:
        transport: "sse", "http" or "stdio".
        url: SSE or streamable HTTP endpoint URL.
        headers: Optional headers (auth, etc.) for the HTTP transports.
        timeout_s: HTTP timeout and MCP handshake timeout (seconds).
        call_timeout_s: Read timeout for a single tool call (seconds).
        stdio_command: Executable for the stdio server.
        stdio_args: Args for the stdio server.
        stdio_env: Optional environment overrides for the stdio server.
        client_name: Client name announced during the handshake.
        client_version: Client version announced during the handshake.
    """

    transport: TransportType = "sse"
    url: str = "https://tenant-leasing-mcp.onrender.com/sse"
    headers: dict[str, str] | None = None
    timeout_s: float = 30.0
    call_timeout_s: float = 120.0

    stdio_command: str = field(default_factory=lambda: sys.executable)
    stdio_args: list[str] = field(default_factory=list)
    stdio_env: dict[str, str] | None = None

    client_name: str = "leasebot-webui-client"
    client_version: str = "1.0.0"

    @classmethod
    def from_config(cls, config: Config) -> "ToolServerConfig":
        """Build a ToolServerConfig from the application Config."""
        return cls(
            transport=config.MCP_TRANSPORT,  # type: ignore[arg-type]
            url=config.MCP_SERVER_URL,
            headers=config.mcp_headers,
            timeout_s=config.mcp_timeout,
            call_timeout_s=config.mcp_call_timeout,
            stdio_command=config.MCP_STDIO_COMMAND,
            stdio_args=config.mcp_stdio_args,
            client_name=config.SERVER_NAME,
            client_version=config.SERVER_VERSION,
        )


class ToolSession:
    """Handle to one live MCP session.

    Instances are created by `ToolSessionManager` only. The handle stays valid
    until the manager tears it down or the owning task exits.
    """

    def __init__(
        self,
        client: ClientSession,
        stop: asyncio.Event,
        task: asyncio.Task[None],
        call_timeout_s: float,
    ) -> None:
        self.client = client
        self.tools: list[str] = []
        self._stop = stop
        self._task = task
        self._call_timeout = timedelta(seconds=call_timeout_s)

    @property
    def live(self) -> bool:
        """True while the connection task is running and no stop was requested."""
        return not self._stop.is_set() and not self._task.done()

    async def list_tools(self) -> Any:
        """List tools advertised by the server."""
        return await self.client.list_tools()

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        """Call a tool.

        Args:
            name: Tool name.
            arguments: Tool arguments JSON object.

        Returns:
            The MCP ``CallToolResult``.
        """
        return await self.client.call_tool(name, arguments, read_timeout_seconds=self._call_timeout)

    async def shutdown(self) -> None:
        """Ask the owning task to exit its contexts and wait for it."""
        self._stop.set()
        done, _ = await asyncio.wait({self._task}, timeout=_TEARDOWN_TIMEOUT_S)
        if not done:
            logger.warning("Tool session did not close within %.1fs; cancelling", _TEARDOWN_TIMEOUT_S)
            self._task.cancel()


@asynccontextmanager
async def _streamable_http(cfg: ToolServerConfig) -> AsyncIterator[tuple[Any, ...]]:
    """Open the MCP streamable HTTP transport.

    Newer MCP builds expose ``streamable_http_client(url, *, http_client=...)``;
    older builds expose ``streamablehttp_client(url, headers=..., timeout=...)``.
    """
    mod = importlib.import_module("mcp.client.streamable_http")
    func = getattr(mod, "streamable_http_client", None)
    if func is not None:
        async with httpx.AsyncClient(headers=cfg.headers, timeout=httpx.Timeout(cfg.timeout_s)) as http_client:
            async with func(cfg.url, http_client=http_client) as streams:
                yield streams
        return

    legacy = getattr(mod, "streamablehttp_client", None)
    if legacy is None:
        raise ToolConnectionError("Streamable HTTP client is not available in this MCP build")
    async with legacy(cfg.url, headers=cfg.headers, timeout=cfg.timeout_s) as streams:
        yield streams


class ToolSessionManager:
    """Owns the process-wide session to the tool server.

    `acquire()` and `invalidate()` are serialized with an asyncio lock, so
    concurrent requests share one handshake instead of racing to open several
    sessions.
    """

    def __init__(self, cfg: ToolServerConfig) -> None:
        """Initialize an unconnected manager.

        Args:
            cfg: Server connection configuration.
        """
        self.cfg = cfg
        self._session: ToolSession | None = None
        self._lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._session is not None and self._session.live

    @property
    def tools(self) -> list[str]:
        """Tool names advertised at connect time (diagnostic only)."""
        return list(self._session.tools) if self._session is not None else []

    def open_transport(self) -> AbstractAsyncContextManager[tuple[Any, ...]]:
        """Return the transport context manager for the configured transport.

        The context yields at least ``(read_stream, write_stream)``.

        Raises:
            ToolConnectionError: If the transport name is unknown.
        """
        cfg = self.cfg
        if cfg.transport == "sse":
            return sse_client(cfg.url, headers=cfg.headers, timeout=cfg.timeout_s)
        if cfg.transport == "http":
            return _streamable_http(cfg)
        if cfg.transport == "stdio":
            params = StdioServerParameters(command=cfg.stdio_command, args=cfg.stdio_args, env=cfg.stdio_env)
            return stdio_client(params)
        raise ToolConnectionError(f"Unsupported tool server transport: {cfg.transport!r}")

    def new_client_session(self, read_stream: Any, write_stream: Any) -> ClientSession:
        """Create the MCP ClientSession for an opened transport."""
        info = Implementation(name=self.cfg.client_name, version=self.cfg.client_version)
        return ClientSession(
            read_stream,
            write_stream,
            read_timeout_seconds=timedelta(seconds=self.cfg.timeout_s),
            client_info=info,
        )

    async def acquire(self) -> ToolSession:
        """Return a live session, connecting first if needed.

        Returns:
            The live ToolSession. An already-live session is returned unchanged.

        Raises:
            ToolConnectionError: If the transport cannot be opened or the handshake fails.
        """
        async with self._lock:
            if self._session is not None and self._session.live:
                return self._session

            stale, self._session = self._session, None
            if stale is not None:
                await stale.shutdown()

            logger.info("Connecting to tool server %s (%s)", self.cfg.url, self.cfg.transport)
            session = await self._connect()
            self._session = session
            logger.info("Connected to tool server %s", self.cfg.url)

        # Diagnostic only; runs outside the lock.
        await self._discover(session)
        return session

    async def invalidate(self, session: ToolSession | None = None) -> None:
        """Tear down the live session so the next `acquire()` reconnects.

        Args:
            session: If given, only tear down when it is still the current
                session. A caller holding a stale handle cannot close a
                session another request has already re-established.
        """
        async with self._lock:
            current = self._session
            if current is None or (session is not None and session is not current):
                return
            self._session = None
        logger.info("Resetting tool server session")
        await current.shutdown()

    async def close(self) -> None:
        """Close the live session, if any (process shutdown)."""
        await self.invalidate()

    async def _connect(self) -> ToolSession:
        """Start a connection task and wait for the handshake result."""
        loop = asyncio.get_running_loop()
        ready: asyncio.Future[ClientSession] = loop.create_future()
        stop = asyncio.Event()
        task = asyncio.create_task(self._run(ready, stop), name="leasebot-tool-session")

        try:
            client = await ready
        except asyncio.CancelledError:
            # The caller gave up; the connection task must not outlive it.
            stop.set()
            task.cancel()
            raise
        except ToolConnectionError:
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise ToolConnectionError(f"Failed to connect to tool server {self.cfg.url}: {exc}") from exc
        return ToolSession(client, stop, task, self.cfg.call_timeout_s)

    async def _run(self, ready: asyncio.Future[ClientSession], stop: asyncio.Event) -> None:
        """Connection task: hold the transport and session open until stopped.

        Args:
            ready: Receives the initialized ClientSession, or the handshake error.
            stop: Set to request teardown.
        """
        try:
            async with self.open_transport() as streams:
                read_stream, write_stream = streams[0], streams[1]
                async with self.new_client_session(read_stream, write_stream) as client:
                    await asyncio.wait_for(client.initialize(), timeout=self.cfg.timeout_s)
                    ready.set_result(client)
                    await stop.wait()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            if not ready.done():
                ready.set_exception(exc)
            else:
                logger.warning("Tool server session ended with error: %s", exc)
        finally:
            stop.set()
            if not ready.done():
                ready.set_exception(ToolConnectionError("Tool server session ended before the handshake completed"))

    async def _discover(self, session: ToolSession) -> None:
        """Best-effort listing of the remote catalog for diagnostics."""
        try:
            result = await asyncio.wait_for(session.list_tools(), timeout=self.cfg.timeout_s)
        except TimeoutError:
            logger.warning("Listing tools on %s timed out after %.1fs", self.cfg.url, self.cfg.timeout_s)
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Could not list tools on %s: %s", self.cfg.url, exc)
            return
        session.tools = [str(getattr(t, "name", t)) for t in getattr(result, "tools", None) or []]
        logger.info("Available tools: %s", session.tools)
