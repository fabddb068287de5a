"""Transports for talking to backend MCP servers.

Each transport opens a client session over its connection kind, runs one
request and closes the session again. Sessions are never shared between
calls, so calls to different backends (or concurrent calls to the same
backend) do not serialize on each other.
"""

from __future__ import annotations

import asyncio
import sys
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager, contextmanager
from typing import Any

from loguru import logger
from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client
from mcp.shared.exceptions import McpError
from mcp.types import CallToolResult, Tool

from ..registry import TransportConfig

if sys.version_info < (3, 11):
    from exceptiongroup import BaseExceptionGroup


def collapse_exception_group(group: BaseExceptionGroup) -> BaseException:
    """
    Pick the error that explains a failed session from a task group's errors.

    The client session and its connection run in task groups, so a single
    failure reaches the caller wrapped in a group next to the cancellations
    of sibling tasks. A protocol error wins over anything else; otherwise the
    first non-cancellation error is returned.
    """
    _, real = group.split(asyncio.CancelledError)
    if real is None:
        return group.exceptions[0]

    leaves = list(_leaves(real))
    for error in leaves:
        if isinstance(error, McpError):
            return error
    return leaves[0]


def _leaves(group: BaseExceptionGroup) -> Iterator[BaseException]:
    for error in group.exceptions:
        if isinstance(error, BaseExceptionGroup):
            yield from _leaves(error)
        else:
            yield error


@contextmanager
def unwrap_session_errors() -> Iterator[None]:
    """Re-raise task group failures as the single error behind them."""
    try:
        yield
    except BaseExceptionGroup as group:
        raise collapse_exception_group(group) from group


class BackendTransport(ABC):
    """Send tool calls to one backend and read its tool listing."""

    def __init__(self, config: TransportConfig) -> None:
        self.config = config

    @abstractmethod
    def connect(self) -> AbstractAsyncContextManager[tuple[Any, ...]]:
        """Open the raw (read_stream, write_stream, ...) connection."""

    @asynccontextmanager
    async def session(self) -> AsyncIterator[ClientSession]:
        """Open an initialized client session."""
        async with self.connect() as streams:
            read_stream, write_stream = streams[0], streams[1]
            async with ClientSession(read_stream, write_stream) as session:
                await session.initialize()
                yield session

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> CallToolResult:
        """
        Invoke a tool on the backend.

        Args:
            name: Tool name
            arguments: Tool arguments, passed through unchanged

        Returns:
            The backend's CallToolResult
        """
        with unwrap_session_errors():
            async with self.session() as session:
                logger.debug("Calling '{}' via {}", name, self.config.describe())
                return await session.call_tool(name, arguments)

    async def list_tools(self) -> list[Tool]:
        """
        List every tool the backend exposes, following pagination.

        Returns:
            List of MCP Tool definitions
        """
        tools: list[Tool] = []
        with unwrap_session_errors():
            async with self.session() as session:
                cursor: str | None = None
                while True:
                    response = await session.list_tools(cursor=cursor)
                    tools.extend(response.tools)
                    cursor = response.nextCursor
                    if not cursor:
                        break
        return tools

    async def ping(self) -> None:
        """Round-trip a ping; raises if the backend cannot be reached."""
        with unwrap_session_errors():
            async with self.session() as session:
                await session.send_ping()


class StdioTransport(BackendTransport):
    """Backend running as a local process speaking MCP over stdin/stdout."""

    def connect(self) -> AbstractAsyncContextManager[tuple[Any, ...]]:
        params = StdioServerParameters(
            command=self.config.command or "",
            args=self.config.args,
            env=self.config.env,
        )
        return stdio_client(params)


class HttpTransport(BackendTransport):
    """Backend reachable over MCP streamable HTTP."""

    def connect(self) -> AbstractAsyncContextManager[tuple[Any, ...]]:
        return streamablehttp_client(
            self.config.url or "",
            headers=self.config.headers or None,
        )


def create_transport(config: TransportConfig) -> BackendTransport:
    """Build the transport for a connection descriptor."""
    if config.kind == "http":
        return HttpTransport(config)
    return StdioTransport(config)
