"""Shared fixtures: an in-memory gateway with fake backend servers."""

import asyncio
from typing import Any

import pytest
from mcp.types import CallToolResult, TextContent, Tool

from mcp_gateway.config import GatewayConfig
from mcp_gateway.gateway import Gateway
from mcp_gateway.registry import TransportConfig
from mcp_gateway.samples import SAMPLE_TOOLS
from mcp_gateway.tools.catalog import ToolRecord
from mcp_gateway.tools.embeddings import EmbeddingConfig, HashingEncoder
from mcp_gateway.tools.transport import BackendTransport
from mcp_gateway.tools.vectors import normalize

DIM = 384
ENCODER = HashingEncoder(DIM)


def embed(text: str) -> list[float]:
    """Embedding the hashing provider would compute for a text."""
    return normalize(ENCODER.encode(text))


def make_record(
    name: str,
    description: str,
    backend_id: str = "filesystem",
    category: str | None = None,
    input_schema: dict[str, Any] | None = None,
    embedding: list[float] | None = None,
) -> ToolRecord:
    return ToolRecord(
        name=name,
        description=description,
        backend_id=backend_id,
        category=category,
        input_schema=input_schema or {"type": "object", "properties": {}},
        embedding=embedding or embed(f"{name} {description}"),
    )


class FakeServer:
    """In-process stand-in for a backend MCP server."""

    def __init__(self, tools: list[Tool] | None = None):
        self.tools = tools or []
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.error: Exception | None = None
        self.delay = 0.0
        self.is_error = False
        self.pings = 0

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> CallToolResult:
        self.calls.append((name, arguments))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return CallToolResult(
            content=[TextContent(type="text", text=f"{name} ok")],
            isError=self.is_error,
        )

    async def list_tools(self) -> list[Tool]:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.tools)

    async def ping(self) -> None:
        self.pings += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error


class FakeTransport(BackendTransport):
    """Routes transport calls to the FakeServer named by the descriptor's command."""

    def __init__(self, config: TransportConfig, servers: dict[str, FakeServer]):
        super().__init__(config)
        self.servers = servers

    def connect(self):
        raise NotImplementedError("FakeTransport does not open streams")

    def _server(self) -> FakeServer:
        server = self.servers.get(self.config.command or "")
        if server is None:
            raise ConnectionError(f"No server behind '{self.config.command}'")
        return server

    async def call_tool(self, name, arguments):
        return await self._server().call_tool(name, arguments)

    async def list_tools(self):
        return await self._server().list_tools()

    async def ping(self):
        await self._server().ping()


def stdio(command: str) -> TransportConfig:
    return TransportConfig(kind="stdio", command=command)


@pytest.fixture
def servers() -> dict[str, FakeServer]:
    return {}


@pytest.fixture
def gateway_config() -> GatewayConfig:
    return GatewayConfig(
        database_path=":memory:",
        embedding=EmbeddingConfig(backend="hashing", dimension=DIM),
    )


@pytest.fixture
def gateway(gateway_config, servers):
    gw = Gateway(gateway_config, transport_factory=lambda config: FakeTransport(config, servers))
    yield gw
    gw.shutdown()


@pytest.fixture
def populated(gateway, servers):
    """Gateway holding the sample tools, with every sample backend registered."""
    for tool in SAMPLE_TOOLS:
        gateway.catalog.upsert(
            make_record(
                tool["name"],
                tool["description"],
                backend_id=tool["backendId"],
                category=tool["category"],
                input_schema=tool["inputSchema"],
            )
        )
    for backend_id in ("filesystem", "github", "chrome-devtools"):
        servers[backend_id] = FakeServer()
        gateway.register_backend(backend_id, stdio(backend_id))
    return gateway
