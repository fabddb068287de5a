"""MCP server exposing the gateway's disclosure phases as four tools.

An MCP client connected here sees only ``list_tools``, ``search_tools``,
``get_tool_schema`` and ``execute_tool`` instead of every backend schema.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from loguru import logger
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .config import GatewayConfig
from .errors import GatewayError, ValidationError
from .gateway import Gateway
from .tools.catalog import CatalogFilter

# -- Tool definitions --

_FILTER_PROPERTIES = {
    "backendId": {"type": "string", "description": "Only tools of this backend"},
    "category": {"type": "string", "description": "Only tools of this category"},
}

TOOLS = [
    Tool(
        name="list_tools",
        description="List names and descriptions of all available tools (no input schemas).",
        inputSchema={
            "type": "object",
            "properties": dict(_FILTER_PROPERTIES),
        },
    ),
    Tool(
        name="search_tools",
        description="Find tools by describing what you want to do; returns the closest matches.",
        inputSchema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "What the tool should do"},
                "limit": {"type": "integer", "description": "Maximum number of results"},
                **_FILTER_PROPERTIES,
            },
            "required": ["query"],
        },
    ),
    Tool(
        name="get_tool_schema",
        description="Get the full input schema of one tool before calling it.",
        inputSchema={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Tool name"},
            },
            "required": ["name"],
        },
    ),
    Tool(
        name="execute_tool",
        description="Run a tool on its backend server with the given arguments.",
        inputSchema={
            "type": "object",
            "properties": {
                "tool": {"type": "string", "description": "Tool name"},
                "args": {"type": "object", "description": "Tool arguments"},
            },
            "required": ["tool", "args"],
        },
    ),
]


def _filter_from(args: dict) -> CatalogFilter | None:
    backend_id = args.get("backendId")
    category = args.get("category")
    if backend_id is None and category is None:
        return None
    return CatalogFilter(backend_id=backend_id, category=category)


async def dispatch(gateway: Gateway, name: str, args: dict) -> dict[str, Any]:
    """Route an MCP tool call to the disclosure handler.

    Raises:
        ValidationError: If the tool name is not one of the gateway tools
    """
    handler = gateway.handler

    if name == "list_tools":
        tools = await handler.list_tools(_filter_from(args))
        return {"tools": [t.model_dump(by_alias=True) for t in tools]}
    if name == "search_tools":
        hits = await handler.search(args.get("query", ""), args.get("limit"), _filter_from(args))
        return {"tools": [h.model_dump(by_alias=True) for h in hits]}
    if name == "get_tool_schema":
        view = await handler.get_schema(args.get("name", ""))
        return view.model_dump(by_alias=True)
    if name == "execute_tool":
        result = await handler.execute(args.get("tool", ""), args.get("args"))
        return result.model_dump(by_alias=True)

    raise ValidationError(f"Unknown tool: {name}")


def create_mcp_server(gateway: Gateway) -> Server:
    """Build an MCP server bound to a gateway."""
    server = Server("mcp-gateway")

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return TOOLS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict) -> list[TextContent]:
        try:
            result = await dispatch(gateway, name, arguments or {})
        except GatewayError as e:
            logger.warning("MCP call '{}' failed: {}", name, e)
            result = e.to_dict()
        return [TextContent(type="text", text=json.dumps(result, indent=2))]

    return server


def run_mcp_server(config: GatewayConfig | None = None) -> None:
    """Serve the gateway over MCP stdio until the client disconnects."""
    gateway = Gateway(config)
    server = create_mcp_server(gateway)

    async def _run():
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())

    try:
        asyncio.run(_run())
    finally:
        gateway.shutdown()
