"""Tests for the MCP server surface."""

import json

import pytest
from mcp.types import CallToolRequest, CallToolRequestParams, ListToolsRequest

from mcp_gateway.errors import InvalidArgumentError, ToolNotFoundError, ValidationError
from mcp_gateway.mcp_server import TOOLS, create_mcp_server, dispatch


class TestDispatch:
    """Test the dispatch function directly (no MCP transport)."""

    @pytest.mark.asyncio
    async def test_list_tools(self, populated):
        result = await dispatch(populated, "list_tools", {"backendId": "filesystem"})
        assert [t["name"] for t in result["tools"]] == [
            "list_directory",
            "read_file",
            "search_files",
            "write_file",
        ]

    @pytest.mark.asyncio
    async def test_search_tools(self, populated):
        result = await dispatch(populated, "search_tools", {"query": "read file", "limit": 2})

        assert len(result["tools"]) == 2
        assert result["tools"][0]["name"] == "read_file"

    @pytest.mark.asyncio
    async def test_get_tool_schema(self, populated):
        result = await dispatch(populated, "get_tool_schema", {"name": "fill"})
        assert result["inputSchema"]["required"] == ["uid", "value"]

    @pytest.mark.asyncio
    async def test_execute_tool(self, populated, servers):
        result = await dispatch(populated, "execute_tool", {"tool": "click", "args": {"uid": "7"}})

        assert result["success"] is True
        assert servers["chrome-devtools"].calls == [("click", {"uid": "7"})]

    @pytest.mark.asyncio
    async def test_errors_propagate(self, populated):
        with pytest.raises(ToolNotFoundError):
            await dispatch(populated, "get_tool_schema", {"name": "nonexistent"})

    @pytest.mark.asyncio
    async def test_search_limit_must_be_integer(self, populated):
        with pytest.raises(InvalidArgumentError) as exc_info:
            await dispatch(populated, "search_tools", {"query": "read file", "limit": "3"})
        assert exc_info.value.to_dict()["type"] == "InvalidArgumentError"

    @pytest.mark.asyncio
    async def test_unknown_gateway_tool(self, populated):
        with pytest.raises(ValidationError):
            await dispatch(populated, "delete_everything", {})


class TestServerHandlers:
    """Test the registered MCP request handlers."""

    def test_exposes_four_tools(self):
        assert [t.name for t in TOOLS] == ["list_tools", "search_tools", "get_tool_schema", "execute_tool"]

    @pytest.mark.asyncio
    async def test_list_tools_handler(self, populated):
        server = create_mcp_server(populated)
        handler = server.request_handlers[ListToolsRequest]

        response = await handler(ListToolsRequest(method="tools/list"))
        assert [t.name for t in response.root.tools] == [t.name for t in TOOLS]

    @pytest.mark.asyncio
    async def test_call_tool_error_is_structured(self, populated):
        server = create_mcp_server(populated)
        handler = server.request_handlers[CallToolRequest]

        response = await handler(
            CallToolRequest(
                method="tools/call",
                params=CallToolRequestParams(name="get_tool_schema", arguments={"name": "nonexistent"}),
            )
        )
        body = json.loads(response.root.content[0].text)
        assert body == {"error": "not found", "type": "ToolNotFoundError", "tool": "nonexistent"}
