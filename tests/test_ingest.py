"""Tests for catalog ingestion of backend tool listings."""

import pytest
from mcp.types import Tool

from mcp_gateway.tools.catalog import CatalogStore
from mcp_gateway.tools.embeddings import EmbeddingConfig, EmbeddingProvider
from mcp_gateway.tools.ingest import CatalogIngestor, ToolListing

from conftest import DIM


class CountingProvider(EmbeddingProvider):
    """Hashing provider that records which texts it embedded."""

    def __init__(self):
        super().__init__(EmbeddingConfig(backend="hashing", dimension=DIM))
        self.texts: list[str] = []

    async def embed(self, text):
        self.texts.append(text)
        return await super().embed(text)


def listing(name, description, **kwargs):
    return ToolListing(name=name, description=description, **kwargs)


class TestToolListing:
    """Test conversion from MCP tool definitions."""

    def test_from_mcp(self):
        tool = Tool(
            name="read_file",
            description="Read a file",
            inputSchema={"type": "object", "properties": {"path": {"type": "string"}}},
        )
        result = ToolListing.from_mcp(tool)

        assert result.name == "read_file"
        assert result.input_schema["properties"] == {"path": {"type": "string"}}
        assert result.category is None

    def test_from_mcp_reads_category_meta(self):
        tool = Tool.model_validate(
            {
                "name": "click",
                "inputSchema": {"type": "object"},
                "_meta": {"category": "browser"},
            }
        )
        result = ToolListing.from_mcp(tool)

        assert result.category == "browser"
        assert result.description == ""


class TestCatalogIngestor:
    """Test add/update/prune bookkeeping."""

    def setup_method(self):
        self.store = CatalogStore(":memory:")
        self.provider = CountingProvider()
        self.ingestor = CatalogIngestor(self.store, self.provider)

    def teardown_method(self):
        self.store.close()

    @pytest.mark.asyncio
    async def test_first_ingest_adds(self):
        report = await self.ingestor.ingest(
            "filesystem",
            [listing("read_file", "Read a file"), listing("write_file", "Write a file")],
        )

        assert report.added == ["read_file", "write_file"]
        assert report.total == 2
        assert self.store.get("read_file").backend_id == "filesystem"
        assert self.provider.texts == ["read_file Read a file", "write_file Write a file"]

    @pytest.mark.asyncio
    async def test_unchanged_description_reuses_embedding(self):
        await self.ingestor.ingest("filesystem", [listing("read_file", "Read a file")])
        self.provider.texts.clear()

        report = await self.ingestor.ingest(
            "filesystem",
            [listing("read_file", "Read a file", input_schema={"type": "object", "required": ["path"]})],
        )

        assert report.updated == ["read_file"]
        assert self.provider.texts == []
        assert self.store.get("read_file").input_schema["required"] == ["path"]

    @pytest.mark.asyncio
    async def test_changed_description_reembeds(self):
        await self.ingestor.ingest("filesystem", [listing("read_file", "Read a file")])
        self.provider.texts.clear()

        report = await self.ingestor.ingest("filesystem", [listing("read_file", "Read any file quickly")])

        assert report.updated == ["read_file"]
        assert self.provider.texts == ["read_file Read any file quickly"]

    @pytest.mark.asyncio
    async def test_identical_listing_is_unchanged(self):
        await self.ingestor.ingest("filesystem", [listing("read_file", "Read a file")])
        report = await self.ingestor.ingest("filesystem", [listing("read_file", "Read a file")])

        assert report.unchanged == ["read_file"]

    @pytest.mark.asyncio
    async def test_prune_removes_missing_tools(self):
        await self.ingestor.ingest(
            "filesystem",
            [listing("read_file", "Read a file"), listing("write_file", "Write a file")],
        )
        report = await self.ingestor.ingest("filesystem", [listing("read_file", "Read a file")])

        assert report.removed == ["write_file"]
        assert self.store.get("write_file") is None

    @pytest.mark.asyncio
    async def test_no_prune_keeps_missing_tools(self):
        await self.ingestor.ingest("filesystem", [listing("write_file", "Write a file")])
        await self.ingestor.ingest("filesystem", [listing("read_file", "Read a file")], prune=False)

        assert self.store.names_for_backend("filesystem") == {"read_file", "write_file"}

    @pytest.mark.asyncio
    async def test_prune_is_scoped_to_backend(self):
        await self.ingestor.ingest("github", [listing("search_code", "Search code")])
        await self.ingestor.ingest("filesystem", [listing("read_file", "Read a file")])

        assert self.store.get("search_code") is not None

    @pytest.mark.asyncio
    async def test_bad_tool_does_not_stop_the_rest(self):
        report = await self.ingestor.ingest(
            "filesystem",
            [
                listing("??", "!!"),
                listing("bad_schema", "Bad schema", input_schema={"default": float("inf")}),
                listing("read_file", "Read a file"),
            ],
        )

        assert report.added == ["read_file"]
        assert set(report.failed) == {"??", "bad_schema"}

    @pytest.mark.asyncio
    async def test_duplicate_names_keep_first(self):
        report = await self.ingestor.ingest(
            "filesystem",
            [listing("read_file", "Read a file"), listing("read_file", "Another")],
        )

        assert report.added == ["read_file"]
        assert self.store.get("read_file").description == "Read a file"

    @pytest.mark.asyncio
    async def test_tool_moves_between_backends(self):
        await self.ingestor.ingest("old", [listing("read_file", "Read a file")])
        report = await self.ingestor.ingest("new", [listing("read_file", "Read a file")])

        assert report.updated == ["read_file"]
        assert self.store.get("read_file").backend_id == "new"
        assert self.store.names_for_backend("old") == set()
