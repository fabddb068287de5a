"""Tests for the DuckDB tool catalog."""

import pytest

from mcp_gateway.errors import ValidationError
from mcp_gateway.tools.catalog import CatalogFilter, CatalogStore, ToolMetadata, dump_schema

from conftest import DIM, embed, make_record


class TestCatalogStore:
    """Test catalog CRUD."""

    def setup_method(self):
        """Set up an in-memory catalog."""
        self.store = CatalogStore(":memory:")

    def teardown_method(self):
        self.store.close()

    def test_empty_catalog(self):
        assert self.store.count() == 0
        assert self.store.list() == []
        assert self.store.get("read_file") is None

    def test_upsert_and_get(self):
        schema = {
            "type": "object",
            "properties": {"path": {"type": "string", "description": "Absolute path"}},
            "required": ["path"],
        }
        self.store.upsert(make_record("read_file", "Read a file", category="read", input_schema=schema))

        record = self.store.get("read_file")
        assert record is not None
        assert record.description == "Read a file"
        assert record.backend_id == "filesystem"
        assert record.category == "read"
        assert record.input_schema == schema
        assert len(record.embedding) == DIM

    def test_upsert_replaces_same_name(self):
        """Test that a second upsert fully replaces the earlier record."""
        self.store.upsert(make_record("read_file", "Old description", category="read"))
        self.store.upsert(make_record("read_file", "New description", backend_id="other"))

        assert self.store.count() == 1
        record = self.store.get("read_file")
        assert record.description == "New description"
        assert record.backend_id == "other"
        assert record.category is None
        assert record.embedding == pytest.approx(embed("read_file New description"), abs=1e-6)

    def test_schema_round_trip(self):
        """Test that nested schemas come back structurally equal."""
        schema = {
            "type": "object",
            "properties": {
                "options": {
                    "type": "object",
                    "properties": {"depth": {"type": "integer", "minimum": 1}},
                },
                "tags": {"type": "array", "items": {"type": "string"}},
            },
            "required": ["options"],
        }
        self.store.upsert(make_record("configure", "Configure things", input_schema=schema))
        assert self.store.get("configure").input_schema == schema

    def test_invalid_schema_rejected(self):
        record = make_record("bad", "Bad schema")
        record.input_schema = {"type": "object", "default": float("nan")}

        with pytest.raises(ValidationError):
            self.store.upsert(record)
        assert self.store.get("bad") is None

    def test_missing_embedding_rejected(self):
        record = make_record("no_vec", "No embedding")
        record.embedding = []

        with pytest.raises(ValidationError):
            self.store.upsert(record)

    def test_list_returns_metadata_only(self):
        self.store.upsert(make_record("read_file", "Read a file", category="read"))
        [tool] = self.store.list()

        assert type(tool) is ToolMetadata
        assert tool.model_dump(by_alias=True) == {
            "name": "read_file",
            "description": "Read a file",
            "backendId": "filesystem",
            "category": "read",
        }

    def test_list_ordering_and_filters(self):
        self.store.upsert(make_record("search_code", "Search code", backend_id="github", category="read"))
        self.store.upsert(make_record("write_file", "Write a file", category="write"))
        self.store.upsert(make_record("read_file", "Read a file", category="read"))

        assert [t.name for t in self.store.list()] == ["read_file", "write_file", "search_code"]
        assert [t.name for t in self.store.list(CatalogFilter(backend_id="github"))] == ["search_code"]
        assert [t.name for t in self.store.list(CatalogFilter(category="read"))] == [
            "read_file",
            "search_code",
        ]
        assert self.store.list(CatalogFilter(backend_id="filesystem", category="browser")) == []

    def test_remove(self):
        self.store.upsert(make_record("read_file", "Read a file"))

        assert self.store.remove("read_file") is True
        assert self.store.remove("read_file") is False
        assert self.store.count() == 0

    def test_remove_by_backend(self):
        self.store.upsert(make_record("read_file", "Read a file"))
        self.store.upsert(make_record("write_file", "Write a file"))
        self.store.upsert(make_record("search_code", "Search code", backend_id="github"))

        assert self.store.remove_by_backend("filesystem") == 2
        assert self.store.names_for_backend("filesystem") == set()
        assert self.store.names_for_backend("github") == {"search_code"}

    def test_file_backed_catalog_persists(self, tmp_path):
        path = tmp_path / "nested" / "catalog.duckdb"
        store = CatalogStore(path)
        store.upsert(make_record("read_file", "Read a file"))
        store.close()

        reopened = CatalogStore(path)
        try:
            assert reopened.get("read_file").description == "Read a file"
        finally:
            reopened.close()


class TestDumpSchema:
    """Test schema serialization checks."""

    def test_non_object_rejected(self):
        with pytest.raises(ValidationError, match="JSON object"):
            dump_schema(["not", "an", "object"])

    def test_unserializable_rejected(self):
        with pytest.raises(ValidationError):
            dump_schema({"default": object()})
