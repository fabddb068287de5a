"""Tests for semantic search ranking."""

import pytest

from mcp_gateway.errors import InvalidArgumentError
from mcp_gateway.tools.catalog import CatalogFilter, CatalogStore
from mcp_gateway.tools.search import SearchIndex
from mcp_gateway.tools.vectors import normalize

from conftest import embed, make_record


class TestSearchIndex:
    """Test cosine ranking over the catalog."""

    def setup_method(self):
        self.store = CatalogStore(":memory:")
        self.index = SearchIndex(self.store)

    def teardown_method(self):
        self.store.close()

    def test_empty_catalog(self):
        assert self.index.search(embed("read a file")) == []

    def test_ranks_by_similarity(self):
        self.store.upsert(make_record("read_file", "Read contents from a file", embedding=normalize([1.0, 0.0, 0.0])))
        self.store.upsert(make_record("write_file", "Write content to a file", embedding=normalize([0.6, 0.8, 0.0])))
        self.store.upsert(make_record("click", "Click an element", embedding=normalize([0.0, 0.0, 1.0])))

        hits = self.index.search([1.0, 0.0, 0.0], limit=3)

        assert [h.name for h in hits] == ["read_file", "write_file", "click"]
        assert hits[0].similarity == pytest.approx(1.0)
        assert hits[1].similarity == pytest.approx(0.6)
        assert hits[2].similarity == pytest.approx(0.0)

    def test_ties_broken_by_name(self):
        vector = normalize([0.5, 0.5])
        for name in ("zeta", "alpha", "mid"):
            self.store.upsert(make_record(name, f"Tool {name}", embedding=vector))

        assert [h.name for h in self.index.search(vector)] == ["alpha", "mid", "zeta"]

    def test_limit(self):
        for i in range(8):
            self.store.upsert(make_record(f"tool_{i}", f"Tool number {i}"))

        assert len(self.index.search(embed("tool number"), limit=3)) == 3
        assert len(self.index.search(embed("tool number"))) == 5
        assert len(self.index.search(embed("tool number"), limit=50)) == 8

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit(self, limit):
        with pytest.raises(InvalidArgumentError):
            self.index.search(embed("read"), limit=limit)

    def test_mismatched_dimension_skipped(self):
        """Test that a record with a stale vector size is skipped, not fatal."""
        self.store.upsert(make_record("read_file", "Read a file"))
        self.store.upsert(make_record("legacy", "Read a file", embedding=[1.0, 0.0]))

        hits = self.index.search(embed("read a file"), limit=10)
        assert [h.name for h in hits] == ["read_file"]

    def test_filter(self):
        self.store.upsert(make_record("read_file", "Read a file", category="read"))
        self.store.upsert(make_record("get_file_contents", "Get a file", backend_id="github", category="read"))

        hits = self.index.search(embed("file"), filter=CatalogFilter(backend_id="github"))
        assert [h.name for h in hits] == ["get_file_contents"]

    def test_min_similarity(self):
        self.store.upsert(make_record("read_file", "Read", embedding=normalize([1.0, 0.0])))
        self.store.upsert(make_record("click", "Click", embedding=normalize([0.0, 1.0])))

        hits = self.index.search([1.0, 0.0], min_similarity=0.5)
        assert [h.name for h in hits] == ["read_file"]

    def test_hits_carry_metadata_not_embedding(self):
        self.store.upsert(make_record("read_file", "Read a file", category="read"))
        [hit] = self.index.search(embed("read a file"))

        body = hit.model_dump(by_alias=True)
        assert set(body) == {"name", "description", "backendId", "category", "similarity"}

    def test_sees_upserts_and_removals(self):
        self.store.upsert(make_record("read_file", "Read a file"))
        assert len(self.index.search(embed("read a file"))) == 1

        self.store.upsert(make_record("write_file", "Write a file"))
        self.store.remove("read_file")
        assert [h.name for h in self.index.search(embed("read a file"))] == ["write_file"]
