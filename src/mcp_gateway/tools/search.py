"""Semantic search over the tool catalog using cosine similarity."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from loguru import logger
from pydantic import Field

from ..errors import InvalidArgumentError, VectorError
from .catalog import CatalogFilter, CatalogStore, ToolMetadata
from .vectors import cosine_similarity

DEFAULT_LIMIT = 5


class SearchHit(ToolMetadata):
    """Tool metadata plus its similarity to the query."""

    similarity: float = Field(description="Cosine similarity to the query (-1 to 1)")


class SearchIndex:
    """Query-time similarity ranking over the catalog.

    Every search reads the current embeddings from the catalog, so there is
    no in-memory index to keep in sync with upserts and removals.
    """

    def __init__(self, catalog: CatalogStore) -> None:
        """
        Initialize the search index.

        Args:
            catalog: Catalog store to rank
        """
        self.catalog = catalog

    def search(
        self,
        query_vector: Sequence[float],
        limit: int = DEFAULT_LIMIT,
        filter: CatalogFilter | None = None,
        *,
        min_similarity: Optional[float] = None,
    ) -> list[SearchHit]:
        """
        Rank catalog tools by cosine similarity to a query vector.

        Args:
            query_vector: Query embedding
            limit: Maximum number of results (must be positive)
            filter: Optional backend/category pre-filter
            min_similarity: Optional cutoff; results below it are dropped

        Returns:
            Hits sorted by similarity descending, ties broken by name ascending

        Raises:
            InvalidArgumentError: If limit is not positive
        """
        if limit <= 0:
            raise InvalidArgumentError("Limit must be greater than 0", limit=limit)

        hits: dict[str, SearchHit] = {}
        for record in self.catalog.all_with_embeddings(filter):
            if record.name in hits:
                continue
            try:
                similarity = cosine_similarity(query_vector, record.embedding)
            except VectorError as e:
                logger.warning("Skipping tool '{}' in search: {}", record.name, e)
                continue

            if min_similarity is not None and similarity < min_similarity:
                continue

            hits[record.name] = SearchHit(
                name=record.name,
                description=record.description,
                backend_id=record.backend_id,
                category=record.category,
                similarity=similarity,
            )

        ranked = sorted(hits.values(), key=lambda h: (-h.similarity, h.name))
        logger.debug("Search ranked {} tools, returning {}", len(ranked), min(limit, len(ranked)))
        return ranked[:limit]
