"""Progressive disclosure of the tool catalog.

Clients discover tools in three increasingly detailed phases instead of
receiving every schema up front:

1. ``list_tools``: names, descriptions, backend and category only
2. ``search``: the same metadata ranked by semantic similarity to a query
3. ``get_schema``: the full input schema of one tool

Execution is the consumer of a resolved tool; the handler only checks the
request and that the tool exists before handing it to the forwarder.

The handler keeps no per-client state: each phase is addressed by a tool
name or a query text alone.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..errors import InvalidArgumentError, ToolNotFoundError, ValidationError
from .catalog import CatalogFilter, CatalogStore, ToolMetadata
from .embeddings import EmbeddingProvider
from .execution import BackendResult, ExecutionForwarder
from .search import DEFAULT_LIMIT, SearchHit, SearchIndex


class ToolSchemaView(ToolMetadata):
    """Phase-3 view: metadata plus the input schema."""

    input_schema: dict[str, Any] = Field(description="JSON schema for tool input parameters")


class HealthReport(BaseModel):
    """Gateway liveness and catalog size."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: str = Field(default="ok")
    tool_count: int = Field(description="Number of tools in the catalog")


class DisclosureHandler:
    """Stateless API over catalog, search index, embeddings and execution."""

    def __init__(
        self,
        catalog: CatalogStore,
        index: SearchIndex,
        provider: EmbeddingProvider,
        forwarder: ExecutionForwarder,
        *,
        default_limit: int = DEFAULT_LIMIT,
        min_similarity: Optional[float] = None,
    ) -> None:
        self.catalog = catalog
        self.index = index
        self.provider = provider
        self.forwarder = forwarder
        self.default_limit = default_limit
        self.min_similarity = min_similarity

    async def list_tools(self, filter: CatalogFilter | None = None) -> list[ToolMetadata]:
        """Phase 1: metadata for every tool matching the filter."""
        return await asyncio.to_thread(self.catalog.list, filter)

    async def search(
        self,
        query: str,
        limit: Optional[int] = None,
        filter: CatalogFilter | None = None,
    ) -> list[SearchHit]:
        """
        Phase 2: tools ranked by similarity to a free-text query.

        Args:
            query: Free-text description of the wanted capability
            limit: Maximum number of results (default from config)
            filter: Optional backend/category pre-filter

        Returns:
            Ranked hits; empty when the catalog is empty

        Raises:
            ValidationError: If the query is empty
            InvalidArgumentError: If limit is not a positive integer
            EmbeddingUnavailableError: If the embedding model cannot be loaded
            EmbeddingGenerationError: If the query cannot be embedded
        """
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("Query required")

        effective_limit = self.default_limit if limit is None else limit
        if isinstance(effective_limit, bool) or not isinstance(effective_limit, int):
            raise InvalidArgumentError("Limit must be an integer", limit=effective_limit)
        if effective_limit <= 0:
            raise InvalidArgumentError("Limit must be greater than 0", limit=effective_limit)

        query_vector = await self.provider.embed(query)
        hits = await asyncio.to_thread(
            self.index.search,
            query_vector,
            effective_limit,
            filter,
            min_similarity=self.min_similarity,
        )
        logger.info("Search for '{}' returned {} results", query[:50], len(hits))
        return hits

    async def get_schema(self, name: str) -> ToolSchemaView:
        """
        Phase 3: full input schema of one tool.

        Raises:
            ToolNotFoundError: If the tool is not in the catalog
        """
        record = await asyncio.to_thread(self.catalog.get, name)
        if record is None:
            raise ToolNotFoundError(name)
        return ToolSchemaView(
            name=record.name,
            description=record.description,
            backend_id=record.backend_id,
            category=record.category,
            input_schema=record.input_schema,
        )

    async def execute(self, tool: str, args: Any) -> BackendResult:
        """
        Check an execution request and forward it to the tool's backend.

        Args:
            tool: Tool name
            args: Tool arguments (a JSON object)

        Raises:
            ValidationError: If tool or args are missing or malformed
            ToolNotFoundError: If the tool is not in the catalog
            BackendUnavailableError: If the backend cannot take the call
            ForwardingError: If the transport fails
        """
        if not isinstance(tool, str) or not tool.strip():
            raise ValidationError("Tool and args required")
        if not isinstance(args, Mapping):
            raise ValidationError("Tool and args required")

        # Unknown tools are rejected before any backend is contacted
        if await asyncio.to_thread(self.catalog.get, tool) is None:
            raise ToolNotFoundError(tool)

        return await self.forwarder.execute(tool, args)

    async def health(self) -> HealthReport:
        """Catalog size and liveness."""
        return HealthReport(status="ok", tool_count=await asyncio.to_thread(self.catalog.count))
