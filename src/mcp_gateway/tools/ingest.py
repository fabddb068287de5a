"""Catalog ingestion of backend tool listings."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any, Optional

from loguru import logger
from mcp.types import Tool
from pydantic import BaseModel, Field

from ..errors import EmbeddingGenerationError, ValidationError
from .catalog import CatalogFilter, CatalogStore, ToolRecord
from .embeddings import EmbeddingProvider


class ToolListing(BaseModel):
    """One tool as reported by a backend."""

    name: str = Field(description="Tool name identifier")
    description: str = Field(default="", description="Tool description")
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON schema for tool input"
    )
    category: Optional[str] = Field(default=None, description="Classification label")

    @classmethod
    def from_mcp(cls, tool: Tool) -> "ToolListing":
        """Build a listing from an MCP Tool definition.

        The category is read from ``_meta.category`` when the backend sets it.
        """
        meta = getattr(tool, "meta", None) or {}
        category = meta.get("category") if isinstance(meta, dict) else None
        return cls(
            name=tool.name,
            description=tool.description or "",
            input_schema=tool.inputSchema or {"type": "object", "properties": {}},
            category=category if isinstance(category, str) else None,
        )


class IngestReport(BaseModel):
    """Outcome of ingesting one backend listing."""

    backend_id: str
    added: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.added) + len(self.updated) + len(self.unchanged)


class CatalogIngestor:
    """Turns backend tool listings into embedded catalog records.

    Embeddings are recomputed only when a tool's name or description
    changed, or when the stored vector has the wrong dimension.
    """

    def __init__(self, catalog: CatalogStore, provider: EmbeddingProvider) -> None:
        self.catalog = catalog
        self.provider = provider

    async def ingest(
        self,
        backend_id: str,
        tools: Iterable[ToolListing],
        *,
        prune: bool = True,
    ) -> IngestReport:
        """
        Upsert a backend's tools into the catalog.

        Args:
            backend_id: Backend that reported the tools
            tools: Tool listings from that backend
            prune: Remove catalog tools of this backend missing from the listing

        Returns:
            IngestReport describing what changed

        Raises:
            EmbeddingUnavailableError: If the embedding model cannot be loaded
        """
        report = IngestReport(backend_id=backend_id)
        existing = {
            r.name: r
            for r in await asyncio.to_thread(
                self.catalog.all_with_embeddings, CatalogFilter(backend_id=backend_id)
            )
        }
        seen: set[str] = set()

        for tool in tools:
            if tool.name in seen:
                logger.warning("Backend '{}' listed '{}' twice, keeping the first", backend_id, tool.name)
                continue
            seen.add(tool.name)

            previous = existing.get(tool.name)
            if previous is None:
                previous = await asyncio.to_thread(self.catalog.get, tool.name)
                if previous is not None:
                    logger.warning(
                        "Tool '{}' moves from backend '{}' to '{}'",
                        tool.name, previous.backend_id, backend_id,
                    )

            try:
                embedding = await self._embedding_for(tool, previous)
                record = ToolRecord(
                    name=tool.name,
                    description=tool.description,
                    backend_id=backend_id,
                    category=tool.category,
                    input_schema=tool.input_schema,
                    embedding=embedding,
                )
                await asyncio.to_thread(self.catalog.upsert, record)
            except (EmbeddingGenerationError, ValidationError) as e:
                logger.warning("Skipping tool '{}' from '{}': {}", tool.name, backend_id, e)
                report.failed[tool.name] = e.message
                continue

            if previous is None:
                report.added.append(tool.name)
            elif _same(previous, record):
                report.unchanged.append(tool.name)
            else:
                report.updated.append(tool.name)

        if prune:
            for name in sorted(set(existing) - seen):
                await asyncio.to_thread(self.catalog.remove, name)
                report.removed.append(name)

        logger.info(
            "Ingested backend '{}': {} added, {} updated, {} unchanged, {} removed, {} failed",
            backend_id,
            len(report.added),
            len(report.updated),
            len(report.unchanged),
            len(report.removed),
            len(report.failed),
        )
        return report

    async def _embedding_for(self, tool: ToolListing, previous: ToolRecord | None) -> list[float]:
        if (
            previous is not None
            and previous.description == tool.description
            and len(previous.embedding) == self.provider.dimension
        ):
            return previous.embedding
        return await self.provider.embed(f"{tool.name} {tool.description}")


def _same(a: ToolRecord, b: ToolRecord) -> bool:
    return (
        a.description == b.description
        and a.backend_id == b.backend_id
        and a.category == b.category
        and a.input_schema == b.input_schema
    )
