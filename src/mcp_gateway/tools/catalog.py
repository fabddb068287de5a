"""Tool catalog storage using DuckDB.

One row per tool name across all backends. Embeddings are stored as
float32 BLOBs next to the metadata so a record is never visible without
its embedding or schema.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Optional

import duckdb
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..errors import CatalogError, ValidationError
from .vectors import blob_to_embedding, embedding_to_blob


class ToolMetadata(BaseModel):
    """Phase-1 view of a tool: no schema, no embedding."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(description="Tool name")
    description: str = Field(description="Tool description")
    backend_id: str = Field(description="Owning backend id")
    category: Optional[str] = Field(default=None, description="Classification label")


class ToolRecord(ToolMetadata):
    """Full catalog entry for one tool."""

    input_schema: dict[str, Any] = Field(
        default_factory=dict,
        description="JSON schema for tool input parameters"
    )
    embedding: list[float] = Field(
        default_factory=list,
        description="Unit-normalized embedding of name + description"
    )

    @property
    def embedding_text(self) -> str:
        """Text the embedding is computed from."""
        return f"{self.name} {self.description}"

    def metadata(self) -> ToolMetadata:
        """Project to the metadata-only view."""
        return ToolMetadata(
            name=self.name,
            description=self.description,
            backend_id=self.backend_id,
            category=self.category,
        )


class CatalogFilter(BaseModel):
    """Optional pre-filter for listing and search."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    backend_id: Optional[str] = None
    category: Optional[str] = None

    def where(self) -> tuple[str, list[Any]]:
        """Build a SQL WHERE clause and its parameters."""
        clauses: list[str] = []
        params: list[Any] = []
        if self.backend_id is not None:
            clauses.append("backend_id = ?")
            params.append(self.backend_id)
        if self.category is not None:
            clauses.append("category = ?")
            params.append(self.category)
        if not clauses:
            return "", params
        return "WHERE " + " AND ".join(clauses), params


def dump_schema(schema: Any) -> str:
    """Serialize an input schema, rejecting anything that is not a JSON object.

    Raises:
        ValidationError: If the schema is not well-formed JSON object data
    """
    if not isinstance(schema, dict):
        raise ValidationError(
            f"inputSchema must be a JSON object, got {type(schema).__name__}"
        )
    try:
        return json.dumps(schema, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"inputSchema is not valid JSON: {e}") from e


class CatalogStore:
    """DuckDB-backed store of ToolRecords.

    All statements go through one connection guarded by a re-entrant lock,
    so an upsert (a single INSERT OR REPLACE) is atomic with respect to
    readers.

    Example:
        ```python
        store = CatalogStore(":memory:")
        store.upsert(record)
        meta = store.list(CatalogFilter(backend_id="filesystem"))
        ```
    """

    TABLE = "tools"

    def __init__(self, path: str | Path = ":memory:") -> None:
        """
        Open (and create if needed) the catalog database.

        Args:
            path: DuckDB file path or ':memory:'
        """
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()
        try:
            self.conn = duckdb.connect(self.path)
            self._initialize()
        except duckdb.Error as e:
            raise CatalogError(f"Failed to open catalog at {self.path}: {e}") from e

        logger.debug("CatalogStore opened at {}", self.path)

    def _initialize(self) -> None:
        # Only the primary key is indexed: DuckDB cannot INSERT OR REPLACE
        # rows whose non-key columns are covered by another index
        self.conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {self.TABLE} (
                name VARCHAR PRIMARY KEY,
                description VARCHAR NOT NULL,
                backend_id VARCHAR NOT NULL,
                category VARCHAR,
                input_schema VARCHAR NOT NULL,
                embedding BLOB NOT NULL,
                embedding_dim INTEGER NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    def _execute(self, sql: str, params: list[Any] | None = None) -> duckdb.DuckDBPyConnection:
        try:
            return self.conn.execute(sql, params or [])
        except duckdb.Error as e:
            logger.error("Catalog query failed: {}", e)
            raise CatalogError(f"Catalog query failed: {e}") from e

    def upsert(self, record: ToolRecord) -> None:
        """
        Insert a record or replace the existing one with the same name.

        Args:
            record: Fully embedded tool record

        Raises:
            ValidationError: If the schema is malformed or the embedding is missing
            CatalogError: If the write fails
        """
        schema_json = dump_schema(record.input_schema)
        if not record.embedding:
            raise ValidationError(f"Tool '{record.name}' has no embedding")
        if not record.name:
            raise ValidationError("Tool name cannot be empty")

        with self._lock:
            self._execute(
                f"""
                INSERT OR REPLACE INTO {self.TABLE}
                (name, description, backend_id, category, input_schema,
                 embedding, embedding_dim, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
                """,
                [
                    record.name,
                    record.description,
                    record.backend_id,
                    record.category,
                    schema_json,
                    embedding_to_blob(record.embedding),
                    len(record.embedding),
                ],
            )
        logger.debug("Upserted tool '{}' ({})", record.name, record.backend_id)

    def get(self, name: str) -> ToolRecord | None:
        """
        Get a tool record by name.

        Args:
            name: Tool name

        Returns:
            ToolRecord if found, None otherwise
        """
        with self._lock:
            row = self._execute(
                f"""
                SELECT name, description, backend_id, category, input_schema, embedding
                FROM {self.TABLE}
                WHERE name = ?
                """,
                [name],
            ).fetchone()

        return self._row_to_record(row) if row else None

    def list(self, filter: CatalogFilter | None = None) -> list[ToolMetadata]:
        """
        List tool metadata, ordered by backend then name.

        Args:
            filter: Optional backend/category filter

        Returns:
            Metadata only; never schema or embedding
        """
        where, params = (filter or CatalogFilter()).where()
        with self._lock:
            rows = self._execute(
                f"""
                SELECT name, description, backend_id, category
                FROM {self.TABLE}
                {where}
                ORDER BY backend_id, name
                """,
                params,
            ).fetchall()

        return [
            ToolMetadata(name=r[0], description=r[1], backend_id=r[2], category=r[3])
            for r in rows
        ]

    def all_with_embeddings(self, filter: CatalogFilter | None = None) -> list[ToolRecord]:
        """
        Load full records for index construction or search.

        Args:
            filter: Optional backend/category filter

        Returns:
            ToolRecords including embeddings, ordered by name
        """
        where, params = (filter or CatalogFilter()).where()
        with self._lock:
            rows = self._execute(
                f"""
                SELECT name, description, backend_id, category, input_schema, embedding
                FROM {self.TABLE}
                {where}
                ORDER BY name
                """,
                params,
            ).fetchall()

        return [self._row_to_record(r) for r in rows]

    def names_for_backend(self, backend_id: str) -> set[str]:
        """Names of all tools owned by a backend."""
        with self._lock:
            rows = self._execute(
                f"SELECT name FROM {self.TABLE} WHERE backend_id = ?",
                [backend_id],
            ).fetchall()
        return {r[0] for r in rows}

    def remove(self, name: str) -> bool:
        """
        Delete a tool by name.

        Returns:
            True if deleted, False if not found
        """
        with self._lock:
            rows = self._execute(
                f"DELETE FROM {self.TABLE} WHERE name = ? RETURNING name",
                [name],
            ).fetchall()
        if rows:
            logger.debug("Removed tool '{}'", name)
        return bool(rows)

    def remove_by_backend(self, backend_id: str) -> int:
        """
        Delete every tool owned by a backend.

        Returns:
            Number of tools removed
        """
        with self._lock:
            rows = self._execute(
                f"DELETE FROM {self.TABLE} WHERE backend_id = ? RETURNING name",
                [backend_id],
            ).fetchall()
        logger.info("Removed {} tools for backend '{}'", len(rows), backend_id)
        return len(rows)

    def count(self) -> int:
        """Total number of tools in the catalog."""
        with self._lock:
            row = self._execute(f"SELECT COUNT(*) FROM {self.TABLE}").fetchone()
        return int(row[0]) if row else 0

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self.conn.close()

    @staticmethod
    def _row_to_record(row: tuple[Any, ...]) -> ToolRecord:
        name, description, backend_id, category, input_schema, embedding = row
        return ToolRecord(
            name=name,
            description=description,
            backend_id=backend_id,
            category=category,
            input_schema=json.loads(input_schema),
            embedding=blob_to_embedding(bytes(embedding)),
        )
