"""Backend registry mapping backend ids to their transport and status."""

import threading
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator


class BackendStatus(str, Enum):
    """Observed reachability of a backend."""

    CONNECTED = "connected"
    UNREACHABLE = "unreachable"


class TransportConfig(BaseModel):
    """How to reach a backend MCP server."""

    kind: Literal["stdio", "http"] = Field(
        default="stdio",
        description="Transport type: stdio (local process) or http (streamable HTTP)"
    )
    command: str | None = Field(default=None, description="Executable for stdio backends")
    args: list[str] = Field(default_factory=list, description="Arguments for the stdio command")
    env: dict[str, str] | None = Field(default=None, description="Environment for the stdio process")
    url: str | None = Field(default=None, description="Endpoint URL for http backends")
    headers: dict[str, str] = Field(default_factory=dict, description="Extra HTTP headers")

    @model_validator(mode="after")
    def check_target(self) -> "TransportConfig":
        """Require the field each transport kind needs."""
        if self.kind == "stdio" and not self.command:
            raise ValueError("stdio transport requires 'command'")
        if self.kind == "http" and not self.url:
            raise ValueError("http transport requires 'url'")
        return self

    def describe(self) -> str:
        """Short human-readable target."""
        if self.kind == "stdio":
            return " ".join([self.command or "", *self.args]).strip()
        return self.url or ""


class Backend(BaseModel):
    """A registered tool-providing server."""

    id: str = Field(description="Backend identifier")
    transport: TransportConfig = Field(description="Connection descriptor")
    status: BackendStatus = Field(
        default=BackendStatus.CONNECTED,
        description="Last observed reachability"
    )
    last_checked: datetime | None = Field(
        default=None,
        description="Timestamp of the last status change"
    )
    last_error: str | None = Field(
        default=None,
        description="Last error message if status is UNREACHABLE"
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional backend metadata"
    )

    @property
    def is_available(self) -> bool:
        return self.status == BackendStatus.CONNECTED


class BackendRegistry:
    """Registry of backend tool servers.

    The registry owns only connection info and observed status; the tool
    records of a backend live in the catalog.
    """

    def __init__(self) -> None:
        self._backends: dict[str, Backend] = {}
        self._lock = threading.Lock()

    def register(
        self,
        backend_id: str,
        transport: TransportConfig,
        metadata: dict[str, Any] | None = None,
    ) -> Backend:
        """
        Register or replace a backend.

        Args:
            backend_id: Backend identifier
            transport: Connection descriptor
            metadata: Additional backend metadata

        Returns:
            The registered Backend
        """
        backend = Backend(
            id=backend_id,
            transport=transport,
            metadata=metadata or {},
        )
        with self._lock:
            self._backends[backend_id] = backend
        return backend

    def get(self, backend_id: str) -> Backend | None:
        """
        Get a backend by id.

        Args:
            backend_id: Backend identifier

        Returns:
            Backend if registered, None otherwise
        """
        with self._lock:
            return self._backends.get(backend_id)

    def update_status(
        self,
        backend_id: str,
        status: BackendStatus,
        error: str | None = None
    ) -> None:
        """
        Update backend status.

        Args:
            backend_id: Backend identifier
            status: New status
            error: Optional error message
        """
        with self._lock:
            backend = self._backends.get(backend_id)
            if backend is None:
                return
            self._backends[backend_id] = backend.model_copy(
                update={
                    "status": status,
                    "last_checked": datetime.now(),
                    "last_error": error if status == BackendStatus.UNREACHABLE else None,
                }
            )

    def list_all(self) -> list[Backend]:
        """List all registered backends ordered by id."""
        with self._lock:
            return sorted(self._backends.values(), key=lambda b: b.id)

    def list_available(self) -> list[Backend]:
        """List backends currently marked connected."""
        return [b for b in self.list_all() if b.is_available]

    def remove(self, backend_id: str) -> bool:
        """
        Remove a backend from the registry.

        Args:
            backend_id: Backend identifier

        Returns:
            True if the backend was removed, False if not found
        """
        with self._lock:
            return self._backends.pop(backend_id, None) is not None

    def clear(self) -> None:
        """Clear all backends from registry."""
        with self._lock:
            self._backends.clear()

    def get_status_summary(self) -> dict[str, int]:
        """
        Get summary of backend statuses.

        Returns:
            Dictionary mapping status to count
        """
        summary: dict[str, int] = {}
        for backend in self.list_all():
            status = backend.status.value
            summary[status] = summary.get(status, 0) + 1
        return summary
