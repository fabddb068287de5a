"""Exception hierarchy for the MCP gateway.

Every error carries a ``to_dict()`` body so the HTTP and MCP surfaces can
return a structured ``{"error": ..., "type": ...}`` object instead of a
partial success.
"""

from __future__ import annotations

from typing import Any


class GatewayError(Exception):
    """Base exception for all gateway errors."""

    status_code: int = 500

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        """Convert to a structured error body."""
        body: dict[str, Any] = {"error": self.message, "type": type(self).__name__}
        body.update({k: v for k, v in self.detail.items() if v is not None})
        return body


class ValidationError(GatewayError):
    """Raised when input to an operation is malformed."""

    status_code = 400


class InvalidArgumentError(ValidationError):
    """Raised when an argument is out of its accepted range."""


class NotFoundError(GatewayError):
    """Raised when a tool or backend does not exist."""

    status_code = 404


class ToolNotFoundError(NotFoundError):
    """Raised when a tool name is unknown to the catalog."""

    def __init__(self, name: str) -> None:
        super().__init__("not found", tool=name)
        self.name = name


class BackendNotFoundError(NotFoundError):
    """Raised when a backend id is not registered."""

    def __init__(self, backend_id: str) -> None:
        super().__init__(f"Backend '{backend_id}' not found", backendId=backend_id)
        self.backend_id = backend_id


class EmbeddingError(GatewayError):
    """Base exception for embedding provider errors."""


class EmbeddingUnavailableError(EmbeddingError):
    """Raised when the embedding model cannot be loaded."""

    status_code = 503


class EmbeddingGenerationError(EmbeddingError):
    """Raised when encoding a single text fails."""

    status_code = 500


class VectorError(GatewayError):
    """Base exception for vector integrity errors."""


class DimensionMismatchError(VectorError):
    """Raised when two vectors have different lengths."""


class DegenerateVectorError(VectorError):
    """Raised when a vector has zero norm."""


class CatalogError(GatewayError):
    """Raised when the catalog storage fails."""


class ExecutionError(GatewayError):
    """Base exception for the execution path."""

    def __init__(self, message: str, backend_id: str | None = None, **detail: Any) -> None:
        super().__init__(message, backendId=backend_id, **detail)
        self.backend_id = backend_id


class BackendUnavailableError(ExecutionError):
    """Raised when a backend is unregistered or marked unreachable."""

    status_code = 503


class ForwardingError(ExecutionError):
    """Raised when the transport to a backend fails.

    The original exception is available as ``__cause__``.
    """

    status_code = 502
