"""Tool catalog, search, disclosure and execution for the MCP gateway."""

from .vectors import (
    normalize,
    cosine_similarity,
    embedding_to_blob,
    blob_to_embedding,
)
from .embeddings import (
    EmbeddingConfig,
    EmbeddingProvider,
    HashingEncoder,
    SentenceTransformerEncoder,
    load_encoder,
)
from .catalog import (
    CatalogFilter,
    CatalogStore,
    ToolMetadata,
    ToolRecord,
)
from .search import SearchHit, SearchIndex
from .transport import (
    BackendTransport,
    HttpTransport,
    StdioTransport,
    create_transport,
)
from .execution import BackendResult, ExecutionForwarder
from .ingest import CatalogIngestor, IngestReport, ToolListing
from .disclosure import DisclosureHandler, HealthReport, ToolSchemaView

__all__ = [
    # Vectors
    "normalize",
    "cosine_similarity",
    "embedding_to_blob",
    "blob_to_embedding",
    # Embeddings
    "EmbeddingConfig",
    "EmbeddingProvider",
    "HashingEncoder",
    "SentenceTransformerEncoder",
    "load_encoder",
    # Catalog
    "CatalogFilter",
    "CatalogStore",
    "ToolMetadata",
    "ToolRecord",
    # Search
    "SearchHit",
    "SearchIndex",
    # Transport
    "BackendTransport",
    "HttpTransport",
    "StdioTransport",
    "create_transport",
    # Execution
    "BackendResult",
    "ExecutionForwarder",
    # Ingestion
    "CatalogIngestor",
    "IngestReport",
    "ToolListing",
    # Disclosure
    "DisclosureHandler",
    "HealthReport",
    "ToolSchemaView",
]
