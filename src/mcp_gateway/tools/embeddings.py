"""Embedding provider for semantic tool search.

The provider wraps an encoder (sentence-transformers by default) behind a
stable async contract: ``embed(text)`` returns a unit-normalized vector of
the configured dimension.

Model: all-MiniLM-L6-v2 (384 dimensions)
- Fast inference
- Good quality for semantic similarity
- Small memory footprint

The model is loaded lazily on first use. Concurrent first callers share a
single load task, so the model is loaded exactly once; if loading fails,
every waiting caller receives ``EmbeddingUnavailableError`` and the next
call starts a fresh attempt.
"""

from __future__ import annotations

import asyncio
import hashlib
import re
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, Literal, Protocol

from loguru import logger
from pydantic import BaseModel, Field, field_validator

from ..errors import EmbeddingGenerationError, EmbeddingUnavailableError
from .vectors import normalize

if TYPE_CHECKING:
    from sentence_transformers import SentenceTransformer


class EmbeddingConfig(BaseModel):
    """Configuration for embedding generation.

    Attributes:
        backend: Encoder implementation to load
        model_name: Name of the sentence-transformers model to use
        dimension: Dimension of the output embeddings
        max_seq_length: Maximum sequence length for input text
    """

    backend: Literal["sentence-transformers", "hashing"] = Field(
        default="sentence-transformers",
        description="Encoder backend: sentence-transformers or offline hashing"
    )
    model_name: str = Field(
        default="all-MiniLM-L6-v2",
        description="Sentence-transformers model name"
    )
    dimension: int = Field(
        default=384,
        ge=1,
        description="Dimension of output embeddings"
    )
    max_seq_length: int = Field(
        default=256,
        ge=1,
        le=8192,
        description="Maximum sequence length for input text"
    )

    @field_validator("model_name")
    @classmethod
    def validate_model_name(cls, v: str) -> str:
        """Validate that model name is not empty."""
        if not v or not v.strip():
            raise ValueError("Model name cannot be empty")
        return v.strip()


class Encoder(Protocol):
    """Anything that turns one text into a vector."""

    def encode(self, text: str) -> Sequence[float]: ...


class SentenceTransformerEncoder:
    """Encoder backed by a sentence-transformers model."""

    def __init__(self, config: EmbeddingConfig) -> None:
        # Import here to avoid import-time dependency on torch
        from sentence_transformers import SentenceTransformer

        logger.info("Loading sentence-transformers model: {}", config.model_name)
        self._model: SentenceTransformer = SentenceTransformer(config.model_name)
        self._model.max_seq_length = config.max_seq_length

        actual = self._model.get_sentence_embedding_dimension()
        if actual != config.dimension:
            raise ValueError(
                f"Model '{config.model_name}' produces {actual}-dim vectors, "
                f"configured dimension is {config.dimension}"
            )
        logger.info("Model '{}' loaded successfully (dim={})", config.model_name, actual)

    def encode(self, text: str) -> list[float]:
        embedding = self._model.encode(
            text,
            normalize_embeddings=True,
            show_progress_bar=False,
        )
        return embedding.tolist()


class HashingEncoder:
    """Deterministic token-hashing encoder.

    Lightweight and offline: each token is hashed into one of ``dimension``
    buckets weighted by term frequency. No semantic understanding beyond
    shared vocabulary, but stable across processes and model-free.
    """

    _TOKEN_RE = re.compile(r"[a-z0-9]+")

    def __init__(self, dimension: int = 384) -> None:
        self.dimension = dimension

    def encode(self, text: str) -> list[float]:
        tokens = self._tokenize(text)
        embedding = [0.0] * self.dimension
        if not tokens:
            return embedding

        weight = 1.0 / len(tokens)
        for token in tokens:
            token_hash = int(hashlib.md5(token.encode()).hexdigest(), 16)
            embedding[token_hash % self.dimension] += weight
        return embedding

    def _tokenize(self, text: str) -> list[str]:
        # Underscores split too, so "read_file" yields "read" and "file"
        tokens = self._TOKEN_RE.findall(text.lower())
        return [t for t in tokens if len(t) > 1]


def load_encoder(config: EmbeddingConfig) -> Encoder:
    """Build the encoder selected by ``config.backend``."""
    if config.backend == "hashing":
        return HashingEncoder(config.dimension)
    return SentenceTransformerEncoder(config)


class EmbeddingProvider:
    """Text to unit-vector embeddings with guarded lazy initialization.

    Example:
        ```python
        provider = EmbeddingProvider(EmbeddingConfig())

        vector = await provider.embed("search for files")
        print(len(vector))  # 384
        ```

    Attributes:
        config: Embedding configuration
        load_count: Number of load attempts started so far
    """

    def __init__(
        self,
        config: EmbeddingConfig | None = None,
        *,
        loader: Callable[[EmbeddingConfig], Encoder] | None = None,
    ) -> None:
        """Initialize embedding provider.

        Args:
            config: Embedding configuration (uses defaults if not provided)
            loader: Encoder factory, called at most once per successful load
        """
        self.config = config or EmbeddingConfig()
        self._loader = loader or load_encoder
        self._encoder: Encoder | None = None
        self._load_task: asyncio.Task[Encoder] | None = None
        self.load_count = 0

        logger.debug(
            "EmbeddingProvider initialized with backend={}, model={}, dim={}",
            self.config.backend,
            self.config.model_name,
            self.config.dimension,
        )

    @property
    def dimension(self) -> int:
        """Declared embedding dimension."""
        return self.config.dimension

    @property
    def is_ready(self) -> bool:
        """Check if the encoder is loaded."""
        return self._encoder is not None

    async def preload(self) -> None:
        """Load the encoder ahead of the first request.

        Raises:
            EmbeddingUnavailableError: If loading fails
        """
        await self._ensure_loaded()

    async def _ensure_loaded(self) -> Encoder:
        if self._encoder is not None:
            return self._encoder

        # No await between the check and the assignment, so concurrent
        # callers on the loop always find the same task
        if self._load_task is None:
            self._load_task = asyncio.ensure_future(self._load())

        # Shielded: one caller giving up must not cancel the shared load
        return await asyncio.shield(self._load_task)

    async def _load(self) -> Encoder:
        self.load_count += 1
        try:
            encoder = await asyncio.to_thread(self._loader, self.config)
        except ImportError as e:
            self._load_task = None
            logger.error("sentence-transformers not installed: {}", e)
            raise EmbeddingUnavailableError(
                "sentence-transformers package not installed. "
                "Install with: pip install sentence-transformers"
            ) from e
        except Exception as e:
            self._load_task = None
            logger.error("Failed to load embedding model '{}': {}", self.config.model_name, e)
            raise EmbeddingUnavailableError(
                f"Failed to load embedding model '{self.config.model_name}': {e}"
            ) from e

        self._encoder = encoder
        logger.info("Embedding provider ready (dim={})", self.config.dimension)
        return encoder

    async def embed(self, text: str) -> list[float]:
        """Generate a unit-normalized embedding for a single text.

        Args:
            text: Input text to encode

        Returns:
            List of floats with Euclidean norm 1 and length ``dimension``

        Raises:
            EmbeddingUnavailableError: If the encoder cannot be loaded
            EmbeddingGenerationError: If this text cannot be encoded
        """
        if not isinstance(text, str) or not text.strip():
            raise EmbeddingGenerationError("Text cannot be empty")

        encoder = await self._ensure_loaded()

        try:
            raw: Any = await asyncio.to_thread(encoder.encode, text)
            vector = normalize([float(x) for x in raw])
        except Exception as e:
            logger.warning("Failed to generate embedding for '{}': {}", text[:50], e)
            raise EmbeddingGenerationError(f"Failed to generate embedding: {e}") from e

        if len(vector) != self.config.dimension:
            raise EmbeddingGenerationError(
                f"Encoder returned {len(vector)} dimensions, expected {self.config.dimension}"
            )

        logger.debug("Generated embedding for text: '{}'", text[:30])
        return vector
