"""Fixed-length vector math for embedding search.

Pure functions, no I/O. Embeddings are stored as packed float32 BLOBs in
DuckDB, so the packing helpers live here as well.
"""

from __future__ import annotations

import math
import struct
from collections.abc import Sequence

from ..errors import DegenerateVectorError, DimensionMismatchError


def norm(vector: Sequence[float]) -> float:
    """Euclidean norm of a vector."""
    return math.sqrt(sum(x * x for x in vector))


def normalize(vector: Sequence[float]) -> list[float]:
    """Scale a vector to unit length.

    Args:
        vector: Input vector

    Returns:
        New list with Euclidean norm 1

    Raises:
        DegenerateVectorError: If the vector is empty or has zero norm
    """
    magnitude = norm(vector)
    if magnitude == 0.0:
        raise DegenerateVectorError("Cannot normalize a zero-norm vector")
    return [x / magnitude for x in vector]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Calculate cosine similarity between two vectors.

    Args:
        a: First vector
        b: Second vector

    Returns:
        Similarity in [-1, 1], higher is more similar

    Raises:
        DimensionMismatchError: If the vectors have different lengths
        DegenerateVectorError: If either vector has zero norm

    Example:
        ```python
        score = cosine_similarity([1.0, 0.0], [0.6, 0.8])
        print(f"Similarity: {score:.4f}")  # 0.6000
        ```
    """
    if len(a) != len(b):
        raise DimensionMismatchError(
            f"Embedding dimensions must match: {len(a)} != {len(b)}"
        )

    norm_a = norm(a)
    norm_b = norm(b)
    if norm_a == 0.0 or norm_b == 0.0:
        raise DegenerateVectorError("Cosine similarity is undefined for zero-norm vectors")

    dot = sum(x * y for x, y in zip(a, b))
    # float error can push |dot| slightly past 1 for parallel vectors
    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))


def embedding_to_blob(embedding: Sequence[float]) -> bytes:
    """Pack an embedding as float32 bytes for BLOB storage."""
    return struct.pack(f"{len(embedding)}f", *embedding)


def blob_to_embedding(blob: bytes) -> list[float]:
    """Unpack float32 BLOB bytes back into an embedding list."""
    num_floats = len(blob) // 4
    return list(struct.unpack(f"{num_floats}f", blob[: num_floats * 4]))
