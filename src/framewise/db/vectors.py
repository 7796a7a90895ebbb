"""Embedding vector validation and sqlite-vec serialisation."""

from __future__ import annotations

import sqlite_vec

EMBEDDING_DIMENSIONS = 1536


def is_zero_vector(vector: list[float]) -> bool:
    """True if every component is 0 (cosine similarity is undefined)."""
    return not any(vector)


def check_vector(vector: list[float] | None, dimensions: int) -> None:
    """Raise ValueError unless *vector* is a non-zero vector of *dimensions* floats.

    Args:
        vector: Candidate embedding.
        dimensions: Required length (1536 for the production corpus).
    """
    if vector is None:
        raise ValueError("embedding is missing")
    if len(vector) != dimensions:
        raise ValueError(
            f"embedding has {len(vector)} dimensions, expected {dimensions}"
        )
    if is_zero_vector(vector):
        raise ValueError("embedding is a zero vector")


def serialize(vector: list[float]) -> bytes:
    """Pack *vector* as a float32 blob understood by sqlite-vec functions."""
    return sqlite_vec.serialize_float32(vector)
