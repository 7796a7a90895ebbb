"""Shared pytest fixtures."""

from __future__ import annotations

import sys

import pytest
from loguru import logger

from framewise.db.connection import Database
from framewise.db.schema import initialize

# Keyword axes of the fake embedding space; the last dimension is "other".
KEYWORD_AXES = ("churn", "pricing")


def keyword_vector(text: str, dimensions: int = 3) -> list[float]:
    """Deterministic embedding: one axis per keyword, remaining weight on 'other'."""
    lower = text.lower()
    vector = [0.0] * dimensions
    for axis, keyword in enumerate(KEYWORD_AXES):
        vector[axis] = float(lower.count(keyword))
    if not any(vector):
        vector[-1] = 1.0
    return vector


class FakeEmbedder:
    """In-memory EmbeddingProvider. Records every call."""

    def __init__(self, dimensions: int = 3, error: Exception | None = None) -> None:
        self.dimensions = dimensions
        self.error = error
        self.calls: list[list[str]] = []
        self.timeouts: list[float | None] = []

    def embed(self, text: str, *, timeout: float | None = None) -> list[float]:
        self.timeouts.append(timeout)
        return self.embed_many([text])[0]

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.error is not None:
            raise self.error
        return [keyword_vector(t, self.dimensions) for t in texts]


class FakeCompleter:
    """In-memory CompletionProvider returning a canned answer."""

    def __init__(self, answer: str = "", error: Exception | None = None) -> None:
        self.answer = answer
        self.error = error
        self.calls: list[tuple[str, str, float | None]] = []

    def complete(self, instructions: str, input_text: str, *, timeout: float | None = None) -> str:
        self.calls.append((instructions, input_text, timeout))
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".framewise.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def fake_embedder():
    return FakeEmbedder(dimensions=3)


@pytest.fixture
def embedder_factory():
    return FakeEmbedder


@pytest.fixture
def completer_factory():
    return FakeCompleter


@pytest.fixture
def vector_for():
    return keyword_vector


@pytest.fixture
def log_messages():
    """Capture loguru output (message text) for the duration of a test."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture(autouse=True)
def _reset_loguru():
    """The CLI callback replaces loguru sinks; restore a plain stderr sink afterwards."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="WARNING")
