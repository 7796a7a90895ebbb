"""LiteLLM-backed embedding and completion providers.

Components never call LiteLLM directly; they receive a provider at
construction time (``EmbeddingProvider`` / ``CompletionProvider``) so tests
can inject fakes and missing credentials surface where the provider is built.

Retry policy is the caller's concern: request-path providers are built with
``num_retries=0`` and a short timeout, the ingestion Embed stage retries rate
limits itself. LiteLLM's ``RateLimitError`` is translated into
``RateLimitedError`` so nothing outside this module depends on LiteLLM types.
"""

from __future__ import annotations

import os
from typing import Protocol

import litellm

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]

# Embedding input ceiling (characters), keeps requests under model token limits.
MAX_EMBED_CHARS = 8000


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "google": "GOOGLE_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "together_ai": "TOGETHERAI_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


class RateLimitedError(RuntimeError):
    """The provider rejected a request because of rate limiting."""


class EmbeddingProvider(Protocol):
    """Text → fixed-length dense vector."""

    def embed(self, text: str, *, timeout: float | None = None) -> list[float]:
        ...

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        ...


class CompletionProvider(Protocol):
    """Instructions + input text → completion text."""

    def complete(
        self, instructions: str, input_text: str, *, timeout: float | None = None
    ) -> str:
        ...


def provider_of(model: str) -> str:
    """Return the provider prefix of a 'provider/model' string ('openai' if absent)."""
    return model.split("/")[0].lower() if "/" in model else "openai"


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = provider_of(model)
    env_var = _PROVIDER_ENV.get(provider, f"{provider.upper()}_API_KEY")

    if env_var is None:
        return  # No key required (e.g. ollama)

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


class LiteLLMEmbedder:
    """Embedding provider backed by ``litellm.embedding()``.

    Args:
        model: LiteLLM embedding model string (provider/model format).
        dimensions: Requested output dimensionality (1536 for the corpus).
        num_retries: LiteLLM-level retries on transient errors (0 = fail fast).
    """

    def __init__(
        self,
        model: str = "openai/text-embedding-3-small",
        dimensions: int = 1536,
        num_retries: int = 0,
    ) -> None:
        self.model = model
        self.dimensions = dimensions
        self.num_retries = num_retries

    def embed(self, text: str, *, timeout: float | None = None) -> list[float]:
        """Embed a single text and return its vector."""
        return self._call([text], timeout=timeout)[0]

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in one request; vectors are returned in input order."""
        if not texts:
            return []
        return self._call(texts)

    def _call(self, texts: list[str], timeout: float | None = None) -> list[list[float]]:
        kwargs: dict = {
            "model": self.model,
            "input": texts,
            "dimensions": self.dimensions,
            "num_retries": self.num_retries,
        }
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            response = litellm.embedding(**kwargs)
        except litellm.RateLimitError as exc:
            raise RateLimitedError(str(exc)) from exc
        return [item["embedding"] for item in response.data]


class LiteLLMCompleter:
    """Completion provider backed by ``litellm.completion()``.

    The instructions go into the system message and the input text into the
    user message. Temperature is fixed at 0 for JSON-producing prompts.
    """

    def __init__(
        self,
        model: str = "anthropic/claude-3-5-haiku-20241022",
        max_tokens: int = 1024,
        num_retries: int = 0,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.num_retries = num_retries

    def complete(
        self, instructions: str, input_text: str, *, timeout: float | None = None
    ) -> str:
        """Return the text content of the first choice ('' if empty)."""
        kwargs: dict = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": instructions},
                {"role": "user", "content": input_text},
            ],
            "max_tokens": self.max_tokens,
            "temperature": 0.0,
            "num_retries": self.num_retries,
        }
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            response = litellm.completion(**kwargs)
        except litellm.RateLimitError as exc:
            raise RateLimitedError(str(exc)) from exc
        return response.choices[0].message.content or ""
