"""Embedding providers and similarity helpers.

:class:`EmbeddingProvider` is the pluggable text-to-vector strategy used by
the memory store.  :class:`HashEmbeddingProvider` is a deterministic
bag-of-words hasher suitable for tests and offline use;
:class:`LiteLLMEmbeddingProvider` calls a real embedding model through
LiteLLM.
"""

from __future__ import annotations

import math
import zlib
from typing import Any, Protocol, runtime_checkable

import litellm


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Protocol for turning text into a dense vector."""

    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector for *text*."""
        ...


class HashEmbeddingProvider:
    """Deterministic hashed bag-of-words embedding.

    Each word adds ``1 / (position + 1)`` to bucket ``crc32(word) % dimensions``
    and the vector is L2-normalised.  Identical texts always map to identical
    vectors, across processes.
    """

    def __init__(self, dimensions: int = 256) -> None:
        self.dimensions = dimensions

    async def embed(self, text: str) -> list[float]:
        vector = [0.0] * self.dimensions
        for i, word in enumerate(_tokenize(text)):
            bucket = zlib.crc32(word.encode("utf-8")) % self.dimensions
            vector[bucket] += 1.0 / (i + 1)

        magnitude = math.sqrt(sum(v * v for v in vector))
        if magnitude == 0:
            return vector
        return [v / magnitude for v in vector]


class LiteLLMEmbeddingProvider:
    """Embedding provider backed by ``litellm.aembedding``.

    Usage::

        provider = LiteLLMEmbeddingProvider("openai/text-embedding-3-small")
        vector = await provider.embed("hello")
    """

    def __init__(self, model: str, **kwargs: Any) -> None:
        self.model = model
        self._kwargs = kwargs

    async def embed(self, text: str) -> list[float]:
        response = await litellm.aembedding(model=self.model, input=[text], **self._kwargs)  # pyright: ignore[reportUnknownMemberType]
        item: Any = response.data[0]
        vector = item["embedding"] if isinstance(item, dict) else item.embedding
        return [float(v) for v in vector]


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity of two vectors; ``0.0`` when either has no magnitude."""
    dot = 0.0
    mag_a = 0.0
    mag_b = 0.0
    for x, y in zip(a, b, strict=False):
        dot += x * y
        mag_a += x * x
        mag_b += y * y
    magnitude = math.sqrt(mag_a) * math.sqrt(mag_b)
    return 0.0 if magnitude == 0 else dot / magnitude


def keyword_similarity(query: str, content: str) -> float:
    """Fraction of distinct query words that also appear in *content*."""
    query_words = set(_tokenize(query))
    if not query_words:
        return 0.0
    content_words = set(_tokenize(content))
    return len(query_words & content_words) / len(query_words)


def _tokenize(text: str) -> list[str]:
    return text.lower().split()
