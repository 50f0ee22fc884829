"""Associative memory — capacity-bounded, similarity-searchable record store."""

from colony.core.memory.embedding import (
    EmbeddingProvider,
    HashEmbeddingProvider,
    LiteLLMEmbeddingProvider,
    cosine_similarity,
    keyword_similarity,
)
from colony.core.memory.models import (
    MemoryConfig,
    MemoryInput,
    MemoryMetadata,
    MemoryRecord,
    MemorySnapshot,
    MemoryStats,
    MemoryType,
)
from colony.core.memory.persistence import InMemoryPersistence, PersistenceStore
from colony.core.memory.store import MemoryStore, ScoredMemory

__all__ = [
    "EmbeddingProvider",
    "HashEmbeddingProvider",
    "InMemoryPersistence",
    "LiteLLMEmbeddingProvider",
    "MemoryConfig",
    "MemoryInput",
    "MemoryMetadata",
    "MemoryRecord",
    "MemorySnapshot",
    "MemoryStats",
    "MemoryStore",
    "MemoryType",
    "PersistenceStore",
    "ScoredMemory",
    "cosine_similarity",
    "keyword_similarity",
]
