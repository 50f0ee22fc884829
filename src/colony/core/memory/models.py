"""Memory data models — records, metadata, configuration, and statistics."""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class MemoryType(str, Enum):
    FACT = "fact"
    SOLUTION = "solution"
    INSTRUCTION = "instruction"
    EXPERIENCE = "experience"
    CODE = "code"


class MemoryMetadata(BaseModel):
    """Provenance and linkage for a memory record."""

    source: str = "unknown"
    context: list[str] = []
    tags: list[str] = []
    related_ids: list[str] = []
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class MemoryInput(BaseModel):
    """The caller-supplied part of a record; the store fills in the rest."""

    type: MemoryType = MemoryType.FACT
    content: str
    metadata: MemoryMetadata = Field(default_factory=MemoryMetadata)
    relevance_score: float = 0.5


class MemoryRecord(MemoryInput):
    """A stored memory.

    ``access_count`` is bumped every time the record is returned by a
    retrieval; ``embedding`` is ``None`` when embeddings are disabled.
    """

    id: str = Field(default_factory=lambda: f"mem_{uuid4().hex[:12]}")
    embedding: list[float] | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    access_count: int = 0


class MemoryConfig(BaseModel):
    """Configuration for :class:`~colony.core.memory.store.MemoryStore`."""

    enabled: bool = Field(default=True, description="Compute embeddings for stored records.")
    max_memories: int = Field(default=1000, ge=1)
    eviction_fraction: float = Field(default=0.1, gt=0.0, le=1.0)
    similarity_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Cosine similarity above which records cluster during consolidation.",
    )


class MemoryStats(BaseModel):
    total: int = 0
    by_type: dict[str, int] = {}
    avg_confidence: float = 0.0
    avg_relevance: float = 0.0
    oldest: datetime | None = None
    newest: datetime | None = None


class MemorySnapshot(BaseModel):
    """Serialisable dump of a store, handed to the persistence collaborator."""

    records: list[MemoryRecord] = []
