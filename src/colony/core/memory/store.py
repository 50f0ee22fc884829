"""MemoryStore — capacity-bounded, similarity-searchable record store.

Records are scored for retrieval by embedding similarity (or keyword
overlap when embeddings are disabled) plus small recency and popularity
boosts.  When the store is full, the lowest-scoring fraction of records is
evicted *before* the new record is inserted, so ``len(store)`` never exceeds
``max_memories`` after a :meth:`MemoryStore.store` call.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, NamedTuple
from uuid import uuid4

from colony.core.memory.embedding import (
    EmbeddingProvider,
    HashEmbeddingProvider,
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
from colony.runtime.errors import NotFoundError, ValidationError
from colony.utils.telemetry import ATTR_MEMORY_CONSOLIDATED, ATTR_MEMORY_RESULTS, get_tracer

if TYPE_CHECKING:
    from colony.core.memory.persistence import PersistenceStore

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

_SECONDS_PER_DAY = 86400.0
_RECENCY_WEIGHT = 0.1
_ACCESS_WEIGHT = 0.05
_EVICTION_HORIZON_DAYS = 30.0
_MERGE_SEPARATOR = "\n---\n"
_UPDATABLE_FIELDS = {"type", "content", "metadata", "relevance_score"}

DEFAULT_SNAPSHOT_KEY = "memory"


class ScoredMemory(NamedTuple):
    record: MemoryRecord
    score: float


class MemoryStore:
    """Associative memory with similarity search and capacity eviction.

    Usage::

        store = MemoryStore(MemoryConfig(max_memories=500))
        await store.store(MemoryInput(type=MemoryType.FACT, content="..."))
        hits = await store.retrieve("what do we know about X?", limit=3)
    """

    def __init__(
        self,
        config: MemoryConfig | None = None,
        embedder: EmbeddingProvider | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or MemoryConfig()
        self._embedder = embedder or HashEmbeddingProvider()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._records: dict[str, MemoryRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, memory_id: object) -> bool:
        return memory_id in self._records

    # ------------------------------------------------------------------
    # Insert / read / mutate
    # ------------------------------------------------------------------

    async def store(self, memory: MemoryInput) -> MemoryRecord:
        """Insert a new record, evicting low-value records first if full."""
        record = MemoryRecord(
            id=f"mem_{uuid4().hex[:12]}",
            type=memory.type,
            content=memory.content,
            metadata=memory.metadata.model_copy(deep=True),
            relevance_score=memory.relevance_score,
            timestamp=self._clock(),
            access_count=0,
        )

        if self.config.enabled:
            record.embedding = await self._embedder.embed(record.content)

        if len(self._records) >= self.config.max_memories:
            self._evict_least_relevant()

        self._records[record.id] = record
        return record.model_copy(deep=True)

    async def retrieve(self, query: str, limit: int = 5) -> list[MemoryRecord]:
        """Return up to *limit* records, best first.

        Each returned record has its ``access_count`` incremented.
        """
        return [hit.record for hit in await self.retrieve_scored(query, limit)]

    async def retrieve_scored(self, query: str, limit: int = 5) -> list[ScoredMemory]:
        """Like :meth:`retrieve` but also returns each record's score."""
        if limit < 0:
            raise ValidationError("limit must be non-negative", field="limit")

        with _tracer.start_as_current_span("memory.retrieve") as span:
            if limit == 0 or not self._records:
                span.set_attribute(ATTR_MEMORY_RESULTS, 0)
                return []

            query_embedding = await self._embedder.embed(query) if self.config.enabled else None
            now = self._clock()

            scored: list[ScoredMemory] = []
            for record in self._records.values():
                if query_embedding is not None and record.embedding is not None:
                    similarity = cosine_similarity(query_embedding, record.embedding)
                else:
                    similarity = keyword_similarity(query, record.content)
                recency_boost = 1.0 / (1.0 + self._age_days(record, now))
                access_boost = math.log(record.access_count + 1)
                score = similarity + _RECENCY_WEIGHT * recency_boost + _ACCESS_WEIGHT * access_boost
                scored.append(ScoredMemory(record, score))

            scored.sort(key=lambda hit: hit.score, reverse=True)

            results: list[ScoredMemory] = []
            for hit in scored[:limit]:
                hit.record.access_count += 1
                results.append(ScoredMemory(hit.record.model_copy(deep=True), hit.score))

            span.set_attribute(ATTR_MEMORY_RESULTS, len(results))
            return results

    def get(self, memory_id: str) -> MemoryRecord:
        """Return a copy of the record, without touching its access count."""
        record = self._records.get(memory_id)
        if record is None:
            raise NotFoundError("memory", memory_id)
        return record.model_copy(deep=True)

    def get_by_type(self, memory_type: MemoryType) -> list[MemoryRecord]:
        return [r.model_copy(deep=True) for r in self._records.values() if r.type == memory_type]

    def get_by_tags(self, tags: list[str]) -> list[MemoryRecord]:
        """Records carrying at least one of *tags*."""
        wanted = set(tags)
        return [
            r.model_copy(deep=True)
            for r in self._records.values()
            if wanted.intersection(r.metadata.tags)
        ]

    async def update(self, memory_id: str, **changes: Any) -> MemoryRecord:
        """Apply *changes* to a record; re-embeds when the content changes."""
        record = self._records.get(memory_id)
        if record is None:
            raise NotFoundError("memory", memory_id)

        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"cannot update {sorted(unknown)}", field="changes")

        updated = MemoryRecord.model_validate({**record.model_dump(), **changes})
        if "content" in changes and self.config.enabled:
            updated.embedding = await self._embedder.embed(updated.content)

        self._records[memory_id] = updated
        return updated.model_copy(deep=True)

    def delete(self, memory_id: str) -> bool:
        return self._records.pop(memory_id, None) is not None

    # ------------------------------------------------------------------
    # Consolidation
    # ------------------------------------------------------------------

    async def consolidate(self) -> int:
        """Merge clusters of near-duplicate records.

        Greedy single pass: each unassigned record absorbs every other
        unassigned record whose cosine similarity to it exceeds the
        threshold.  Clusters with more than two members are merged into one
        new record and the originals are deleted.  The clustering is not
        transitive, so results depend on insertion order.

        Returns the number of records removed by merging.
        """
        with _tracer.start_as_current_span("memory.consolidate") as span:
            consolidated = 0
            for cluster in self._cluster():
                if len(cluster) <= 2:
                    continue
                merged = _merge(cluster)
                for member in cluster:
                    self.delete(member.id)
                await self.store(merged)
                consolidated += len(cluster) - 1

            span.set_attribute(ATTR_MEMORY_CONSOLIDATED, consolidated)
            if consolidated:
                logger.debug("Consolidated %d memories", consolidated)
            return consolidated

    def _cluster(self) -> list[list[MemoryRecord]]:
        records = list(self._records.values())
        assigned: set[str] = set()
        clusters: list[list[MemoryRecord]] = []

        for record in records:
            if record.id in assigned:
                continue
            cluster = [record]
            assigned.add(record.id)

            if record.embedding is not None:
                for other in records:
                    if other.id in assigned or other.embedding is None:
                        continue
                    similarity = cosine_similarity(record.embedding, other.embedding)
                    if similarity > self.config.similarity_threshold:
                        cluster.append(other)
                        assigned.add(other.id)

            clusters.append(cluster)
        return clusters

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export(self) -> list[MemoryRecord]:
        return [r.model_copy(deep=True) for r in self._records.values()]

    def import_records(self, records: list[MemoryRecord]) -> int:
        """Load records verbatim (ids and timestamps preserved).

        If the import pushes the store over capacity, eviction runs until it
        fits again.  Returns the resulting store size.
        """
        for record in records:
            self._records[record.id] = record.model_copy(deep=True)
        while len(self._records) > self.config.max_memories:
            self._evict_least_relevant()
        return len(self._records)

    def snapshot(self) -> bytes:
        """Serialise all records to JSON bytes."""
        return MemorySnapshot(records=list(self._records.values())).model_dump_json().encode()

    def load_snapshot(self, data: bytes) -> int:
        """Import records from bytes produced by :meth:`snapshot`."""
        return self.import_records(MemorySnapshot.model_validate_json(data).records)

    async def persist(self, persistence: PersistenceStore, key: str = DEFAULT_SNAPSHOT_KEY) -> None:
        await persistence.save(key, self.snapshot())

    async def restore(self, persistence: PersistenceStore, key: str = DEFAULT_SNAPSHOT_KEY) -> int:
        """Import a persisted snapshot; returns the store size (unchanged if absent)."""
        data = await persistence.load(key)
        if data is None:
            return len(self._records)
        return self.load_snapshot(data)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def stats(self) -> MemoryStats:
        records = list(self._records.values())
        if not records:
            return MemoryStats()

        by_type = Counter(r.type.value for r in records)
        return MemoryStats(
            total=len(records),
            by_type=dict(by_type),
            avg_confidence=sum(r.metadata.confidence for r in records) / len(records),
            avg_relevance=sum(r.relevance_score for r in records) / len(records),
            oldest=min(r.timestamp for r in records),
            newest=max(r.timestamp for r in records),
        )

    # ------------------------------------------------------------------
    # Eviction
    # ------------------------------------------------------------------

    def eviction_score(self, record: MemoryRecord, now: datetime | None = None) -> float:
        """Retention value of *record*; the lowest scores are evicted first."""
        age_days = self._age_days(record, now or self._clock())
        freshness = max(0.0, 1.0 - age_days / _EVICTION_HORIZON_DAYS)
        return 0.5 * record.relevance_score + 0.3 * (record.access_count / 100) + 0.2 * freshness

    def _evict_least_relevant(self) -> None:
        if not self._records:
            return
        now = self._clock()
        ranked = sorted(self._records.values(), key=lambda r: self.eviction_score(r, now))
        count = max(1, math.ceil(len(ranked) * self.config.eviction_fraction))
        for record in ranked[:count]:
            del self._records[record.id]
        logger.debug("Evicted %d memories (store size now %d)", count, len(self._records))

    @staticmethod
    def _age_days(record: MemoryRecord, now: datetime) -> float:
        return max(0.0, (now - record.timestamp).total_seconds() / _SECONDS_PER_DAY)


def _merge(cluster: list[MemoryRecord]) -> MemoryInput:
    """Combine a cluster into a single consolidated memory."""
    tags: dict[str, None] = {}
    related: dict[str, None] = {}
    context: list[str] = []
    for record in cluster:
        tags.update(dict.fromkeys(record.metadata.tags))
        related.update(dict.fromkeys(record.metadata.related_ids))
        context.extend(record.metadata.context)

    return MemoryInput(
        type=cluster[0].type,
        content=_MERGE_SEPARATOR.join(r.content for r in cluster),
        metadata=MemoryMetadata(
            source="consolidation",
            context=context,
            tags=list(tags),
            related_ids=list(related),
            confidence=sum(r.metadata.confidence for r in cluster) / len(cluster),
        ),
        relevance_score=max(r.relevance_score for r in cluster),
    )
