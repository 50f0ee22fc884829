"""Bounded TTL response cache with FIFO eviction.

When full, the oldest-*inserted* entry is dropped.  Reads do not refresh an
entry's position, so this is deliberately not an LRU.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable

from pydantic import BaseModel

from colony.core.inference.models import InferenceRequest, InferenceResponse


class CacheEntry(BaseModel):
    key: str
    value: InferenceResponse
    inserted_at: float
    ttl: float


class CacheSnapshot(BaseModel):
    entries: list[CacheEntry] = []


def cache_key(request: InferenceRequest) -> str:
    """Deterministic key over the sampling-relevant request fields."""
    return json.dumps(
        {
            "prompt": request.prompt,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "top_k": request.top_k,
            "top_p": request.top_p,
        },
        sort_keys=True,
    )


class ResponseCache:
    """Maps cache keys to responses for at most *ttl* seconds.

    *clock* returns wall-clock seconds so exported entries keep their age
    when loaded into another process.
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl: float = 300.0,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_size = max_size
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> InferenceResponse | None:
        """Return the cached response, or ``None`` if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.inserted_at >= entry.ttl:
            del self._entries[key]
            return None
        return entry.value

    def put(self, key: str, value: InferenceResponse) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
        self._entries[key] = CacheEntry(key=key, value=value, inserted_at=self._clock(), ttl=self.ttl)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        """Keys in insertion order (oldest first)."""
        return list(self._entries)

    def export(self) -> bytes:
        return CacheSnapshot(entries=list(self._entries.values())).model_dump_json().encode()

    def load(self, data: bytes) -> int:
        """Replace contents with an exported snapshot; returns the entry count.

        Only the newest ``max_size`` entries are kept.
        """
        entries = CacheSnapshot.model_validate_json(data).entries
        self._entries = {e.key: e for e in entries[-self.max_size :]}
        return len(self._entries)
