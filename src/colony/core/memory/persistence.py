"""Persistence collaborators for memory and cache snapshots.

:class:`PersistenceStore` defines the async storage protocol.
:class:`InMemoryPersistence` provides a dict-based implementation suitable
for testing and single-process deployments.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class PersistenceStore(Protocol):
    """Async key/value protocol for serialised snapshots."""

    async def load(self, key: str) -> bytes | None:
        """Return the bytes stored under *key*, or ``None`` if absent."""
        ...

    async def save(self, key: str, data: bytes) -> None:
        """Persist *data* under *key* (upsert semantics)."""
        ...

    async def delete(self, key: str) -> None:
        """Remove *key* (no-op if absent)."""
        ...

    async def exists(self, key: str) -> bool:
        """Return ``True`` if *key* is persisted."""
        ...


class InMemoryPersistence:
    """Dict-backed :class:`PersistenceStore`.

    Stores raw bytes, so every :meth:`load` hands back data that must be
    decoded into fresh objects, as a real backend would.
    """

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}

    async def load(self, key: str) -> bytes | None:
        return self._data.get(key)

    async def save(self, key: str, data: bytes) -> None:
        self._data[key] = bytes(data)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def exists(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> list[str]:
        return list(self._data)
