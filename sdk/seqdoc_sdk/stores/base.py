"""
Base protocols and errors for the stores used by SeqDoc SDK.

The SDK talks to two external services:
- DocumentStore: the search/storage engine that holds documents
- KeyValueStore: holds one integer counter per entity

Both are consumed only through the protocols below so that backends
(Elasticsearch, Redis, in-memory) are interchangeable.

Invariants:
    - Counter values cross the KeyValueStore boundary as strings
    - A missing key reads as None, never raises
    - DocumentStore.update with upsert=True creates the document if absent

How to change safely:
    - Protocol changes require updating all implementations
    - Add new methods as optional capabilities (see LockingKeyValueStore)
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol, runtime_checkable

# Elasticsearch default page size when a query sets no size
DEFAULT_PAGE_SIZE = 10


class StoreError(Exception):
    """Base exception for store operations."""

    pass


class StoreConnectionError(StoreError):
    """Connection to the store failed."""

    pass


class StoreTimeoutError(StoreError):
    """Store operation timed out."""

    pass


@runtime_checkable
class DocumentStore(Protocol):
    """Document store consumed by the SDK."""

    async def ping(self, timeout: float) -> None:
        """Check liveness; raise if not reachable within timeout seconds."""
        ...

    async def search(
        self,
        collection: str,
        kind: str,
        query: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Run a search and return the matching document sources."""
        ...

    async def update(
        self,
        collection: str,
        kind: str,
        doc_id: str,
        body: dict[str, Any],
        upsert: bool = True,
    ) -> str:
        """Update (or insert when upsert) a document; return its id."""
        ...

    async def delete(self, collection: str, kind: str, doc_id: str) -> bool:
        """Delete a document; return False if it did not exist."""
        ...

    async def close(self) -> None:
        """Release connections."""
        ...


@runtime_checkable
class KeyValueStore(Protocol):
    """Scalar key-value store holding sequence counters."""

    async def init(self) -> None:
        """Prepare backing storage."""
        ...

    async def get(self, key: str) -> str | None:
        """Get a value, None if absent."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Set a value."""
        ...

    async def close(self) -> None:
        """Release connections."""
        ...


@runtime_checkable
class LockingKeyValueStore(KeyValueStore, Protocol):
    """Key-value store that can hold an advisory lock per key.

    The allocator uses it to serialise counter read-modify-write across
    processes.
    """

    def lock(self, key: str) -> AbstractAsyncContextManager[Any]:
        """Return an async context manager holding the lock for key."""
        ...
