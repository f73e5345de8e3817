"""
In-memory store implementations for testing.

This module provides in-memory backends for:
- Unit tests
- Integration tests
- Local development and the demo without Elasticsearch or Redis

Invariants:
    - All data is lost on process exit
    - Every call yields to the event loop once, like a network round trip
    - Same semantics as the production backends (upsert, missing key -> None)

How to change safely:
    - This is test-only code, changes don't affect production
    - Keep interface compatible with the DocumentStore/KeyValueStore protocols
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections import defaultdict
from typing import Any

from .base import DEFAULT_PAGE_SIZE, StoreConnectionError, StoreError, StoreTimeoutError

logger = logging.getLogger(__name__)


class _FailureInjection:
    """Mixin letting tests make the next call fail."""

    def __init__(self) -> None:
        self._failures: list[Exception] = []

    def inject_failure(self, exception: Exception) -> None:
        """Make the next store operation raise this exception."""
        self._failures.append(exception)

    async def _round_trip(self) -> None:
        await asyncio.sleep(0)
        if self._failures:
            raise self._failures.pop(0)


class InMemoryDocumentStore(_FailureInjection):
    """In-memory implementation of DocumentStore.

    Documents are kept per (collection, kind) keyed by id.

    Example:
        >>> store = InMemoryDocumentStore()
        >>> await store.update("orders", "order", "1", {"a": 1})
        '1'
        >>> store.get_document("orders", "order", "1")
        {'a': 1}
    """

    def __init__(self, reachable: bool = True, ping_delay: float = 0.0) -> None:
        """Initialize in-memory document store.

        Args:
            reachable: Whether ping succeeds
            ping_delay: Seconds ping takes to answer
        """
        super().__init__()
        self.reachable = reachable
        self.ping_delay = ping_delay
        self._documents: dict[tuple[str, str], dict[str, dict[str, Any]]] = defaultdict(dict)
        self.searches: list[dict[str, Any]] = []

    async def ping(self, timeout: float) -> None:
        """Answer the liveness probe."""
        if self.ping_delay > timeout:
            await asyncio.sleep(timeout)
            raise StoreTimeoutError(f"Ping timed out after {timeout}s")
        await asyncio.sleep(self.ping_delay)
        await self._round_trip()
        if not self.reachable:
            raise StoreConnectionError("In-memory document store is unreachable")
        logger.debug("InMemoryDocumentStore pinged")

    async def search(
        self,
        collection: str,
        kind: str,
        query: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Return sources matching a ``term`` filter (or all), paged by size/from."""
        await self._round_trip()
        self.searches.append(query)

        docs = list(self._documents.get((collection, kind), {}).values())
        term = (query.get("query") or {}).get("term") or {}
        for name, expected in term.items():
            if isinstance(expected, dict):
                expected = expected.get("value")
            docs = [d for d in docs if d.get(name) == expected]

        start = int(query.get("from", 0))
        size = int(query.get("size", DEFAULT_PAGE_SIZE))
        return [copy.deepcopy(d) for d in docs[start : start + size]]

    async def update(
        self,
        collection: str,
        kind: str,
        doc_id: str,
        body: dict[str, Any],
        upsert: bool = True,
    ) -> str:
        """Merge body into the document, creating it when upsert is set."""
        await self._round_trip()
        docs = self._documents[(collection, kind)]
        doc_id = str(doc_id)
        if doc_id not in docs:
            if not upsert:
                raise StoreError(f"Document {collection}/{kind}/{doc_id} not found")
            docs[doc_id] = {}
        docs[doc_id].update(copy.deepcopy(body))
        logger.debug(
            "Document written to in-memory store",
            extra={"collection": collection, "kind": kind, "doc_id": doc_id},
        )
        return doc_id

    async def delete(self, collection: str, kind: str, doc_id: str) -> bool:
        """Delete a document; False if absent."""
        await self._round_trip()
        return self._documents[(collection, kind)].pop(str(doc_id), None) is not None

    async def close(self) -> None:
        """Nothing to release."""
        logger.debug("InMemoryDocumentStore closed")

    # Testing helpers

    def get_document(self, collection: str, kind: str, doc_id: Any) -> dict[str, Any] | None:
        """Get a stored document (testing helper)."""
        doc = self._documents.get((collection, kind), {}).get(str(doc_id))
        return copy.deepcopy(doc) if doc is not None else None

    def get_documents(self, collection: str, kind: str) -> dict[str, dict[str, Any]]:
        """Get all stored documents by id (testing helper)."""
        return copy.deepcopy(self._documents.get((collection, kind), {}))


class InMemoryKeyValueStore(_FailureInjection):
    """In-memory implementation of KeyValueStore.

    Values are stored as strings, as the production backends return them.
    It does not provide ``lock()``, so the allocator falls back to its
    in-process lock.
    """

    def __init__(self) -> None:
        super().__init__()
        self._values: dict[str, str] = {}
        self.initialized = False
        self.reads = 0
        self.writes = 0

    async def init(self) -> None:
        """Mark as initialized."""
        self.initialized = True

    async def get(self, key: str) -> str | None:
        """Get a value, None if absent."""
        await self._round_trip()
        self.reads += 1
        return self._values.get(key)

    async def set(self, key: str, value: Any) -> None:
        """Set a value."""
        await self._round_trip()
        self.writes += 1
        self._values[key] = str(value)

    async def close(self) -> None:
        """Nothing to release."""
        pass

    # Testing helpers

    def seed(self, key: str, value: Any) -> None:
        """Set a value without a round trip (testing helper)."""
        self._values[key] = str(value)

    def snapshot(self) -> dict[str, str]:
        """Copy of all values (testing helper)."""
        return dict(self._values)
