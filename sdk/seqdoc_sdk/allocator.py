"""
Sequence id allocation for SeqDoc SDK.

The allocator owns the per-entity counters kept in the key-value store.
For each allocation it reads the counter, applies the bound protocol's
transition and writes the new value back before handing out the id.

Concurrency:
    Read, compute and write for one counter key run under a lock so two
    concurrent allocations for the same entity never see the same previous
    value. The key-value store's own lock is used when it has one (shared
    across processes); otherwise an asyncio.Lock per key guards this client.

Invariants:
    - The counter is written before the id is returned
    - Counter values are never cached in-process
    - Unreadable or out-of-range stored values restart the sequence at 1
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from contextlib import AbstractAsyncContextManager
from typing import Any

from .errors import SeqDocError, UpstreamError
from .protocol import ServiceBinding
from .stores.base import KeyValueStore, LockingKeyValueStore

logger = logging.getLogger(__name__)


def parse_sequence(value: Any) -> int | None:
    """Parse a stored counter value.

    Returns:
        The previous id, or None if absent, unparseable or below 1
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        number = int(text)
    except ValueError:
        try:
            as_float = float(text)
        except ValueError:
            logger.warning("Ignoring non-numeric counter value", extra={"value": text})
            return None
        if not as_float.is_integer():
            logger.warning("Ignoring non-integer counter value", extra={"value": text})
            return None
        number = int(as_float)
    return number if number >= 1 else None


class SequenceAllocator:
    """Allocates bounded sequence ids per entity.

    Attributes:
        binding: Service binding whose protocol drives the counters

    Example:
        >>> allocator = SequenceAllocator(InMemoryKeyValueStore(), binding)
        >>> await allocator.allocate(1)
        1
        >>> await allocator.allocate(1)
        2
    """

    def __init__(self, kv_store: KeyValueStore, binding: ServiceBinding) -> None:
        self._kv = kv_store
        self.binding = binding
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def counter_key(self, entity_value: Any) -> str:
        """Key of the entity's counter."""
        return self.binding.counter_key(entity_value)

    def _lock_for(self, key: str) -> AbstractAsyncContextManager[Any]:
        if isinstance(self._kv, LockingKeyValueStore):
            return self._kv.lock(key)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def current(self, entity_value: Any) -> int | None:
        """Last allocated id for an entity, without advancing it."""
        key = self.counter_key(entity_value)
        try:
            return parse_sequence(await self._kv.get(key))
        except SeqDocError:
            raise
        except Exception as e:
            raise UpstreamError(
                f"Failed to read counter '{key}'", operation="kv.get", cause=e
            ) from e

    async def allocate(self, entity_value: Any) -> int:
        """Advance the entity's counter and return the new id.

        Raises:
            UnsupportedProtocolError: If the bound protocol has no transition
            UpstreamError: If the key-value store fails; operation "kv.unlock"
                means the counter was written but the lock could not be released
        """
        key = self.counter_key(entity_value)
        operation = "kv.lock"
        try:
            async with self._lock_for(key):
                operation = "kv.get"
                previous = parse_sequence(await self._kv.get(key))
                sequence_id = self.binding.next_sequence(previous)
                operation = "kv.set"
                await self._kv.set(key, sequence_id)
                operation = "kv.unlock"
        except SeqDocError:
            raise
        except Exception as e:
            logger.error(
                "Sequence allocation failed",
                extra={"counter_key": key, "operation": operation, "error": str(e)},
            )
            raise UpstreamError(
                f"Sequence allocation failed for '{key}'", operation=operation, cause=e
            ) from e

        logger.debug(
            "Sequence allocated",
            extra={"counter_key": key, "previous": previous, "sequence_id": sequence_id},
        )
        return sequence_id
