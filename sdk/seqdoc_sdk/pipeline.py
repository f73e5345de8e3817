"""
Upsert pipeline for SeqDoc SDK.

One insert runs these steps strictly in order:
1. Check the (collection, kind) pair is registered
2. Allocate the entity's next sequence id (counter read, then write)
3. Project the document through the registered fields
4. Upsert the projected document at the allocated id

Every insert allocates a new id, so an entity keeps its last ``max``
documents in rotation rather than one mutable record.

Invariants:
    - An unregistered pair fails before any counter is touched
    - The document is written only after the counter write completed
    - Nothing is retried; a failed write leaves the counter advanced
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .allocator import SequenceAllocator
from .errors import SeqDocError, UpstreamError
from .registry import FieldRegistry
from .stores.base import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class InsertResult:
    """Result of an insert.

    Attributes:
        id: Identifier returned by the document store
        sequence_id: Allocated sequence id
        counter_key: Counter that was advanced
        document: Projected document that was written
    """

    id: str
    sequence_id: int
    counter_key: str
    document: dict[str, Any]


class UpsertPipeline:
    """Allocate, project and upsert one document."""

    def __init__(
        self,
        allocator: SequenceAllocator,
        registry: FieldRegistry,
        document_store: DocumentStore,
    ) -> None:
        self._allocator = allocator
        self._registry = registry
        self._store = document_store

    async def run(
        self,
        collection: str,
        kind: str,
        entity_value: Any,
        document: Mapping[str, Any],
    ) -> InsertResult:
        """Run the pipeline for one document.

        Raises:
            NotRegisteredError: If (collection, kind) has no registered fields
            UpstreamError: If the key-value store or document store fails
        """
        fields = self._registry.fields_for(collection, kind)

        sequence_id = await self._allocator.allocate(entity_value)
        counter_key = self._allocator.counter_key(entity_value)

        projected = self._registry.project(collection, kind, document)
        logger.debug(
            "Upserting document",
            extra={
                "collection": collection,
                "kind": kind,
                "sequence_id": sequence_id,
                "fields": list(fields),
            },
        )

        try:
            doc_id = await self._store.update(
                collection, kind, str(sequence_id), projected, upsert=True
            )
        except SeqDocError:
            raise
        except Exception as e:
            logger.error(
                "Upsert failed after counter was advanced",
                extra={
                    "collection": collection,
                    "kind": kind,
                    "counter_key": counter_key,
                    "sequence_id": sequence_id,
                    "error": str(e),
                },
            )
            raise UpstreamError(
                f"Upsert of {collection}/{kind}/{sequence_id} failed",
                operation="update",
                cause=e,
            ) from e

        return InsertResult(
            id=doc_id,
            sequence_id=sequence_id,
            counter_key=counter_key,
            document=projected,
        )
