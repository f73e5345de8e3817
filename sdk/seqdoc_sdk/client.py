"""
SeqDoc Client for Python SDK.

This module provides the main client interface:
- SeqDocClient: Liveness probe, service binding, field registration and writes
- ListResult: Page of documents returned by list()

Usage order:
    init() -> bind() -> register_fields() -> insert()/list()/update()/delete()

Example:
    >>> async with SeqDocClient(document_store, kv_store) as client:
    ...     client.bind("billing", "COUNT", "customerId", max=10)
    ...     client.register_fields("invoices", "invoice", ["a", "b", "c"])
    ...     doc_id = await client.insert("invoices", "invoice", {"b": 1}, entity_value=1)

Invariants:
    - bind() requires a successful init()
    - Every write requires a binding
    - insert() requires registered fields for (collection, kind)
    - Store failures surface as UpstreamError and are never retried
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Awaitable, TypeVar

from .allocator import SequenceAllocator
from .errors import (
    ConnectionError,
    InvalidArgumentError,
    PreconditionFailedError,
    SeqDocError,
    UpstreamError,
)
from .pipeline import InsertResult, UpsertPipeline
from .protocol import Protocol, ServiceBinding
from .registry import FieldRegistry
from .stores.base import DEFAULT_PAGE_SIZE, DocumentStore, KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_PING_TIMEOUT = 30.0

NOT_BOUND_MESSAGE = "Protocol is not set, call bind() first"

T = TypeVar("T")


@dataclass
class ListResult:
    """A page of documents.

    Attributes:
        has_next: True when the page is full, a hint that more may follow
        transactions: Document sources in result order
    """

    has_next: bool = False
    transactions: list[dict[str, Any]] = field(default_factory=list)


def _missing(**values: Any) -> list[str]:
    return [name for name, value in values.items() if value is None or value == ""]


class SeqDocClient:
    """Client writing sequenced documents.

    Each insert takes the entity value of the bound protocol field (for
    example a customer id), allocates that entity's next sequence id and
    upserts the projected document at it.

    Example:
        >>> client = SeqDocClient(ElasticsearchDocumentStore(), RedisKeyValueStore())
        >>> await client.init()
        >>> client.bind("billing", "COUNT", "customerId", max=10)
    """

    def __init__(
        self,
        document_store: DocumentStore,
        kv_store: KeyValueStore,
        *,
        ping_timeout: float = DEFAULT_PING_TIMEOUT,
        registry: FieldRegistry | None = None,
    ) -> None:
        """Initialize client.

        Args:
            document_store: Store the documents are written to
            kv_store: Store holding the sequence counters
            ping_timeout: Upper bound in seconds for the liveness probe
            registry: Optional field registry

        Raises:
            PreconditionFailedError: If a store is not provided
        """
        if document_store is None:
            raise PreconditionFailedError("Document store not provided", missing=["document_store"])
        if kv_store is None:
            raise PreconditionFailedError("Key-value store not provided", missing=["kv_store"])

        self._store = document_store
        self._kv = kv_store
        self.ping_timeout = ping_timeout
        self.registry = registry or FieldRegistry()
        self._initiated = False
        self._binding: ServiceBinding | None = None
        self._allocator: SequenceAllocator | None = None
        self._pipeline: UpsertPipeline | None = None

    @property
    def is_initiated(self) -> bool:
        """Whether the liveness probe succeeded."""
        return self._initiated

    @property
    def is_bound(self) -> bool:
        """Whether a service binding is set."""
        return self._binding is not None

    @property
    def binding(self) -> ServiceBinding | None:
        """Current service binding."""
        return self._binding

    @property
    def allocator(self) -> SequenceAllocator | None:
        """Allocator of the current binding."""
        return self._allocator

    async def init(self) -> None:
        """Probe the document store and prepare the key-value store.

        Raises:
            ConnectionError: If the store does not answer within ping_timeout
            UpstreamError: If the key-value store cannot be initialized
        """
        address = getattr(self._store, "url", None)
        logger.debug("Pinging document store", extra={"address": address})
        try:
            await asyncio.wait_for(self._store.ping(self.ping_timeout), timeout=self.ping_timeout)
        except asyncio.TimeoutError as e:
            logger.error("Document store ping timed out", extra={"timeout": self.ping_timeout})
            raise ConnectionError(
                f"Document store did not answer within {self.ping_timeout}s",
                address=address,
                cause=e,
            ) from e
        except Exception as e:
            logger.error("Document store ping failed", extra={"error": str(e)})
            raise ConnectionError(
                f"Document store ping failed: {e}", address=address, cause=e
            ) from e

        self._initiated = True
        logger.info("Document store connection established", extra={"address": address})

        logger.debug("Initializing key-value store")
        await self._upstream("kv.init", self._kv.init())

    async def close(self) -> None:
        """Close both stores."""
        await self._store.close()
        await self._kv.close()
        self._initiated = False

    async def __aenter__(self) -> SeqDocClient:
        try:
            await self.init()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def bind(
        self,
        name: str,
        protocol: Protocol | str,
        protocol_field: str,
        protocol_params: Mapping[str, Any] | None = None,
        **params: Any,
    ) -> ServiceBinding:
        """Bind the service to a sequence protocol.

        Rebinding replaces the previous binding and clears the field registry.

        Args:
            name: Logical service name
            protocol: Protocol name, matched case-insensitively
            protocol_field: Entity-identifying attribute (e.g. customerId)
            protocol_params: Protocol parameters (or use kwargs)
            **params: Protocol parameters (alternative to protocol_params)

        Returns:
            The new ServiceBinding

        Raises:
            PreconditionFailedError: If not initiated or parameters are missing
            UnsupportedProtocolError: If the protocol is not supported
        """
        if not self._initiated:
            raise PreconditionFailedError("Client is not initiated, call init() first")

        merged = dict(protocol_params or {})
        merged.update(params)

        try:
            binding = ServiceBinding.create(name, protocol, protocol_field, merged)
        except SeqDocError as e:
            logger.error("Cannot bind service", extra={"error": e.message, "code": e.code})
            raise

        self._binding = binding
        self.registry.clear()
        self._allocator = SequenceAllocator(self._kv, binding)
        self._pipeline = UpsertPipeline(self._allocator, self.registry, self._store)
        logger.info(
            "Protocol is set for client",
            extra={
                "service": binding.name,
                "protocol": binding.protocol.value,
                "protocol_field": binding.protocol_field,
                "protocol_params": dict(binding.protocol_params),
            },
        )
        return binding

    def _require_binding(self) -> ServiceBinding:
        if self._binding is None:
            raise PreconditionFailedError(NOT_BOUND_MESSAGE)
        return self._binding

    def register_fields(self, collection: str, kind: str, fields: Iterable[str]) -> bool:
        """Register the stored fields of a (collection, kind) pair.

        The first registration for a pair wins; later calls are no-ops.

        Returns:
            True if the registration was created

        Raises:
            PreconditionFailedError: If no binding is set
            InvalidArgumentError: If an argument is empty
        """
        self._require_binding()
        return self.registry.register(collection, kind, fields)

    async def insert(
        self,
        collection: str,
        kind: str,
        body: Mapping[str, Any],
        entity_value: Any = None,
    ) -> str:
        """Insert a document at the entity's next sequence id.

        Args:
            collection: Collection name
            kind: Document kind
            body: Document; unregistered fields are dropped
            entity_value: Value of the protocol field; taken from body when omitted

        Returns:
            Identifier of the written document

        Raises:
            PreconditionFailedError: If no binding is set
            InvalidArgumentError: If a parameter or the entity value is missing
            NotRegisteredError: If (collection, kind) is not registered
            UpstreamError: If a store call fails
        """
        result = await self.insert_with_result(collection, kind, body, entity_value)
        return result.id

    async def insert_with_result(
        self,
        collection: str,
        kind: str,
        body: Mapping[str, Any],
        entity_value: Any = None,
    ) -> InsertResult:
        """Same as insert() but returns the full InsertResult."""
        binding = self._require_binding()

        if entity_value is None and isinstance(body, Mapping):
            entity_value = body.get(binding.protocol_field)

        missing = _missing(collection=collection, kind=kind, body=body)
        missing += _missing(**{binding.protocol_field: entity_value})
        if missing:
            logger.error(
                "Invalid insert parameters",
                extra={"collection": collection, "kind": kind, "missing": missing},
            )
            raise InvalidArgumentError(
                f"Invalid insert parameters, missing: {', '.join(missing)}",
                argument=missing[0],
            )
        if not isinstance(body, Mapping):
            raise InvalidArgumentError("Insert body must be a mapping", argument="body")

        pipeline = self._pipeline
        if pipeline is None:
            raise PreconditionFailedError(NOT_BOUND_MESSAGE)
        result = await pipeline.run(collection, kind, entity_value, body)
        logger.debug(
            "Document inserted",
            extra={"collection": collection, "kind": kind, "id": result.id},
        )
        return result

    async def list(
        self,
        collection: str,
        kind: str,
        query: Mapping[str, Any] | None = None,
    ) -> ListResult:
        """Run a search and return one page of documents.

        ``has_next`` is a heuristic: true when the page holds exactly the
        requested ``size`` (Elasticsearch's default of 10 when unset).

        Raises:
            PreconditionFailedError: If no binding is set
            InvalidArgumentError: If collection or kind is empty
            UpstreamError: If the search fails
        """
        self._require_binding()
        self._validate("list", collection=collection, kind=kind)

        query = dict(query or {})
        logger.debug("Listing documents", extra={"collection": collection, "kind": kind})
        hits = await self._upstream("search", self._store.search(collection, kind, query))

        if not hits:
            return ListResult()
        size = int(query.get("size", DEFAULT_PAGE_SIZE))
        return ListResult(has_next=len(hits) == size, transactions=hits)

    async def update(
        self,
        collection: str,
        kind: str,
        doc_id: Any,
        body: Mapping[str, Any],
    ) -> str:
        """Partially update an existing document by id.

        Returns:
            Identifier of the updated document

        Raises:
            PreconditionFailedError: If no binding is set
            InvalidArgumentError: If a parameter is missing
            UpstreamError: If the update fails (including a missing document)
        """
        self._require_binding()
        self._validate("update", collection=collection, kind=kind, id=doc_id, body=body)

        updated_id = await self._upstream(
            "update",
            self._store.update(collection, kind, str(doc_id), dict(body), upsert=False),
        )
        logger.debug("Update success", extra={"id": updated_id})
        return updated_id

    async def delete(self, collection: str, kind: str, doc_id: Any) -> str:
        """Delete a document by id.

        A document that does not exist is logged and still reported as deleted.

        Returns:
            The id that was deleted

        Raises:
            PreconditionFailedError: If no binding is set
            InvalidArgumentError: If a parameter is missing
            UpstreamError: If the delete fails
        """
        self._require_binding()
        self._validate("delete", collection=collection, kind=kind, id=doc_id)

        found = await self._upstream("delete", self._store.delete(collection, kind, str(doc_id)))
        if not found:
            logger.warning(
                "Delete of missing document",
                extra={"collection": collection, "kind": kind, "id": str(doc_id)},
            )
        else:
            logger.debug("Delete success", extra={"id": str(doc_id)})
        return str(doc_id)

    async def current_sequence(self, entity_value: Any) -> int | None:
        """Last allocated sequence id of an entity, None if never allocated."""
        self._require_binding()
        allocator = self._allocator
        if allocator is None:
            raise PreconditionFailedError(NOT_BOUND_MESSAGE)
        return await allocator.current(entity_value)

    def _validate(self, operation: str, **values: Any) -> None:
        missing = _missing(**values)
        if missing:
            logger.error(
                f"Invalid {operation} parameters",
                extra={"missing": missing},
            )
            raise InvalidArgumentError(
                f"Invalid {operation} parameters, missing: {', '.join(missing)}",
                argument=missing[0],
            )

    async def _upstream(self, operation: str, call: Awaitable[T]) -> T:
        """Await a store call, translating failures into UpstreamError."""
        try:
            return await call
        except SeqDocError:
            raise
        except Exception as e:
            logger.error(
                "Store call failed",
                extra={"operation": operation, "error": str(e)},
            )
            raise UpstreamError(
                f"Store {operation} failed: {e}", operation=operation, cause=e
            ) from e
