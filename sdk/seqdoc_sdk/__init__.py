"""
SeqDoc Python SDK - Sequenced document writes for Elasticsearch.

This SDK writes documents while giving each entity a bounded, recycled
sequence id kept in a key-value store:
- Protocols and service binding (COUNT: ids 1..max, then wrap)
- Field registry projecting documents to a whitelist
- SeqDocClient with insert, list, update and delete

Example:
    >>> from seqdoc_sdk import SeqDocClient, InMemoryDocumentStore, InMemoryKeyValueStore
    >>>
    >>> async with SeqDocClient(InMemoryDocumentStore(), InMemoryKeyValueStore()) as client:
    ...     client.bind("serviceName", "COUNT", "customerId", max=10)
    ...     client.register_fields("keyvalueindex", "keyvaluetype", ["a", "b", "c"])
    ...     await client.insert("keyvalueindex", "keyvaluetype", {"b": 1, "c": 1}, entity_value=1)
    '1'

Invariants:
    - A client is bound to exactly one service protocol at a time
    - COUNT ids stay within [1, max]
    - Stored documents contain exactly the registered fields

Version: 1.0.0
"""

__version__ = "1.0.0"

from .allocator import SequenceAllocator
from .client import ListResult, SeqDocClient
from .config import KeyValueBackend, Settings
from .errors import (
    ConnectionError,
    InvalidArgumentError,
    NotRegisteredError,
    PreconditionFailedError,
    SeqDocError,
    UnsupportedProtocolError,
    UpstreamError,
)
from .factory import connect, create_client
from .pipeline import InsertResult, UpsertPipeline
from .protocol import Protocol, ServiceBinding, count_next
from .registry import FieldRegistry
from .stores import (
    ElasticsearchDocumentStore,
    ElasticsearchKeyValueStore,
    InMemoryDocumentStore,
    InMemoryKeyValueStore,
    RedisKeyValueStore,
)

__all__ = [
    # Version
    "__version__",
    # Protocols
    "Protocol",
    "ServiceBinding",
    "count_next",
    # Components
    "FieldRegistry",
    "SequenceAllocator",
    "UpsertPipeline",
    "InsertResult",
    # Client
    "SeqDocClient",
    "ListResult",
    "Settings",
    "KeyValueBackend",
    "connect",
    "create_client",
    # Stores
    "ElasticsearchDocumentStore",
    "ElasticsearchKeyValueStore",
    "RedisKeyValueStore",
    "InMemoryDocumentStore",
    "InMemoryKeyValueStore",
    # Errors
    "SeqDocError",
    "PreconditionFailedError",
    "UnsupportedProtocolError",
    "InvalidArgumentError",
    "NotRegisteredError",
    "UpstreamError",
    "ConnectionError",
]
