"""
Store backends for SeqDoc SDK.

- base: DocumentStore / KeyValueStore protocols and StoreError types
- memory: In-memory stores for tests and local development
- elasticsearch: Elasticsearch document and key-value stores (httpx)
- redis_store: Redis key-value store with per-key locks (redis.asyncio)
"""

from .base import (
    DocumentStore,
    KeyValueStore,
    LockingKeyValueStore,
    StoreConnectionError,
    StoreError,
    StoreTimeoutError,
)
from .elasticsearch import (
    ElasticsearchDocumentStore,
    ElasticsearchKeyValueStore,
    ElasticsearchRequestError,
)
from .memory import InMemoryDocumentStore, InMemoryKeyValueStore
from .redis_store import RedisKeyValueStore

__all__ = [
    "DocumentStore",
    "KeyValueStore",
    "LockingKeyValueStore",
    "StoreError",
    "StoreConnectionError",
    "StoreTimeoutError",
    "InMemoryDocumentStore",
    "InMemoryKeyValueStore",
    "ElasticsearchDocumentStore",
    "ElasticsearchKeyValueStore",
    "ElasticsearchRequestError",
    "RedisKeyValueStore",
]
