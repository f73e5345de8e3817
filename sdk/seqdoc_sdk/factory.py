"""
Construction of stores and clients from Settings.

Example:
    >>> settings = Settings()
    >>> client = await connect(settings)
"""

from __future__ import annotations

import logging

from .client import SeqDocClient
from .config import KeyValueBackend, Settings
from .stores.base import KeyValueStore
from .stores.elasticsearch import ElasticsearchDocumentStore, ElasticsearchKeyValueStore
from .stores.memory import InMemoryKeyValueStore
from .stores.redis_store import RedisKeyValueStore

logger = logging.getLogger(__name__)


def create_document_store(settings: Settings) -> ElasticsearchDocumentStore:
    """Create the Elasticsearch document store."""
    return ElasticsearchDocumentStore(
        settings.es_url,
        request_timeout=settings.request_timeout,
        username=settings.es_username,
        password=settings.es_password,
    )


def create_kv_store(settings: Settings) -> KeyValueStore:
    """Create the key-value store selected by settings.kv_backend.

    Raises:
        ValueError: If the backend is unknown
    """
    backend = settings.kv_backend
    if backend == KeyValueBackend.ELASTICSEARCH:
        return ElasticsearchKeyValueStore(
            settings.es_url,
            index=settings.kv_index,
            request_timeout=settings.request_timeout,
            username=settings.es_username,
            password=settings.es_password,
        )
    if backend == KeyValueBackend.REDIS:
        return RedisKeyValueStore(
            settings.redis_url,
            key_prefix=settings.redis_key_prefix,
            lock_timeout=settings.lock_timeout,
            lock_blocking_timeout=settings.lock_blocking_timeout,
        )
    if backend == KeyValueBackend.MEMORY:
        logger.warning("Using in-memory counters, sequence state is lost on exit")
        return InMemoryKeyValueStore()
    raise ValueError(f"Invalid kv_backend '{backend}'")


def create_client(settings: Settings) -> SeqDocClient:
    """Create an unconnected client from settings."""
    return SeqDocClient(
        create_document_store(settings),
        create_kv_store(settings),
        ping_timeout=settings.ping_timeout,
    )


async def connect(settings: Settings) -> SeqDocClient:
    """Create a client, run init() and apply the configured binding, if any.

    Both stores are closed if init() or bind() fails.
    """
    logger.info("Creating SeqDoc client", extra={"settings": settings.redacted()})
    client = create_client(settings)
    try:
        await client.init()
        if settings.has_binding:
            client.bind(
                settings.service_name,
                settings.protocol,
                settings.protocol_field,
                settings.binding_params(),
            )
    except BaseException:
        await client.close()
        raise
    return client
