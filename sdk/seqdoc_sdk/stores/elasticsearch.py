"""
Elasticsearch store implementations.

This module talks to Elasticsearch over its REST API using httpx:
- ElasticsearchDocumentStore: documents, one index per (collection, kind)
- ElasticsearchKeyValueStore: sequence counters, one document per key

Index layout:
    Mapping types no longer exist in Elasticsearch, so a (collection, kind)
    pair maps to the index "{collection}-{kind}" (lowercased).

Invariants:
    - Upserts use the partial update API with doc_as_upsert
    - Counter reads use the realtime GET API, no refresh needed
    - Transport failures are raised as StoreConnectionError/StoreTimeoutError

How to change safely:
    - Test against a real cluster before changing request shapes
    - Keep index naming stable, existing data lives under those names
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from .base import StoreConnectionError, StoreError, StoreTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_KV_INDEX = "seqdoc-keyvalue"


class ElasticsearchRequestError(StoreError):
    """Elasticsearch answered with an error status.

    Attributes:
        status_code: HTTP status returned
        error_type: Elasticsearch error type (e.g. index_not_found_exception)
    """

    def __init__(self, message: str, status_code: int, error_type: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type


class _ElasticsearchHttp:
    """Shared httpx plumbing for the Elasticsearch stores."""

    def __init__(
        self,
        url: str = "http://localhost:9200",
        *,
        request_timeout: float = 30.0,
        username: str | None = None,
        password: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP plumbing.

        Args:
            url: Cluster base URL
            request_timeout: Default per-request timeout in seconds
            username: Basic auth username
            password: Basic auth password
            client: Existing client to use (not closed by close())
        """
        self.url = url.rstrip("/")
        self._owns_client = client is None
        if client is None:
            auth = (username, password or "") if username else None
            client = httpx.AsyncClient(base_url=self.url, timeout=request_timeout, auth=auth)
        self._client = client

    async def close(self) -> None:
        """Close the underlying client if we created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        allow_404: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise StoreTimeoutError(f"{method} {path} timed out: {e}") from e
        except httpx.TransportError as e:
            raise StoreConnectionError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404 and allow_404:
            return response
        if response.is_error:
            raise _request_error(method, path, response)
        return response


def _request_error(method: str, path: str, response: httpx.Response) -> ElasticsearchRequestError:
    error_type = None
    reason = response.text
    try:
        error = response.json().get("error")
    except ValueError:
        error = None
    if isinstance(error, dict):
        error_type = error.get("type")
        reason = error.get("reason") or reason
    elif isinstance(error, str):
        reason = error
    return ElasticsearchRequestError(
        f"{method} {path} returned {response.status_code}: {reason}",
        status_code=response.status_code,
        error_type=error_type,
    )


class ElasticsearchDocumentStore(_ElasticsearchHttp):
    """Elasticsearch implementation of DocumentStore.

    Example:
        >>> store = ElasticsearchDocumentStore("http://localhost:9200")
        >>> await store.ping(timeout=30)
        >>> await store.update("orders", "order", "1", {"a": 1})
        '1'
    """

    @staticmethod
    def index_name(collection: str, kind: str) -> str:
        """Index holding documents of a (collection, kind) pair."""
        return f"{collection}-{kind}".lower()

    async def ping(self, timeout: float) -> None:
        """GET / within timeout seconds."""
        response = await self._request("GET", "/", timeout=timeout)
        version = response.json().get("version", {}).get("number")
        logger.info("Elasticsearch reachable", extra={"url": self.url, "version": version})

    async def search(
        self,
        collection: str,
        kind: str,
        query: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Run a search; a missing index yields no hits."""
        index = self.index_name(collection, kind)
        response = await self._request("POST", f"/{index}/_search", json=query, allow_404=True)
        if response.status_code == 404:
            logger.debug("Search on missing index", extra={"index": index})
            return []
        hits = response.json().get("hits", {}).get("hits", [])
        return [hit.get("_source", {}) for hit in hits]

    async def update(
        self,
        collection: str,
        kind: str,
        doc_id: str,
        body: dict[str, Any],
        upsert: bool = True,
    ) -> str:
        """Partial update, creating the document when upsert is set."""
        index = self.index_name(collection, kind)
        payload: dict[str, Any] = {"doc": body}
        if upsert:
            payload["doc_as_upsert"] = True
        response = await self._request(
            "POST",
            f"/{index}/_update/{quote(str(doc_id), safe='')}",
            json=payload,
        )
        result = response.json()
        logger.debug(
            "Document updated",
            extra={"index": index, "doc_id": result.get("_id"), "result": result.get("result")},
        )
        return str(result.get("_id", doc_id))

    async def delete(self, collection: str, kind: str, doc_id: str) -> bool:
        """Delete a document; False if it was not found."""
        index = self.index_name(collection, kind)
        response = await self._request(
            "DELETE",
            f"/{index}/_doc/{quote(str(doc_id), safe='')}",
            allow_404=True,
        )
        return response.status_code != 404


class ElasticsearchKeyValueStore(_ElasticsearchHttp):
    """Key-value store kept in a dedicated Elasticsearch index.

    Each key is a document ``{"value": "<value>"}`` whose id is the key.

    Attributes:
        index: Index holding the key-value documents
    """

    def __init__(self, url: str = "http://localhost:9200", *, index: str = DEFAULT_KV_INDEX, **kwargs: Any) -> None:
        super().__init__(url, **kwargs)
        self.index = index

    async def init(self) -> None:
        """Create the key-value index if it does not exist."""
        response = await self._request("HEAD", f"/{self.index}", allow_404=True)
        if response.status_code != 404:
            return

        try:
            await self._request(
                "PUT",
                f"/{self.index}",
                json={"mappings": {"properties": {"value": {"type": "keyword"}}}},
            )
            logger.info("Key-value index created", extra={"index": self.index})
        except ElasticsearchRequestError as e:
            if e.error_type != "resource_already_exists_exception":
                raise

    async def get(self, key: str) -> str | None:
        """Get a value, None if absent."""
        response = await self._request(
            "GET",
            f"/{self.index}/_doc/{quote(key, safe='')}",
            allow_404=True,
        )
        if response.status_code == 404:
            return None
        data = response.json()
        if not data.get("found", True):
            return None
        value = data.get("_source", {}).get("value")
        return None if value is None else str(value)

    async def set(self, key: str, value: Any) -> None:
        """Set a value."""
        await self._request(
            "PUT",
            f"/{self.index}/_doc/{quote(key, safe='')}",
            json={"value": str(value)},
        )
