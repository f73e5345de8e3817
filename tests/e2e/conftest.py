"""
E2E test fixtures for SeqDoc SDK.

These tests require a running Elasticsearch (and Redis for the Redis
backend), for example:

    docker run -d -p 9200:9200 -e discovery.type=single-node \
        -e xpack.security.enabled=false elasticsearch:8.13.0
    docker run -d -p 6379:6379 redis:7

Set SEQDOC_E2E_TESTS=1 to enable them.
"""

import os
import socket
import time
import uuid
from urllib.parse import urlparse

import pytest

E2E_ENABLED = os.environ.get("SEQDOC_E2E_TESTS", "0") == "1"


def wait_for_service(url: str, timeout: int = 60) -> bool:
    """Wait for a TCP service behind url to become available."""
    parsed = urlparse(url)
    start = time.time()
    while time.time() - start < timeout:
        try:
            with socket.create_connection((parsed.hostname, parsed.port), timeout=1):
                return True
        except OSError:
            time.sleep(1)
    return False


@pytest.fixture(scope="session")
def es_url() -> str:
    """Elasticsearch base URL."""
    url = os.environ.get("SEQDOC_ES_URL", "http://localhost:9200")
    assert wait_for_service(url), f"Elasticsearch not reachable at {url}"
    return url


@pytest.fixture(scope="session")
def redis_url() -> str:
    """Redis URL."""
    url = os.environ.get("SEQDOC_REDIS_URL", "redis://localhost:6379/0")
    assert wait_for_service(url), f"Redis not reachable at {url}"
    return url


@pytest.fixture
def collection() -> str:
    """Unique collection name for test isolation."""
    return f"e2e{uuid.uuid4().hex[:8]}"
