"""
Configuration for SeqDoc SDK.

Uses pydantic-settings for environment variable loading (prefix SEQDOC_).

Invariants:
    - All settings have defaults suitable for local development
    - Secrets are never logged
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings


class KeyValueBackend(str, Enum):
    """Supported key-value backends for sequence counters."""

    ELASTICSEARCH = "elasticsearch"
    REDIS = "redis"
    MEMORY = "memory"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    TEXT = "text"


class Settings(BaseSettings):
    """SDK configuration loaded from environment."""

    # Elasticsearch connection
    es_url: str = Field(default="http://localhost:9200", description="Elasticsearch base URL")
    es_username: str | None = Field(default=None, description="Basic auth username")
    es_password: str | None = Field(default=None, description="Basic auth password")
    request_timeout: float = Field(default=30.0, gt=0, description="Per-request timeout seconds")
    ping_timeout: float = Field(default=30.0, gt=0, description="Liveness probe timeout seconds")

    # Counter storage
    kv_backend: KeyValueBackend = Field(
        default=KeyValueBackend.ELASTICSEARCH, description="Where sequence counters live"
    )
    kv_index: str = Field(default="seqdoc-keyvalue", description="Elasticsearch counter index")
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL")
    redis_key_prefix: str = Field(default="seqdoc:", description="Redis key prefix")
    lock_timeout: float = Field(default=10.0, gt=0, description="Redis counter lock expiry seconds")
    lock_blocking_timeout: float | None = Field(
        default=30.0, gt=0, description="Seconds to wait for a Redis counter lock, None waits forever"
    )

    # Optional default service binding
    service_name: str | None = Field(default=None, description="Logical service name")
    protocol: str = Field(default="COUNT", description="Sequence protocol")
    protocol_field: str | None = Field(default=None, description="Entity-identifying field")
    protocol_max: int | None = Field(default=None, gt=0, description="COUNT protocol max")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.TEXT, description="json or text")

    model_config = {"env_prefix": "SEQDOC_"}

    @property
    def has_binding(self) -> bool:
        """Whether a default service binding is configured."""
        return bool(self.service_name and self.protocol_field)

    def binding_params(self) -> dict[str, Any]:
        """Protocol parameters for the configured binding."""
        params: dict[str, Any] = {}
        if self.protocol_max is not None:
            params["max"] = self.protocol_max
        return params

    def redacted(self) -> dict[str, Any]:
        """Settings safe to log."""
        data = self.model_dump(mode="json")
        if data.get("es_password"):
            data["es_password"] = "***"
        return data
