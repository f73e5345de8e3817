"""
Error types for SeqDoc SDK.

This module defines all exception types raised by the SDK:
- SeqDocError: Base exception
- PreconditionFailedError: Client used out of order (not initiated, not bound)
- UnsupportedProtocolError: Unknown sequence protocol
- InvalidArgumentError: Missing or empty required parameter
- NotRegisteredError: No field registration for (collection, kind)
- UpstreamError: Document store or key-value store failure
- ConnectionError: Liveness probe failed

Invariants:
    - All errors inherit from SeqDocError
    - Upstream errors keep the original exception as __cause__
    - Every error carries a code and an HTTP-like status
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SeqDocError(Exception):
    """Base exception for all SeqDoc SDK errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        status: HTTP-like status code
        details: Additional error context
    """

    default_code = "SEQDOC_ERROR"
    status = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a structured error payload."""
        return {
            "code": self.code,
            "status": self.status,
            "message": self.message,
            "details": self.details,
        }


class PreconditionFailedError(SeqDocError):
    """Client used before it is ready.

    Raised when:
    - bind() is called before a successful init()
    - A write is attempted before bind()
    - Binding parameters or protocol requirements are missing
    """

    default_code = "PRECONDITION_FAILED"
    status = 412

    def __init__(
        self,
        message: str,
        missing: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message, details={"missing": missing or []})
        self.missing = missing or []


class UnsupportedProtocolError(SeqDocError):
    """Sequence protocol is not supported."""

    default_code = "UNSUPPORTED_PROTOCOL"
    status = 422

    def __init__(self, protocol: Any) -> None:
        super().__init__(
            f"Protocol '{protocol}' is not supported",
            details={"protocol": str(protocol)},
        )
        self.protocol = protocol


class InvalidArgumentError(SeqDocError):
    """Required argument is missing or empty.

    Attributes:
        argument: Name of the offending argument
    """

    default_code = "INVALID_ARGUMENT"
    status = 422

    def __init__(
        self,
        message: str,
        argument: Optional[str] = None,
    ) -> None:
        super().__init__(message, details={"argument": argument})
        self.argument = argument


class NotRegisteredError(SeqDocError):
    """No field registration exists for a (collection, kind) pair."""

    default_code = "NOT_REGISTERED"
    status = 404

    def __init__(self, collection: str, kind: str) -> None:
        super().__init__(
            f"Collection '{collection}' with kind '{kind}' is not registered",
            details={"collection": collection, "kind": kind},
        )
        self.collection = collection
        self.kind = kind


class UpstreamError(SeqDocError):
    """A document store or key-value store call failed.

    The failing exception is attached as __cause__ by the raiser
    (``raise UpstreamError(...) from exc``) and summarised in details.

    Attributes:
        operation: Store operation that failed (e.g. "kv.get", "update")
    """

    default_code = "UPSTREAM_FAILURE"
    status = 502

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        details: Dict[str, Any] = {"operation": operation}
        if cause is not None:
            details["cause"] = f"{type(cause).__name__}: {cause}"
        super().__init__(message, details=details)
        self.operation = operation


class ConnectionError(UpstreamError):
    """Liveness probe against the document store failed.

    Raised when:
    - Store is unreachable
    - Ping exceeds the configured timeout
    """

    default_code = "CONNECTION_ERROR"
    status = 503

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, operation="ping", cause=cause)
        self.details["address"] = address
        self.address = address
