"""
Field registry for SeqDoc SDK.

This module keeps the whitelist of fields that may be stored for each
(collection, kind) pair and projects inbound documents through it.

The first registration for a pair wins: later registrations for the same
pair are ignored so the stored schema cannot drift mid-session.

Example:
    >>> registry = FieldRegistry()
    >>> registry.register("orders", "order", ["a", "b", "c"])
    >>> registry.project("orders", "order", {"b": 1, "x": 9})
    {'a': '', 'b': 1, 'c': ''}
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from .errors import InvalidArgumentError, NotRegisteredError

logger = logging.getLogger(__name__)


class FieldRegistry:
    """Per (collection, kind) field whitelist.

    Example:
        >>> registry = FieldRegistry()
        >>> registry.register("orders", "order", ["a", "b"])
        >>> registry.fields_for("orders", "order")
        ('a', 'b')
    """

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._fields: dict[tuple[str, str], tuple[str, ...]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(list(self._fields))

    def register(self, collection: str, kind: str, fields: Iterable[str] | None) -> bool:
        """Register the stored fields for a (collection, kind) pair.

        Args:
            collection: Collection (index) name
            kind: Document kind within the collection
            fields: Ordered field names

        Returns:
            True if the entry was created, False if one already existed

        Raises:
            InvalidArgumentError: If collection, kind or fields is empty
        """
        if not collection:
            raise InvalidArgumentError("Collection not provided for setting fields", "collection")
        if not kind:
            raise InvalidArgumentError("Kind not provided for setting fields", "kind")
        if isinstance(fields, str):
            raise InvalidArgumentError("Fields must be a sequence of names", "fields")
        names = tuple(dict.fromkeys(f for f in (fields or ()) if f))
        if not names:
            raise InvalidArgumentError("Fields not provided for setting fields", "fields")

        key = (collection, kind)
        with self._lock:
            if key in self._fields:
                logger.debug(
                    "Fields already registered, keeping first registration",
                    extra={"collection": collection, "kind": kind},
                )
                return False
            self._fields[key] = names

        logger.debug(
            "Fields registered",
            extra={"collection": collection, "kind": kind, "fields": list(names)},
        )
        return True

    def is_registered(self, collection: str, kind: str) -> bool:
        """Whether fields are registered for the pair."""
        return (collection, kind) in self._fields

    def fields_for(self, collection: str, kind: str) -> tuple[str, ...]:
        """Get registered fields.

        Raises:
            NotRegisteredError: If the pair is not registered
        """
        try:
            return self._fields[(collection, kind)]
        except KeyError:
            raise NotRegisteredError(collection, kind) from None

    def project(
        self,
        collection: str,
        kind: str,
        document: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Restrict a document to the registered fields.

        Every registered field is present in the result. Values that are
        missing or falsy in the input are stored as an empty string.

        Raises:
            NotRegisteredError: If the pair is not registered
        """
        return {name: document.get(name) or "" for name in self.fields_for(collection, kind)}

    def clear(self) -> None:
        """Remove all registrations."""
        with self._lock:
            self._fields.clear()

    def to_dict(self) -> dict[str, dict[str, list[str]]]:
        """Convert to nested {collection: {kind: fields}} dictionary."""
        result: dict[str, dict[str, list[str]]] = {}
        for (collection, kind), names in self._fields.items():
            result.setdefault(collection, {})[kind] = list(names)
        return result
