"""
Sequence protocols and service binding for SeqDoc SDK.

This module defines how successive sequence ids are derived for an entity:
- Protocol: Closed set of supported protocols
- ProtocolDef: Required parameters and transition function of a protocol
- ServiceBinding: Service name + protocol + protocol field, bound once per client

The COUNT protocol is a bounded round-robin: ids run 1, 2, ..., max and
then wrap back to 1, independently per entity value.

Invariants:
    - Unknown protocol names are rejected when binding, not when allocating
    - COUNT always yields an id in [1, max]
    - A ServiceBinding is immutable

Example:
    >>> binding = ServiceBinding.create("billing", "count", "customerId", {"max": 10})
    >>> binding.counter_key(42)
    'billing_count_customerid_42'
    >>> binding.next_sequence(10)
    1
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from types import MappingProxyType
from typing import Any

from .errors import PreconditionFailedError, UnsupportedProtocolError


class Protocol(Enum):
    """Supported sequence protocols."""

    COUNT = "COUNT"

    @classmethod
    def from_str(cls, value: str | Protocol) -> Protocol:
        """Match a protocol name case-insensitively.

        Raises:
            UnsupportedProtocolError: If the name is not a known protocol
        """
        if isinstance(value, Protocol):
            return value
        name = str(value).strip().upper()
        for protocol in cls:
            if protocol.value == name:
                return protocol
        raise UnsupportedProtocolError(value)


def _positive_int(name: str, value: Any) -> int:
    """Coerce an int, integral float or numeric string to a positive int."""
    message = f"Protocol parameter '{name}' must be a positive integer"
    if isinstance(value, bool):
        raise PreconditionFailedError(message)
    if isinstance(value, int):
        number = value
    else:
        try:
            as_float = float(value.strip() if isinstance(value, str) else value)
        except (TypeError, ValueError):
            raise PreconditionFailedError(message) from None
        # Reject 2.5, "1.5", nan and inf
        if not as_float.is_integer():
            raise PreconditionFailedError(message)
        number = int(as_float)
    if number < 1:
        raise PreconditionFailedError(message)
    return number


def count_next(previous: int | None, params: Mapping[str, Any]) -> int:
    """COUNT transition: advance the counter and wrap at max.

    Args:
        previous: Last allocated id, None if the counter has never been used
        params: Protocol parameters, must contain ``max``

    Returns:
        Next id in [1, max]
    """
    maximum = params["max"]
    if previous is None:
        return 1
    if previous < maximum:
        return previous + 1
    if previous == maximum:
        return 1
    # Out-of-range legacy state; remainder 0 maps to max
    return previous % maximum or maximum


def _count_params(params: Mapping[str, Any]) -> dict[str, Any]:
    return {"max": _positive_int("max", params["max"])}


@dataclass(frozen=True)
class ProtocolDef:
    """Definition of a sequence protocol.

    Attributes:
        protocol: Protocol tag
        required_params: Parameter names that must be supplied at bind time
        transition: (previous id or None, params) -> next id
        normalize: Validates and coerces the required parameters
        aliases: Alternative parameter names accepted at bind time
    """

    protocol: Protocol
    required_params: tuple[str, ...]
    transition: Callable[[int | None, Mapping[str, Any]], int]
    normalize: Callable[[Mapping[str, Any]], dict[str, Any]]
    aliases: Mapping[str, str] = dataclass_field(default_factory=dict)


PROTOCOLS: dict[Protocol, ProtocolDef] = {
    Protocol.COUNT: ProtocolDef(
        protocol=Protocol.COUNT,
        required_params=("max",),
        transition=count_next,
        normalize=_count_params,
        aliases={"protocol_max": "max", "protocolMax": "max"},
    ),
}


def get_protocol_def(protocol: Protocol | str) -> ProtocolDef:
    """Look up the definition of a protocol.

    Raises:
        UnsupportedProtocolError: If no definition is registered
    """
    definition = PROTOCOLS.get(Protocol.from_str(protocol))
    if definition is None:
        raise UnsupportedProtocolError(protocol)
    return definition


@dataclass(frozen=True)
class ServiceBinding:
    """Binding of a logical service to a sequence protocol.

    Attributes:
        name: Logical service name
        protocol: Bound protocol
        protocol_field: Name of the entity-identifying attribute (e.g. customerId)
        protocol_params: Protocol-specific parameters (e.g. max for COUNT)
    """

    name: str
    protocol: Protocol
    protocol_field: str
    protocol_params: Mapping[str, Any] = dataclass_field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def create(
        cls,
        name: str,
        protocol: Protocol | str,
        protocol_field: str,
        protocol_params: Mapping[str, Any] | None = None,
    ) -> ServiceBinding:
        """Validate arguments and build a binding.

        Raises:
            PreconditionFailedError: If a required argument or protocol parameter is missing
            UnsupportedProtocolError: If the protocol is not recognized
        """
        missing = [
            arg
            for arg, value in (
                ("name", name),
                ("protocol", protocol),
                ("protocol_field", protocol_field),
            )
            if not value
        ]
        if missing:
            raise PreconditionFailedError(
                f"Parameters missing: {', '.join(missing)}",
                missing=missing,
            )

        definition = get_protocol_def(protocol)

        params = dict(protocol_params or {})
        for alias, canonical in definition.aliases.items():
            if alias in params and canonical not in params:
                params[canonical] = params.pop(alias)

        missing = [p for p in definition.required_params if params.get(p) is None]
        if missing:
            raise PreconditionFailedError(
                f"Protocol {definition.protocol.value} requires: {', '.join(missing)}",
                missing=missing,
            )

        return cls(
            name=name,
            protocol=definition.protocol,
            protocol_field=protocol_field,
            protocol_params=MappingProxyType(definition.normalize(params)),
        )

    def counter_key(self, entity_value: Any) -> str:
        """Key of the per-entity counter in the key-value store."""
        return "_".join(
            (
                self.name.lower(),
                self.protocol.value.lower(),
                self.protocol_field.lower(),
                str(entity_value),
            )
        )

    def next_sequence(self, previous: int | None) -> int:
        """Apply the protocol transition to the previous id."""
        return get_protocol_def(self.protocol).transition(previous, self.protocol_params)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "protocol": self.protocol.value,
            "protocol_field": self.protocol_field,
            "protocol_params": dict(self.protocol_params),
        }
