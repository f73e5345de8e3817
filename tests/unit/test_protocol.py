"""
Unit tests for sequence protocols and service binding.

Tests cover:
- COUNT transition (first use, advance, wraparound, out-of-range state)
- Case-insensitive protocol lookup
- Binding validation and parameter coercion
- Counter key format
"""

import pytest

from seqdoc_sdk.errors import PreconditionFailedError, UnsupportedProtocolError
from seqdoc_sdk.protocol import (
    PROTOCOLS,
    Protocol,
    ServiceBinding,
    count_next,
    get_protocol_def,
)


class TestCountTransition:
    """Tests for count_next."""

    def test_first_use_starts_at_one(self):
        """No previous value yields 1."""
        assert count_next(None, {"max": 10}) == 1

    def test_advances_below_max(self):
        """Previous below max is incremented."""
        assert count_next(1, {"max": 10}) == 2
        assert count_next(9, {"max": 10}) == 10

    def test_wraps_at_max(self):
        """Previous equal to max wraps to 1, not max + 1."""
        assert count_next(10, {"max": 10}) == 1

    def test_out_of_range_uses_modulo(self):
        """Previous above max is reduced modulo max."""
        assert count_next(23, {"max": 10}) == 3

    def test_out_of_range_multiple_maps_to_max(self):
        """A multiple of max maps to max, never 0."""
        assert count_next(20, {"max": 10}) == 10
        assert count_next(30, {"max": 10}) == 10

    def test_max_one_always_one(self):
        """With max 1 every allocation is 1."""
        assert count_next(None, {"max": 1}) == 1
        assert count_next(1, {"max": 1}) == 1
        assert count_next(5, {"max": 1}) == 1

    @pytest.mark.parametrize("maximum", [1, 2, 3, 7, 10])
    def test_cycle_has_period_max(self, maximum):
        """Repeated allocation cycles 1..max with period max."""
        previous = None
        sequence = []
        for _ in range(maximum * 3):
            previous = count_next(previous, {"max": maximum})
            sequence.append(previous)

        expected = list(range(1, maximum + 1)) * 3
        assert sequence == expected


class TestProtocolLookup:
    """Tests for Protocol.from_str and get_protocol_def."""

    @pytest.mark.parametrize("name", ["COUNT", "count", "Count", " count "])
    def test_case_insensitive(self, name):
        """Protocol names match regardless of case."""
        assert Protocol.from_str(name) is Protocol.COUNT

    def test_enum_passthrough(self):
        """An enum member is returned as is."""
        assert Protocol.from_str(Protocol.COUNT) is Protocol.COUNT

    def test_unknown_protocol_raises(self):
        """Unknown names are rejected."""
        with pytest.raises(UnsupportedProtocolError) as exc_info:
            Protocol.from_str("TIME")

        assert exc_info.value.code == "UNSUPPORTED_PROTOCOL"
        assert exc_info.value.protocol == "TIME"

    def test_count_definition(self):
        """COUNT requires max."""
        definition = get_protocol_def("count")

        assert definition.protocol is Protocol.COUNT
        assert definition.required_params == ("max",)
        assert definition.transition is count_next

    def test_every_protocol_has_definition(self):
        """No protocol is left without a transition."""
        assert set(PROTOCOLS) == set(Protocol)


class TestServiceBinding:
    """Tests for ServiceBinding.create."""

    def test_create_binding(self):
        """Valid arguments produce a binding."""
        binding = ServiceBinding.create("serviceName", "count", "customerId", {"max": 10})

        assert binding.name == "serviceName"
        assert binding.protocol is Protocol.COUNT
        assert binding.protocol_field == "customerId"
        assert binding.protocol_params["max"] == 10

    @pytest.mark.parametrize(
        "name,protocol,protocol_field,missing",
        [
            ("", "COUNT", "customerId", "name"),
            ("svc", "", "customerId", "protocol"),
            ("svc", "COUNT", "", "protocol_field"),
            (None, "COUNT", "customerId", "name"),
        ],
    )
    def test_missing_arguments(self, name, protocol, protocol_field, missing):
        """Each required argument is checked."""
        with pytest.raises(PreconditionFailedError) as exc_info:
            ServiceBinding.create(name, protocol, protocol_field, {"max": 10})

        assert missing in exc_info.value.missing
        assert exc_info.value.status == 412

    def test_unknown_protocol(self):
        """Unknown protocol is rejected at bind time."""
        with pytest.raises(UnsupportedProtocolError):
            ServiceBinding.create("svc", "ROUND", "customerId", {"max": 10})

    def test_missing_protocol_requirement(self):
        """COUNT without max is rejected."""
        with pytest.raises(PreconditionFailedError, match="requires: max"):
            ServiceBinding.create("svc", "COUNT", "customerId", {})

    def test_protocol_max_alias(self):
        """protocol_max is accepted for max."""
        binding = ServiceBinding.create("svc", "COUNT", "customerId", {"protocol_max": 5})

        assert binding.protocol_params["max"] == 5

    def test_max_string_coerced(self):
        """Integer strings are coerced."""
        binding = ServiceBinding.create("svc", "COUNT", "customerId", {"max": "12"})

        assert binding.protocol_params["max"] == 12

    @pytest.mark.parametrize("value,expected", [("10.0", 10), (" 7 ", 7), (4.0, 4)])
    def test_max_integral_values_coerced(self, value, expected):
        """Integral floats and numeric strings are accepted."""
        binding = ServiceBinding.create("svc", "COUNT", "customerId", {"max": value})

        assert binding.protocol_params["max"] == expected

    @pytest.mark.parametrize("value", [0, -3, "abc", 2.5, True, "1.5", "0.0", "inf"])
    def test_invalid_max(self, value):
        """max must be a positive integer."""
        with pytest.raises(PreconditionFailedError, match="positive integer"):
            ServiceBinding.create("svc", "COUNT", "customerId", {"max": value})

    def test_params_are_read_only(self):
        """Binding parameters cannot be mutated."""
        binding = ServiceBinding.create("svc", "COUNT", "customerId", {"max": 10})

        with pytest.raises(TypeError):
            binding.protocol_params["max"] = 20

    def test_counter_key(self):
        """Counter key joins lowercased name, protocol and field with the value."""
        binding = ServiceBinding.create("ServiceName", "COUNT", "customerId", {"max": 10})

        assert binding.counter_key(1) == "servicename_count_customerid_1"
        assert binding.counter_key("AbC") == "servicename_count_customerid_AbC"

    def test_counter_key_distinct_per_entity(self):
        """Different entity values get different keys."""
        binding = ServiceBinding.create("svc", "COUNT", "customerId", {"max": 10})

        assert binding.counter_key(1) != binding.counter_key(2)

    def test_next_sequence(self):
        """Binding applies its protocol's transition."""
        binding = ServiceBinding.create("svc", "COUNT", "customerId", {"max": 10})

        assert binding.next_sequence(None) == 1
        assert binding.next_sequence(10) == 1
        assert binding.next_sequence(23) == 3

    def test_to_dict(self):
        """Binding serializes to plain values."""
        binding = ServiceBinding.create("svc", "count", "customerId", {"max": 3})

        assert binding.to_dict() == {
            "name": "svc",
            "protocol": "COUNT",
            "protocol_field": "customerId",
            "protocol_params": {"max": 3},
        }
