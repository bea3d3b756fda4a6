"""Unit tests for preflight_core.requirements.probes.sizes."""

from __future__ import annotations

import pytest

from preflight_core.requirements.probes.sizes import get_byte_size


class TestGetByteSize:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("5K", 5 * 1024),
            ("5kb", 5 * 1024),
            ("128M", 128 * 1024**2),
            ("128 MB", 128 * 1024**2),
            ("2G", 2 * 1024**3),
            ("1.5gb", int(1.5 * 1024**3)),
        ],
    )
    def test_units(self, value, expected):
        assert get_byte_size(value) == expected

    @pytest.mark.parametrize(("value", "expected"), [("1024", 1024), (2048, 2048), ("-1", -1), (-1, -1)])
    def test_numeric_passthrough(self, value, expected):
        assert get_byte_size(value) == expected

    @pytest.mark.parametrize("value", ["", None])
    def test_empty_is_zero(self, value):
        assert get_byte_size(value) == 0

    @pytest.mark.parametrize("value", ["12X", "lots", "M", "abcM"])
    def test_unparseable_is_zero(self, value):
        assert get_byte_size(value) == 0


class TestNumericPrecision:
    def test_large_integer_string_exact(self):
        assert get_byte_size("9007199254740993") == 9007199254740993

    def test_large_integer_with_unit_exact(self):
        assert get_byte_size("9007199254740993K") == 9007199254740993 * 1024

    @pytest.mark.parametrize(("value", "expected"), [("1e3", 1000), ("2.5E2", 250), ("1e1K", 10 * 1024)])
    def test_exponent_forms(self, value, expected):
        assert get_byte_size(value) == expected

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf"), "1e400"])
    def test_non_finite_is_zero(self, value):
        assert get_byte_size(value) == 0
