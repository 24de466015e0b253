"""Tests for qfsettle/core/ledger_math.py: integer ledger arithmetic and parsing."""

import pytest

import hypothesis.strategies as st
from hypothesis import given, settings

from qfsettle.core.ledger_math import (
    LAMPORTS_PER_SOL,
    MAX_DECIMAL_DIGITS,
    add,
    area_increment,
    clamp,
    div,
    isqrt_floor,
    lamports_to_sol_str,
    mul,
    parse_uint,
    parse_uint_checked,
    sub,
)


# ---------------------------------------------------------------------------
# Basic operations
# ---------------------------------------------------------------------------

class TestBasicOps:
    def test_add(self):
        assert add(2, 3) == 5

    def test_sub_saturates(self):
        assert sub(3, 5) == 0
        assert sub(5, 3) == 2

    def test_mul_no_wrap(self):
        # pool * area**2 well past u128
        assert mul(10**18, 10**40) == 10**58

    def test_div_by_zero_is_zero(self):
        assert div(10, 0) == 0

    def test_div_floors(self):
        assert div(7, 2) == 3

    def test_clamp(self):
        assert clamp(5, 0, 3) == 3
        assert clamp(-1, 0, 3) == 0
        assert clamp(2, 0, 3) == 2

    def test_negative_operand_rejected(self):
        with pytest.raises(ValueError):
            add(-1, 1)

    def test_bool_operand_rejected(self):
        with pytest.raises(TypeError):
            sub(True, 1)

    def test_float_operand_rejected(self):
        with pytest.raises(TypeError):
            mul(1.5, 2)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestParseUint:
    def test_decimal_string(self):
        assert parse_uint_checked("1000000000") == (1_000_000_000, True)

    def test_whitespace_allowed(self):
        assert parse_uint_checked(" 42 ") == (42, True)

    def test_plain_int(self):
        assert parse_uint_checked(7) == (7, True)

    def test_ascii_bytes(self):
        assert parse_uint_checked(b"77") == (77, True)

    @pytest.mark.parametrize(
        "raw",
        [None, True, False, 1.5, "1.5", "-5", -5, "0x10", "", "   ", "12abc", object(), [], {}],
    )
    def test_malformed_reads_as_zero(self, raw):
        assert parse_uint_checked(raw) == (0, False)
        assert parse_uint(raw) == 0

    def test_oversized_rejected(self):
        assert parse_uint_checked("9" * (MAX_DECIMAL_DIGITS + 1)) == (0, False)

    def test_large_value_within_limit(self):
        value, ok = parse_uint_checked(str(2**128))
        assert ok
        assert value == 2**128

    @given(n=st.integers(min_value=0, max_value=2**256))
    @settings(max_examples=200, deadline=2000)
    def test_decimal_string_parses_exactly(self, n):
        assert parse_uint_checked(str(n)) == (n, True)


# ---------------------------------------------------------------------------
# Integer square root / area
# ---------------------------------------------------------------------------

class TestIsqrt:
    @pytest.mark.parametrize(
        "x,expected",
        [(0, 0), (1, 1), (2, 1), (3, 1), (4, 2), (15, 3), (16, 4), (2500, 50), (10**40, 10**20)],
    )
    def test_known_values(self, x, expected):
        assert isqrt_floor(x) == expected

    @given(x=st.integers(min_value=0, max_value=2**200))
    @settings(max_examples=300, deadline=2000)
    def test_floor_property(self, x):
        r = isqrt_floor(x)
        assert r * r <= x < (r + 1) * (r + 1)


class TestAreaIncrement:
    def test_first_contribution(self):
        assert area_increment(0, 2500) == 50

    def test_repeat_contribution(self):
        # isqrt(4900) - isqrt(2500) = 70 - 50
        assert area_increment(2500, 2400) == 20

    def test_small_top_up_may_add_nothing(self):
        assert area_increment(2500, 1) == 0

    @given(amounts=st.lists(st.integers(min_value=0, max_value=10**15), min_size=1, max_size=20))
    @settings(max_examples=200, deadline=2000)
    def test_increments_telescope(self, amounts):
        total = 0
        area = 0
        for a in amounts:
            area += area_increment(total, a)
            total += a
        assert area == isqrt_floor(total)


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------

class TestLamportsToSol:
    def test_whole(self):
        assert lamports_to_sol_str(2 * LAMPORTS_PER_SOL) == "2"

    def test_fraction(self):
        assert lamports_to_sol_str(1_500_000_000) == "1.5"
        assert lamports_to_sol_str(250_000_000) == "0.25"

    def test_one_lamport(self):
        assert lamports_to_sol_str(1) == "0.000000001"

    def test_zero(self):
        assert lamports_to_sol_str(0) == "0"
