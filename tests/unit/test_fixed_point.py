"""
Unit tests for the fixed-point helpers (Python side).

The Amaranth builders are exercised through the ActivationUnit and PE tests.
"""

import pytest

from pegrid.arith import mac, relu, saturate, signed_range, wrap


class TestSignedRange:
    @pytest.mark.parametrize(
        "bits,expected",
        [(2, (-2, 1)), (8, (-128, 127)), (16, (-32768, 32767)), (24, (-(1 << 23), (1 << 23) - 1))],
    )
    def test_bounds(self, bits, expected):
        assert signed_range(bits) == expected


class TestWrap:
    def test_in_range_unchanged(self):
        assert wrap(5, 8) == 5
        assert wrap(-5, 8) == -5

    def test_overflow_wraps(self):
        assert wrap(128, 8) == -128
        assert wrap(255, 8) == -1
        assert wrap(256, 8) == 0
        assert wrap(-129, 8) == 127


class TestSaturate:
    @pytest.mark.parametrize(
        "value,expected",
        [(0, 0), (127, 127), (128, 127), (10**6, 127), (-128, -128), (-129, -128), (-(10**6), -128)],
    )
    def test_8bit(self, value, expected):
        assert saturate(value, 8) == expected

    def test_result_always_in_range(self):
        lo, hi = signed_range(8)
        for value in range(-1000, 1000, 7):
            assert lo <= saturate(value, 8) <= hi


class TestRelu:
    def test_negative_is_zero(self):
        assert relu(-1, 8) == 0
        assert relu(-(10**6), 8) == 0

    def test_positive_saturates(self):
        assert relu(0, 8) == 0
        assert relu(64, 8) == 64
        assert relu(1000, 8) == 127


class TestMac:
    def test_accumulates(self):
        acc = 0
        for a, b in [(2, 2), (2, 4), (2, 6)]:
            acc = mac(acc, a, b, 24)
        assert acc == 24

    def test_signed_operands(self):
        assert mac(0, -3, 4, 24) == -12
        assert mac(-12, -3, -4, 24) == 0

    def test_accumulator_wraps_at_width(self):
        _, hi = signed_range(24)
        assert mac(hi, 1, 1, 24) == -(1 << 23)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
