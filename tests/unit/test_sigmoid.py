"""
Unit tests for the sigmoid lookup table and index computation.
"""

import pytest

from pegrid.arith import SIGMOID_LUT, sigmoid_index, sigmoid_lookup


class TestSigmoidTable:
    def test_table_shape(self):
        assert len(SIGMOID_LUT) == 16
        assert SIGMOID_LUT[0] == 0
        assert SIGMOID_LUT[-1] == 255

    def test_table_is_monotonic(self):
        assert all(a <= b for a, b in zip(SIGMOID_LUT, SIGMOID_LUT[1:], strict=False))

    def test_midpoint(self):
        assert sigmoid_lookup(6) == 128

    def test_lookup_out_of_range(self):
        with pytest.raises(IndexError):
            sigmoid_lookup(16)
        with pytest.raises(IndexError):
            sigmoid_lookup(-1)


class TestSigmoidIndex:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (0, 8),
            (15, 8),
            (16, 9),
            (-1, 7),
            (-20, 6),
            (50, 11),
            (111, 14),
            # clamps
            (112, 15),
            (10**6, 15),
            (-128, 0),
            (-(10**6), 0),
        ],
    )
    def test_index_frac4(self, value, expected):
        assert sigmoid_index(value, 4) == expected

    def test_index_monotonic(self):
        indices = [sigmoid_index(v, 4) for v in range(-200, 200)]
        assert all(a <= b for a, b in zip(indices, indices[1:], strict=False))
        assert min(indices) == 0
        assert max(indices) == 15

    def test_index_scales_with_frac_bits(self):
        assert sigmoid_index(256, 8) == 9
        assert sigmoid_index(256, 4) == 15


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
