"""
Sigmoid lookup table.

A 16-entry table approximating sigmoid over an input range of roughly -8..+7
(in units of 2^frac_bits). Table values are expressed directly in the 0..255
range of an 8-bit result word; on a signed result port values above 127 read
back as their two's-complement bit pattern.

Index computation from a post-accumulation sum ``s``:

    s <= -8 * 2^frac_bits  ->  0
    s >=  7 * 2^frac_bits  ->  15
    otherwise              ->  ((s >> frac_bits) + 8) mod 16
"""

from amaranth import Array, Const, Mux, unsigned

SIGMOID_LUT = (0, 13, 26, 51, 77, 102, 128, 153, 179, 204, 230, 243, 250, 253, 255, 255)
"""Sigmoid table, indexed by a 4-bit index."""

SIGMOID_INDEX_BITS = 4


def sigmoid_index(value: int, frac_bits: int) -> int:
    """Compute the 4-bit table index for an accumulated sum."""
    if value <= -8 << frac_bits:
        return 0
    if value >= 7 << frac_bits:
        return 15
    return ((value >> frac_bits) + 8) % 16


def sigmoid_lookup(index: int) -> int:
    """Return the table entry for ``index`` (0..15)."""
    if not 0 <= index < len(SIGMOID_LUT):
        raise IndexError(f"sigmoid index {index} out of range 0..{len(SIGMOID_LUT) - 1}")
    return SIGMOID_LUT[index]


def sigmoid_index_expr(value, frac_bits: int):
    """Build the index computation as an Amaranth expression (4 bits wide)."""
    shifted = (value >> frac_bits) + 8
    return Mux(
        value <= -8 << frac_bits,
        0,
        Mux(value >= 7 << frac_bits, 15, shifted[:SIGMOID_INDEX_BITS]),
    )


def sigmoid_table(width: int) -> Array:
    """Return the table as an Amaranth Array of ``width``-bit constants."""
    return Array(Const(entry, unsigned(width)) for entry in SIGMOID_LUT)
