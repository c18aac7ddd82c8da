"""
Fixed-point arithmetic helpers.

Operands are signed two's-complement integers. A product of two operands is
computed at full precision and accumulated in a wider register; narrowing back
to the result width saturates:

    value > 2^(bits-1) - 1   ->  2^(bits-1) - 1
    value < -2^(bits-1)      -> -2^(bits-1)
    otherwise                ->  low ``bits`` bits, sign preserved

Each rule exists twice: as a function on Python ints (used by the reference
model and tests) and as an Amaranth expression builder (used by the RTL).
"""

from amaranth import Mux


def signed_range(bits: int) -> tuple[int, int]:
    """Return (min, max) of a signed ``bits``-wide integer."""
    return -(1 << (bits - 1)), (1 << (bits - 1)) - 1


def wrap(value: int, bits: int) -> int:
    """Reinterpret the low ``bits`` bits of ``value`` as a signed integer."""
    mask = (1 << bits) - 1
    value &= mask
    if value >> (bits - 1):
        value -= 1 << bits
    return value


def saturate(value: int, bits: int) -> int:
    """Clamp ``value`` into the signed ``bits``-wide range."""
    lo, hi = signed_range(bits)
    if value > hi:
        return hi
    if value < lo:
        return lo
    return wrap(value, bits)


def relu(value: int, bits: int) -> int:
    """ReLU on a signed value: 0 when negative, otherwise saturate."""
    if value < 0:
        return 0
    return saturate(value, bits)


def mac(acc: int, a: int, b: int, acc_bits: int) -> int:
    """Multiply-accumulate with the accumulator register's wrap-around."""
    return wrap(acc + a * b, acc_bits)


# =============================================================================
# Amaranth expression builders
# =============================================================================


def saturate_expr(value, bits: int):
    """
    Build a saturating narrowing of ``value`` to ``bits`` bits.

    Args:
        value: Signed Amaranth value (typically the accumulator)
        bits: Target width

    Returns:
        Amaranth expression that fits in ``signed(bits)``.
    """
    lo, hi = signed_range(bits)
    return Mux(value > hi, hi, Mux(value < lo, lo, value[:bits].as_signed()))


def relu_expr(value, bits: int):
    """Build ReLU followed by saturation; tests the sign bit only."""
    return Mux(value[-1], 0, saturate_expr(value, bits))
