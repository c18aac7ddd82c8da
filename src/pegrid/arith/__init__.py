"""
Fixed-point arithmetic building blocks.

This module contains the stateless arithmetic used by the PE:
- fixed_point: saturation, ReLU and MAC rules (Python and Amaranth forms)
- sigmoid: 16-entry sigmoid lookup table and its index computation
"""

from .fixed_point import mac, relu, relu_expr, saturate, saturate_expr, signed_range, wrap
from .sigmoid import (
    SIGMOID_LUT,
    sigmoid_index,
    sigmoid_index_expr,
    sigmoid_lookup,
    sigmoid_table,
)

__all__ = [
    "signed_range",
    "wrap",
    "saturate",
    "relu",
    "mac",
    "saturate_expr",
    "relu_expr",
    "SIGMOID_LUT",
    "sigmoid_index",
    "sigmoid_lookup",
    "sigmoid_index_expr",
    "sigmoid_table",
]
