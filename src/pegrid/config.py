"""
Pegrid Configuration Module

This module defines the configuration dataclass for the processing element
(PE) generator. All hardware parameters are specified here and propagate
through the design: operand widths, queue depths, the weight store capacity
and the dimensions of the PE grid.

Note: Only the sigmoid index computation interprets operands as fixed-point
values with ``frac_bits`` fractional bits. The linear and ReLU paths treat all
operands as plain integers.
"""

from dataclasses import dataclass
from enum import Enum


class ActivationFunc(Enum):
    """
    Activation function selector values (``act_func_sel`` port).

    TANH is reserved: it has no modeled transformation and falls through to
    the linear path.
    """

    LINEAR = 0
    RELU = 1
    SIGMOID = 2
    TANH = 3


class DataflowMode(Enum):
    """
    Dataflow modes selecting which weight a compute cycle uses.

    - WEIGHT_STATIONARY: Always reuse weight store slot 0
    - OUTPUT_STATIONARY: Rotate through the loaded weights, one per compute
    - INPUT_STATIONARY: Bypass the store and use the ``weight_in`` port value

    Any other 2-bit code behaves as WEIGHT_STATIONARY.
    """

    WEIGHT_STATIONARY = 0b00
    OUTPUT_STATIONARY = 0b01
    INPUT_STATIONARY = 0b10


class PEState(Enum):
    """Pipeline controller states (``state`` / ``prev_state`` ports)."""

    IDLE = 0
    COMPUTE = 1
    ACTIVATE = 2
    OUTPUT = 3


@dataclass
class PEConfig:
    """
    Configuration for the PE and PE grid generators.

    Example:
        >>> config = PEConfig(fifo_depth=4)
        >>> print(config.data_max)  # 127
        >>> print(config.total_pes)  # 4
    """

    # =========================================================================
    # Data Types (bit widths)
    # =========================================================================
    data_bits: int = 8
    """Bit width of activations and results (DATA_WIDTH)."""

    weight_bits: int = 8
    """Bit width of weights (WEIGHT_WIDTH)."""

    acc_bits: int = 24
    """Bit width of the accumulator (ACCUM_WIDTH)."""

    frac_bits: int = 4
    """Fractional bits, used only by the sigmoid index computation."""

    # =========================================================================
    # Buffer Configuration
    # =========================================================================
    fifo_depth: int = 8
    """Capacity of the input and output queues (FIFO_DEPTH)."""

    weight_buffer_depth: int = 16
    """Capacity of the weight store (WEIGHT_BUFFER_DEPTH)."""

    # =========================================================================
    # Grid Dimensions
    # =========================================================================
    grid_rows: int = 2
    """Number of PE rows in the grid."""

    grid_cols: int = 2
    """Number of PEs chained along each row."""

    # =========================================================================
    # Computed Properties
    # =========================================================================
    @property
    def data_min(self) -> int:
        """Most negative representable result."""
        return -(1 << (self.data_bits - 1))

    @property
    def data_max(self) -> int:
        """Most positive representable result."""
        return (1 << (self.data_bits - 1)) - 1

    @property
    def acc_min(self) -> int:
        """Most negative accumulator value."""
        return -(1 << (self.acc_bits - 1))

    @property
    def acc_max(self) -> int:
        """Most positive accumulator value."""
        return (1 << (self.acc_bits - 1)) - 1

    @property
    def product_bits(self) -> int:
        """Full-precision product width."""
        return self.data_bits + self.weight_bits

    @property
    def total_pes(self) -> int:
        """Total number of processing elements in the grid."""
        return self.grid_rows * self.grid_cols

    def __post_init__(self):
        """Validate configuration parameters."""
        assert self.data_bits > 1, "data_bits must be at least 2"
        assert self.weight_bits > 1, "weight_bits must be at least 2"
        assert self.acc_bits >= self.data_bits + self.weight_bits, (
            "acc_bits should be >= data_bits + weight_bits to avoid overflow"
        )
        assert 0 <= self.frac_bits < self.data_bits, "frac_bits must be in [0, data_bits)"
        assert self.fifo_depth > 0, "fifo_depth must be positive"
        assert self.weight_buffer_depth > 0, "weight_buffer_depth must be positive"
        assert self.grid_rows > 0, "grid_rows must be positive"
        assert self.grid_cols > 0, "grid_cols must be positive"


# Pre-defined configurations
DEFAULT_CONFIG = PEConfig()
"""Default configuration (8-bit operands, 24-bit accumulator, 2x2 grid)."""

SMALL_CONFIG = PEConfig(fifo_depth=2, weight_buffer_depth=4)
"""Shallow buffers, handy for exercising backpressure in simulation."""

WIDE_CONFIG = PEConfig(data_bits=16, weight_bits=16, acc_bits=40, frac_bits=8)
"""16-bit operands with a 40-bit accumulator."""
