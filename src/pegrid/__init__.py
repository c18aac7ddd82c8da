"""
Pegrid - A configurable fixed-point processing element generator.

This package provides a ready/valid buffered MAC processing element and a
row-chained PE grid as Amaranth HDL components, plus a cycle-accurate Python
reference model and simulation tracing.
"""

from .config import ActivationFunc, DataflowMode, PEConfig, PEState

__version__ = "0.1.0"
__all__ = ["PEConfig", "ActivationFunc", "DataflowMode", "PEState", "__version__"]
