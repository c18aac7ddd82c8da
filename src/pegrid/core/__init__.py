"""
Core PE components.

This module contains the compute building blocks:
- ActivationUnit: Linear / ReLU / sigmoid selector
- PE: Buffered, pipelined MAC unit with ready/valid handshakes
- PEGrid: Row-chained rectangular grid of PEs
"""

from .activation import ActivationUnit
from .grid import PEGrid
from .pe import PE

__all__ = ["ActivationUnit", "PE", "PEGrid"]
