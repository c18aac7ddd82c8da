"""
Cycle-accurate Python reference models.

- PEModel: Behavioural mirror of the PE component
- GridModel: Behavioural mirror of the PEGrid component
"""

from .pe_model import GRID_CONTROLS, PE_INPUTS, GridModel, PEModel

__all__ = ["PEModel", "GridModel", "PE_INPUTS", "GRID_CONTROLS"]
