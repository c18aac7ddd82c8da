"""Simulation helpers: cycle tracing for PE testbenches."""

from .trace import CycleEvent, PETracer

__all__ = ["CycleEvent", "PETracer"]
