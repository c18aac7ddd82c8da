"""
PE buffer components.

This module contains the storage used inside a PE:
- CircularQueue: Register-array FIFO for the input and output queues
- WeightStore: Circular weight buffer with dataflow-mode selection
"""

from .circular_queue import CircularQueue
from .weight_store import WeightStore

__all__ = ["CircularQueue", "WeightStore"]
