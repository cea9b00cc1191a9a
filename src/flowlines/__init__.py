"""
Flow-Line Generation Library

This package traces space-filling flow lines over a 2D vector field:
- FlowLineGenerator: bidirectional RK4 tracing with density-aware spacing
- OccupancyGrid: multi-resolution occupancy bitmask grid
- Vector: immutable 2D vector with cached length
"""

from .vector import Vector
from .occupancy import OccupancyGrid, cell_sizes
from .generator import FlowConfig, FlowLine, FlowLineGenerator, run_model
from . import fields
from . import utils

__all__ = [
    # Generator
    "FlowLineGenerator",
    "FlowConfig",
    "FlowLine",
    "run_model",
    # Building blocks
    "OccupancyGrid",
    "cell_sizes",
    "Vector",
    # Utilities
    "fields",
    "utils",
]
