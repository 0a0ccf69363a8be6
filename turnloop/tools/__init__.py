"""
turnloop tools package

- registry: ToolSet, the name -> tool dispatch table agents call into
- math_solver: the built-in ``calculate`` tool
"""

from .registry import ToolDefinition, ToolSet
from .math_solver import CALCULATE_TOOL, calculate


def default_toolset() -> ToolSet:
    """Return a fresh toolset holding the built-in tools."""
    return ToolSet([CALCULATE_TOOL])


__all__ = [
    "ToolDefinition",
    "ToolSet",
    "CALCULATE_TOOL",
    "calculate",
    "default_toolset",
]
