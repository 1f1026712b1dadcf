"""
Common package for the occupancy grid compositor.

Shared constants, parameters, errors and transforms used by both frontend
and backend.

Subpackages:
- transforms/: rigid transform helpers on 6D rotvec poses
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "CycleReport",
    "InvariantViolation",
    "OccupancyGridParams",
    "TextureFetchError",
    "constants",
]

_LAZY_ATTRS: dict[str, tuple[str, str | None]] = {
    "CycleReport": ("grid_compositor.common.cycle_report", "CycleReport"),
    "InvariantViolation": ("grid_compositor.common.errors", "InvariantViolation"),
    "TextureFetchError": ("grid_compositor.common.errors", "TextureFetchError"),
    # pydantic is only imported when parameters are actually requested.
    "OccupancyGridParams": ("grid_compositor.common.param_models", "OccupancyGridParams"),
    "constants": ("grid_compositor.common.constants", None),
}


def __getattr__(name: str) -> Any:
    target = _LAZY_ATTRS.get(name)
    if target is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module_name, attr_name = target
    module = import_module(module_name)
    return module if attr_name is None else getattr(module, attr_name)


def __dir__() -> list[str]:
    return sorted(set(globals().keys()) | set(_LAZY_ATTRS.keys()))
