"""
Error taxonomy for the compositor.

InvariantViolation is fatal: upstream data broke an assumption the renderer
relies on, and no map is published. TextureFetchError is local to one submap
and only removes it from the current cycle.
"""

from __future__ import annotations


class InvariantViolation(RuntimeError):
    """Stride, raster size, or probability range assumption broken."""


class TextureFetchError(RuntimeError):
    """A submap texture could not be obtained for this cycle."""

    def __init__(self, submap_id, reason: str):
        super().__init__(f"Texture fetch failed for submap {tuple(submap_id)}: {reason}")
        self.submap_id = submap_id
        self.reason = reason
