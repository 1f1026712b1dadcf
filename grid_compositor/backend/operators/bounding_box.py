"""
BoundingBoxPass: dry run that sizes the canvas before any pixel is allocated.

Only the coordinate transforms are evaluated: the four raster corners of every
drawable submap are pushed through its raster->canvas affine and accumulated
into one axis-aligned box. Submaps without a raster never reach this pass.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from grid_compositor.backend.operators.canvas_transform import apply_affine, raster_to_canvas
from grid_compositor.backend.structures.submap_store import SubmapId, SubmapState
from grid_compositor.common import constants


@dataclass(frozen=True)
class CanvasGeometry:
    """Size (pixels) and origin offset (pixels) of the output canvas."""

    width: int
    height: int
    origin_x: float
    origin_y: float
    resolution: float

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def origin(self) -> Tuple[float, float]:
        return self.origin_x, self.origin_y


def raster_corners(state: SubmapState) -> np.ndarray:
    w, h = float(state.width), float(state.height)
    return np.array([[0.0, 0.0], [w, 0.0], [0.0, h], [w, h]], dtype=np.float64)


def canvas_bounds(
    drawable: Sequence[Tuple[SubmapId, SubmapState]],
    grid_resolution: float,
) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """(min_xy, max_xy) over all drawable submaps, or None if there are none."""
    lo = None
    hi = None
    for _, state in drawable:
        if not state.has_raster:
            continue
        corners = apply_affine(raster_to_canvas(state, grid_resolution), raster_corners(state))
        c_lo = corners.min(axis=0)
        c_hi = corners.max(axis=0)
        lo = c_lo if lo is None else np.minimum(lo, c_lo)
        hi = c_hi if hi is None else np.maximum(hi, c_hi)
    if lo is None:
        return None
    return lo, hi


def compute_canvas_geometry(
    drawable: Sequence[Tuple[SubmapId, SubmapState]],
    grid_resolution: float,
    padding_px: int = constants.CANVAS_PADDING_PX_DEFAULT,
) -> Optional[CanvasGeometry]:
    """
    Canvas size = ceil(bbox size) + 2*padding, origin = -bbox.min + padding.

    Returns None when no submap has a raster (the cycle is skipped).
    """
    bounds = canvas_bounds(drawable, grid_resolution)
    if bounds is None:
        return None
    lo, hi = bounds
    size = hi - lo
    pad = int(padding_px)
    return CanvasGeometry(
        width=int(math.ceil(size[0])) + 2 * pad,
        height=int(math.ceil(size[1])) + 2 * pad,
        origin_x=float(-lo[0] + pad),
        origin_y=float(-lo[1] + pad),
        resolution=float(grid_resolution),
    )
