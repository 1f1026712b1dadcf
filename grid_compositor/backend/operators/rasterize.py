"""
Rasterizer: composite submap rasters onto one canvas.

The canvas is filled with the background sentinel, then every drawable submap
is painted in ascending SubmapId order with source-over blending on
premultiplied ARGB32 words (painter's algorithm: later ids win where both are
opaque). Sampling is nearest-neighbour at canvas pixel centres.
"""

from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np

from grid_compositor.backend.operators.bounding_box import CanvasGeometry
from grid_compositor.backend.operators.canvas_transform import (
    apply_affine,
    raster_to_canvas,
    translate_2d,
)
from grid_compositor.backend.structures.submap_store import SubmapId, SubmapState
from grid_compositor.backend.structures.texture import PIXEL_DTYPE
from grid_compositor.common import constants

_CHANNEL_SHIFTS = (
    constants.PIXEL_ALPHA_SHIFT,
    constants.PIXEL_INTENSITY_SHIFT,
    constants.PIXEL_OBSERVED_SHIFT,
    0,
)


def new_canvas(geometry: CanvasGeometry) -> np.ndarray:
    """(height, width) canvas filled with the background sentinel."""
    return np.full(
        (geometry.height, geometry.width),
        constants.CANVAS_BACKGROUND_PIXEL,
        dtype=PIXEL_DTYPE,
    )


def mul_un8(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """round(a * b / 255) for 8-bit operands, exact integer form."""
    t = a.astype(np.int32) * b.astype(np.int32) + 0x80
    return ((t >> 8) + t) >> 8


def composite_over(dst: np.ndarray, src: np.ndarray) -> np.ndarray:
    """Premultiplied source-over: dst' = src + dst * (1 - src_alpha), per channel."""
    dst = np.asarray(dst, dtype=PIXEL_DTYPE)
    src = np.asarray(src, dtype=PIXEL_DTYPE)
    mask = constants.PIXEL_CHANNEL_MASK
    inv_alpha = mask - ((src >> constants.PIXEL_ALPHA_SHIFT) & mask).astype(np.int32)
    out = np.zeros(dst.shape, dtype=PIXEL_DTYPE)
    for shift in _CHANNEL_SHIFTS:
        s = ((src >> shift) & mask).astype(np.int32)
        d = ((dst >> shift) & mask).astype(np.int32)
        c = np.minimum(s + mul_un8(d, inv_alpha), mask)
        out |= c.astype(PIXEL_DTYPE) << PIXEL_DTYPE(shift)
    return out


def _covered_window(A: np.ndarray, state: SubmapState, shape: Tuple[int, int]) -> Tuple[int, int, int, int]:
    """Canvas (row0, row1, col0, col1) window that can receive samples of this raster."""
    w, h = float(state.width), float(state.height)
    corners = apply_affine(A, np.array([[0.0, 0.0], [w, 0.0], [0.0, h], [w, h]]))
    lo = corners.min(axis=0)
    hi = corners.max(axis=0)
    col0 = max(int(math.floor(lo[0])), 0)
    row0 = max(int(math.floor(lo[1])), 0)
    col1 = min(int(math.ceil(hi[0])), shape[1])
    row1 = min(int(math.ceil(hi[1])), shape[0])
    return row0, row1, col0, col1


def paint_submap(canvas: np.ndarray, state: SubmapState, A: np.ndarray) -> int:
    """
    Paint state.raster onto canvas in place through affine A (raster -> canvas).

    Returns the number of canvas pixels that received a sample.
    """
    if not state.has_raster:
        return 0
    row0, row1, col0, col1 = _covered_window(A, state, canvas.shape)
    if row1 <= row0 or col1 <= col0:
        return 0

    rows, cols = np.mgrid[row0:row1, col0:col1]
    centers = np.stack([cols.ravel() + 0.5, rows.ravel() + 0.5], axis=1)
    src_xy = apply_affine(np.linalg.inv(A), centers)
    sx = np.floor(src_xy[:, 0]).astype(np.int64)
    sy = np.floor(src_xy[:, 1]).astype(np.int64)
    inside = (sx >= 0) & (sx < state.width) & (sy >= 0) & (sy < state.height)
    if not np.any(inside):
        return 0

    dst_r = rows.ravel()[inside]
    dst_c = cols.ravel()[inside]
    src = state.raster[sy[inside], sx[inside]]
    canvas[dst_r, dst_c] = composite_over(canvas[dst_r, dst_c], src)
    return int(dst_r.shape[0])


def rasterize(
    drawable: Sequence[Tuple[SubmapId, SubmapState]],
    geometry: CanvasGeometry,
) -> np.ndarray:
    """Composite all drawable submaps, ascending by id, onto a fresh canvas."""
    canvas = new_canvas(geometry)
    origin = translate_2d(geometry.origin_x, geometry.origin_y)
    for _, state in sorted(drawable, key=lambda item: item[0]):
        if not state.has_raster:
            continue
        A = origin @ raster_to_canvas(state, geometry.resolution)
        paint_submap(canvas, state, A)
    return canvas


def export_pixels(canvas: np.ndarray) -> np.ndarray:
    """Flat packed buffer, row-major, top canvas row first."""
    return np.ascontiguousarray(canvas, dtype=PIXEL_DTYPE).reshape(-1).copy()
