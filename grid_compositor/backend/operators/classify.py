"""
GridClassifier: packed canvas pixels -> tri-state occupancy cells.

Rows are consumed bottom-up (last canvas row first) so the flat output starts
at the grid origin; columns stay left to right. Per pixel:

    observed == 0                     -> -1 (unknown)
    p = round((1 - color/255) * 100)
    p > 50                            -> 100 (occupied)
    otherwise                         -> 0 (free)

p outside [0, 100] means the packed format is not what we think it is and
raises InvariantViolation instead of being clamped.
"""

from __future__ import annotations

import numpy as np

from grid_compositor.backend.structures.texture import unpack_channel
from grid_compositor.common import constants
from grid_compositor.common.errors import InvariantViolation

GRID_DTYPE = np.int8


def occupancy_probability(color: np.ndarray) -> np.ndarray:
    """Integer probability in percent, rounded half up."""
    color = np.asarray(color, dtype=np.float64)
    return np.floor((1.0 - color / 255.0) * 100.0 + 0.5).astype(np.int32)


def classify_pixels(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Classify a flat, top-row-first packed buffer of width*height pixels.

    Returns a flat int8 grid, bottom row first.
    """
    pixels = np.asarray(pixels).reshape(-1)
    if pixels.shape[0] != int(width) * int(height):
        raise InvariantViolation(
            f"Pixel buffer holds {pixels.shape[0]} values, expected {width}x{height}"
        )
    rows = pixels.reshape(int(height), int(width))[::-1]

    color = unpack_channel(rows, constants.PIXEL_INTENSITY_SHIFT)
    observed = unpack_channel(rows, constants.PIXEL_OBSERVED_SHIFT)
    probability = occupancy_probability(color)

    observed_mask = observed != constants.OBSERVED_FALSE
    checked = probability[observed_mask]
    if checked.size and (
        checked.min() < constants.PROBABILITY_MIN or checked.max() > constants.PROBABILITY_MAX
    ):
        raise InvariantViolation(
            f"Occupancy probability outside [{constants.PROBABILITY_MIN}, "
            f"{constants.PROBABILITY_MAX}]: min={int(checked.min())} max={int(checked.max())}"
        )

    cells = np.where(
        probability > constants.OCCUPIED_PROBABILITY_THRESHOLD,
        constants.CELL_OCCUPIED,
        constants.CELL_FREE,
    )
    cells = np.where(observed_mask, cells, constants.CELL_UNKNOWN)
    return cells.astype(GRID_DTYPE).reshape(-1)


def cell_histogram(grid: np.ndarray) -> dict:
    grid = np.asarray(grid)
    return {
        "unknown": int(np.count_nonzero(grid == constants.CELL_UNKNOWN)),
        "free": int(np.count_nonzero(grid == constants.CELL_FREE)),
        "occupied": int(np.count_nonzero(grid == constants.CELL_OCCUPIED)),
    }
