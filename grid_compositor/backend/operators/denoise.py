"""
Optional denoise passes over a classified grid.

Both filters walk the flat grid once, row by row, left to right, and write
each result straight back into the buffer they read from. A cell visited
later in the pass therefore sees already-filtered neighbours above and to its
left. This read-after-write bias is part of the filters' behaviour; do not
switch them to a separate output buffer.

The pass runs over a Python list copy of the grid, which is the buffer it
reads from and writes to, and copies the list back into the array at the end.
Sums of Python ints never wrap in int8.
"""

from __future__ import annotations

from enum import Enum

import numpy as np

from grid_compositor.common import constants


class DenoiseMode(str, Enum):
    NONE = "none"
    NEIGHBORHOOD_MAJORITY = "neighborhood_majority"
    LOCAL_VOTE = "local_vote"


def _triggers(value: int, threshold: float) -> bool:
    return value < 0 or value > threshold


def _div_trunc(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


def neighborhood_majority_filter(
    grid: np.ndarray,
    width: int,
    height: int,
    threshold: float = constants.DENOISE_OCCUPANCY_THRESHOLD_DEFAULT,
) -> np.ndarray:
    """
    3x3 neighbourhood sum over 10 on interior cells, in place.

    Border cells are left untouched. Interior cells that are unknown or above
    threshold become 100 if sum/10 > threshold/10, else 0 if sum/10 > 1,
    else -1. All other interior cells become 0.
    """
    w, h = int(width), int(height)
    cells = grid.tolist()
    for y in range(1, h - 1):
        for x in range(1, w - 1):
            idx = y * w + x
            value = cells[idx]
            if _triggers(value, threshold):
                total = 0
                for i in range(y - 1, y + 2):
                    row = i * w
                    for j in range(x - 1, x + 2):
                        total += cells[row + j]
                value = _div_trunc(total, constants.NEIGHBORHOOD_MAJORITY_DIVISOR)
                if value > threshold * 0.1:
                    cells[idx] = constants.CELL_OCCUPIED
                elif value > 1:
                    cells[idx] = constants.CELL_FREE
                else:
                    cells[idx] = constants.CELL_UNKNOWN
            else:
                cells[idx] = constants.CELL_FREE
    grid[:] = cells
    return grid


def local_vote_filter(
    grid: np.ndarray,
    width: int,
    height: int,
    threshold: float = constants.DENOISE_OCCUPANCY_THRESHOLD_DEFAULT,
) -> np.ndarray:
    """
    5x5 vote of "non-occupied" cells (0 < v < threshold), in place.

    The window is clipped at the grid edges. Cells that are unknown or above
    threshold become 0 if votes > count // 2, else 100 when they were positive
    and -1 otherwise. Every other cell is forced to 0.
    """
    w, h = int(width), int(height)
    r = constants.LOCAL_VOTE_RADIUS
    cells = grid.tolist()
    for y in range(h):
        i0, i1 = max(0, y - r), min(h - 1, y + r)
        for x in range(w):
            idx = y * w + x
            value = cells[idx]
            if not _triggers(value, threshold):
                cells[idx] = constants.CELL_FREE
                continue
            j0, j1 = max(0, x - r), min(w - 1, x + r)
            count = 0
            votes = 0
            for i in range(i0, i1 + 1):
                row = i * w
                for j in range(j0, j1 + 1):
                    sample = cells[row + j]
                    count += 1
                    if 0 < sample < threshold:
                        votes += 1
            if votes > count // 2:
                cells[idx] = constants.CELL_FREE
            elif value > 0:
                cells[idx] = constants.CELL_OCCUPIED
            else:
                cells[idx] = constants.CELL_UNKNOWN
    grid[:] = cells
    return grid


def apply_denoise(
    grid: np.ndarray,
    width: int,
    height: int,
    mode=DenoiseMode.NONE,
    threshold: float = constants.DENOISE_OCCUPANCY_THRESHOLD_DEFAULT,
) -> np.ndarray:
    """Run the selected filter in place; DenoiseMode.NONE returns grid untouched."""
    mode = DenoiseMode(mode)
    if mode is DenoiseMode.NEIGHBORHOOD_MAJORITY:
        return neighborhood_majority_filter(grid, width, height, threshold)
    if mode is DenoiseMode.LOCAL_VOTE:
        return local_vote_filter(grid, width, height, threshold)
    return grid
