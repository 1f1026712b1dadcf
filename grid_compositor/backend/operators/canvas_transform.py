"""
TransformComposer: raster pixel coordinates -> canvas pixel coordinates.

World transform of a submap raster = pose ∘ slice_pose. The canvas uses image
convention (y down) while poses use y up, so the planar world transform is
conjugated by the flip F = diag(1, -1):

    A = F · S(1 / grid_resolution) · W · F · S(submap_resolution)

An identity pose and slice pose with equal resolutions map raster pixel
(x, y) onto canvas (x, y). Raster columns therefore run along world +x and
raster rows along world -y; upstream slice poses must be expressed in this
convention (cartographer's own renderer instead maps raster (x, y) to
(-y, x)). All matrices are 3x3 homogeneous, acting on column vectors
(x, y, 1).
"""

from __future__ import annotations

import numpy as np

from grid_compositor.backend.structures.submap_store import SubmapState
from grid_compositor.common.transforms.rigid import se3_compose, se3_to_matrix

_FLIP_Y = np.diag([1.0, -1.0, 1.0])


def scale_2d(s: float) -> np.ndarray:
    return np.diag([float(s), float(s), 1.0])


def translate_2d(tx: float, ty: float) -> np.ndarray:
    T = np.eye(3, dtype=np.float64)
    T[0, 2] = float(tx)
    T[1, 2] = float(ty)
    return T


def planar_world_transform(pose, slice_pose) -> np.ndarray:
    """3x3 planar part of pose ∘ slice_pose (rotation about z + x/y translation)."""
    M = se3_to_matrix(se3_compose(pose, slice_pose))
    W = np.eye(3, dtype=np.float64)
    W[:2, :2] = M[:2, :2]
    W[:2, 2] = M[:2, 3]
    return W


def raster_to_canvas(state: SubmapState, grid_resolution: float) -> np.ndarray:
    """Affine from raster pixel coordinates to (untranslated) canvas pixels."""
    if grid_resolution <= 0.0:
        raise ValueError(f"grid_resolution must be positive, got {grid_resolution}")
    W = planar_world_transform(state.pose, state.slice_pose)
    return (
        _FLIP_Y
        @ scale_2d(1.0 / grid_resolution)
        @ W
        @ _FLIP_Y
        @ scale_2d(state.resolution)
    )


def apply_affine(A: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Map (N, 2) points through a 3x3 affine."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    return pts @ A[:2, :2].T + A[:2, 2]
