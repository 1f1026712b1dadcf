"""
Rigid transforms on 6D poses.

Representation: (x, y, z, rx, ry, rz) where
- (x, y, z): translation in R^3
- (rx, ry, rz): rotation vector (axis-angle, radians)

Submap poses and slice poses arrive as position + quaternion (ROS Pose) and
are converted once on ingestion. Composition is exact group composition.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np
from scipy.spatial.transform import Rotation


def se3_identity() -> np.ndarray:
    return np.zeros(6, dtype=np.float64)


def _split(T) -> Tuple[np.ndarray, np.ndarray]:
    v = np.asarray(T, dtype=np.float64).reshape(-1)
    if v.shape[0] != 6:
        raise ValueError(f"Expected 6D pose [x,y,z,rx,ry,rz], got shape {v.shape}")
    return v[:3], v[3:6]


def se3_from_quat(position: Sequence[float], quat_xyzw: Sequence[float]) -> np.ndarray:
    """
    Build a 6D pose from a translation and an (x, y, z, w) quaternion.

    A zero-norm quaternion is treated as identity rotation.
    """
    t = np.asarray(position, dtype=np.float64).reshape(3)
    q = np.asarray(quat_xyzw, dtype=np.float64).reshape(4)
    if np.linalg.norm(q) < 1e-12:
        rotvec = np.zeros(3, dtype=np.float64)
    else:
        rotvec = Rotation.from_quat(q).as_rotvec()
    return np.concatenate([t, rotvec])


def se3_to_quat(T) -> Tuple[np.ndarray, np.ndarray]:
    """Return (translation (3,), quaternion (4,) as x, y, z, w)."""
    t, rotvec = _split(T)
    return t.copy(), Rotation.from_rotvec(rotvec).as_quat()


def se3_to_matrix(T) -> np.ndarray:
    """4x4 homogeneous matrix of a 6D pose."""
    t, rotvec = _split(T)
    M = np.eye(4, dtype=np.float64)
    M[:3, :3] = Rotation.from_rotvec(rotvec).as_matrix()
    M[:3, 3] = t
    return M


def se3_compose(a, b) -> np.ndarray:
    """
    Compose two transforms: T_a ∘ T_b.

    Points expressed in frame b are mapped through T_b, then T_a:
    t_out = t_a + R_a t_b, R_out = R_a R_b.
    """
    t_a, r_a = _split(a)
    t_b, r_b = _split(b)
    R_a = Rotation.from_rotvec(r_a)
    R_out = R_a * Rotation.from_rotvec(r_b)
    t_out = t_a + R_a.apply(t_b)
    return np.concatenate([t_out, R_out.as_rotvec()])
