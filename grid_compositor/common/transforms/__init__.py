"""Rigid transform helpers (6D rotvec poses)."""

from __future__ import annotations

from grid_compositor.common.transforms.rigid import (
    se3_compose,
    se3_from_quat,
    se3_identity,
    se3_to_matrix,
    se3_to_quat,
)

__all__ = [
    "se3_compose",
    "se3_from_quat",
    "se3_identity",
    "se3_to_matrix",
    "se3_to_quat",
]
