"""
Submap textures and the packed ARGB32 pixel codec.

A texture is what the submap service hands out for one submap: size, version,
resolution, slice pose and two byte planes (intensity, alpha). Rendering works
on packed uint32 rasters instead; see common/constants.py for the bit layout.
"""

from __future__ import annotations

import gzip
from dataclasses import dataclass, field
from typing import Tuple

import numpy as np

from grid_compositor.common import constants
from grid_compositor.common.errors import InvariantViolation
from grid_compositor.common.transforms.rigid import se3_identity

PIXEL_DTYPE = np.uint32


@dataclass(frozen=True)
class SubmapTexture:
    """Raw texture of one submap as returned by a TextureFetcher."""

    width: int
    height: int
    version: int
    resolution: float
    intensity: bytes
    alpha: bytes
    slice_pose: np.ndarray = field(default_factory=se3_identity)

    def __post_init__(self) -> None:
        n = int(self.width) * int(self.height)
        if len(self.intensity) != n or len(self.alpha) != n:
            raise InvariantViolation(
                f"Texture planes must hold width*height={n} samples, "
                f"got intensity={len(self.intensity)} alpha={len(self.alpha)}"
            )


# -----------------------------------------------------------------------------
# Stride
# -----------------------------------------------------------------------------


def expected_row_stride(width: int) -> int:
    return constants.PIXEL_BYTES * int(width)


def native_row_stride(width: int) -> int:
    """Row stride numpy lays out for a C-contiguous packed raster of this width."""
    if width <= 0:
        return 0
    return int(np.empty((1, int(width)), dtype=PIXEL_DTYPE).strides[0])


def check_row_stride(width: int) -> int:
    """Return the row stride, raising InvariantViolation if it is not 4*width."""
    expected = expected_row_stride(width)
    native = native_row_stride(width)
    if expected != native:
        raise InvariantViolation(
            f"Row stride mismatch for width={width}: expected {expected}, native {native}"
        )
    return expected


# -----------------------------------------------------------------------------
# Packed pixels
# -----------------------------------------------------------------------------


def pack_pixels(intensity: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    """
    Pack intensity/alpha samples into ARGB32 words.

    observed is 0 only where both intensity and alpha are 0, else 255.
    """
    intensity = np.asarray(intensity, dtype=PIXEL_DTYPE)
    alpha = np.asarray(alpha, dtype=PIXEL_DTYPE)
    observed = np.where(
        (intensity == 0) & (alpha == 0),
        PIXEL_DTYPE(constants.OBSERVED_FALSE),
        PIXEL_DTYPE(constants.OBSERVED_TRUE),
    ).astype(PIXEL_DTYPE)
    return (
        (alpha << constants.PIXEL_ALPHA_SHIFT)
        | (intensity << constants.PIXEL_INTENSITY_SHIFT)
        | (observed << constants.PIXEL_OBSERVED_SHIFT)
    ).astype(PIXEL_DTYPE)


def unpack_channel(packed: np.ndarray, shift: int) -> np.ndarray:
    """Extract one 8-bit channel from packed words."""
    return ((np.asarray(packed, dtype=PIXEL_DTYPE) >> shift) & constants.PIXEL_CHANNEL_MASK).astype(np.uint8)


def texture_to_raster(texture: SubmapTexture) -> np.ndarray:
    """Packed (height, width) raster for a texture, row-major as delivered."""
    check_row_stride(texture.width)
    intensity = np.frombuffer(bytes(texture.intensity), dtype=np.uint8)
    alpha = np.frombuffer(bytes(texture.alpha), dtype=np.uint8)
    raster = pack_pixels(intensity, alpha).reshape(texture.height, texture.width)
    return np.ascontiguousarray(raster)


# -----------------------------------------------------------------------------
# SubmapQuery cell payload
# -----------------------------------------------------------------------------


def decode_texture_cells(cells: bytes, width: int, height: int) -> Tuple[bytes, bytes]:
    """
    Split a gzip-compressed, interleaved (intensity, alpha) payload.

    Returns (intensity, alpha), each width*height bytes, row-major.
    """
    raw = gzip.decompress(bytes(cells))
    n = int(width) * int(height)
    if len(raw) != constants.TEXTURE_CELL_BYTES * n:
        raise InvariantViolation(
            f"Texture payload holds {len(raw)} bytes, expected "
            f"{constants.TEXTURE_CELL_BYTES * n} for {width}x{height}"
        )
    pairs = np.frombuffer(raw, dtype=np.uint8).reshape(n, constants.TEXTURE_CELL_BYTES)
    return pairs[:, 0].tobytes(), pairs[:, 1].tobytes()


def encode_texture_cells(intensity: bytes, alpha: bytes) -> bytes:
    """Inverse of decode_texture_cells."""
    a = np.frombuffer(bytes(intensity), dtype=np.uint8)
    b = np.frombuffer(bytes(alpha), dtype=np.uint8)
    if a.shape != b.shape:
        raise ValueError(f"intensity/alpha length mismatch: {a.shape[0]} vs {b.shape[0]}")
    return gzip.compress(np.stack([a, b], axis=1).tobytes())
