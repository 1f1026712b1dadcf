"""
SubmapStateStore: per-submap raster cache and pose state.

Entries are created on first mention of a SubmapId and live for the lifetime
of the store. Pose and metadata_version follow every update; the raster is
only rebuilt when the texture version changes or no raster exists yet.

The store itself is not thread-safe; the pipeline holds its cycle lock
around every access.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple

import numpy as np

from grid_compositor.backend.structures.texture import (
    SubmapTexture,
    check_row_stride,
    texture_to_raster,
)
from grid_compositor.common.errors import InvariantViolation
from grid_compositor.common.transforms.rigid import se3_identity


class SubmapId(NamedTuple):
    """(trajectory_id, submap_index); tuple ordering is the stacking order."""

    trajectory_id: int
    submap_index: int


@dataclass
class SubmapState:
    """Cached texture data plus the latest pose metadata for one submap."""

    # Texture data.
    width: int = 0
    height: int = 0
    version: int = -1
    resolution: float = 0.0
    slice_pose: np.ndarray = field(default_factory=se3_identity)
    raster: Optional[np.ndarray] = None

    # Metadata.
    pose: np.ndarray = field(default_factory=se3_identity)
    metadata_version: int = -1

    @property
    def has_raster(self) -> bool:
        return self.raster is not None


class SubmapStateStore:
    """Mapping SubmapId -> SubmapState."""

    def __init__(self) -> None:
        self._submaps: Dict[SubmapId, SubmapState] = {}

    def __len__(self) -> int:
        return len(self._submaps)

    def __contains__(self, submap_id) -> bool:
        return SubmapId(*submap_id) in self._submaps

    def get_or_create(self, submap_id) -> SubmapState:
        key = SubmapId(*submap_id)
        state = self._submaps.get(key)
        if state is None:
            state = SubmapState()
            self._submaps[key] = state
        return state

    def update_metadata(self, submap_id, pose, metadata_version: int) -> None:
        state = self.get_or_create(submap_id)
        state.pose = np.asarray(pose, dtype=np.float64).reshape(6).copy()
        state.metadata_version = int(metadata_version)

    def needs_refresh(self, submap_id, incoming_version: int) -> bool:
        state = self.get_or_create(submap_id)
        return state.raster is None or state.version != int(incoming_version)

    def install_raster(self, submap_id, texture: SubmapTexture) -> SubmapState:
        """Replace the raster of submap_id with the packed pixels of texture."""
        check_row_stride(texture.width)
        raster = texture_to_raster(texture)
        if raster.size != texture.width * texture.height:
            raise InvariantViolation(
                f"Raster for submap {tuple(submap_id)} has {raster.size} pixels, "
                f"expected {texture.width * texture.height}"
            )

        state = self.get_or_create(submap_id)
        state.width = int(texture.width)
        state.height = int(texture.height)
        state.version = int(texture.version)
        state.slice_pose = np.asarray(texture.slice_pose, dtype=np.float64).reshape(6).copy()
        state.resolution = float(texture.resolution)
        state.raster = raster
        return state

    def items(self) -> Iterator[Tuple[SubmapId, SubmapState]]:
        """All entries in ascending SubmapId order."""
        for key in sorted(self._submaps):
            yield key, self._submaps[key]

    def drawable(self) -> List[Tuple[SubmapId, SubmapState]]:
        """Entries with a raster, in ascending SubmapId order."""
        return [(key, state) for key, state in self.items() if state.has_raster]
