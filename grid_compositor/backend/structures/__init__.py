"""
Data structures for the compositor backend.

- submap_store: SubmapId, SubmapState, SubmapStateStore
- texture: SubmapTexture and the packed ARGB32 pixel codec
"""

from grid_compositor.backend.structures.submap_store import (
    SubmapId,
    SubmapState,
    SubmapStateStore,
)
from grid_compositor.backend.structures.texture import (
    SubmapTexture,
    decode_texture_cells,
    encode_texture_cells,
    pack_pixels,
)

__all__ = [
    "SubmapId",
    "SubmapState",
    "SubmapStateStore",
    "SubmapTexture",
    "decode_texture_cells",
    "encode_texture_cells",
    "pack_pixels",
]
