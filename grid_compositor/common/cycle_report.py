"""
Per-cycle report for the occupancy grid pipeline.

Every update cycle produces a CycleReport, including the cycles that were
skipped (no consumers, no rasters). The node may publish it as JSON for
dashboards; the pipeline keeps the latest one for inspection.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Optional


def _json_safe(obj):
    """
    Convert numpy scalars/arrays and containers to JSON-serializable types.

    Unknown objects fall back to their repr so a report never breaks a cycle.
    """
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj

    if isinstance(obj, (list, tuple)):
        return [_json_safe(x) for x in obj]
    if isinstance(obj, dict):
        return {str(k): _json_safe(v) for k, v in obj.items()}

    tolist = getattr(obj, "tolist", None)
    if callable(tolist):
        return tolist()
    item = getattr(obj, "item", None)
    if callable(item):
        return item()

    return repr(obj)


@dataclass
class CycleReport:
    """
    Summary of one submap-list update cycle.

    Attributes:
        frame_id: Frame of the incoming submap list
        stamp: Stamp of the incoming submap list (seconds)
        n_submaps: Descriptors in the update
        n_refreshed: Rasters (re)installed this cycle
        n_fetch_failures: Submaps whose texture could not be fetched
        n_drawable: Submaps with a raster that were composited
        skipped_reason: None, "no_consumers" or "no_rasters"
        canvas_width / canvas_height: Output grid size (0 when skipped)
        denoise_mode: Denoise filter applied to the grid
        n_unknown / n_free / n_occupied: Cell histogram of the output
        elapsed_sec: Wall time of the cycle
    """
    frame_id: str = ""
    stamp: float = 0.0
    n_submaps: int = 0
    n_refreshed: int = 0
    n_fetch_failures: int = 0
    n_drawable: int = 0
    skipped_reason: Optional[str] = None
    canvas_width: int = 0
    canvas_height: int = 0
    denoise_mode: str = "none"
    n_unknown: int = 0
    n_free: int = 0
    n_occupied: int = 0
    elapsed_sec: float = 0.0
    timestamp: float = field(default_factory=time.time)

    @property
    def published(self) -> bool:
        return self.skipped_reason is None

    def to_dict(self) -> dict:
        return {
            "frame_id": self.frame_id,
            "stamp": self.stamp,
            "n_submaps": self.n_submaps,
            "n_refreshed": self.n_refreshed,
            "n_fetch_failures": self.n_fetch_failures,
            "n_drawable": self.n_drawable,
            "skipped_reason": self.skipped_reason,
            "canvas_width": self.canvas_width,
            "canvas_height": self.canvas_height,
            "denoise_mode": self.denoise_mode,
            "n_unknown": _json_safe(self.n_unknown),
            "n_free": _json_safe(self.n_free),
            "n_occupied": _json_safe(self.n_occupied),
            "elapsed_sec": self.elapsed_sec,
            "timestamp": self.timestamp,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)
