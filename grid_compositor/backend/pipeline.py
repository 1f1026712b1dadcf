"""
Occupancy grid pipeline: one update cycle per submap list.

Cycle (all under one lock, so a grid is always built from a single consistent
snapshot of the store):

    0. Skip entirely if nobody consumes the grid
    1. Per descriptor: refresh pose/metadata_version, refetch stale rasters
    2. BoundingBoxPass over submaps that have a raster
    3. Rasterize in ascending SubmapId order
    4. Classify packed pixels (bottom row first)
    5. Optional denoise
    6. Hand the grid to the publisher

Fetch failures only drop the affected submap from this cycle. InvariantViolation
is not caught anywhere in here.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from grid_compositor.backend.operators.bounding_box import CanvasGeometry, compute_canvas_geometry
from grid_compositor.backend.operators.classify import cell_histogram, classify_pixels
from grid_compositor.backend.operators.denoise import DenoiseMode, apply_denoise
from grid_compositor.backend.operators.rasterize import export_pixels, rasterize
from grid_compositor.backend.structures.submap_store import SubmapId, SubmapStateStore
from grid_compositor.backend.structures.texture import SubmapTexture
from grid_compositor.common.cycle_report import CycleReport
from grid_compositor.common.errors import TextureFetchError
from grid_compositor.common.param_models import OccupancyGridParams

_logger = logging.getLogger(__name__)

TextureFetcher = Callable[[SubmapId], Optional[SubmapTexture]]


class Stamp(NamedTuple):
    """Message time as integer (sec, nanosec); carried through a cycle unchanged."""

    sec: int
    nanosec: int

    def to_sec(self) -> float:
        return float(self.sec) + float(self.nanosec) * 1e-9


@dataclass(frozen=True)
class SubmapDescriptor:
    """One entry of a submap list: id, pose (6D) and submap version."""

    id: SubmapId
    pose: np.ndarray
    version: int


@dataclass(frozen=True)
class SubmapListUpdate:
    frame_id: str
    stamp: Stamp
    submaps: Sequence[SubmapDescriptor] = field(default_factory=tuple)


@dataclass(frozen=True)
class OccupancyGrid:
    """
    Core output grid.

    origin_position is the world position of the lower-left corner of cell 0;
    the orientation is always identity. data holds width*height int8 cells,
    bottom row first.
    """

    frame_id: str
    stamp: Stamp
    resolution: float
    width: int
    height: int
    origin_position: Tuple[float, float, float]
    data: np.ndarray
    origin_orientation: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)

    @property
    def map_load_time(self) -> Stamp:
        return self.stamp


def grid_origin(geometry: CanvasGeometry) -> Tuple[float, float, float]:
    """World position of the emitted grid's first cell (bottom-left corner)."""
    return (
        -geometry.origin_x * geometry.resolution,
        (-geometry.height + geometry.origin_y) * geometry.resolution,
        0.0,
    )


def _always_listening() -> bool:
    return True


class OccupancyGridPipeline:
    """Serial owner of the submap store and the render passes."""

    def __init__(
        self,
        params: OccupancyGridParams,
        fetch_texture: TextureFetcher,
        has_consumers: Callable[[], bool] = _always_listening,
        publish: Optional[Callable[[OccupancyGrid], None]] = None,
    ):
        self.params = params
        self._fetch_texture = fetch_texture
        self._has_consumers = has_consumers
        self._publish = publish
        self._lock = threading.Lock()
        self.store = SubmapStateStore()
        self.last_report: Optional[CycleReport] = None

    @property
    def denoise_mode(self) -> DenoiseMode:
        return DenoiseMode(self.params.denoise_mode)

    def handle_submap_list(self, update: SubmapListUpdate) -> Optional[OccupancyGrid]:
        """Run one full cycle for a submap list; returns the published grid or None."""
        t0 = time.perf_counter()
        report = CycleReport(
            frame_id=update.frame_id,
            stamp=update.stamp.to_sec(),
            n_submaps=len(update.submaps),
            denoise_mode=self.denoise_mode.value,
        )
        with self._lock:
            if not self._has_consumers():
                report.skipped_reason = "no_consumers"
                _logger.debug("No occupancy grid consumers, skipping cycle")
                return self._finish(report, t0, None)

            for descriptor in update.submaps:
                self._refresh_submap(descriptor, report)

            grid = self._draw_and_publish_locked(update.frame_id, update.stamp, report)
            return self._finish(report, t0, grid)

    def draw_and_publish(self, frame_id: str, stamp: Stamp) -> Optional[OccupancyGrid]:
        """Render and publish from the current store without ingesting an update."""
        t0 = time.perf_counter()
        report = CycleReport(frame_id=frame_id, stamp=stamp.to_sec(), denoise_mode=self.denoise_mode.value)
        with self._lock:
            grid = self._draw_and_publish_locked(frame_id, stamp, report)
            return self._finish(report, t0, grid)

    def _refresh_submap(self, descriptor: SubmapDescriptor, report: CycleReport) -> None:
        submap_id = SubmapId(*descriptor.id)
        self.store.update_metadata(submap_id, descriptor.pose, descriptor.version)
        if not self.store.needs_refresh(submap_id, descriptor.version):
            return

        try:
            texture = self._fetch_texture(submap_id)
        except TextureFetchError as e:
            _logger.warning(str(e))
            texture = None
        if texture is None:
            report.n_fetch_failures += 1
            _logger.warning(f"No texture for submap {tuple(submap_id)}, keeping cached state")
            return

        self.store.install_raster(submap_id, texture)
        report.n_refreshed += 1

    def _draw_and_publish_locked(
        self, frame_id: str, stamp: Stamp, report: CycleReport
    ) -> Optional[OccupancyGrid]:
        drawable = self.store.drawable()
        report.n_drawable = len(drawable)
        geometry = compute_canvas_geometry(
            drawable,
            self.params.resolution,
            padding_px=self.params.padding_px,
        )
        if geometry is None:
            report.skipped_reason = "no_rasters"
            _logger.debug("No submap has a raster yet, nothing to publish")
            return None

        canvas = rasterize(drawable, geometry)
        cells = classify_pixels(export_pixels(canvas), geometry.width, geometry.height)
        apply_denoise(
            cells,
            geometry.width,
            geometry.height,
            mode=self.denoise_mode,
            threshold=self.params.occupancy_threshold,
        )

        grid = OccupancyGrid(
            frame_id=frame_id,
            stamp=stamp,
            resolution=geometry.resolution,
            width=geometry.width,
            height=geometry.height,
            origin_position=grid_origin(geometry),
            data=cells,
        )
        report.canvas_width = geometry.width
        report.canvas_height = geometry.height
        hist = cell_histogram(cells)
        report.n_unknown = hist["unknown"]
        report.n_free = hist["free"]
        report.n_occupied = hist["occupied"]

        if self._publish is not None:
            self._publish(grid)
        return grid

    def _finish(self, report: CycleReport, t0: float, grid: Optional[OccupancyGrid]) -> Optional[OccupancyGrid]:
        report.elapsed_sec = time.perf_counter() - t0
        self.last_report = report
        if grid is not None:
            _logger.debug(
                f"Published {grid.width}x{grid.height} grid from {report.n_drawable} submaps "
                f"({report.n_refreshed} refreshed, {report.n_fetch_failures} fetch failures) "
                f"in {report.elapsed_sec * 1e3:.1f} ms"
            )
        return grid


def descriptors_from_tuples(entries: Sequence[Tuple[int, int, np.ndarray, int]]) -> List[SubmapDescriptor]:
    """Convenience: [(trajectory_id, submap_index, pose6, version), ...] -> descriptors."""
    return [
        SubmapDescriptor(id=SubmapId(int(t), int(i)), pose=np.asarray(pose, dtype=np.float64), version=int(v))
        for t, i, pose, v in entries
    ]
