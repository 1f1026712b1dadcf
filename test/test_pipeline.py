"""
End-to-end tests for OccupancyGridPipeline with an in-memory texture source.
"""

import json
import threading

import numpy as np
import pytest

from grid_compositor.backend.pipeline import (
    OccupancyGridPipeline,
    Stamp,
    SubmapListUpdate,
    descriptors_from_tuples,
    grid_origin,
)
from grid_compositor.backend.operators.bounding_box import CanvasGeometry
from grid_compositor.backend.structures import texture as texture_module
from grid_compositor.common.errors import InvariantViolation, TextureFetchError
from grid_compositor.common.param_models import OccupancyGridParams


class FakeTextureSource:
    """Texture fetcher backed by a dict; records every call."""

    def __init__(self, textures=None):
        self.textures = dict(textures or {})
        self.failing = set()
        self.calls = []

    def __call__(self, submap_id):
        key = tuple(submap_id)
        self.calls.append(key)
        if key in self.failing:
            raise TextureFetchError(key, "service unavailable")
        return self.textures.get(key)


def _update(entries, frame_id="map", stamp=Stamp(12, 500_000_000)):
    return SubmapListUpdate(frame_id=frame_id, stamp=stamp, submaps=descriptors_from_tuples(entries))


@pytest.fixture
def params():
    return OccupancyGridParams(resolution=1.0, padding_px=5)


@pytest.fixture
def block_texture(make_texture):
    # top raster row occupied (intensity 0), bottom row free (intensity 255)
    return make_texture(intensity=[0, 0, 255, 255], alpha=255, version=1)


class TestGridOrigin:

    def test_origin_from_geometry(self):
        geometry = CanvasGeometry(width=12, height=12, origin_x=5.0, origin_y=5.0, resolution=0.5)
        assert grid_origin(geometry) == pytest.approx((-2.5, -3.5, 0.0))


class TestSingleSubmap:

    def test_identity_submap_grid(self, params, block_texture, identity_pose):
        source = FakeTextureSource({(0, 0): block_texture})
        published = []
        pipeline = OccupancyGridPipeline(params, source, publish=published.append)

        grid = pipeline.handle_submap_list(_update([(0, 0, identity_pose, 1)]))

        assert published == [grid]
        assert grid.frame_id == "map"
        assert grid.stamp == Stamp(12, 500_000_000)
        assert grid.map_load_time == grid.stamp
        assert (grid.width, grid.height) == (12, 12)
        assert grid.resolution == 1.0
        assert grid.origin_position == pytest.approx((-5.0, -7.0, 0.0))
        assert grid.origin_orientation == (0.0, 0.0, 0.0, 1.0)

        cells = grid.data.reshape(12, 12)
        assert cells[6, 5:7].tolist() == [100, 100]
        assert cells[5, 5:7].tolist() == [0, 0]
        rest = cells.copy()
        rest[5:7, 5:7] = -1
        assert np.all(rest == -1)

    def test_epoch_stamp_passed_through_exactly(self, params, block_texture, identity_pose):
        stamp = Stamp(1_700_000_000, 123_456_789)
        pipeline = OccupancyGridPipeline(params, FakeTextureSource({(0, 0): block_texture}))

        grid = pipeline.handle_submap_list(_update([(0, 0, identity_pose, 1)], stamp=stamp))

        assert grid.stamp == stamp
        assert grid.stamp.nanosec == 123_456_789
        assert pipeline.last_report.stamp == pytest.approx(1_700_000_000.123456789)

    def test_report(self, params, block_texture, identity_pose):
        pipeline = OccupancyGridPipeline(params, FakeTextureSource({(0, 0): block_texture}))
        pipeline.handle_submap_list(_update([(0, 0, identity_pose, 1)]))

        report = pipeline.last_report
        assert report.published
        assert report.n_submaps == 1
        assert report.n_refreshed == 1
        assert report.n_fetch_failures == 0
        assert report.n_drawable == 1
        assert (report.canvas_width, report.canvas_height) == (12, 12)
        assert (report.n_unknown, report.n_free, report.n_occupied) == (140, 2, 2)
        assert report.denoise_mode == "none"

        decoded = json.loads(report.to_json())
        assert decoded["n_occupied"] == 2
        assert decoded["skipped_reason"] is None


class TestSkippedCycles:

    def test_no_consumers(self, params, block_texture, identity_pose):
        source = FakeTextureSource({(0, 0): block_texture})
        published = []
        pipeline = OccupancyGridPipeline(
            params, source, has_consumers=lambda: False, publish=published.append
        )
        assert pipeline.handle_submap_list(_update([(0, 0, identity_pose, 1)])) is None
        assert source.calls == []
        assert published == []
        assert pipeline.last_report.skipped_reason == "no_consumers"
        assert not pipeline.last_report.published

    def test_no_textures_yet(self, params, identity_pose):
        source = FakeTextureSource()
        published = []
        pipeline = OccupancyGridPipeline(params, source, publish=published.append)
        pose = np.array([2.0, 1.0, 0.0, 0.0, 0.0, 0.3])

        assert pipeline.handle_submap_list(_update([(0, 0, pose, 4)])) is None
        assert published == []
        assert pipeline.last_report.skipped_reason == "no_rasters"
        assert pipeline.last_report.n_fetch_failures == 1

        state = pipeline.store.get_or_create((0, 0))
        assert not state.has_raster
        assert state.metadata_version == 4
        assert np.allclose(state.pose, pose)

    def test_draw_on_empty_store(self, params):
        pipeline = OccupancyGridPipeline(params, FakeTextureSource())
        assert pipeline.draw_and_publish("map", Stamp(0, 0)) is None
        assert pipeline.last_report.skipped_reason == "no_rasters"


class TestRefresh:

    def test_unchanged_version_not_refetched(self, params, block_texture, identity_pose):
        source = FakeTextureSource({(0, 0): block_texture})
        pipeline = OccupancyGridPipeline(params, source)
        pipeline.handle_submap_list(_update([(0, 0, identity_pose, 1)]))

        moved = np.array([3.0, 0.0, 0.0, 0.0, 0.0, 0.0])
        pipeline.handle_submap_list(_update([(0, 0, moved, 1)]))

        assert source.calls == [(0, 0)]
        assert pipeline.last_report.n_refreshed == 0
        state = pipeline.store.get_or_create((0, 0))
        assert np.allclose(state.pose, moved)
        assert state.metadata_version == 1

    def test_version_change_refetches(self, params, make_texture, block_texture, identity_pose):
        source = FakeTextureSource({(0, 0): block_texture})
        pipeline = OccupancyGridPipeline(params, source)
        pipeline.handle_submap_list(_update([(0, 0, identity_pose, 1)]))

        source.textures[(0, 0)] = make_texture(intensity=255, alpha=255, version=2)
        grid = pipeline.handle_submap_list(_update([(0, 0, identity_pose, 2)]))

        assert source.calls == [(0, 0), (0, 0)]
        assert pipeline.store.get_or_create((0, 0)).version == 2
        assert np.count_nonzero(grid.data == 100) == 0

    def test_failed_refetch_keeps_stale_raster(self, params, block_texture, identity_pose):
        source = FakeTextureSource({(0, 0): block_texture})
        pipeline = OccupancyGridPipeline(params, source)
        first = pipeline.handle_submap_list(_update([(0, 0, identity_pose, 1)]))

        source.failing.add((0, 0))
        second = pipeline.handle_submap_list(_update([(0, 0, identity_pose, 2)]))

        assert second is not None
        assert np.array_equal(first.data, second.data)
        state = pipeline.store.get_or_create((0, 0))
        assert state.version == 1
        assert state.metadata_version == 2
        assert pipeline.last_report.n_fetch_failures == 1

    def test_fetch_error_only_drops_that_submap(self, params, make_texture, identity_pose):
        source = FakeTextureSource(
            {
                (0, 0): make_texture(intensity=0, alpha=255),
                (0, 1): make_texture(intensity=0, alpha=255),
            }
        )
        source.failing.add((0, 0))
        pipeline = OccupancyGridPipeline(params, source)
        shifted = np.array([4.0, 0.0, 0.0, 0.0, 0.0, 0.0])

        grid = pipeline.handle_submap_list(
            _update([(0, 0, identity_pose, 1), (0, 1, shifted, 1)])
        )

        assert grid is not None
        assert pipeline.last_report.n_drawable == 1
        assert pipeline.last_report.n_fetch_failures == 1
        assert np.count_nonzero(grid.data == 100) == 4


class TestOrderingAndDenoise:

    def test_list_order_does_not_change_grid(self, params, make_texture, identity_pose):
        textures = {
            (0, 0): make_texture(intensity=0, alpha=255),
            (0, 1): make_texture(intensity=255, alpha=255),
        }
        shifted = np.array([1.0, 0.0, 0.0, 0.0, 0.0, 0.0])
        entries = [(0, 0, identity_pose, 1), (0, 1, shifted, 1)]

        a = OccupancyGridPipeline(params, FakeTextureSource(textures)).handle_submap_list(_update(entries))
        b = OccupancyGridPipeline(params, FakeTextureSource(textures)).handle_submap_list(
            _update(list(reversed(entries)))
        )

        assert np.array_equal(a.data, b.data)
        # (0, 1) is painted last and covers the overlapping column
        assert np.count_nonzero(a.data == 100) == 2

    def test_neighborhood_majority_grows_block(self, make_texture, identity_pose):
        entries = [(0, 0, identity_pose, 1)]
        tex = {(0, 0): make_texture(intensity=0, alpha=255)}

        plain = OccupancyGridPipeline(
            OccupancyGridParams(resolution=1.0, padding_px=5), FakeTextureSource(tex)
        ).handle_submap_list(_update(entries))
        filtered_pipeline = OccupancyGridPipeline(
            OccupancyGridParams(resolution=1.0, padding_px=5, denoise_mode="neighborhood_majority"),
            FakeTextureSource(tex),
        )
        filtered = filtered_pipeline.handle_submap_list(_update(entries))

        assert np.count_nonzero(plain.data == 100) == 4
        assert np.count_nonzero(filtered.data == 100) > 4
        assert filtered_pipeline.last_report.denoise_mode == "neighborhood_majority"


class TestFatalErrors:

    def test_stride_mismatch_propagates(self, params, block_texture, identity_pose, monkeypatch):
        monkeypatch.setattr(texture_module, "native_row_stride", lambda width: 4 * int(width) + 4)
        published = []
        pipeline = OccupancyGridPipeline(
            params, FakeTextureSource({(0, 0): block_texture}), publish=published.append
        )
        with pytest.raises(InvariantViolation):
            pipeline.handle_submap_list(_update([(0, 0, identity_pose, 1)]))
        assert published == []

    def test_lock_released_after_fatal_error(self, params, block_texture, identity_pose, monkeypatch):
        source = FakeTextureSource({(0, 0): block_texture})
        pipeline = OccupancyGridPipeline(params, source)
        with monkeypatch.context() as m:
            m.setattr(texture_module, "native_row_stride", lambda width: 0)
            with pytest.raises(InvariantViolation):
                pipeline.handle_submap_list(_update([(0, 0, identity_pose, 1)]))
        assert pipeline.handle_submap_list(_update([(0, 0, identity_pose, 1)])) is not None


class TestSingleWriter:

    def test_cycles_do_not_interleave(self, params, make_texture, identity_pose):
        entered = threading.Event()
        release = threading.Event()
        events = []
        textures = {
            (0, 0): make_texture(intensity=0, alpha=255),
            (0, 1): make_texture(intensity=255, alpha=255),
        }

        def fetch(submap_id):
            key = tuple(submap_id)
            events.append(("fetch", key))
            if key == (0, 0):
                entered.set()
                assert release.wait(5.0)
            return textures[key]

        def publish(grid):
            events.append(("publish", grid.stamp))

        pipeline = OccupancyGridPipeline(params, fetch, publish=publish)
        first = threading.Thread(
            target=pipeline.handle_submap_list,
            args=(_update([(0, 0, identity_pose, 1)], stamp=Stamp(1, 0)),),
            daemon=True,
        )
        second = threading.Thread(
            target=pipeline.handle_submap_list,
            args=(_update([(0, 1, identity_pose, 1)], stamp=Stamp(2, 0)),),
            daemon=True,
        )

        first.start()
        assert entered.wait(5.0)
        second.start()
        second.join(0.2)
        # the second cycle is parked on the lock while the first one fetches
        assert second.is_alive()
        assert events == [("fetch", (0, 0))]

        release.set()
        first.join(5.0)
        second.join(5.0)
        assert not first.is_alive() and not second.is_alive()
        assert events == [
            ("fetch", (0, 0)),
            ("publish", Stamp(1, 0)),
            ("fetch", (0, 1)),
            ("publish", Stamp(2, 0)),
        ]
