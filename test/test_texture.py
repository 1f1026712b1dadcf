"""
Tests for the packed ARGB32 codec, stride check and SubmapQuery cell payloads.
"""

import gzip

import numpy as np
import pytest

from grid_compositor.backend.structures import texture as texture_mod
from grid_compositor.backend.structures.texture import (
    SubmapTexture,
    check_row_stride,
    decode_texture_cells,
    encode_texture_cells,
    pack_pixels,
    texture_to_raster,
    unpack_channel,
)
from grid_compositor.common import constants
from grid_compositor.common.errors import InvariantViolation


class TestPackPixels:
    """Bit layout: alpha<<24 | intensity<<16 | observed<<8."""

    def test_layout(self):
        packed = pack_pixels(np.array([0x12]), np.array([0x34]))
        assert int(packed[0]) == (0x34 << 24) | (0x12 << 16) | (255 << 8)

    def test_unobserved_only_when_both_zero(self):
        packed = pack_pixels(np.array([0, 5, 0]), np.array([0, 0, 7]))
        observed = unpack_channel(packed, constants.PIXEL_OBSERVED_SHIFT)
        assert observed.tolist() == [0, 255, 255]
        assert int(packed[0]) == 0

    def test_low_byte_unused(self):
        packed = pack_pixels(np.arange(256), np.arange(256)[::-1])
        assert np.all((packed & 0xFF) == 0)


class TestRowStride:
    def test_stride_is_four_bytes_per_pixel(self):
        for width in (1, 3, 640):
            assert check_row_stride(width) == 4 * width

    def test_mismatch_is_fatal(self, monkeypatch):
        monkeypatch.setattr(texture_mod, "native_row_stride", lambda width: 4 * width + 4)
        with pytest.raises(InvariantViolation):
            check_row_stride(10)


class TestSubmapTexture:
    def test_plane_length_must_match(self):
        with pytest.raises(InvariantViolation):
            SubmapTexture(width=2, height=2, version=1, resolution=0.05,
                          intensity=b"\x00" * 3, alpha=b"\x00" * 4)

    def test_raster_shape_and_row_order(self, make_texture):
        tex = make_texture(width=3, height=2, intensity=[1, 2, 3, 4, 5, 6], alpha=255)
        raster = texture_to_raster(tex)
        assert raster.shape == (2, 3)
        assert raster.dtype == np.uint32
        assert raster.strides[0] == 12
        color = unpack_channel(raster, constants.PIXEL_INTENSITY_SHIFT)
        assert color.tolist() == [[1, 2, 3], [4, 5, 6]]


class TestTextureCells:
    def test_decode_interleaved(self):
        raw = bytes([10, 200, 11, 201, 12, 202, 13, 203])
        intensity, alpha = decode_texture_cells(gzip.compress(raw), 2, 2)
        assert intensity == bytes([10, 11, 12, 13])
        assert alpha == bytes([200, 201, 202, 203])

    def test_encode_matches_decode(self):
        intensity = bytes(range(12))
        alpha = bytes(range(100, 112))
        cells = encode_texture_cells(intensity, alpha)
        assert decode_texture_cells(cells, 4, 3) == (intensity, alpha)

    def test_wrong_payload_size_is_fatal(self):
        with pytest.raises(InvariantViolation):
            decode_texture_cells(gzip.compress(b"\x00" * 6), 2, 2)

    def test_encode_rejects_mismatched_planes(self):
        with pytest.raises(ValueError):
            encode_texture_cells(b"\x00\x00", b"\x00")
