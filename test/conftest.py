import os
import sys
import pytest
from typing import Dict, Any

# Ensure local package import works for pytest collection.
_TEST_DIR = os.path.dirname(__file__)
_PKG_ROOT = os.path.abspath(os.path.join(_TEST_DIR, ".."))
if _PKG_ROOT not in sys.path:
    sys.path.insert(0, _PKG_ROOT)

# =============================================================================
# Production Config Fixtures
# =============================================================================


def _load_yaml_file(path: str) -> Dict[str, Any]:
    """Load a YAML config file, handling the ros__parameters wrapper."""
    import yaml
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    # ROS2 YAML files wrap parameters in /**:/ros__parameters:
    if "/**" in data and "ros__parameters" in data.get("/**", {}):
        return data["/**"]["ros__parameters"]
    return data


@pytest.fixture
def prod_config() -> Dict[str, Any]:
    """Parameters from config/occupancy_grid.yaml (the file the launch file loads)."""
    config_path = os.path.join(_PKG_ROOT, "config", "occupancy_grid.yaml")
    if not os.path.exists(config_path):
        pytest.skip("config/occupancy_grid.yaml not found")
    return _load_yaml_file(config_path)


# =============================================================================
# Test Utility Fixtures
# =============================================================================


@pytest.fixture
def make_texture():
    """
    Factory for SubmapTexture.

    intensity/alpha may be scalars (filled) or sequences of width*height bytes.
    """
    import numpy as np
    from grid_compositor.backend.structures.texture import SubmapTexture

    def _make(width=2, height=2, intensity=0, alpha=255, version=1,
              resolution=1.0, slice_pose=None):
        n = width * height

        def _plane(value):
            if np.isscalar(value):
                return bytes([int(value)] * n)
            return bytes(bytearray(int(v) for v in np.asarray(value).reshape(-1)))

        return SubmapTexture(
            width=width,
            height=height,
            version=version,
            resolution=resolution,
            intensity=_plane(intensity),
            alpha=_plane(alpha),
            slice_pose=np.zeros(6) if slice_pose is None else np.asarray(slice_pose, dtype=float),
        )

    return _make


@pytest.fixture
def identity_pose():
    """Identity pose as 6D vector [x, y, z, rx, ry, rz]."""
    import numpy as np
    return np.zeros(6, dtype=np.float64)
