"""
Compositor backend.

The ROS node lives in occupancy_grid_node and is not imported here, so the
store, operators and pipeline can be used without a ROS environment.
"""

__all__ = []
