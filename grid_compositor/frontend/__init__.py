"""
ROS-facing helpers for the occupancy grid node.

- msg_conversion: SubmapList / SubmapQuery / OccupancyGrid message conversion
- submap_query: TextureFetcher backed by the SubmapQuery service

Message packages are imported where a message is constructed, so the
conversion from received messages can be exercised without ROS.
"""

__all__ = []
