"""
Submap occupancy-grid compositor.

Turns a stream of posed, versioned submap textures into a single world-frame
nav_msgs/OccupancyGrid.

Subpackages:
- common/: constants, parameters, errors, rigid transforms, cycle reports
- backend/: submap store, rendering operators, pipeline, ROS node
- frontend/: ROS message conversion and the SubmapQuery texture fetcher
"""
