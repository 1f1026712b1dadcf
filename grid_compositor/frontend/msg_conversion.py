"""
Conversion between ROS messages and compositor types.

Incoming messages are only read through attributes (cartographer_ros_msgs
SubmapList / SubmapQuery response, geometry_msgs Pose). Outgoing messages
(nav_msgs/OccupancyGrid) import their message package on use.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from grid_compositor.backend.pipeline import OccupancyGrid, Stamp, SubmapDescriptor, SubmapListUpdate
from grid_compositor.backend.structures.submap_store import SubmapId
from grid_compositor.backend.structures.texture import SubmapTexture, decode_texture_cells
from grid_compositor.common import constants
from grid_compositor.common.transforms.rigid import se3_from_quat


def stamp_from_msg(stamp) -> Stamp:
    """builtin_interfaces/Time -> Stamp, exact."""
    return Stamp(int(stamp.sec), int(stamp.nanosec))


def stamp_to_msg(stamp: Stamp):
    from builtin_interfaces.msg import Time

    return Time(sec=int(stamp.sec), nanosec=int(stamp.nanosec))


def pose_msg_to_se3(pose) -> np.ndarray:
    """geometry_msgs/Pose -> [x, y, z, rx, ry, rz]."""
    p = pose.position
    q = pose.orientation
    return se3_from_quat((p.x, p.y, p.z), (q.x, q.y, q.z, q.w))


def submap_list_to_update(msg) -> SubmapListUpdate:
    """cartographer_ros_msgs/SubmapList -> SubmapListUpdate."""
    submaps = tuple(
        SubmapDescriptor(
            id=SubmapId(int(entry.trajectory_id), int(entry.submap_index)),
            pose=pose_msg_to_se3(entry.pose),
            version=int(entry.submap_version),
        )
        for entry in msg.submap
    )
    return SubmapListUpdate(
        frame_id=str(msg.header.frame_id),
        stamp=stamp_from_msg(msg.header.stamp),
        submaps=submaps,
    )


def submap_query_response_to_texture(response) -> Optional[SubmapTexture]:
    """
    cartographer_ros_msgs/SubmapQuery response -> SubmapTexture.

    Returns None for a non-OK status or a response without textures. Only the
    first texture is used (2D submaps carry exactly one).
    """
    status = getattr(response, "status", None)
    if status is not None and int(status.code) != constants.SUBMAP_QUERY_STATUS_OK:
        return None
    textures = list(getattr(response, "textures", []) or [])
    if not textures:
        return None
    texture = textures[0]
    width = int(texture.width)
    height = int(texture.height)
    intensity, alpha = decode_texture_cells(bytes(bytearray(texture.cells)), width, height)
    return SubmapTexture(
        width=width,
        height=height,
        version=int(response.submap_version),
        resolution=float(texture.resolution),
        intensity=intensity,
        alpha=alpha,
        slice_pose=pose_msg_to_se3(texture.slice_pose),
    )


def occupancy_grid_to_msg(grid: OccupancyGrid):
    """OccupancyGrid -> nav_msgs/OccupancyGrid."""
    from nav_msgs.msg import OccupancyGrid as OccupancyGridMsg

    msg = OccupancyGridMsg()
    stamp = stamp_to_msg(grid.stamp)
    msg.header.stamp = stamp
    msg.header.frame_id = grid.frame_id
    msg.info.map_load_time = stamp
    msg.info.resolution = float(grid.resolution)
    msg.info.width = int(grid.width)
    msg.info.height = int(grid.height)
    msg.info.origin.position.x = float(grid.origin_position[0])
    msg.info.origin.position.y = float(grid.origin_position[1])
    msg.info.origin.position.z = float(grid.origin_position[2])
    msg.info.origin.orientation.x = float(grid.origin_orientation[0])
    msg.info.origin.orientation.y = float(grid.origin_orientation[1])
    msg.info.origin.orientation.z = float(grid.origin_orientation[2])
    msg.info.origin.orientation.w = float(grid.origin_orientation[3])
    msg.data = np.asarray(grid.data, dtype=np.int8).tolist()
    return msg
