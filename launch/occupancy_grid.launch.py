"""
Occupancy grid launch file.

Starts occupancy_grid_node with config/occupancy_grid.yaml. resolution and
denoise_mode can be overridden from the command line:

    ros2 launch grid_compositor occupancy_grid.launch.py resolution:=0.1
"""

import os

from launch import LaunchDescription
from launch.actions import DeclareLaunchArgument, OpaqueFunction
from launch.substitutions import LaunchConfiguration
from launch_ros.actions import Node

from ament_index_python.packages import get_package_share_directory


def _launch_setup(context, *args, **kwargs):
    pkg_share = get_package_share_directory("grid_compositor")
    config_path = os.path.join(pkg_share, "config", "occupancy_grid.yaml")

    overrides = {
        "use_sim_time": LaunchConfiguration("use_sim_time").perform(context).strip().lower()
        in ("true", "1", "yes"),
    }
    resolution = LaunchConfiguration("resolution").perform(context).strip()
    if resolution:
        overrides["resolution"] = float(resolution)
    denoise_mode = LaunchConfiguration("denoise_mode").perform(context).strip()
    if denoise_mode:
        overrides["denoise_mode"] = denoise_mode

    return [
        Node(
            package="grid_compositor",
            executable="occupancy_grid_node",
            name="occupancy_grid_node",
            output="screen",
            parameters=[config_path, overrides],
        )
    ]


def generate_launch_description():
    """Generate launch description for the occupancy grid node."""
    return LaunchDescription(
        [
            DeclareLaunchArgument(
                "resolution",
                default_value="",
                description="Output grid resolution (m/cell); empty keeps the YAML value",
            ),
            DeclareLaunchArgument(
                "denoise_mode",
                default_value="",
                description="none | neighborhood_majority | local_vote; empty keeps the YAML value",
            ),
            DeclareLaunchArgument(
                "use_sim_time",
                default_value="false",
                description="Use /clock",
            ),
            OpaqueFunction(function=_launch_setup),
        ]
    )
