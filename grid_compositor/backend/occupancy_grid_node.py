"""
Occupancy grid node.

Subscribes to the submap list, fetches stale submap textures over the
SubmapQuery service and publishes a latched nav_msgs/OccupancyGrid composed
from every submap that has a texture.

Reference: cartographer_ros occupancy_grid_node
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import rclpy
from nav_msgs.msg import OccupancyGrid as OccupancyGridMsg
from rclpy.callback_groups import MutuallyExclusiveCallbackGroup, ReentrantCallbackGroup
from rclpy.node import Node
from rclpy.parameter import Parameter
from rclpy.qos import QoSProfile, ReliabilityPolicy, DurabilityPolicy, HistoryPolicy
from std_msgs.msg import String

from grid_compositor.backend.pipeline import OccupancyGrid, OccupancyGridPipeline
from grid_compositor.common import constants
from grid_compositor.common.errors import InvariantViolation
from grid_compositor.common.param_models import OccupancyGridParams
from grid_compositor.frontend.msg_conversion import occupancy_grid_to_msg, submap_list_to_update
from grid_compositor.frontend.submap_query import SubmapQueryFetcher


class OccupancyGridNode(Node):
    """Composites cartographer submaps into one occupancy grid."""

    def __init__(self, parameter_overrides: Optional[Dict[str, Any]] = None) -> None:
        overrides = None
        if parameter_overrides:
            overrides = [Parameter(k, value=v) for k, v in parameter_overrides.items()]
        super().__init__("occupancy_grid_node", parameter_overrides=overrides)

        self.params = self._declare_params()

        # Latched, latest-only output: late subscribers still get the last map.
        qos_grid = QoSProfile(
            reliability=ReliabilityPolicy.RELIABLE,
            durability=DurabilityPolicy.TRANSIENT_LOCAL,
            history=HistoryPolicy.KEEP_LAST,
            depth=constants.LATEST_ONLY_QUEUE_DEPTH,
        )
        qos_submaps = QoSProfile(
            reliability=ReliabilityPolicy.RELIABLE,
            durability=DurabilityPolicy.VOLATILE,
            history=HistoryPolicy.KEEP_LAST,
            depth=constants.LATEST_ONLY_QUEUE_DEPTH,
        )

        # The update callback blocks on SubmapQuery responses, which are
        # delivered through the reentrant group on another executor thread.
        self.cb_group_update = MutuallyExclusiveCallbackGroup()
        self.cb_group_client = ReentrantCallbackGroup()

        self.pub_grid = self.create_publisher(
            OccupancyGridMsg, self.params.occupancy_grid_topic, qos_grid
        )
        self.pub_report = None
        if self.params.publish_report:
            self.pub_report = self.create_publisher(String, self.params.report_topic, 10)

        self.fetcher = SubmapQueryFetcher(
            self,
            service_name=self.params.submap_query_service,
            timeout_sec=self.params.fetch_timeout_sec,
            callback_group=self.cb_group_client,
        )
        self.pipeline = OccupancyGridPipeline(
            self.params,
            fetch_texture=self.fetcher,
            has_consumers=self._has_consumers,
            publish=self._publish_grid,
        )

        from cartographer_ros_msgs.msg import SubmapList

        self.sub_submaps = self.create_subscription(
            SubmapList,
            self.params.submap_list_topic,
            self._on_submap_list,
            qos_submaps,
            callback_group=self.cb_group_update,
        )

        self.cycle_count = 0
        self.publish_count = 0

        self.get_logger().info("=" * 60)
        self.get_logger().info("OCCUPANCY GRID NODE")
        self.get_logger().info("=" * 60)
        for key, value in self.params.model_dump().items():
            self.get_logger().info(f"  {key}: {value}")
        self.get_logger().info("=" * 60)

    def _declare_params(self) -> OccupancyGridParams:
        defaults = OccupancyGridParams()
        values = {}
        for name, default in defaults.model_dump().items():
            if name == "use_sim_time":
                # Declared by rclpy itself.
                values[name] = bool(self.get_parameter(name).value)
                continue
            self.declare_parameter(name, default)
            values[name] = self.get_parameter(name).value
        return OccupancyGridParams.model_validate(values)

    def _has_consumers(self) -> bool:
        return self.pub_grid.get_subscription_count() > 0

    def _publish_grid(self, grid: OccupancyGrid) -> None:
        self.pub_grid.publish(occupancy_grid_to_msg(grid))
        self.publish_count += 1

    def _on_submap_list(self, msg) -> None:
        self.cycle_count += 1
        update = submap_list_to_update(msg)
        try:
            self.pipeline.handle_submap_list(update)
        except InvariantViolation as e:
            self.get_logger().fatal(f"Invariant violated, refusing to publish a corrupt map: {e}")
            raise

        report = self.pipeline.last_report
        if report is None:
            return
        if self.pub_report is not None:
            out = String()
            out.data = report.to_json()
            self.pub_report.publish(out)
        if self.publish_count == 1 and report.published:
            self.get_logger().info(
                f"First occupancy grid: {report.canvas_width}x{report.canvas_height} "
                f"from {report.n_drawable} submaps"
            )


def main() -> None:
    """Entry point for occupancy_grid_node."""
    rclpy.init()
    node = OccupancyGridNode()

    from rclpy.executors import MultiThreadedExecutor
    executor = MultiThreadedExecutor(num_threads=2)
    executor.add_node(node)

    try:
        executor.spin()
    except KeyboardInterrupt:
        pass
    finally:
        node.get_logger().info(
            f"Shutting down. Cycles={node.cycle_count}, published={node.publish_count}"
        )
        node.destroy_node()
        rclpy.shutdown()


if __name__ == "__main__":
    main()
