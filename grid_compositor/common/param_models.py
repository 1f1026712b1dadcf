"""Pydantic parameter models for the occupancy grid node."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from grid_compositor.common import constants

DenoiseModeName = Literal["none", "neighborhood_majority", "local_vote"]


class OccupancyGridParams(BaseModel):
    """Occupancy grid node parameter model."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    use_sim_time: bool = False

    resolution: float = Field(constants.GRID_RESOLUTION_DEFAULT, gt=0.0)
    padding_px: int = Field(constants.CANVAS_PADDING_PX_DEFAULT, ge=0)

    denoise_mode: DenoiseModeName = constants.DENOISE_MODE_DEFAULT
    occupancy_threshold: int = Field(
        constants.DENOISE_OCCUPANCY_THRESHOLD_DEFAULT,
        ge=constants.PROBABILITY_MIN,
        le=constants.PROBABILITY_MAX,
    )

    submap_list_topic: str = constants.SUBMAP_LIST_TOPIC_DEFAULT
    submap_query_service: str = constants.SUBMAP_QUERY_SERVICE_DEFAULT
    occupancy_grid_topic: str = constants.OCCUPANCY_GRID_TOPIC_DEFAULT
    fetch_timeout_sec: float = Field(constants.FETCH_TIMEOUT_SEC_DEFAULT, gt=0.0)

    publish_report: bool = False
    report_topic: str = constants.REPORT_TOPIC_DEFAULT
