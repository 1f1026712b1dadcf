"""
TextureFetcher backed by the cartographer SubmapQuery service.

The fetch blocks the calling callback until the response arrives or the
timeout expires. The client must live in a reentrant callback group and the
node must spin in a MultiThreadedExecutor, otherwise the response can never be
delivered while the caller waits.
"""

from __future__ import annotations

import threading
from typing import Optional

from grid_compositor.backend.structures.submap_store import SubmapId
from grid_compositor.backend.structures.texture import SubmapTexture
from grid_compositor.common import constants
from grid_compositor.common.errors import TextureFetchError
from grid_compositor.frontend.msg_conversion import submap_query_response_to_texture


class SubmapQueryFetcher:
    """Callable SubmapId -> SubmapTexture | None over a SubmapQuery client."""

    def __init__(
        self,
        node,
        service_name: str = constants.SUBMAP_QUERY_SERVICE_DEFAULT,
        timeout_sec: float = constants.FETCH_TIMEOUT_SEC_DEFAULT,
        callback_group=None,
    ):
        from cartographer_ros_msgs.srv import SubmapQuery

        self._srv_type = SubmapQuery
        self._timeout_sec = float(timeout_sec)
        self._client = node.create_client(SubmapQuery, service_name, callback_group=callback_group)

    def __call__(self, submap_id: SubmapId) -> Optional[SubmapTexture]:
        if not self._client.service_is_ready():
            raise TextureFetchError(submap_id, "SubmapQuery service not ready")

        request = self._srv_type.Request()
        request.trajectory_id = int(submap_id[0])
        request.submap_index = int(submap_id[1])

        done = threading.Event()
        future = self._client.call_async(request)
        future.add_done_callback(lambda _f: done.set())
        if not done.wait(self._timeout_sec):
            future.cancel()
            raise TextureFetchError(submap_id, f"no response within {self._timeout_sec:.2f}s")

        response = future.result()
        if response is None:
            raise TextureFetchError(submap_id, "empty response")
        return submap_query_response_to_texture(response)
