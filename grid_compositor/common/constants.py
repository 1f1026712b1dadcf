"""
Occupancy grid compositor constants.

=============================================================================
CONVENTION QUICK REFERENCE
=============================================================================

POSES:
  Internal 6D: [trans(3), rotvec(3)] = [x, y, z, rx, ry, rz]
  World/submap frames are Z-UP, only the planar part is rendered.

PACKED PIXEL (uint32, native ARGB32 word, premultiplied):
  bits 24-31: alpha
  bits 16-23: intensity (rendered into the red channel)
  bits  8-15: observed flag (0 or 255, green channel)
  bits  0-7 : unused (blue channel)

CANVAS:
  Image convention: row 0 at the top, y grows downwards.
  Output grid rows are emitted bottom-up (last canvas row first).

CELL VALUES:
  -1 unknown, 0 free, 100 occupied
=============================================================================
"""

# =============================================================================
# PACKED PIXEL LAYOUT
# =============================================================================

PIXEL_ALPHA_SHIFT = 24
PIXEL_INTENSITY_SHIFT = 16
PIXEL_OBSERVED_SHIFT = 8
PIXEL_CHANNEL_MASK = 0xFF
PIXEL_BYTES = 4  # ARGB32

OBSERVED_TRUE = 255
OBSERVED_FALSE = 0

# Opaque saturated red: observed byte is 0, so untouched canvas stays unknown.
CANVAS_BACKGROUND_PIXEL = 0xFFFF0000

# Texture payload from the SubmapQuery service: interleaved (intensity, alpha).
TEXTURE_CELL_BYTES = 2

# =============================================================================
# CANVAS
# =============================================================================

CANVAS_PADDING_PX_DEFAULT = 5
GRID_RESOLUTION_DEFAULT = 0.05  # m per output cell

# =============================================================================
# CLASSIFICATION
# =============================================================================

CELL_UNKNOWN = -1
CELL_FREE = 0
CELL_OCCUPIED = 100

PROBABILITY_MIN = 0
PROBABILITY_MAX = 100
OCCUPIED_PROBABILITY_THRESHOLD = 50  # strictly greater -> occupied

# =============================================================================
# DENOISE
# =============================================================================

DENOISE_MODE_DEFAULT = "none"
DENOISE_OCCUPANCY_THRESHOLD_DEFAULT = 50
NEIGHBORHOOD_MAJORITY_DIVISOR = 10  # 3x3 sum over 10, not 9
LOCAL_VOTE_RADIUS = 2  # 5x5 window

# =============================================================================
# ROS INTERFACE
# =============================================================================

SUBMAP_LIST_TOPIC_DEFAULT = "submap_list"
SUBMAP_QUERY_SERVICE_DEFAULT = "submap_query"
OCCUPANCY_GRID_TOPIC_DEFAULT = "map"
REPORT_TOPIC_DEFAULT = "occupancy_grid/report"
FETCH_TIMEOUT_SEC_DEFAULT = 1.0
LATEST_ONLY_QUEUE_DEPTH = 1
SUBMAP_QUERY_STATUS_OK = 0
