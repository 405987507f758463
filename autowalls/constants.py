"""
Auto Walls - Master Constants Reference

Default values for every stage of the wall detection pipeline.
The heuristic thresholds here are empirical; behaviour compatibility
depends on the exact values.
"""

# =============================================================================
# PIXEL BUFFER CONSTANTS
# =============================================================================

# RGBA channel count
CHANNELS = 4

# Luminance weights (R, G, B)
LUMINANCE_WEIGHTS = (0.299, 0.587, 0.114)

OPAQUE = 255

# =============================================================================
# FILTER CONSTANTS
# =============================================================================

# Median filter kernel used after pixel segmentation
SEGMENTATION_MEDIAN_KERNEL = 5

# Median filter kernel used after edge detection
EDGE_MEDIAN_KERNEL = 3

# Brighten (dilate) kernel used after the internal wall pass
BRIGHTEN_KERNEL = 3

# Small region removal
DEFAULT_MAX_REGION_SIZE = 80

# Region flood fill stops recording beyond this multiple of the max size
REGION_GROWTH_GUARD_FACTOR = 3

# Small hole removal
DEFAULT_MAX_HOLE_SIZE = 80

# Mean brightness below this marks a pixel as part of a hole
DEFAULT_HOLE_THRESHOLD = 50

# Default pixelize cell size when no grid is known
DEFAULT_PIXELIZE_CELL = 8

# =============================================================================
# SEGMENTATION CONSTANTS
# =============================================================================

# k used by the library entry point
DEFAULT_KMEANS_K = 5

# k used by the scene pipeline
PIPELINE_KMEANS_K = 10

DEFAULT_KMEANS_MAX_ITERATIONS = 50

# Maximum centroid movement (RGB units) to count as converged
DEFAULT_KMEANS_CONVERGENCE = 1.0

# Border colours covering more than this fraction are "outside"
DEFAULT_OUTSIDE_FRACTION = 0.4

# =============================================================================
# EDGE DETECTION CONSTANTS
# =============================================================================

DEFAULT_CANNY_LOW = 40
DEFAULT_CANNY_HIGH = 70
DEFAULT_CANNY_SIGMA = 1.4

# Gradient magnitudes below this are dropped before suppression
NMS_MAGNITUDE_FLOOR = 10

# Suppressed maximum at or below this means a blank image
NO_EDGE_MAX_MAGNITUDE = 1

DEFAULT_KOVALEVSKY_THRESHOLD = 25
KOVALEVSKY_SIGMA = 1.0

# Zhang-Suen iteration cap
MAX_THINNING_ITERATIONS = 10

# Thresholded 8-neighbours needed to seed an edge trace
STRONG_EDGE_MIN_NEIGHBORS = 2

# =============================================================================
# GRID WALL CONSTANTS
# =============================================================================

# Library default sample threshold for identify_walls
DEFAULT_WALL_THRESHOLD = 100

# Threshold used by the scene pipeline
PIPELINE_WALL_THRESHOLD = 50

# Default grid size when the scene reports none
DEFAULT_GRID_SIZE = 100

# Target number of detection cells per grid square when no
# resolution scale is given: resolution_scale = grid / (sub * 7)
CELLS_PER_GRID_DIVISOR = 7

# =============================================================================
# WALL MERGER CONSTANTS
# =============================================================================

# atan2(|dy|, |dx|) in radians is multiplied by this and rounded
DIRECTION_BUCKETS_PER_RADIAN = 30

# =============================================================================
# OUTPUT CONSTANTS
# =============================================================================

# Flag namespace stamped on generated wall records
WALL_FLAG_NAMESPACE = "auto-detect-walls"

# Preview rendering
PREVIEW_SHADOW_COLOR = (128, 128, 128)
PREVIEW_SHADOW_WIDTH = 4
PREVIEW_LINE_COLOR = (255, 255, 255)
PREVIEW_LINE_WIDTH = 2

# =============================================================================
# PIPELINE STAGES
# =============================================================================

class Stage:
    GRID = "GRID"
    LOAD = "LOAD"
    SEGMENTATION = "SEGMENTATION"
    SEPARATION = "SEPARATION"
    DENOISE = "DENOISE"
    PIXELIZE = "PIXELIZE"
    EDGE_DETECTION = "EDGE_DETECTION"
    INTERNAL_WALLS = "INTERNAL_WALLS"
    WALL_EXTRACTION = "WALL_EXTRACTION"

# =============================================================================
# EDGE DETECTOR NAMES
# =============================================================================

class EdgeMethod:
    CANNY = "canny"
    KOVALEVSKY = "kovalevsky"

# =============================================================================
# WALL RECORD ATTRIBUTES (virtual tabletop wall documents)
# =============================================================================

class WallDoorType:
    NONE = 0
    DOOR = 1
    SECRET = 2

class WallDirection:
    BOTH = 0
    LEFT = 1
    RIGHT = 2

class WallSenseType:
    NONE = 0
    LIMITED = 10
    NORMAL = 20
    PROXIMITY = 30
    DISTANCE = 40

class WallMovementType:
    NONE = 0
    NORMAL = 20

# =============================================================================
# OUTPUT
# =============================================================================

PIPELINE_VERSION = "0.1.0"

# Suffixes appended to the input image stem for generated files
WALLS_JSON_SUFFIX = "_walls.json"
MERGED_JSON_SUFFIX = "_merged.json"
PREVIEW_SUFFIX = "_preview.png"
