# Wall extraction and merging

from .segment import (
    WallSegment,
    WallThreshold,
    WallRecord,
    wall_document,
)

from .grid_extractor import (
    identify_walls,
)

from .wall_merger import (
    MergeResult,
    merge_walls,
    plain_walls,
    merge_wall_records,
)

__all__ = [
    # Segment
    "WallSegment",
    "WallThreshold",
    "WallRecord",
    "wall_document",
    # Grid Extractor
    "identify_walls",
    # Wall Merger
    "MergeResult",
    "merge_walls",
    "plain_walls",
    "merge_wall_records",
]
