"""
Wall Segment Module

Line segments produced by the pipeline and the wall records they are
committed as.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from shapely.geometry import LineString

from ..constants import (
    DIRECTION_BUCKETS_PER_RADIAN,
    WALL_FLAG_NAMESPACE,
    WallDoorType,
    WallDirection,
    WallSenseType,
    WallMovementType,
)
from ..exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WallSegment:
    """A straight wall from (x1, y1) to (x2, y2)."""
    x1: float
    y1: float
    x2: float
    y2: float

    @classmethod
    def from_sequence(cls, coords: Sequence[float]) -> "WallSegment":
        if len(coords) != 4:
            raise InvalidArgumentError(f"A wall needs 4 coordinates, got {len(coords)}", "coords")
        return cls(*(float(c) for c in coords))

    @property
    def start(self) -> Tuple[float, float]:
        return (self.x1, self.y1)

    @property
    def end(self) -> Tuple[float, float]:
        return (self.x2, self.y2)

    @property
    def length(self) -> float:
        return math.hypot(self.x2 - self.x1, self.y2 - self.y1)

    @property
    def direction_bucket(self) -> int:
        """
        Quantized direction of the undirected line.

        round(atan2(|dy|, |dx|) * 30), rounding halves up.
        """
        angle = math.atan2(abs(self.y2 - self.y1), abs(self.x2 - self.x1))
        return math.floor(angle * DIRECTION_BUCKETS_PER_RADIAN + 0.5)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x1, self.y1, self.x2, self.y2)

    def as_linestring(self) -> LineString:
        return LineString([self.start, self.end])

    def scaled(self, scale: float, offset_x: float = 0.0, offset_y: float = 0.0) -> "WallSegment":
        """Scale image-space coordinates and shift them into scene space."""
        return WallSegment(
            self.x1 * scale + offset_x,
            self.y1 * scale + offset_y,
            self.x2 * scale + offset_x,
            self.y2 * scale + offset_y,
        )


@dataclass
class WallThreshold:
    """Proximity thresholds; all unset on a plain wall."""
    attenuation: bool = False
    light: Optional[float] = None
    sight: Optional[float] = None
    sound: Optional[float] = None

    def is_default(self) -> bool:
        return (
            not self.attenuation
            and self.light is None
            and self.sight is None
            and self.sound is None
        )


@dataclass
class WallRecord:
    """
    A committed wall document.

    Only walls with every attribute at its default ("plain" walls) are
    eligible for merging.
    """
    wall_id: str
    segment: WallSegment
    door: int = WallDoorType.NONE
    direction: int = WallDirection.BOTH
    light: int = WallSenseType.NORMAL
    sight: int = WallSenseType.NORMAL
    sound: int = WallSenseType.NORMAL
    move: int = WallMovementType.NORMAL
    threshold: WallThreshold = field(default_factory=WallThreshold)
    flags: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_plain(self) -> bool:
        return (
            self.door == WallDoorType.NONE
            and self.direction == WallDirection.BOTH
            and self.light == WallSenseType.NORMAL
            and self.sight == WallSenseType.NORMAL
            and self.sound == WallSenseType.NORMAL
            and self.move == WallMovementType.NORMAL
            and self.threshold.is_default()
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WallRecord":
        """Build a record from a wall document dictionary."""
        if "c" not in data:
            raise InvalidArgumentError("Wall document has no 'c' coordinates", "c")

        threshold = data.get("threshold") or {}
        return cls(
            wall_id=str(data.get("_id", data.get("id", ""))),
            segment=WallSegment.from_sequence(data["c"]),
            door=data.get("door", WallDoorType.NONE),
            direction=data.get("dir", WallDirection.BOTH),
            light=data.get("light", WallSenseType.NORMAL),
            sight=data.get("sight", WallSenseType.NORMAL),
            sound=data.get("sound", WallSenseType.NORMAL),
            move=data.get("move", WallMovementType.NORMAL),
            threshold=WallThreshold(
                attenuation=bool(threshold.get("attenuation", False)),
                light=threshold.get("light"),
                sight=threshold.get("sight"),
                sound=threshold.get("sound"),
            ),
            flags=dict(data.get("flags") or {}),
        )


def wall_document(segment: WallSegment) -> Dict[str, Any]:
    """Creation payload for a generated wall."""
    return {
        "c": list(segment.as_tuple()),
        "flags": {WALL_FLAG_NAMESPACE: {"auto": True}},
    }
