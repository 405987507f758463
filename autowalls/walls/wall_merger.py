"""
Wall Merger Module

Collapses chains of collinear, end-to-end wall segments into single
walls. The grid extractor produces one wall per cell edge, so a long
wall usually arrives as many unit pieces sharing endpoints.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from shapely.geometry import MultiLineString

from .segment import WallSegment, WallRecord

logger = logging.getLogger(__name__)

EndpointKey = Tuple[int, int, int]


@dataclass
class MergeResult:
    """Merged walls and the ids of the records they replace."""
    segments: List[WallSegment] = field(default_factory=list)
    replaced_ids: List[str] = field(default_factory=list)
    skipped_ids: List[str] = field(default_factory=list)
    components: int = 0

    @property
    def merged_count(self) -> int:
        return len(self.replaced_ids) - len(self.segments)


def _round_half_up(value: float) -> int:
    return int((value + 0.5) // 1)


def endpoint_keys(segment: WallSegment) -> Tuple[EndpointKey, EndpointKey]:
    """Quantized (x, y, direction bucket) keys for both ends of a segment."""
    bucket = segment.direction_bucket
    return (
        (_round_half_up(segment.x1), _round_half_up(segment.y1), bucket),
        (_round_half_up(segment.x2), _round_half_up(segment.y2), bucket),
    )


def build_endpoint_graph(segments: List[WallSegment]) -> Dict[EndpointKey, List[int]]:
    """Map every endpoint key to the indices of the segments touching it."""
    graph: Dict[EndpointKey, List[int]] = defaultdict(list)
    for index, segment in enumerate(segments):
        start, end = endpoint_keys(segment)
        graph[start].append(index)
        if end != start:
            graph[end].append(index)
    return graph


def connected_components(segments: List[WallSegment]) -> List[List[int]]:
    """
    Group segments that are linked through shared endpoint keys.

    Iterative depth-first traversal; components come out in the order
    their first segment appears.
    """
    graph = build_endpoint_graph(segments)
    visited = [False] * len(segments)
    components = []

    for first in range(len(segments)):
        if visited[first]:
            continue

        component = []
        stack = [first]
        visited[first] = True
        while stack:
            index = stack.pop()
            component.append(index)
            for key in endpoint_keys(segments[index]):
                for other in graph[key]:
                    if not visited[other]:
                        visited[other] = True
                        stack.append(other)

        components.append(sorted(component))

    return components


def collapse_component(members: List[WallSegment]) -> WallSegment:
    """
    Replace a chain of segments with one segment across its bounding box.

    A chain whose pieces mostly slope down-right (dx*dy < 0 in image
    coordinates) spans the box from bottom-left to top-right; every other
    chain spans it from top-left to bottom-right.
    """
    if len(members) == 1:
        return members[0]

    min_x, min_y, max_x, max_y = MultiLineString(
        [[m.start, m.end] for m in members]
    ).bounds

    falling = sum(1 for m in members if (m.x2 - m.x1) * (m.y2 - m.y1) < 0)
    if falling * 2 > len(members):
        return WallSegment(min_x, max_y, max_x, min_y)
    return WallSegment(min_x, min_y, max_x, max_y)


def merge_walls(segments: Iterable[WallSegment]) -> List[WallSegment]:
    """
    Merge wall segments that share quantized endpoints and direction.

    Two segments join only if an endpoint of one rounds to the same
    integer point as an endpoint of the other and both fall in the same
    direction bucket. Single segments pass through unchanged.

    Args:
        segments: Wall segments in any order

    Returns:
        One segment per connected component
    """
    segments = list(segments)
    if not segments:
        return []

    merged = [
        collapse_component([segments[i] for i in component])
        for component in connected_components(segments)
    ]

    logger.info(f"Merged {len(segments)} walls into {len(merged)}")
    return merged


def plain_walls(records: Iterable[WallRecord]) -> List[WallRecord]:
    """Records whose door, direction, sense, movement and threshold settings are all defaults."""
    return [record for record in records if record.is_plain]


def merge_wall_records(records: Iterable[WallRecord]) -> MergeResult:
    """
    Merge committed wall records.

    Only plain walls take part. Components of a single wall are left
    alone; every wall in a larger component is reported as replaced by
    the merged segment.

    Args:
        records: Committed wall records

    Returns:
        MergeResult with the new segments, replaced ids and skipped ids
    """
    records = list(records)
    candidates = plain_walls(records)
    result = MergeResult(
        skipped_ids=[r.wall_id for r in records if not r.is_plain],
    )

    segments = [r.segment for r in candidates]
    components = connected_components(segments)
    result.components = len(components)

    for component in components:
        if len(component) < 2:
            continue
        result.segments.append(collapse_component([segments[i] for i in component]))
        result.replaced_ids.extend(candidates[i].wall_id for i in component)

    logger.info(
        f"Wall merge: {len(candidates)} plain walls, {len(result.skipped_ids)} skipped, "
        f"{len(result.replaced_ids)} replaced by {len(result.segments)}"
    )
    return result
