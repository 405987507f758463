"""
Connectivity Module

Worklist-based traversal helpers shared by the flood fill filters and
the edge tracers. Pixels are addressed by flat index y * width + x and
visited state lives in a bytearray sized width * height.
"""

from typing import Iterable, List, Tuple

import numpy as np

# 4-connected neighbours: up, right, down, left
NEIGHBORS_4: Tuple[Tuple[int, int], ...] = ((0, -1), (1, 0), (0, 1), (-1, 0))

# 8-connected neighbours, clockwise from the left
NEIGHBORS_8: Tuple[Tuple[int, int], ...] = (
    (-1, 0), (-1, -1), (0, -1), (1, -1),
    (1, 0), (1, 1), (0, 1), (-1, 1),
)


def neighbors(
    index: int,
    width: int,
    height: int,
    offsets: Tuple[Tuple[int, int], ...] = NEIGHBORS_8
) -> Iterable[int]:
    """Yield flat indices of in-bounds neighbours of a pixel."""
    y, x = divmod(index, width)
    for dx, dy in offsets:
        nx = x + dx
        ny = y + dy
        if 0 <= nx < width and 0 <= ny < height:
            yield ny * width + nx


def trace_from_seeds(seeds: np.ndarray, candidates: np.ndarray) -> np.ndarray:
    """
    Grow seed pixels through 8-connected candidate pixels.

    Seeds are accepted unconditionally. Every candidate reachable from a
    seed through a chain of 8-adjacent candidates is accepted too. The
    traversal uses an explicit stack and a visited bytearray.

    Args:
        seeds: Boolean mask of starting pixels
        candidates: Boolean mask of pixels the trace may walk through

    Returns:
        Boolean mask of accepted pixels
    """
    height, width = seeds.shape
    accepted = seeds.copy()
    flat_accepted = accepted.reshape(-1)
    flat_candidates = candidates.reshape(-1)
    visited = bytearray(flat_accepted.astype(np.uint8).tobytes())

    for seed in np.flatnonzero(flat_accepted):
        stack: List[int] = [int(seed)]
        while stack:
            current = stack.pop()
            for neighbor in neighbors(current, width, height):
                if not visited[neighbor] and flat_candidates[neighbor]:
                    visited[neighbor] = 1
                    flat_accepted[neighbor] = True
                    stack.append(neighbor)

    return accepted


def count_neighbors(mask: np.ndarray) -> np.ndarray:
    """Number of set 8-neighbours per pixel; out-of-bounds counts as unset."""
    padded = np.pad(mask.astype(np.uint8), 1, mode="constant")
    height, width = mask.shape
    total = np.zeros((height, width), dtype=np.uint8)
    for dx, dy in NEIGHBORS_8:
        total += padded[1 + dy:1 + dy + height, 1 + dx:1 + dx + width]
    return total
