"""
Grid Wall Extractor Module

Scans an edge image tile by tile and emits one axis-aligned wall per
tile edge that is mostly covered by bright edge pixels.
"""

import logging
from typing import List

import numpy as np

from ..constants import DEFAULT_WALL_THRESHOLD
from ..exceptions import InvalidArgumentError
from ..raster.buffer import PixelBuffer, require_buffer
from .segment import WallSegment

logger = logging.getLogger(__name__)


def longest_run(bright: np.ndarray) -> int:
    """Length of the longest run of True values."""
    best = 0
    current = 0
    for value in bright:
        if value:
            current += 1
            best = max(best, current)
        else:
            current = 0
    return best


def identify_walls(
    edge_buffer: PixelBuffer,
    cell_size: int,
    threshold: float = DEFAULT_WALL_THRESHOLD
) -> List[WallSegment]:
    """
    Extract grid-aligned walls from an edge image.

    For every cell_size x cell_size tile, ``cell_size`` samples are taken
    along its top row and its left column (red channel). A sample is
    bright when it, or the sample just outside the tile (row above /
    column to the left), reaches ``threshold``; this tolerates edges that
    are one pixel off the grid line. Tiles at the right and bottom edges
    may be partial; only their in-image samples are taken. A longest
    bright run over half the cell size emits a wall along that tile edge.

    Args:
        edge_buffer: White-on-black edge image
        cell_size: Tile edge length in pixels
        threshold: Minimum sample value counted as an edge

    Returns:
        Unordered list of unit-cell walls; duplicates are possible
    """
    require_buffer(edge_buffer)
    if cell_size is None or cell_size <= 0:
        raise InvalidArgumentError(f"Cell size must be positive, got {cell_size}", "cell_size")

    height, width = edge_buffer.shape
    bright = edge_buffer.data[:, :, 0] >= threshold
    walls = []

    offsets = np.arange(cell_size)
    for y in range(0, height, cell_size):
        row = min(y, height - 1)
        row_above = max(min(y - 1, height - 1), 0)
        rows_down = y + offsets[y + offsets < height]

        for x in range(0, width, cell_size):
            col = min(x, width - 1)
            col_left = max(min(x - 1, width - 1), 0)
            cols_across = x + offsets[x + offsets < width]

            horizontal = bright[row, cols_across] | bright[row_above, cols_across]
            vertical = bright[rows_down, col] | bright[rows_down, col_left]

            if longest_run(horizontal) > cell_size / 2:
                walls.append(WallSegment(x, y, x + cell_size, y))
            if longest_run(vertical) > cell_size / 2:
                walls.append(WallSegment(x, y, x, y + cell_size))

    logger.info(f"Identified {len(walls)} wall segments on a {cell_size}px grid")
    return walls
