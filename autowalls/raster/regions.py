"""
Region Cleanup Module

Flood-fill based removal of small same-colour regions and small dark
holes. Components are always found on an unmodified snapshot before
any pixel is repainted.
"""

import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Dict, List

import numpy as np

from ..constants import (
    DEFAULT_MAX_REGION_SIZE,
    DEFAULT_MAX_HOLE_SIZE,
    DEFAULT_HOLE_THRESHOLD,
    REGION_GROWTH_GUARD_FACTOR,
    CHANNELS,
)
from ..exceptions import InvalidArgumentError
from .buffer import PixelBuffer, require_buffer
from .connectivity import NEIGHBORS_4, neighbors

logger = logging.getLogger(__name__)


@dataclass
class SmallRegion:
    """A same-colour component small enough to be repainted."""
    color: int
    pixels: List[int]
    borders: Dict[int, int] = field(default_factory=dict)  # border pixel -> colour key

    @property
    def size(self) -> int:
        return len(self.pixels)

    def dominant_border_color(self) -> int:
        """Most frequent border colour; ties go to the first one seen."""
        frequency = Counter(self.borders.values())
        return max(frequency, key=frequency.get)


def _pack_colors(data: np.ndarray, channels: int) -> List[int]:
    """Pack the first ``channels`` bytes of each pixel into one integer key."""
    values = data[:, :, :channels].astype(np.int64)
    packed = np.zeros(values.shape[:2], dtype=np.int64)
    for channel in range(channels):
        packed = (packed << 8) | values[:, :, channel]
    return packed.reshape(-1).tolist()


def _unpack_color(key: int, channels: int) -> List[int]:
    return [(key >> (8 * (channels - 1 - channel))) & 0xFF for channel in range(channels)]


def find_small_regions(
    buffer: PixelBuffer,
    max_region_size: int,
    include_alpha: bool = False
) -> List[SmallRegion]:
    """
    Find 4-connected same-colour regions of at most ``max_region_size`` pixels.

    Pixel and border recording stops once a region grows past
    REGION_GROWTH_GUARD_FACTOR * max_region_size; the rest of that
    region is still marked visited so it is not rediscovered in pieces.

    Args:
        buffer: Source buffer (not modified)
        max_region_size: Largest region size to report
        include_alpha: Compare RGBA instead of RGB

    Returns:
        Regions with at least one differently coloured border pixel,
        in discovery order
    """
    require_buffer(buffer)
    channels = CHANNELS if include_alpha else 3
    height, width = buffer.shape
    keys = _pack_colors(buffer.data, channels)
    visited = bytearray(width * height)
    guard = max_region_size * REGION_GROWTH_GUARD_FACTOR

    regions = []
    total_regions = 0

    for start in range(width * height):
        if visited[start]:
            continue
        total_regions += 1

        color = keys[start]
        region = SmallRegion(color=color, pixels=[])
        recording = True

        queue = deque([start])
        visited[start] = 1
        while queue:
            current = queue.popleft()
            if recording:
                region.pixels.append(current)

            for neighbor in neighbors(current, width, height, NEIGHBORS_4):
                if keys[neighbor] == color:
                    if not visited[neighbor]:
                        visited[neighbor] = 1
                        queue.append(neighbor)
                elif recording:
                    region.borders[neighbor] = keys[neighbor]

            if recording and region.size > guard:
                logger.debug(f"Region too large ({region.size} pixels), stopping early")
                recording = False

        if recording and 0 < region.size <= max_region_size and region.borders:
            regions.append(region)

    logger.debug(
        f"Found {total_regions} total regions, {len(regions)} are smaller than {max_region_size} pixels"
    )
    return regions


def remove_small_regions(
    buffer: PixelBuffer,
    max_region_size: int = DEFAULT_MAX_REGION_SIZE,
    include_alpha: bool = False
) -> PixelBuffer:
    """
    Repaint small same-colour islands with their most common border colour.

    Regions are collected from the original pixels first, then repainted
    smallest first, so the result does not depend on scan order.

    Args:
        buffer: Buffer to clean in place
        max_region_size: Largest region (in pixels) to remove
        include_alpha: Compare and repaint alpha as well as RGB

    Returns:
        The same buffer
    """
    require_buffer(buffer)
    if max_region_size is None or max_region_size < 0:
        raise InvalidArgumentError(
            f"max_region_size must be non-negative, got {max_region_size}", "max_region_size"
        )

    channels = CHANNELS if include_alpha else 3
    regions = find_small_regions(buffer, max_region_size, include_alpha)
    regions.sort(key=lambda r: r.size)

    pixels = buffer.data.reshape(-1, CHANNELS)
    for region in regions:
        replacement = _unpack_color(region.dominant_border_color(), channels)
        pixels[region.pixels, :channels] = replacement

    logger.info(f"Removed {len(regions)} small regions from the image")
    return buffer


def remove_small_holes(
    buffer: PixelBuffer,
    max_hole_size: int = DEFAULT_MAX_HOLE_SIZE,
    threshold: float = DEFAULT_HOLE_THRESHOLD
) -> PixelBuffer:
    """
    Fill small dark holes with the average colour around them.

    A pixel is dark when its mean RGB is below ``threshold``. Each
    4-connected dark component smaller than ``max_hole_size`` gets the
    rounded average RGB of its non-dark neighbours (one sample per
    adjacency). Alpha is left untouched.

    Args:
        buffer: Buffer to clean in place
        max_hole_size: Components with fewer pixels than this are filled
        threshold: Brightness threshold (0-255)

    Returns:
        The same buffer
    """
    require_buffer(buffer)
    if max_hole_size is None or max_hole_size < 0:
        raise InvalidArgumentError(f"max_hole_size must be non-negative, got {max_hole_size}", "max_hole_size")

    height, width = buffer.shape
    pixels = buffer.data.reshape(-1, CHANNELS)
    brightness = buffer.data[:, :, :3].astype(np.float64).sum(axis=2) / 3
    hole_mask = (brightness < threshold).reshape(-1).tolist()
    processed = bytearray(width * height)

    filled = 0
    for start in range(width * height):
        if not hole_mask[start] or processed[start]:
            continue

        hole_pixels = []
        border_pixels = []
        queue = deque([start])
        processed[start] = 1
        while queue:
            current = queue.popleft()
            hole_pixels.append(current)
            for neighbor in neighbors(current, width, height, NEIGHBORS_4):
                if hole_mask[neighbor]:
                    if not processed[neighbor]:
                        processed[neighbor] = 1
                        queue.append(neighbor)
                else:
                    border_pixels.append(neighbor)

        if len(hole_pixels) < max_hole_size and border_pixels:
            average = pixels[border_pixels, :3].astype(np.float64).mean(axis=0)
            pixels[hole_pixels, :3] = np.floor(average + 0.5).astype(np.uint8)
            filled += 1

    logger.info(f"Filled {filled} small holes (threshold {threshold}, max size {max_hole_size})")
    return buffer
