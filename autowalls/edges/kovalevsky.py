"""
Kovalevsky Edge Detector Module

Roberts-cross gradient, single threshold, optional Zhang-Suen thinning
and a connectivity pass. Keeps the one-pixel-wide steps that appear on
pixelated maps, which suppression-based detectors tend to erase.
"""

import logging

import numpy as np

from ..constants import (
    DEFAULT_KOVALEVSKY_THRESHOLD,
    KOVALEVSKY_SIGMA,
    MAX_THINNING_ITERATIONS,
    STRONG_EDGE_MIN_NEIGHBORS,
)
from ..raster.buffer import PixelBuffer, GrayscaleBuffer, GradientField, edge_mask_to_buffer, require_buffer, to_byte
from ..raster.connectivity import NEIGHBORS_8, count_neighbors, neighbors, trace_from_seeds
from ..raster.filters import to_grayscale, gaussian_blur

logger = logging.getLogger(__name__)


def roberts_gradient(gray: GrayscaleBuffer) -> GradientField:
    """
    2x2 Roberts-cross gradient magnitude.

    The operator needs a right and a lower neighbour, so the last column,
    last row and bottom-right corner use absolute differences against the
    neighbours that do exist instead.

    Args:
        gray: Blurred grayscale image

    Returns:
        GradientField with magnitude clamped to 255 (no direction)
    """
    data = gray.data.astype(np.float64)
    height, width = data.shape
    # Edge padding keeps the formulas valid for 1-pixel-wide images
    padded = np.pad(data, 1, mode="edge")

    center = data
    right = padded[1:1 + height, 2:2 + width]
    below = padded[2:2 + height, 1:1 + width]
    diagonal = padded[2:2 + height, 2:2 + width]
    left = padded[1:1 + height, 0:width]
    above = padded[0:height, 1:1 + width]

    cross_x = center - diagonal
    cross_y = right - below
    magnitude = np.sqrt(cross_x * cross_x + cross_y * cross_y)

    # Right column
    magnitude[:, -1] = np.abs(center[:, -1] - left[:, -1]) + np.abs(center[:, -1] - below[:, -1])
    # Bottom row
    magnitude[-1, :] = np.abs(center[-1, :] - above[-1, :]) + np.abs(center[-1, :] - right[-1, :])
    # Bottom-right corner
    magnitude[-1, -1] = abs(center[-1, -1] - left[-1, -1]) + abs(center[-1, -1] - above[-1, -1])

    return GradientField(magnitude=to_byte(np.minimum(255.0, magnitude)))


def _zhang_suen_removable(image: np.ndarray, phase: int) -> np.ndarray:
    """Mask of pixels one Zhang-Suen sub-iteration would delete."""
    height, width = image.shape
    padded = np.pad(image, 1, mode="constant")

    def at(dx, dy):
        return padded[1 + dy:1 + dy + height, 1 + dx:1 + dx + width]

    # p9 p2 p3
    # p8 p1 p4
    # p7 p6 p5
    p2, p3, p4, p5 = at(0, -1), at(1, -1), at(1, 0), at(1, 1)
    p6, p7, p8, p9 = at(0, 1), at(-1, 1), at(-1, 0), at(-1, -1)
    ring = [p2, p3, p4, p5, p6, p7, p8, p9]

    transitions = np.zeros((height, width), dtype=np.uint8)
    for current, following in zip(ring, ring[1:] + ring[:1]):
        transitions += (current == 0) & (following == 1)
    occupied = sum(p.astype(np.uint8) for p in ring)

    removable = (image == 1) & (transitions == 1) & (occupied >= 2) & (occupied <= 6)
    if phase == 0:
        removable &= (p2 * p4 * p6 == 0) & (p4 * p6 * p8 == 0)
    else:
        removable &= (p2 * p4 * p8 == 0) & (p2 * p6 * p8 == 0)

    # Border pixels are never thinned
    removable[0, :] = False
    removable[-1, :] = False
    removable[:, 0] = False
    removable[:, -1] = False
    return removable


def zhang_suen_thinning(edges: np.ndarray, max_iterations: int = MAX_THINNING_ITERATIONS) -> np.ndarray:
    """
    Topology-preserving thinning of a binary mask.

    Each iteration runs both Zhang-Suen sub-iterations; pixels are marked
    against the unmodified image and removed together.

    Args:
        edges: Boolean or 0/1 edge mask
        max_iterations: Iteration cap

    Returns:
        Thinned uint8 mask (0/1)
    """
    result = edges.astype(np.uint8)
    iteration = 0
    changed = True

    while changed and iteration < max_iterations:
        changed = False
        iteration += 1
        for phase in (0, 1):
            removable = _zhang_suen_removable(result, phase)
            if removable.any():
                result[removable] = 0
                changed = True

    logger.debug(f"Zhang-Suen thinning finished after {iteration} iterations")
    return result


def connect_edges(edges: np.ndarray) -> np.ndarray:
    """
    Keep thresholded pixels that belong to connected edge structure.

    1. Pixels with at least two thresholded 8-neighbours are strong.
    2. Thresholded pixels 8-connected to a strong pixel are traced in.
    3. Leftover thresholded pixels touching an accepted pixel are added.

    Args:
        edges: Boolean or 0/1 thresholded mask

    Returns:
        Boolean edge mask
    """
    thresholded = edges.astype(bool)
    height, width = thresholded.shape

    strong = thresholded & (count_neighbors(thresholded) >= STRONG_EDGE_MIN_NEIGHBORS)
    accepted = trace_from_seeds(strong, thresholded)

    flat_accepted = accepted.reshape(-1)
    for index in np.flatnonzero(thresholded.reshape(-1) & ~flat_accepted):
        index = int(index)
        if any(flat_accepted[n] for n in neighbors(index, width, height, NEIGHBORS_8)):
            flat_accepted[index] = True

    return accepted


def detect_edges_kovalevsky(
    buffer: PixelBuffer,
    threshold: float = DEFAULT_KOVALEVSKY_THRESHOLD,
    thinning: bool = True
) -> PixelBuffer:
    """
    Kovalevsky-style edge detection.

    Steps:
    1. Grayscale + Gaussian blur (sigma 1.0)
    2. Roberts-cross gradient
    3. Single threshold
    4. Zhang-Suen thinning (optional)
    5. Connectivity pass

    Args:
        buffer: Source image
        threshold: Gradient threshold (0-255)
        thinning: Thin edges to one pixel before the connectivity pass

    Returns:
        New PixelBuffer, white edges on black
    """
    require_buffer(buffer)
    logger.info(
        f"Running Kovalevsky edge detection: {buffer.width}x{buffer.height}, threshold: {threshold}"
    )

    blurred = gaussian_blur(to_grayscale(buffer), KOVALEVSKY_SIGMA)
    gradient = roberts_gradient(blurred)

    edges = gradient.magnitude >= threshold
    if thinning:
        edges = zhang_suen_thinning(edges).astype(bool)

    final = connect_edges(edges)
    logger.debug(f"Edge extraction complete: {int(np.count_nonzero(final))} edge pixels")
    return edge_mask_to_buffer(final)
