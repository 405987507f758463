"""
Canny Edge Detector Module

Sobel gradients, non-maximum suppression and two-threshold hysteresis.
"""

import logging

import numpy as np

from ..constants import (
    DEFAULT_CANNY_LOW,
    DEFAULT_CANNY_HIGH,
    DEFAULT_CANNY_SIGMA,
    NMS_MAGNITUDE_FLOOR,
    NO_EDGE_MAX_MAGNITUDE,
)
from ..exceptions import InvalidArgumentError, NoEdgesDetectedError
from ..raster.buffer import PixelBuffer, GrayscaleBuffer, GradientField, edge_mask_to_buffer, require_buffer, to_byte
from ..raster.connectivity import trace_from_seeds
from ..raster.filters import to_grayscale, gaussian_blur

logger = logging.getLogger(__name__)

SOBEL_X = np.array([[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]], dtype=np.float64)
SOBEL_Y = np.array([[-1, -2, -1], [0, 0, 0], [1, 2, 1]], dtype=np.float64)

# Neighbour offsets (dx, dy) compared along each gradient direction bucket
DIRECTION_NEIGHBORS = {
    0: ((-1, 0), (1, 0)),
    45: ((1, -1), (-1, 1)),
    90: ((0, -1), (0, 1)),
    135: ((-1, -1), (1, 1)),
}


def _shifted(padded: np.ndarray, dx: int, dy: int, height: int, width: int) -> np.ndarray:
    """Window of a 1-pixel padded array shifted by (dx, dy)."""
    return padded[1 + dy:1 + dy + height, 1 + dx:1 + dx + width]


def quantize_direction(gx: np.ndarray, gy: np.ndarray) -> np.ndarray:
    """
    Bucket gradient angles into 0, 45, 90 or 135 degrees.

    Angles are folded into [0, 180] and split into 45 degree bands
    centred on each bucket.
    """
    angle = np.degrees(np.arctan2(gy, gx))
    angle = np.where(angle < 0, angle + 180, angle)

    direction = np.full(angle.shape, 135, dtype=np.uint8)
    direction[(angle >= 67.5) & (angle < 112.5)] = 90
    direction[(angle >= 22.5) & (angle < 67.5)] = 45
    direction[(angle < 22.5) | (angle >= 157.5)] = 0
    return direction


def sobel_gradients(gray: GrayscaleBuffer) -> GradientField:
    """
    3x3 Sobel gradients with clamped borders.

    Args:
        gray: Blurred grayscale image

    Returns:
        GradientField with magnitude clamped to 255 and direction buckets
    """
    height, width = gray.data.shape
    padded = np.pad(gray.data.astype(np.float64), 1, mode="edge")

    gx = np.zeros((height, width), dtype=np.float64)
    gy = np.zeros((height, width), dtype=np.float64)
    for ky in range(3):
        for kx in range(3):
            window = padded[ky:ky + height, kx:kx + width]
            gx += window * SOBEL_X[ky, kx]
            gy += window * SOBEL_Y[ky, kx]

    magnitude = to_byte(np.minimum(255.0, np.sqrt(gx * gx + gy * gy)))
    return GradientField(magnitude=magnitude, direction=quantize_direction(gx, gy))


def non_maximum_suppression(gradient: GradientField) -> np.ndarray:
    """
    Keep pixels that are local maxima along their gradient direction.

    Magnitudes below NMS_MAGNITUDE_FLOOR are dropped outright. Neighbour
    lookups at the image border clamp to the nearest valid pixel.

    Returns:
        uint8 array of suppressed magnitudes
    """
    height, width = gradient.magnitude.shape
    magnitude = gradient.magnitude
    padded = np.pad(magnitude, 1, mode="edge")

    suppressed = np.zeros_like(magnitude)
    for bucket, ((dx1, dy1), (dx2, dy2)) in DIRECTION_NEIGHBORS.items():
        first = _shifted(padded, dx1, dy1, height, width)
        second = _shifted(padded, dx2, dy2, height, width)
        keep = (
            (gradient.direction == bucket)
            & (magnitude >= NMS_MAGNITUDE_FLOOR)
            & (magnitude >= first)
            & (magnitude >= second)
        )
        suppressed[keep] = magnitude[keep]

    logger.debug(
        f"Non-maximum suppression: Found {int(np.count_nonzero(suppressed))} strong pixels "
        f"out of {width * height}"
    )
    return suppressed


def hysteresis(suppressed: np.ndarray, low_threshold: float, high_threshold: float) -> np.ndarray:
    """
    Two-threshold edge tracking.

    Pixels at or above ``high_threshold`` seed the trace; 8-connected
    pixels at or above ``low_threshold`` reachable from a seed are kept.

    Returns:
        Boolean edge mask
    """
    seeds = suppressed >= high_threshold
    return trace_from_seeds(seeds, suppressed >= low_threshold)


def detect_edges_canny(
    buffer: PixelBuffer,
    low_threshold: float = DEFAULT_CANNY_LOW,
    high_threshold: float = DEFAULT_CANNY_HIGH,
    sigma: float = DEFAULT_CANNY_SIGMA
) -> PixelBuffer:
    """
    Canny-style edge detection.

    Steps:
    1. Grayscale + Gaussian blur
    2. Sobel gradients with direction buckets
    3. Non-maximum suppression
    4. Hysteresis thresholding

    Args:
        buffer: Source image
        low_threshold: Weak edge threshold (0-255)
        high_threshold: Strong edge threshold (0-255)
        sigma: Gaussian blur sigma

    Returns:
        New PixelBuffer, white edges on black

    Raises:
        NoEdgesDetectedError: If the suppressed gradient is flat (blank image)
    """
    require_buffer(buffer)
    if low_threshold > high_threshold:
        raise InvalidArgumentError(
            f"low_threshold ({low_threshold}) must not exceed high_threshold ({high_threshold})",
            "low_threshold",
        )

    logger.info(
        f"Running Canny edge detection: {buffer.width}x{buffer.height}, "
        f"thresholds: {low_threshold}/{high_threshold}"
    )

    blurred = gaussian_blur(to_grayscale(buffer), sigma)
    gradient = sobel_gradients(blurred)
    suppressed = non_maximum_suppression(gradient)

    max_value = int(suppressed.max())
    if max_value <= NO_EDGE_MAX_MAGNITUDE:
        raise NoEdgesDetectedError(max_magnitude=max_value)

    edges = hysteresis(suppressed, low_threshold, high_threshold)

    edge_count = int(np.count_nonzero(edges))
    logger.info(
        f"Detected {edge_count} edge pixels out of {edges.size} total pixels "
        f"({edge_count / edges.size * 100:.2f}%)"
    )
    return edge_mask_to_buffer(edges)
