"""
Filters Module

Per-pixel and neighbourhood filters over pixel buffers: grayscale
conversion, separable Gaussian blur, luminance-ranked median filter,
pixelization, brightening and the lighten composite.
"""

import logging

import cv2
import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from ..constants import OPAQUE, DEFAULT_PIXELIZE_CELL
from ..exceptions import InvalidArgumentError
from .buffer import PixelBuffer, GrayscaleBuffer, require_buffer, round_half_up, to_byte

logger = logging.getLogger(__name__)

# Rows processed per block by the median filter
MEDIAN_ROW_BLOCK = 64


def odd_kernel_size(kernel_size: int) -> int:
    """Validate a kernel size and bump even sizes to the next odd value."""
    if kernel_size is None or kernel_size <= 0:
        raise InvalidArgumentError(f"Kernel size must be positive, got {kernel_size}", "kernel_size")
    if kernel_size % 2 == 0:
        kernel_size += 1
    return kernel_size


def to_grayscale(buffer: PixelBuffer) -> GrayscaleBuffer:
    """
    Convert an RGBA buffer to luminance.

    Args:
        buffer: Source pixel buffer

    Returns:
        GrayscaleBuffer with 0.299R + 0.587G + 0.114B truncated to a byte
    """
    require_buffer(buffer)
    return GrayscaleBuffer(buffer.luminance().astype(np.uint8))


def gaussian_kernel(sigma: float) -> np.ndarray:
    """
    Build a normalized 1-D Gaussian kernel.

    Radius is max(1, round(sigma * 3)).
    """
    if sigma is None or sigma <= 0:
        raise InvalidArgumentError(f"Sigma must be positive, got {sigma}", "sigma")
    radius = max(1, round_half_up(sigma * 3))
    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    kernel = np.exp(-(offsets * offsets) / (2 * sigma * sigma))
    return kernel / kernel.sum()


def gaussian_blur(gray: GrayscaleBuffer, sigma: float) -> GrayscaleBuffer:
    """
    Separable Gaussian blur with clamped (replicated) borders.

    The horizontal pass is stored as bytes before the vertical pass runs.

    Args:
        gray: Grayscale input
        sigma: Standard deviation of the kernel

    Returns:
        Blurred GrayscaleBuffer
    """
    require_buffer(gray)
    kernel = gaussian_kernel(sigma)

    horizontal = cv2.filter2D(
        gray.data.astype(np.float64), cv2.CV_64F, kernel.reshape(1, -1),
        borderType=cv2.BORDER_REPLICATE
    )
    temp = to_byte(horizontal)

    vertical = cv2.filter2D(
        temp.astype(np.float64), cv2.CV_64F, kernel.reshape(-1, 1),
        borderType=cv2.BORDER_REPLICATE
    )
    return GrayscaleBuffer(to_byte(vertical))


def median_filter(buffer: PixelBuffer, kernel_size: int = 3) -> PixelBuffer:
    """
    Replace each pixel with the median-luminance pixel of its neighbourhood.

    The whole RGBA tuple of the median neighbour is copied, so no new
    colours are introduced. Neighbours are gathered row by row with
    clamped borders and ranked with a stable sort.

    Args:
        buffer: Buffer to filter in place
        kernel_size: Kernel edge length; even values are bumped to odd

    Returns:
        The same buffer, filtered
    """
    require_buffer(buffer)
    kernel_size = odd_kernel_size(kernel_size)
    if kernel_size == 1:
        return buffer

    half = kernel_size // 2
    height, width = buffer.shape
    median_rank = (kernel_size * kernel_size) // 2

    padded = np.pad(buffer.data, ((half, half), (half, half), (0, 0)), mode="edge")
    padded_lum = PixelBuffer(padded).luminance()
    output = np.empty_like(buffer.data)

    for top in range(0, height, MEDIAN_ROW_BLOCK):
        bottom = min(top + MEDIAN_ROW_BLOCK, height)
        block = padded_lum[top:bottom + 2 * half]
        windows = sliding_window_view(block, (kernel_size, kernel_size))
        windows = windows.reshape(bottom - top, width, kernel_size * kernel_size)

        order = np.argsort(windows, axis=2, kind="stable")
        pick = order[:, :, median_rank]
        dy, dx = np.divmod(pick, kernel_size)

        rows = np.arange(top, bottom)[:, np.newaxis] + dy
        cols = np.arange(width)[np.newaxis, :] + dx
        output[top:bottom] = padded[rows, cols]

    buffer.data[...] = output
    logger.debug(f"Median filter k={kernel_size} applied to {width}x{height}")
    return buffer


def pixelize(buffer: PixelBuffer, cell_size: int = DEFAULT_PIXELIZE_CELL) -> PixelBuffer:
    """
    Repaint each cell with its most common colour.

    Cells at the right and bottom edges may be partial. Ties go to the
    colour seen first in row-major order. Alpha is forced opaque.

    Args:
        buffer: Buffer to pixelize in place
        cell_size: Cell edge length in pixels

    Returns:
        The same buffer
    """
    require_buffer(buffer)
    if cell_size is None or cell_size < 1:
        raise InvalidArgumentError(f"Cell size must be at least 1 pixel, got {cell_size}", "cell_size")

    height, width = buffer.shape
    data = buffer.data
    cells_x = -(-width // cell_size)
    cells_y = -(-height // cell_size)
    logger.debug(
        f"Pixelizing image: {width}x{height} to {cells_x}x{cells_y} cells (cell size: {cell_size}px)"
    )

    rgb = data[:, :, :3].astype(np.int64)
    packed = (rgb[:, :, 0] << 16) | (rgb[:, :, 1] << 8) | rgb[:, :, 2]

    for start_y in range(0, height, cell_size):
        end_y = min(start_y + cell_size, height)
        for start_x in range(0, width, cell_size):
            end_x = min(start_x + cell_size, width)
            cell = packed[start_y:end_y, start_x:end_x].reshape(-1)
            colors, first_seen, counts = np.unique(cell, return_index=True, return_counts=True)
            best = counts == counts.max()
            color = int(colors[best][np.argmin(first_seen[best])])

            data[start_y:end_y, start_x:end_x] = (
                (color >> 16) & 0xFF, (color >> 8) & 0xFF, color & 0xFF, OPAQUE
            )

    return buffer


def brighten_filter(buffer: PixelBuffer, kernel_size: int = 3) -> PixelBuffer:
    """
    Binary dilation of every non-black pixel.

    A pixel becomes opaque white when any pixel in its (clamped) kernel
    has luminance above zero, and transparent black otherwise.

    Args:
        buffer: Buffer to modify in place
        kernel_size: Kernel edge length; even values are bumped to odd

    Returns:
        The same buffer
    """
    require_buffer(buffer)
    kernel_size = odd_kernel_size(kernel_size)
    lit = (buffer.luminance() > 0).astype(np.uint8)
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (kernel_size, kernel_size))
    dilated = cv2.dilate(lit, kernel, borderType=cv2.BORDER_REPLICATE) > 0

    buffer.data[dilated] = (OPAQUE, OPAQUE, OPAQUE, OPAQUE)
    buffer.data[~dilated] = (0, 0, 0, 0)
    return buffer


def lighten(target: PixelBuffer, source: PixelBuffer) -> PixelBuffer:
    """
    Composite source onto target keeping the lighter value per channel.

    Args:
        target: Buffer modified in place
        source: Buffer of the same size

    Returns:
        The target buffer
    """
    require_buffer(target, "target")
    require_buffer(source, "source")
    if target.shape != source.shape:
        raise InvalidArgumentError(
            f"Cannot composite {source.width}x{source.height} onto {target.width}x{target.height}",
            "source",
        )
    np.maximum(target.data, source.data, out=target.data)
    return target

