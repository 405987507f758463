"""
Pixel Buffer Module

In-memory RGBA raster shared by every pipeline stage, plus the
single-channel buffers derived from it.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from ..constants import CHANNELS, LUMINANCE_WEIGHTS, OPAQUE
from ..exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)


def _check_size(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise InvalidArgumentError(
            f"Buffer dimensions must be positive, got {width}x{height}", "size"
        )


def require_buffer(buffer, name: str = "buffer") -> None:
    if buffer is None:
        raise InvalidArgumentError("Buffer is required", name)


def _as_bytes(array: np.ndarray, name: str) -> np.ndarray:
    """Convert an array to uint8, rejecting values outside [0, 255]."""
    if array.dtype == np.uint8:
        return array
    if array.size and (array.min() < 0 or array.max() > 255):
        raise InvalidArgumentError(
            f"Channel values must be in [0, 255], got [{array.min()}, {array.max()}]", name
        )
    return array.astype(np.uint8)


@dataclass
class PixelBuffer:
    """
    RGBA raster stored row-major, top-to-bottom.

    ``data`` has shape (height, width, 4); ``flat`` exposes it as the
    width * height * 4 byte sequence.
    """
    data: np.ndarray

    def __post_init__(self):
        if self.data is None:
            raise InvalidArgumentError("Pixel data is required", "data")
        if self.data.ndim != 3 or self.data.shape[2] != CHANNELS:
            raise InvalidArgumentError(
                f"Pixel data must have shape (height, width, 4), got {self.data.shape}", "data"
            )
        _check_size(self.data.shape[1], self.data.shape[0])
        self.data = np.ascontiguousarray(_as_bytes(self.data, "data"))

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def shape(self) -> Tuple[int, int]:
        """(height, width)"""
        return self.data.shape[:2]

    @property
    def flat(self) -> np.ndarray:
        """Flat RGBA byte view of length width * height * 4."""
        return self.data.reshape(-1)

    @property
    def rgb(self) -> np.ndarray:
        return self.data[:, :, :3]

    @property
    def alpha(self) -> np.ndarray:
        return self.data[:, :, 3]

    @classmethod
    def blank(
        cls,
        width: int,
        height: int,
        color: Sequence[int] = (0, 0, 0, OPAQUE)
    ) -> "PixelBuffer":
        """Create a buffer filled with a single RGBA colour."""
        _check_size(width, height)
        rgba = tuple(color) + (OPAQUE,) * (CHANNELS - len(color))
        data = np.empty((height, width, CHANNELS), dtype=np.uint8)
        data[:, :] = rgba
        return cls(data)

    @classmethod
    def from_flat(cls, values: Sequence[int], width: int, height: int) -> "PixelBuffer":
        """Build a buffer from a flat RGBA sequence."""
        _check_size(width, height)
        array = np.asarray(values)
        if array.size != width * height * CHANNELS:
            raise InvalidArgumentError(
                f"Expected {width * height * CHANNELS} samples, got {array.size}", "values"
            )
        return cls(_as_bytes(array, "values").reshape(height, width, CHANNELS).copy())

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """
        Build a buffer from a grayscale, RGB or RGBA array.

        Missing alpha is filled with 255.
        """
        if array is None or np.size(array) == 0:
            raise InvalidArgumentError("Image array is empty", "array")
        array = _as_bytes(np.asarray(array), "array")

        if array.ndim == 2:
            array = np.repeat(array[:, :, np.newaxis], 3, axis=2)
        if array.ndim != 3 or array.shape[2] not in (3, CHANNELS):
            raise InvalidArgumentError(f"Unsupported image shape {array.shape}", "array")

        if array.shape[2] == 3:
            alpha = np.full(array.shape[:2] + (1,), OPAQUE, dtype=np.uint8)
            array = np.concatenate([array, alpha], axis=2)

        return cls(np.ascontiguousarray(array).copy())

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.data.copy())

    def luminance(self) -> np.ndarray:
        """Float luminance per pixel, 0.299R + 0.587G + 0.114B."""
        r_weight, g_weight, b_weight = LUMINANCE_WEIGHTS
        rgb = self.data[:, :, :3].astype(np.float64)
        return r_weight * rgb[:, :, 0] + g_weight * rgb[:, :, 1] + b_weight * rgb[:, :, 2]


@dataclass
class GrayscaleBuffer:
    """Single-channel luminance raster, shape (height, width)."""
    data: np.ndarray

    def __post_init__(self):
        if self.data is None or self.data.ndim != 2:
            raise InvalidArgumentError("Grayscale data must be a 2D array", "data")
        _check_size(self.data.shape[1], self.data.shape[0])
        self.data = _as_bytes(self.data, "data")

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]


@dataclass
class GradientField:
    """Gradient magnitude (0-255) and optional direction bucket per pixel."""
    magnitude: np.ndarray
    direction: Optional[np.ndarray] = None

    @property
    def width(self) -> int:
        return self.magnitude.shape[1]

    @property
    def height(self) -> int:
        return self.magnitude.shape[0]


def edge_mask_to_buffer(mask: np.ndarray) -> PixelBuffer:
    """Render a boolean edge mask as opaque white-on-black RGBA."""
    value = np.where(mask, OPAQUE, 0).astype(np.uint8)
    data = np.empty(mask.shape + (CHANNELS,), dtype=np.uint8)
    data[:, :, 0] = value
    data[:, :, 1] = value
    data[:, :, 2] = value
    data[:, :, 3] = OPAQUE
    return PixelBuffer(data)


def round_half_up(value: float) -> int:
    """Round to nearest integer with .5 rounded toward +infinity."""
    return int(np.floor(value + 0.5))


def to_byte(values: np.ndarray) -> np.ndarray:
    """Round to nearest (ties to even) and clamp into uint8."""
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)
