"""
Image Loader Module

Reads map images with Pillow and prepares the scaled pixel buffer the
pipeline works on.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from ..exceptions import ImageLoadError, InvalidArgumentError
from ..raster.buffer import PixelBuffer

logger = logging.getLogger(__name__)


def open_image(image_path: Union[str, Path]) -> Image.Image:
    """
    Open an image file as RGBA.

    Raises:
        ImageLoadError: If the file is missing or not a readable image
    """
    path = Path(image_path)
    if not path.exists():
        raise ImageLoadError("File not found", str(path))

    try:
        with Image.open(path) as image:
            image.load()
            return image.convert("RGBA")
    except (UnidentifiedImageError, OSError) as e:
        raise ImageLoadError(str(e), str(path)) from e


def image_to_buffer(
    image: Image.Image,
    width: int,
    height: int,
    scaled_width: Optional[int] = None,
    scaled_height: Optional[int] = None
) -> PixelBuffer:
    """
    Draw an image onto a width x height canvas.

    The image is first resized to scaled_width x scaled_height (defaults
    to the canvas size) and placed at the top-left corner; anything
    outside the canvas is cropped and uncovered canvas stays transparent.

    Args:
        image: Source image
        width: Canvas width in pixels
        height: Canvas height in pixels
        scaled_width: Width the image is resized to
        scaled_height: Height the image is resized to

    Returns:
        PixelBuffer of the canvas
    """
    if width <= 0 or height <= 0:
        raise InvalidArgumentError(f"Canvas size must be positive, got {width}x{height}", "size")

    scaled_width = scaled_width or width
    scaled_height = scaled_height or height

    rgba = image.convert("RGBA")
    if rgba.size != (scaled_width, scaled_height):
        rgba = rgba.resize((scaled_width, scaled_height), Image.BILINEAR)

    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    canvas.paste(rgba, (0, 0))
    return PixelBuffer(np.asarray(canvas, dtype=np.uint8).copy())


def load_pixel_buffer(
    image_path: Union[str, Path],
    width: Optional[int] = None,
    height: Optional[int] = None,
    scaled_width: Optional[int] = None,
    scaled_height: Optional[int] = None
) -> PixelBuffer:
    """
    Load an image file into a PixelBuffer.

    Without a size the image is loaded at its native resolution.

    Args:
        image_path: Path to the image file
        width: Canvas width
        height: Canvas height
        scaled_width: Width the image is resized to before cropping
        scaled_height: Height the image is resized to before cropping

    Returns:
        PixelBuffer with RGBA data
    """
    image = open_image(image_path)
    logger.debug(f"Loaded {image_path}: {image.size[0]}x{image.size[1]}")

    if width is None or height is None:
        return PixelBuffer(np.asarray(image, dtype=np.uint8).copy())

    return image_to_buffer(image, width, height, scaled_width, scaled_height)

