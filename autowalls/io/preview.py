"""
Preview Rendering Module

Draws detected walls over the source image for visual checking.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

import cv2
import numpy as np

from ..constants import (
    PREVIEW_SUFFIX,
    PREVIEW_SHADOW_COLOR,
    PREVIEW_SHADOW_WIDTH,
    PREVIEW_LINE_COLOR,
    PREVIEW_LINE_WIDTH,
)
from ..raster.buffer import PixelBuffer
from ..walls.segment import WallSegment

logger = logging.getLogger(__name__)


def _point(x: float, y: float):
    return (int(round(x)), int(round(y)))


def render_walls_preview(
    buffer: PixelBuffer,
    walls: Iterable[WallSegment],
    output_path: Optional[Union[str, Path]] = None
) -> np.ndarray:
    """
    Draw walls on a copy of an image.

    Each wall is drawn twice: a wide grey shadow, then a thin white line
    on top, so walls stay visible on both light and dark maps.

    Args:
        buffer: Image the walls were detected on (image pixel space)
        walls: Walls in the same pixel space
        output_path: If given, the preview is also written there

    Returns:
        RGB preview image as a (height, width, 3) uint8 array
    """
    # Transparent areas preview as black
    alpha = buffer.alpha.astype(np.float64)[:, :, None] / 255.0
    canvas = np.ascontiguousarray((buffer.rgb.astype(np.float64) * alpha).astype(np.uint8))

    walls = list(walls)
    for wall in walls:
        cv2.line(canvas, _point(wall.x1, wall.y1), _point(wall.x2, wall.y2),
                 PREVIEW_SHADOW_COLOR, PREVIEW_SHADOW_WIDTH, cv2.LINE_AA)
    for wall in walls:
        cv2.line(canvas, _point(wall.x1, wall.y1), _point(wall.x2, wall.y2),
                 PREVIEW_LINE_COLOR, PREVIEW_LINE_WIDTH, cv2.LINE_AA)

    if output_path:
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        cv2.imwrite(str(path), cv2.cvtColor(canvas, cv2.COLOR_RGB2BGR))
        logger.info(f"Preview written: {path}")

    return canvas


def generate_preview_filename(input_path: str, output_dir: str) -> str:
    """Preview path for an input image: <stem>_preview.png in output_dir."""
    return str(Path(output_dir) / f"{Path(input_path).stem}{PREVIEW_SUFFIX}")
