# Pixel buffer, filters and colour segmentation

from .buffer import (
    PixelBuffer,
    GrayscaleBuffer,
    GradientField,
    edge_mask_to_buffer,
)

from .filters import (
    to_grayscale,
    gaussian_blur,
    median_filter,
    pixelize,
    brighten_filter,
    lighten,
)

from .regions import (
    SmallRegion,
    find_small_regions,
    remove_small_regions,
    remove_small_holes,
)

from .segmentation import (
    KMeansResult,
    kmeans_segment,
    separate_inside,
)

__all__ = [
    # Buffers
    "PixelBuffer",
    "GrayscaleBuffer",
    "GradientField",
    "edge_mask_to_buffer",
    # Filters
    "to_grayscale",
    "gaussian_blur",
    "median_filter",
    "pixelize",
    "brighten_filter",
    "lighten",
    # Regions
    "SmallRegion",
    "find_small_regions",
    "remove_small_regions",
    "remove_small_holes",
    # Segmentation
    "KMeansResult",
    "kmeans_segment",
    "separate_inside",
]
