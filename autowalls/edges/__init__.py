# Edge detectors

from .canny import (
    sobel_gradients,
    non_maximum_suppression,
    hysteresis,
    detect_edges_canny,
)

from .kovalevsky import (
    roberts_gradient,
    zhang_suen_thinning,
    connect_edges,
    detect_edges_kovalevsky,
)

__all__ = [
    # Canny
    "sobel_gradients",
    "non_maximum_suppression",
    "hysteresis",
    "detect_edges_canny",
    # Kovalevsky
    "roberts_gradient",
    "zhang_suen_thinning",
    "connect_edges",
    "detect_edges_kovalevsky",
]
