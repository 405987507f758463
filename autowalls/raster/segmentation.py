"""
Segmentation Module

Colour clustering (k-means with k-means++ seeding) and the
inside/outside split driven by border colours.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from ..constants import (
    DEFAULT_KMEANS_K,
    DEFAULT_KMEANS_MAX_ITERATIONS,
    DEFAULT_KMEANS_CONVERGENCE,
    DEFAULT_OUTSIDE_FRACTION,
    OPAQUE,
)
from ..exceptions import InvalidArgumentError
from .buffer import PixelBuffer, require_buffer

logger = logging.getLogger(__name__)


@dataclass
class KMeansResult:
    """Outcome of a k-means segmentation run."""
    centroids: np.ndarray          # (k, 3) float RGB
    counts: np.ndarray             # (k,) members per centroid in the last assignment
    labels: np.ndarray             # (height, width) centroid index per pixel
    iterations: int
    converged: bool
    inertia_history: List[float] = field(default_factory=list)

    @property
    def k(self) -> int:
        return len(self.centroids)

    def palette(self) -> List[tuple]:
        """Rounded centroid colours as RGB tuples."""
        rounded = np.floor(self.centroids + 0.5).astype(int)
        return [tuple(int(v) for v in c) for c in rounded]


def _squared_distances(points: np.ndarray, centroid: np.ndarray) -> np.ndarray:
    diff = points - centroid
    return np.einsum("ij,ij->i", diff, diff)


def kmeans_plus_plus(points: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    """
    Pick k initial centroids with k-means++.

    The first centroid is a uniformly random point. Each following one is
    drawn with probability proportional to the squared distance to its
    nearest already chosen centroid.

    Args:
        points: (N, 3) float array of RGB points
        k: Number of centroids
        rng: Random source

    Returns:
        (k, 3) float array of centroids
    """
    n = len(points)
    first = min(int(rng.random() * n), n - 1)
    centroids = [points[first].copy()]
    nearest = _squared_distances(points, centroids[0])

    for _ in range(1, k):
        total = nearest.sum()
        threshold = rng.random() * total
        cumulative = np.cumsum(nearest)
        index = min(int(np.searchsorted(cumulative, threshold, side="left")), n - 1)
        centroids.append(points[index].copy())
        nearest = np.minimum(nearest, _squared_distances(points, centroids[-1]))

    return np.array(centroids, dtype=np.float64)


def assign_clusters(points: np.ndarray, centroids: np.ndarray):
    """
    Assign each point to its nearest centroid.

    Ties keep the lowest centroid index.

    Returns:
        Tuple of (labels, squared distance to the assigned centroid)
    """
    labels = np.zeros(len(points), dtype=np.int64)
    best = _squared_distances(points, centroids[0])
    for index in range(1, len(centroids)):
        distance = _squared_distances(points, centroids[index])
        closer = distance < best
        labels[closer] = index
        best = np.where(closer, distance, best)
    return labels, best


def kmeans_segment(
    buffer: PixelBuffer,
    k: int = DEFAULT_KMEANS_K,
    max_iterations: int = DEFAULT_KMEANS_MAX_ITERATIONS,
    convergence_threshold: float = DEFAULT_KMEANS_CONVERGENCE,
    rng: Optional[np.random.Generator] = None
) -> KMeansResult:
    """
    Cluster pixel colours and repaint every pixel with its centroid colour.

    Clusters that end up empty get a zero centroid and are not reseeded.
    Stopping at ``max_iterations`` without converging is not an error;
    the last centroids are used.

    Args:
        buffer: Buffer to segment in place (alpha is preserved)
        k: Number of clusters
        max_iterations: Iteration cap
        convergence_threshold: Stop once no centroid moves further than this
        rng: Random source for seeding; pass a seeded generator for
            reproducible output

    Returns:
        KMeansResult with centroids, labels and the inertia per iteration
    """
    require_buffer(buffer)
    if k is None or k < 1:
        raise InvalidArgumentError(f"k must be at least 1, got {k}", "k")
    if max_iterations < 0:
        raise InvalidArgumentError(f"max_iterations must be non-negative, got {max_iterations}", "max_iterations")
    if convergence_threshold < 0:
        raise InvalidArgumentError(
            f"convergence_threshold must be non-negative, got {convergence_threshold}",
            "convergence_threshold",
        )
    if rng is None:
        rng = np.random.default_rng()

    height, width = buffer.shape
    points = buffer.data[:, :, :3].reshape(-1, 3).astype(np.float64)
    centroids = kmeans_plus_plus(points, k, rng)

    labels = np.zeros(len(points), dtype=np.int64)
    counts = np.zeros(k, dtype=np.int64)
    inertia_history = []
    iterations = 0
    converged = False

    while not converged and iterations < max_iterations:
        labels, distances = assign_clusters(points, centroids)
        inertia_history.append(float(distances.sum()))

        counts = np.bincount(labels, minlength=k)
        new_centroids = np.zeros_like(centroids)
        for channel in range(3):
            sums = np.bincount(labels, weights=points[:, channel], minlength=k)
            new_centroids[:, channel] = np.divide(
                sums, counts, out=np.zeros(k, dtype=np.float64), where=counts > 0
            )

        shift = np.sqrt(((centroids - new_centroids) ** 2).sum(axis=1))
        converged = bool(np.all(shift <= convergence_threshold))
        centroids = new_centroids
        iterations += 1

    if converged:
        logger.debug(f"k-means converged after {iterations} iterations (k={k})")
    else:
        logger.debug(f"k-means stopped at {iterations} iterations without converging (k={k})")

    colors = np.clip(np.floor(centroids + 0.5), 0, 255).astype(np.uint8)
    buffer.data[:, :, :3] = colors[labels].reshape(height, width, 3)

    return KMeansResult(
        centroids=centroids,
        counts=counts,
        labels=labels.reshape(height, width),
        iterations=iterations,
        converged=converged,
        inertia_history=inertia_history,
    )


def border_mask(height: int, width: int) -> np.ndarray:
    """Boolean mask of the outermost rows and columns."""
    mask = np.zeros((height, width), dtype=bool)
    mask[0, :] = True
    mask[-1, :] = True
    mask[:, 0] = True
    mask[:, -1] = True
    return mask


def separate_inside(
    buffer: PixelBuffer,
    threshold_fraction: float = DEFAULT_OUTSIDE_FRACTION
) -> PixelBuffer:
    """
    Split the map into outside (black) and inside (white).

    Colours covering more than ``threshold_fraction`` of the border pixels
    are treated as the map exterior. Every pixel of an exterior colour
    becomes opaque black, everything else opaque white.

    Args:
        buffer: Segmented buffer, modified in place
        threshold_fraction: Fraction of border pixels a colour must exceed

    Returns:
        The same buffer
    """
    require_buffer(buffer)
    if not 0 <= threshold_fraction <= 1:
        raise InvalidArgumentError(
            f"threshold_fraction must be within [0, 1], got {threshold_fraction}", "threshold_fraction"
        )

    height, width = buffer.shape
    rgb = buffer.data[:, :, :3].astype(np.int64)
    packed = (rgb[:, :, 0] << 16) | (rgb[:, :, 1] << 8) | rgb[:, :, 2]

    border = packed[border_mask(height, width)]
    colors, counts = np.unique(border, return_counts=True)
    outside_colors = colors[counts / border.size > threshold_fraction]

    outside = np.isin(packed, outside_colors)
    buffer.data[outside] = (0, 0, 0, OPAQUE)
    buffer.data[~outside] = (OPAQUE, OPAQUE, OPAQUE, OPAQUE)

    logger.debug(
        f"Inside/outside split: {len(outside_colors)} outside colours, "
        f"{int(outside.sum())} of {outside.size} pixels outside"
    )
    return buffer
