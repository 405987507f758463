"""
Raster Tests: Region Cleanup and Segmentation

Tests for small region removal, small hole filling, k-means colour
segmentation and the inside/outside split.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import numpy as np

from autowalls.raster import (
    PixelBuffer,
    SmallRegion,
    find_small_regions,
    remove_small_regions,
    remove_small_holes,
    KMeansResult,
    kmeans_segment,
    separate_inside,
)
from autowalls.raster.segmentation import assign_clusters, kmeans_plus_plus
from autowalls.exceptions import InvalidArgumentError

RED = (200, 30, 30, 255)
BLUE = (30, 30, 200, 255)
GREEN = (40, 160, 60, 255)


def create_split_buffer(width: int = 10, height: int = 10) -> PixelBuffer:
    """Left half red, right half blue."""
    buffer = PixelBuffer.blank(width, height, RED)
    buffer.data[:, width // 2:] = BLUE
    return buffer


def create_island_buffer() -> PixelBuffer:
    """Red 10x10 buffer with a 2x2 blue island."""
    buffer = PixelBuffer.blank(10, 10, RED)
    buffer.data[4:6, 4:6] = BLUE
    return buffer


def create_noisy_buffer(seed: int = 5) -> PixelBuffer:
    """Three colour blobs with per-pixel noise."""
    rng = np.random.default_rng(seed)
    data = np.zeros((24, 24, 4), dtype=np.int32)
    data[:, :8, :3] = RED[:3]
    data[:, 8:16, :3] = BLUE[:3]
    data[:, 16:, :3] = GREEN[:3]
    data[:, :, :3] += rng.integers(-20, 21, size=(24, 24, 3))
    data[:, :, 3] = 255
    return PixelBuffer(np.clip(data, 0, 255).astype(np.uint8))


# =============================================================================
# Region Cleanup
# =============================================================================

def test_remove_small_regions_idempotent():
    """Test an image without small regions is left unchanged, twice."""
    buffer = create_split_buffer()
    before = buffer.data.copy()

    remove_small_regions(buffer, max_region_size=5)
    assert np.array_equal(buffer.data, before)

    remove_small_regions(buffer, max_region_size=5)
    assert np.array_equal(buffer.data, before)

    print("  [PASS] Small region removal idempotent")


def test_remove_small_island():
    """Test a small island takes the surrounding colour."""
    buffer = create_island_buffer()
    remove_small_regions(buffer, max_region_size=4)

    assert np.all(buffer.data[:, :, :3] == RED[:3])

    print("  [PASS] Small island repainted")


def test_find_small_regions_borders():
    """Test region size and border colour bookkeeping."""
    buffer = create_island_buffer()
    regions = find_small_regions(buffer, 4)

    assert len(regions) == 1
    region = regions[0]
    assert isinstance(region, SmallRegion)
    assert region.size == 4
    # 8 outside neighbours around a 2x2 block
    assert len(region.borders) == 8
    red_key = (RED[0] << 16) | (RED[1] << 8) | RED[2]
    assert region.dominant_border_color() == red_key

    print("  [PASS] Small region borders")


def test_region_size_limit():
    """Test regions above the limit are kept."""
    buffer = create_island_buffer()
    before = buffer.data.copy()
    remove_small_regions(buffer, max_region_size=3)

    assert np.array_equal(buffer.data, before)

    print("  [PASS] Region size limit")


def test_include_alpha():
    """Test alpha only separates regions when include_alpha is set."""
    buffer = PixelBuffer.blank(6, 6, RED)
    buffer.data[2, 2, 3] = 10

    plain = buffer.copy()
    remove_small_regions(plain, max_region_size=2, include_alpha=False)
    assert plain.data[2, 2, 3] == 10

    with_alpha = buffer.copy()
    remove_small_regions(with_alpha, max_region_size=2, include_alpha=True)
    assert with_alpha.data[2, 2, 3] == 255

    print("  [PASS] Region alpha handling")


def test_remove_small_holes():
    """Test a small dark hole is filled with the average of its border."""
    buffer = PixelBuffer.blank(8, 8, (200, 200, 200, 255))
    buffer.data[3, 3] = (0, 0, 0, 128)
    buffer.data[3, 2] = (100, 100, 100, 255)

    remove_small_holes(buffer, max_hole_size=5, threshold=50)

    # Borders: (100 + 3 * 200) / 4 = 175
    assert buffer.data[3, 3, :3].tolist() == [175, 175, 175]
    assert buffer.data[3, 3, 3] == 128

    print("  [PASS] Small hole filled")


def test_large_hole_kept():
    """Test holes at or above the size limit are left alone."""
    buffer = PixelBuffer.blank(8, 8, (200, 200, 200, 255))
    buffer.data[2:5, 2:5] = (0, 0, 0, 255)

    remove_small_holes(buffer, max_hole_size=9, threshold=50)

    assert np.all(buffer.data[2:5, 2:5, :3] == 0)

    print("  [PASS] Large hole kept")


# =============================================================================
# k-means
# =============================================================================

def test_kmeans_two_colours():
    """Test two flat colours are recovered exactly."""
    buffer = create_split_buffer()
    before = buffer.data.copy()
    result = kmeans_segment(buffer, k=2, rng=np.random.default_rng(1))

    assert isinstance(result, KMeansResult)
    assert result.converged
    assert sorted(result.palette()) == sorted([RED[:3], BLUE[:3]])
    assert np.array_equal(buffer.data, before)
    assert result.labels.shape == (10, 10)

    print("  [PASS] k-means on two colours")


def test_kmeans_inertia_non_increasing():
    """Test total intra-cluster distance never increases."""
    buffer = create_noisy_buffer()
    result = kmeans_segment(buffer, k=3, convergence_threshold=0.0, rng=np.random.default_rng(7))

    history = result.inertia_history
    assert len(history) == result.iterations
    for previous, current in zip(history, history[1:]):
        assert current <= previous + 1e-6, f"Inertia increased: {previous} -> {current}"

    print("  [PASS] k-means inertia non-increasing")


def test_kmeans_seeded_is_deterministic():
    """Test the same seed gives the same segmentation."""
    a = create_noisy_buffer()
    b = create_noisy_buffer()
    kmeans_segment(a, k=4, rng=np.random.default_rng(42))
    kmeans_segment(b, k=4, rng=np.random.default_rng(42))

    assert np.array_equal(a.data, b.data)

    print("  [PASS] k-means seeded determinism")


def test_kmeans_preserves_alpha():
    """Test only RGB is repainted."""
    buffer = create_noisy_buffer()
    buffer.data[:, :, 3] = 77
    kmeans_segment(buffer, k=3, rng=np.random.default_rng(0))

    assert np.all(buffer.alpha == 77)
    assert len({tuple(p) for p in buffer.rgb.reshape(-1, 3).tolist()}) <= 3

    print("  [PASS] k-means alpha preserved")


def test_kmeans_helpers():
    """Test seeding picks distinct points and ties go to the lowest index."""
    points = np.array([[0, 0, 0], [0, 0, 0], [255, 255, 255]], dtype=np.float64)
    centroids = kmeans_plus_plus(points, 2, np.random.default_rng(3))
    assert {tuple(c) for c in centroids} == {(0, 0, 0), (255, 255, 255)}

    labels, distances = assign_clusters(
        np.array([[5, 5, 5]], dtype=np.float64),
        np.array([[0, 0, 0], [10, 10, 10]], dtype=np.float64),
    )
    assert labels.tolist() == [0]
    assert distances.tolist() == [75.0]

    print("  [PASS] k-means helpers")


def test_kmeans_invalid_k():
    """Test k below 1 is rejected."""
    try:
        kmeans_segment(create_split_buffer(), k=0)
        assert False, "Expected InvalidArgumentError for k=0"
    except InvalidArgumentError:
        pass

    print("  [PASS] k-means invalid k")


# =============================================================================
# Inside / Outside
# =============================================================================

def test_separate_inside():
    """Test the dominant border colour becomes black and the rest white."""
    buffer = PixelBuffer.blank(10, 10, GREEN)
    buffer.data[3:7, 3:7] = RED
    separate_inside(buffer, 0.4)

    assert np.all(buffer.data[0, 0] == (0, 0, 0, 255))
    assert np.all(buffer.data[3:7, 3:7] == 255)
    assert np.all(buffer.data[8, 8] == (0, 0, 0, 255))

    print("  [PASS] Inside/outside split")


def test_separate_inside_shared_border():
    """Test a colour below the border fraction counts as inside."""
    buffer = PixelBuffer.blank(10, 10, GREEN)
    # Right column and a red interior: red is 10 of 36 border pixels
    buffer.data[:, 9] = RED
    buffer.data[4, 4] = RED
    separate_inside(buffer, 0.4)

    assert np.all(buffer.data[:, 9, :3] == 255)
    assert np.all(buffer.data[4, 4, :3] == 255)
    assert np.all(buffer.data[0, 0, :3] == 0)

    try:
        separate_inside(buffer, 1.5)
        assert False, "Expected InvalidArgumentError for fraction above 1"
    except InvalidArgumentError:
        pass

    print("  [PASS] Inside/outside border fraction")


def _run(test) -> bool:
    try:
        test()
        return True
    except AssertionError as e:
        print(f"  [FAIL] {test.__name__}: {e}")
        return False


def run_all_tests():
    """Run all region and segmentation tests."""
    print("\n" + "=" * 60)
    print("Raster Tests: Region Cleanup and Segmentation")
    print("=" * 60)

    results = []

    print("\nRegion Cleanup Tests:")
    results.append(_run(test_remove_small_regions_idempotent))
    results.append(_run(test_remove_small_island))
    results.append(_run(test_find_small_regions_borders))
    results.append(_run(test_region_size_limit))
    results.append(_run(test_include_alpha))
    results.append(_run(test_remove_small_holes))
    results.append(_run(test_large_hole_kept))

    print("\nk-means Tests:")
    results.append(_run(test_kmeans_two_colours))
    results.append(_run(test_kmeans_inertia_non_increasing))
    results.append(_run(test_kmeans_seeded_is_deterministic))
    results.append(_run(test_kmeans_preserves_alpha))
    results.append(_run(test_kmeans_helpers))
    results.append(_run(test_kmeans_invalid_k))

    print("\nInside/Outside Tests:")
    results.append(_run(test_separate_inside))
    results.append(_run(test_separate_inside_shared_border))

    # Summary
    passed = sum(results)
    total = len(results)
    print("\n" + "=" * 60)
    print(f"Segmentation Results: {passed}/{total} tests passed")
    print("=" * 60)

    return passed == total


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
