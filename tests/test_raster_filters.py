"""
Raster Tests: Pixel Buffer and Filters

Tests for the pixel buffer, grayscale conversion, Gaussian blur, median
filter, pixelization, brightening and the lighten composite.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import numpy as np

from autowalls.raster import (
    PixelBuffer,
    GrayscaleBuffer,
    to_grayscale,
    gaussian_blur,
    median_filter,
    pixelize,
    brighten_filter,
    lighten,
)
from autowalls.raster.filters import gaussian_kernel, odd_kernel_size
from autowalls.exceptions import InvalidArgumentError


def create_random_buffer(width: int = 12, height: int = 9, seed: int = 3) -> PixelBuffer:
    """Create a buffer of random RGBA noise."""
    rng = np.random.default_rng(seed)
    return PixelBuffer(rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8))


def create_dot_buffer(size: int = 7) -> PixelBuffer:
    """Black opaque buffer with a single white pixel in the centre."""
    buffer = PixelBuffer.blank(size, size)
    buffer.data[size // 2, size // 2] = (255, 255, 255, 255)
    return buffer


# =============================================================================
# Pixel Buffer
# =============================================================================

def test_buffer_from_flat():
    """Test flat RGBA construction and the flat view."""
    values = list(range(2 * 3 * 4))
    buffer = PixelBuffer.from_flat(values, 3, 2)

    assert buffer.width == 3
    assert buffer.height == 2
    assert len(buffer.flat) == 24
    assert buffer.data[1, 2].tolist() == [20, 21, 22, 23]

    try:
        PixelBuffer.from_flat(values[:-1], 3, 2)
        assert False, "Expected InvalidArgumentError for short input"
    except InvalidArgumentError:
        pass

    print("  [PASS] PixelBuffer from flat samples")


def test_buffer_from_array():
    """Test RGB input gets an opaque alpha channel."""
    rgb = np.zeros((4, 5, 3), dtype=np.uint8)
    rgb[:, :, 1] = 200
    buffer = PixelBuffer.from_array(rgb)

    assert buffer.shape == (4, 5)
    assert np.all(buffer.alpha == 255)
    assert np.all(buffer.data[:, :, 1] == 200)

    try:
        PixelBuffer.from_array(np.zeros((0, 0, 3), dtype=np.uint8))
        assert False, "Expected InvalidArgumentError for empty array"
    except InvalidArgumentError:
        pass

    print("  [PASS] PixelBuffer from RGB array")


def test_buffer_rejects_out_of_range():
    """Test values outside 0-255 are rejected."""
    try:
        PixelBuffer(np.full((2, 2, 4), 300, dtype=np.int32))
        assert False, "Expected InvalidArgumentError for values above 255"
    except InvalidArgumentError:
        pass

    print("  [PASS] PixelBuffer range validation")


# =============================================================================
# Grayscale and Blur
# =============================================================================

def test_to_grayscale():
    """Test luminance conversion size, range and truncation."""
    buffer = create_random_buffer(11, 6)
    gray = to_grayscale(buffer)

    assert isinstance(gray, GrayscaleBuffer)
    assert gray.data.size == 11 * 6
    assert gray.data.dtype == np.uint8
    assert gray.data.min() >= 0 and gray.data.max() <= 255

    red = PixelBuffer.blank(1, 1, (255, 0, 0, 255))
    # 0.299 * 255 = 76.245
    assert to_grayscale(red).data[0, 0] == 76

    black = PixelBuffer.blank(2, 2, (0, 0, 0, 255))
    assert np.all(to_grayscale(black).data == 0)

    print("  [PASS] Grayscale conversion")


def test_gaussian_kernel():
    """Test kernel radius and normalization."""
    kernel = gaussian_kernel(1.4)
    # radius = round(4.2) = 4
    assert len(kernel) == 9
    assert abs(kernel.sum() - 1.0) < 1e-9
    assert np.argmax(kernel) == 4

    # Minimum radius is 1
    assert len(gaussian_kernel(0.1)) == 3

    try:
        gaussian_kernel(0)
        assert False, "Expected InvalidArgumentError for sigma 0"
    except InvalidArgumentError:
        pass

    print("  [PASS] Gaussian kernel")


def test_gaussian_blur_small_sigma_is_identity():
    """Test a tiny sigma leaves interior pixels unchanged."""
    gray = to_grayscale(create_random_buffer(16, 10))
    blurred = gaussian_blur(gray, 0.1)

    assert blurred.data.shape == gray.data.shape
    assert np.array_equal(blurred.data[1:-1, 1:-1], gray.data[1:-1, 1:-1])

    print("  [PASS] Gaussian blur with tiny sigma")


def test_gaussian_blur_keeps_flat_image():
    """Test clamped borders do not darken the edges of a flat image."""
    gray = GrayscaleBuffer(np.full((8, 8), 180, dtype=np.uint8))
    blurred = gaussian_blur(gray, 2.0)

    assert np.all(blurred.data == 180)

    print("  [PASS] Gaussian blur border clamping")


# =============================================================================
# Median Filter
# =============================================================================

def test_median_kernel_one_is_identity():
    """Test kernel size 1 changes nothing."""
    buffer = create_random_buffer()
    before = buffer.data.copy()
    median_filter(buffer, 1)

    assert np.array_equal(buffer.data, before)

    print("  [PASS] Median filter kernel 1 identity")


def test_median_removes_speck():
    """Test a lone bright pixel is replaced by its dark neighbours."""
    buffer = create_dot_buffer()
    result = median_filter(buffer, 3)

    assert result is buffer
    assert np.all(buffer.data[:, :, :3] == 0)

    print("  [PASS] Median filter removes single pixel")


def test_median_even_kernel_is_bumped():
    """Test even kernel sizes behave as the next odd size."""
    assert odd_kernel_size(2) == 3
    assert odd_kernel_size(5) == 5

    a = create_random_buffer(seed=8)
    b = a.copy()
    median_filter(a, 2)
    median_filter(b, 3)
    assert np.array_equal(a.data, b.data)

    try:
        odd_kernel_size(0)
        assert False, "Expected InvalidArgumentError for kernel 0"
    except InvalidArgumentError:
        pass

    print("  [PASS] Median filter even kernel")


def test_median_copies_whole_pixels():
    """Test no new colours are introduced."""
    buffer = create_random_buffer(10, 10, seed=11)
    colors_before = {tuple(p) for p in buffer.data.reshape(-1, 4).tolist()}
    median_filter(buffer, 5)
    colors_after = {tuple(p) for p in buffer.data.reshape(-1, 4).tolist()}

    assert colors_after <= colors_before

    print("  [PASS] Median filter keeps RGBA tuples intact")


# =============================================================================
# Pixelize, Brighten, Lighten
# =============================================================================

def test_pixelize_majority():
    """Test each cell takes its most common colour."""
    buffer = PixelBuffer.blank(4, 4, (255, 0, 0, 100))
    buffer.data[0, 0] = (0, 0, 255, 100)
    # Bottom-right cell: two blue (first seen) and two green
    buffer.data[2, 2] = (0, 0, 255, 100)
    buffer.data[2, 3] = (0, 255, 0, 100)
    buffer.data[3, 2] = (0, 255, 0, 100)
    buffer.data[3, 3] = (0, 0, 255, 100)

    pixelize(buffer, 2)

    assert np.all(buffer.data[0:2, 0:2, :3] == (255, 0, 0))
    assert np.all(buffer.data[2:4, 2:4, :3] == (0, 0, 255))
    assert np.all(buffer.alpha == 255)

    print("  [PASS] Pixelize majority colour")


def test_pixelize_partial_cells():
    """Test cells at the right and bottom edges may be partial."""
    buffer = PixelBuffer.blank(5, 5, (10, 20, 30, 255))
    buffer.data[4, 4] = (200, 200, 200, 255)

    pixelize(buffer, 2)

    # The 1x1 corner cell keeps its only colour
    assert buffer.data[4, 4, :3].tolist() == [200, 200, 200]
    assert buffer.data[0, 0, :3].tolist() == [10, 20, 30]

    try:
        pixelize(buffer, 0)
        assert False, "Expected InvalidArgumentError for cell size 0"
    except InvalidArgumentError:
        pass

    print("  [PASS] Pixelize partial cells")


def test_brighten_filter():
    """Test dilation of a single lit pixel."""
    buffer = create_dot_buffer(5)
    brighten_filter(buffer, 3)

    assert np.all(buffer.data[1:4, 1:4] == 255)
    assert np.all(buffer.data[0, :] == 0)
    assert np.all(buffer.data[:, 4] == 0)

    print("  [PASS] Brighten filter")


def test_lighten():
    """Test channel-wise maximum composite."""
    target = PixelBuffer.blank(2, 2, (10, 200, 30, 255))
    source = PixelBuffer.blank(2, 2, (100, 20, 30, 0))
    lighten(target, source)

    assert target.data[0, 0].tolist() == [100, 200, 30, 255]

    try:
        lighten(target, PixelBuffer.blank(3, 2))
        assert False, "Expected InvalidArgumentError for size mismatch"
    except InvalidArgumentError:
        pass

    print("  [PASS] Lighten composite")


def _run(test) -> bool:
    try:
        test()
        return True
    except AssertionError as e:
        print(f"  [FAIL] {test.__name__}: {e}")
        return False


def run_all_tests():
    """Run all buffer and filter tests."""
    print("\n" + "=" * 60)
    print("Raster Tests: Pixel Buffer and Filters")
    print("=" * 60)

    results = []

    print("\nPixel Buffer Tests:")
    results.append(_run(test_buffer_from_flat))
    results.append(_run(test_buffer_from_array))
    results.append(_run(test_buffer_rejects_out_of_range))

    print("\nGrayscale and Blur Tests:")
    results.append(_run(test_to_grayscale))
    results.append(_run(test_gaussian_kernel))
    results.append(_run(test_gaussian_blur_small_sigma_is_identity))
    results.append(_run(test_gaussian_blur_keeps_flat_image))

    print("\nMedian Filter Tests:")
    results.append(_run(test_median_kernel_one_is_identity))
    results.append(_run(test_median_removes_speck))
    results.append(_run(test_median_even_kernel_is_bumped))
    results.append(_run(test_median_copies_whole_pixels))

    print("\nPixelize / Brighten / Lighten Tests:")
    results.append(_run(test_pixelize_majority))
    results.append(_run(test_pixelize_partial_cells))
    results.append(_run(test_brighten_filter))
    results.append(_run(test_lighten))

    # Summary
    passed = sum(results)
    total = len(results)
    print("\n" + "=" * 60)
    print(f"Filter Results: {passed}/{total} tests passed")
    print("=" * 60)

    return passed == total


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
