"""
Wall Tests: Grid Extraction and Merging

Tests for wall segments and records, the grid wall extractor and the
endpoint-graph wall merger.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from autowalls.raster import PixelBuffer
from autowalls.walls import (
    WallSegment,
    WallRecord,
    wall_document,
    identify_walls,
    merge_walls,
    plain_walls,
    merge_wall_records,
)
from autowalls.walls.grid_extractor import longest_run
from autowalls.walls.wall_merger import connected_components, endpoint_keys
from autowalls.constants import WallDoorType, WallSenseType, WALL_FLAG_NAMESPACE
from autowalls.exceptions import InvalidArgumentError


def create_edge_buffer(width: int = 20, height: int = 20) -> PixelBuffer:
    """Black edge buffer."""
    return PixelBuffer.blank(width, height)


def record(wall_id: str, coords, **attributes) -> WallRecord:
    """Build a wall record from a document-style dictionary."""
    document = {"_id": wall_id, "c": list(coords)}
    document.update(attributes)
    return WallRecord.from_dict(document)


# =============================================================================
# Segments and Records
# =============================================================================

def test_segment_properties():
    """Test length, direction bucket and scaling."""
    wall = WallSegment(0, 0, 30, 40)
    assert wall.length == 50
    assert wall.as_linestring().length == 50
    assert WallSegment(0, 0, 10, 0).direction_bucket == 0
    # pi/2 * 30 = 47.12
    assert WallSegment(5, 0, 5, 10).direction_bucket == 47
    # Reversed segments share the bucket
    assert WallSegment(10, 10, 0, 0).direction_bucket == WallSegment(0, 0, 10, 10).direction_bucket

    scaled = WallSegment(1, 2, 3, 4).scaled(10, offset_x=5, offset_y=7)
    assert scaled.as_tuple() == (15, 27, 35, 47)

    print("  [PASS] Segment properties")


def test_record_plain():
    """Test the plain-wall check over door, sense and threshold attributes."""
    assert record("a", (0, 0, 1, 0)).is_plain
    assert not record("b", (0, 0, 1, 0), door=WallDoorType.DOOR).is_plain
    assert not record("c", (0, 0, 1, 0), sight=WallSenseType.LIMITED).is_plain
    assert not record("d", (0, 0, 1, 0), threshold={"light": 10}).is_plain
    assert not record("e", (0, 0, 1, 0), threshold={"attenuation": True}).is_plain

    try:
        WallRecord.from_dict({"_id": "x"})
        assert False, "Expected InvalidArgumentError for missing coordinates"
    except InvalidArgumentError:
        pass

    print("  [PASS] Wall record plain check")


def test_wall_document():
    """Test generated walls carry coordinates and the auto flag."""
    document = wall_document(WallSegment(0, 10, 20, 10))
    assert document["c"] == [0, 10, 20, 10]
    assert document["flags"][WALL_FLAG_NAMESPACE]["auto"] is True

    print("  [PASS] Wall document")


# =============================================================================
# Grid Extractor
# =============================================================================

def test_longest_run():
    assert longest_run([True, True, False, True, True, True, False]) == 3
    assert longest_run([]) == 0

    print("  [PASS] Longest run")


def test_identify_horizontal_line():
    """Test a horizontal line on a cell boundary gives one wall per tile."""
    buffer = create_edge_buffer()
    buffer.data[10, :] = (255, 255, 255, 255)

    walls = identify_walls(buffer, 10, threshold=100)

    assert sorted(w.as_tuple() for w in walls) == [(0, 10, 10, 10), (10, 10, 20, 10)]

    print("  [PASS] Horizontal line walls")


def test_identify_vertical_line_offset():
    """Test a line one pixel before the boundary still counts."""
    buffer = create_edge_buffer()
    buffer.data[:, 9] = (255, 255, 255, 255)

    walls = identify_walls(buffer, 10, threshold=100)

    assert sorted(w.as_tuple() for w in walls) == [(10, 0, 10, 10), (10, 10, 10, 20)]

    print("  [PASS] Off-by-one vertical line walls")


def test_identify_short_line():
    """Test runs of half a cell or less are ignored."""
    buffer = create_edge_buffer()
    buffer.data[10, 2:7] = (255, 255, 255, 255)
    assert identify_walls(buffer, 10) == []

    buffer.data[10, 2:8] = (255, 255, 255, 255)
    assert [w.as_tuple() for w in identify_walls(buffer, 10)] == [(0, 10, 10, 10)]

    print("  [PASS] Short line threshold")


def test_identify_empty_and_invalid():
    """Test an empty buffer gives no walls and bad cell sizes raise."""
    assert identify_walls(create_edge_buffer(), 10) == []

    try:
        identify_walls(create_edge_buffer(), 0)
        assert False, "Expected InvalidArgumentError for cell size 0"
    except InvalidArgumentError:
        pass

    print("  [PASS] Empty buffer and invalid cell size")


def test_identify_threshold():
    """Test dim edges below the threshold are ignored."""
    buffer = create_edge_buffer()
    buffer.data[10, :] = (60, 60, 60, 255)

    assert identify_walls(buffer, 10, threshold=100) == []
    assert len(identify_walls(buffer, 10, threshold=50)) == 2

    print("  [PASS] Edge brightness threshold")


def test_identify_partial_tiles():
    """Test partial edge tiles only count pixels inside the image."""
    buffer = create_edge_buffer(15, 15)
    buffer.data[:, 14] = (255, 255, 255, 255)
    assert identify_walls(buffer, 10, threshold=100) == []

    buffer = create_edge_buffer(18, 20)
    buffer.data[10, :] = (255, 255, 255, 255)
    walls = identify_walls(buffer, 10, threshold=100)
    assert sorted(w.as_tuple() for w in walls) == [(0, 10, 10, 10), (10, 10, 20, 10)]

    print("  [PASS] Partial edge tiles")


# =============================================================================
# Wall Merger
# =============================================================================

def test_merge_chain():
    """Test two end-to-end collinear segments merge into one."""
    merged = merge_walls([WallSegment(0, 0, 10, 0), WallSegment(10, 0, 20, 0)])

    assert [w.as_tuple() for w in merged] == [(0, 0, 20, 0)]

    print("  [PASS] Merge collinear chain")


def test_merge_parallel_kept():
    """Test parallel segments without a shared endpoint stay separate."""
    a = WallSegment(0, 0, 10, 0)
    b = WallSegment(0, 10, 10, 10)
    merged = merge_walls([a, b])

    assert merged == [a, b]

    print("  [PASS] Parallel segments kept")


def test_merge_perpendicular_kept():
    """Test a corner does not merge across direction buckets."""
    a = WallSegment(0, 0, 10, 0)
    b = WallSegment(10, 0, 10, 10)
    merged = merge_walls([a, b])

    assert merged == [a, b]

    print("  [PASS] Perpendicular segments kept")


def test_merge_rounded_endpoints():
    """Test endpoints that round to the same point join."""
    merged = merge_walls([WallSegment(0, 0, 10.4, 0), WallSegment(9.8, 0, 20, 0)])

    assert len(merged) == 1
    assert merged[0].as_tuple() == (0, 0, 20, 0)

    print("  [PASS] Merge rounded endpoints")


def test_merge_long_chain_and_diagonal():
    """Test unordered unit walls and a falling diagonal chain."""
    units = [WallSegment(x, 30, x + 10, 30) for x in (40, 0, 20, 10, 30)]
    merged = merge_walls(units)
    assert [w.as_tuple() for w in merged] == [(0, 30, 50, 30)]

    diagonal = merge_walls([WallSegment(0, 10, 10, 0), WallSegment(10, 0, 20, -10)])
    assert [w.as_tuple() for w in diagonal] == [(0, 10, 20, -10)]

    assert merge_walls([]) == []

    print("  [PASS] Merge long chain and diagonal")


def test_endpoint_keys_and_components():
    keys = endpoint_keys(WallSegment(0.5, 1.49, 10, 1.49))
    assert keys == ((1, 1, 0), (10, 1, 0))

    segments = [
        WallSegment(0, 0, 10, 0),
        WallSegment(50, 50, 60, 50),
        WallSegment(10, 0, 20, 0),
    ]
    assert connected_components(segments) == [[0, 2], [1]]

    print("  [PASS] Endpoint keys and components")


def test_merge_wall_records():
    """Test plain walls merge, special walls are skipped."""
    records = [
        record("a", (0, 0, 10, 0)),
        record("b", (10, 0, 20, 0)),
        record("door", (20, 0, 30, 0), door=WallDoorType.DOOR),
        record("lone", (0, 50, 0, 60)),
    ]

    assert [r.wall_id for r in plain_walls(records)] == ["a", "b", "lone"]

    result = merge_wall_records(records)
    assert [w.as_tuple() for w in result.segments] == [(0, 0, 20, 0)]
    assert result.replaced_ids == ["a", "b"]
    assert result.skipped_ids == ["door"]
    assert result.components == 2
    assert result.merged_count == 1

    print("  [PASS] Merge wall records")


def _run(test) -> bool:
    try:
        test()
        return True
    except AssertionError as e:
        print(f"  [FAIL] {test.__name__}: {e}")
        return False


def run_all_tests():
    """Run all wall tests."""
    print("\n" + "=" * 60)
    print("Wall Tests: Grid Extraction and Merging")
    print("=" * 60)

    results = []

    print("\nSegment Tests:")
    results.append(_run(test_segment_properties))
    results.append(_run(test_record_plain))
    results.append(_run(test_wall_document))

    print("\nGrid Extractor Tests:")
    results.append(_run(test_longest_run))
    results.append(_run(test_identify_horizontal_line))
    results.append(_run(test_identify_vertical_line_offset))
    results.append(_run(test_identify_short_line))
    results.append(_run(test_identify_empty_and_invalid))
    results.append(_run(test_identify_threshold))
    results.append(_run(test_identify_partial_tiles))

    print("\nWall Merger Tests:")
    results.append(_run(test_merge_chain))
    results.append(_run(test_merge_parallel_kept))
    results.append(_run(test_merge_perpendicular_kept))
    results.append(_run(test_merge_rounded_endpoints))
    results.append(_run(test_merge_long_chain_and_diagonal))
    results.append(_run(test_endpoint_keys_and_components))
    results.append(_run(test_merge_wall_records))

    # Summary
    passed = sum(results)
    total = len(results)
    print("\n" + "=" * 60)
    print(f"Wall Results: {passed}/{total} tests passed")
    print("=" * 60)

    return passed == total


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
