import math

import pytest

from engine.selection import BrushSelector, disk_offsets


def test_radius_zero_selects_center_only():
    sel = BrushSelector(100)
    assert sel.stamp((50, 50), 0) == 1
    assert sel.cells == {(50, 50)}


def test_stamp_is_idempotent():
    sel = BrushSelector(100)
    first = sel.stamp((20, 30), 4)
    assert sel.stamp((20, 30), 4) == 0
    assert len(sel) == first


def test_disk_has_inclusive_boundary():
    assert len(disk_offsets(1)) == 5
    assert len(disk_offsets(5)) == 81
    assert (0, 5) in disk_offsets(5)
    assert (3, 4) in disk_offsets(5)
    assert (4, 4) not in disk_offsets(5)


def test_stamp_contains_exactly_the_disk():
    n, center, radius = 30, (10, 12), 3
    sel = BrushSelector(n)
    sel.stamp(center, radius)
    for r in range(n):
        for c in range(n):
            inside = math.sqrt((r - center[0]) ** 2 + (c - center[1]) ** 2) <= radius
            assert ((r, c) in sel) == inside


def test_stamp_clips_at_grid_edges():
    sel = BrushSelector(10)
    sel.stamp((0, 0), 1)
    assert sel.cells == {(0, 0), (0, 1), (1, 0)}
    assert sel.stamp((-5, -5), 2) == 0


def test_clear_and_sorted_order():
    sel = BrushSelector(10)
    sel.stamp((5, 5), 1)
    assert list(sel) == [(4, 5), (5, 4), (5, 5), (5, 6), (6, 5)]
    sel.clear()
    assert len(sel) == 0


def test_negative_radius_rejected():
    with pytest.raises(ValueError):
        disk_offsets(-1)
