"""
Tests for region geometry.
"""

import pytest

from eraser.geometry import (
    Region, compute_iou, union, expand, clamp, to_pixel_bounds, intersection_area
)


class TestIoU:
    """Test IoU calculation."""

    def test_iou_no_overlap(self):
        """Disjoint regions give exactly zero."""
        a = Region(0, 0, 10, 10)
        b = Region(20, 20, 10, 10)

        assert compute_iou(a, b) == 0.0

    def test_iou_perfect_overlap(self):
        """A region overlaps itself completely."""
        a = Region(10, 10, 10, 10)

        assert compute_iou(a, a) == 1.0

    def test_iou_partial_overlap(self):
        """Test IoU with partial overlap."""
        a = Region(0, 0, 10, 10)   # Area = 100
        b = Region(5, 5, 10, 10)   # Area = 100

        # Intersection: (5,5) to (10,10) = 25
        # Union: 100 + 100 - 25 = 175
        assert compute_iou(a, b) == pytest.approx(25.0 / 175.0)

    def test_iou_is_symmetric(self):
        """IoU does not depend on argument order."""
        pairs = [
            (Region(0, 0, 10, 10), Region(5, 5, 10, 10)),
            (Region(3.5, 1, 20, 7), Region(0, 0, 8, 8)),
            (Region(0, 0, 100, 100), Region(25, 25, 10, 10)),
        ]

        for a, b in pairs:
            assert compute_iou(a, b) == compute_iou(b, a)

    def test_iou_edge_cases(self):
        """Zero-area and touching regions do not overlap."""
        assert compute_iou(Region(0, 0, 0, 0), Region(0, 0, 10, 10)) == 0.0

        # Touching boxes share an edge but no area
        assert compute_iou(Region(0, 0, 10, 10), Region(10, 0, 10, 10)) == 0.0
        assert intersection_area(Region(0, 0, 10, 10), Region(10, 10, 10, 10)) == 0.0

    def test_iou_contained_region(self):
        """A region inside another has IoU equal to the area ratio."""
        outer = Region(0, 0, 100, 100)
        inner = Region(25, 25, 10, 10)

        assert compute_iou(outer, inner) == pytest.approx(100 / 10000)


class TestUnion:
    """Test bounding-box union."""

    def test_union_covers_both(self):
        """Union spans both inputs."""
        a = Region(0, 0, 10, 10, source="full", score=0.9)
        b = Region(5, 5, 10, 20, source="head", score=0.4)

        merged = union(a, b)

        assert (merged.x, merged.y, merged.x2, merged.y2) == (0, 0, 15, 25)

    def test_union_keeps_anchor_source_and_max_score(self):
        """The first argument's source is kept, with the higher score."""
        a = Region(0, 0, 10, 10, source="head", score=0.5)
        b = Region(2, 2, 10, 10, source="full", score=0.95)

        merged = union(a, b)

        assert merged.source == "head"
        assert merged.score == 0.95

    def test_union_of_region_with_itself(self):
        """Union is idempotent."""
        a = Region(3, 4, 5, 6, source="tile", score=0.8)

        assert union(a, a) == a


class TestPaddingAndClamping:
    """Test expand, clamp and pixel bounds."""

    def test_expand_twenty_percent(self):
        """20% padding on each side of each axis."""
        region = Region(100, 100, 50, 20)

        padded = expand(region, 0.2)

        assert (padded.x, padded.y) == (90, 96)
        assert (padded.width, padded.height) == (70, 28)

    def test_expand_keeps_source_and_score(self):
        """Padding does not change metadata."""
        region = Region(0, 0, 10, 10, source="tile", score=0.7)

        padded = expand(region, 0.5)

        assert padded.source == "tile"
        assert padded.score == 0.7

    def test_clamp_to_image(self):
        """Regions crossing the border are cut at it."""
        region = Region(-10, -5, 30, 30)

        clamped = clamp(region, 15, 100)

        assert (clamped.x, clamped.y, clamped.x2, clamped.y2) == (0, 0, 15, 25)

    def test_clamp_outside_image_is_empty(self):
        """A region entirely outside the image becomes empty."""
        clamped = clamp(Region(200, 200, 10, 10), 100, 100)

        assert clamped.is_empty

    def test_pixel_bounds_round_outwards(self):
        """Fractional edges include partially covered pixels."""
        bounds = to_pixel_bounds(Region(27.5, 0.2, 45, 49.5), 200, 200)

        assert bounds == (27, 0, 73, 50)


class TestRegionSerialization:
    """Test Region dictionaries."""

    def test_to_dict_from_dict(self):
        """Region survives a dictionary conversion."""
        region = Region(1.5, 2, 3, 4, source="head", score=0.42)

        assert Region.from_dict(region.to_dict()) == region

    def test_from_corners(self):
        """Corner form converts to width and height."""
        region = Region.from_corners(10, 20, 30, 60)

        assert (region.width, region.height) == (20, 40)
