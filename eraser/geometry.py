"""
Axis-aligned region geometry shared by every detector and compositor.

Regions use image pixel coordinates with a top-left origin and are stored as
(x, y, width, height) floats so that geometric estimates such as head boxes
keep their fractional precision until they are rasterized.
"""

import math
from dataclasses import dataclass, replace
from typing import Dict, Any, Tuple


@dataclass(frozen=True)
class Region:
    """A candidate or final redaction rectangle."""
    x: float
    y: float
    width: float
    height: float
    source: str = "unknown"
    score: float = 1.0

    @classmethod
    def from_corners(
        cls, x0: float, y0: float, x1: float, y1: float,
        source: str = "unknown", score: float = 1.0
    ) -> "Region":
        """Create a region from top-left and bottom-right corners."""
        return cls(x0, y0, max(0.0, x1 - x0), max(0.0, y1 - y0), source, score)

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "source": self.source,
            "score": self.score
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Region":
        """Create from dictionary."""
        return cls(
            x=data["x"],
            y=data["y"],
            width=data["width"],
            height=data["height"],
            source=data.get("source", "unknown"),
            score=data.get("score", 1.0)
        )


def intersection_area(a: Region, b: Region) -> float:
    """Area shared by two regions, 0 when they only touch or are apart."""
    x1 = max(a.x, b.x)
    y1 = max(a.y, b.y)
    x2 = min(a.x2, b.x2)
    y2 = min(a.y2, b.y2)

    if x2 <= x1 or y2 <= y1:
        return 0.0

    return (x2 - x1) * (y2 - y1)


def compute_iou(a: Region, b: Region) -> float:
    """
    Calculate Intersection over Union (IoU) between two regions.

    Args:
        a: First region
        b: Second region

    Returns:
        IoU value between 0 and 1; exactly 0 when the regions do not overlap
    """
    intersection = intersection_area(a, b)
    if intersection == 0:
        return 0.0

    union_area = a.area + b.area - intersection
    if union_area <= 0:
        return 0.0

    return intersection / union_area


def union(a: Region, b: Region) -> Region:
    """
    Smallest region covering both inputs.

    The result keeps the source of `a` (the anchor of a merge) and the higher
    of the two scores.
    """
    x1 = min(a.x, b.x)
    y1 = min(a.y, b.y)
    x2 = max(a.x2, b.x2)
    y2 = max(a.y2, b.y2)
    return Region(x1, y1, x2 - x1, y2 - y1, a.source, max(a.score, b.score))


def expand(region: Region, ratio: float) -> Region:
    """Pad a region by `ratio` of its width on each side and `ratio` of its height above and below."""
    pad_x = region.width * ratio
    pad_y = region.height * ratio
    return replace(
        region,
        x=region.x - pad_x,
        y=region.y - pad_y,
        width=region.width + pad_x * 2,
        height=region.height + pad_y * 2
    )


def clamp(region: Region, width: int, height: int) -> Region:
    """Intersect a region with the image rectangle [0, width) x [0, height)."""
    x1 = min(max(region.x, 0.0), float(width))
    y1 = min(max(region.y, 0.0), float(height))
    x2 = min(max(region.x2, 0.0), float(width))
    y2 = min(max(region.y2, 0.0), float(height))
    return replace(region, x=x1, y=y1, width=max(0.0, x2 - x1), height=max(0.0, y2 - y1))


def to_pixel_bounds(region: Region, width: int, height: int) -> Tuple[int, int, int, int]:
    """
    Integer slice bounds (x0, y0, x1, y1) covering a region inside an image.

    Fractional edges are rounded outwards so partially covered pixels are
    included. The result may be empty (x1 <= x0 or y1 <= y0).
    """
    clamped = clamp(region, width, height)
    x0 = int(math.floor(clamped.x))
    y0 = int(math.floor(clamped.y))
    x1 = int(math.ceil(clamped.x2))
    y1 = int(math.ceil(clamped.y2))
    return x0, y0, x1, y1
