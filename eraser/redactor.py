"""
Redaction compositing for detected regions.

The pipeline owns one Canvas per image: a read-only copy of the original and a
working raster that each stage edits in place. Region blurs read the *current*
working pixels, so a region blurred by two stages is blurred twice.
"""

import math
from typing import Iterable, List
import numpy as np
import cv2

from .geometry import Region, expand, to_pixel_bounds
from .logger import get_logger

logger = get_logger(__name__)


class Canvas:
    """
    Source image plus the working raster being redacted.

    `source` is never written to; `pixels` starts as a copy of it.
    """

    def __init__(self, image: np.ndarray):
        if image.ndim not in (2, 3):
            raise ValueError(f"Expected an (H, W) or (H, W, C) image, got shape {image.shape}")

        source = np.array(image, copy=True)
        source.setflags(write=False)
        self.source = source
        self.pixels = source.copy()

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def shape(self):
        return self.pixels.shape

    def reset(self) -> None:
        """Discard all redactions."""
        self.pixels = self.source.copy()


def kernel_reach(radius: float) -> int:
    """How far, in pixels, a blur of this radius pulls values from."""
    return int(math.ceil(radius * 4)) + 1


def gaussian_blur(image: np.ndarray, radius: float) -> np.ndarray:
    """Gaussian blur with standard deviation `radius`; edges are replicated."""
    return cv2.GaussianBlur(
        image, (0, 0), sigmaX=radius, sigmaY=radius, borderType=cv2.BORDER_REPLICATE
    )


def apply_blur(canvas: Canvas, region: Region, radius: float) -> bool:
    """
    Blur the current canvas content inside a region.

    Only the pixels inside the region (clipped to the image) change. The blur
    is computed on a window extended by the kernel reach, which gives the same
    values inside the region as blurring the whole canvas would.

    Args:
        canvas: Canvas to modify in place
        region: Region to blur, in image coordinates
        radius: Blur radius in pixels

    Returns:
        True if any pixel was written, False for degenerate regions
    """
    if region.is_empty or radius <= 0:
        return False

    x0, y0, x1, y1 = to_pixel_bounds(region, canvas.width, canvas.height)
    if x1 <= x0 or y1 <= y0:
        logger.debug(f"Region outside the image, skipped: {region}")
        return False

    reach = kernel_reach(radius)
    wx0, wy0 = max(0, x0 - reach), max(0, y0 - reach)
    wx1, wy1 = min(canvas.width, x1 + reach), min(canvas.height, y1 + reach)

    window = canvas.pixels[wy0:wy1, wx0:wx1]
    blurred = gaussian_blur(window, radius)
    canvas.pixels[y0:y1, x0:x1] = blurred[y0 - wy0:y1 - wy0, x0 - wx0:x1 - wx0]
    return True


def apply_blur_to_regions(
    canvas: Canvas,
    regions: Iterable[Region],
    radius: float,
    padding: float = 0.0
) -> List[Region]:
    """
    Blur each region in turn, optionally padded by `padding` of its size per side.

    Returns the input regions (unpadded) whose blur wrote any pixel, in order.
    """
    return [region for region in regions if apply_blur(canvas, expand(region, padding), radius)]
