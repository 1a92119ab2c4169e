"""
Segmentation-mask compositing.

Body redaction blurs the whole original image once and lets the person mask
decide, pixel by pixel, how much of the blurred copy replaces the canvas.
"""

import numpy as np
import cv2

from .redactor import Canvas, gaussian_blur
from .logger import get_logger

logger = get_logger(__name__)


def build_alpha_mask(data: np.ndarray, shape) -> np.ndarray:
    """
    Turn a person/background raster into an opacity mask.

    Args:
        data: (H, W) array where 1 marks a person pixel
        shape: Canvas shape; only (H, W) is used

    Returns:
        uint8 (H, W) mask: 255 for person pixels, 0 elsewhere
    """
    height, width = shape[:2]
    mask = np.where(np.asarray(data) == 1, 255, 0).astype(np.uint8)

    if mask.shape != (height, width):
        logger.debug(f"Resizing segmentation mask {mask.shape} to {(height, width)}")
        mask = cv2.resize(mask, (width, height), interpolation=cv2.INTER_NEAREST)

    return mask


def composite_mask_blur(canvas: Canvas, mask: np.ndarray, radius: float) -> int:
    """
    Alpha-composite a blurred copy of the original image onto the canvas.

    Args:
        canvas: Canvas to modify in place
        mask: uint8 (H, W) opacity; 255 replaces, 0 keeps, values between blend
        radius: Blur radius in pixels

    Returns:
        Number of pixels with non-zero opacity
    """
    covered = int(np.count_nonzero(mask))
    if covered == 0:
        return 0

    blurred = gaussian_blur(canvas.source, radius)

    alpha = mask.astype(np.float32) / 255.0
    if canvas.pixels.ndim == 3:
        alpha = alpha[:, :, np.newaxis]

    mixed = blurred.astype(np.float32) * alpha + canvas.pixels.astype(np.float32) * (1.0 - alpha)
    canvas.pixels[...] = np.clip(np.rint(mixed), 0, 255).astype(canvas.pixels.dtype)
    return covered
