"""
Image file loading and saving.

Files are decoded with PIL for broad format support and handed to the
pipeline as BGR numpy arrays, the OpenCV convention used everywhere else.
"""

from pathlib import Path
from typing import Union
import numpy as np
import cv2
from PIL import Image, ImageOps

from .logger import get_logger

logger = get_logger(__name__)

IMAGE_EXTENSIONS = [".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp"]


def load_image(image_path: Union[str, Path]) -> np.ndarray:
    """Load an image file as a BGR uint8 array, applying EXIF orientation."""
    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    with Image.open(image_path) as pil_image:
        pil_image = ImageOps.exif_transpose(pil_image)
        if pil_image.mode != 'RGB':
            pil_image = pil_image.convert('RGB')
        return cv2.cvtColor(np.array(pil_image), cv2.COLOR_RGB2BGR)


def save_image(image_array: np.ndarray, output_path: Union[str, Path]) -> Path:
    """Save a BGR (or grayscale) array; the format follows the file suffix."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if image_array.ndim == 3:
        pil_image = Image.fromarray(cv2.cvtColor(image_array, cv2.COLOR_BGR2RGB))
    else:
        pil_image = Image.fromarray(image_array)

    pil_image.save(output_path)
    logger.info(f"Saved redacted image to {output_path}")
    return output_path
