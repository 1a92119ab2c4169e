"""
eraser - local, privacy-first blur redaction for still images.

This package provides tools for:
- Multi-scale tiled face scanning and head estimation from person boxes
- Fusing overlapping detections from several detectors (IoU merging)
- Person-segmentation blur through an alpha mask
- Blurring emails, phone numbers and license-plate-like text found by OCR
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .config import BlurOptions, EraserConfig, load_config
from .geometry import Region, compute_iou
from .pipeline import RedactionPipeline, RedactionResult, create_pipeline
from .logger import get_logger

__all__ = [
    "BlurOptions",
    "EraserConfig",
    "load_config",
    "Region",
    "compute_iou",
    "RedactionPipeline",
    "RedactionResult",
    "create_pipeline",
    "get_logger"
]
