"""
Configuration management for the eraser pipeline.

Defines the per-call option set and the nested configuration dataclasses for
scanning, detection, segmentation, OCR and redaction.
"""

import json
from dataclasses import dataclass, field, asdict, fields
from enum import Enum
from typing import Dict, Any, Optional, Tuple, Union
from pathlib import Path


class Stage(Enum):
    """Redaction stages, in the order the pipeline runs them."""
    BODY = "body"
    FACES = "faces"
    TEXT = "text"


@dataclass(frozen=True)
class BlurOptions:
    """Which stages to run for one image, and how strong the blur is."""
    blur_faces: bool = True
    blur_body: bool = False
    blur_plates: bool = False
    blur_text: bool = False
    strength: int = 20  # blur radius in pixels, 5-50 recommended

    def __post_init__(self):
        if self.strength < 1:
            raise ValueError(f"Blur strength must be at least 1 pixel, got {self.strength}")

    @property
    def any_enabled(self) -> bool:
        return self.blur_faces or self.blur_body or self.blur_plates or self.blur_text


@dataclass
class ScanConfig:
    """Tiling parameters for the multi-scale face scan."""
    tiling_min_dimension: int = 400  # tile only when max(W, H) exceeds this
    max_tile_size: int = 640
    tile_overlap: float = 0.5
    min_tile_size: int = 100  # smaller crops are not scanned
    full_image_score: float = 0.9  # used when the detector gives no probability
    tile_score: float = 0.8


@dataclass
class FaceDetectionConfig:
    """Configuration for the OpenCV face detector adapter."""
    cascade_file: str = "haarcascade_frontalface_default.xml"
    scale_factor: float = 1.1
    min_neighbors: int = 5
    min_size: Tuple[int, int] = (30, 30)


@dataclass
class PersonDetectionConfig:
    """Configuration for the object detector and head estimation."""
    model_path: str = "yolov8n.pt"
    person_label: str = "person"
    score_threshold: float = 0.35
    head_height_ratio: float = 0.25
    head_width_ratio: float = 0.45


@dataclass
class SegmentationConfig:
    """Configuration for person segmentation (MediaPipe Tasks image segmenter)."""
    model_path: str = str(Path.home() / ".cache" / "eraser" / "selfie_segmenter.tflite")
    model_url: str = (
        "https://storage.googleapis.com/mediapipe-models/image_segmenter/"
        "selfie_segmenter/float16/latest/selfie_segmenter.tflite"
    )
    segmentation_threshold: float = 0.7


@dataclass
class OCRConfig:
    """Configuration for OCR engines."""
    primary_engine: str = "tesseract"  # "tesseract" or "easyocr"
    fallback_engine: Optional[str] = "easyocr"
    language: str = "eng"
    confidence_threshold: float = 0.0
    tesseract_config: str = "--oem 3 --psm 11"
    gpu: bool = False


@dataclass
class RedactionConfig:
    """Configuration for region fusion and compositing."""
    iou_threshold: float = 0.3
    face_padding_ratio: float = 0.2  # applied on each side, per axis
    face_workers: int = 2

    def __post_init__(self):
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError(f"IoU threshold must be within [0, 1], got {self.iou_threshold}")
        if self.face_padding_ratio < 0:
            raise ValueError(f"Padding ratio must be non-negative, got {self.face_padding_ratio}")


_SECTIONS = {
    "scan": ScanConfig,
    "face": FaceDetectionConfig,
    "person": PersonDetectionConfig,
    "segmentation": SegmentationConfig,
    "ocr": OCRConfig,
    "redaction": RedactionConfig,
}


@dataclass
class EraserConfig:
    """Main configuration class for the eraser pipeline."""
    scan: ScanConfig = field(default_factory=ScanConfig)
    face: FaceDetectionConfig = field(default_factory=FaceDetectionConfig)
    person: PersonDetectionConfig = field(default_factory=PersonDetectionConfig)
    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    redaction: RedactionConfig = field(default_factory=RedactionConfig)

    # General settings
    output_dir: Path = field(default_factory=lambda: Path.cwd() / "output")
    log_level: str = "INFO"
    save_metadata: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["output_dir"] = str(self.output_dir)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EraserConfig":
        """
        Build a configuration from a dictionary.

        Missing sections and keys keep their defaults. Unknown keys raise
        ValueError so that typos in config files do not pass silently.
        """
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key in _SECTIONS:
                kwargs[key] = _build_section(_SECTIONS[key], key, value)
            elif key == "output_dir":
                kwargs[key] = Path(value)
            elif key in ("log_level", "save_metadata"):
                kwargs[key] = value
            else:
                raise ValueError(f"Unknown configuration key: {key}")
        return cls(**kwargs)


def _build_section(section_cls, name: str, values: Dict[str, Any]):
    known = {f.name for f in fields(section_cls)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown keys in '{name}' section: {sorted(unknown)}")
    values = dict(values)
    # JSON has no tuples
    if "min_size" in values:
        values["min_size"] = tuple(values["min_size"])
    return section_cls(**values)


def load_config(config_path: Optional[Union[str, Path]] = None) -> EraserConfig:
    """Load configuration from a JSON file, or the defaults when no path is given."""
    if not config_path:
        return EraserConfig()

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config_data = json.load(f)

    if not isinstance(config_data, dict):
        raise ValueError(f"Config file must contain a JSON object: {config_path}")

    return EraserConfig.from_dict(config_data)
