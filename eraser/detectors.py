"""
Detector capability interfaces and their library-backed adapters.

The fusion core only talks to three small interfaces:

- FaceDetector: face boxes as top-left / bottom-right corners
- ObjectDetector: labelled (x, y, w, h) boxes with scores
- PersonSegmenter: per-pixel person masks

Concrete adapters wrap OpenCV Haar cascades, ultralytics YOLO and MediaPipe
selfie segmentation. Optional libraries are imported when an adapter is
constructed, so a missing package only disables that adapter.
"""

import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple
import numpy as np
import cv2

from .config import FaceDetectionConfig, PersonDetectionConfig, SegmentationConfig
from .logger import LoggerMixin


@dataclass(frozen=True)
class FacePrediction:
    """A face box in the coordinates of the image the detector was given."""
    top_left: Tuple[float, float]
    bottom_right: Tuple[float, float]
    probability: Optional[float] = None


@dataclass(frozen=True)
class ObjectPrediction:
    """A labelled box from a general object detector; bbox is (x, y, w, h)."""
    label: str
    score: float
    bbox: Tuple[float, float, float, float]


@dataclass
class Segmentation:
    """Per-pixel person mask: 1 = person, 0 = background."""
    data: np.ndarray

    @property
    def shape(self) -> Tuple[int, int]:
        return self.data.shape[:2]


def to_gray(image: np.ndarray) -> np.ndarray:
    """Grayscale view of a BGR, BGRA or single-channel image."""
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def to_rgb(image: np.ndarray) -> np.ndarray:
    """RGB copy of a BGR, BGRA or single-channel image."""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGB)
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


class FaceDetector(LoggerMixin):
    """Base class for face detectors. Must accept full images and crops alike."""

    name = "face"

    def detect(self, image: np.ndarray) -> List[FacePrediction]:
        raise NotImplementedError("Subclasses must implement detect")


class ObjectDetector(LoggerMixin):
    """Base class for general object detectors."""

    name = "object"

    def detect(self, image: np.ndarray) -> List[ObjectPrediction]:
        raise NotImplementedError("Subclasses must implement detect")


class PersonSegmenter(LoggerMixin):
    """Base class for person segmentation models."""

    name = "segmenter"

    def segment(self, image: np.ndarray, config: SegmentationConfig) -> Segmentation:
        raise NotImplementedError("Subclasses must implement segment")


class HaarCascadeFaceDetector(FaceDetector):
    """
    Frontal face detector using OpenCV's bundled Haar cascades.

    Cascades report no confidence, so predictions carry no probability and the
    scanner's default scores apply.
    """

    name = "haar-cascade"

    def __init__(self, config: Optional[FaceDetectionConfig] = None):
        self.config = config or FaceDetectionConfig()
        cascade_path = cv2.data.haarcascades + self.config.cascade_file
        self.classifier = cv2.CascadeClassifier(cascade_path)

        if self.classifier.empty():
            raise RuntimeError(f"OpenCV face cascade could not be loaded: {cascade_path}")

        self.log_info(f"OpenCV face detector initialized ({self.config.cascade_file})")

    def detect(self, image: np.ndarray) -> List[FacePrediction]:
        gray = to_gray(image)
        faces = self.classifier.detectMultiScale(
            gray,
            scaleFactor=self.config.scale_factor,
            minNeighbors=self.config.min_neighbors,
            minSize=tuple(self.config.min_size)
        )

        return [
            FacePrediction(top_left=(float(x), float(y)), bottom_right=(float(x + w), float(y + h)))
            for (x, y, w, h) in faces
        ]


class YOLOObjectDetector(ObjectDetector):
    """General object detector backed by an ultralytics YOLO model."""

    name = "yolo"

    def __init__(self, config: Optional[PersonDetectionConfig] = None):
        self.config = config or PersonDetectionConfig()
        try:
            from ultralytics import YOLO
        except ImportError:
            self.log_warning("ultralytics not available. Install with: pip install ultralytics")
            raise

        self.model = YOLO(self.config.model_path)
        self.log_info(f"YOLO model loaded: {self.config.model_path}")

    def detect(self, image: np.ndarray) -> List[ObjectPrediction]:
        predictions = []

        # ultralytics treats numpy input as BGR
        for result in self.model.predict(source=image, verbose=False):
            if result.boxes is None:
                continue
            names = result.names
            for box in result.boxes:
                x1, y1, x2, y2 = box.xyxy[0].tolist()
                class_id = int(box.cls[0].item())
                predictions.append(ObjectPrediction(
                    label=str(names.get(class_id, class_id)),
                    score=float(box.conf[0].item()),
                    bbox=(x1, y1, x2 - x1, y2 - y1)
                ))

        self.log_debug(f"YOLO returned {len(predictions)} objects")
        return predictions


class MediaPipeSegmenter(PersonSegmenter):
    """
    Person segmentation with the MediaPipe Tasks image segmenter and the
    selfie-segmenter model.

    The model file is downloaded to `config.model_path` on first use.
    """

    name = "mediapipe-selfie"

    def __init__(self, config: Optional[SegmentationConfig] = None):
        self.config = config or SegmentationConfig()
        try:
            import mediapipe as mp
            from mediapipe.tasks import python as mp_tasks
            from mediapipe.tasks.python import vision
        except ImportError:
            self.log_warning("mediapipe not available. Install with: pip install mediapipe")
            raise

        self._mp = mp
        model_path = self._ensure_model()
        options = vision.ImageSegmenterOptions(
            base_options=mp_tasks.BaseOptions(model_asset_path=str(model_path)),
            running_mode=vision.RunningMode.IMAGE,
            output_confidence_masks=True,
            output_category_mask=False
        )
        self._segmenter = vision.ImageSegmenter.create_from_options(options)
        self.log_info(f"MediaPipe image segmenter initialized ({model_path.name})")

    def _ensure_model(self) -> Path:
        model_path = Path(self.config.model_path)
        if not model_path.exists():
            self.log_info(f"Downloading selfie segmentation model to {model_path}")
            model_path.parent.mkdir(parents=True, exist_ok=True)
            urllib.request.urlretrieve(self.config.model_url, model_path)
        return model_path

    def segment(self, image: np.ndarray, config: SegmentationConfig) -> Segmentation:
        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=to_rgb(image))
        result = self._segmenter.segment(mp_image)

        if not result.confidence_masks:
            return Segmentation(np.zeros(image.shape[:2], dtype=np.uint8))

        # The last confidence mask is the person class
        confidence = np.squeeze(np.asarray(result.confidence_masks[-1].numpy_view()))
        return Segmentation((confidence > config.segmentation_threshold).astype(np.uint8))
