"""
Head-region estimation from person detections.

A fallback for faces the face detector misses (profiles, occlusion, low
resolution): the head is taken as the top quarter of a person box, narrowed
to the middle of it. Crude, but it favours recall.
"""

from typing import List, Optional
import numpy as np

from .config import PersonDetectionConfig
from .detectors import ObjectDetector, ObjectPrediction
from .geometry import Region
from .logger import LoggerMixin

SOURCE_HEAD = "head"


def estimate_head_region(
    x: float, y: float, w: float, h: float,
    score: float = 1.0,
    height_ratio: float = 0.25,
    width_ratio: float = 0.45
) -> Region:
    """Approximate head box for a person box (x, y, w, h): top-anchored and horizontally centred."""
    head_width = w * width_ratio
    head_height = h * height_ratio
    return Region(
        x=x + (w - head_width) / 2,
        y=y,
        width=head_width,
        height=head_height,
        source=SOURCE_HEAD,
        score=score
    )


class HeadRegionEstimator(LoggerMixin):
    """Derives head regions from an object detector's person boxes."""

    def __init__(self, detector: ObjectDetector, config: Optional[PersonDetectionConfig] = None):
        self.detector = detector
        self.config = config or PersonDetectionConfig()

    def is_person(self, prediction: ObjectPrediction) -> bool:
        return (
            prediction.label == self.config.person_label
            and prediction.score > self.config.score_threshold
        )

    def estimate(self, image: np.ndarray) -> List[Region]:
        persons = [p for p in self.detector.detect(image) if self.is_person(p)]

        heads = [
            estimate_head_region(
                *p.bbox,
                score=p.score,
                height_ratio=self.config.head_height_ratio,
                width_ratio=self.config.head_width_ratio
            )
            for p in persons
        ]

        self.log_debug(f"Estimated {len(heads)} head regions from person boxes")
        return heads
