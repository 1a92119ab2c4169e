"""
Stage pipeline: body segmentation, face fusion, then text and plates.

All stages work on one Canvas that the pipeline owns for the duration of a
`process` call. Detectors always look at the original image; compositing
always edits the working pixels, in the fixed order body -> faces -> text.
A detector that raises contributes no regions and the run continues.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
import numpy as np

from .config import BlurOptions, EraserConfig, Stage
from .dedup import deduplicate_regions
from .detectors import (
    FaceDetector, ObjectDetector, PersonSegmenter,
    HaarCascadeFaceDetector, YOLOObjectDetector, MediaPipeSegmenter
)
from .geometry import Region
from .heads import HeadRegionEstimator
from .masking import build_alpha_mask, composite_mask_blur
from .ocr import OCRManager, TextRecognizer
from .redactor import Canvas, apply_blur_to_regions
from .scanner import TiledScanner
from .text_patterns import TextPatternClassifier
from .logger import LoggerMixin, get_logger

logger = get_logger(__name__)


@dataclass
class DetectorFailure:
    """A collaborator call that raised; its contribution was treated as empty."""
    stage: str
    detector: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"stage": self.stage, "detector": self.detector, "message": self.message}


@dataclass
class RedactionResult:
    """Redacted pixels plus what was applied to them."""
    image: np.ndarray
    options: BlurOptions
    regions: Dict[str, List[Region]] = field(default_factory=dict)
    masked_pixels: int = 0
    failures: List[DetectorFailure] = field(default_factory=list)
    processing_time_ms: float = 0.0

    @property
    def total_regions(self) -> int:
        return sum(len(regions) for regions in self.regions.values())

    @property
    def modified(self) -> bool:
        return self.total_regions > 0 or self.masked_pixels > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization (pixels excluded)."""
        return {
            "shape": list(self.image.shape),
            "options": {
                "blur_faces": self.options.blur_faces,
                "blur_body": self.options.blur_body,
                "blur_plates": self.options.blur_plates,
                "blur_text": self.options.blur_text,
                "strength": self.options.strength
            },
            "regions": {
                stage: [r.to_dict() for r in regions]
                for stage, regions in self.regions.items()
            },
            "masked_pixels": self.masked_pixels,
            "failures": [f.to_dict() for f in self.failures],
            "processing_time_ms": self.processing_time_ms
        }


def _call_detector(
    stage: Stage, name: str, fn: Callable[[np.ndarray], List[Region]], image: np.ndarray
) -> Tuple[List[Region], Optional[DetectorFailure]]:
    """Run one detector call, turning an exception into an empty result plus a failure record."""
    try:
        return fn(image), None
    except Exception as e:
        logger.error(f"{name} failed during {stage.value} stage: {e}")
        return [], DetectorFailure(stage.value, name, str(e))


class RedactionPipeline(LoggerMixin):
    """
    Fuses detector output into redaction regions and composites the blur.

    Every collaborator is optional; a stage whose collaborator is missing is
    skipped with a warning.
    """

    def __init__(
        self,
        face_detector: Optional[FaceDetector] = None,
        object_detector: Optional[ObjectDetector] = None,
        segmenter: Optional[PersonSegmenter] = None,
        text_recognizer: Optional[TextRecognizer] = None,
        config: Optional[EraserConfig] = None
    ):
        self.config = config or EraserConfig()
        self.face_detector = face_detector
        self.object_detector = object_detector
        self.segmenter = segmenter
        self.text_recognizer = text_recognizer

        self.scanner = TiledScanner(self.config.scan)
        self.head_estimator = (
            HeadRegionEstimator(object_detector, self.config.person) if object_detector else None
        )
        self.classifier = TextPatternClassifier()

    def process(self, image: np.ndarray, options: Optional[BlurOptions] = None) -> RedactionResult:
        """
        Redact one image.

        Args:
            image: Source image array; it is copied and never modified
            options: Stages to run and blur strength

        Returns:
            RedactionResult with the redacted pixels and per-stage regions
        """
        options = options or BlurOptions()
        start_time = time.time()

        canvas = Canvas(image)
        result = RedactionResult(image=canvas.pixels, options=options)

        if options.blur_body:
            self._run_body_stage(canvas, options, result)

        if options.blur_faces:
            self._run_face_stage(canvas, options, result)

        if options.blur_plates or options.blur_text:
            self._run_text_stage(canvas, options, result)

        result.image = canvas.pixels
        result.processing_time_ms = (time.time() - start_time) * 1000

        if result.failures:
            self.log_warning(f"{len(result.failures)} detector call(s) failed; redaction may be partial")
        self.log_info(
            f"Redacted {result.total_regions} regions and {result.masked_pixels} masked pixels "
            f"in {result.processing_time_ms:.1f}ms"
        )
        return result

    # ---------- stages ----------

    def _run_body_stage(self, canvas: Canvas, options: BlurOptions, result: RedactionResult) -> None:
        if self.segmenter is None:
            self.log_warning("Body blur requested but no segmenter is available")
            return

        try:
            segmentation = self.segmenter.segment(canvas.source, self.config.segmentation)
            mask = build_alpha_mask(segmentation.data, canvas.shape)
        except Exception as e:
            self.log_error(f"Body segmentation failed: {e}")
            result.failures.append(DetectorFailure(Stage.BODY.value, self.segmenter.name, str(e)))
            return

        result.masked_pixels = composite_mask_blur(canvas, mask, options.strength)
        self.log_info(f"Body stage blurred {result.masked_pixels} person pixels")

    def _run_face_stage(self, canvas: Canvas, options: BlurOptions, result: RedactionResult) -> None:
        regions, failures = self._fuse_faces(canvas.source)
        result.failures.extend(failures)

        result.regions[Stage.FACES.value] = apply_blur_to_regions(
            canvas, regions, options.strength, self.config.redaction.face_padding_ratio
        )

    def _run_text_stage(self, canvas: Canvas, options: BlurOptions, result: RedactionResult) -> None:
        if self.text_recognizer is None:
            self.log_warning("Text or plate blur requested but no text recognizer is available")
            return

        try:
            tokens = self.text_recognizer.recognize(canvas.source, self.config.ocr.language)
        except Exception as e:
            self.log_error(f"OCR failed: {e}")
            result.failures.append(DetectorFailure(Stage.TEXT.value, self.text_recognizer.name, str(e)))
            return

        regions = self.classifier.regions_for(tokens, options)
        result.regions[Stage.TEXT.value] = apply_blur_to_regions(canvas, regions, options.strength)

    # ---------- face fusion ----------

    def _fuse_faces(self, image: np.ndarray) -> Tuple[List[Region], List[DetectorFailure]]:
        """Run both face strategies concurrently, join them, and merge their regions."""
        strategies = []
        if self.face_detector is not None:
            strategies.append((
                self.face_detector.name,
                lambda img: self.scanner.scan(img, self.face_detector)
            ))
        if self.head_estimator is not None:
            strategies.append((self.object_detector.name, self.head_estimator.estimate))

        if not strategies:
            self.log_warning("Face blur requested but no face or person detector is available")
            return [], []

        workers = max(1, min(self.config.redaction.face_workers, len(strategies)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(_call_detector, Stage.FACES, name, fn, image)
                for name, fn in strategies
            ]
            outcomes = [future.result() for future in futures]

        candidates: List[Region] = []
        failures: List[DetectorFailure] = []
        for (name, _), (regions, failure) in zip(strategies, outcomes):
            self.log_debug(f"{name}: {len(regions)} face candidates")
            candidates.extend(regions)
            if failure is not None:
                failures.append(failure)

        merged = deduplicate_regions(candidates, self.config.redaction.iou_threshold)
        self.log_info(f"Face fusion: {len(candidates)} candidates -> {len(merged)} regions")
        return merged, failures

    def detect_faces(self, image: np.ndarray) -> Tuple[List[Region], List[DetectorFailure]]:
        """
        Fused face regions for an image, without padding or compositing.

        Returns the regions together with the failures of any strategy that
        raised, so an empty result can be told apart from a crashed detector.
        """
        return self._fuse_faces(image)


def create_pipeline(
    config: Optional[EraserConfig] = None,
    options: Optional[BlurOptions] = None
) -> RedactionPipeline:
    """
    Build a pipeline with the default library-backed adapters.

    When `options` is given, adapters for disabled stages are not loaded. An
    adapter that cannot be initialized is logged and left out.
    """
    config = config or EraserConfig()
    wants_faces = options is None or options.blur_faces
    wants_body = options is None or options.blur_body
    wants_text = options is None or options.blur_text or options.blur_plates

    def build(label: str, factory: Callable[[], Any]) -> Any:
        try:
            return factory()
        except Exception as e:
            logger.warning(f"{label} unavailable: {e}")
            return None

    return RedactionPipeline(
        face_detector=build("Face detector", lambda: HaarCascadeFaceDetector(config.face)) if wants_faces else None,
        object_detector=build("Person detector", lambda: YOLOObjectDetector(config.person)) if wants_faces else None,
        segmenter=build("Person segmenter", lambda: MediaPipeSegmenter(config.segmentation)) if wants_body else None,
        text_recognizer=build("OCR", lambda: OCRManager(config.ocr)) if wants_text else None,
        config=config
    )
