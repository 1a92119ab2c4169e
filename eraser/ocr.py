"""
OCR wrapper supporting Tesseract and EasyOCR with fallback.

Provides a unified text-recognizer interface returning word tokens with
bounding boxes in image coordinates.
"""

from dataclasses import dataclass
from typing import List, Optional, Dict, Any, Sequence, Tuple
import numpy as np
from PIL import Image

from .config import OCRConfig
from .detectors import to_rgb
from .geometry import Region
from .logger import LoggerMixin

# Tesseract language codes mapped to EasyOCR ones
_EASYOCR_LANGUAGES = {
    "eng": "en",
    "deu": "de",
    "fra": "fr",
    "spa": "es",
    "ita": "it",
    "por": "pt",
    "nld": "nl",
}


@dataclass(frozen=True)
class RecognizedToken:
    """A recognized word and where it sits in the image."""
    text: str
    bbox: Region
    confidence: float = 1.0

    def __repr__(self) -> str:
        return f"RecognizedToken(text='{self.text[:20]}', bbox={self.bbox}, conf={self.confidence:.2f})"


class TextRecognizer(LoggerMixin):
    """Base class for OCR engines."""

    name = "ocr"

    def recognize(self, image: np.ndarray, lang: str) -> List[RecognizedToken]:
        """
        Recognize words in an image.

        Args:
            image: BGR or grayscale image array
            lang: Tesseract-style language code, e.g. "eng"

        Returns:
            Word tokens with bounding boxes
        """
        raise NotImplementedError("Subclasses must implement recognize")


def tokens_from_tesseract_data(
    data: Dict[str, Sequence[Any]],
    confidence_threshold: float = 0.0,
    source: str = "tesseract"
) -> List[RecognizedToken]:
    """Convert pytesseract `image_to_data` dictionary output into tokens."""
    tokens = []

    for i in range(len(data['text'])):
        text = str(data['text'][i]).strip()
        if not text:
            continue

        # Tesseract reports -1 for layout rows and 0-100 for words
        confidence = max(0.0, float(data['conf'][i])) / 100.0
        if confidence < confidence_threshold:
            continue

        x, y = float(data['left'][i]), float(data['top'][i])
        w, h = float(data['width'][i]), float(data['height'][i])
        tokens.append(RecognizedToken(
            text=text,
            bbox=Region(x, y, w, h, source=source, score=confidence),
            confidence=confidence
        ))

    return tokens


def tokens_from_easyocr_results(
    results: Sequence[Tuple[Sequence[Sequence[float]], str, float]],
    confidence_threshold: float = 0.0,
    source: str = "easyocr"
) -> List[RecognizedToken]:
    """Convert EasyOCR `readtext` output (quad, text, confidence) into tokens."""
    tokens = []

    for points, text, confidence in results:
        text = text.strip()
        if not text or confidence < confidence_threshold:
            continue

        # EasyOCR returns a quadrilateral; keep its axis-aligned bounds
        corners = np.asarray(points, dtype=float)
        x0, y0 = corners.min(axis=0)
        x1, y1 = corners.max(axis=0)
        tokens.append(RecognizedToken(
            text=text,
            bbox=Region.from_corners(float(x0), float(y0), float(x1), float(y1), source=source, score=float(confidence)),
            confidence=float(confidence)
        ))

    return tokens


class TesseractRecognizer(TextRecognizer):
    """Tesseract OCR implementation (word-level boxes)."""

    name = "tesseract"

    def __init__(self, config: OCRConfig):
        self.config = config
        self._check_tesseract()

    def _check_tesseract(self) -> None:
        """Check that pytesseract and the tesseract binary are available."""
        try:
            import pytesseract
        except ImportError:
            self.log_warning("pytesseract not available. Install with: pip install pytesseract")
            raise

        try:
            version = pytesseract.get_tesseract_version()
        except Exception as e:
            self.log_warning(f"Tesseract may not be properly installed: {e}")
            raise

        self.log_info(f"Tesseract {version} is available")

    def recognize(self, image: np.ndarray, lang: str) -> List[RecognizedToken]:
        import pytesseract

        data = pytesseract.image_to_data(
            Image.fromarray(to_rgb(image)),
            lang=lang,
            config=self.config.tesseract_config,
            output_type=pytesseract.Output.DICT
        )

        tokens = tokens_from_tesseract_data(data, self.config.confidence_threshold, self.name)
        self.log_info(f"Tesseract extracted {len(tokens)} words")
        return tokens


class EasyOCRRecognizer(TextRecognizer):
    """EasyOCR implementation. Readers are created per language on first use."""

    name = "easyocr"

    def __init__(self, config: OCRConfig):
        self.config = config
        try:
            import easyocr
        except ImportError:
            self.log_warning("EasyOCR not available. Install with: pip install easyocr")
            raise

        self._easyocr = easyocr
        self._readers: Dict[str, Any] = {}
        self._reader_for(config.language)

    def _reader_for(self, lang: str):
        code = _EASYOCR_LANGUAGES.get(lang, lang[:2])
        if code not in self._readers:
            self._readers[code] = self._easyocr.Reader([code], gpu=self.config.gpu, verbose=False)
            self.log_info(f"EasyOCR initialized with language: {code}")
        return self._readers[code]

    def recognize(self, image: np.ndarray, lang: str) -> List[RecognizedToken]:
        results = self._reader_for(lang).readtext(to_rgb(image))
        tokens = tokens_from_easyocr_results(results, self.config.confidence_threshold, self.name)
        self.log_info(f"EasyOCR extracted {len(tokens)} text regions")
        return tokens


_ENGINES = {
    "tesseract": TesseractRecognizer,
    "easyocr": EasyOCRRecognizer,
}


def create_recognizer(engine: str, config: OCRConfig) -> TextRecognizer:
    """Instantiate an OCR engine by name."""
    if engine not in _ENGINES:
        raise ValueError(f"Unknown OCR engine: {engine}. Choose from {sorted(_ENGINES)}")
    return _ENGINES[engine](config)


class OCRManager(TextRecognizer):
    """
    Text recognizer that tries the primary engine and falls back to the
    secondary one when the primary is unavailable or fails.
    """

    name = "ocr-manager"

    def __init__(self, config: OCRConfig, engines: Optional[List[TextRecognizer]] = None):
        self.config = config
        self.engines: List[TextRecognizer] = engines if engines is not None else self._initialize_engines()

        if not self.engines:
            raise RuntimeError(
                "No OCR engines available. Please install pytesseract+tesseract or easyocr."
            )

        self.log_info(f"OCR engines initialized: {self.get_available_engines()}")

    def _initialize_engines(self) -> List[TextRecognizer]:
        engines = []
        names = [self.config.primary_engine]
        if self.config.fallback_engine and self.config.fallback_engine != self.config.primary_engine:
            names.append(self.config.fallback_engine)

        for name in names:
            try:
                engines.append(create_recognizer(name, self.config))
            except Exception as e:
                self.log_warning(f"Failed to initialize {name}: {e}")

        return engines

    def recognize(self, image: np.ndarray, lang: str) -> List[RecognizedToken]:
        errors = []
        for engine in self.engines:
            try:
                return engine.recognize(image, lang)
            except Exception as e:
                self.log_warning(f"OCR engine {engine.name} failed: {e}")
                errors.append(f"{engine.name}: {e}")

        raise RuntimeError(f"All OCR engines failed ({'; '.join(errors)})")

    def get_available_engines(self) -> List[str]:
        """Names of the engines this manager will try, in order."""
        return [engine.name for engine in self.engines]
