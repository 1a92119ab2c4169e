"""
Pattern-based classification of recognized text.

Each OCR token is checked independently against a small set of rules:
email and phone patterns mark sensitive text, a short uppercase alphanumeric
word marks a likely license plate.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Set

from .config import BlurOptions
from .geometry import Region
from .ocr import RecognizedToken
from .logger import LoggerMixin


class TextCategory(Enum):
    """Categories of text worth redacting."""
    EMAIL = "email"
    PHONE = "phone"
    PLATE = "plate"


SENSITIVE_TEXT = frozenset({TextCategory.EMAIL, TextCategory.PHONE})
PLATE_TEXT = frozenset({TextCategory.PLATE})


@dataclass(frozen=True)
class TextPattern:
    """Regex rule for one text category."""
    pattern: re.Pattern
    category: TextCategory
    full_match: bool = False
    description: str = ""

    def matches(self, text: str) -> bool:
        if self.full_match:
            return self.pattern.fullmatch(text) is not None
        return self.pattern.search(text) is not None


def enabled_categories(options: BlurOptions) -> Set[TextCategory]:
    """Categories switched on by an option set."""
    enabled: Set[TextCategory] = set()
    if options.blur_text:
        enabled |= SENSITIVE_TEXT
    if options.blur_plates:
        enabled |= PLATE_TEXT
    return enabled


class TextPatternClassifier(LoggerMixin):
    """Classifies OCR tokens as sensitive text or plate-like."""

    def __init__(self):
        self.patterns = self._compile_patterns()

    def _compile_patterns(self) -> List[TextPattern]:
        return [
            TextPattern(
                pattern=re.compile(r'\S+@\S+\.\S+'),
                category=TextCategory.EMAIL,
                description="Anything shaped like user@domain.tld"
            ),
            TextPattern(
                pattern=re.compile(r'\d{3}[-.\s]?\d{4}'),
                category=TextCategory.PHONE,
                description="3 digits, optional separator, 4 digits"
            ),
            TextPattern(
                pattern=re.compile(r'[A-Z0-9]{4,9}'),
                category=TextCategory.PLATE,
                full_match=True,
                description="Uppercase alphanumeric, 4-9 chars, no separators"
            ),
        ]

    def classify(self, text: str, enabled: Optional[Iterable[TextCategory]] = None) -> Set[TextCategory]:
        """
        Categories a piece of text belongs to.

        Args:
            text: Recognized text
            enabled: Categories to evaluate; all of them when None

        Returns:
            Every enabled category whose rule matches (possibly several)
        """
        allowed = set(TextCategory) if enabled is None else set(enabled)
        text = text.strip()

        return {
            rule.category
            for rule in self.patterns
            if rule.category in allowed and rule.matches(text)
        }

    def regions_for(self, tokens: Iterable[RecognizedToken], options: BlurOptions) -> List[Region]:
        """
        Blur regions for the tokens matching any enabled category.

        The OCR box is used as-is, without padding.
        """
        enabled = enabled_categories(options)
        if not enabled:
            return []

        regions = []
        for token in tokens:
            matched = self.classify(token.text, enabled)
            if not matched:
                continue

            # Report the first matching rule as the region's source
            source = next(rule.category.value for rule in self.patterns if rule.category in matched)
            regions.append(Region(
                token.bbox.x, token.bbox.y, token.bbox.width, token.bbox.height,
                source=source, score=token.confidence
            ))

        self.log_info(f"Matched {len(regions)} sensitive text regions")
        return regions
