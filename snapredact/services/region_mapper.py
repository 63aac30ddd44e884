"""Region mapper — project PII text matches back onto OCR word boxes.

PII matching runs over a virtual string formed by joining the OCR words with
single spaces. Each match is mapped back to the words whose character span
overlaps it, and the union of their boxes becomes the image region to redact.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from snapredact.services.ocr_service import OcrWord
from snapredact.services.pii_patterns import PiiMatch, PiiType

logger = logging.getLogger("snapredact.region_mapper")


@dataclass(frozen=True)
class PiiRegion:
    """Image-space box around one PII match."""
    x: float
    y: float
    width: float
    height: float
    type: PiiType
    matched_text: str
    confidence: float  # 0.0 - 1.0


def join_words(words: Sequence[OcrWord]) -> str:
    """Return the text PII matching runs over: words joined by single spaces."""
    return " ".join(w.text for w in words)


def find_words_for_text_range(
    start_index: int,
    end_index: int,
    words: Sequence[OcrWord],
) -> list[OcrWord]:
    """Return the words whose span in the joined text overlaps ``[start, end)``."""
    matching: list[OcrWord] = []
    cursor = 0

    for word in words:
        word_start = cursor
        word_end = cursor + len(word.text)

        if word_end > start_index and word_start < end_index:
            matching.append(word)

        # Skip the joining space
        cursor = word_end + 1
        if cursor > end_index:
            break

    return matching


def map_pii_to_regions(
    matches: Sequence[PiiMatch],
    words: Sequence[OcrWord],
) -> list[PiiRegion]:
    """Convert PII matches into image regions, preserving match order.

    A match with no overlapping word is dropped: OCR tokenization can drift
    from the offsets, and that is not an error.
    """
    regions: list[PiiRegion] = []

    for match in matches:
        matching_words = find_words_for_text_range(
            match.start_index, match.end_index, words
        )
        if not matching_words:
            logger.debug(
                "No OCR words for %s match at [%d, %d)",
                match.type.value, match.start_index, match.end_index,
            )
            continue

        x0 = min(w.bbox.x0 for w in matching_words)
        y0 = min(w.bbox.y0 for w in matching_words)
        x1 = max(w.bbox.x1 for w in matching_words)
        y1 = max(w.bbox.y1 for w in matching_words)

        # OCR confidence is 0-100
        avg_confidence = sum(w.confidence for w in matching_words) / len(matching_words)

        regions.append(PiiRegion(
            x=x0,
            y=y0,
            width=x1 - x0,
            height=y1 - y0,
            type=match.type,
            matched_text=match.text,
            confidence=avg_confidence / 100.0,
        ))

    return regions
