"""Detection pipeline — orchestrates OCR → PII matching → region mapping.

The OCR call is the only slow, asynchronous step. It is bounded by a timeout;
when the engine does not answer in time the pass finishes with no regions
and a ``timed_out`` status, so the caller can still offer manual redaction.
An engine error ends the pass with a ``failed`` status instead of raising.
Both are distinct from a completed pass that found nothing.
"""

import asyncio
import enum
import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass, field

from snapredact.config import get_settings
from snapredact.services.ocr_service import OcrEngine, OcrResult, OcrWord
from snapredact.services.pii_patterns import find_all_pii
from snapredact.services.region_mapper import PiiRegion, join_words, map_pii_to_regions

logger = logging.getLogger("snapredact.pipeline")


class OcrEngineTimeout(RuntimeError):
    """The engine gave up on its own, before the detection deadline."""


class DetectionStatus(str, enum.Enum):
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of one detection pass."""
    status: DetectionStatus
    regions: list[PiiRegion] = field(default_factory=list)
    error_message: str | None = None

    @property
    def timed_out(self) -> bool:
        return self.status == DetectionStatus.TIMED_OUT

    @property
    def failed(self) -> bool:
        return self.status == DetectionStatus.FAILED


def detect_pii_in_words(words: Sequence[OcrWord]) -> list[PiiRegion]:
    """Find PII in recognized words and return the image regions to redact."""
    matches = find_all_pii(join_words(words))
    return map_pii_to_regions(matches, words)


class PiiDetector:
    """Runs detection passes against an OCR engine.

    The detector keeps no per-pass state; concurrent passes are independent.
    """

    def __init__(self, engine: OcrEngine, timeout: float | None = None) -> None:
        self._engine = engine
        self._timeout = timeout if timeout is not None else get_settings().ocr_timeout_seconds

    @property
    def timeout(self) -> float:
        return self._timeout

    async def detect_pii(self, image: str | os.PathLike) -> DetectionResult:
        """Recognize *image* and locate PII in it.

        Cancelling the awaiting task abandons the pass; cancellation is not
        converted into a result.
        """
        try:
            ocr_result = await asyncio.wait_for(
                self._recognize(image), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.warning("OCR timed out after %.1fs for %s", self._timeout, image)
            return DetectionResult(status=DetectionStatus.TIMED_OUT)
        except Exception as e:
            logger.exception("OCR detection failed for %s", image)
            return DetectionResult(status=DetectionStatus.FAILED, error_message=str(e))

        regions = detect_pii_in_words(ocr_result.words)
        logger.info(
            "Detected %d PII regions in %d OCR words",
            len(regions), len(ocr_result.words),
        )
        return DetectionResult(status=DetectionStatus.COMPLETED, regions=regions)

    async def _recognize(self, image: str | os.PathLike) -> OcrResult:
        # Only the deadline around this call may surface as a timeout
        try:
            return await self._engine.recognize(image)
        except (TimeoutError, asyncio.TimeoutError) as e:
            raise OcrEngineTimeout(str(e) or "OCR engine timed out") from e
