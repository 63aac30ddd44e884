"""OCR collaborator — word-level text recognition with bounding boxes.

The detection pipeline only depends on the :class:`OcrEngine` protocol. The
shipped implementation calls a Gemini vision model through an
OpenAI-compatible API; any other engine (Tesseract, a platform OCR API) can
be plugged in by implementing ``recognize``.

Public interface:
  - BoundingBox(x0, y0, x1, y1)
  - OcrWord(text, bbox, confidence)   confidence is 0-100
  - OcrResult(raw_text, words)
  - OcrEngine protocol: async recognize(image) -> OcrResult
  - GeminiOcrEngine(base_url, api_key, model, *, client=None)
"""

import asyncio
import base64
import json
import logging
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from openai import AsyncOpenAI
from PIL import Image

from snapredact.config import get_settings
from snapredact.services.preprocessing import preprocess_for_ocr

logger = logging.getLogger("snapredact.ocr")


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in image pixels."""
    x0: float
    y0: float
    x1: float
    y1: float


@dataclass(frozen=True)
class OcrWord:
    """A single recognized word with bounding box."""
    text: str
    bbox: BoundingBox
    confidence: float  # 0 - 100


@dataclass(frozen=True)
class OcrResult:
    """OCR result for a single image."""
    raw_text: str
    words: list[OcrWord]

    @classmethod
    def from_words(cls, words: list[OcrWord]) -> "OcrResult":
        return cls(raw_text=" ".join(w.text for w in words), words=words)


@runtime_checkable
class OcrEngine(Protocol):
    """Anything that can turn an image into positioned words."""

    async def recognize(self, image: str | os.PathLike) -> OcrResult:
        ...


_SYSTEM_PROMPT = (
    "You are a precise OCR system for screenshots of computer screens. "
    "Detect every word of text in the image and return them in reading order "
    "(top-to-bottom, left-to-right).\n\n"
    "Return a JSON object with a single key \"words\", whose value is an array. "
    "Each element must have:\n"
    "- \"text\": the exact characters as displayed (DO NOT correct spelling)\n"
    "- \"box_2d\": bounding box as [y_min, x_min, y_max, x_max] normalized to 0-1000\n"
    "- \"confidence\": your confidence score from 0.0 to 1.0\n\n"
    "Important rules:\n"
    "- A word is a run of characters without whitespace; keep email addresses, "
    "URLs, IP addresses and numbers with their punctuation as one word\n"
    "- Each word should have its own bounding box\n"
    "- Return {\"words\": []} if no text is found"
)

_USER_PROMPT = "Detect all words in this screenshot with their bounding boxes."

# Model boxes are on a 0-1000 grid in both axes
_BOX_SCALE = 1000.0


def _api_base_url(base_url: str) -> str | None:
    """OpenAI-compatible routes live under ``/v1``; empty means the SDK default."""
    if not base_url:
        return None
    base = base_url.rstrip("/")
    return base if base.endswith("/v1") else f"{base}/v1"


def _box_to_pixels(box_2d: list[float], img_width: int, img_height: int) -> BoundingBox:
    """Map a ``[y_min, x_min, y_max, x_max]`` grid box onto the image."""
    y_min, x_min, y_max, x_max = (v / _BOX_SCALE for v in box_2d)
    return BoundingBox(
        x0=x_min * img_width,
        y0=y_min * img_height,
        x1=x_max * img_width,
        y1=y_max * img_height,
    )


def _image_to_data_url(image_path: str) -> str:
    mime_type = mimetypes.guess_type(image_path)[0] or "image/png"
    payload = base64.b64encode(Path(image_path).read_bytes()).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def _extract_word_list(content: str | None) -> list[dict]:
    """Pull the word array out of a model reply.

    Accepts ``{"words": [...]}`` or a bare array. Any other shape yields no
    words; malformed JSON raises so the request is retried.
    """
    if not content:
        logger.warning("OCR reply was empty")
        return []
    parsed: Any = json.loads(content)
    if isinstance(parsed, dict):
        parsed = parsed.get("words")
    if not isinstance(parsed, list):
        logger.warning("OCR reply has no word array (got %s)", type(parsed).__name__)
        return []
    return parsed


def _parse_words(
    raw_words: list[dict],
    img_width: int,
    img_height: int,
) -> list[OcrWord]:
    """Convert raw model output into OcrWords with pixel boxes and 0-100 confidence."""
    words: list[OcrWord] = []
    for w in raw_words:
        text = str(w.get("text", "")).strip()
        if not text:
            continue
        box_2d = w.get("box_2d")
        confidence = float(w.get("confidence", 0.8))

        if box_2d and len(box_2d) == 4:
            bbox = _box_to_pixels(box_2d, img_width, img_height)
        else:
            bbox = BoundingBox(0.0, 0.0, 0.0, 0.0)

        words.append(OcrWord(
            text=text,
            bbox=bbox,
            confidence=max(0.0, min(confidence, 1.0)) * 100.0,
        ))
    return words


def _discard_copy(ocr_path: str, original: Path) -> None:
    """Delete a preprocessed copy; the original image is never touched."""
    if ocr_path == str(original):
        return
    try:
        os.unlink(ocr_path)
    except OSError:
        logger.warning("Could not remove OCR temp file %s", ocr_path)


def _discard_abandoned_copy(job: "asyncio.Future[str]", original: Path) -> None:
    if job.cancelled() or job.exception() is not None:
        return
    logger.debug("Removing preprocessed copy of abandoned OCR request")
    _discard_copy(job.result(), original)


class GeminiOcrEngine:
    """OCR through a Gemini vision model behind an OpenAI-compatible API.

    *client* may be any object with an async ``chat.completions.create``; by
    default an ``AsyncOpenAI`` client is created on first use.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        *,
        client: Any = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
    ) -> None:
        settings = get_settings()
        self._base_url = _api_base_url(
            base_url if base_url is not None else settings.gemini_base_url
        )
        self._api_key = api_key if api_key is not None else settings.gemini_api_key
        self._model = model or settings.gemini_model
        self._temperature = settings.gemini_temperature
        self._request_timeout = settings.gemini_timeout
        self._max_retries = max_retries if max_retries is not None else settings.gemini_max_retries
        self._retry_delay = retry_delay if retry_delay is not None else settings.gemini_retry_delay
        if self._max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self._max_retries}")
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._request_timeout,
            )
            logger.info("OCR client initialized (base_url: %s)", self._base_url or "(default)")
        return self._client

    async def recognize(self, image: str | os.PathLike) -> OcrResult:
        """Run OCR on the image file at *image*.

        Raises:
            FileNotFoundError: the image does not exist.
            RuntimeError: the API failed on every attempt.
        """
        path = Path(image)
        if not path.is_file():
            raise FileNotFoundError(f"Image not found: {image}")

        with Image.open(path) as img:
            img_width, img_height = img.size

        ocr_path = await self._preprocess(path)
        try:
            raw_words = await self._request_with_retry(ocr_path)
        finally:
            _discard_copy(ocr_path, path)

        words = _parse_words(raw_words, img_width, img_height)
        logger.debug("OCR recognized %d words in %s", len(words), path.name)
        return OcrResult.from_words(words)

    async def _preprocess(self, path: Path) -> str:
        """Contrast-enhanced copy of *path* in the same pixel space.

        The worker thread cannot be interrupted, so when the caller is
        cancelled first, the copy it eventually writes is deleted on arrival.
        """
        job = asyncio.ensure_future(asyncio.to_thread(preprocess_for_ocr, str(path)))
        try:
            return await asyncio.shield(job)
        except asyncio.CancelledError:
            job.add_done_callback(lambda done: _discard_abandoned_copy(done, path))
            raise

    async def _request_with_retry(self, image_path: str) -> list[dict]:
        """Send the image, retrying with exponential backoff."""
        data_url = _image_to_data_url(image_path)
        last_error: Exception | None = None

        for attempt in range(1, self._max_retries + 1):
            try:
                return await self._request_words(data_url)
            except Exception as e:
                last_error = e
                if attempt == self._max_retries:
                    break
                delay = self._retry_delay * 2 ** (attempt - 1)
                logger.warning(
                    "OCR request failed (attempt %d/%d): %s; retrying in %.1fs",
                    attempt, self._max_retries, e, delay,
                )
                await asyncio.sleep(delay)

        logger.error("OCR request failed after %d attempts: %s", self._max_retries, last_error)
        raise RuntimeError(
            f"OCR API failed after {self._max_retries} attempts"
        ) from last_error

    async def _request_words(self, data_url: str) -> list[dict]:
        response = await self.client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": _SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "image_url", "image_url": {"url": data_url}},
                        {"type": "text", "text": _USER_PROMPT},
                    ],
                },
            ],
            temperature=self._temperature,
            response_format={"type": "json_object"},
        )
        return _extract_word_list(response.choices[0].message.content)
