"""Image preprocessing — CLAHE contrast enhancement before OCR.

Screenshots often carry light-grey text on tinted backgrounds (disabled form
fields, status bars). Local contrast enhancement makes that text legible to
the OCR model. The copy keeps the original dimensions, so word boxes returned
for it are valid on the original image.

The original image is NEVER modified.
"""

import logging
import os
import tempfile
from pathlib import Path

import cv2
import numpy as np

logger = logging.getLogger("snapredact.preprocessing")

_CLAHE_CLIP_LIMIT: float = 2.0
_CLAHE_TILE_GRID: tuple[int, int] = (8, 8)


def enhance_contrast(img: np.ndarray) -> np.ndarray:
    """Apply CLAHE to the L channel of a BGR image; shape is unchanged."""
    lab = cv2.cvtColor(img, cv2.COLOR_BGR2LAB)
    l_ch, a_ch, b_ch = cv2.split(lab)
    clahe = cv2.createCLAHE(clipLimit=_CLAHE_CLIP_LIMIT, tileGridSize=_CLAHE_TILE_GRID)
    l_ch = clahe.apply(l_ch)
    return cv2.cvtColor(cv2.merge([l_ch, a_ch, b_ch]), cv2.COLOR_LAB2BGR)


def preprocess_for_ocr(image_path: str) -> str:
    """Return a contrast-enhanced copy of the image for OCR use.

    The result is written to a sibling temp file; the caller deletes it after
    OCR completes. If preprocessing fails for any reason, the original path
    is returned so OCR can continue on the unprocessed image.

    Args:
        image_path: Path to the original image (will not be modified).

    Returns:
        Path to the preprocessed temp file, or ``image_path`` on failure.
    """
    try:
        img = cv2.imread(image_path)
        if img is None:
            logger.warning("preprocessing: cannot read %s", image_path)
            return image_path

        img = enhance_contrast(img)

        # Write to a temp file in the same directory (avoids cross-device moves)
        suffix = Path(image_path).suffix or ".png"
        fd, tmp_path = tempfile.mkstemp(suffix=suffix, dir=Path(image_path).parent)
        os.close(fd)
        if not cv2.imwrite(tmp_path, img):
            os.unlink(tmp_path)
            logger.warning("preprocessing: cannot write %s", tmp_path)
            return image_path
        logger.debug("Preprocessed temp file: %s", tmp_path)
        return tmp_path

    except Exception:
        logger.exception("preprocessing failed for %s, using original", image_path)
        return image_path
