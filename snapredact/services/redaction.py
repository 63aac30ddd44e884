"""Redaction synthesis — detected PII regions to redact annotations.

The review step shows every detected region with a checkbox (all checked to
start) and one global redaction style. Accepted regions become
:class:`RedactAnnotation` objects; redactions the user drew by hand are
appended after them and keep their own style.
"""

import logging
from collections.abc import Iterable, Sequence

from snapredact.schemas.annotation import (
    Clock,
    IdFactory,
    Point,
    RedactAnnotation,
    RedactReason,
    RedactStyle,
    new_annotation_id,
    now_ms,
)
from snapredact.services.annotation_store import AnnotationStore
from snapredact.services.geometry import normalize_rect_bounds
from snapredact.services.pii_patterns import PiiType
from snapredact.services.region_mapper import PiiRegion

logger = logging.getLogger("snapredact.redaction")

DEFAULT_REDACTION_COLOR = "#FF0000"

PII_TYPE_LABELS: dict[PiiType, str] = {
    PiiType.EMAIL: "Email",
    PiiType.PHONE: "Phone",
    PiiType.IP: "IP Address",
    PiiType.CREDIT_CARD: "Credit Card",
}

# Badge colors for the review list
PII_TYPE_COLORS: dict[PiiType, str] = {
    PiiType.EMAIL: "#2979FF",
    PiiType.PHONE: "#00C853",
    PiiType.IP: "#FF6F00",
    PiiType.CREDIT_CARD: "#D32F2F",
}


def default_selection(regions: Sequence[PiiRegion]) -> set[int]:
    """Every detected region starts out selected."""
    return set(range(len(regions)))


def manual_redaction(
    origin: Point,
    width: float,
    height: float,
    style: RedactStyle = RedactStyle.BLUR,
    *,
    color: str = DEFAULT_REDACTION_COLOR,
    id_factory: IdFactory | None = None,
    clock: Clock | None = None,
) -> RedactAnnotation:
    """Build a hand-drawn redaction; negative drag sizes are normalized."""
    rect = normalize_rect_bounds(origin, width, height)
    return RedactAnnotation(
        id=(id_factory or new_annotation_id)(),
        color=color,
        thickness=0,
        created_at=(clock or now_ms)(),
        origin=rect.origin,
        width=rect.width,
        height=rect.height,
        style=style,
        reason=RedactReason.MANUAL,
    )


def synthesize_redactions(
    regions: Sequence[PiiRegion],
    selected: Iterable[int],
    style: RedactStyle,
    manual: Iterable[RedactAnnotation] = (),
    *,
    color: str = DEFAULT_REDACTION_COLOR,
    id_factory: IdFactory | None = None,
    clock: Clock | None = None,
) -> list[RedactAnnotation]:
    """Turn the selected regions plus manual redactions into one list.

    Detected regions come first, in region order, all with *style*. Manual
    redactions follow unchanged. Indices outside *regions* are ignored.
    """
    new_id = id_factory or new_annotation_id
    now = clock or now_ms
    chosen = set(selected)

    redactions: list[RedactAnnotation] = []
    for index, region in enumerate(regions):
        if index not in chosen:
            continue
        rect = normalize_rect_bounds(Point(x=region.x, y=region.y), region.width, region.height)
        redactions.append(RedactAnnotation(
            id=new_id(),
            color=color,
            thickness=0,
            created_at=now(),
            origin=rect.origin,
            width=rect.width,
            height=rect.height,
            style=style,
            reason=RedactReason(region.type.value),
        ))

    redactions.extend(manual)
    return redactions


def apply_redactions(store: AnnotationStore, redactions: Iterable[RedactAnnotation]) -> int:
    """Add each redaction to *store* as its own history step.

    Returns the number of redactions added.
    """
    count = 0
    for redaction in redactions:
        store.add(redaction)
        count += 1
    logger.info("Applied %d redactions", count)
    return count
