"""Unit tests for redaction synthesis."""

import itertools

from snapredact.schemas.annotation import (
    Point,
    RedactAnnotation,
    RedactReason,
    RedactStyle,
)
from snapredact.services.annotation_store import AnnotationStore
from snapredact.services.pii_patterns import PiiType
from snapredact.services.redaction import (
    PII_TYPE_COLORS,
    PII_TYPE_LABELS,
    apply_redactions,
    default_selection,
    manual_redaction,
    synthesize_redactions,
)
from snapredact.services.region_mapper import PiiRegion


def _regions() -> list[PiiRegion]:
    return [
        PiiRegion(x=10, y=10, width=100, height=20, type=PiiType.EMAIL,
                  matched_text="a@b.com", confidence=0.95),
        PiiRegion(x=10, y=40, width=80, height=20, type=PiiType.PHONE,
                  matched_text="555-1234", confidence=0.9),
        PiiRegion(x=10, y=70, width=150, height=20, type=PiiType.CREDIT_CARD,
                  matched_text="4532015112830366", confidence=0.8),
    ]


def _ids():
    counter = itertools.count(1)
    return lambda: f"r{next(counter)}"


class TestSynthesizeRedactions:
    def test_selected_plus_manual(self) -> None:
        manual = manual_redaction(
            Point(x=300, y=300), 50, 50, RedactStyle.BLACKBOX, id_factory=lambda: "manual-1", clock=lambda: 1,
        )
        redactions = synthesize_redactions(
            _regions(), {0, 2}, RedactStyle.PIXELATE, [manual], id_factory=_ids(), clock=lambda: 99,
        )

        assert len(redactions) == 3
        assert all(isinstance(r, RedactAnnotation) for r in redactions)
        assert [r.reason for r in redactions] == [
            RedactReason.EMAIL, RedactReason.CREDIT_CARD, RedactReason.MANUAL,
        ]
        assert [r.style for r in redactions] == [
            RedactStyle.PIXELATE, RedactStyle.PIXELATE, RedactStyle.BLACKBOX,
        ]
        assert redactions[2] is manual

    def test_geometry_copied(self) -> None:
        (redaction,) = synthesize_redactions(_regions(), [1], RedactStyle.BLUR)
        assert redaction.origin == Point(x=10, y=40)
        assert (redaction.width, redaction.height) == (80, 20)
        assert redaction.reason == RedactReason.PHONE
        assert redaction.thickness == 0

    def test_region_order_not_selection_order(self) -> None:
        redactions = synthesize_redactions(_regions(), [2, 0], RedactStyle.BLUR)
        assert [r.reason for r in redactions] == [RedactReason.EMAIL, RedactReason.CREDIT_CARD]

    def test_out_of_range_selection_ignored(self) -> None:
        assert synthesize_redactions(_regions(), [7, -1], RedactStyle.BLUR) == []

    def test_ids_and_timestamps_injected(self) -> None:
        redactions = synthesize_redactions(
            _regions(), default_selection(_regions()), RedactStyle.BLUR,
            id_factory=_ids(), clock=lambda: 123,
        )
        assert [r.id for r in redactions] == ["r1", "r2", "r3"]
        assert {r.created_at for r in redactions} == {123}

    def test_nothing_selected(self) -> None:
        assert synthesize_redactions(_regions(), set(), RedactStyle.BLUR) == []


class TestManualRedaction:
    def test_negative_drag_normalized(self) -> None:
        redaction = manual_redaction(Point(x=100, y=100), -40, -20, RedactStyle.BLUR)
        assert redaction.origin == Point(x=60, y=80)
        assert (redaction.width, redaction.height) == (40, 20)
        assert redaction.reason == RedactReason.MANUAL


class TestApplyRedactions:
    def test_one_step_per_redaction(self) -> None:
        store = AnnotationStore()
        redactions = synthesize_redactions(_regions(), {0, 1}, RedactStyle.BLUR)
        assert apply_redactions(store, redactions) == 2
        assert [a.id for a in store.annotations] == [r.id for r in redactions]
        assert store.undo_depth == 2

        store.undo()
        assert len(store) == 1


class TestDisplayTables:
    def test_every_type_has_label_and_color(self) -> None:
        assert set(PII_TYPE_LABELS) == set(PiiType)
        assert set(PII_TYPE_COLORS) == set(PiiType)
        assert PII_TYPE_LABELS[PiiType.IP] == "IP Address"

    def test_default_selection(self) -> None:
        assert default_selection(_regions()) == {0, 1, 2}
        assert default_selection([]) == set()
