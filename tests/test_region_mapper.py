"""Unit tests for mapping PII matches onto OCR word boxes."""

import pytest

from snapredact.services.ocr_service import BoundingBox, OcrWord
from snapredact.services.pii_patterns import PiiMatch, PiiType, find_all_pii
from snapredact.services.region_mapper import (
    PiiRegion,
    find_words_for_text_range,
    join_words,
    map_pii_to_regions,
)


def _word(text: str, x0: float, y0: float, x1: float, y1: float, confidence: float = 90) -> OcrWord:
    return OcrWord(text=text, bbox=BoundingBox(x0, y0, x1, y1), confidence=confidence)


class TestFindWordsForTextRange:
    def test_single_word(self) -> None:
        words = [_word("hello", 0, 0, 10, 10), _word("a@b.com", 20, 0, 40, 10)]
        # "hello a@b.com" -> email at [6, 13)
        assert find_words_for_text_range(6, 13, words) == [words[1]]

    def test_spanning_words(self) -> None:
        words = [
            _word("call", 0, 0, 30, 10),
            _word("555", 40, 0, 60, 10),
            _word("123", 70, 0, 90, 10),
            _word("4567", 100, 0, 130, 10),
            _word("now", 140, 0, 160, 10),
        ]
        # "call 555 123 4567 now" -> "555 123 4567" at [5, 17)
        assert find_words_for_text_range(5, 17, words) == words[1:4]

    def test_range_on_space_matches_nothing(self) -> None:
        words = [_word("ab", 0, 0, 10, 10), _word("cd", 20, 0, 30, 10)]
        # index 2 is the joining space
        assert find_words_for_text_range(2, 3, words) == []

    def test_partial_overlap_counts(self) -> None:
        words = [_word("mail:a@b.com", 0, 0, 100, 10)]
        assert find_words_for_text_range(5, 12, words) == words

    def test_range_beyond_text(self) -> None:
        words = [_word("ab", 0, 0, 10, 10)]
        assert find_words_for_text_range(50, 60, words) == []


class TestMapPiiToRegions:
    def test_exact_word(self) -> None:
        words = [_word("a@b.com", 0, 0, 10, 10, confidence=90)]
        match = PiiMatch(PiiType.EMAIL, "a@b.com", 0, 7)
        regions = map_pii_to_regions([match], words)
        assert regions == [PiiRegion(
            x=0, y=0, width=10, height=10,
            type=PiiType.EMAIL, matched_text="a@b.com", confidence=pytest.approx(0.9),
        )]

    def test_union_box_and_mean_confidence(self) -> None:
        words = [
            _word("555", 40, 12, 60, 30, confidence=80),
            _word("123-4567", 65, 10, 120, 28, confidence=100),
        ]
        match = PiiMatch(PiiType.PHONE, "555 123-4567", 0, 12)
        (region,) = map_pii_to_regions([match], words)
        assert (region.x, region.y) == (40, 10)
        assert (region.width, region.height) == (80, 20)
        assert region.confidence == pytest.approx(0.9)

    def test_unmapped_match_dropped(self) -> None:
        words = [_word("short", 0, 0, 10, 10)]
        match = PiiMatch(PiiType.IP, "10.0.0.1", 100, 108)
        assert map_pii_to_regions([match], words) == []

    def test_order_preserved(self) -> None:
        words = [
            _word("x@y.org", 0, 0, 50, 10),
            _word("and", 60, 0, 80, 10),
            _word("10.1.1.1", 90, 0, 150, 10),
        ]
        text = join_words(words)
        regions = map_pii_to_regions(find_all_pii(text), words)
        assert [r.type for r in regions] == [PiiType.EMAIL, PiiType.IP]
        assert [r.matched_text for r in regions] == ["x@y.org", "10.1.1.1"]

    def test_empty_inputs(self) -> None:
        assert map_pii_to_regions([], []) == []
        assert map_pii_to_regions([PiiMatch(PiiType.EMAIL, "a@b.co", 0, 6)], []) == []


class TestJoinWords:
    def test_single_spaces(self) -> None:
        words = [_word("a", 0, 0, 1, 1), _word("b", 0, 0, 1, 1)]
        assert join_words(words) == "a b"
