"""Tests for environment-driven settings."""

from collections.abc import Iterator

import pytest
from pydantic import ValidationError

from snapredact.config import Settings, get_settings
from snapredact.schemas.annotation import RedactStyle
from snapredact.services.annotation_store import AnnotationStore


@pytest.fixture
def fresh_settings() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)
        assert settings.ocr_timeout_seconds == 8.0
        assert settings.max_undo_depth == 50
        assert settings.default_redaction_style is RedactStyle.BLUR

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SNAPREDACT_OCR_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("SNAPREDACT_GEMINI_MODEL", "gemini-test")
        settings = Settings(_env_file=None)
        assert settings.ocr_timeout_seconds == 2.5
        assert settings.gemini_model == "gemini-test"

    def test_store_reads_undo_depth(
        self, monkeypatch: pytest.MonkeyPatch, fresh_settings: None,
    ) -> None:
        monkeypatch.setenv("SNAPREDACT_MAX_UNDO_DEPTH", "7")
        assert AnnotationStore().max_undo_depth == 7

    def test_invalid_redaction_style_rejected_on_load(
        self, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("SNAPREDACT_DEFAULT_REDACTION_STYLE", "smudge")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_redaction_style_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SNAPREDACT_DEFAULT_REDACTION_STYLE", "pixelate")
        assert Settings(_env_file=None).default_redaction_style is RedactStyle.PIXELATE
