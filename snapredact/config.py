"""Engine settings from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings

from snapredact.schemas.annotation import RedactStyle


class Settings(BaseSettings):
    """Engine configuration."""

    # Detection
    ocr_timeout_seconds: float = 8.0  # OCR is abandoned after this, detection reports timed_out

    # Annotation history
    max_undo_depth: int = 50

    # Annotation defaults
    default_redaction_style: RedactStyle = RedactStyle.BLUR
    default_annotation_color: str = "#FF0000"
    default_thickness: int = 3
    default_text_font_size: float = 24.0
    freehand_min_distance: float = 2.0  # px between captured freehand points

    # Gemini OCR settings (via OpenAI-compatible API)
    gemini_api_key: str = ""
    gemini_base_url: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_max_retries: int = 3
    gemini_retry_delay: float = 1.0  # Exponential backoff initial delay (seconds)
    gemini_temperature: float = 0.0
    gemini_timeout: float = 30.0  # API request timeout (seconds)

    model_config = {
        "env_prefix": "SNAPREDACT_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    return Settings()
