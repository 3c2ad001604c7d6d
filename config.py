"""
Runtime configuration, read from the environment.

The only switch that changes behaviour is the presence of an API key:
with one every stage talks to Gemini, without one every stage answers
with its deterministic fallback.
"""
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

MB = 1024 * 1024

# Checked in order, first non-empty wins.
API_KEY_VARS = ("GEMINI_API_KEY", "LLM_API_KEY", "NANO_BANANA_API_KEY")


def _env_bool(name: str, default: bool = False) -> bool:
    v = str(os.getenv(name, str(default))).strip().lower()
    return v in ("1", "true", "t", "yes", "y", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _api_key_from_env() -> Optional[str]:
    for name in API_KEY_VARS:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str] = None

    text_model: str = "gemini-2.5-flash"
    image_model: str = "gemini-3-pro-image-preview"
    image_aspect_ratio: str = "16:9"
    image_size: str = "2K"
    image_search_grounding: bool = True

    max_upload_bytes: int = 50 * MB
    warn_upload_bytes: int = 25 * MB
    min_text_chars: int = 100
    max_prompt_source_chars: int = 10000

    fallback_prompt_delay: float = 1.5
    fallback_image_delay: float = 3.0

    log_level: str = "INFO"
    cors_origins: Tuple[str, ...] = ("*",)
    port: int = 3000

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            api_key=_api_key_from_env(),
            text_model=os.getenv("TEXT_MODEL", cls.text_model),
            image_model=os.getenv("IMAGE_MODEL", cls.image_model),
            image_aspect_ratio=os.getenv("IMAGE_ASPECT_RATIO", cls.image_aspect_ratio),
            image_size=os.getenv("IMAGE_SIZE", cls.image_size),
            image_search_grounding=_env_bool("IMAGE_SEARCH_GROUNDING", True),
            max_upload_bytes=_env_int("MAX_UPLOAD_MB", 50) * MB,
            warn_upload_bytes=_env_int("WARN_UPLOAD_MB", 25) * MB,
            min_text_chars=_env_int("MIN_TEXT_CHARS", cls.min_text_chars),
            max_prompt_source_chars=_env_int("MAX_PROMPT_SOURCE_CHARS", cls.max_prompt_source_chars),
            fallback_prompt_delay=_env_float("FALLBACK_PROMPT_DELAY", cls.fallback_prompt_delay),
            fallback_image_delay=_env_float("FALLBACK_IMAGE_DELAY", cls.fallback_image_delay),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()) or ("*",),
            port=_env_int("PORT", cls.port),
        )


@lru_cache()
def get_settings() -> Settings:
    """Settings for this process, read once."""
    return Settings.from_env()
