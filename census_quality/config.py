"""Runtime settings and logging setup.

Settings come from environment variables only; nothing is persisted.

Key types:
- `Settings`: resolved assistant credentials, model and service options.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional

_DEFAULT_MODEL = "gemini-3-flash-preview"
_DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
_DEFAULT_TIMEOUT_SECONDS = 60.0
_DEFAULT_LOG_LEVEL = "INFO"

_API_KEY_VARS = ("CENSUS_GEMINI_API_KEY", "GEMINI_API_KEY", "API_KEY")


def _first_non_empty(env: Mapping[str, str], names: tuple[str, ...]) -> Optional[str]:
    for name in names:
        value = env.get(name, "").strip()
        if value:
            return value
    return None


def _parse_timeout(raw: Optional[str]) -> float:
    if raw is None or not raw.strip():
        return _DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError:
        return _DEFAULT_TIMEOUT_SECONDS
    return value if value > 0 else _DEFAULT_TIMEOUT_SECONDS


@dataclass(frozen=True, slots=True)
class Settings:
    """Service settings.

    Attributes:
        gemini_api_key: API key for the text-generation service; `None` when unconfigured.
        gemini_model: Model identifier used for chat replies.
        gemini_base_url: REST base URL of the text-generation service.
        request_timeout_seconds: Per-request timeout for assistant calls.
        log_level: Root logging level name.
    """

    gemini_api_key: Optional[str] = None
    gemini_model: str = _DEFAULT_MODEL
    gemini_base_url: str = _DEFAULT_BASE_URL
    request_timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS
    log_level: str = _DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from an environment mapping (defaults to `os.environ`)."""

        source = os.environ if env is None else env
        return cls(
            gemini_api_key=_first_non_empty(source, _API_KEY_VARS),
            gemini_model=source.get("CENSUS_GEMINI_MODEL", "").strip() or _DEFAULT_MODEL,
            gemini_base_url=(source.get("CENSUS_GEMINI_BASE_URL", "").strip() or _DEFAULT_BASE_URL).rstrip("/"),
            request_timeout_seconds=_parse_timeout(source.get("CENSUS_REQUEST_TIMEOUT")),
            log_level=source.get("CENSUS_LOG_LEVEL", "").strip().upper() or _DEFAULT_LOG_LEVEL,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def configure_logging(level: str) -> None:
    numeric_level = getattr(logging, level, None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
