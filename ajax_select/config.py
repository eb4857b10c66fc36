"""Field defaults and constants."""
from __future__ import annotations

import os
from dataclasses import dataclass


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


@dataclass(frozen=True)
class Settings:
    """Simple settings container with environment variable overrides."""

    min_search_chars: int = int(_get_env("AJAX_SELECT_MIN_SEARCH_CHARS", "3"))
    debounce_ms: int = int(_get_env("AJAX_SELECT_DEBOUNCE_MS", "300"))
    request_timeout_seconds: float = float(_get_env("AJAX_SELECT_REQUEST_TIMEOUT", "10"))
    default_locale: str = _get_env("AJAX_SELECT_DEFAULT_LOCALE", "en")
    route_prefix: str = _get_env("AJAX_SELECT_ROUTE_PREFIX", "/field")
    search_backend: str = _get_env("SEARCH_BACKEND", "memory")
    es_host: str = _get_env("ES_HOST", "http://localhost:9200")
    es_index: str = _get_env("ES_INDEX", "companies")
    search_result_size: int = int(_get_env("SEARCH_RESULT_SIZE", "20"))
    log_level: str = _get_env("LOG_LEVEL", "INFO")


settings = Settings()
