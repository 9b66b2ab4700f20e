from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .paths import data_root

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/121.0.0.0 Safari/537.36"
)

MIN_REFRESH_MINUTES = 5
MAX_REFRESH_MINUTES = 120
DEFAULT_REFRESH_MINUTES = 30

DEFAULT_SOURCES: list[dict[str, Any]] = [
    {
        "id": "iwnsvg",
        "name": "iWitness News",
        "list_url": "https://www.iwnsvg.com/",
        "base_url": "https://www.iwnsvg.com",
        "article_url_patterns": [r"/\d{4}/\d{2}/\d{2}/"],
    },
    {
        "id": "onenews",
        "name": "One News SVG",
        "list_url": "https://onenewsstvincent.com/",
        "base_url": "https://onenewsstvincent.com",
        "article_url_patterns": [r"/\d{4}/\d{2}/\d{2}/"],
    },
]

# Refresh interval used when a known source is registered without one.
SOURCE_REFRESH_DEFAULTS: dict[str, int] = {
    "iwnsvg": 15,
    "onenews": 20,
}

AUTHOR_IGNORE_BY_SOURCE: dict[str, tuple[str, ...]] = {
    "onenews": ("admin", "one news svg"),
    "iwnsvg": ("kentonxchance",),
}

NON_WORDPRESS_HOSTS = frozenset({"bbc.com", "cnn.com", "edition.cnn.com", "guardian.co.tt"})


@dataclass(frozen=True)
class Settings:
    data_root: Path = field(default_factory=data_root)
    user_agent: str = DEFAULT_USER_AGENT
    fetch_timeout_sec: float = 18.0
    fetch_attempts: int = 3
    retry_backoff_sec: float = 0.25
    source_timeout_sec: float = 22.0
    source_concurrency: int = 3
    enrich_concurrency: int = 5
    max_articles_per_source: int = 25
    max_paragraphs: int = 36
    list_cache_ttl_sec: float = 60.0
    article_cache_ttl_sec: float = 5 * 60.0
    detail_cache_ttl_sec: float = 10 * 60.0
    fallback_image_cache_ttl_sec: float = 24 * 60 * 60.0
    tick_interval_sec: float = 12 * 60.0
    retention_days: int = 30
    default_refresh_minutes: int = DEFAULT_REFRESH_MINUTES
    list_limit: int = 200
    pexels_api_key: str | None = None

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, **overrides: Any) -> "Settings":
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        if env.get("NEWS_INGEST_DATA_ROOT"):
            values["data_root"] = Path(env["NEWS_INGEST_DATA_ROOT"])
        if env.get("NEWS_INGEST_REFRESH_MINUTES"):
            values["default_refresh_minutes"] = clamp_refresh_minutes(
                int(env["NEWS_INGEST_REFRESH_MINUTES"])
            )
        if env.get("NEWS_INGEST_RETENTION_DAYS"):
            values["retention_days"] = int(env["NEWS_INGEST_RETENTION_DAYS"])
        if env.get("PEXELS_API_KEY"):
            values["pexels_api_key"] = env["PEXELS_API_KEY"]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return replace(cls(), **values)


def clamp_refresh_minutes(value: int) -> int:
    return max(MIN_REFRESH_MINUTES, min(MAX_REFRESH_MINUTES, int(value)))
