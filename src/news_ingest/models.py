from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Literal
from urllib.parse import urlsplit

from .config import clamp_refresh_minutes
from .errors import ValidationError
from .text_processing import clean_text, hash_url

DiscoveryPath = Literal["html", "feed", "rest"]


def _require_http_url(value: Any, field_name: str) -> str:
    url = str(value or "").strip()
    if not url:
        raise ValidationError(f"Missing {field_name}")
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValidationError(f"Invalid {field_name}: {url}")
    return url


def _compile_patterns(patterns: Any) -> tuple[str, ...]:
    if patterns is None:
        return ()
    if isinstance(patterns, str):
        patterns = [patterns]
    compiled: list[str] = []
    for pattern in patterns:
        text = str(pattern)
        try:
            re.compile(text)
        except re.error as exc:
            raise ValidationError(f"Invalid article url pattern {text!r}: {exc}") from exc
        if text not in compiled:
            compiled.append(text)
    return tuple(compiled)


@dataclass(frozen=True)
class SourceConfig:
    """Registration input after validation; optional fields stay None when unspecified."""

    id: str
    name: str
    list_url: str
    base_url: str
    article_url_patterns: tuple[str, ...] = ()
    refresh_interval_minutes: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], index: int = 0) -> "SourceConfig":
        if not isinstance(data, dict):
            raise ValidationError("Source config must be an object")
        list_url = _require_http_url(data.get("list_url") or data.get("url"), "list_url")
        base_url = _require_http_url(data.get("base_url") or list_url, "base_url")
        source_id = clean_text(data.get("id")) or f"custom-{index + 1}"
        name = clean_text(data.get("name")) or list_url
        interval = data.get("refresh_interval_minutes")
        if interval is not None:
            try:
                interval = clamp_refresh_minutes(int(interval))
            except (TypeError, ValueError) as exc:
                raise ValidationError(f"Invalid refresh_interval_minutes: {interval!r}") from exc
        return cls(
            id=source_id,
            name=name,
            list_url=list_url,
            base_url=base_url,
            article_url_patterns=_compile_patterns(data.get("article_url_patterns")),
            refresh_interval_minutes=interval,
        )


@dataclass(frozen=True)
class Source:
    id: str
    name: str
    list_url: str
    base_url: str
    article_url_patterns: tuple[str, ...] = ()
    refresh_interval_minutes: int = 30
    last_fetched_at: datetime | None = None
    compiled_patterns: tuple[re.Pattern[str], ...] = field(
        default=(), init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "compiled_patterns",
            tuple(re.compile(pattern) for pattern in self.article_url_patterns),
        )
        object.__setattr__(
            self, "refresh_interval_minutes", clamp_refresh_minutes(self.refresh_interval_minutes)
        )

    def is_due(self, now: datetime) -> bool:
        if self.last_fetched_at is None:
            return True
        elapsed = (now - self.last_fetched_at).total_seconds()
        return elapsed >= self.refresh_interval_minutes * 60

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "list_url": self.list_url,
            "base_url": self.base_url,
            "article_url_patterns": list(self.article_url_patterns),
            "refresh_interval_minutes": self.refresh_interval_minutes,
            "last_fetched_at": self.last_fetched_at.isoformat() if self.last_fetched_at else None,
        }


def article_id(source_id: str, url: str) -> str:
    return f"{source_id}:{hash_url(url)}"


@dataclass(frozen=True)
class ArticleCandidate:
    url: str
    source_id: str
    source_name: str
    title: str
    published_at: str | None = None
    image_url: str | None = None
    excerpt: str | None = None
    preview: str | None = None
    author: str | None = None
    discovered_via: DiscoveryPath | None = None

    @property
    def id(self) -> str:
        return article_id(self.source_id, self.url)

    def merged(self, **fields: Any) -> "ArticleCandidate":
        return replace(self, **fields)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "source_id": self.source_id,
            "source_name": self.source_name,
            "title": self.title,
            "published_at": self.published_at,
            "image_url": self.image_url,
            "excerpt": self.excerpt,
            "preview": self.preview,
            "author": self.author,
        }


@dataclass(frozen=True)
class Article:
    id: str
    url: str
    source_id: str
    source_name: str
    title: str
    fetched_at: str
    updated_at: str
    published_at: str | None = None
    image_url: str | None = None
    excerpt: str | None = None
    preview: str | None = None
    author: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "source_id": self.source_id,
            "source_name": self.source_name,
            "title": self.title,
            "published_at": self.published_at,
            "image_url": self.image_url,
            "excerpt": self.excerpt,
            "preview": self.preview,
            "author": self.author,
            "fetched_at": self.fetched_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class ArticleDetail:
    url: str
    title: str | None
    author: str | None
    excerpt: str | None
    image_url: str | None
    published_at: str | None
    content: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "author": self.author,
            "excerpt": self.excerpt,
            "image_url": self.image_url,
            "published_at": self.published_at,
            "content": list(self.content),
        }


@dataclass
class DiscoveryResult:
    items: list[ArticleCandidate] = field(default_factory=list)
    via: DiscoveryPath | None = None
    warning: str | None = None


@dataclass
class SourceResult:
    source_id: str
    source_name: str
    items: list[ArticleCandidate] = field(default_factory=list)
    error: str | None = None
    warning: str | None = None
