from __future__ import annotations

import re
from typing import Iterable

from bs4 import BeautifulSoup

from ..config import AUTHOR_IGNORE_BY_SOURCE
from ..text_processing import clean_text

_BYLINE_RE = re.compile(r"\bby\s+(.+?)(?:\s+\b(?:updated|posted)\b|$)", re.IGNORECASE)
_SPLIT_RE = re.compile(r"\blast updated\b|\bupdated\b|\bposted\b", re.IGNORECASE)
_PREFIX_RES = (
    re.compile(r"^by\s+by\s+", re.IGNORECASE),
    re.compile(r"^by\b\s*:?\s*", re.IGNORECASE),
    re.compile(r"^posted by\s*", re.IGNORECASE),
    re.compile(r"^written by\s*", re.IGNORECASE),
)
_SUFFIX_RES = (
    re.compile(r"\s*(,|\||-|—)\s*updated.*$", re.IGNORECASE),
    re.compile(r"\s*(,|\||-|—)\s*posted.*$", re.IGNORECASE),
    re.compile(r"\s*[|•]\s*.*$"),
    re.compile(r"\.$"),
)

AUTHOR_META_SELECTORS = ('meta[name="author"]', 'meta[property="article:author"]')
AUTHOR_TEXT_SELECTORS = (
    'a[rel="author"]',
    ".author a",
    ".author",
    ".byline",
    ".td-post-author-name",
)
BYLINE_TEXT_SELECTORS = (".posted-on", ".entry-meta")
GENERIC_AUTHORS = frozenset({"admin", "administrator"})


def parse_byline(value: str | None) -> str | None:
    if not value:
        return None
    match = _BYLINE_RE.search(clean_text(value))
    return match.group(1).strip() if match else None


def normalize_author(value: str | None) -> str | None:
    text = clean_text(value)
    for pattern in _PREFIX_RES:
        text = pattern.sub("", text)
    for pattern in _SUFFIX_RES:
        text = pattern.sub("", text)
    text = text.strip()
    return text or None


def should_ignore_author(value: str | None, source_id: str | None = None) -> bool:
    if not value:
        return True
    lower = value.lower()
    if "http://" in lower or "https://" in lower or lower.startswith("www."):
        return True
    if "facebook.com" in lower or "twitter.com" in lower or lower.startswith("@"):
        return True
    ignore = AUTHOR_IGNORE_BY_SOURCE.get(source_id or "", ())
    if any(lower == token or token in lower for token in ignore):
        return True
    if lower in GENERIC_AUTHORS:
        return True
    return len(lower) < 2


def select_author(candidates: Iterable[str | None], source_id: str | None = None) -> str | None:
    seen: set[str] = set()
    for candidate in candidates:
        if not candidate:
            continue
        for part in _SPLIT_RE.split(str(candidate)):
            normalized = normalize_author(part)
            if not normalized or should_ignore_author(normalized, source_id):
                continue
            key = normalized.lower()
            if key in seen:
                continue
            seen.add(key)
            return normalized
    return None


def author_candidates(soup: BeautifulSoup) -> list[str | None]:
    candidates: list[str | None] = []
    for selector in AUTHOR_META_SELECTORS:
        tag = soup.select_one(selector)
        candidates.append(tag.get("content") if tag is not None else None)
    for selector in AUTHOR_TEXT_SELECTORS:
        tag = soup.select_one(selector)
        candidates.append(tag.get_text(" ", strip=True) if tag is not None else None)
    for selector in BYLINE_TEXT_SELECTORS:
        tag = soup.select_one(selector)
        candidates.append(parse_byline(tag.get_text(" ", strip=True)) if tag is not None else None)
    return candidates


def extract_author(soup: BeautifulSoup, source_id: str | None = None) -> str | None:
    return select_author(author_candidates(soup), source_id)
