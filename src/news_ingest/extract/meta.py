from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from bs4 import BeautifulSoup

from ..text_processing import clean_text
from ..timestamps import parse_date
from .authors import extract_author
from .images import image_from_meta, json_ld_blocks

TITLE_SELECTORS = ('meta[property="og:title"]', 'meta[name="twitter:title"]')
EXCERPT_SELECTORS = (
    'meta[property="og:description"]',
    'meta[name="description"]',
    'meta[name="twitter:description"]',
)
PUBLISHED_SELECTORS = (
    'meta[property="article:published_time"]',
    'meta[property="article:modified_time"]',
    'meta[name="pubdate"]',
    'meta[name="publish-date"]',
)


@dataclass(frozen=True)
class PageMeta:
    title: str | None = None
    excerpt: str | None = None
    image_url: str | None = None
    author: str | None = None
    published_at: str | None = None


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def meta_content(soup: BeautifulSoup, *selectors: str) -> str | None:
    for selector in selectors:
        tag = soup.select_one(selector)
        if tag is None:
            continue
        value = clean_text(tag.get("content"))
        if value:
            return value
    return None


def _json_ld_published(node: Any) -> str | None:
    if isinstance(node, list):
        for item in node:
            found = _json_ld_published(item)
            if found:
                return found
        return None
    if not isinstance(node, dict):
        return None
    if node.get("@graph"):
        return _json_ld_published(node["@graph"])
    value = node.get("datePublished") or node.get("dateCreated")
    return str(value) if value else None


def extract_published_at(soup: BeautifulSoup) -> str | None:
    raw = meta_content(soup, *PUBLISHED_SELECTORS)
    if not raw:
        time_tag = soup.select_one("time[datetime]")
        raw = clean_text(time_tag.get("datetime")) if time_tag is not None else None
    if not raw:
        for block in json_ld_blocks(soup):
            raw = _json_ld_published(block)
            if raw:
                break
    return parse_date(raw)


def extract_meta(soup: BeautifulSoup, base_url: str | None, source_id: str | None = None) -> PageMeta:
    title = meta_content(soup, *TITLE_SELECTORS)
    if not title and soup.title is not None:
        title = clean_text(soup.title.get_text()) or None
    return PageMeta(
        title=title,
        excerpt=meta_content(soup, *EXCERPT_SELECTORS),
        image_url=image_from_meta(soup, base_url),
        author=extract_author(soup, source_id),
        published_at=extract_published_at(soup),
    )
