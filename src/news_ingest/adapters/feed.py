from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urljoin

import feedparser

from ..errors import FetchCancelled, FetchError
from ..extract.images import is_placeholder_image
from ..extract.meta import parse_html
from ..http import FEED_ACCEPT, CancelToken, Fetcher
from ..models import ArticleCandidate, Source
from ..text_processing import strip_html
from ..timestamps import parse_date, published_at_from_url
from ..urls import canonicalize_article_url, is_likely_article_url, resolve_url
from .base import DiscoveryContext

logger = logging.getLogger(__name__)

FEED_LINK_TYPES = ("application/rss+xml", "application/atom+xml")
CONVENTIONAL_FEED_PATHS = ("/feed", "/rss", "/feed.xml", "/rss.xml", "/atom.xml", "/index.xml")


def discover_feed_urls(list_html: str | None, source: Source) -> list[str]:
    """Feed URLs advertised by the list page, then the conventional locations."""
    urls: list[str] = []
    if list_html:
        soup = parse_html(list_html)
        for link in soup.find_all("link", href=True):
            rel = " ".join(link.get("rel") or []).lower()
            link_type = str(link.get("type") or "").lower()
            if "alternate" not in rel or link_type not in FEED_LINK_TYPES:
                continue
            resolved = resolve_url(link["href"], source.list_url)
            if resolved and resolved not in urls:
                urls.append(resolved)
    for path in CONVENTIONAL_FEED_PATHS:
        candidate = urljoin(source.base_url, path)
        if candidate not in urls:
            urls.append(candidate)
    return urls


def _entry_image(entry: Any, base_url: str) -> str | None:
    media: list[Any] = []
    media.extend(entry.get("media_content") or [])
    media.extend(entry.get("media_thumbnail") or [])
    for enclosure in entry.get("enclosures") or []:
        if str(enclosure.get("type") or "").startswith("image/"):
            media.append({"url": enclosure.get("href") or enclosure.get("url")})
    for item in media:
        url = resolve_url(item.get("url"), base_url)
        if url and not is_placeholder_image(url):
            return url
    return None


def parse_feed_entries(payload: Any, source: Source, limit: int = 25) -> list[ArticleCandidate]:
    parsed = feedparser.parse(payload)
    candidates: list[ArticleCandidate] = []
    seen: set[str] = set()
    for entry in parsed.entries:
        title = strip_html(entry.get("title"))
        url = canonicalize_article_url(entry.get("link"), source.base_url)
        if not title or not url:
            continue
        if url in seen or not is_likely_article_url(url, source, strict=False):
            continue
        seen.add(url)
        published = parse_date(entry.get("published") or entry.get("updated"))
        candidates.append(
            ArticleCandidate(
                url=url,
                source_id=source.id,
                source_name=source.name,
                title=title,
                published_at=published or published_at_from_url(url),
                image_url=_entry_image(entry, source.base_url),
                excerpt=strip_html(entry.get("summary")) or None,
                author=strip_html(entry.get("author")) or None,
                discovered_via="feed",
            )
        )
        if len(candidates) >= limit:
            break
    return candidates


class FeedAdapter:
    name = "feed"

    def discover(
        self,
        source: Source,
        fetcher: Fetcher,
        context: DiscoveryContext,
        token: CancelToken | None = None,
    ) -> list[ArticleCandidate]:
        for feed_url in discover_feed_urls(context.list_html, source):
            try:
                _, body = fetcher.fetch_bytes(
                    feed_url, {"Accept": FEED_ACCEPT}, max_attempts=1, token=token
                )
            except FetchCancelled:
                raise
            except FetchError as exc:
                logger.debug("Feed candidate failed for %s: %s", source.name, exc)
                continue
            items = parse_feed_entries(body, source, context.settings.max_articles_per_source)
            if items:
                logger.info("Feed fallback for %s: %s items from %s", source.name, len(items), feed_url)
                return items
        return []
