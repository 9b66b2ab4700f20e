from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode, urljoin

from ..config import NON_WORDPRESS_HOSTS
from ..errors import FetchCancelled, FetchError, ParseError
from ..http import CancelToken, Fetcher
from ..models import ArticleCandidate, Source
from ..text_processing import strip_html
from ..timestamps import parse_date, published_at_from_url
from ..urls import bare_host, canonicalize_article_url
from .base import DiscoveryContext

logger = logging.getLogger(__name__)


def should_try_wordpress(source: Source) -> bool:
    host = bare_host(source.base_url or source.list_url)
    return host not in NON_WORDPRESS_HOSTS


def wordpress_endpoints(base_url: str, per_page: int) -> list[str]:
    query = {"per_page": str(per_page), "_embed": "1"}
    return [
        f"{urljoin(base_url, '/wp-json/wp/v2/posts')}?{urlencode(query)}",
        f"{urljoin(base_url, '/')}?{urlencode({'rest_route': '/wp/v2/posts', **query})}",
    ]


def _featured_image(post: dict[str, Any]) -> str | None:
    embedded = post.get("_embedded")
    if not isinstance(embedded, dict):
        return None
    media = embedded.get("wp:featuredmedia")
    if not isinstance(media, list) or not media or not isinstance(media[0], dict):
        return None
    url = media[0].get("source_url")
    return url if isinstance(url, str) and url else None


def _rendered(post: dict[str, Any], key: str) -> str:
    value = post.get(key)
    if isinstance(value, dict):
        value = value.get("rendered")
    return strip_html(value if isinstance(value, str) else None)


def map_posts(data: Any, source: Source, limit: int = 25) -> list[ArticleCandidate]:
    if not isinstance(data, list):
        return []
    candidates: list[ArticleCandidate] = []
    for post in data:
        if not isinstance(post, dict):
            continue
        link = post.get("link")
        title = _rendered(post, "title")
        url = canonicalize_article_url(link if isinstance(link, str) else None, source.base_url)
        if not url or not title:
            continue
        candidates.append(
            ArticleCandidate(
                url=url,
                source_id=source.id,
                source_name=source.name,
                title=title,
                published_at=parse_date(post.get("date")) or published_at_from_url(url),
                image_url=_featured_image(post),
                excerpt=_rendered(post, "excerpt") or None,
                discovered_via="rest",
            )
        )
        if len(candidates) >= limit:
            break
    return candidates


class WordPressAdapter:
    name = "rest"

    def discover(
        self,
        source: Source,
        fetcher: Fetcher,
        context: DiscoveryContext,
        token: CancelToken | None = None,
    ) -> list[ArticleCandidate]:
        if not should_try_wordpress(source):
            return []
        limit = context.settings.max_articles_per_source
        for endpoint in wordpress_endpoints(source.base_url, limit):
            try:
                data = fetcher.fetch_json(endpoint, token=token)
            except FetchCancelled:
                raise
            except (FetchError, ParseError) as exc:
                logger.warning("WordPress fallback failed for %s: %s", source.name, exc)
                continue
            return map_posts(data, source, limit)
        return []
