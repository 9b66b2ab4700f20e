from __future__ import annotations

import logging

from ..errors import FetchCancelled, FetchError
from ..extract.images import image_for_link
from ..extract.links import anchor_title, collect_candidate_links
from ..extract.meta import parse_html
from ..http import CancelToken, Fetcher
from ..models import ArticleCandidate, Source
from ..timestamps import published_at_from_url
from ..urls import canonicalize_article_url, is_comment_anchor, is_likely_article_url
from .base import DiscoveryContext

logger = logging.getLogger(__name__)

MIN_TITLE_CHARS = 12


def extract_articles(html: str, source: Source, limit: int = 25) -> list[ArticleCandidate]:
    soup = parse_html(html)
    candidates: list[ArticleCandidate] = []
    seen: set[str] = set()
    for element in collect_candidate_links(soup):
        href = element.get("href")
        if not isinstance(href, str):
            continue
        url = canonicalize_article_url(href, source.base_url)
        if not url or not is_likely_article_url(url, source):
            continue
        title = anchor_title(element)
        if len(title) < MIN_TITLE_CHARS or is_comment_anchor(title, href):
            continue
        if url in seen:
            continue
        seen.add(url)
        candidates.append(
            ArticleCandidate(
                url=url,
                source_id=source.id,
                source_name=source.name,
                title=title,
                published_at=published_at_from_url(url),
                image_url=image_for_link(element, source.base_url),
                discovered_via="html",
            )
        )
        if len(candidates) >= limit:
            break
    return candidates


class HtmlListAdapter:
    name = "html"

    def discover(
        self,
        source: Source,
        fetcher: Fetcher,
        context: DiscoveryContext,
        token: CancelToken | None = None,
    ) -> list[ArticleCandidate]:
        try:
            html = fetcher.fetch_with_host_swap(source.list_url, token=token)
        except FetchCancelled:
            raise
        except FetchError as exc:
            logger.warning("List fetch failed for %s: %s", source.name, exc)
            context.warning = f"list fetch failed: {exc}"
            return []
        context.list_html = html
        return extract_articles(html, source, context.settings.max_articles_per_source)
