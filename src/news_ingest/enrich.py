from __future__ import annotations

import logging
from typing import Any

from .cache import CacheLayer
from .config import Settings
from .errors import FetchCancelled
from .extract.body import build_preview, extract_body
from .extract.images import select_best_image
from .extract.meta import extract_meta, parse_html
from .http import CancelToken, Fetcher
from .models import ArticleCandidate, Source
from .stock_images import FallbackImages

logger = logging.getLogger(__name__)


class Enricher:
    def __init__(
        self,
        fetcher: Fetcher,
        caches: CacheLayer,
        fallback_images: FallbackImages,
        settings: Settings | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.caches = caches
        self.fallback_images = fallback_images
        self.settings = settings or fetcher.settings

    def enrich(
        self,
        candidate: ArticleCandidate,
        source: Source,
        token: CancelToken | None = None,
    ) -> ArticleCandidate:
        try:
            return self._enrich(candidate, source, token)
        except FetchCancelled:
            raise
        except Exception as exc:
            logger.debug("Enrichment failed for %s: %s", candidate.url, exc)
            return self._degrade(candidate, source)

    def _page_fields(
        self,
        candidate: ArticleCandidate,
        source: Source,
        token: CancelToken | None,
    ) -> dict[str, Any]:
        cached = self.caches.articles.get(candidate.url)
        if cached:
            return cached
        soup = parse_html(self.fetcher.fetch_text(candidate.url, token=token))
        meta = extract_meta(soup, source.base_url, source.id)
        body = extract_body(soup, source.base_url, self.settings.max_paragraphs)
        page: dict[str, Any] = {
            "title": meta.title,
            "author": meta.author,
            "excerpt": meta.excerpt or body.first_paragraph,
            "preview": build_preview(body.paragraphs),
            "meta_image_url": meta.image_url,
            "body_image_url": body.image_url,
            "published_at": meta.published_at,
        }
        if token is None or not token.cancelled:
            self.caches.articles.set(candidate.url, page)
        return page

    def _enrich(
        self,
        candidate: ArticleCandidate,
        source: Source,
        token: CancelToken | None,
    ) -> ArticleCandidate:
        # page values are cached per url; the candidate's own values are merged on every call
        page = self._page_fields(candidate, source, token)

        title = candidate.title
        if page["title"] and len(page["title"]) > len(title):
            title = page["title"]
        image_url = select_best_image(
            page["meta_image_url"], candidate.image_url, page["body_image_url"]
        )
        if image_url is None:
            image_url = self.fallback_images.resolve(title, source.name)

        return candidate.merged(
            title=title,
            author=candidate.author or page["author"],
            excerpt=candidate.excerpt or page["excerpt"],
            preview=candidate.preview or page["preview"],
            image_url=image_url,
            published_at=candidate.published_at or page["published_at"],
        )

    def _degrade(self, candidate: ArticleCandidate, source: Source) -> ArticleCandidate:
        if select_best_image(candidate.image_url):
            return candidate
        fallback = self.fallback_images.resolve(candidate.title, source.name)
        if not fallback:
            return candidate
        return candidate.merged(image_url=fallback)
