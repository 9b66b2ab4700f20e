from __future__ import annotations

from typing import Callable
from urllib.parse import urlsplit

from .cache import CacheLayer
from .config import Settings
from .errors import ValidationError
from .extract.body import extract_body
from .extract.images import select_best_image
from .extract.meta import extract_meta, parse_html
from .http import Fetcher
from .models import ArticleDetail, Source
from .stock_images import FallbackImages
from .urls import bare_host

SourceLookup = Callable[[str], "Source | None"]


class DetailFetcher:
    def __init__(
        self,
        fetcher: Fetcher,
        caches: CacheLayer,
        fallback_images: FallbackImages,
        source_for_url: SourceLookup,
        settings: Settings | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.caches = caches
        self.fallback_images = fallback_images
        self.source_for_url = source_for_url
        self.settings = settings or fetcher.settings

    def fetch(self, url: str) -> ArticleDetail:
        parts = urlsplit(str(url or "").strip())
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValidationError(f"Invalid article url: {url!r}")
        url = parts.geturl()
        cached = self.caches.details.get(url)
        if cached is not None:
            return cached

        base_url = f"{parts.scheme}://{parts.netloc}"
        source = self.source_for_url(url)
        source_id = source.id if source else None
        source_name = source.name if source else bare_host(url)

        soup = parse_html(self.fetcher.fetch_text(url))
        meta = extract_meta(soup, base_url, source_id)
        body = extract_body(soup, base_url, self.settings.max_paragraphs)
        image_url = select_best_image(meta.image_url, body.image_url)
        if image_url is None:
            image_url = self.fallback_images.resolve(meta.title or "news", source_name)

        detail = ArticleDetail(
            url=url,
            title=meta.title,
            author=meta.author,
            excerpt=meta.excerpt or body.first_paragraph,
            image_url=image_url,
            published_at=meta.published_at,
            content=body.paragraphs,
        )
        self.caches.details.set(url, detail)
        return detail
