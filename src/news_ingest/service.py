from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Iterable

import requests

from .cache import CacheLayer
from .config import DEFAULT_SOURCES, SOURCE_REFRESH_DEFAULTS, Settings
from .detail import DetailFetcher
from .discovery import DiscoveryChain
from .enrich import Enricher
from .http import Fetcher, create_session
from .models import Article, ArticleDetail, Source, SourceConfig
from .scheduler import PassReport, Scheduler, SourceScraper
from .stock_images import FallbackImages, stock_lookup_for_key
from .store import Store
from .urls import bare_host

logger = logging.getLogger(__name__)


class IngestService:
    """Facade an HTTP layer or the CLI talks to."""

    def __init__(
        self,
        store: Store,
        fetcher: Fetcher,
        caches: CacheLayer,
        fallback_images: FallbackImages,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.caches = caches
        self.fallback_images = fallback_images
        self.settings = settings or fetcher.settings
        enricher = Enricher(fetcher, caches, fallback_images, self.settings)
        discovery = DiscoveryChain(fetcher, self.settings)
        self.scraper = SourceScraper(fetcher, caches, discovery, enricher, self.settings)
        self.scheduler = Scheduler(store, self.scraper, self.settings)
        self.details = DetailFetcher(
            fetcher, caches, fallback_images, self.source_for_url, self.settings
        )

    @classmethod
    def build(
        cls,
        settings: Settings | None = None,
        session: requests.Session | Any | None = None,
        store: Store | None = None,
    ) -> "IngestService":
        settings = settings or Settings.from_env()
        session = session or create_session(settings.user_agent)
        store = store or Store(root=settings.data_root)
        caches = CacheLayer(settings)
        fallback_images = FallbackImages(
            stock_lookup_for_key(settings.pexels_api_key, session), caches.fallback_images
        )
        return cls(store, Fetcher(session, settings), caches, fallback_images, settings)

    def close(self) -> None:
        self.store.close()

    def sources(self) -> list[Source]:
        return self.store.list_sources()

    def register_sources(
        self, configs: Iterable[dict[str, Any] | SourceConfig] | None = None
    ) -> list[Source]:
        """Validate every config first, then upsert; empty input registers the defaults."""
        raw = list(configs or [])
        if not raw:
            raw = list(DEFAULT_SOURCES)
        parsed = [
            item if isinstance(item, SourceConfig) else SourceConfig.from_dict(item, index)
            for index, item in enumerate(raw)
        ]
        registered: list[Source] = []
        for config in parsed:
            existing = self.store.get_source(config.id)
            interval = config.refresh_interval_minutes
            if interval is None and existing is not None:
                interval = existing.refresh_interval_minutes
            if interval is None:
                interval = SOURCE_REFRESH_DEFAULTS.get(config.id, self.settings.default_refresh_minutes)
            source = Source(
                id=config.id,
                name=config.name,
                list_url=config.list_url,
                base_url=config.base_url,
                article_url_patterns=config.article_url_patterns,
                refresh_interval_minutes=interval,
                last_fetched_at=existing.last_fetched_at if existing else None,
            )
            self.store.upsert_source(source)
            logger.info("registered source %s every %s min", source.id, source.refresh_interval_minutes)
            registered.append(source)
        return registered

    def source_for_url(self, url: str) -> Source | None:
        host = bare_host(url)
        if not host:
            return None
        for source in self.store.list_sources():
            if host in (bare_host(source.base_url), bare_host(source.list_url)):
                return source
        return None

    def list_articles(
        self,
        source_ids: Iterable[str] | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        ids = list(source_ids) if source_ids is not None else None
        items: list[Article] = self.store.list_articles(limit or self.settings.list_limit, ids)
        return {"items": items, "latest_timestamp": self.store.latest_timestamp(ids)}

    def fetch_article_detail(self, url: str) -> ArticleDetail:
        return self.details.fetch(url)

    def refresh_now(self, source_ids: Iterable[str] | None = None) -> PassReport:
        return self.scheduler.run_pass(source_ids=source_ids, force=True)

    def run_due(self) -> PassReport:
        return self.scheduler.run_pass()

    def prune(self, now: datetime | None = None) -> int:
        return self.store.prune(self.settings.retention_days, now)

    def run_forever(self, stop_event: threading.Event) -> None:
        self.scheduler.run_forever(stop_event)
