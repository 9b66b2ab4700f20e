from __future__ import annotations

import json
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable

from .cache import CacheLayer
from .config import Settings
from .discovery import DiscoveryChain
from .enrich import Enricher
from .errors import FetchCancelled, PersistenceError
from .http import CancelToken, Fetcher
from .models import ArticleCandidate, Source, SourceResult
from .pool import run_bounded
from .run_logger import RunLogger
from .runtime import start_heartbeat, stop_heartbeat
from .store import Store
from .timestamps import to_iso, utcnow

logger = logging.getLogger(__name__)

HEARTBEAT_SECONDS = 60.0
TIMEOUT_ERROR = "timeout"


def list_cache_key(source: Source) -> str:
    patterns = json.dumps(list(source.article_url_patterns))
    return f"{source.id}|{source.base_url}|{source.list_url}|{patterns}"


class SourceScraper:
    def __init__(
        self,
        fetcher: Fetcher,
        caches: CacheLayer,
        discovery: DiscoveryChain,
        enricher: Enricher,
        settings: Settings | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.caches = caches
        self.discovery = discovery
        self.enricher = enricher
        self.settings = settings or fetcher.settings

    def scrape(self, source: Source, token: CancelToken | None = None) -> SourceResult:
        token = token or CancelToken(self.settings.source_timeout_sec)
        key = list_cache_key(source)
        cached = self.caches.lists.get(key)
        if cached is not None:
            return SourceResult(source.id, source.name, items=list(cached))
        try:
            discovered = self.discovery.discover(source, token)
            candidates = discovered.items[: self.settings.max_articles_per_source]
            items = run_bounded(
                self.settings.enrich_concurrency,
                candidates,
                lambda candidate: self.enricher.enrich(candidate, source, token),
            )
        except FetchCancelled:
            logger.warning("%s: scrape cancelled after deadline", source.id)
            return SourceResult(source.id, source.name, error=TIMEOUT_ERROR)
        except Exception as exc:
            logger.warning("%s: scrape failed: %s", source.id, exc)
            return SourceResult(source.id, source.name, error=str(exc))
        if token.cancelled:
            return SourceResult(source.id, source.name, error=TIMEOUT_ERROR)
        self.caches.lists.set(key, items)
        return SourceResult(source.id, source.name, items=items, warning=discovered.warning)


@dataclass
class PassReport:
    pass_id: str
    started_at: str
    finished_at: str | None = None
    attempted: list[str] = field(default_factory=list)
    results: list[SourceResult] = field(default_factory=list)
    inserted: int = 0
    updated: int = 0
    pruned: int = 0
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def items_seen(self) -> int:
        return sum(len(result.items) for result in self.results)


def _new_pass_id(now: datetime) -> str:
    return f"{now.strftime('%Y%m%dT%H%M%SZ')}-{uuid.uuid4().hex[:6]}"


class Scheduler:
    def __init__(
        self,
        store: Store,
        scraper: SourceScraper,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.scraper = scraper
        self.settings = settings or scraper.settings
        self.clock = clock

    def due_sources(
        self, now: datetime, sources: Iterable[Source] | None = None
    ) -> list[Source]:
        pool = self.store.list_sources() if sources is None else list(sources)
        return [source for source in pool if source.is_due(now)]

    def run_pass(
        self,
        now: datetime | None = None,
        source_ids: Iterable[str] | None = None,
        force: bool = False,
    ) -> PassReport:
        """Scrape every due source (or every selected one when forced), persist, prune."""
        now = now or self.clock()
        report = PassReport(pass_id=_new_pass_id(now), started_at=to_iso(now))
        run_log = RunLogger(self.store.root, report.pass_id)
        run_log.log(f"pass started force={force}")

        sources = self.store.list_sources()
        if source_ids is not None:
            wanted = set(source_ids)
            sources = [source for source in sources if source.id in wanted]
        if not force:
            sources = self.due_sources(now, sources)
        report.attempted = [source.id for source in sources]

        if sources:
            report.results = run_bounded(
                self.settings.source_concurrency, sources, self._scrape_with_deadline
            )
        for result in report.results:
            self._persist(result, now, report, run_log)

        try:
            if report.attempted:
                self.store.mark_fetched(report.attempted, now)
            report.pruned = self.store.prune(self.settings.retention_days, now)
        except PersistenceError as exc:
            logger.error("pass %s bookkeeping failed: %s", report.pass_id, exc)
            run_log.failure({"stage": "bookkeeping", "message": str(exc)})

        report.finished_at = to_iso(self.clock())
        run_log.log(
            f"pass finished sources={len(report.attempted)} items={report.items_seen} "
            f"inserted={report.inserted} updated={report.updated} "
            f"pruned={report.pruned} errors={len(report.errors)}"
        )
        return report

    def _scrape_with_deadline(self, source: Source) -> SourceResult:
        token = CancelToken(self.settings.source_timeout_sec)
        try:
            return self.scraper.scrape(source, token)
        except FetchCancelled:
            return SourceResult(source.id, source.name, error=TIMEOUT_ERROR)
        except Exception as exc:
            logger.exception("%s: unexpected scrape failure", source.id)
            return SourceResult(source.id, source.name, error=str(exc))
        finally:
            token.cancel()

    def _persist(
        self,
        result: SourceResult,
        now: datetime,
        report: PassReport,
        run_log: RunLogger,
    ) -> None:
        if result.error:
            report.errors[result.source_id] = result.error
            run_log.log(f"source={result.source_id} error={result.error}")
            run_log.failure(
                {"source_id": result.source_id, "stage": "scrape", "message": result.error}
            )
            return
        if result.warning:
            run_log.log(f"source={result.source_id} warning={result.warning}")
        items: list[ArticleCandidate] = result.items
        if not items:
            run_log.log(f"source={result.source_id} items=0")
            return
        try:
            stats = self.store.upsert_articles(items, now)
        except PersistenceError as exc:
            logger.error("%s: failed to store articles: %s", result.source_id, exc)
            report.errors[result.source_id] = str(exc)
            run_log.failure(
                {"source_id": result.source_id, "stage": "persist", "message": str(exc)}
            )
            return
        report.inserted += stats.inserted
        report.updated += stats.updated
        run_log.log(
            f"source={result.source_id} items={len(items)} "
            f"inserted={stats.inserted} updated={stats.updated} skipped={stats.skipped}"
        )

    def tick(self) -> PassReport | None:
        try:
            return self.run_pass()
        except Exception:
            logger.exception("scheduler tick failed")
            return None

    def run_forever(self, stop_event: threading.Event) -> None:
        """Tick now, then every ``tick_interval_sec`` until ``stop_event`` is set."""
        heartbeat_stop, heartbeat_thread = start_heartbeat(HEARTBEAT_SECONDS)
        try:
            while not stop_event.is_set():
                self.tick()
                if stop_event.wait(self.settings.tick_interval_sec):
                    break
        finally:
            stop_heartbeat(heartbeat_stop, heartbeat_thread)
