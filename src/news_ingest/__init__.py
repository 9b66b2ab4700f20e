"""News ingest: scrape, enrich and store articles from registered news sites."""

from .scheduler import Scheduler, SourceScraper
from .service import IngestService
from .store import Store

__all__ = ["IngestService", "Scheduler", "SourceScraper", "Store"]
