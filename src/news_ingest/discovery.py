from __future__ import annotations

import logging

from .adapters import DiscoveryAdapter, DiscoveryContext, default_adapters
from .config import Settings
from .errors import FetchCancelled
from .http import CancelToken, Fetcher
from .models import DiscoveryResult, Source

logger = logging.getLogger(__name__)


class DiscoveryChain:
    def __init__(
        self,
        fetcher: Fetcher,
        settings: Settings | None = None,
        adapters: list[DiscoveryAdapter] | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.settings = settings or fetcher.settings
        self.adapters = adapters if adapters is not None else default_adapters()

    def discover(self, source: Source, token: CancelToken | None = None) -> DiscoveryResult:
        context = DiscoveryContext(settings=self.settings)
        for adapter in self.adapters:
            try:
                items = adapter.discover(source, self.fetcher, context, token)
            except FetchCancelled:
                raise
            except Exception as exc:
                logger.warning("%s discovery failed for %s: %s", adapter.name, source.name, exc)
                items = []
            if items:
                logger.debug("%s: %s items via %s", source.id, len(items), adapter.name)
                return DiscoveryResult(items=items, via=adapter.name, warning=context.warning)
        return DiscoveryResult(items=[], via=None, warning=context.warning)
