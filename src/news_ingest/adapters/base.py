from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ..config import Settings
from ..http import CancelToken, Fetcher
from ..models import ArticleCandidate, Source


@dataclass
class DiscoveryContext:
    settings: Settings
    list_html: str | None = None
    warning: str | None = None


class DiscoveryAdapter(Protocol):
    name: str

    def discover(
        self,
        source: Source,
        fetcher: Fetcher,
        context: DiscoveryContext,
        token: CancelToken | None = None,
    ) -> list[ArticleCandidate]:
        ...
