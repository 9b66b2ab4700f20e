from __future__ import annotations

from .base import DiscoveryAdapter, DiscoveryContext
from .feed import FeedAdapter
from .html import HtmlListAdapter
from .wordpress import WordPressAdapter


def default_adapters() -> list[DiscoveryAdapter]:
    return [HtmlListAdapter(), FeedAdapter(), WordPressAdapter()]

__all__ = [
    "DiscoveryAdapter",
    "DiscoveryContext",
    "FeedAdapter",
    "HtmlListAdapter",
    "WordPressAdapter",
    "default_adapters",
]
