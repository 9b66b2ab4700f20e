from __future__ import annotations

import logging
import re
from typing import Any, Callable

import requests

from .cache import TTLCache
from .config import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

StockImageLookup = Callable[[str], "str | None"]

PEXELS_SEARCH_URL = "https://api.pexels.com/v1/search"
PEXELS_SIZES = ("landscape", "large", "large2x", "original")
MAX_QUERY_WORDS = 4

_NON_WORD_RE = re.compile(r"[^a-z0-9\s]")

STOP_WORDS = frozenset(
    """
    the a an and or but if then than of for to from in on at by with about over
    under after before during into out up down as is are was were be been being
    it its this that these those he she they we you i his her their our your my
    new news live updates update today latest breaking
    """.split()
)


def build_fallback_query(title: str | None, source_name: str | None) -> str:
    raw = f"{title or ''} {source_name or ''}".lower()
    words = _NON_WORD_RE.sub(" ", raw).split()
    keywords = [word for word in words if word not in STOP_WORDS]
    if keywords:
        return " ".join(keywords[:MAX_QUERY_WORDS])
    if source_name:
        return source_name.lower()
    return "news"


class PexelsStockImages:
    def __init__(
        self,
        api_key: str,
        session: requests.Session | Any | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    def __call__(self, query: str) -> str | None:
        try:
            response = self.session.get(
                PEXELS_SEARCH_URL,
                params={"query": query, "per_page": "1", "orientation": "landscape"},
                headers={
                    "Authorization": self.api_key,
                    "User-Agent": DEFAULT_USER_AGENT,
                    "Accept": "application/json",
                },
                timeout=self.timeout,
            )
            if response.status_code != 200:
                logger.debug("Pexels lookup failed query=%r status=%s", query, response.status_code)
                return None
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.debug("Pexels lookup failed query=%r: %s", query, exc)
            return None
        photos = data.get("photos") if isinstance(data, dict) else None
        if not isinstance(photos, list) or not photos or not isinstance(photos[0], dict):
            return None
        sources = photos[0].get("src") or {}
        for size in PEXELS_SIZES:
            url = sources.get(size)
            if url:
                return str(url)
        return None


class FallbackImages:
    def __init__(self, lookup: StockImageLookup | None, cache: TTLCache[str]) -> None:
        self.lookup = lookup
        self.cache = cache

    def resolve(self, title: str | None, source_name: str | None) -> str | None:
        if self.lookup is None:
            return None
        query = build_fallback_query(title, source_name)
        cached = self.cache.get(query)
        if cached:
            return cached
        try:
            image_url = self.lookup(query)
        except Exception as exc:
            logger.warning("Stock image lookup raised for %r: %s", query, exc)
            return None
        if image_url:
            self.cache.set(query, image_url)
        return image_url


def stock_lookup_for_key(api_key: str | None, session: requests.Session | None = None) -> StockImageLookup | None:
    if not api_key:
        return None
    return PexelsStockImages(api_key, session=session)
