from __future__ import annotations

import re
from typing import TYPE_CHECKING
from urllib.parse import urljoin, urlsplit, urlunsplit

if TYPE_CHECKING:
    from .models import Source

_COMMENT_PAGE_RE = re.compile(r"/comment-page-\d+/?$", re.IGNORECASE)
_DATED_PATH_RE = re.compile(r"/\d{4}/\d{2}/\d{2}/")
_LONG_ID_RE = re.compile(r"\d{5,}(?:/|$)")
_DIGITS_RE = re.compile(r"\d{5,}")
_ASSET_EXT_RE = re.compile(r"\.(jpg|jpeg|png|gif|webp|svg|mp4|mp3|pdf|zip)$", re.IGNORECASE)
_COMMENT_COUNT_RE = re.compile(r"(^|\b)\d+\s+comments?\b")
_COMMENT_HREF_RE = re.compile(r"replytocom=|#comments?|comment-page-", re.IGNORECASE)

DENIED_PATH_PARTS = (
    "/category/",
    "/tag/",
    "/author/",
    "/page/",
    "/feed/",
    "/privacy",
    "/terms",
    "/about",
    "/contact",
    "/wp-admin",
    "/wp-json",
    "/xmlrpc",
    "/wp-content",
    "/wp-includes",
    "/comment-page-",
)

CATEGORY_SLUGS = frozenset(
    {
        "news",
        "world",
        "politics",
        "business",
        "sports",
        "sport",
        "entertainment",
        "life",
        "travel",
        "opinion",
        "tech",
        "money",
        "finance",
        "food",
        "health",
        "weather",
        "science",
        "shopping",
        "grocery",
        "games",
        "photos",
        "video",
        "videos",
    }
)


def resolve_url(url: str | None, base_url: str | None) -> str | None:
    if not url:
        return None
    url = url.strip()
    if url.lower().startswith("data:"):
        return url
    try:
        absolute = urljoin(base_url or "", url)
        parts = urlsplit(absolute)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return absolute


def canonicalize_article_url(url: str | None, base_url: str | None = None) -> str | None:
    absolute = resolve_url(url, base_url)
    if not absolute or absolute.startswith("data:"):
        return None
    parts = urlsplit(absolute)
    path = _COMMENT_PAGE_RE.sub("/", parts.path or "/")
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


def swap_www(url: str) -> str | None:
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    host = parts.hostname or ""
    if not host:
        return None
    if host.startswith("www."):
        swapped = host[4:]
    elif len(host.split(".")) == 2:
        swapped = f"www.{host}"
    else:
        return None
    netloc = parts.netloc.replace(host, swapped, 1)
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def bare_host(url: str) -> str:
    host = (urlsplit(url).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def root_domain(host: str) -> str:
    clean = host.lstrip(".").lower()
    labels = [label for label in clean.split(".") if label]
    if len(labels) <= 2:
        return clean
    return ".".join(labels[-2:])


def is_same_site(url: str, base_url: str) -> bool:
    try:
        a = (urlsplit(url).hostname or "").lower()
        b = (urlsplit(base_url).hostname or "").lower()
    except ValueError:
        return False
    if not a or not b:
        return False
    return a == b or root_domain(a) == root_domain(b)


def is_category_slug(slug: str) -> bool:
    return slug in CATEGORY_SLUGS


def looks_like_article_slug(slug: str) -> bool:
    if not slug:
        return False
    if len(slug) >= 14 and "-" in slug:
        return True
    if _DIGITS_RE.search(slug):
        return True
    return len(slug) >= 20


def looks_like_article_path(path: str) -> bool:
    if not path:
        return False
    if _DATED_PATH_RE.search(path) or _LONG_ID_RE.search(path):
        return True
    segments = [segment for segment in path.rstrip("/").split("/") if segment]
    if len(segments) <= 1:
        single = segments[0] if segments else ""
        return looks_like_article_slug(single) and not is_category_slug(single)
    last = segments[-1]
    if is_category_slug(last):
        return False
    if len(segments) == 2:
        return looks_like_article_slug(last)
    return True


def is_denied_path(path: str) -> bool:
    if any(part in path for part in DENIED_PATH_PARTS):
        return True
    return bool(_ASSET_EXT_RE.search(path))


def is_likely_article_url(url: str, source: "Source", strict: bool = True) -> bool:
    """Classify a canonical URL as an article page of ``source``.

    ``strict=False`` keeps only the site and denylist checks; it is used for
    feed entries, which are article links by construction.
    """
    if not is_same_site(url, source.base_url):
        return False
    path = (urlsplit(url).path or "/").lower()
    if path == "/" or len(path) < 2:
        return False
    if is_denied_path(path):
        return False
    if not strict:
        return True
    if not looks_like_article_path(path):
        return False
    if not source.compiled_patterns:
        return True
    return any(pattern.search(path) for pattern in source.compiled_patterns)


def is_comment_anchor(title: str, href: str | None) -> bool:
    text = title.lower()
    if _COMMENT_COUNT_RE.search(text):
        return True
    if text.startswith("comment") or "comments on" in text:
        return True
    if not href:
        return False
    return bool(_COMMENT_HREF_RE.search(href))
