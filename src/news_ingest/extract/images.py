from __future__ import annotations

import json
import re
from typing import Any, Callable, Iterable
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Tag

from ..urls import resolve_url

ImageResolver = Callable[[], "str | None"]

_BACKGROUND_RE = re.compile(r"background-image\s*:\s*url\((['\"]?)(.*?)\1\)", re.IGNORECASE)

PLACEHOLDER_TOKENS = (
    "placeholder",
    "default",
    "transparent",
    "spacer",
    "blank",
    "pixel",
    "sprite",
    "icon",
    "logo",
    "avatar",
    "profile",
)

LAZY_SRCSET_ATTRS = ("data-srcset", "data-lazy-srcset", "data-bgset", "srcset")
LAZY_SRC_ATTRS = (
    "data-src",
    "data-lazy-src",
    "data-src-large",
    "data-src-medium",
    "data-src-small",
    "data-thumb",
    "data-full-url",
    "data-lazy",
    "data-original",
    "data-original-src",
    "data-bg",
    "data-background",
    "data-bg-url",
    "data-image",
    "src",
)
SOURCE_SRCSET_ATTRS = ("srcset", "data-srcset", "data-lazy-srcset", "data-glide-srcset")
SOURCE_SRC_ATTRS = ("src", "data-src", "data-lazy-src", "data-glide-src")

CONTAINER_SELECTOR = (
    "article, li, .post, .entry, .story, .card, .promo, .teaser, .media, "
    ".td_module_10, .td_module_6, .td_module_4, .post-thumbnail, .featured-image"
)

META_IMAGE_SELECTORS = (
    'meta[property="og:image"]',
    'meta[property="og:image:secure_url"]',
    'meta[property="og:image:url"]',
    'meta[name="twitter:image"]',
    'meta[name="twitter:image:src"]',
    'meta[itemprop="image"]',
    'meta[name="thumbnail"]',
    'meta[name="parsely-image-url"]',
)


def is_placeholder_image(url: str | None) -> bool:
    if not url:
        return True
    lower = url.strip().lower()
    if lower.startswith("data:"):
        return True
    path = urlsplit(lower).path
    if path.endswith(".svg"):
        return True
    return any(token in path for token in PLACEHOLDER_TOKENS)


def select_best_image(*candidates: str | None) -> str | None:
    for candidate in candidates:
        if candidate and not is_placeholder_image(candidate):
            return candidate
    return None


def first_image(resolvers: Iterable[ImageResolver]) -> str | None:
    for resolver in resolvers:
        try:
            candidate = resolver()
        except (ValueError, TypeError, AttributeError):
            continue
        if candidate and not is_placeholder_image(candidate):
            return candidate
    return None


def parse_srcset(value: str | None) -> str | None:
    if not value:
        return None
    candidates = [part.strip().split(" ")[0] for part in value.split(",")]
    candidates = [candidate for candidate in candidates if candidate]
    return candidates[-1] if candidates else None


def parse_background_image(style: str | None) -> str | None:
    if not style:
        return None
    match = _BACKGROUND_RE.search(style)
    return match.group(2) if match else None


def _attr(element: Tag, name: str) -> str | None:
    value = element.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return value.strip() if isinstance(value, str) and value.strip() else None


def _usable(url: str | None, base_url: str | None) -> str | None:
    resolved = resolve_url(url, base_url)
    if not resolved or resolved.lower().startswith("data:"):
        return None
    return resolved


def image_from_attributes(element: Tag | None, base_url: str | None) -> str | None:
    if element is None:
        return None
    srcset = next((_attr(element, name) for name in LAZY_SRCSET_ATTRS if _attr(element, name)), None)
    direct = next((_attr(element, name) for name in LAZY_SRC_ATTRS if _attr(element, name)), None)
    candidate = direct or parse_srcset(srcset)
    if candidate:
        return _usable(candidate, base_url)
    background = parse_background_image(_attr(element, "style"))
    if background:
        return _usable(background, base_url)
    return None


def image_from_sources(element: Tag | None, base_url: str | None) -> str | None:
    if element is None:
        return None
    for source in element.find_all("source"):
        srcset = next((_attr(source, name) for name in SOURCE_SRCSET_ATTRS if _attr(source, name)), None)
        direct = next((_attr(source, name) for name in SOURCE_SRC_ATTRS if _attr(source, name)), None)
        resolved = _usable(direct or parse_srcset(srcset), base_url)
        if resolved:
            return resolved
    return None


def image_from_noscript(element: Tag | None, base_url: str | None) -> str | None:
    if element is None:
        return None
    noscript = element.find("noscript")
    if noscript is None:
        return None
    img = noscript.find("img")
    if img is None:
        raw = noscript.decode_contents() or noscript.get_text()
        if "<img" not in raw:
            return None
        img = BeautifulSoup(raw, "lxml").find("img")
    return image_from_attributes(img, base_url)


def container_resolvers(element: Tag | None, base_url: str | None) -> list[ImageResolver]:
    """Resolvers for an element: first <img>, <source>s, own attributes, <noscript>."""
    if element is None:
        return []
    return [
        lambda: image_from_attributes(element.find("img"), base_url),
        lambda: image_from_sources(element, base_url),
        lambda: image_from_attributes(element, base_url),
        lambda: image_from_noscript(element, base_url),
    ]


def image_for_link(element: Tag, base_url: str | None) -> str | None:
    """Image for a list-page anchor: the anchor itself, then its nearest container."""
    resolvers = container_resolvers(element, base_url)
    container = element.css.closest(CONTAINER_SELECTOR) if element.parent is not None else None
    resolvers.extend(container_resolvers(container, base_url))
    return first_image(resolvers)


def image_from_container(container: Tag | None, base_url: str | None) -> str | None:
    return first_image(container_resolvers(container, base_url))


def _json_ld_image(node: Any) -> str | None:
    if not node:
        return None
    if isinstance(node, list):
        for item in node:
            found = _json_ld_image(item)
            if found:
                return found
        return None
    if isinstance(node, str):
        return node
    if not isinstance(node, dict):
        return None
    if node.get("@graph"):
        return _json_ld_image(node["@graph"])
    image = node.get("image") or node.get("thumbnailUrl") or node.get("logo")
    if isinstance(image, list):
        return _json_ld_image(image)
    if isinstance(image, dict):
        return image.get("url") or image.get("@id")
    if isinstance(image, str):
        return image
    url = node.get("url")
    return url if isinstance(url, str) else None


def json_ld_blocks(soup: BeautifulSoup) -> list[Any]:
    blocks: list[Any] = []
    for script in soup.select('script[type="application/ld+json"]'):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            blocks.append(json.loads(raw))
        except ValueError:
            continue
    return blocks


def image_from_json_ld(soup: BeautifulSoup, base_url: str | None) -> str | None:
    for block in json_ld_blocks(soup):
        found = _json_ld_image(block)
        if found:
            return _usable(found, base_url)
    return None


def image_from_meta(soup: BeautifulSoup, base_url: str | None) -> str | None:
    resolvers: list[ImageResolver] = []
    for selector in META_IMAGE_SELECTORS:
        resolvers.append(lambda selector=selector: _meta_content(soup, selector, base_url))
    resolvers.append(lambda: image_from_json_ld(soup, base_url))
    return first_image(resolvers)


def _meta_content(soup: BeautifulSoup, selector: str, base_url: str | None) -> str | None:
    tag = soup.select_one(selector)
    if tag is None:
        return None
    return _usable(_attr(tag, "content"), base_url)
