from __future__ import annotations

from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag

from ..text_processing import clean_text
from .images import image_from_container

DEFAULT_MAX_PARAGRAPHS = 36
MIN_PARAGRAPH_CHARS = 20
PREVIEW_MAX_CHARS = 420

CONTENT_SELECTORS = (
    ".td-post-content",
    ".entry-content",
    ".post-content",
    ".tdb-block-inner",
    ".article-content",
    "article",
    ".post",
)

NOISE_PREFIXES = (
    "leave a comment",
    "share this",
    "like loading",
    "post navigation",
    "published by",
    "posted on",
    "this image was obtained",
    "photo:",
    "image:",
    "credit:",
)
NOISE_CLASS_TOKENS = (
    "caption",
    "credit",
    "sharedaddy",
    "comment",
    "navigation",
    "related",
    "author",
)
NOISE_ANCESTORS = (
    "figure, figcaption, .sharedaddy, .jp-relatedposts, .comments-area, .comment-list, "
    ".post-navigation, .nav-links, footer, nav, .author-bio, .author, .byline"
)


@dataclass
class ArticleBody:
    paragraphs: list[str] = field(default_factory=list)
    image_url: str | None = None

    @property
    def first_paragraph(self) -> str | None:
        return self.paragraphs[0] if self.paragraphs else None


def should_skip_paragraph(element: Tag) -> bool:
    text = clean_text(element.get_text(" "))
    lower = text.lower()
    if any(lower.startswith(prefix) for prefix in NOISE_PREFIXES):
        return True
    if "leave a comment" in lower or "share this:" in lower:
        return True
    if (lower.startswith("by ") or lower.startswith("by:")) and len(text) < 120:
        return True
    if lower.startswith("updated") or lower.startswith("last updated"):
        return True
    if "updated" in lower and len(text) < 160:
        return True
    if "facebook.com" in lower or "twitter.com" in lower:
        return True
    class_name = " ".join(element.get("class") or []).lower()
    if any(token in class_name for token in NOISE_CLASS_TOKENS):
        return True
    return element.css.closest(NOISE_ANCESTORS) is not None


def collect_paragraphs(container: Tag, max_paragraphs: int = DEFAULT_MAX_PARAGRAPHS) -> list[str]:
    paragraphs: list[str] = []
    seen: set[str] = set()
    for element in container.find_all("p"):
        if len(paragraphs) >= max_paragraphs:
            break
        if should_skip_paragraph(element):
            continue
        text = clean_text(element.get_text(" "))
        if len(text) < MIN_PARAGRAPH_CHARS or text in seen:
            continue
        seen.add(text)
        paragraphs.append(text)
    return paragraphs


def extract_body(
    soup: BeautifulSoup,
    base_url: str | None,
    max_paragraphs: int = DEFAULT_MAX_PARAGRAPHS,
) -> ArticleBody:
    """Pick the content container with the most paragraph text and read it."""
    best: tuple[int, Tag, list[str]] | None = None
    for selector in CONTENT_SELECTORS:
        for container in soup.select(selector):
            paragraphs = collect_paragraphs(container, max_paragraphs)
            if not paragraphs:
                continue
            score = len(" ".join(paragraphs))
            if best is None or score > best[0]:
                best = (score, container, paragraphs)
    if best is None:
        container = soup.body or soup
        return ArticleBody(
            paragraphs=collect_paragraphs(container, max_paragraphs),
            image_url=image_from_container(container, base_url),
        )
    _, container, paragraphs = best
    return ArticleBody(paragraphs=paragraphs, image_url=image_from_container(container, base_url))


def build_preview(paragraphs: list[str], max_chars: int = PREVIEW_MAX_CHARS) -> str | None:
    preview = ""
    for paragraph in paragraphs:
        if not paragraph:
            continue
        combined = f"{preview}\n\n{paragraph}" if preview else paragraph
        if len(combined) > max_chars and preview:
            break
        preview = combined
    return preview or None
