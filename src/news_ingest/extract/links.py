from __future__ import annotations

from bs4 import BeautifulSoup, Tag

from ..text_processing import clean_text

CANDIDATE_LINK_SELECTORS = (
    "article a[href]",
    ".entry-title a[href]",
    ".post-title a[href]",
    ".jeg_post_title a[href]",
    ".td-module-title a[href]",
    ".tdb-module-title a[href]",
    'a[rel="bookmark"]',
    "h1 a[href]",
    "h2 a[href]",
    "h3 a[href]",
    "h4 a[href]",
)
HEADING_SELECTOR = "h1, h2, h3, h4, h5"
MIN_TITLE_CANDIDATE_CHARS = 8


def collect_candidate_links(soup: BeautifulSoup) -> list[Tag]:
    """Anchors inside article-like structures, in document order; every link if none."""
    matches = soup.select(", ".join(CANDIDATE_LINK_SELECTORS))
    if matches:
        return matches
    return soup.select("a[href]")


def anchor_title(element: Tag) -> str:
    candidates: list[str | None] = [
        element.get_text(" "),
        element.get("aria-label"),
        element.get("title"),
    ]
    heading = element.css.closest(HEADING_SELECTOR)
    if heading is not None:
        candidates.append(heading.get_text(" "))
    for parent in element.parents:
        if not isinstance(parent, Tag) or isinstance(parent, BeautifulSoup):
            break
        found = parent.select_one(HEADING_SELECTOR)
        if found is not None:
            candidates.append(found.get_text(" "))
            break
    for candidate in candidates:
        text = clean_text(candidate if isinstance(candidate, str) else None)
        if len(text) >= MIN_TITLE_CANDIDATE_CHARS:
            return text
    return clean_text(element.get_text(" "))
