"""Stateless resolvers that turn one parsed page into article fields."""

from .authors import extract_author, select_author
from .body import ArticleBody, build_preview, extract_body
from .images import first_image, is_placeholder_image, select_best_image
from .meta import PageMeta, extract_meta, parse_html

__all__ = [
    "ArticleBody",
    "PageMeta",
    "build_preview",
    "extract_author",
    "extract_body",
    "extract_meta",
    "first_image",
    "is_placeholder_image",
    "parse_html",
    "select_author",
    "select_best_image",
]
