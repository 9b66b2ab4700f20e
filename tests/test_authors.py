from __future__ import annotations

import pytest

from news_ingest.extract.authors import (
    extract_author,
    normalize_author,
    parse_byline,
    select_author,
    should_ignore_author,
)
from news_ingest.extract.meta import parse_html


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("By John Smith", "John Smith"),
        ("by by Jane Doe", "Jane Doe"),
        ("By: Ann Lee", "Ann Lee"),
        ("Byron Lee", "Byron Lee"),
        ("Posted by Kim Ray | Updated 2 hours ago", "Kim Ray"),
        ("Written by Tom Hall, updated May 1", "Tom Hall"),
        ("Jane Doe.", "Jane Doe"),
        ("   ", None),
    ],
)
def test_normalize_author(raw, expected):
    assert normalize_author(raw) == expected


def test_parse_byline():
    assert parse_byline("Posted on May 1, 2024 by Kim Ray") == "Kim Ray"
    assert parse_byline("By Kim Ray updated yesterday") == "Kim Ray"
    assert parse_byline("May 1, 2024") is None


def test_should_ignore_author():
    assert should_ignore_author("admin")
    assert should_ignore_author("Administrator")
    assert should_ignore_author("https://example.com/author/x")
    assert should_ignore_author("www.example.com")
    assert should_ignore_author("@newsdesk")
    assert should_ignore_author("facebook.com/newsdesk")
    assert should_ignore_author("K")
    assert should_ignore_author("kentonxchance", "iwnsvg")
    assert should_ignore_author("One News SVG", "onenews")
    assert not should_ignore_author("One News SVG", "iwnsvg")
    assert not should_ignore_author("Maria Lewis", "onenews")


def test_select_author_splits_on_update_markers():
    candidates = [None, "admin", "By Jane Doe Updated 3 hours ago"]
    assert select_author(candidates) == "Jane Doe"
    assert select_author([None, "", "admin"]) is None


def test_extract_author_walks_meta_then_byline():
    soup = parse_html(
        """
        <head><meta name="author" content="admin"></head>
        <body><span class="byline">By Maria Lewis</span></body>
        """
    )
    assert extract_author(soup) == "Maria Lewis"

    soup = parse_html('<div class="entry-meta">Posted on May 1 by Kim Ray</div>')
    assert extract_author(soup) == "Kim Ray"
