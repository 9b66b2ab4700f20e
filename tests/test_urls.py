from __future__ import annotations

import pytest

from news_ingest.models import Source
from news_ingest.urls import (
    bare_host,
    canonicalize_article_url,
    is_comment_anchor,
    is_likely_article_url,
    is_same_site,
    resolve_url,
    swap_www,
)


def make_source(patterns=()):
    return Source(
        id="demo",
        name="Demo",
        list_url="https://example.com/",
        base_url="https://example.com",
        article_url_patterns=tuple(patterns),
    )


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://example.com/2024/05/01/election-results-announced/", True),
        ("https://example.com/category/politics/", False),
        ("https://example.com/tag/sports/page/2/", False),
        ("https://example.com/", False),
        ("https://example.com/news/", False),
        ("https://example.com/local-man-wins-lottery", True),
        ("https://example.com/news/short", False),
        ("https://example.com/wp-content/uploads/2024/05/photo.jpg", False),
        ("https://example.com/story/123456", True),
        ("https://news.example.com/2024/05/01/election-results-announced/", True),
        ("https://other.org/2024/05/01/election-results-announced/", False),
    ],
)
def test_is_likely_article_url(url, expected):
    assert is_likely_article_url(url, make_source()) is expected


def test_article_patterns_narrow_strict_classification():
    source = make_source([r"/\d{4}/\d{2}/\d{2}/"])
    assert is_likely_article_url("https://example.com/2024/05/01/election-night/", source)
    assert not is_likely_article_url("https://example.com/local-man-wins-lottery", source)
    assert is_likely_article_url("https://example.com/local-man-wins-lottery", source, strict=False)
    assert not is_likely_article_url("https://example.com/tag/weather/", source, strict=False)


def test_canonicalize_drops_query_fragment_and_comment_pages():
    assert (
        canonicalize_article_url("https://example.com/story/?utm_source=x#top")
        == "https://example.com/story/"
    )
    assert (
        canonicalize_article_url("/2024/01/02/a-story/comment-page-2/", "https://example.com")
        == "https://example.com/2024/01/02/a-story/"
    )
    assert canonicalize_article_url("mailto:desk@example.com", "https://example.com") is None
    assert canonicalize_article_url("javascript:void(0)", "https://example.com") is None
    assert canonicalize_article_url(None) is None


def test_resolve_url_keeps_data_uris_and_rejects_other_schemes():
    assert resolve_url("data:image/gif;base64,AAAA", "https://example.com").startswith("data:")
    assert resolve_url("/img/a.jpg", "https://example.com/news/") == "https://example.com/img/a.jpg"
    assert resolve_url("ftp://example.com/a.jpg", None) is None
    assert resolve_url("", "https://example.com") is None


def test_swap_www_and_bare_host():
    assert swap_www("https://www.example.com/a?b=1") == "https://example.com/a?b=1"
    assert swap_www("https://example.com/") == "https://www.example.com/"
    assert swap_www("https://news.example.com/") is None
    assert bare_host("https://WWW.Example.com/path") == "example.com"


def test_is_same_site_matches_subdomains():
    assert is_same_site("https://m.example.com/a", "https://www.example.com")
    assert not is_same_site("https://example.org/a", "https://example.com")
    assert not is_same_site("/relative", "https://example.com")


def test_is_comment_anchor():
    assert is_comment_anchor("12 Comments", "/story")
    assert is_comment_anchor("Comments on the budget", "/story")
    assert is_comment_anchor("Leave a reply here", "/story#comments")
    assert is_comment_anchor("Reply to this", "/story?replytocom=4")
    assert not is_comment_anchor("Storm warning issued tonight", "/storm")
