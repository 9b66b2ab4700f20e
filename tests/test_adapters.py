from __future__ import annotations

from news_ingest.adapters import default_adapters
from news_ingest.adapters.base import DiscoveryContext
from news_ingest.adapters.feed import FeedAdapter, discover_feed_urls, parse_feed_entries
from news_ingest.adapters.html import HtmlListAdapter, extract_articles
from news_ingest.adapters.wordpress import (
    WordPressAdapter,
    map_posts,
    should_try_wordpress,
    wordpress_endpoints,
)
from news_ingest.config import Settings
from news_ingest.http import Fetcher
from news_ingest.models import Source

SOURCE = Source(
    id="demo",
    name="Demo News",
    list_url="https://example.com/",
    base_url="https://example.com",
)
RSS = "application/rss+xml"


def make_fetcher(web):
    return Fetcher(web, Settings(), sleep=lambda _: None)


def make_context():
    return DiscoveryContext(settings=Settings())


def test_default_adapter_order():
    assert [adapter.name for adapter in default_adapters()] == ["html", "feed", "rest"]


def test_extract_articles_from_list_page(fixture_text):
    items = extract_articles(fixture_text("list_page.html"), SOURCE)

    assert [item.url for item in items] == [
        "https://example.com/2024/05/01/storm-warning-issued-for-island/",
        "https://example.com/2024/05/02/budget-debate-continues-in-parliament/",
    ]
    first, second = items
    assert first.title == "Storm warning issued for island"
    assert first.published_at == "2024-05-01T00:00:00+00:00"
    assert first.image_url == "https://example.com/wp-content/uploads/2024/05/storm.jpg"
    assert first.discovered_via == "html"
    assert first.source_name == "Demo News"
    assert second.image_url is None


def test_extract_articles_honours_limit(fixture_text):
    assert len(extract_articles(fixture_text("list_page.html"), SOURCE, limit=1)) == 1


def test_html_adapter_records_list_html(web, fixture_text):
    web.add("https://example.com/", fixture_text("list_page.html"))
    context = make_context()

    items = HtmlListAdapter().discover(SOURCE, make_fetcher(web), context)

    assert len(items) == 2
    assert "news/feed" in context.list_html
    assert context.warning is None


def test_html_adapter_failure_is_a_warning(web):
    context = make_context()
    items = HtmlListAdapter().discover(SOURCE, make_fetcher(web), context)

    assert items == []
    assert context.warning.startswith("list fetch failed")
    assert web.calls == ["https://example.com/", "https://www.example.com/"]


def test_discover_feed_urls_puts_advertised_feed_first(fixture_text):
    urls = discover_feed_urls(fixture_text("list_page.html"), SOURCE)
    assert urls[0] == "https://example.com/news/feed/"
    assert urls[1:] == [
        "https://example.com/feed",
        "https://example.com/rss",
        "https://example.com/feed.xml",
        "https://example.com/rss.xml",
        "https://example.com/atom.xml",
        "https://example.com/index.xml",
    ]
    assert len(discover_feed_urls(None, SOURCE)) == 6


def test_parse_feed_entries(fixture_text):
    items = parse_feed_entries(fixture_text("rss_sample.xml"), SOURCE)

    assert [item.url for item in items] == [
        "https://example.com/2024/05/01/storm-warning-issued/",
        "https://example.com/budget-debate-continues",
    ]
    storm = items[0]
    assert storm.title == "Storm warning issued for the island"
    assert storm.published_at == "2024-05-01T12:00:00+00:00"
    assert storm.author == "Jane Doe"
    assert storm.excerpt == "Residents urged to prepare."
    assert storm.image_url == "https://example.com/wp-content/uploads/2024/05/storm.jpg"
    assert storm.discovered_via == "feed"
    assert items[1].published_at is None


def test_feed_adapter_tries_candidates_in_order(web, fixture_text):
    web.add("https://example.com/rss", fixture_text("rss_sample.xml"), content_type=RSS)
    context = make_context()

    items = FeedAdapter().discover(SOURCE, make_fetcher(web), context)

    assert len(items) == 2
    assert web.calls == ["https://example.com/feed", "https://example.com/rss"]


def test_feed_adapter_returns_nothing_when_no_feed(web):
    assert FeedAdapter().discover(SOURCE, make_fetcher(web), make_context()) == []
    assert len(web.calls) == 6


def test_map_posts():
    posts = [
        {
            "link": "https://example.com/2024/05/01/wp-story/?amp=1",
            "title": {"rendered": "WP &amp; Story title"},
            "date": "2024-05-01T09:00:00",
            "excerpt": {"rendered": "<p>Excerpt text</p>"},
            "_embedded": {"wp:featuredmedia": [{"source_url": "https://example.com/img.jpg"}]},
        },
        {"link": None, "title": {"rendered": "No link"}},
        {"link": "https://example.com/2024/05/03/untitled/", "title": {"rendered": ""}},
        "not a post",
        {"link": "https://example.com/2024/05/04/dated-by-url/", "title": "Plain title"},
    ]
    items = map_posts(posts, SOURCE)

    assert len(items) == 2
    post = items[0]
    assert post.url == "https://example.com/2024/05/01/wp-story/"
    assert post.title == "WP & Story title"
    assert post.published_at == "2024-05-01T09:00:00+00:00"
    assert post.excerpt == "Excerpt text"
    assert post.image_url == "https://example.com/img.jpg"
    assert post.discovered_via == "rest"
    assert items[1].published_at == "2024-05-04T00:00:00+00:00"
    assert map_posts({"code": "rest_no_route"}, SOURCE) == []


def test_wordpress_adapter_falls_back_to_rest_route(web):
    pretty, rest_route = wordpress_endpoints(SOURCE.base_url, 25)
    assert pretty == "https://example.com/wp-json/wp/v2/posts?per_page=25&_embed=1"
    assert rest_route.startswith("https://example.com/?rest_route=%2Fwp%2Fv2%2Fposts")
    web.add_json(rest_route, [{"link": "https://example.com/2024/05/01/a-post/", "title": "A post title"}])

    items = WordPressAdapter().discover(SOURCE, make_fetcher(web), make_context())

    assert [item.title for item in items] == ["A post title"]
    assert web.calls == [pretty, rest_route]


def test_wordpress_adapter_skips_known_non_wordpress_hosts(web):
    bbc = Source(id="bbc", name="BBC", list_url="https://www.bbc.com/news", base_url="https://www.bbc.com")
    assert not should_try_wordpress(bbc)
    assert WordPressAdapter().discover(bbc, make_fetcher(web), make_context()) == []
    assert web.calls == []
