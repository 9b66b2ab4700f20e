from __future__ import annotations

import json

from news_ingest import cli
from news_ingest.config import Settings
from news_ingest.models import ArticleCandidate
from news_ingest.service import IngestService
from news_ingest.store import Store


def run_cli(args, tmp_path):
    return cli.main(["--data-root", str(tmp_path), *args])


def use_fake_web(monkeypatch, web):
    def build(args):
        return IngestService.build(Settings(data_root=args.data_root), session=web)

    monkeypatch.setattr(cli, "build_service", build)


def seed_articles(tmp_path):
    store = Store(root=tmp_path)
    store.upsert_articles(
        [
            ArticleCandidate(
                url="https://example.com/2024/05/01/storm/",
                source_id="demo",
                source_name="Demo News",
                title="Storm warning issued",
                published_at="2024-05-01T12:00:00+00:00",
            )
        ]
    )
    store.close()


def test_sources_add_and_list(tmp_path, capsys):
    assert run_cli(["sources", "add"], tmp_path) == 0
    assert "iwnsvg" in capsys.readouterr().out

    assert (
        run_cli(
            [
                "sources", "add",
                "--id", "demo",
                "--name", "Demo News",
                "--list-url", "https://example.com/",
                "--pattern", r"/\d{4}/",
                "--refresh-minutes", "10",
            ],
            tmp_path,
        )
        == 0
    )
    assert "source registered id=demo every=10m" in capsys.readouterr().out

    assert run_cli(["sources", "list", "--json"], tmp_path) == 0
    listed = json.loads(capsys.readouterr().out)
    assert [source["id"] for source in listed] == ["demo", "iwnsvg", "onenews"]
    assert listed[0]["article_url_patterns"] == [r"/\d{4}/"]


def test_sources_add_from_json_config(tmp_path, capsys):
    config = tmp_path / "sources.json"
    config.write_text(json.dumps([{"id": "a", "list_url": "https://a.test/"}]), encoding="utf-8")
    assert run_cli(["sources", "add", "--config", str(config)], tmp_path) == 0
    assert "id=a" in capsys.readouterr().out


def test_sources_add_rejects_invalid_url(tmp_path, capsys):
    assert run_cli(["sources", "add", "--list-url", "gopher://a.test/"], tmp_path) == 2
    assert "invalid input" in capsys.readouterr().err


def test_articles_json_and_text(tmp_path, capsys):
    seed_articles(tmp_path)

    assert run_cli(["articles", "--json"], tmp_path) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["items"][0]["title"] == "Storm warning issued"
    assert payload["latest_timestamp"] == "2024-05-01T12:00:00+00:00"

    assert run_cli(["articles", "--source", "demo", "--limit", "1"], tmp_path) == 0
    out = capsys.readouterr().out
    assert "title=Storm warning issued" in out
    assert "articles: 1" in out


def test_prune(tmp_path, capsys):
    seed_articles(tmp_path)
    assert run_cli(["prune"], tmp_path) == 0
    assert "pruned 1 articles" in capsys.readouterr().out


def test_refresh_and_article_commands(tmp_path, capsys, monkeypatch, web, fixture_text):
    use_fake_web(monkeypatch, web)
    web.add("https://example.com/", fixture_text("list_page.html"))
    web.add("https://example.com/2024/05/01/storm-warning-issued-for-island/", fixture_text("article_page.html"))
    run_cli(["sources", "add", "--id", "demo", "--list-url", "https://example.com/"], tmp_path)
    capsys.readouterr()

    assert run_cli(["refresh", "--force", "--source", "demo"], tmp_path) == 0
    out = capsys.readouterr().out
    assert "sources=1" in out
    assert "inserted=2" in out

    assert run_cli(["refresh"], tmp_path) == 0
    assert "sources=0" in capsys.readouterr().out

    assert (
        run_cli(["article", "https://example.com/2024/05/01/storm-warning-issued-for-island/"], tmp_path)
        == 0
    )
    out = capsys.readouterr().out
    assert out.startswith("Storm warning issued for the whole island")
    assert "by Maria Lewis" in out


def test_article_fetch_failure_exit_code(tmp_path, capsys, monkeypatch, web):
    use_fake_web(monkeypatch, web)
    assert run_cli(["article", "https://example.com/missing-story-page"], tmp_path) == 1
    assert "fetch failed" in capsys.readouterr().err
