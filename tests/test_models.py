from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from news_ingest.config import Settings, clamp_refresh_minutes
from news_ingest.errors import ValidationError
from news_ingest.models import ArticleCandidate, Source, SourceConfig, article_id

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)


def test_source_config_defaults_and_validation():
    config = SourceConfig.from_dict({"list_url": "https://example.com/news/"}, index=2)
    assert config.id == "custom-3"
    assert config.name == "https://example.com/news/"
    assert config.base_url == "https://example.com/news/"
    assert config.refresh_interval_minutes is None

    with pytest.raises(ValidationError):
        SourceConfig.from_dict({"list_url": "ftp://example.com/"})
    with pytest.raises(ValidationError):
        SourceConfig.from_dict({"name": "No url"})
    with pytest.raises(ValidationError):
        SourceConfig.from_dict({"list_url": "https://example.com", "article_url_patterns": ["("]})
    with pytest.raises(ValidationError):
        SourceConfig.from_dict({"list_url": "https://example.com", "refresh_interval_minutes": "x"})


def test_source_config_clamps_refresh_interval():
    high = SourceConfig.from_dict({"list_url": "https://a.com", "refresh_interval_minutes": 500})
    low = SourceConfig.from_dict({"list_url": "https://a.com", "refresh_interval_minutes": 1})
    assert high.refresh_interval_minutes == 120
    assert low.refresh_interval_minutes == 5
    assert clamp_refresh_minutes(30) == 30


def test_source_is_due():
    fresh = Source("a", "A", "https://a.com/", "https://a.com", refresh_interval_minutes=15)
    assert fresh.is_due(NOW)
    recent = Source(
        "a", "A", "https://a.com/", "https://a.com",
        refresh_interval_minutes=15,
        last_fetched_at=NOW - timedelta(minutes=10),
    )
    assert not recent.is_due(NOW)
    stale = Source(
        "a", "A", "https://a.com/", "https://a.com",
        refresh_interval_minutes=15,
        last_fetched_at=NOW - timedelta(minutes=15),
    )
    assert stale.is_due(NOW)


def test_source_compiles_patterns_and_clamps_interval():
    source = Source(
        "a", "A", "https://a.com/", "https://a.com",
        article_url_patterns=(r"/\d{4}/",),
        refresh_interval_minutes=1000,
    )
    assert source.refresh_interval_minutes == 120
    assert source.compiled_patterns[0].search("/2024/05/")


def test_candidate_id_is_stable_per_source_and_url():
    candidate = ArticleCandidate(
        url="https://a.com/story", source_id="a", source_name="A", title="A story title"
    )
    assert candidate.id == article_id("a", "https://a.com/story")
    assert candidate.id.startswith("a:")
    assert candidate.merged(title="Other").id == candidate.id


def test_settings_from_env(tmp_path):
    settings = Settings.from_env(
        {
            "NEWS_INGEST_DATA_ROOT": str(tmp_path),
            "NEWS_INGEST_REFRESH_MINUTES": "1",
            "NEWS_INGEST_RETENTION_DAYS": "7",
            "PEXELS_API_KEY": "key",
        },
        source_concurrency=2,
        data_root=None,
    )
    assert settings.data_root == tmp_path
    assert settings.default_refresh_minutes == 5
    assert settings.retention_days == 7
    assert settings.pexels_api_key == "key"
    assert settings.source_concurrency == 2
    assert Settings.from_env({}).pexels_api_key is None
