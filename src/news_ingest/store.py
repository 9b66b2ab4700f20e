from __future__ import annotations

import json
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Iterable

from .errors import PersistenceError
from .models import Article, ArticleCandidate, Source, article_id
from .paths import data_root, ensure_data_dirs
from .timestamps import from_iso, to_iso, utcnow

DEFAULT_DB_NAME = "news.sqlite"
EFFECTIVE_TS = "COALESCE(published_at, fetched_at)"


@dataclass
class UpsertStats:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0


def _source_from_row(row: sqlite3.Row) -> Source:
    return Source(
        id=row["id"],
        name=row["name"],
        list_url=row["list_url"],
        base_url=row["base_url"],
        article_url_patterns=tuple(json.loads(row["patterns_json"] or "[]")),
        refresh_interval_minutes=int(row["refresh_interval_minutes"]),
        last_fetched_at=from_iso(row["last_fetched_at"]),
    )


def _article_from_row(row: sqlite3.Row) -> Article:
    return Article(
        id=row["id"],
        url=row["url"],
        source_id=row["source_id"],
        source_name=row["source_name"],
        title=row["title"],
        fetched_at=row["fetched_at"],
        updated_at=row["updated_at"],
        published_at=row["published_at"],
        image_url=row["image_url"],
        excerpt=row["excerpt"],
        preview=row["preview"],
        author=row["author"],
    )


def _source_filter(source_ids: Iterable[str] | None) -> tuple[str, list[Any]]:
    ids = sorted(set(source_ids or ()))
    if not ids:
        return "", []
    placeholders = ", ".join("?" for _ in ids)
    return f" WHERE source_id IN ({placeholders})", list(ids)


class Store:
    """SQLite-backed sources and articles; one connection shared behind a lock."""

    def __init__(self, root: Path | None = None, db_name: str = DEFAULT_DB_NAME) -> None:
        self.root = data_root(root)
        ensure_data_dirs(self.root)
        self.db_path = self.root / db_name
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self.init_db()

    def connect(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def init_db(self) -> None:
        self._executescript(
            f"""
            CREATE TABLE IF NOT EXISTS sources (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                list_url TEXT NOT NULL,
                base_url TEXT NOT NULL,
                patterns_json TEXT NOT NULL DEFAULT '[]',
                refresh_interval_minutes INTEGER NOT NULL,
                last_fetched_at TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS articles (
                url TEXT PRIMARY KEY,
                id TEXT NOT NULL,
                source_id TEXT NOT NULL,
                source_name TEXT NOT NULL,
                title TEXT NOT NULL,
                published_at TEXT,
                image_url TEXT,
                excerpt TEXT,
                preview TEXT,
                author TEXT,
                fetched_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_articles_source ON articles(source_id);
            CREATE INDEX IF NOT EXISTS idx_articles_effective ON articles({EFFECTIVE_TS});
            """
        )

    def _executescript(self, script: str) -> None:
        with self._lock:
            try:
                conn = self.connect()
                conn.executescript(script)
                conn.commit()
            except sqlite3.Error as exc:
                raise PersistenceError(f"Schema setup failed: {exc}") from exc

    def _execute(self, query: str, params: Iterable[Any] = ()) -> int:
        with self._lock:
            try:
                conn = self.connect()
                cur = conn.execute(query, tuple(params))
                conn.commit()
                count = cur.rowcount
                cur.close()
                return count
            except sqlite3.Error as exc:
                raise PersistenceError(str(exc)) from exc

    def _fetchone(self, query: str, params: Iterable[Any] = ()) -> sqlite3.Row | None:
        with self._lock:
            try:
                cur = self.connect().execute(query, tuple(params))
                row = cur.fetchone()
                cur.close()
                return row
            except sqlite3.Error as exc:
                raise PersistenceError(str(exc)) from exc

    def _fetchall(self, query: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                cur = self.connect().execute(query, tuple(params))
                rows = cur.fetchall()
                cur.close()
                return rows
            except sqlite3.Error as exc:
                raise PersistenceError(str(exc)) from exc

    def upsert_source(self, source: Source) -> None:
        now = to_iso(utcnow())
        self._execute(
            """
            INSERT INTO sources
            (id, name, list_url, base_url, patterns_json, refresh_interval_minutes,
             last_fetched_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, NULL, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                list_url = excluded.list_url,
                base_url = excluded.base_url,
                patterns_json = excluded.patterns_json,
                refresh_interval_minutes = excluded.refresh_interval_minutes,
                updated_at = excluded.updated_at
            """,
            (
                source.id,
                source.name,
                source.list_url,
                source.base_url,
                json.dumps(list(source.article_url_patterns), ensure_ascii=True),
                source.refresh_interval_minutes,
                now,
                now,
            ),
        )

    def get_source(self, source_id: str) -> Source | None:
        row = self._fetchone("SELECT * FROM sources WHERE id = ?", (source_id,))
        return _source_from_row(row) if row else None

    def list_sources(self) -> list[Source]:
        rows = self._fetchall("SELECT * FROM sources ORDER BY id", ())
        return [_source_from_row(row) for row in rows]

    def mark_fetched(self, source_ids: Iterable[str], when: datetime) -> None:
        stamp = to_iso(when)
        for source_id in source_ids:
            self._execute(
                "UPDATE sources SET last_fetched_at = ? WHERE id = ?",
                (stamp, source_id),
            )

    def upsert_articles(
        self,
        candidates: Iterable[ArticleCandidate],
        now: datetime | None = None,
    ) -> UpsertStats:
        """Merge-upsert by canonical url; nullable fields never regress to NULL."""
        stamp = to_iso(now or utcnow())
        stats = UpsertStats()
        for candidate in candidates:
            if not candidate.url or not (candidate.title or "").strip():
                stats.skipped += 1
                continue
            exists = self._fetchone("SELECT 1 FROM articles WHERE url = ?", (candidate.url,))
            self._execute(
                """
                INSERT INTO articles
                (url, id, source_id, source_name, title, published_at, image_url,
                 excerpt, preview, author, fetched_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(url) DO UPDATE SET
                    id = excluded.id,
                    source_id = excluded.source_id,
                    source_name = excluded.source_name,
                    title = excluded.title,
                    fetched_at = excluded.fetched_at,
                    updated_at = excluded.updated_at,
                    published_at = COALESCE(excluded.published_at, articles.published_at),
                    image_url = COALESCE(excluded.image_url, articles.image_url),
                    excerpt = COALESCE(excluded.excerpt, articles.excerpt),
                    preview = COALESCE(excluded.preview, articles.preview),
                    author = COALESCE(excluded.author, articles.author)
                """,
                (
                    candidate.url,
                    article_id(candidate.source_id, candidate.url),
                    candidate.source_id,
                    candidate.source_name,
                    candidate.title.strip(),
                    candidate.published_at,
                    candidate.image_url,
                    candidate.excerpt,
                    candidate.preview,
                    candidate.author,
                    stamp,
                    stamp,
                ),
            )
            if exists:
                stats.updated += 1
            else:
                stats.inserted += 1
        return stats

    def get_article(self, url: str) -> Article | None:
        row = self._fetchone("SELECT * FROM articles WHERE url = ?", (url,))
        return _article_from_row(row) if row else None

    def count_articles(self) -> int:
        row = self._fetchone("SELECT COUNT(*) FROM articles", ())
        return int(row[0]) if row else 0

    def list_articles(
        self,
        limit: int = 200,
        source_ids: Iterable[str] | None = None,
    ) -> list[Article]:
        where, params = _source_filter(source_ids)
        rows = self._fetchall(
            f"SELECT * FROM articles{where} ORDER BY {EFFECTIVE_TS} DESC, url LIMIT ?",
            [*params, int(limit)],
        )
        return [_article_from_row(row) for row in rows]

    def latest_timestamp(self, source_ids: Iterable[str] | None = None) -> str | None:
        where, params = _source_filter(source_ids)
        row = self._fetchone(f"SELECT MAX({EFFECTIVE_TS}) FROM articles{where}", params)
        return row[0] if row and row[0] else None

    def prune(self, horizon_days: int = 30, now: datetime | None = None) -> int:
        cutoff = to_iso((now or utcnow()) - timedelta(days=horizon_days))
        return self._execute(f"DELETE FROM articles WHERE {EFFECTIVE_TS} < ?", (cutoff,))
