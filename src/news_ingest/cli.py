from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from pathlib import Path
from typing import Any

from .config import Settings
from .errors import FetchError, IngestError, ValidationError
from .runtime import StopSignalHandler
from .scheduler import PassReport
from .service import IngestService


def _load_json_arg(value: str | None) -> Any:
    if not value:
        return None
    path = Path(value)
    if path.exists():
        return json.loads(path.read_text(encoding="utf-8"))
    return json.loads(value)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_service(args: argparse.Namespace) -> IngestService:
    settings = Settings.from_env(data_root=args.data_root)
    return IngestService.build(settings)


def _print_report(report: PassReport) -> None:
    print(
        f"pass {report.pass_id} sources={len(report.attempted)} items={report.items_seen} "
        f"inserted={report.inserted} updated={report.updated} pruned={report.pruned}"
    )
    for source_id, error in sorted(report.errors.items()):
        print(f"- {source_id} error={error}")


def _source_configs_from_args(args: argparse.Namespace) -> list[Any]:
    loaded = _load_json_arg(args.config)
    if loaded is not None:
        return loaded if isinstance(loaded, list) else [loaded]
    if not args.list_url:
        return []
    return [
        {
            "id": args.id,
            "name": args.name,
            "list_url": args.list_url,
            "base_url": args.base_url,
            "article_url_patterns": args.pattern or [],
            "refresh_interval_minutes": args.refresh_minutes,
        }
    ]


def cmd_sources(service: IngestService, args: argparse.Namespace) -> int:
    if args.subcommand == "add":
        sources = service.register_sources(_source_configs_from_args(args))
        for source in sources:
            print(f"source registered id={source.id} every={source.refresh_interval_minutes}m")
        return 0
    sources = service.sources()
    if args.json:
        print(json.dumps([source.to_dict() for source in sources]))
        return 0
    if not sources:
        print("no sources registered")
    for source in sources:
        fetched = source.last_fetched_at.isoformat() if source.last_fetched_at else "never"
        print(
            f"- {source.id} name={source.name} list_url={source.list_url} "
            f"every={source.refresh_interval_minutes}m last_fetched={fetched}"
        )
    return 0


def cmd_refresh(service: IngestService, args: argparse.Namespace) -> int:
    if args.force:
        report = service.refresh_now(args.source)
    else:
        report = service.scheduler.run_pass(source_ids=args.source)
    _print_report(report)
    return 0


def cmd_run(service: IngestService, args: argparse.Namespace) -> int:
    stop_event = threading.Event()
    with StopSignalHandler(stop_event):
        service.run_forever(stop_event)
    print("scheduler stopped")
    return 0


def cmd_articles(service: IngestService, args: argparse.Namespace) -> int:
    payload = service.list_articles(source_ids=args.source, limit=args.limit)
    items = payload["items"]
    if args.json:
        print(
            json.dumps(
                {
                    "items": [item.to_dict() for item in items],
                    "latest_timestamp": payload["latest_timestamp"],
                }
            )
        )
        return 0
    for item in items:
        when = item.published_at or item.fetched_at
        print(f"- {when} source={item.source_id} title={item.title} url={item.url}")
    print(f"articles: {len(items)} latest={payload['latest_timestamp'] or 'none'}")
    return 0


def cmd_article(service: IngestService, args: argparse.Namespace) -> int:
    detail = service.fetch_article_detail(args.url)
    if args.json:
        print(json.dumps(detail.to_dict()))
        return 0
    print(detail.title or args.url)
    if detail.author:
        print(f"by {detail.author}")
    if detail.published_at:
        print(detail.published_at)
    if detail.image_url:
        print(f"image: {detail.image_url}")
    print()
    for paragraph in detail.content:
        print(paragraph)
        print()
    return 0


def cmd_prune(service: IngestService, args: argparse.Namespace) -> int:
    deleted = service.prune()
    print(f"pruned {deleted} articles older than {service.settings.retention_days} days")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="news-ingest")
    parser.add_argument("--data-root", type=Path, default=None)
    parser.add_argument("--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sources_parser = subparsers.add_parser("sources")
    sources_sub = sources_parser.add_subparsers(dest="subcommand", required=True)
    sources_list = sources_sub.add_parser("list")
    sources_list.add_argument("--json", action="store_true")
    sources_list.set_defaults(func=cmd_sources)
    sources_add = sources_sub.add_parser("add")
    sources_add.add_argument("--config", help="JSON object/list, inline or a file path")
    sources_add.add_argument("--id")
    sources_add.add_argument("--name")
    sources_add.add_argument("--list-url")
    sources_add.add_argument("--base-url")
    sources_add.add_argument("--pattern", action="append")
    sources_add.add_argument("--refresh-minutes", type=int)
    sources_add.set_defaults(func=cmd_sources)

    refresh_parser = subparsers.add_parser("refresh")
    refresh_parser.add_argument("--source", action="append")
    refresh_parser.add_argument("--force", action="store_true")
    refresh_parser.set_defaults(func=cmd_refresh)

    run_parser = subparsers.add_parser("run")
    run_parser.set_defaults(func=cmd_run)

    articles_parser = subparsers.add_parser("articles")
    articles_parser.add_argument("--source", action="append")
    articles_parser.add_argument("--limit", type=int)
    articles_parser.add_argument("--json", action="store_true")
    articles_parser.set_defaults(func=cmd_articles)

    article_parser = subparsers.add_parser("article")
    article_parser.add_argument("url")
    article_parser.add_argument("--json", action="store_true")
    article_parser.set_defaults(func=cmd_article)

    prune_parser = subparsers.add_parser("prune")
    prune_parser.set_defaults(func=cmd_prune)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    _configure_logging(args.verbose)
    service = build_service(args)
    try:
        return args.func(service, args)
    except ValidationError as exc:
        print(f"invalid input: {exc}", file=sys.stderr)
        return 2
    except FetchError as exc:
        print(f"fetch failed: {exc}", file=sys.stderr)
        return 1
    except IngestError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        service.close()


if __name__ == "__main__":
    sys.exit(main())
