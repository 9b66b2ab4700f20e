from __future__ import annotations

import re
from datetime import datetime, timezone

from dateutil import parser as dateparser

_URL_DATE_RE = re.compile(r"/(\d{4})/(\d{2})/(\d{2})/")


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def now_utc() -> str:
    return to_iso(utcnow())


def to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0).isoformat()


def from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: str | None) -> str | None:
    """Parse a free-form date into a UTC ISO string, or None when unparseable."""
    if not value:
        return None
    try:
        parsed = dateparser.parse(str(value).strip())
    except (ValueError, OverflowError, TypeError):
        return None
    if parsed is None:
        return None
    return to_iso(parsed)


def published_at_from_url(url: str) -> str | None:
    match = _URL_DATE_RE.search(url)
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return to_iso(datetime(year, month, day, tzinfo=timezone.utc))
    except ValueError:
        return None
