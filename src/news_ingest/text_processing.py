from __future__ import annotations

import hashlib
import re

from bs4 import BeautifulSoup

_WHITESPACE_RE = re.compile(r"\s+")


def clean_text(value: str | None) -> str:
    if not value:
        return ""
    return _WHITESPACE_RE.sub(" ", str(value)).strip()


def strip_html(value: str | None) -> str:
    if not value:
        return ""
    text = BeautifulSoup(str(value), "lxml").get_text(" ")
    return clean_text(text)


def hash_url(url: str) -> str:
    return hashlib.sha1(url.encode("utf-8")).hexdigest()[:16]
