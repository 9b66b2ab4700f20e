from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
_SRC = _ROOT / "src"
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

FIXTURES = Path(__file__).resolve().parent / "fixtures"


class FakeResponse:
    def __init__(
        self,
        body: str | bytes = b"",
        status_code: int = 200,
        content_type: str = "text/html; charset=utf-8",
    ) -> None:
        self.status_code = status_code
        self.headers = {"content-type": content_type}
        self.encoding = "utf-8"
        self.content = body.encode("utf-8") if isinstance(body, str) else body
        self.closed = False

    def iter_content(self, chunk_size=1024):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start : start + chunk_size]

    def json(self):
        return json.loads(self.content.decode("utf-8"))

    def close(self):
        self.closed = True


class FakeWeb:
    """Session stand-in routing GETs by URL; unknown URLs answer 404.

    A route holding several responses serves them in order and then keeps
    repeating the last one. Exceptions in a route are raised.
    """

    def __init__(self) -> None:
        self.routes: dict[str, list] = {}
        self.calls: list[str] = []
        self.params: list = []
        self.headers: dict[str, str] = {}

    def add(self, url, body="", status=200, content_type="text/html; charset=utf-8"):
        self.routes.setdefault(url, []).append(FakeResponse(body, status, content_type))
        return self

    def add_json(self, url, data, status=200):
        return self.add(url, json.dumps(data), status, "application/json; charset=utf-8")

    def fail(self, url, exc):
        self.routes.setdefault(url, []).append(exc)
        return self

    def hits(self, url) -> int:
        return self.calls.count(url)

    def get(self, url, headers=None, timeout=None, stream=False, params=None):
        self.calls.append(url)
        self.params.append(params)
        queue = self.routes.get(url)
        if not queue:
            return FakeResponse(b"not found", status_code=404)
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def web() -> FakeWeb:
    return FakeWeb()


@pytest.fixture
def fixture_text():
    def load(name: str) -> str:
        return (FIXTURES / name).read_text(encoding="utf-8")

    return load
