from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable

import requests

from .config import DEFAULT_USER_AGENT, Settings
from .errors import FetchCancelled, FetchError, ParseError
from .urls import swap_www

logger = logging.getLogger(__name__)

HTML_ACCEPT = "text/html,application/xhtml+xml"
FEED_ACCEPT = "application/rss+xml,application/atom+xml,application/xml;q=0.9,text/xml;q=0.8,*/*;q=0.5"
JSON_ACCEPT = "application/json"
RETRYABLE_STATUSES = frozenset({408, 429})
CHUNK_SIZE = 16 * 1024


class CancelToken:
    """Cooperative cancellation shared by every fetch of one unit of work.

    The token fires when ``cancel()`` is called or its deadline passes.
    """

    def __init__(
        self,
        timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._event = threading.Event()
        self._clock = clock
        self.deadline = clock() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self.deadline is not None and self._clock() >= self.deadline

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    def check(self, url: str | None = None) -> None:
        if self.cancelled:
            raise FetchCancelled(f"Cancelled fetching {url}" if url else "Cancelled", url=url)

    def sleep(self, seconds: float) -> None:
        remaining = self.remaining()
        wait_for = seconds if remaining is None else min(seconds, remaining)
        self._event.wait(max(0.0, wait_for))
        self.check()


def create_session(user_agent: str | None = None) -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = user_agent or DEFAULT_USER_AGENT
    return session


def is_retryable_status(status: int) -> bool:
    return status in RETRYABLE_STATUSES or status >= 500


def _decode(response: Any, body: bytes) -> str:
    content_type = str(response.headers.get("content-type", "")).lower()
    encoding = response.encoding if "charset" in content_type else None
    try:
        return body.decode(encoding or "utf-8", errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")


class Fetcher:
    def __init__(
        self,
        session: requests.Session | Any,
        settings: Settings | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.session = session
        self.settings = settings or Settings()
        self._sleep = sleep

    def fetch_bytes(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        max_attempts: int | None = None,
        token: CancelToken | None = None,
    ) -> tuple[Any, bytes]:
        attempts = max(1, max_attempts or self.settings.fetch_attempts)
        last_error: FetchError | None = None
        for attempt in range(1, attempts + 1):
            if token is not None:
                token.check(url)
            try:
                response, body = self._attempt(url, headers, token)
            except FetchCancelled:
                raise
            except FetchError as exc:
                if exc.status is not None and not is_retryable_status(exc.status):
                    raise
                last_error = exc
            else:
                return response, body
            if attempt < attempts:
                logger.debug("retrying %s attempt=%s error=%s", url, attempt, last_error)
                self._backoff(self.settings.retry_backoff_sec * attempt, token)
        raise last_error or FetchError(f"Failed to fetch {url}", url=url)

    def fetch_text(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        max_attempts: int | None = None,
        token: CancelToken | None = None,
    ) -> str:
        merged = {"Accept": HTML_ACCEPT, **(headers or {})}
        response, body = self.fetch_bytes(url, merged, max_attempts, token)
        return _decode(response, body)

    def fetch_json(
        self,
        url: str,
        max_attempts: int | None = None,
        token: CancelToken | None = None,
    ) -> Any:
        response, body = self.fetch_bytes(url, {"Accept": JSON_ACCEPT}, max_attempts, token)
        try:
            return json.loads(_decode(response, body))
        except ValueError as exc:
            raise ParseError(f"Invalid JSON from {url}: {exc}") from exc

    def fetch_with_host_swap(self, url: str, token: CancelToken | None = None) -> str:
        """Fetch a list page, retrying once on the www-toggled host when it fails."""
        try:
            return self.fetch_text(url, token=token)
        except FetchCancelled:
            raise
        except FetchError:
            alternate = swap_www(url)
            if not alternate or alternate == url:
                raise
            logger.debug("host swap %s -> %s", url, alternate)
            return self.fetch_text(alternate, token=token)

    def _timeout(self, token: CancelToken | None, url: str) -> float:
        timeout = self.settings.fetch_timeout_sec
        remaining = token.remaining() if token is not None else None
        if remaining is not None:
            if remaining <= 0:
                raise FetchCancelled(f"Cancelled fetching {url}", url=url)
            timeout = min(timeout, remaining)
        return timeout

    def _attempt(
        self,
        url: str,
        headers: dict[str, str] | None,
        token: CancelToken | None,
    ) -> tuple[Any, bytes]:
        timeout = self._timeout(token, url)
        try:
            response = self.session.get(url, headers=headers, timeout=timeout, stream=True)
        except requests.Timeout as exc:
            raise FetchError(f"Timed out fetching {url}", url=url) from exc
        except requests.RequestException as exc:
            raise FetchError(f"Failed to fetch {url}: {exc}", url=url) from exc
        try:
            status = int(response.status_code)
            if not 200 <= status < 300:
                raise FetchError(f"Failed to fetch {url}: {status}", url=url, status=status)
            chunks: list[bytes] = []
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if token is not None:
                    token.check(url)
                if chunk:
                    chunks.append(chunk)
            return response, b"".join(chunks)
        except requests.RequestException as exc:
            raise FetchError(f"Failed to read {url}: {exc}", url=url) from exc
        finally:
            response.close()

    def _backoff(self, seconds: float, token: CancelToken | None) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
            if token is not None:
                token.check()
            return
        if token is not None:
            token.sleep(seconds)
            return
        time.sleep(seconds)
