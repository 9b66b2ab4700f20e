from __future__ import annotations

import logging
import signal
import threading
from typing import Any

logger = logging.getLogger(__name__)


def heartbeat_loop(stop_event: threading.Event, interval_seconds: float) -> None:
    while not stop_event.wait(interval_seconds):
        logger.info("scheduler heartbeat")


def start_heartbeat(interval_seconds: float) -> tuple[threading.Event, threading.Thread]:
    stop_event = threading.Event()
    thread = threading.Thread(
        target=heartbeat_loop,
        args=(stop_event, interval_seconds),
        daemon=True,
    )
    thread.start()
    return stop_event, thread


def stop_heartbeat(stop_event: threading.Event, thread: threading.Thread) -> None:
    stop_event.set()
    thread.join(timeout=1)


class StopSignalHandler:
    """Sets ``stop_event`` on SIGINT/SIGTERM so the scheduler loop exits after its tick."""

    def __init__(self, stop_event: threading.Event) -> None:
        self._stop_event = stop_event
        self._previous_handlers: dict[int, Any] = {}
        self.interrupted = False

    def __enter__(self) -> "StopSignalHandler":
        self._install(signal.SIGTERM)
        self._install(signal.SIGINT)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()
        return False

    def _install(self, signum: signal.Signals) -> None:
        self._previous_handlers[int(signum)] = signal.getsignal(signum)
        signal.signal(signum, self._handle)

    def _handle(self, signum, frame) -> None:
        self.interrupted = True
        logger.info("scheduler stopping signal=%s", signal.Signals(signum).name)
        self._stop_event.set()
