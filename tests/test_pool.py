from __future__ import annotations

import threading
import time

import pytest

from news_ingest.pool import run_bounded


def test_results_keep_input_order():
    def task(value: int) -> int:
        time.sleep(0.01 * (5 - value))
        return value * 10

    assert run_bounded(3, range(5), task) == [0, 10, 20, 30, 40]


def test_never_exceeds_limit():
    lock = threading.Lock()
    state = {"active": 0, "peak": 0}

    def task(_: int) -> None:
        with lock:
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
        time.sleep(0.02)
        with lock:
            state["active"] -= 1

    run_bounded(2, range(8), task)
    assert 1 <= state["peak"] <= 2


def test_failure_is_reraised():
    def task(value: int) -> int:
        if value == 2:
            raise RuntimeError("boom")
        return value

    with pytest.raises(RuntimeError, match="boom"):
        run_bounded(2, range(4), task)


def test_empty_input_and_invalid_limit():
    assert run_bounded(3, [], lambda item: item) == []
    with pytest.raises(ValueError):
        run_bounded(0, [1], lambda item: item)
