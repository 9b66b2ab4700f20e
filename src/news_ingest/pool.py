from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def run_bounded(limit: int, items: Iterable[T], task: Callable[[T], R]) -> list[R]:
    """Run ``task`` over ``items`` with at most ``limit`` in flight.

    Results come back in input order. A failing task is re-raised here after
    the tasks that have not started yet are cancelled.
    """
    if limit < 1:
        raise ValueError("limit must be >= 1")
    queued = list(items)
    if not queued:
        return []
    if limit == 1 or len(queued) == 1:
        return [task(item) for item in queued]
    executor = ThreadPoolExecutor(max_workers=min(limit, len(queued)))
    futures: list[Future[R]] = [executor.submit(task, item) for item in queued]
    try:
        return [future.result() for future in futures]
    except BaseException:
        for future in futures:
            future.cancel()
        raise
    finally:
        executor.shutdown(wait=True)
