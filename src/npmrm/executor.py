"""Bounded parallel execution of independent units of work."""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Sequence, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class TaskError:
    """Error captured from a unit of work that raised."""

    error: Exception

    def __str__(self) -> str:
        return str(self.error)


def run_bounded(
    tasks: Sequence[Callable[[], T]],
    limit: int,
) -> list[Union[T, TaskError]]:
    """
    Run tasks with at most ``limit`` of them in flight at once.

    Workers repeatedly claim the next unclaimed task from a shared cursor
    until every task has been claimed. A task that raises does not stop
    its siblings; its slot holds a TaskError instead.

    Args:
        tasks: Zero-argument callables to run
        limit: Maximum number of tasks running concurrently (>= 1)

    Returns:
        One result per task, in the same order as ``tasks``
    """
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")

    total = len(tasks)
    results: list = [None] * total
    if total == 0:
        return results

    cursor = 0
    lock = threading.Lock()

    def claim() -> int | None:
        nonlocal cursor
        with lock:
            if cursor >= total:
                return None
            index = cursor
            cursor += 1
            return index

    def worker() -> None:
        while (index := claim()) is not None:
            try:
                results[index] = tasks[index]()
            except Exception as e:
                results[index] = TaskError(e)

    workers = min(limit, total)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(worker) for _ in range(workers)]
        for future in futures:
            future.result()

    return results
