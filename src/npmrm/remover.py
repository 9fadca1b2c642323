"""Removal of node_modules directories with retries."""

import logging
import os
import shutil
import threading
import time
from functools import partial
from typing import Callable

from npmrm.executor import TaskError, run_bounded
from npmrm.models import DeletionOutcome, DeletionSummary

logger = logging.getLogger(__name__)

DEFAULT_DELETE_CONCURRENCY = 4
DEFAULT_RETRIES = 3
DEFAULT_RETRY_DELAY = 0.2


def delete_tree(path: str) -> None:
    """Delete a directory tree, or just the link if ``path`` is a symlink."""
    if os.path.islink(path):
        os.unlink(path)
    else:
        shutil.rmtree(path)


def remove_dir(
    path: str,
    retries: int = DEFAULT_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    remove: Callable[[str], None] | None = None,
) -> DeletionOutcome:
    """
    Remove a directory, retrying transient failures.

    A path that is already gone counts as removed.

    Args:
        path: Directory to remove
        retries: Extra attempts after the first failure
        retry_delay: Seconds to wait between attempts
        remove: Function performing one removal attempt (default: delete_tree)

    Returns:
        DeletionOutcome with success flag, error and attempt count
    """
    remove = remove or delete_tree
    attempts = 0
    while True:
        attempts += 1
        try:
            remove(path)
            return DeletionOutcome(path=path, success=True, attempts=attempts)
        except FileNotFoundError as e:
            if not os.path.lexists(path):
                return DeletionOutcome(path=path, success=True, attempts=attempts)
            error = e
        except OSError as e:
            error = e

        if attempts > retries:
            logger.warning("Failed to remove %s after %d attempts: %s", path, attempts, error)
            return DeletionOutcome(
                path=path, success=False, error=str(error), attempts=attempts
            )

        logger.debug("Retrying removal of %s (attempt %d): %s", path, attempts, error)
        time.sleep(retry_delay)


def remove_all(
    paths: list[str],
    on_progress: Callable[[str, int], None] | None = None,
    concurrency: int = DEFAULT_DELETE_CONCURRENCY,
    retries: int = DEFAULT_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    remove: Callable[[str], None] | None = None,
) -> DeletionSummary:
    """
    Remove directories in parallel with a low concurrency ceiling.

    One failed removal does not stop the others.

    Args:
        paths: Directories to remove
        on_progress: Optional callback(path, completed) as each removal finishes
        concurrency: Maximum removals at once
        retries: Extra attempts per directory
        retry_delay: Seconds between attempts
        remove: Function performing one removal attempt

    Returns:
        DeletionSummary with one outcome per path, in input order
    """
    completed = 0
    lock = threading.Lock()

    def run(path: str) -> DeletionOutcome:
        nonlocal completed
        outcome = remove_dir(path, retries=retries, retry_delay=retry_delay, remove=remove)
        with lock:
            completed += 1
            done = completed
        if on_progress:
            on_progress(path, done)
        return outcome

    results = run_bounded([partial(run, p) for p in paths], concurrency)

    outcomes = [
        DeletionOutcome(path=path, success=False, error=str(r), attempts=0)
        if isinstance(r, TaskError)
        else r
        for path, r in zip(paths, results)
    ]
    return DeletionSummary(outcomes=outcomes)
