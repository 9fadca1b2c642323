"""Directory size calculation with batched, parallel stat calls."""

import logging
import os
import stat
import threading
from dataclasses import dataclass
from functools import partial
from typing import Callable

from npmrm.executor import TaskError, run_bounded
from npmrm.listing import DirListing, list_dir
from npmrm.models import SizeResult

logger = logging.getLogger(__name__)

DEFAULT_DIR_CONCURRENCY = 32
DEFAULT_STAT_CONCURRENCY = 64
DEFAULT_SIZE_CONCURRENCY = 8


@dataclass(frozen=True)
class _EntryStat:
    path: str
    is_dir: bool
    is_file: bool
    size: int


def _stat_entry(path: str, follow: bool) -> _EntryStat | None:
    try:
        st = os.stat(path) if follow else os.lstat(path)
    except OSError as e:
        logger.debug("Cannot stat %s: %s", path, e)
        return None
    return _EntryStat(
        path=path,
        is_dir=stat.S_ISDIR(st.st_mode),
        is_file=stat.S_ISREG(st.st_mode),
        size=st.st_size,
    )


def _list_unvisited(path: str, seen: set[str], lock: threading.Lock) -> DirListing:
    try:
        real_path = os.path.realpath(path, strict=True)
    except OSError as e:
        return DirListing(path=path, error=str(e))
    with lock:
        if real_path in seen:
            return DirListing(path=path)
        seen.add(real_path)
    return list_dir(path)


def get_dir_size_bytes(
    path: str,
    follow_symlinks: bool = False,
    dir_concurrency: int = DEFAULT_DIR_CONCURRENCY,
    stat_concurrency: int = DEFAULT_STAT_CONCURRENCY,
) -> int:
    """
    Calculate the total size of all files under a directory.

    Processes the tree breadth-first: each round lists every pending directory
    in parallel, then stats every file found in parallel. Everything below
    ``path`` is measured, including nested node_modules. Entries that cannot be
    listed or stat'ed inside the tree count as zero.

    Symlinks are ignored unless ``follow_symlinks`` is set; then their targets
    are counted and symlinked directories are walked once per real path.

    Args:
        path: Directory to measure
        follow_symlinks: Count symlink targets
        dir_concurrency: Maximum directories listed at once
        stat_concurrency: Maximum stat calls at once

    Returns:
        Total size in bytes (sum of st_size, no block rounding)

    Raises:
        OSError: If ``path`` itself cannot be listed
    """
    top = list_dir(path)
    if not top.ok:
        raise OSError(f"Cannot read {path}: {top.error}")

    seen: set[str] = set()
    seen_lock = threading.Lock()
    if follow_symlinks:
        seen.add(os.path.realpath(path))

    total = 0
    listings: list = [top]

    while listings:
        next_dirs: list[str] = []
        stat_tasks = []

        for listing in listings:
            if isinstance(listing, TaskError) or not listing.ok:
                continue
            for entry in listing.entries:
                try:
                    if entry.is_symlink():
                        if follow_symlinks:
                            stat_tasks.append(partial(_stat_entry, entry.path, True))
                    elif entry.is_dir(follow_symlinks=False):
                        next_dirs.append(entry.path)
                    elif entry.is_file(follow_symlinks=False):
                        stat_tasks.append(partial(_stat_entry, entry.path, False))
                except OSError:
                    continue

        if stat_tasks:
            for result in run_bounded(stat_tasks, stat_concurrency):
                if result is None or isinstance(result, TaskError):
                    continue
                if result.is_file:
                    total += result.size
                elif result.is_dir:
                    next_dirs.append(result.path)

        if follow_symlinks:
            dir_tasks = [partial(_list_unvisited, d, seen, seen_lock) for d in next_dirs]
        else:
            dir_tasks = [partial(list_dir, d) for d in next_dirs]
        listings = run_bounded(dir_tasks, dir_concurrency) if dir_tasks else []

    return total


def measure_all(
    paths: list[str],
    follow_symlinks: bool = False,
    on_progress: Callable[[str, int], None] | None = None,
    concurrency: int = DEFAULT_SIZE_CONCURRENCY,
    dir_concurrency: int = DEFAULT_DIR_CONCURRENCY,
    stat_concurrency: int = DEFAULT_STAT_CONCURRENCY,
) -> list[SizeResult]:
    """
    Measure several directories in parallel.

    Args:
        paths: Directories to measure
        follow_symlinks: Count symlink targets
        on_progress: Optional callback(path, completed) as each directory finishes
        concurrency: Maximum directories measured at once
        dir_concurrency: Directory-read limit inside each measurement
        stat_concurrency: Stat limit inside each measurement

    Returns:
        One SizeResult per path, in input order
    """
    completed = 0
    lock = threading.Lock()

    def measure(path: str) -> SizeResult:
        nonlocal completed
        try:
            size = get_dir_size_bytes(path, follow_symlinks, dir_concurrency, stat_concurrency)
            result = SizeResult(path=path, size_bytes=size)
        except OSError as e:
            logger.info("Could not measure %s: %s", path, e)
            result = SizeResult(path=path, error=str(e))

        with lock:
            completed += 1
            done = completed
        if on_progress:
            on_progress(path, done)
        return result

    results = run_bounded([partial(measure, p) for p in paths], concurrency)

    return [
        SizeResult(path=path, error=str(r)) if isinstance(r, TaskError) else r
        for path, r in zip(paths, results)
    ]
