"""Breadth-first discovery of node_modules directories.

The tree is walked one level at a time: every directory in the current
level is listed concurrently, and the next level only starts once the whole
current level has been processed. Matched directories are never descended
into.
"""

import logging
import os
import stat
import threading
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Callable, Iterable

from npmrm.config import DEFAULT_IGNORE_NAMES
from npmrm.executor import TaskError, run_bounded
from npmrm.listing import list_dir

logger = logging.getLogger(__name__)

NODE_MODULES = "node_modules"
DEFAULT_DIR_CONCURRENCY = 32


class RootNotFoundError(FileNotFoundError):
    """The directory to scan does not exist."""


@dataclass(frozen=True)
class TraversalNode:
    """A directory waiting to be scanned and its distance from the root."""

    path: str
    depth: int


@dataclass
class _NodeResult:
    real_path: str | None = None
    matches: list[str] = field(default_factory=list)
    subdirs: list[TraversalNode] = field(default_factory=list)


class VisitedRealpaths:
    """Thread-safe set of canonical paths already walked.

    Only the level loop records paths, between levels, so workers within a
    level see a stable set.
    """

    def __init__(self):
        self._seen: set[str] = set()
        self._lock = threading.Lock()

    def add(self, real_path: str) -> bool:
        """Record a real path. Returns False if it was already recorded."""
        with self._lock:
            if real_path in self._seen:
                return False
            self._seen.add(real_path)
            return True

    def __contains__(self, real_path: str) -> bool:
        with self._lock:
            return real_path in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)


def resolve_root(root: str | Path) -> str:
    """
    Return the absolute form of the scan root.

    Raises:
        RootNotFoundError: If the root does not exist
    """
    absolute = os.path.abspath(os.path.expanduser(str(root)))
    if not os.path.exists(absolute):
        raise RootNotFoundError(f"Path does not exist: {absolute}")
    return absolute


def _is_dir_target(path: str) -> bool:
    try:
        return stat.S_ISDIR(os.stat(path).st_mode)
    except OSError as e:
        logger.debug("Dropping unresolvable symlink %s: %s", path, e)
        return False


def _scan_node(
    node: TraversalNode,
    follow_symlinks: bool,
    max_depth: int | None,
    visited: VisitedRealpaths | None,
    ignore_names: frozenset[str],
) -> _NodeResult:
    result = _NodeResult()

    if max_depth is not None and node.depth > max_depth:
        return result

    if visited is not None:
        try:
            real_path = os.path.realpath(node.path, strict=True)
        except OSError:
            return result
        if real_path in visited:
            logger.debug("Skipping %s, already visited as %s", node.path, real_path)
            return result
        result.real_path = real_path

    listing = list_dir(node.path)
    if not listing.ok:
        return result

    symlinks = []
    for entry in listing.entries:
        try:
            is_link = entry.is_symlink()
            is_dir = not is_link and entry.is_dir(follow_symlinks=False)
        except OSError:
            continue

        if not is_dir and not is_link:
            continue

        if entry.name == NODE_MODULES:
            # Matches are reported, never walked
            result.matches.append(entry.path)
            continue

        if entry.name in ignore_names:
            continue

        if is_dir:
            result.subdirs.append(TraversalNode(entry.path, node.depth + 1))
        elif follow_symlinks:
            symlinks.append(entry.path)

    for link in symlinks:
        if _is_dir_target(link):
            result.subdirs.append(TraversalNode(link, node.depth + 1))

    return result


def find_node_modules(
    root: str | Path,
    follow_symlinks: bool = False,
    max_depth: int | None = None,
    on_progress: Callable[[int, int], None] | None = None,
    concurrency: int = DEFAULT_DIR_CONCURRENCY,
    ignore_names: Iterable[str] = DEFAULT_IGNORE_NAMES,
) -> list[str]:
    """
    Find node_modules directories under a root.

    Walks the tree breadth-first, one level at a time, listing every directory
    of a level concurrently. Directories that cannot be read are skipped.

    Args:
        root: Directory to search (must exist, see resolve_root)
        follow_symlinks: Descend into symlinked directories, with cycle detection
        max_depth: Deepest level to list (0 lists only the root), None for unlimited
        on_progress: Optional callback(dirs_scanned, matches_found) after each level
        concurrency: Maximum directories listed at once
        ignore_names: Directory names never descended into

    Returns:
        Absolute paths of node_modules directories, shallowest levels first
    """
    root_abs = os.path.abspath(str(root))

    if os.path.basename(root_abs) == NODE_MODULES:
        if on_progress:
            on_progress(1, 1)
        return [root_abs]

    skip = frozenset(ignore_names)
    visited = VisitedRealpaths() if follow_symlinks else None
    matches: list[str] = []
    dirs_scanned = 0

    current_level = [TraversalNode(root_abs, 0)]

    while current_level:
        tasks = [
            partial(_scan_node, node, follow_symlinks, max_depth, visited, skip)
            for node in current_level
        ]
        level_results = run_bounded(tasks, concurrency)

        dirs_scanned += len(current_level)

        next_level: list[TraversalNode] = []
        for node, result in zip(current_level, level_results):
            if isinstance(result, TaskError):
                logger.debug("Scanning %s failed: %s", node.path, result)
                continue
            if visited is not None:
                # First alias in frontier order wins
                if result.real_path is None or not visited.add(result.real_path):
                    continue
            matches.extend(result.matches)
            next_level.extend(result.subdirs)

        logger.debug(
            "Level done: %d dirs scanned, %d node_modules found", dirs_scanned, len(matches)
        )
        if on_progress:
            on_progress(dirs_scanned, len(matches))

        current_level = next_level

    return matches
