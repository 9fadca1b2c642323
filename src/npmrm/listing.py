"""Directory listing with failures reported as data."""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class DirListing:
    """Entries of one directory, or the reason they could not be read."""

    path: str
    entries: list[os.DirEntry] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def list_dir(path: str) -> DirListing:
    """List a directory, turning permission/race/not-a-directory errors into a failed listing."""
    try:
        with os.scandir(path) as entries:
            return DirListing(path=path, entries=list(entries))
    except OSError as e:
        logger.debug("Cannot list %s: %s", path, e)
        return DirListing(path=path, error=str(e) or type(e).__name__)
