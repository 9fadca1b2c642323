"""User configuration for npmrm."""

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(os.path.expanduser("~/.npmrm"))
CONFIG_FILE = CONFIG_DIR / "config.json"

# Directory names never descended into while searching
DEFAULT_IGNORE_NAMES = [".git", ".cache"]


class Settings(BaseModel):
    """Concurrency ceilings and retry policy.

    Directory reads, stat calls, size jobs and deletions each have their own
    limit. Deletion stays low because removing large trees is heavy on
    metadata I/O and file descriptors.
    """

    dir_concurrency: int = Field(32, ge=1, description="Parallel directory reads")
    stat_concurrency: int = Field(64, ge=1, description="Parallel stat calls")
    size_concurrency: int = Field(8, ge=1, description="node_modules measured at once")
    delete_concurrency: int = Field(4, ge=1, description="Parallel deletions")
    delete_retries: int = Field(3, ge=0, description="Retries per failed deletion")
    retry_delay: float = Field(0.2, ge=0, description="Seconds between deletion retries")
    ignore_names: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IGNORE_NAMES),
        description="Directory names skipped while searching",
    )


def load_settings(path: Path | None = None) -> Settings:
    """
    Load settings from a JSON file.

    A missing file gives the defaults. An unreadable or invalid file is
    reported and the defaults are used instead.

    Args:
        path: Settings file (defaults to ~/.npmrm/config.json)

    Returns:
        Settings for this run
    """
    config_file = path or CONFIG_FILE
    if not config_file.exists():
        return Settings()

    try:
        with open(config_file) as f:
            data = json.load(f)
        return Settings.model_validate(data)
    except (json.JSONDecodeError, OSError, ValidationError) as e:
        logger.warning("Ignoring invalid config file %s: %s", config_file, e)
        return Settings()
