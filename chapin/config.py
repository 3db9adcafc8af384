"""Locations used by chapin, taken from the environment."""

from __future__ import annotations

import os
from pathlib import Path

# Environment variable naming the data directory.
HOME_ENV = "CHAPIN_HOME"


def home_dir() -> Path:
    """Return the data directory, ``~/.chapin`` unless overridden."""

    return Path(os.environ.get(HOME_ENV, Path.home() / ".chapin"))


def books_dir() -> Path:
    """Directory holding stored books."""

    return home_dir() / "books"


def attachments_dir() -> Path:
    """Directory holding figure attachments."""

    return home_dir() / "attachments"


def source_cache_dir() -> Path:
    """Directory caching files fetched from remote trees."""

    return home_dir() / "cache"
