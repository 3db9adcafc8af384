"""Read chapter sources from a local checkout or a remote tree."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path, PurePosixPath
from typing import Protocol

import requests  # type: ignore[import-untyped]

from chapin.config import source_cache_dir
from chapin.errors import SourceReadError

logger = logging.getLogger(__name__)


class SourceReader(Protocol):
    """Anything able to return the bytes of a file in a source tree."""

    def read(self, path: str) -> bytes: ...


class WorkingTreeReader:
    """Read files from a checked out working tree.

    Args:
        root: Directory of the working tree.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def read(self, path: str) -> bytes:
        """Return the content of ``path`` relative to the tree root.

        Raises:
            SourceReadError: The path leaves the tree or cannot be read.
        """

        root = self.root.resolve()
        target = (root / path).resolve()
        if not target.is_relative_to(root):
            raise SourceReadError(f"{path!r} is outside of {root}")

        try:
            return target.read_bytes()
        except OSError as exc:
            raise SourceReadError(f"Cannot read {path!r}: {exc}") from exc


class RemoteTreeReader:
    """Read files served as raw content below ``base_url``.

    Downloaded files are cached on disk; a cached file is never fetched
    again.

    Args:
        base_url: URL of the tree root, e.g. a raw file endpoint of a
            repository at a given revision.
        cache_dir: Directory used for caching downloaded files.
    """

    def __init__(self, base_url: str, cache_dir: Path | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.cache_dir = cache_dir or source_cache_dir()

    def _cache_file(self, path: str) -> Path:
        digest = hashlib.sha1(
            f"{self.base_url}/{path}".encode("utf-8")
        ).hexdigest()
        return self.cache_dir / f"{digest}{PurePosixPath(path).suffix}"

    def read(self, path: str) -> bytes:
        """Return the content of ``path``, using the local cache when possible.

        Raises:
            SourceReadError: The file could not be downloaded.
        """

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        cache_file = self._cache_file(path)

        if cache_file.exists():
            return cache_file.read_bytes()

        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.info(f"Fetching {url}")
        try:
            response = requests.get(url, timeout=30)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise SourceReadError(f"Cannot fetch {url}: {exc}") from exc

        content = response.content
        cache_file.write_bytes(content)
        return content
