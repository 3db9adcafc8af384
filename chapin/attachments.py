"""Store copies of figure images next to the saved books."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path, PurePosixPath

from chapin.chapter.figure import Figure
from chapin.errors import AttachmentPersistenceFailure, ChapinError
from chapin.source_reader import SourceReader

logger = logging.getLogger(__name__)


class AttachmentStore:
    """Copies figure images from the source tree into ``root``.

    The stored file is named after the SHA-1 of the figure source path, so
    a saved figure record is enough to locate its attachment and a
    re-import overwrites the previous copy.
    """

    def __init__(self, root: Path, reader: SourceReader) -> None:
        self.root = Path(root)
        self.reader = reader

    def path_for(self, figure: Figure) -> Path | None:
        """Return where the image of ``figure`` is stored, if anywhere."""

        if not figure.source or figure.is_remote:
            return None
        digest = hashlib.sha1(figure.source.encode("utf-8")).hexdigest()
        return self.root / f"{digest}{PurePosixPath(figure.source).suffix.lower()}"

    def finalize(self, figure: Figure) -> Path | None:
        """Persist the image of ``figure``.

        Returns:
            Location of the stored copy, ``None`` for remote images.

        Raises:
            AttachmentPersistenceFailure: The image could not be read or
                written.
        """

        target = self.path_for(figure)
        if target is None:
            return None

        try:
            content = self.reader.read(figure.source)
            self.root.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except (OSError, ChapinError) as exc:
            raise AttachmentPersistenceFailure(
                f"Cannot store image of {figure.label} ({figure.source}): {exc}"
            ) from exc

        logger.debug(f"Stored {figure.source} as {target.name}")
        return target
