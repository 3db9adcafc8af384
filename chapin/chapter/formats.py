"""Select the conversion pipeline from a chapter file name."""

from __future__ import annotations

import enum
from pathlib import PurePosixPath

from chapin.errors import UnsupportedFormat


class PipelineKind(enum.Enum):
    """Conversion pipelines a chapter source can go through."""

    XML = "xml"
    MARKDOWN = "markdown"


# Extensions handled by each pipeline.
EXTENSIONS: dict[str, PipelineKind] = {
    ".markdown": PipelineKind.MARKDOWN,
    ".md": PipelineKind.MARKDOWN,
    ".xml": PipelineKind.XML,
}


def detect_format(file_name: str) -> PipelineKind:
    """Return the pipeline that converts ``file_name``.

    Args:
        file_name: Name or path of the chapter source.

    Returns:
        The matching ``PipelineKind``.

    Raises:
        UnsupportedFormat: The extension is not a known chapter format.
    """

    suffix = PurePosixPath(file_name).suffix.lower()
    try:
        return EXTENSIONS[suffix]
    except KeyError:
        raise UnsupportedFormat(
            f"Unknown chapter format for {file_name!r}"
        ) from None
