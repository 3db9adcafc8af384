"""Exceptions raised while importing chapters."""

from __future__ import annotations


class ChapinError(Exception):
    """Base class for all chapter import errors."""


class UnsupportedFormat(ChapinError, ValueError):
    """The file extension matches no known chapter format."""


class MalformedSource(ChapinError, ValueError):
    """The chapter source cannot be parsed or lacks required fields."""


class ChapterNotInManifest(MalformedSource):
    """A markdown chapter is not listed in the book manifest."""


class SourceReadError(ChapinError, OSError):
    """The chapter source could not be read from the tree."""


class ElementProcessingFailure(ChapinError):
    """A block of the chapter body could not be turned into an element."""


class AttachmentPersistenceFailure(ChapinError):
    """A figure attachment could not be stored after the book was saved."""


class BookNotFound(ChapinError, LookupError):
    """No stored book exists under the requested identifier."""
