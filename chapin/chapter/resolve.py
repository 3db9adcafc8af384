"""Find or create the chapter a source file maps to."""

from __future__ import annotations

import logging

from chapin.errors import ChapterNotInManifest

from .book import Book
from .chapter import Chapter
from .formats import PipelineKind

logger = logging.getLogger(__name__)


def find_chapter(book: Book, kind: PipelineKind, key: str) -> Chapter | None:
    """Return the chapter of ``book`` identified by ``key``, if any.

    XML chapters are matched on ``xml_id`` and markdown chapters on
    ``file_name``.
    """

    for chapter in book.chapters:
        if kind is PipelineKind.XML and chapter.xml_id == key:
            return chapter
        if kind is PipelineKind.MARKDOWN and chapter.file_name == key:
            return chapter
    return None


def _new_position(book: Book, kind: PipelineKind, key: str) -> int:
    """Return the position given to a chapter created from ``key``.

    XML chapters are appended after the existing ones. Markdown chapters
    take their place from the book manifest.
    """

    if kind is PipelineKind.XML:
        return len(book.chapters) + 1

    try:
        return book.manifest.index(key) + 1
    except ValueError:
        raise ChapterNotInManifest(
            f"{key!r} is not listed in the manifest of book {book.book_id!r}"
        ) from None


def resolve_chapter(book: Book, kind: PipelineKind, key: str) -> Chapter:
    """Find or create the chapter for ``key`` and clear its content.

    The position of an existing chapter is never changed.

    Args:
        book: Book owning the chapter.
        kind: Pipeline the source goes through.
        key: Chapter identifier (XML) or source file name (markdown).

    Returns:
        The chapter, emptied of elements, figures and notes.
    """

    chapter = find_chapter(book, kind, key)

    if chapter is None:
        position = _new_position(book, kind, key)
        if kind is PipelineKind.XML:
            chapter = Chapter(position=position, xml_id=key)
        else:
            chapter = Chapter(position=position, file_name=key)
        book.chapters.append(chapter)
        logger.info(f"Created chapter {key!r} at position {position}")
    else:
        logger.info(
            f"Re-importing chapter {key!r} at position {chapter.position}"
        )

    chapter.reset_content()
    return chapter
