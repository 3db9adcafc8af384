"""Import one chapter source into its book."""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import TYPE_CHECKING

from attrs import define

from .book import Book
from .chapter import Chapter
from .counters import CounterState
from .formats import PipelineKind, detect_format
from .resolve import find_chapter, resolve_chapter
from .transform import transform_source
from .types import ElementList, ElementWalker, FigureList, NoteList
from .walker import process_element

if TYPE_CHECKING:
    from chapin.attachments import AttachmentStore
    from chapin.render_cache import RenderCache
    from chapin.source_reader import SourceReader
    from chapin.store import BookStore

logger = logging.getLogger(__name__)


@define(slots=True)
class _ChapterSnapshot:
    """Content of an existing chapter before it is re-imported."""

    chapter: Chapter
    title: str
    elements: ElementList
    figures: FigureList
    notes: NoteList


def _snapshot(
    book: Book, kind: PipelineKind, key: str
) -> _ChapterSnapshot | None:
    chapter = find_chapter(book, kind, key)
    if chapter is None:
        return None
    return _ChapterSnapshot(
        chapter=chapter,
        title=chapter.title,
        elements=chapter.elements,
        figures=chapter.figures,
        notes=chapter.notes,
    )


def _restore(
    book: Book,
    kind: PipelineKind,
    key: str,
    snapshot: _ChapterSnapshot | None,
) -> None:
    """Undo in-memory changes of a failed import."""

    if snapshot is None:
        # Drop the chapter created by this run.
        created = find_chapter(book, kind, key)
        if created is not None:
            book.chapters.remove(created)
        return

    chapter = snapshot.chapter
    chapter.title = snapshot.title
    chapter.elements = snapshot.elements
    chapter.figures = snapshot.figures
    chapter.notes = snapshot.notes


def _localize_figure_sources(chapter: Chapter, file_path: str) -> None:
    """Make figure sources relative to the tree root instead of the file.

    Sources starting with ``/`` are already relative to the tree root.
    """

    base = posixpath.dirname(file_path)
    for figure in chapter.figures:
        if figure.is_remote:
            continue
        if figure.source.startswith("/"):
            figure.source = posixpath.normpath(figure.source.lstrip("/"))
        else:
            figure.source = posixpath.normpath(
                posixpath.join(base, figure.source)
            )


def process_chapter(
    book: Book,
    reader: SourceReader,
    file_path: str,
    store: BookStore,
    *,
    walker: ElementWalker = process_element,
    attachments: AttachmentStore | None = None,
    cache: RenderCache | None = None,
    stylesheet: Path | None = None,
) -> Chapter:
    """Import the chapter at ``file_path`` into ``book`` and save the book.

    Re-importing a source updates the chapter it created before: the
    chapter keeps its identity and position while title, elements, figures
    and notes are replaced.

    Args:
        book: Book receiving the chapter.
        reader: Source tree holding ``file_path``.
        file_path: Path of the chapter source inside the tree.
        store: Storage the book is saved to.
        walker: Callable turning one body block into chapter elements.
        attachments: Storage for figure images, if any.
        cache: Render cache to evict the chapter from after saving.
        stylesheet: XSLT file replacing the bundled chapter stylesheet.

    Returns:
        The populated chapter.

    Raises:
        UnsupportedFormat: ``file_path`` has an unknown extension.
        MalformedSource: The source cannot be converted.
        ElementProcessingFailure: The walker rejected a block.
        AttachmentPersistenceFailure: A figure image could not be stored;
            the book has already been saved at that point.
    """

    kind = detect_format(file_path)
    logger.info(f"Importing {file_path} as {kind.value}")

    raw = reader.read(file_path)
    source = transform_source(kind, raw, stylesheet)
    key = file_path if kind is PipelineKind.MARKDOWN else str(source.xml_id)

    snapshot = _snapshot(book, kind, key)
    try:
        chapter = resolve_chapter(book, kind, key)
        chapter.title = source.title

        state = CounterState.for_chapter(chapter)
        for node in source.nodes:
            walker(chapter, state, node)
        _localize_figure_sources(chapter, file_path)

        store.save(book)
    except Exception:
        _restore(book, kind, key, snapshot)
        raise

    logger.info(
        f"Imported chapter {chapter.position} {chapter.title!r}: "
        f"{len(chapter.elements)} elements, {state.figure_count} figures, "
        f"{state.listing_count} listings, {state.footnote_count} footnotes"
    )

    if cache is not None:
        cache.delete_matched(f"*chapters/{chapter.chapter_id}*")

    if attachments is not None:
        for figure in chapter.figures:
            attachments.finalize(figure)

    return chapter
