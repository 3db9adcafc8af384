"""End-to-end tests for importing chapters into a book."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from chapin.attachments import AttachmentStore
from chapin.chapter import Book, Chapter, CounterState, process_chapter
from chapin.chapter.walker import process_element
from chapin.errors import (
    AttachmentPersistenceFailure,
    ElementProcessingFailure,
    MalformedSource,
    UnsupportedFormat,
)
from chapin.render_cache import RenderCache, chapter_cache_key
from chapin.source_reader import WorkingTreeReader
from chapin.store import BookStore

WriteSource = Callable[[str, Any], Path]


class FailingReader:
    """Reader that must never be used."""

    def read(self, path: str) -> bytes:
        raise AssertionError(f"unexpected read of {path}")


def test_unsupported_format_reads_nothing(store: BookStore) -> None:
    """An unknown extension fails before reading."""

    book = Book(book_id="b")

    with pytest.raises(UnsupportedFormat):
        process_chapter(book, FailingReader(), "notes.txt", store)

    assert not store.exists("b")


def test_xml_chapter_import(
    write_source: WriteSource,
    reader: WorkingTreeReader,
    store: BookStore,
    sample_xml: str,
) -> None:
    """An XML chapter is imported and saved."""

    write_source("book/intro.xml", sample_xml)
    book = store.create("b", title="Book")

    chapter = process_chapter(book, reader, "book/intro.xml", store)

    assert chapter.xml_id == "ch-intro"
    assert chapter.title == "Getting Started"
    assert chapter.position == 1
    assert chapter.figures[0].source == "book/images/arch.png"

    stored = store.load("b")
    assert len(stored.chapters) == 1
    assert stored.chapters[0].elements == chapter.elements


def test_xml_reimport_updates_single_chapter(
    write_source: WriteSource,
    reader: WorkingTreeReader,
    store: BookStore,
    sample_xml: str,
) -> None:
    """Re-importing XML replaces the chapter content."""

    write_source("intro.xml", sample_xml)
    book = store.create("b")
    first = process_chapter(book, reader, "intro.xml", store)

    write_source(
        "intro.xml",
        '<chapter id="ch-intro"><title>Renamed</title>'
        "<para>Only paragraph.</para></chapter>",
    )
    second = process_chapter(store.load("b"), reader, "intro.xml", store)

    stored = store.load("b")
    assert len(stored.chapters) == 1
    assert second.chapter_id == first.chapter_id
    assert stored.chapters[0].title == "Renamed"
    assert [e.kind for e in stored.chapters[0].elements] == ["paragraph"]
    assert stored.chapters[0].figures == []
    assert stored.chapters[0].notes == []


def test_xml_position_is_append_order(
    write_source: WriteSource, reader: WorkingTreeReader, store: BookStore
) -> None:
    """XML chapters are positioned in import order."""

    write_source("b.xml", '<chapter id="b"><title>B</title></chapter>')
    write_source("a.xml", '<chapter id="a"><title>A</title></chapter>')
    book = store.create("b")

    chapter_b = process_chapter(book, reader, "b.xml", store)
    chapter_a = process_chapter(book, reader, "a.xml", store)
    again_b = process_chapter(book, reader, "b.xml", store)

    assert (chapter_b.position, chapter_a.position) == (1, 2)
    assert again_b.position == 1


def test_xml_without_identifier_changes_nothing(
    write_source: WriteSource,
    reader: WorkingTreeReader,
    store: BookStore,
) -> None:
    """A malformed source leaves book and file untouched."""

    write_source("bad.xml", "<chapter><title>No id</title></chapter>")
    book = store.create("b")
    saved = store.path_for("b").read_text(encoding="utf-8")

    with pytest.raises(MalformedSource):
        process_chapter(book, reader, "bad.xml", store)

    assert book.chapters == []
    assert store.path_for("b").read_text(encoding="utf-8") == saved


def test_markdown_without_title(
    write_source: WriteSource, reader: WorkingTreeReader, store: BookStore
) -> None:
    """A markdown chapter without h1 gets an empty title."""

    write_source("intro.md", "Some text without a heading.\n")
    book = store.create("b", manifest=["intro.md"])

    chapter = process_chapter(book, reader, "intro.md", store)

    assert chapter.title == ""
    assert chapter.file_name == "intro.md"


def test_markdown_manifest_reorder_keeps_positions(
    write_source: WriteSource, reader: WorkingTreeReader, store: BookStore
) -> None:
    """Reordering the manifest keeps existing positions."""

    write_source("intro.md", "# Intro\n\nHello.\n")
    write_source("ch1.md", "# One\n\nText.\n")
    book = store.create("b", manifest=["intro.md", "ch1.md"])

    ch1 = process_chapter(book, reader, "ch1.md", store)
    assert ch1.position == 2

    book = store.load("b")
    book.manifest = ["ch1.md", "intro.md"]
    process_chapter(book, reader, "intro.md", store)
    again = process_chapter(book, reader, "ch1.md", store)

    stored = store.load("b")
    positions = {c.file_name: c.position for c in stored.chapters}
    assert positions["ch1.md"] == 2
    assert again.position == 2
    assert len(stored.chapters) == 2


def test_markdown_import_numbers_from_position(
    write_source: WriteSource,
    reader: WorkingTreeReader,
    store: BookStore,
    sample_markdown: str,
) -> None:
    """Labels start from the manifest position."""

    write_source("chapters/one.md", sample_markdown)
    book = store.create("b", manifest=["preface.md", "chapters/one.md"])

    chapter = process_chapter(book, reader, "chapters/one.md", store)

    labels = [e.label for e in chapter.elements if e.label]
    assert labels == ["2.1", "Listing 2.1", "2.1.1", "Figure 2.1", "2.2"]
    assert chapter.figures[0].source == "chapters/images/diagram.png"


def test_walker_receives_fresh_state(
    write_source: WriteSource, reader: WorkingTreeReader, store: BookStore
) -> None:
    """Each import gets a new counter state."""

    write_source(
        "c.xml", '<chapter id="c"><title>C</title><para>x</para></chapter>'
    )
    book = store.create("b")
    book.chapters.append(Chapter(position=1, xml_id="other"))
    states: list[CounterState] = []

    def walker(chapter: Chapter, state: CounterState, node: Any) -> None:
        states.append(state)
        assert state.section_count[0] == chapter.position
        process_element(chapter, state, node)

    process_chapter(book, reader, "c.xml", store, walker=walker)
    process_chapter(book, reader, "c.xml", store, walker=walker)

    assert states[0] is not states[1]
    assert states[1].section_count == [2, 0]


def test_walker_failure_keeps_previous_chapter(
    write_source: WriteSource,
    reader: WorkingTreeReader,
    store: BookStore,
) -> None:
    """A walker error restores the previous chapter."""

    write_source("intro.md", "# Intro\n\nFirst version.\n")
    book = store.create("b", manifest=["intro.md"])
    chapter = process_chapter(book, reader, "intro.md", store)
    previous_elements = list(chapter.elements)
    saved = store.path_for("b").read_text(encoding="utf-8")

    write_source("intro.md", "# Changed\n\n![broken]()\n")
    with pytest.raises(ElementProcessingFailure):
        process_chapter(book, reader, "intro.md", store)

    assert chapter.title == "Intro"
    assert chapter.elements == previous_elements
    assert store.path_for("b").read_text(encoding="utf-8") == saved


def test_walker_failure_drops_new_chapter(
    write_source: WriteSource, reader: WorkingTreeReader, store: BookStore
) -> None:
    """A walker error removes a newly created chapter."""

    write_source("intro.md", "![broken]()\n")
    book = store.create("b", manifest=["intro.md"])

    with pytest.raises(ElementProcessingFailure):
        process_chapter(book, reader, "intro.md", store)

    assert book.chapters == []
    assert store.load("b").chapters == []


def test_cache_is_invalidated_after_save(
    write_source: WriteSource, reader: WorkingTreeReader, store: BookStore
) -> None:
    """Only the chapter namespace is evicted."""

    write_source(
        "c.xml", '<chapter id="c"><title>C</title><para>x</para></chapter>'
    )
    book = store.create("b")
    chapter = process_chapter(book, reader, "c.xml", store)

    cache = RenderCache()
    cache.set(chapter_cache_key(chapter), "stale")
    cache.set(f"books/b/{chapter_cache_key(chapter, 'toc')}", "stale")
    cache.set("chapters/someone-else", "fresh")

    process_chapter(book, reader, "c.xml", store, cache=cache)

    assert cache.get(chapter_cache_key(chapter)) is None
    assert cache.get(f"books/b/{chapter_cache_key(chapter, 'toc')}") is None
    assert cache.get("chapters/someone-else") == "fresh"


def test_figure_attachments_are_stored(
    tmp_path: Path,
    write_source: WriteSource,
    reader: WorkingTreeReader,
    store: BookStore,
    sample_markdown: str,
) -> None:
    """Figure images are copied after the import."""

    write_source("one.md", sample_markdown)
    write_source("images/diagram.png", b"\x89PNG data")
    book = store.create("b", manifest=["one.md"])
    attachments = AttachmentStore(tmp_path / "attachments", reader)

    chapter = process_chapter(
        book, reader, "one.md", store, attachments=attachments
    )

    stored = attachments.path_for(chapter.figures[0])
    assert stored is not None
    assert stored.read_bytes() == b"\x89PNG data"


def test_attachment_failure_after_save(
    tmp_path: Path,
    write_source: WriteSource,
    reader: WorkingTreeReader,
    store: BookStore,
    sample_markdown: str,
) -> None:
    """The book stays saved when an image cannot be stored."""

    write_source("one.md", sample_markdown)
    book = store.create("b", manifest=["one.md"])
    attachments = AttachmentStore(tmp_path / "attachments", reader)

    with pytest.raises(AttachmentPersistenceFailure):
        process_chapter(book, reader, "one.md", store, attachments=attachments)

    # The chapter was saved before the attachment step failed.
    assert store.load("b").chapters[0].title == "Chapter One"


def test_nested_figure_source_is_localized(
    write_source: WriteSource, reader: WorkingTreeReader, store: BookStore
) -> None:
    """Figures found inside other blocks get tree-relative sources too."""

    write_source("chapters/a.md", "# A\n\n> ![Pic](img/p.png)\n")
    book = store.create("b", manifest=["chapters/a.md"])

    chapter = process_chapter(book, reader, "chapters/a.md", store)

    assert [f.source for f in chapter.figures] == ["chapters/img/p.png"]
    assert store.load("b").chapters[0].figures == chapter.figures
