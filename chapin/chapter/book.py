"""Book owning an ordered set of chapters."""

from __future__ import annotations

from attrs import define, field

from .types import ChapterList


@define(slots=True)
class Book:
    """Book owning an ordered set of chapters.

    Attributes:
        book_id: Identifier of the book in the store.
        title: Human readable book title.
        manifest: Ordered markdown file names; the index of a file decides
            the position of the chapter created from it.
        chapters: Chapters embedded in the book.
    """

    book_id: str
    title: str = ""
    manifest: list[str] = field(factory=list)
    chapters: ChapterList = field(factory=list, repr=False)
