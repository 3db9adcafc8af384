"""Chapter embedded in a book."""

from __future__ import annotations

import uuid

from attrs import define, field

from .types import ElementList, FigureList, NoteList


def _new_chapter_id() -> str:
    return uuid.uuid4().hex


@define(slots=True)
class Chapter:
    """Chapter embedded in a book.

    A chapter is identified inside its book either by ``xml_id`` (XML
    sources) or by ``file_name`` (markdown sources); only one of them is
    set.

    Attributes:
        position: 1-based order of the chapter, fixed when first created.
        title: Title taken from the source on every import.
        xml_id: Identifier attribute of the XML ``chapter`` element.
        file_name: Path of the markdown source inside the tree.
        chapter_id: Opaque identifier, also used as cache namespace.
        elements: Ordered body elements.
        figures: Figures discovered in the body.
        notes: Footnotes discovered in the body.
    """

    position: int
    title: str = ""
    xml_id: str | None = None
    file_name: str | None = None
    chapter_id: str = field(factory=_new_chapter_id)
    elements: ElementList = field(factory=list, repr=False)
    figures: FigureList = field(factory=list, repr=False)
    notes: NoteList = field(factory=list, repr=False)

    def reset_content(self) -> None:
        """Drop all elements, figures and notes before a fresh import."""

        self.elements = []
        self.figures = []
        self.notes = []
