"""Footnote attached to a chapter."""

from __future__ import annotations

from attrs import define


@define(slots=True)
class Note:
    """Footnote attached to a chapter.

    Attributes:
        number: Footnote number in order of appearance.
        text: Plain text of the note.
        html: Markup of the note body.
    """

    number: int
    text: str
    html: str = ""
