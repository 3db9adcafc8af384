"""Common type aliases for chapter structures."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from bs4 import Tag  # noqa: F401

    from .chapter import Chapter  # noqa: F401
    from .counters import CounterState  # noqa: F401
    from .element import Element  # noqa: F401
    from .figure import Figure  # noqa: F401
    from .note import Note  # noqa: F401


ElementList = list["Element"]
FigureList = list["Figure"]
NoteList = list["Note"]
ChapterList = list["Chapter"]
NodeList = list["Tag"]
SectionPath = list[int]
ElementWalker = Callable[["Chapter", "CounterState", "Tag"], None]
