"""Numbering state threaded through one chapter import."""

from __future__ import annotations

from attrs import define

from .chapter import Chapter
from .types import SectionPath


@define(slots=True)
class CounterState:
    """Numbering state threaded through one chapter import.

    The state is created fresh for every run and never stored with the
    chapter.

    For the first chapter of a book ``section_count`` starts as ``[1, 0]``,
    becomes ``[1, 1]`` in the first section, ``[1, 1, 1]`` in its first
    sub-section and ``[1, 2]`` in the next top-level section.

    Attributes:
        section_count: Path of the current section, chapter position first.
        footnote_count: Footnotes seen so far.
        figure_count: Figures seen so far.
        listing_count: Code listings seen so far.
    """

    section_count: SectionPath
    footnote_count: int = 0
    figure_count: int = 0
    listing_count: int = 0

    @property
    def position(self) -> int:
        """Position of the chapter being numbered."""

        return self.section_count[0]

    @classmethod
    def for_chapter(cls, chapter: Chapter) -> CounterState:
        """Return the initial state for ``chapter``."""

        return cls(section_count=[chapter.position, 0])

    def next_figure(self) -> int:
        self.figure_count += 1
        return self.figure_count

    def next_listing(self) -> int:
        self.listing_count += 1
        return self.listing_count

    def next_footnote(self) -> int:
        self.footnote_count += 1
        return self.footnote_count

    def section_label(self) -> str:
        """Render the current section path as ``3.1.2``."""

        return ".".join(str(part) for part in self.section_count)
