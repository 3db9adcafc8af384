"""Typed block element of a chapter body."""

from __future__ import annotations

from attrs import define


@define(slots=True)
class Element:
    """Typed block element of a chapter body.

    Attributes:
        kind: ``section``, ``paragraph``, ``listing``, ``figure`` or the tag
            name of any other block.
        html: Serialized markup of the block.
        label: Number such as ``3.1.2`` or ``Listing 3.1``.
        title: Section heading or listing/figure caption.
        language: Language of a code listing.
        figure_id: Identifier of the figure shown by this element.
    """

    kind: str
    html: str = ""
    label: str | None = None
    title: str | None = None
    language: str | None = None
    figure_id: str | None = None
