"""Figure referenced from a chapter."""

from __future__ import annotations

from attrs import define

# Image sources with these prefixes are not paths inside the source tree.
REMOTE_PREFIXES = ("http://", "https://", "data:")


@define(slots=True)
class Figure:
    """Figure referenced from a chapter.

    Attributes:
        figure_id: Identifier unique inside the chapter.
        label: Visible label such as ``Figure 3.1``.
        caption: Caption or alternative text of the image.
        source: Image location, relative to the tree root or an URL.
    """

    figure_id: str
    label: str
    caption: str = ""
    source: str = ""

    @property
    def is_remote(self) -> bool:
        """Whether the image lives outside the source tree."""

        return self.source.startswith(REMOTE_PREFIXES)
