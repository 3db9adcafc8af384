"""Default element walker turning HTML blocks into chapter elements."""

from __future__ import annotations

import copy
import logging
import re
from typing import Any

from bs4 import BeautifulSoup, Tag

from chapin.errors import ElementProcessingFailure

from .chapter import Chapter
from .counters import CounterState
from .element import Element
from .figure import Figure
from .note import Note

logger = logging.getLogger(__name__)

HEADING_RE = re.compile(r"^h([2-6])$")

# ``id`` of a rendered markdown footnote list item, e.g. ``fn3``.
FOOTNOTE_ITEM_RE = re.compile(r"fn(\d+)$")


def _normalize_whitespace(text: str) -> str:
    """Collapse consecutive whitespace."""

    return re.sub(r"\s+", " ", text).strip()


def _classes(tag: Any) -> list[str]:  # noqa: ANN401
    return list(tag.get("class") or [])


def _child_tags(tag: Any) -> list[Tag]:  # noqa: ANN401
    return [child for child in tag.children if isinstance(child, Tag)]


def _text_without_footnotes(tag: Any) -> str:  # noqa: ANN401
    """Return the text of ``tag`` without footnote bodies or markers."""

    clone = copy.copy(tag)
    for footnote in clone.find_all(["span", "sup"], class_="footnote"):
        footnote.decompose()
    for ref in clone.find_all("sup", class_="footnote-ref"):
        ref.decompose()
    return _normalize_whitespace(clone.get_text(" ", strip=True))


def _footnote_marker(number: int) -> Tag:
    """Build the superscript left in the text where a footnote was."""

    soup = BeautifulSoup(
        f'<sup class="footnote" id="fnref-{number}">'
        f'<a href="#fn-{number}">{number}</a></sup>',
        "html.parser",
    )
    return soup.sup  # type: ignore[return-value]


def _is_footnote(tag: Tag) -> bool:
    classes = _classes(tag)
    return (tag.name == "span" and "footnote" in classes) or (
        tag.name == "sup" and "footnote-ref" in classes
    )


def _relabel_footnotes(
    chapter: Chapter, state: CounterState, node: Any  # noqa: ANN401
) -> None:
    """Number the footnotes found inside ``node``, in document order.

    Inline footnotes (``span.footnote``) become notes of the chapter and are
    replaced by a numbered marker. Markdown references
    (``sup.footnote-ref``) are numbered in place; their text arrives later
    with the footnote list.
    """

    for tag in node.find_all(_is_footnote):
        if tag.name == "span":
            number = state.next_footnote()
            chapter.notes.append(
                Note(
                    number=number,
                    text=_normalize_whitespace(tag.get_text(" ", strip=True)),
                    html=tag.decode_contents().strip(),
                )
            )
            tag.replace_with(_footnote_marker(number))
            continue

        anchor = tag.find("a")
        ref_id = str(anchor.get("id", "")) if anchor is not None else ""

        # Repeated references to the same note carry an ``fnrefN:M`` id.
        if ":" in ref_id:
            continue

        number = state.next_footnote()
        if anchor is not None:
            anchor.string = str(number)


def _process_footnote_list(
    chapter: Chapter, node: Any  # noqa: ANN401
) -> None:
    """Add the items of a rendered markdown footnote list as notes.

    Items are numbered from their ``fnN`` id, which is the number their
    references received in the text.
    """

    for index, item in enumerate(node.find_all("li"), start=1):
        for backref in item.find_all("a", class_="footnote-backref"):
            backref.decompose()

        match = FOOTNOTE_ITEM_RE.search(str(item.get("id", "")))
        chapter.notes.append(
            Note(
                number=int(match.group(1)) if match else index,
                text=_normalize_whitespace(item.get_text(" ", strip=True)),
                html=item.decode_contents().strip(),
            )
        )


def _enter_heading(state: CounterState, level: int) -> None:
    """Move the section path to a heading of ``level`` (2 for ``h2``).

    Deeper paths are closed first. A heading at the current depth advances
    the last number and a deeper heading opens sub-sections starting at 1.
    """

    section_count = state.section_count
    while len(section_count) > level:
        section_count.pop()

    if len(section_count) == level:
        section_count[-1] += 1
    else:
        while len(section_count) < level:
            section_count.append(1)


def _section_element(
    chapter: Chapter, state: CounterState, heading: Any  # noqa: ANN401
) -> Element:
    if heading is None:
        return Element(kind="section", label=state.section_label(), title="")

    title = _text_without_footnotes(heading)
    _relabel_footnotes(chapter, state, heading)
    return Element(
        kind="section",
        html=str(heading),
        label=state.section_label(),
        title=title,
    )


def _process_heading(
    chapter: Chapter, state: CounterState, node: Any, level: int  # noqa: ANN401
) -> None:
    _enter_heading(state, level)
    chapter.elements.append(_section_element(chapter, state, node))


def _process_section(
    chapter: Chapter, state: CounterState, node: Any  # noqa: ANN401
) -> None:
    """Walk a nested ``div.section`` block.

    The section takes the next number at the current depth; its children
    are numbered one level deeper and the level is closed afterwards.
    """

    state.section_count[-1] += 1

    children = _child_tags(node)
    heading = next(
        (child for child in children if HEADING_RE.match(child.name)), None
    )
    chapter.elements.append(_section_element(chapter, state, heading))

    state.section_count.append(0)
    for child in children:
        if child is heading:
            continue
        process_element(chapter, state, child)
    state.section_count.pop()


def _number_listing(
    state: CounterState, node: Any  # noqa: ANN401
) -> tuple[str, str | None]:
    """Take the next listing number for ``node``.

    Returns:
        The label and the language of the listing.
    """

    number = state.next_listing()

    # Language comes from the ``language-x`` class of the inner code tag.
    language = None
    code = node.find("code")
    if code is not None:
        for cls in _classes(code):
            if cls.startswith("language-"):
                language = cls[len("language-") :]
                break

    return f"Listing {state.position}.{number}", language


def _process_listing(
    chapter: Chapter, state: CounterState, node: Any  # noqa: ANN401
) -> None:
    label, language = _number_listing(state, node)
    _relabel_footnotes(chapter, state, node)

    title = node.get("title")
    chapter.elements.append(
        Element(
            kind="listing",
            html=str(node),
            label=label,
            title=str(title) if title else None,
            language=language,
        )
    )


def _is_lone_image(node: Any) -> bool:  # noqa: ANN401
    """Return whether a paragraph only holds one image."""

    if node.name != "p":
        return False
    children = _child_tags(node)
    text = node.get_text(strip=True)
    return len(children) == 1 and children[0].name == "img" and not text


def _is_figure(node: Any) -> bool:  # noqa: ANN401
    return (node.name == "div" and "figure" in _classes(node)) or (
        _is_lone_image(node)
    )


def _record_figure(
    chapter: Chapter, state: CounterState, node: Any  # noqa: ANN401
) -> Figure:
    """Number the figure ``node`` and add it to the chapter figures."""

    image = node if node.name == "img" else node.find("img")
    source = image.get("src") if image is not None else None
    if not source:
        raise ElementProcessingFailure(
            f"Figure in chapter {chapter.position} has no image source"
        )

    number = state.next_figure()
    caption_tag = node.find("p", class_="caption")
    if caption_tag is not None:
        caption = _text_without_footnotes(caption_tag)
    else:
        caption = str(image.get("title") or image.get("alt") or "")

    figure = Figure(
        figure_id=str(node.get("id") or f"figure-{state.position}-{number}"),
        label=f"Figure {state.position}.{number}",
        caption=caption,
        source=str(source),
    )
    chapter.figures.append(figure)
    return figure


def _process_figure(
    chapter: Chapter, state: CounterState, node: Any  # noqa: ANN401
) -> None:
    figure = _record_figure(chapter, state, node)
    _relabel_footnotes(chapter, state, node)
    chapter.elements.append(
        Element(
            kind="figure",
            html=str(node),
            label=figure.label,
            title=figure.caption,
            figure_id=figure.figure_id,
        )
    )


def _number_nested_blocks(
    chapter: Chapter, state: CounterState, node: Any  # noqa: ANN401
) -> None:
    """Number listings and figures nested in a container block.

    They stay inside the container's markup and carry their label in a
    ``data-label`` attribute. Nested figures are also added to the chapter
    figures so their images are stored.
    """

    for block in node.find_all(lambda tag: tag.name == "pre" or _is_figure(tag)):
        if block.name == "pre":
            label, _ = _number_listing(state, block)
        else:
            figure = _record_figure(chapter, state, block)
            block["id"] = figure.figure_id
            label = figure.label
        block["data-label"] = label


def process_element(
    chapter: Chapter, state: CounterState, node: Tag
) -> None:
    """Append the elements produced by one block ``node`` to ``chapter``.

    The title ``h1`` of a markdown chapter never reaches the walker; any
    other ``h1`` is kept as a plain element.

    Args:
        chapter: Chapter being imported.
        state: Numbering state of the current import.
        node: Top-level block of the normalized chapter body.

    Raises:
        ElementProcessingFailure: The block is invalid, e.g. an image
            without a source.
    """

    name = node.name
    classes = _classes(node)
    heading = HEADING_RE.match(name)

    if heading:
        _process_heading(chapter, state, node, int(heading.group(1)))
    elif name == "div" and "section" in classes:
        _process_section(chapter, state, node)
    elif name == "pre":
        _process_listing(chapter, state, node)
    elif _is_figure(node):
        _process_figure(chapter, state, node)
    elif name == "hr" and "footnotes-sep" in classes:
        return
    elif name == "section" and "footnotes" in classes:
        _process_footnote_list(chapter, node)
    else:
        _number_nested_blocks(chapter, state, node)
        _relabel_footnotes(chapter, state, node)
        kind = "paragraph" if name == "p" else name
        chapter.elements.append(Element(kind=kind, html=str(node)))

    logger.debug(f"Processed <{name}> at section {state.section_label()}")
