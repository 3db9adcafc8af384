"""Turn raw chapter sources into a list of HTML block nodes."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

from attrs import define, field
from bs4 import BeautifulSoup, Tag
from lxml import etree
from markdown_it import MarkdownIt
from mdit_py_plugins.footnote import footnote_plugin

from chapin.errors import MalformedSource

from .formats import PipelineKind
from .types import NodeList

logger = logging.getLogger(__name__)

# Stylesheet shipped with the package.
DEFAULT_STYLESHEET = Path(__file__).parent / "xslt" / "chapter.xslt"

# ``xml:id`` as seen by lxml.
XML_ID_ATTR = "{http://www.w3.org/XML/1998/namespace}id"


@define(slots=True)
class TransformedSource:
    """Normalized chapter body plus the fields identifying the chapter.

    Attributes:
        kind: Pipeline the source went through.
        title: Chapter title found in the source.
        xml_id: Identifier attribute of XML chapters, ``None`` otherwise.
        nodes: Top-level block nodes in document order.
    """

    kind: PipelineKind
    title: str
    xml_id: str | None = None
    nodes: NodeList = field(factory=list, repr=False)


def _block_nodes(container: Any) -> NodeList:  # noqa: ANN401
    """Return the element children of ``container``, skipping text."""

    return [child for child in container.children if isinstance(child, Tag)]


@lru_cache(maxsize=8)
def _load_stylesheet(path: Path) -> etree.XSLT:
    """Compile the XSLT stylesheet at ``path`` once per process."""

    logger.debug(f"Loading chapter stylesheet {path}")
    return etree.XSLT(etree.parse(str(path)))


def transform_xml(
    raw: bytes, stylesheet: Path | None = None
) -> TransformedSource:
    """Transform an XML chapter through the chapter stylesheet.

    Args:
        raw: Bytes of the XML source.
        stylesheet: XSLT file to use instead of the bundled one.

    Returns:
        The normalized chapter with its identifier and title.

    Raises:
        MalformedSource: The XML cannot be parsed or transformed, or the
            chapter identifier or title is missing.
    """

    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(raw, parser)
    except etree.XMLSyntaxError as exc:
        raise MalformedSource(f"Cannot parse chapter XML: {exc}") from exc

    if root.tag != "chapter":
        raise MalformedSource(
            f"Expected a <chapter> root element, found <{root.tag}>"
        )

    xml_id = (root.get("id") or root.get(XML_ID_ATTR) or "").strip()
    if not xml_id:
        raise MalformedSource("Chapter element has no id attribute")

    title_tag = root.find("title")
    title = (
        " ".join("".join(title_tag.itertext()).split())
        if title_tag is not None
        else ""
    )
    if not title:
        raise MalformedSource(f"Chapter {xml_id!r} has no title")

    try:
        result = _load_stylesheet(stylesheet or DEFAULT_STYLESHEET)(
            root.getroottree()
        )
    except (etree.XSLTApplyError, etree.XSLTParseError) as exc:
        raise MalformedSource(
            f"Cannot transform chapter {xml_id!r}: {exc}"
        ) from exc

    soup = BeautifulSoup(str(result), "html.parser")
    body = soup.find("div", class_="chapter")
    if body is None:
        raise MalformedSource(
            f"Stylesheet produced no chapter body for {xml_id!r}"
        )

    return TransformedSource(
        kind=PipelineKind.XML,
        title=title,
        xml_id=xml_id,
        nodes=_block_nodes(body),
    )


def _markdown_renderer() -> MarkdownIt:
    """Return the renderer used for markdown chapters.

    Fenced code blocks come out as ``<pre><code class="language-x">`` and
    footnotes as numbered references plus a trailing footnote list.
    """

    return MarkdownIt("commonmark").enable("table").use(footnote_plugin)


def transform_markdown(raw: bytes) -> TransformedSource:
    """Render a markdown chapter and collect its top-level blocks.

    Args:
        raw: Bytes of the markdown source, UTF-8 encoded.

    Returns:
        The normalized chapter. The title is the text of the first ``h1``
        or an empty string when there is none; that heading is not part of
        the returned nodes.

    Raises:
        MalformedSource: The bytes are not valid UTF-8.
    """

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedSource(f"Markdown chapter is not UTF-8: {exc}") from exc

    html = _markdown_renderer().render(text)
    soup = BeautifulSoup(html, "html.parser")

    heading = soup.find("h1")
    title = heading.get_text(" ", strip=True) if heading else ""
    if not title:
        logger.debug("Markdown chapter has no h1 heading")

    # Only the heading used as title is left out of the body.
    return TransformedSource(
        kind=PipelineKind.MARKDOWN,
        title=title,
        nodes=[node for node in _block_nodes(soup) if node is not heading],
    )


def transform_source(
    kind: PipelineKind, raw: bytes, stylesheet: Path | None = None
) -> TransformedSource:
    """Dispatch ``raw`` to the transformer of ``kind``."""

    if kind is PipelineKind.XML:
        return transform_xml(raw, stylesheet)
    return transform_markdown(raw)
