"""Chapter import pipeline."""

from .book import Book
from .chapter import Chapter
from .counters import CounterState
from .formats import PipelineKind, detect_format
from .process import process_chapter
from .resolve import resolve_chapter
from .transform import transform_markdown, transform_xml
from .walker import process_element

__all__ = [
    "Book",
    "Chapter",
    "CounterState",
    "PipelineKind",
    "detect_format",
    "process_chapter",
    "process_element",
    "resolve_chapter",
    "transform_markdown",
    "transform_xml",
]
