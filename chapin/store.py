"""File based storage of books and their embedded chapters."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from attrs import asdict

from chapin.chapter.book import Book
from chapin.chapter.chapter import Chapter
from chapin.chapter.element import Element
from chapin.chapter.figure import Figure
from chapin.chapter.note import Note
from chapin.errors import BookNotFound
from chapin.json_utils import json_dumps, json_loads

logger = logging.getLogger(__name__)

JSONDict = dict[str, Any]

# File extension used for each storage format.
EXTENSIONS = {"yaml": ".yaml", "json": ".json"}


def chapter_from_dict(data: JSONDict) -> Chapter:
    """Rebuild a chapter and its owned records from plain data."""

    fields = dict(data)
    elements = [Element(**item) for item in fields.pop("elements", [])]
    figures = [Figure(**item) for item in fields.pop("figures", [])]
    notes = [Note(**item) for item in fields.pop("notes", [])]
    return Chapter(**fields, elements=elements, figures=figures, notes=notes)


def book_from_dict(data: JSONDict) -> Book:
    """Rebuild a book with its embedded chapters from plain data."""

    fields = dict(data)
    chapters = [chapter_from_dict(item) for item in fields.pop("chapters", [])]
    return Book(**fields, chapters=chapters)


class BookStore:
    """Books stored one file per book inside ``root``.

    Saving writes a temporary file next to the target and renames it over
    the previous version, so a failed save keeps the old file.
    """

    def __init__(self, root: Path, fmt: str = "yaml") -> None:
        if fmt not in EXTENSIONS:
            raise ValueError(f"Unsupported storage format: {fmt}")
        self.root = Path(root)
        self.fmt = fmt

    def path_for(self, book_id: str) -> Path:
        return self.root / f"{book_id}{EXTENSIONS[self.fmt]}"

    def exists(self, book_id: str) -> bool:
        return self.path_for(book_id).exists()

    def create(
        self, book_id: str, title: str = "", manifest: list[str] | None = None
    ) -> Book:
        """Create and save an empty book."""

        book = Book(book_id=book_id, title=title, manifest=list(manifest or []))
        self.save(book)
        return book

    def load(self, book_id: str) -> Book:
        """Load the book stored under ``book_id``.

        Raises:
            BookNotFound: No file exists for the book.
        """

        path = self.path_for(book_id)
        if not path.exists():
            raise BookNotFound(f"No stored book {book_id!r} in {self.root}")

        text = path.read_text(encoding="utf-8")

        # Decode JSON or YAML depending on the store format.
        if self.fmt == "json":
            data = json_loads(text)
        else:
            data = yaml.safe_load(text)
        return book_from_dict(data)  # type: ignore[arg-type]

    def save(self, book: Book) -> Path:
        """Write ``book`` with all embedded chapters and return its path."""

        data = asdict(book)
        if self.fmt == "json":
            content = json_dumps(data, pretty=True)
        else:
            content = yaml.safe_dump(data, allow_unicode=True, sort_keys=False)

        self.root.mkdir(parents=True, exist_ok=True)
        path = self.path_for(book.book_id)

        # Write next to the target so the final rename stays atomic.
        fd, tmp_name = tempfile.mkstemp(
            dir=self.root, prefix=f".{book.book_id}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(
            f"Saved book {book.book_id!r} with {len(book.chapters)} chapters"
        )
        return path
