"""Shared fixtures: a working tree, a book store and sample chapters."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from chapin.source_reader import WorkingTreeReader
from chapin.store import BookStore

WriteSource = Callable[[str, "str | bytes"], Path]

_SAMPLE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<chapter id="ch-intro">
  <title>Getting <emphasis>Started</emphasis></title>
  <para>Intro text<footnote><para>First note.</para></footnote>.</para>
  <section id="s-install">
    <title>Install</title>
    <para>Run the installer.</para>
    <programlisting language="ruby">gem install chapin</programlisting>
    <section>
      <title>Details</title>
      <para>More details.</para>
    </section>
  </section>
  <section>
    <title>Usage</title>
    <figure id="fig-arch">
      <title>Architecture</title>
      <mediaobject><imageobject>
        <imagedata fileref="images/arch.png"/>
      </imageobject></mediaobject>
    </figure>
  </section>
</chapter>
"""

_SAMPLE_MARKDOWN = """# Chapter One

Opening paragraph.

## First

Some text.

```python
print("hello")
```

### Nested

![A diagram](images/diagram.png)

## Second

Closing words.
"""


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    """Return an empty working tree directory."""

    root = tmp_path / "repo"
    root.mkdir()
    return root


@pytest.fixture
def write_source(tree: Path) -> WriteSource:
    """Return a helper writing files into the working tree."""

    def write(rel_path: str, content: str | bytes) -> Path:
        path = tree / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path

    return write


@pytest.fixture
def reader(tree: Path) -> WorkingTreeReader:
    return WorkingTreeReader(tree)


@pytest.fixture
def store(tmp_path: Path) -> BookStore:
    return BookStore(tmp_path / "books")


@pytest.fixture
def sample_xml() -> str:
    """XML chapter with a footnote, nested sections, a listing and a figure."""

    return _SAMPLE_XML


@pytest.fixture
def sample_markdown() -> str:
    """Markdown chapter with headings, a listing and a figure."""

    return _SAMPLE_MARKDOWN
