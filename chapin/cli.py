import logging
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Optional

import click
import yaml  # type: ignore
from attrs import asdict
from dotenv import load_dotenv

from chapin import config
from chapin.attachments import AttachmentStore
from chapin.chapter import process_chapter
from chapin.errors import ChapinError
from chapin.json_utils import json_dumps
from chapin.source_reader import (
    RemoteTreeReader,
    SourceReader,
    WorkingTreeReader,
)
from chapin.store import BookStore

try:
    __version__ = version("chapin")
except PackageNotFoundError:
    __version__ = "0.0.1-dev"


def _store(ctx: click.Context) -> BookStore:
    """Return the book store configured on the command group."""

    obj = ctx.ensure_object(dict)
    root = obj.get("store_dir") or config.books_dir()
    return BookStore(Path(root), fmt=obj.get("store_format", "yaml"))


@click.group()
@click.option("--debug/--no-debug", default=False)
@click.option("--trace/--no-trace", default=False)
@click.option(
    "--log-file",
    type=click.Path(file_okay=True, dir_okay=False),
    envvar="CHAPIN_LOG_FILE",
)
@click.option(
    "--store-dir",
    type=click.Path(file_okay=False, dir_okay=True),
    envvar="CHAPIN_BOOKS",
    default=None,
    help="Directory holding stored books.",
)
@click.option(
    "--store-format",
    type=click.Choice(["yaml", "json"]),
    default="yaml",
    show_default=True,
    help="File format of stored books.",
)
@click.version_option(__version__, prog_name="chapin")
@click.pass_context
def cli(
    ctx: click.Context,
    debug: bool,
    trace: bool,
    log_file: Optional[str] = None,
    store_dir: Optional[str] = None,
    store_format: str = "yaml",
) -> None:
    """Configure logging, load environment variables and the book store.

    Args:
        ctx: Click context object.
        debug: Toggle debug logging.
        trace: Toggle trace logging.
        log_file: Optional path to the log file.
        store_dir: Directory of stored books.
        store_format: File format of stored books.
    """
    if trace:
        level = 1
    elif debug:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        filename=log_file,
        level=level,
        format="[%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if trace:
        logging.debug("Trace mode is on")
    if debug:
        logging.debug("Debug mode is on")
    load_dotenv()

    ctx.ensure_object(dict)
    ctx.obj["store_dir"] = store_dir
    ctx.obj["store_format"] = store_format


@cli.command()
@click.argument("book_id")
@click.option("--title", default="", help="Title of the book.")
@click.option(
    "--manifest",
    "manifest",
    multiple=True,
    help="Markdown chapter file, in reading order. Repeat for each chapter.",
)
@click.option(
    "--force/--no-force",
    default=False,
    help="Replace the manifest and title of an existing book.",
)
@click.pass_context
def init(
    ctx: click.Context,
    book_id: str,
    title: str = "",
    manifest: tuple[str, ...] = (),
    force: bool = False,
) -> None:
    """Create a book, or update its manifest with ``--force``.

    Args:
        ctx: Click context object.
        book_id: Identifier of the new book.
        title: Title of the book.
        manifest: Markdown chapter files in reading order.
        force: Update an existing book instead of failing.
    """

    store = _store(ctx)
    if store.exists(book_id):
        if not force:
            raise click.UsageError(
                f"Book {book_id!r} already exists; use --force to update it."
            )

        # Keep the chapters, only refresh title and manifest.
        book = store.load(book_id)
        book.title = title or book.title
        book.manifest = list(manifest)
        store.save(book)
    else:
        store.create(book_id, title=title, manifest=list(manifest))

    click.echo(f"Book {book_id} stored in {store.path_for(book_id)}")


@cli.command()
@click.argument("book_id")
@click.argument("file_path")
@click.option(
    "--repo",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    show_default=True,
    help="Working tree containing the chapter.",
)
@click.option(
    "--remote",
    default=None,
    help="Base URL of a remote tree; replaces --repo.",
)
@click.option(
    "--stylesheet",
    type=click.Path(file_okay=True, dir_okay=False, exists=True),
    default=None,
    help="XSLT file used for XML chapters.",
)
@click.option(
    "--attachments/--no-attachments",
    default=True,
    show_default=True,
    help="Copy figure images into the attachment directory.",
)
@click.pass_context
def process(
    ctx: click.Context,
    book_id: str,
    file_path: str,
    repo: str = ".",
    remote: Optional[str] = None,
    stylesheet: Optional[str] = None,
    attachments: bool = True,
) -> None:
    """Import a chapter source into a stored book.

    No render cache is passed: a cache lives in the memory of one process
    and this command starts with an empty one. Long-running callers pass
    their own ``RenderCache`` to ``process_chapter``.

    Args:
        ctx: Click context object.
        book_id: Identifier of the stored book.
        file_path: Chapter source, relative to the tree root.
        repo: Working tree directory.
        remote: Base URL of a remote tree.
        stylesheet: Optional XSLT file for XML chapters.
        attachments: Whether figure images are stored.
    """

    store = _store(ctx)
    reader: SourceReader = (
        RemoteTreeReader(remote) if remote else WorkingTreeReader(Path(repo))
    )
    attachment_store = (
        AttachmentStore(config.attachments_dir(), reader)
        if attachments
        else None
    )

    try:
        book = store.load(book_id)
        chapter = process_chapter(
            book,
            reader,
            file_path,
            store,
            attachments=attachment_store,
            stylesheet=Path(stylesheet) if stylesheet else None,
        )
    except ChapinError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(
        f"Chapter {chapter.position}: {chapter.title or '(untitled)'} "
        f"({len(chapter.elements)} elements, {len(chapter.figures)} figures, "
        f"{len(chapter.notes)} notes)"
    )


@cli.command()
@click.argument("book_id")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "yaml"]),
    default="json",
    help="Output format.",
)
@click.pass_context
def show(ctx: click.Context, book_id: str, output_format: str = "json") -> None:
    """Print a stored book with all its chapters.

    Args:
        ctx: Click context object.
        book_id: Identifier of the stored book.
        output_format: Format of the printed data.
    """

    try:
        book = _store(ctx).load(book_id)
    except ChapinError as exc:
        raise click.ClickException(str(exc)) from exc

    data = asdict(book)
    if output_format == "json":
        click.echo(json_dumps(data, pretty=True))
    else:
        click.echo(yaml.safe_dump(data, allow_unicode=True, sort_keys=False))


if __name__ == "__main__":
    cli()  # pragma: no cover
