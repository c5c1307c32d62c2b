#!/usr/bin/env python3
"""
book - keyed bookmarks from the command line.

    book                          browse all bookmarks interactively
    book gh https://github.com --tags dev,code
                                  store a bookmark
    book gh                       open a bookmark in the browser
    book --search dev             search bookmarks
    book --list                   list all bookmarks
    book --delete gh              delete every bookmark with key gh
    book --deleteAll [--yes]      delete the bookmark file
    book --import [file]          import lines from a file or stdin
    book --export [--tags t] [-o file]
                                  export bookmarks in the storage format

Each invocation becomes exactly one Command variant; run() dispatches it to
the matching handler.
"""
import io
import sys
import argparse
import logging
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import List, Optional, Union

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from book.browser import open_external
from book.config import BookConfig, init_config
from book.errors import BookError, UsageError
from book.models import Bookmark, SearchQuery
from book.store import TEXT_MODE, RecordStore, export, open_text
from book import tui

logger = logging.getLogger(__name__)


console = Console()
err_console = Console(stderr=True)

STDIN_MARKER = "-"


def stdin_text():
    """stdin decoded the same way as the bookmark file."""
    buffer = getattr(sys.stdin, "buffer", None)
    if buffer is None:
        return sys.stdin
    return io.TextIOWrapper(buffer, **TEXT_MODE)


# ============================================================================
# Commands
# ============================================================================

@dataclass(frozen=True)
class Browse:
    pass


@dataclass(frozen=True)
class Store:
    key: str
    target: str
    tags: tuple = ()


@dataclass(frozen=True)
class Open:
    key: str


@dataclass(frozen=True)
class Search:
    query: str
    tags: Optional[tuple] = None


@dataclass(frozen=True)
class Import:
    path: Optional[str] = None  # None reads stdin


@dataclass(frozen=True)
class Delete:
    key: str


@dataclass(frozen=True)
class DeleteAll:
    yes: bool = False


@dataclass(frozen=True)
class ListAll:
    pass


@dataclass(frozen=True)
class Export:
    tags: Optional[tuple] = None
    output: Optional[str] = None


Command = Union[Browse, Store, Open, Search, Import, Delete, DeleteAll, ListAll, Export]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="book",
        description="Keyed bookmarks stored in a plain text file.",
        allow_abbrev=False,
    )
    parser.add_argument("args", nargs="*", metavar="KEY [TARGET]",
                        help="Bookmark key, and target when storing")
    parser.add_argument("-tags", "--tags", action="append", default=[],
                        help="Comma separated tags")
    parser.add_argument("-o", "-output", "--output", dest="output",
                        help="Export destination file")
    parser.add_argument("-import", "--import", dest="import_path", nargs="?",
                        const=STDIN_MARKER, default=None, metavar="FILE",
                        help="Import bookmarks from FILE (stdin when omitted)")
    parser.add_argument("-search", "--search", action="store_true",
                        help="Search bookmarks for KEY")
    parser.add_argument("-delete", "--delete", action="store_true",
                        help="Delete bookmark KEY")
    parser.add_argument("-deleteAll", "--deleteAll", dest="delete_all", action="store_true",
                        help="Delete all bookmarks")
    parser.add_argument("-yes", "--yes", action="store_true",
                        help="Do not ask for confirmation")
    parser.add_argument("-list", "--list", dest="list_all", action="store_true",
                        help="List all bookmarks")
    parser.add_argument("-export", "--export", action="store_true",
                        help="Export bookmarks")
    parser.add_argument("--file", help="Bookmark file (overrides config)")
    parser.add_argument("--config", help="Extra config file")
    return parser


def split_tags(values: List[str]) -> tuple:
    """Flatten repeated --tags a,b options, dropping empty entries."""
    return tuple(tag for value in values for tag in value.split(",") if tag)


def command_from_args(ns: argparse.Namespace) -> Command:
    """Pick the command variant for parsed arguments."""
    positional = ns.args
    tags = split_tags(ns.tags)
    is_import = ns.import_path is not None

    if not positional and not (ns.list_all or ns.delete_all or ns.export or is_import
                               or ns.search or ns.delete):
        return Browse()

    if ns.delete_all:
        return DeleteAll(yes=ns.yes)
    if is_import:
        path = None if ns.import_path == STDIN_MARKER else ns.import_path
        return Import(path=path)
    if ns.list_all:
        return ListAll()
    if ns.export:
        return Export(tags=tags or None, output=ns.output)

    key = positional[0] if positional else ""
    if not key:
        raise UsageError("A bookmark key is required")

    if ns.delete:
        return Delete(key=key)
    if ns.search:
        return Search(query=key, tags=tags or None)
    if len(positional) > 1:
        return Store(key=key, target=positional[1], tags=tags)
    return Open(key=key)


def parse_namespace(argv: Optional[List[str]] = None):
    """Parse argv; options and positionals may be interleaved."""
    parser = build_parser()
    ns = parser.parse_intermixed_args(argv)
    return ns, parser


def parse_args(argv: Optional[List[str]] = None) -> Command:
    ns, _ = parse_namespace(argv)
    return command_from_args(ns)


# ============================================================================
# Output
# ============================================================================

def output_bookmarks(bookmarks: List[Bookmark], config: BookConfig):
    """Print bookmarks as a table."""
    table = Table(show_edge=False)
    table.add_column("Bookmark", style="cyan", no_wrap=True)
    table.add_column("Path", style="blue", max_width=config.target_width, overflow="ellipsis")
    table.add_column("Tags", style="yellow")

    for bookmark in bookmarks:
        table.add_row(
            escape(bookmark.key),
            escape(bookmark.target),
            escape(", ".join(bookmark.tags)),
        )

    console.print(table)


# ============================================================================
# Handlers
# ============================================================================

def cmd_browse(command: Browse, store: RecordStore, config: BookConfig):
    """Launch the interactive browser over every bookmark."""
    records = store.list()
    tui.launch(
        records,
        opener=partial(open_external, browser=config.default_browser),
        target_width=config.target_width,
        color=config.color_output,
    )


def cmd_store(command: Store, store: RecordStore, config: BookConfig):
    """Append a bookmark."""
    store.store(command.key, command.target, list(command.tags))
    console.print(f"Stored bookmark: {escape(command.key)} -> {escape(command.target)}")


def cmd_open(command: Open, store: RecordStore, config: BookConfig):
    """Open the first bookmark with the key."""
    bookmark = store.lookup(command.key)
    if not open_external(bookmark.target, browser=config.default_browser):
        raise BookError(f"Could not open {bookmark.target}")


def cmd_search(command: Search, store: RecordStore, config: BookConfig):
    """Print bookmarks matching a query."""
    results = store.search(SearchQuery(
        text=command.query,
        tags=list(command.tags) if command.tags is not None else None,
    ))
    output_bookmarks(results, config)


def cmd_list(command: ListAll, store: RecordStore, config: BookConfig):
    """Print all bookmarks."""
    output_bookmarks(store.list(), config)


def cmd_import(command: Import, store: RecordStore, config: BookConfig):
    """Import bookmark lines from a file or stdin."""
    if command.path:
        result = store.import_file(command.path)
    else:
        result = store.import_stream(stdin_text())

    console.print(f"Imported {result.success_count} bookmark(s).")
    console.print(f"{result.failure_count} failed imports.")


def cmd_delete(command: Delete, store: RecordStore, config: BookConfig):
    """Delete every bookmark with the key."""
    removed = store.delete(command.key)
    logger.debug(f"Removed {removed} line(s)")
    console.print(f"Deleted bookmark: {escape(command.key)}")


def cmd_delete_all(command: DeleteAll, store: RecordStore, config: BookConfig):
    """Delete the bookmark file, asking first unless --yes was given."""
    confirmed = command.yes
    if not confirmed:
        try:
            answer = console.input("Are you sure you want to delete all bookmarks? [y/N] ",
                                   markup=False)
        except EOFError:
            answer = ""
        confirmed = answer.strip().lower() == "y"

    if not confirmed:
        console.print("Cancelled.")
    elif store.delete_all():
        console.print("All bookmarks deleted.")
    else:
        console.print(f"No bookmark file to delete at {escape(str(store.path))}.")


def cmd_export(command: Export, store: RecordStore, config: BookConfig):
    """Write bookmarks (optionally filtered by tag) in the storage format."""
    query = SearchQuery(tags=list(command.tags) if command.tags else None)
    results = store.search(query)

    if command.output:
        with open_text(command.output, "w") as f:
            count = export(results, f)
        console.print(f"Exported {count} bookmark(s) to: {escape(command.output)}")
    else:
        export(results, sys.stdout)
        sys.stdout.flush()


HANDLERS = {
    Browse: cmd_browse,
    Store: cmd_store,
    Open: cmd_open,
    Search: cmd_search,
    Import: cmd_import,
    Delete: cmd_delete,
    DeleteAll: cmd_delete_all,
    ListAll: cmd_list,
    Export: cmd_export,
}


def run(command: Command, store: RecordStore, config: BookConfig):
    """Dispatch a command to its handler."""
    handler = HANDLERS[type(command)]
    logger.debug(f"Running {command}")
    return handler(command, store, config)


def main(argv: Optional[List[str]] = None):
    ns, parser = parse_namespace(argv)

    config = init_config(
        bookmarks_file=ns.file,
        config_file=Path(ns.config) if ns.config else None,
    )
    logging.basicConfig(level=config.log_level.upper(), format='%(levelname)s: %(message)s')

    try:
        command = command_from_args(ns)
    except UsageError as e:
        parser.error(str(e))

    store = RecordStore.from_config(config)

    try:
        run(command, store, config)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except (BookError, OSError) as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
