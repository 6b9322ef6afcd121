"""Command-line entry point for Page Notes."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from PySide6.QtCore import QCoreApplication

from pagenotes import __version__
from pagenotes.config import NotesConfig
from pagenotes.dom import HtmlDocument
from pagenotes.exc import DoesNotExist, StorageUnavailable
from pagenotes.services.coordinator import NOT_FOUND_MESSAGE, NoteLifecycleCoordinator
from pagenotes.services.note_store import NoteStore
from pagenotes.services.scheduler import VirtualScheduler
from pagenotes.services.storage import (
    KeyValueStorage,
    MemoryKeyValueStorage,
    SqlKeyValueStorage,
)
from pagenotes.utils import format_age, normalize_document_key

logger = logging.getLogger(__name__)

#: Organization and application name under which settings are stored.
APP_NAME = "Page Notes"


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Returns:
        The parser

    """
    parser = argparse.ArgumentParser(
        prog="pagenotes",
        description="Save, list and relocate text notes on HTML pages.",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument("--db", type=Path, help="Notes database (default: per user)")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="List the notes of a page")
    list_cmd.add_argument("document_key", help="Page path or URL")

    add_cmd = commands.add_parser("add", help="Save text of a page as a note")
    add_cmd.add_argument("html_file", type=Path)
    add_cmd.add_argument("--url", required=True, help="URL the page is served at")
    add_cmd.add_argument("--text", required=True, help="Text to select")
    add_cmd.add_argument(
        "--occurrence", type=int, default=0, help="Which occurrence to select"
    )

    delete_cmd = commands.add_parser("delete", help="Delete a note")
    delete_cmd.add_argument("document_key", help="Page path or URL")
    delete_cmd.add_argument("note_id")

    locate_cmd = commands.add_parser(
        "locate", help="Print a page with a note highlighted"
    )
    locate_cmd.add_argument("html_file", type=Path)
    locate_cmd.add_argument("--url", required=True, help="URL the page is served at")
    locate_cmd.add_argument("note_id")
    return parser


def open_storage(config: NotesConfig) -> KeyValueStorage:
    """
    Open the notes database, falling back to memory if it is unavailable.

    Args:
        config: Settings naming the database

    Returns:
        Storage

    """
    try:
        return SqlKeyValueStorage.from_path(config.db_path)
    except StorageUnavailable as e:
        logger.warning("%s; notes will not be saved", e)
        return MemoryKeyValueStorage()


def cmd_list(storage: KeyValueStorage, config: NotesConfig, args) -> int:
    store = NoteStore(storage, storage_key=config.storage_key)
    store.load(normalize_document_key(args.document_key))
    notes = sorted(store.notes, key=lambda note: note.timestamp, reverse=True)
    if not notes:
        print("No notes yet.")
    for note in notes:
        print(f"{note.id}  {format_age(note.timestamp):>10}  {note.text}")
    return 0


def cmd_add(storage: KeyValueStorage, config: NotesConfig, args) -> int:
    document = HtmlDocument.from_file(args.html_file, url=args.url)
    coordinator = NoteLifecycleCoordinator.for_document(
        document, storage, VirtualScheduler(), config=config
    )
    coordinator.open()
    selection = document.select_text(args.text, occurrence=args.occurrence)
    note = coordinator.create_note_from_selection(selection)
    if note is None:
        print(f"Text not found on the page: {args.text!r}", file=sys.stderr)
        return 1
    print(note.id)
    return 0


def cmd_delete(storage: KeyValueStorage, config: NotesConfig, args) -> int:
    store = NoteStore(
        storage,
        storage_key=config.storage_key,
        max_write_attempts=config.max_write_attempts,
    )
    store.load(normalize_document_key(args.document_key))
    if not store.remove(args.note_id):
        raise DoesNotExist("Note", args.note_id)
    return 0


def cmd_locate(storage: KeyValueStorage, config: NotesConfig, args) -> int:
    document = HtmlDocument.from_file(args.html_file, url=args.url)
    coordinator = NoteLifecycleCoordinator.for_document(
        document, storage, VirtualScheduler(), config=config
    )
    coordinator.open()
    note = coordinator.store.get(args.note_id)
    if note is None:
        raise DoesNotExist("Note", args.note_id)
    text_range = coordinator.resolver.resolve(note.position)
    if text_range is None or coordinator.highlighter.mark(text_range) is None:
        print(NOT_FOUND_MESSAGE, file=sys.stderr)
        return 1
    print(document)
    return 0


COMMANDS = {
    "list": cmd_list,
    "add": cmd_add,
    "delete": cmd_delete,
    "locate": cmd_locate,
}


def main(argv: list[str] | None = None) -> int:
    """
    Run the Page Notes command-line tool.

    Args:
        argv: Arguments; defaults to ``sys.argv[1:]``

    Returns:
        Process exit status

    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    QCoreApplication.setOrganizationName(APP_NAME)
    QCoreApplication.setApplicationName(APP_NAME)
    config = NotesConfig.from_qsettings()
    if args.db is not None:
        config.db_path = args.db
    storage = open_storage(config)
    try:
        return COMMANDS[args.command](storage, config, args)
    except DoesNotExist as e:
        print(e, file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
