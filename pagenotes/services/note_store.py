"""In-memory note collection synchronized with durable storage."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from pagenotes.config import MAX_WRITE_ATTEMPTS, STORAGE_KEY
from pagenotes.exc import AlreadyExists, InvalidNoteRecord, StorageUnavailable
from pagenotes.models.note import Note, record_document_key

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pagenotes.services.storage import KeyValueStorage

logger = logging.getLogger(__name__)


class NoteStore:
    """
    Owns the notes of the active page.

    Storage holds one JSON list with the notes of every page.  Loading keeps
    only the active page's records; persisting replaces exactly that page's
    records and leaves every other record untouched, even ones this version
    cannot decode.  Records left by the in-page script (keyed by ``url``) are
    read too, and rewritten in the current layout when their page is saved.

    Writes are compare-and-set: if another writer changed the collection
    between our read and our write, the read-modify-write is retried against
    the fresh value.  Two writers of the same page still end up
    last-writer-wins for that page.

    Storage failures never reach the caller.  The first one switches the store
    to volatile mode, where notes live in memory only for the rest of the
    session.

    Args:
        storage: Durable key-value storage

    Keyword Args:
        storage_key: Key holding the collection
        max_write_attempts: Compare-and-set attempts per persist

    """

    def __init__(
        self,
        storage: KeyValueStorage,
        storage_key: str = STORAGE_KEY,
        max_write_attempts: int = MAX_WRITE_ATTEMPTS,
    ) -> None:
        #: The durable storage.
        self.storage = storage
        #: The key holding the collection.
        self.storage_key = storage_key
        #: Compare-and-set attempts per persist.
        self.max_write_attempts = max_write_attempts
        #: The key of the active page.
        self.document_key: str | None = None
        #: True once storage has failed; notes are then kept in memory only.
        self.volatile = False
        self._notes: list[Note] = []

    @property
    def notes(self) -> list[Note]:
        """The active page's notes, in insertion order."""
        return list(self._notes)

    def get(self, note_id: str) -> Note | None:
        """
        Get a note of the active page by ID.

        Args:
            note_id: Note ID

        Returns:
            Note or None if not found

        """
        return next((note for note in self._notes if note.id == note_id), None)

    def _degrade(self, error: StorageUnavailable) -> None:
        if not self.volatile:
            logger.warning("%s; keeping notes in memory only", error)
        self.volatile = True

    def _read_records(self) -> tuple[list[Any], int]:
        raw, version = self.storage.read(self.storage_key)
        if raw is None:
            return [], version
        try:
            records = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored notes under %r are not valid JSON", self.storage_key)
            return [], version
        if not isinstance(records, list):
            logger.warning("Stored notes under %r are not a list", self.storage_key)
            return [], version
        return records, version

    def load(self, document_key: str) -> None:
        """
        Make ``document_key`` the active page and load its notes.

        A missing or corrupt collection loads as empty; undecodable records
        are skipped.

        Args:
            document_key: Normalized page key

        """
        self.document_key = document_key
        self._notes = []
        try:
            records, _ = self._read_records()
        except StorageUnavailable as e:
            self._degrade(e)
            return
        for record in records:
            if record_document_key(record) != document_key:
                continue
            try:
                self._notes.append(Note.from_json(record))
            except InvalidNoteRecord as e:
                logger.warning("Skipping stored note: %s", e.reason)
        logger.info("Loaded %d notes for %s", len(self._notes), document_key)

    def persist(
        self, document_key: str | None = None, notes: Iterable[Note] | None = None
    ) -> bool:
        """
        Replace one page's records in storage.

        Args:
            document_key: Page whose records are replaced; defaults to the
                active page
            notes: Records to store for that page; defaults to the active
                page's notes

        Returns:
            True if the collection was written

        """
        if document_key is None:
            document_key = self.document_key
        if document_key is None:
            msg = "No active document; call load() first"
            raise ValueError(msg)
        payload = [note.to_json() for note in (self._notes if notes is None else notes)]
        if self.volatile:
            return False
        try:
            for _ in range(self.max_write_attempts):
                records, version = self._read_records()
                kept = [
                    record
                    for record in records
                    if record_document_key(record) != document_key
                ]
                value = json.dumps(kept + payload)
                if self.storage.write(self.storage_key, value, version):
                    return True
                logger.info("Notes changed in storage while saving; retrying")
        except StorageUnavailable as e:
            self._degrade(e)
            return False
        logger.warning(
            "Gave up saving notes for %s after %d attempts",
            document_key,
            self.max_write_attempts,
        )
        return False

    def add(self, note: Note) -> None:
        """
        Add a note to the active page and persist.

        Args:
            note: Note to add

        Raises:
            ValueError: if the note belongs to another page
            AlreadyExists: if a note with the same ID is present

        """
        if note.document_key != self.document_key:
            msg = (
                f"Note belongs to {note.document_key!r}, "
                f"active document is {self.document_key!r}"
            )
            raise ValueError(msg)
        if self.get(note.id) is not None:
            raise AlreadyExists("Note", note.id)
        self._notes.append(note)
        self.persist()

    def remove(self, note_id: str) -> bool:
        """
        Remove a note of the active page and persist.

        Args:
            note_id: Note ID

        Returns:
            True if a note was removed, False if there was none with that ID

        """
        remaining = [note for note in self._notes if note.id != note_id]
        if len(remaining) == len(self._notes):
            return False
        self._notes = remaining
        self.persist()
        return True
