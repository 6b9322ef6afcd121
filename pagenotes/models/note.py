"""Note model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pagenotes.exc import InvalidNoteRecord
from pagenotes.models.anchor import AnchorDescriptor
from pagenotes.utils import new_note_id, now_ms


def record_document_key(record: Any) -> str | None:
    """
    Get the page key of a persisted note record without decoding it.

    Records written by the in-page script name their page in ``url``
    rather than ``documentKey``.

    Args:
        record: A persisted record

    Returns:
        The page key, or None if the record names no page

    """
    if not isinstance(record, dict):
        return None
    key = record.get("documentKey", record.get("url"))
    return key if isinstance(key, str) else None


@dataclass(frozen=True)
class Note:
    """
    Represents one saved text annotation on a page.

    Notes are never edited once created; deleting one rewrites the page's
    note collection without it.
    """

    #: The opaque note ID.
    id: str
    #: The selected text, trimmed.
    text: str
    #: Creation time in epoch milliseconds.
    timestamp: int
    #: The normalized path of the page the note belongs to.
    document_key: str
    #: Where the text sits on the page.
    position: AnchorDescriptor

    @classmethod
    def create(
        cls,
        text: str,
        document_key: str,
        position: AnchorDescriptor,
        timestamp: int | None = None,
        note_id: str | None = None,
    ) -> Note:
        """
        Create a new note.

        Args:
            text: Selected text; surrounding whitespace is trimmed
            document_key: Normalized page key
            position: Anchor of the selected text

        Keyword Args:
            timestamp: Creation time in epoch milliseconds; defaults to now
            note_id: Note ID; a fresh one is generated if omitted

        Raises:
            ValueError: if the trimmed text is empty

        Returns:
            The new :class:`~pagenotes.models.note.Note`

        """
        text = text.strip()
        if not text:
            msg = "Note text must not be empty"
            raise ValueError(msg)
        return cls(
            id=note_id or new_note_id(),
            text=text,
            timestamp=now_ms() if timestamp is None else timestamp,
            document_key=document_key,
            position=position,
        )

    def to_json(self) -> dict[str, Any]:
        """
        Serialize note to JSON-compatible dictionary.

        Returns:
            Dictionary containing note data

        """
        return {
            "id": self.id,
            "text": self.text,
            "timestamp": self.timestamp,
            "documentKey": self.document_key,
            "position": self.position.to_json(),
        }

    @classmethod
    def from_json(cls, data: Any) -> Note:
        """
        Create a note from a persisted record.

        Args:
            data: Note data dictionary; the in-page script's layout, with
                ``url`` in place of ``documentKey``, is accepted too

        Raises:
            InvalidNoteRecord: if the record is malformed

        Returns:
            The note

        """
        if not isinstance(data, dict):
            raise InvalidNoteRecord(data, "record is not an object")
        try:
            note_id = data["id"]
            text = data["text"]
            timestamp = data["timestamp"]
            document_key = data["documentKey"] if "documentKey" in data else data["url"]
            position = data["position"]
        except KeyError as e:
            raise InvalidNoteRecord(data, f"missing {e.args[0]}") from e
        if not isinstance(note_id, str) or not note_id:
            raise InvalidNoteRecord(data, "id must be a non-empty string")
        if not isinstance(text, str) or not text.strip():
            raise InvalidNoteRecord(data, "text must be a non-empty string")
        if isinstance(timestamp, bool) or not isinstance(timestamp, int | float):
            raise InvalidNoteRecord(data, "timestamp must be a number")
        if not isinstance(document_key, str):
            raise InvalidNoteRecord(data, "documentKey must be a string")
        return cls(
            id=note_id,
            text=text,
            timestamp=int(timestamp),
            document_key=document_key,
            position=AnchorDescriptor.from_json(position),
        )
