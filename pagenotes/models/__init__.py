"""Data models for Page Notes."""

from pagenotes.models.anchor import AnchorDescriptor, PathStep
from pagenotes.models.note import Note
from pagenotes.models.storage_entry import StorageEntry

__all__ = ["AnchorDescriptor", "Note", "PathStep", "StorageEntry"]
