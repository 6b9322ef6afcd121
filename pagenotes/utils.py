"""Utility functions for Page Notes."""

import time
import uuid
from datetime import datetime
from urllib.parse import urlsplit

#: Milliseconds per minute.
_MINUTE_MS = 60_000
#: Milliseconds per hour.
_HOUR_MS = 3_600_000
#: Milliseconds per day.
_DAY_MS = 86_400_000


def now_ms() -> int:
    """
    Get the current time as milliseconds since the Unix epoch.

    Returns:
        Integer epoch milliseconds

    """
    return int(time.time() * 1000)


def new_note_id() -> str:
    """
    Generate a new opaque note identifier.

    Returns:
        32 character hex string

    """
    return uuid.uuid4().hex


def normalize_document_key(url: str) -> str:
    """
    Reduce a page URL to the key its notes are stored under.

    Only the path is kept, so query strings and fragments of the same logical
    page share one set of notes.

    Args:
        url: Full URL or bare path

    Returns:
        The path component, ``/`` if empty

    """
    path = urlsplit(url).path
    return path or "/"


def format_age(timestamp: int, now: int | None = None) -> str:
    """
    Render how long ago ``timestamp`` was, for display next to a note.

    Args:
        timestamp: Epoch milliseconds of the event

    Keyword Args:
        now: Epoch milliseconds to measure against; defaults to the current time

    Returns:
        A short relative age such as ``"5m ago"``, or the local date once the
        event is a week old

    """
    if now is None:
        now = now_ms()
    diff = now - timestamp
    minutes = diff // _MINUTE_MS
    hours = diff // _HOUR_MS
    days = diff // _DAY_MS
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d")
