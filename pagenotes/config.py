"""Configuration for the notes subsystem."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final, cast

from PySide6.QtCore import QSettings

#: Storage key holding the notes of every page.
STORAGE_KEY: Final[str] = "pageNotes"
#: CSS class of a permanent highlight.
HIGHLIGHT_CLASS: Final[str] = "note-highlight"
#: CSS class of the transient highlight shown after a jump.
ACTIVE_HIGHLIGHT_CLASS: Final[str] = "note-highlight-active"
#: Characters captured on each side of an offset as a context fingerprint.
CONTEXT_RADIUS: Final[int] = 20
#: Delay between scrolling to a note and highlighting it.
SCROLL_DELAY_MS: Final[int] = 500
#: How long a transient highlight stays visible.
HIGHLIGHT_DURATION_MS: Final[int] = 3000
#: Compare-and-set attempts before a write is abandoned.
MAX_WRITE_ATTEMPTS: Final[int] = 3


@dataclass
class NotesConfig:
    """Tunable settings for note storage and highlighting."""

    #: Storage key holding the notes of every page.
    storage_key: str = STORAGE_KEY
    #: CSS class of a permanent highlight.
    highlight_class: str = HIGHLIGHT_CLASS
    #: CSS class of the transient highlight.
    active_highlight_class: str = ACTIVE_HIGHLIGHT_CLASS
    #: Context fingerprint radius in characters.
    context_radius: int = CONTEXT_RADIUS
    #: Delay between scroll and highlight, in milliseconds.
    scroll_delay_ms: int = SCROLL_DELAY_MS
    #: Transient highlight lifetime, in milliseconds.
    highlight_duration_ms: int = HIGHLIGHT_DURATION_MS
    #: Compare-and-set attempts per persist.
    max_write_attempts: int = MAX_WRITE_ATTEMPTS
    #: Database file; None means the platform default.
    db_path: Path | None = None

    @classmethod
    def from_qsettings(cls, settings: QSettings | None = None) -> NotesConfig:
        """
        Build a config from the ``notes/`` group of the application settings.

        Args:
            settings: Settings to read; defaults to the application's QSettings

        Returns:
            Config with any stored overrides applied

        """
        if settings is None:
            settings = QSettings()
        db_path = cast("str | None", settings.value("notes/db_path", None))
        return cls(
            storage_key=cast(
                "str", settings.value("notes/storage_key", STORAGE_KEY, type=str)
            ),
            context_radius=cast(
                "int", settings.value("notes/context_radius", CONTEXT_RADIUS, type=int)
            ),
            scroll_delay_ms=cast(
                "int",
                settings.value("notes/scroll_delay_ms", SCROLL_DELAY_MS, type=int),
            ),
            highlight_duration_ms=cast(
                "int",
                settings.value(
                    "notes/highlight_duration_ms", HIGHLIGHT_DURATION_MS, type=int
                ),
            ),
            max_write_attempts=cast(
                "int",
                settings.value(
                    "notes/max_write_attempts", MAX_WRITE_ATTEMPTS, type=int
                ),
            ),
            db_path=Path(db_path) if db_path else None,
        )
