"""Services package initialization."""

from pagenotes.services.anchor_codec import AnchorCodec
from pagenotes.services.anchor_resolver import AnchorResolver, matches_context
from pagenotes.services.coordinator import (
    JumpPhase,
    LocateResult,
    NoteLifecycleCoordinator,
)
from pagenotes.services.highlight import HighlightController, HighlightState
from pagenotes.services.note_store import NoteStore
from pagenotes.services.scheduler import QtScheduler, Scheduler, VirtualScheduler
from pagenotes.services.storage import (
    KeyValueStorage,
    MemoryKeyValueStorage,
    QSettingsStorage,
    SqlKeyValueStorage,
)

__all__ = [
    "AnchorCodec",
    "AnchorResolver",
    "HighlightController",
    "HighlightState",
    "JumpPhase",
    "KeyValueStorage",
    "LocateResult",
    "MemoryKeyValueStorage",
    "NoteLifecycleCoordinator",
    "NoteStore",
    "QSettingsStorage",
    "QtScheduler",
    "Scheduler",
    "SqlKeyValueStorage",
    "VirtualScheduler",
    "matches_context",
]
