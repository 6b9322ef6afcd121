"""Shared pytest fixtures and test helpers for Page Notes tests."""

import pytest
from PySide6.QtCore import QCoreApplication
from sqlalchemy import create_engine

from pagenotes.dom import HtmlDocument
from pagenotes.models.anchor import AnchorDescriptor, PathStep
from pagenotes.models.note import Note
from pagenotes.services.coordinator import NoteLifecycleCoordinator
from pagenotes.services.scheduler import VirtualScheduler
from pagenotes.services.storage import MemoryKeyValueStorage, SqlKeyValueStorage

#: A small page; "hello world" sits in the second paragraph.
GUIDE_HTML = (
    "<html><head><title>Guide</title></head><body>"
    '<div id="content">'
    "<h1>Guide</h1>"
    "<p>Intro paragraph with some words.</p>"
    "<p>The phrase hello world appears here, and nowhere else on this page.</p>"
    "<p>Third paragraph mentions <b>bold text</b> inside a sentence.</p>"
    "</div>"
    "</body></html>"
)


class RecordingNotifier:
    """Notifier that remembers the messages it was asked to show."""

    def __init__(self):
        self.messages = []

    def notify(self, message):
        self.messages.append(message)


class RecordingViewport:
    """Viewport that remembers the text it scrolled to."""

    def __init__(self):
        self.scrolled_to = []

    def scroll_to(self, text_range):
        self.scrolled_to.append(text_range.text)


@pytest.fixture(scope="session")
def qapp():
    """Create a QCoreApplication so Qt timers have an event loop."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    return app


@pytest.fixture
def db_engine(tmp_path):
    """Create a temporary SQLite database engine."""
    engine = create_engine(f"sqlite:///{tmp_path / 'notes.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def sql_storage(db_engine):
    """SQLite-backed storage in a temporary database."""
    return SqlKeyValueStorage.from_engine(db_engine)


@pytest.fixture
def memory_storage():
    """Volatile storage."""
    return MemoryKeyValueStorage()


@pytest.fixture
def scheduler():
    """Scheduler driven by a manual clock."""
    return VirtualScheduler()


@pytest.fixture
def guide_document():
    """The sample page served at ``/guide``."""
    return HtmlDocument(GUIDE_HTML, url="https://example.com/guide?tab=2#top")


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def viewport():
    return RecordingViewport()


@pytest.fixture
def coordinator(guide_document, memory_storage, scheduler, notifier, viewport):
    """An opened coordinator for the sample page."""
    coordinator = NoteLifecycleCoordinator.for_document(
        guide_document,
        memory_storage,
        scheduler,
        notifier=notifier,
        viewport=viewport,
    )
    coordinator.open()
    return coordinator


# Test helper functions (not fixtures, but available through the fixture below)


def make_note(document_key="/guide", text="hello world", note_id=None, timestamp=0):
    """
    Helper to create a note with a placeholder anchor.

    Args:
        document_key: Page key
        text: Note text
        note_id: Note ID (if None, one is generated)
        timestamp: Creation time in epoch milliseconds

    Returns:
        Created Note instance
    """
    position = AnchorDescriptor(
        start_path=(PathStep("html", 0), PathStep("body", 0), PathStep("p", 0)),
        end_path=(PathStep("html", 0), PathStep("body", 0), PathStep("p", 0)),
        start_offset=0,
        end_offset=len(text),
        start_context=text,
        end_context=text,
    )
    return Note.create(
        text=text,
        document_key=document_key,
        position=position,
        timestamp=timestamp,
        note_id=note_id,
    )


@pytest.fixture
def note_factory():
    """Factory for notes with placeholder anchors."""
    return make_note
