"""Note lifecycle orchestration for the presentation layer."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Final, Protocol

from pagenotes.config import SCROLL_DELAY_MS, NotesConfig
from pagenotes.models.note import Note
from pagenotes.services.anchor_codec import AnchorCodec
from pagenotes.services.anchor_resolver import AnchorResolver
from pagenotes.services.highlight import HighlightController
from pagenotes.services.note_store import NoteStore
from pagenotes.utils import new_note_id, now_ms

if TYPE_CHECKING:
    from collections.abc import Callable

    from pagenotes.dom import HtmlDocument, Selection, TextRange
    from pagenotes.services.scheduler import Scheduler
    from pagenotes.services.storage import KeyValueStorage

logger = logging.getLogger(__name__)

#: Message shown when a note's text cannot be found on the page.
NOT_FOUND_MESSAGE: Final[str] = (
    "Could not find the highlighted text on the page. "
    "It may have been modified or removed."
)


class LocateResult(Enum):
    """Outcome of :meth:`NoteLifecycleCoordinator.locate_and_highlight`."""

    FOUND = "found"
    NOT_FOUND = "not_found"


class JumpPhase(Enum):
    """Where the most recent jump-to-note sequence is."""

    IDLE = "idle"
    SCROLLING = "scrolling"
    HIGHLIGHTING = "highlighting"


class Viewport(Protocol):
    """Scrolls the page so a range is visible."""

    def scroll_to(self, text_range: TextRange) -> None: ...


class Notifier(Protocol):
    """Shows a blocking message to the user."""

    def notify(self, message: str) -> None: ...


class NullViewport:
    """Viewport for pages that are not displayed."""

    def scroll_to(self, text_range: TextRange) -> None:
        logger.debug("Scroll to %r", text_range)


class LogNotifier:
    """Notifier that writes messages to the log."""

    def notify(self, message: str) -> None:
        logger.warning(message)


class NoteLifecycleCoordinator:
    """
    Creates, lists, deletes and locates the notes of one page.

    Args:
        document: The displayed page
        store: Note store
        codec: Encodes selections
        resolver: Resolves stored anchors against ``document``
        highlighter: Marks resolved ranges in ``document``
        scheduler: Runs the delayed steps of a jump

    Keyword Args:
        viewport: Scrolls to a located note
        notifier: Reports notes that cannot be located
        clock: Returns the current time in epoch milliseconds
        scroll_delay_ms: Delay between scrolling and highlighting

    """

    def __init__(  # noqa: PLR0913
        self,
        document: HtmlDocument,
        store: NoteStore,
        codec: AnchorCodec,
        resolver: AnchorResolver,
        highlighter: HighlightController,
        scheduler: Scheduler,
        viewport: Viewport | None = None,
        notifier: Notifier | None = None,
        clock: Callable[[], int] | None = None,
        scroll_delay_ms: int = SCROLL_DELAY_MS,
    ) -> None:
        self.document = document
        self.store = store
        self.codec = codec
        self.resolver = resolver
        self.highlighter = highlighter
        self.scheduler = scheduler
        self.viewport: Viewport = viewport if viewport is not None else NullViewport()
        self.notifier: Notifier = notifier if notifier is not None else LogNotifier()
        self.clock = clock if clock is not None else now_ms
        self.scroll_delay_ms = scroll_delay_ms
        #: Phase of the most recent jump.
        self.phase = JumpPhase.IDLE
        #: Sequence number of the most recent jump.
        self.jump_id = 0

    @classmethod
    def for_document(  # noqa: PLR0913
        cls,
        document: HtmlDocument,
        storage: KeyValueStorage,
        scheduler: Scheduler,
        config: NotesConfig | None = None,
        viewport: Viewport | None = None,
        notifier: Notifier | None = None,
    ) -> NoteLifecycleCoordinator:
        """
        Wire up the collaborators for one page from a config.

        Args:
            document: The displayed page
            storage: Durable storage
            scheduler: Runs delayed steps

        Keyword Args:
            config: Settings; defaults to :class:`~pagenotes.config.NotesConfig`
            viewport: Scrolls to a located note
            notifier: Reports notes that cannot be located

        Returns:
            The coordinator; call :meth:`open` to load the page's notes

        """
        if config is None:
            config = NotesConfig()
        return cls(
            document=document,
            store=NoteStore(
                storage,
                storage_key=config.storage_key,
                max_write_attempts=config.max_write_attempts,
            ),
            codec=AnchorCodec(
                context_radius=config.context_radius,
                wrapper_classes=(
                    config.highlight_class,
                    config.active_highlight_class,
                ),
            ),
            resolver=AnchorResolver(document),
            highlighter=HighlightController(
                document,
                scheduler,
                highlight_class=config.highlight_class,
                active_highlight_class=config.active_highlight_class,
                highlight_duration_ms=config.highlight_duration_ms,
            ),
            scheduler=scheduler,
            viewport=viewport,
            notifier=notifier,
            scroll_delay_ms=config.scroll_delay_ms,
        )

    def open(self) -> None:
        """Load the notes of the page."""
        self.store.load(self.document.key)

    def create_note_from_selection(self, selection: Selection | None) -> Note | None:
        """
        Save the user's selection as a note.

        Args:
            selection: The current selection

        Returns:
            The new note, or None if nothing (or only whitespace) is selected

        """
        if selection is None or selection.collapsed:
            return None
        text = str(selection).strip()
        if not text:
            return None
        position = self.codec.encode(selection.range)
        if position is None:
            return None
        note_id = new_note_id()
        while self.store.get(note_id) is not None:
            note_id = new_note_id()
        note = Note.create(
            text=text,
            document_key=self.document.key,
            position=position,
            timestamp=self.clock(),
            note_id=note_id,
        )
        self.store.add(note)
        logger.info("Created note %s on %s", note.id, note.document_key)
        return note

    def list_notes(self) -> list[Note]:
        """
        List the page's notes.

        Returns:
            Notes, newest first

        """
        return sorted(self.store.notes, key=lambda note: note.timestamp, reverse=True)

    def delete_note(self, note_id: str) -> None:
        """
        Delete a note of the page.

        Args:
            note_id: Note ID

        """
        if not self.store.remove(note_id):
            logger.info("No note %s to delete on %s", note_id, self.document.key)

    def locate_and_highlight(self, note_id: str) -> LocateResult:
        """
        Scroll to a note's text and briefly highlight it.

        The highlight appears after the scroll delay and disappears after the
        highlighter's duration.  Neither step can be cancelled, but only the
        most recent jump moves :attr:`phase`.

        Args:
            note_id: Note ID

        Returns:
            Whether the note's text was found on the page

        """
        note = self.store.get(note_id)
        if note is None:
            return LocateResult.NOT_FOUND
        self.highlighter.clear_active()
        text_range = self.resolver.resolve(note.position)
        if text_range is None:
            logger.warning("Could not locate note %s", note_id)
            self.notifier.notify(NOT_FOUND_MESSAGE)
            return LocateResult.NOT_FOUND
        self.jump_id += 1
        jump_id = self.jump_id
        self.phase = JumpPhase.SCROLLING
        self.viewport.scroll_to(text_range)
        self.scheduler.call_later(
            self.scroll_delay_ms, lambda: self._highlight(note, text_range, jump_id)
        )
        return LocateResult.FOUND

    def _set_phase(self, jump_id: int, phase: JumpPhase) -> None:
        if jump_id == self.jump_id:
            self.phase = phase

    def _highlight(self, note: Note, text_range: TextRange, jump_id: int) -> None:
        self.highlighter.clear_active()
        if not text_range.attached:
            # The tree changed while scrolling; look the note up again
            text_range = self.resolver.resolve(note.position)
            if text_range is None:
                logger.warning("Note %s vanished before it could be shown", note.id)
                self._set_phase(jump_id, JumpPhase.IDLE)
                return
        self._set_phase(jump_id, JumpPhase.HIGHLIGHTING)
        self.highlighter.flash(text_range)
        self.scheduler.call_later(
            self.highlighter.highlight_duration_ms,
            lambda: self._set_phase(jump_id, JumpPhase.IDLE),
        )
