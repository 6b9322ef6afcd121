"""Highlight markup for resolved text ranges."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from bs4 import NavigableString, Tag

from pagenotes.config import (
    ACTIVE_HIGHLIGHT_CLASS,
    HIGHLIGHT_CLASS,
    HIGHLIGHT_DURATION_MS,
)
from pagenotes.dom import element_classes
from pagenotes.exc import HighlightRejected

if TYPE_CHECKING:
    from pagenotes.dom import HtmlDocument, TextRange
    from pagenotes.services.scheduler import Scheduler

logger = logging.getLogger(__name__)


class HighlightState(Enum):
    """Whether a transient highlight is showing."""

    IDLE = "idle"
    ACTIVE = "active"


def _index_of(parent: Tag, node: NavigableString) -> int:
    return next(i for i, child in enumerate(parent.contents) if child is node)


class HighlightController:
    """
    Wraps text ranges in highlight ``<span>`` elements.

    At most one transient highlight is shown at a time.  :meth:`flash` shows
    one and schedules its removal; that removal is never cancelled, so an
    older flash's timer may clear a newer flash early.

    Args:
        document: Document whose tree is edited
        scheduler: Runs the delayed removal of transient highlights

    Keyword Args:
        highlight_class: Class of permanent highlights
        active_highlight_class: Class of transient highlights
        highlight_duration_ms: Lifetime of a transient highlight

    """

    def __init__(
        self,
        document: HtmlDocument,
        scheduler: Scheduler,
        highlight_class: str = HIGHLIGHT_CLASS,
        active_highlight_class: str = ACTIVE_HIGHLIGHT_CLASS,
        highlight_duration_ms: int = HIGHLIGHT_DURATION_MS,
    ) -> None:
        self.document = document
        self.scheduler = scheduler
        self.highlight_class = highlight_class
        self.active_highlight_class = active_highlight_class
        self.highlight_duration_ms = highlight_duration_ms
        #: Whether a transient highlight is showing.
        self.state = HighlightState.IDLE

    def _is_highlight(self, tag: Tag | None) -> bool:
        if not isinstance(tag, Tag) or tag.name != "span":
            return False
        classes = element_classes(tag)
        return self.highlight_class in classes or self.active_highlight_class in classes

    def _existing_wrapper(self, text_range: TextRange) -> Tag | None:
        parent = text_range.start_node.parent
        if not self._is_highlight(parent) or text_range.end_node.parent is not parent:
            return None
        if (
            parent.contents[0] is text_range.start_node
            and parent.contents[-1] is text_range.end_node
            and text_range.start_offset == 0
            and text_range.end_offset == len(text_range.end_node)
        ):
            return parent
        return None

    def _new_wrapper(self, transient: bool) -> Tag:
        span = self.document.soup.new_tag("span")
        span["class"] = [
            self.active_highlight_class if transient else self.highlight_class
        ]
        return span

    def _wrap(self, text_range: TextRange, transient: bool) -> Tag:
        start, end = text_range.start_node, text_range.end_node
        if not text_range.attached:
            msg = "range is no longer attached to the document"
            raise HighlightRejected(msg)
        if text_range.collapsed:
            msg = "range is collapsed"
            raise HighlightRejected(msg)
        parent = start.parent
        if end.parent is not parent:
            msg = "range crosses element boundaries"
            raise HighlightRejected(msg)
        start_text = str(start)
        end_text = str(end)
        span = self._new_wrapper(transient)
        if start is end:
            before = start_text[: text_range.start_offset]
            after = start_text[text_range.end_offset :]
            head = tail = NavigableString(
                start_text[text_range.start_offset : text_range.end_offset]
            )
            span.append(head)
            start.replace_with(span)
            if before:
                span.insert_before(NavigableString(before))
            if after:
                span.insert_after(NavigableString(after))
        else:
            first = _index_of(parent, start)
            last = _index_of(parent, end)
            inner = parent.contents[first + 1 : last]
            head = NavigableString(start_text[text_range.start_offset :])
            tail = NavigableString(end_text[: text_range.end_offset])
            start.insert_after(span)
            span.append(head)
            for node in inner:
                span.append(node.extract())
            span.append(tail)
            before = start_text[: text_range.start_offset]
            after = end_text[text_range.end_offset :]
            if before:
                start.replace_with(NavigableString(before))
            else:
                start.extract()
            if after:
                end.replace_with(NavigableString(after))
            else:
                end.extract()
        text_range.move_to(head, 0, tail, len(tail))
        return span

    def mark(self, text_range: TextRange, transient: bool = False) -> Tag | None:
        """
        Wrap a range in a highlight.

        Only ranges within one text node, or between sibling text nodes, can
        be wrapped.  Other ranges are logged and left alone.  Marking a range
        that is already exactly wrapped returns the existing wrapper.

        Args:
            text_range: Range to wrap; re-pointed at the wrapped text afterwards

        Keyword Args:
            transient: Use the transient class instead of the permanent one

        Returns:
            The wrapper element, or None if the range could not be wrapped

        """
        existing = self._existing_wrapper(text_range)
        if existing is not None:
            return existing
        try:
            return self._wrap(text_range, transient)
        except HighlightRejected as e:
            logger.warning("Could not highlight range: %s", e.reason)
            return None

    def active_wrappers(self) -> list[Tag]:
        """
        Find the transient highlights in the document.

        Returns:
            Transient wrapper elements

        """
        return [
            span
            for span in self.document.soup.find_all("span")
            if self.active_highlight_class in element_classes(span)
        ]

    def clear_active(self) -> int:
        """
        Remove every transient highlight, restoring the original text nodes.

        Returns:
            Number of highlights removed

        """
        wrappers = self.active_wrappers()
        for span in wrappers:
            parent = span.parent
            span.unwrap()
            if parent is not None:
                parent.smooth()
        self.state = HighlightState.IDLE
        return len(wrappers)

    def flash(self, text_range: TextRange) -> Tag | None:
        """
        Show a transient highlight and schedule its removal.

        Any transient highlight already showing is removed first.

        Args:
            text_range: Range to highlight

        Returns:
            The wrapper element, or None if the range could not be wrapped

        """
        self.clear_active()
        span = self.mark(text_range, transient=True)
        if span is None:
            return None
        self.state = HighlightState.ACTIVE
        self.scheduler.call_later(self.highlight_duration_ms, self.clear_active)
        return span
