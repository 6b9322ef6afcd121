"""Encoding of text ranges into relocatable anchors."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup, Tag

from pagenotes.config import ACTIVE_HIGHLIGHT_CLASS, CONTEXT_RADIUS, HIGHLIGHT_CLASS
from pagenotes.dom import element_classes, is_text_node
from pagenotes.models.anchor import AnchorDescriptor, PathStep

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from bs4.element import PageElement

    from pagenotes.dom import TextRange

logger = logging.getLogger(__name__)


class AnchorCodec:
    """
    Turns a live text range into an :class:`AnchorDescriptor`.

    Highlight wrappers are invisible to the codec: paths skip them and
    offsets and contexts are measured against the text node the wrapper's
    removal will leave behind.  A note saved while a highlight is showing
    therefore still resolves once the highlight is gone.

    Keyword Args:
        context_radius: Characters of context captured on each side of an offset
        wrapper_classes: Classes marking ``<span>`` highlight wrappers

    """

    def __init__(
        self,
        context_radius: int = CONTEXT_RADIUS,
        wrapper_classes: Iterable[str] = (HIGHLIGHT_CLASS, ACTIVE_HIGHLIGHT_CLASS),
    ) -> None:
        #: Characters of context captured on each side of an offset.
        self.context_radius = context_radius
        #: Classes marking highlight wrappers.
        self.wrapper_classes = frozenset(wrapper_classes)

    def encode(self, text_range: TextRange | None) -> AnchorDescriptor | None:
        """
        Encode a range.

        Leading and trailing whitespace is left out, so the encoded range
        bounds exactly the trimmed selected text.

        Args:
            text_range: The selected range

        Returns:
            The descriptor, or None for a missing or collapsed range, or one
            holding only whitespace

        """
        if text_range is None or text_range.collapsed:
            return None
        text_range = text_range.trimmed()
        if text_range.collapsed:
            logger.debug("Ignoring whitespace-only selection")
            return None
        start_text, start_offset = self._merged_text(
            text_range.start_node, text_range.start_offset
        )
        end_text, end_offset = self._merged_text(
            text_range.end_node, text_range.end_offset
        )
        return AnchorDescriptor(
            start_path=self.compute_path(text_range.start_node),
            end_path=self.compute_path(text_range.end_node),
            start_offset=start_offset,
            end_offset=end_offset,
            start_context=self._context(start_text, start_offset),
            end_context=self._context(end_text, end_offset),
        )

    def is_wrapper(self, node: PageElement | None) -> bool:
        """
        Tell whether ``node`` is a highlight wrapper.

        Args:
            node: Node to check

        Returns:
            True for ``<span>`` elements carrying a wrapper class

        """
        return (
            isinstance(node, Tag)
            and node.name == "span"
            and not self.wrapper_classes.isdisjoint(element_classes(node))
        )

    def _logical_parent(self, node: PageElement) -> Tag | None:
        parent = node.parent
        while self.is_wrapper(parent):
            parent = parent.parent
        return parent

    def _logical_children(self, element: Tag) -> Iterator[PageElement]:
        for child in element.children:
            if self.is_wrapper(child):
                yield from self._logical_children(child)
            else:
                yield child

    def compute_path(self, node: PageElement) -> tuple[PathStep, ...]:
        """
        Compute the structural path from the top of the document to ``node``.

        Text nodes are addressed through their parent element.  Each step's
        index counts only preceding siblings with the same tag name.

        Args:
            node: Element or text node

        Returns:
            Steps, outermost first

        """
        element = node
        if is_text_node(node) or self.is_wrapper(node):
            element = self._logical_parent(node)
        steps: list[PathStep] = []
        while isinstance(element, Tag) and not isinstance(element, BeautifulSoup):
            parent = self._logical_parent(element)
            index = 0
            if parent is not None:
                for sibling in self._logical_children(parent):
                    if sibling is element:
                        break
                    if isinstance(sibling, Tag) and sibling.name == element.name:
                        index += 1
            steps.insert(0, PathStep(element.name, index))
            element = parent
        return tuple(steps)

    def _merged_text(self, node: PageElement, offset: int) -> tuple[str, int]:
        """
        Find the text and offset ``node`` will have once wrappers are removed.

        Removing a wrapper merges its text with the text next to it, so a
        boundary inside or beside a wrapper is re-based onto the merged run of
        adjacent text nodes.  Runs that involve no wrapper are left alone.
        """
        parent = self._logical_parent(node)
        if parent is None:
            return str(node), offset
        run: list[PageElement] = []
        found = False
        for child in self._logical_children(parent):
            if is_text_node(child):
                run.append(child)
                found = found or child is node
            elif found:
                break
            else:
                run = []
        if not found or all(child.parent is parent for child in run):
            return str(node), offset
        before = 0
        for child in run:
            if child is node:
                break
            before += len(child)
        return "".join(str(child) for child in run), before + offset

    def _context(self, text: str, offset: int) -> str:
        start = max(0, offset - self.context_radius)
        end = min(len(text), offset + self.context_radius)
        return text[start:end]

    def compute_context(self, node: PageElement, offset: int) -> str:
        """
        Capture the text around ``offset`` in a text node.

        Args:
            node: Text node
            offset: Character offset within the node

        Returns:
            Up to ``context_radius`` characters before and after the offset,
            clipped to the node's text; empty for non-text nodes

        """
        if not is_text_node(node):
            return ""
        return self._context(*self._merged_text(node, offset))
