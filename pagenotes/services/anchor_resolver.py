"""Relocation of stored anchors in the current document."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from pagenotes.dom import TextRange
from pagenotes.exc import RangeConstructionRejected
from pagenotes.models.anchor import PathStep

if TYPE_CHECKING:
    from collections.abc import Sequence

    from bs4 import NavigableString, Tag

    from pagenotes.dom import HtmlDocument
    from pagenotes.models.anchor import AnchorDescriptor

logger = logging.getLogger(__name__)

#: Snippets up to this length must appear verbatim in a text node.
SHORT_SNIPPET_LENGTH: Final[int] = 20
#: Characters dropped from each end of a longer snippet before matching.
SNIPPET_TRIM: Final[int] = 10


def matches_context(candidate: str, snippet: str) -> bool:
    """
    Tell whether a text node's text matches a context fingerprint.

    A short snippet must be contained verbatim.  A longer one only needs its
    middle (the snippet with :data:`SNIPPET_TRIM` characters cut from each
    end) to be contained, so edits right next to the anchor do not break it.

    Args:
        candidate: Text of a candidate text node
        snippet: Stored context snippet

    Returns:
        True if the candidate matches

    """
    if len(snippet) > SHORT_SNIPPET_LENGTH:
        return snippet[SNIPPET_TRIM : len(snippet) - SNIPPET_TRIM] in candidate
    return snippet in candidate


class AnchorResolver:
    """
    Rebuilds text ranges from anchors against a live document.

    The structural path picks the element; the context snippet picks the text
    node within it.  When no text node matches the snippet the element's first
    text node is used, so a drifted page may get a plausible but wrong
    location rather than none.

    Args:
        document: The document to resolve against

    """

    def __init__(self, document: HtmlDocument) -> None:
        #: The document to resolve against.
        self.document = document

    def resolve_element(self, path: Sequence[PathStep]) -> Tag | None:
        """
        Find the element at a structural path.

        Args:
            path: Steps, outermost first

        Returns:
            The element, or None if the path cannot be followed

        """
        element = self.document.element_at(path)
        if element is None:
            logger.debug("No element at %s", _describe(path))
        return element

    def find_text_node(self, element: Tag, snippet: str) -> NavigableString | None:
        """
        Pick the text node below ``element`` that the snippet came from.

        The first matching text node in document order wins.  If none match,
        the element's first text node is returned instead.

        Args:
            element: Element to search
            snippet: Stored context snippet

        Returns:
            The text node, or None if the element holds no text at all

        """
        first: NavigableString | None = None
        for node in self.document.iter_text_nodes(element):
            if first is None:
                first = node
            if matches_context(str(node), snippet):
                return node
        if first is not None:
            logger.debug("Context %r not found; using first text node", snippet)
        return first

    def resolve(self, descriptor: AnchorDescriptor) -> TextRange | None:
        """
        Rebuild the range a descriptor was encoded from.

        Args:
            descriptor: The stored anchor

        Returns:
            The range, or None if an element or text node cannot be found or
            the stored offsets do not fit the nodes found

        """
        start_element = self.resolve_element(descriptor.start_path)
        end_element = self.resolve_element(descriptor.end_path)
        if start_element is None or end_element is None:
            return None
        start_node = self.find_text_node(start_element, descriptor.start_context)
        end_node = self.find_text_node(end_element, descriptor.end_context)
        if start_node is None or end_node is None:
            logger.debug("Anchor elements hold no text")
            return None
        try:
            return TextRange(
                start_node, descriptor.start_offset, end_node, descriptor.end_offset
            )
        except RangeConstructionRejected as e:
            logger.debug("Could not rebuild range: %s", e)
            return None


def _describe(path: Sequence[PathStep]) -> str:
    try:
        return PathStep.to_xpath(tuple(PathStep(*step) for step in path))
    except (TypeError, ValueError):
        return repr(path)
