"""HTML document access used to encode, resolve and highlight text ranges."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from pagenotes.exc import RangeConstructionRejected
from pagenotes.utils import normalize_document_key

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from bs4.element import PageElement

    from pagenotes.models.anchor import PathStep


def is_text_node(node: PageElement | None) -> bool:
    """
    Tell whether ``node`` is a text node.

    Comments, doctypes, CDATA sections and processing instructions are strings
    in BeautifulSoup but carry no page text, so they are excluded.

    Args:
        node: Node to check

    Returns:
        True for plain text nodes

    """
    return isinstance(node, NavigableString) and not isinstance(
        node, PreformattedString
    )


def element_classes(tag: Tag) -> list[str]:
    """
    List the CSS classes of an element.

    Args:
        tag: Element to inspect

    Returns:
        Class names, empty if the element has no ``class`` attribute

    """
    value = tag.get("class")
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    return list(value)


class TextRange:
    """
    A span of page text between two (text node, offset) boundaries.

    The range is validated on construction: both nodes must be text nodes
    attached to a tree, offsets must lie inside their node, and the end must
    not come before the start in document order.

    Args:
        start_node: Text node the range starts in
        start_offset: Character offset within ``start_node``
        end_node: Text node the range ends in
        end_offset: Character offset within ``end_node``

    Raises:
        RangeConstructionRejected: if the bounds are invalid

    """

    def __init__(
        self,
        start_node: NavigableString,
        start_offset: int,
        end_node: NavigableString,
        end_offset: int,
    ) -> None:
        self._validate_boundary(start_node, start_offset, "start")
        self._validate_boundary(end_node, end_offset, "end")
        if start_node is end_node:
            if end_offset < start_offset:
                msg = "end offset precedes start offset"
                raise RangeConstructionRejected(msg)
        elif not any(node is end_node for node in start_node.next_elements):
            msg = "end node precedes start node"
            raise RangeConstructionRejected(msg)
        #: The text node the range starts in.
        self.start_node = start_node
        #: The offset within the start node.
        self.start_offset = start_offset
        #: The text node the range ends in.
        self.end_node = end_node
        #: The offset within the end node.
        self.end_offset = end_offset

    @staticmethod
    def _validate_boundary(node: PageElement, offset: int, which: str) -> None:
        if not is_text_node(node):
            msg = f"{which} container is not a text node"
            raise RangeConstructionRejected(msg)
        if node.parent is None:
            msg = f"{which} node is not attached to a document"
            raise RangeConstructionRejected(msg)
        if offset < 0 or offset > len(node):
            msg = f"{which} offset {offset} outside node of length {len(node)}"
            raise RangeConstructionRejected(msg)

    @property
    def collapsed(self) -> bool:
        """True when the range selects no characters."""
        return self.start_node is self.end_node and self.start_offset == self.end_offset

    @property
    def range(self) -> TextRange:
        """The range itself, so a range can be used wherever a selection is."""
        return self

    @property
    def attached(self) -> bool:
        """False once either boundary node has been removed from the tree."""
        return self.start_node.parent is not None and self.end_node.parent is not None

    def text_nodes(self) -> list[NavigableString]:
        """
        List the text nodes the range touches, in document order.

        Returns:
            Text nodes from the start node to the end node inclusive

        """
        if self.start_node is self.end_node:
            return [self.start_node]
        nodes = [self.start_node]
        for node in self.start_node.next_elements:
            if node is self.end_node:
                break
            if is_text_node(node):
                nodes.append(node)
        nodes.append(self.end_node)
        return nodes

    def trimmed(self) -> TextRange:
        """
        Narrow the range so it neither starts nor ends with whitespace.

        Boundaries move past whitespace-only text nodes when needed, so the
        result's :attr:`text` equals ``self.text.strip()``.

        Returns:
            A new range; collapsed at the start if the range holds only
            whitespace

        """
        nodes = self.text_nodes()
        last = len(nodes) - 1

        def bounds(i: int) -> tuple[int, int]:
            low = self.start_offset if i == 0 else 0
            high = self.end_offset if i == last else len(nodes[i])
            return low, high

        start: tuple[int, int] | None = None
        for i, node in enumerate(nodes):
            text = str(node)
            offset, high = bounds(i)
            while offset < high and text[offset].isspace():
                offset += 1
            if offset < high:
                start = (i, offset)
                break
        if start is None:
            return TextRange(
                self.start_node, self.start_offset, self.start_node, self.start_offset
            )
        first, start_offset = start
        end = (first, start_offset + 1)
        for i in range(last, first - 1, -1):
            text = str(nodes[i])
            low, offset = bounds(i)
            if i == first:
                low = start_offset
            while offset > low and text[offset - 1].isspace():
                offset -= 1
            if offset > low:
                end = (i, offset)
                break
        return TextRange(nodes[first], start_offset, nodes[end[0]], end[1])

    @property
    def text(self) -> str:
        """The text bounded by the range."""
        if self.start_node is self.end_node:
            return str(self.start_node)[self.start_offset : self.end_offset]
        nodes = self.text_nodes()
        parts = [str(self.start_node)[self.start_offset :]]
        parts.extend(str(node) for node in nodes[1:-1])
        parts.append(str(self.end_node)[: self.end_offset])
        return "".join(parts)

    def move_to(
        self,
        start_node: NavigableString,
        start_offset: int,
        end_node: NavigableString,
        end_offset: int,
    ) -> None:
        """
        Re-point the range at new boundaries, after the tree was rewritten.

        Args:
            start_node: New start text node
            start_offset: New start offset
            end_node: New end text node
            end_offset: New end offset

        """
        self.start_node = start_node
        self.start_offset = start_offset
        self.end_node = end_node
        self.end_offset = end_offset

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return (
            f"TextRange({self.start_offset}..{self.end_offset}, text={self.text!r})"
        )


class Selection(Protocol):
    """What the notes system needs from a user's selection."""

    @property
    def collapsed(self) -> bool: ...

    @property
    def range(self) -> TextRange: ...

    def __str__(self) -> str: ...


class HtmlDocument:
    """
    A parsed HTML page plus the URL it was loaded from.

    This is the document-query capability the anchor codec, resolver and
    highlighter work against: structural lookup by tag/sibling-index path and
    enumeration of text nodes in document order.

    Args:
        markup: HTML source, or an already parsed soup
        url: The page URL; only its path identifies the page's notes

    Keyword Args:
        parser: BeautifulSoup tree builder used for string markup

    """

    def __init__(
        self, markup: str | BeautifulSoup, url: str = "/", parser: str = "html.parser"
    ) -> None:
        #: The parsed tree.
        self.soup = (
            markup if isinstance(markup, BeautifulSoup) else BeautifulSoup(markup, parser)
        )
        #: The URL the page was loaded from.
        self.url = url

    @classmethod
    def from_file(cls, path: Path, url: str | None = None) -> HtmlDocument:
        """
        Load a document from an HTML file.

        Args:
            path: Path to the HTML file

        Keyword Args:
            url: Page URL; defaults to the file path

        Returns:
            The parsed document

        """
        markup = path.read_text(encoding="utf-8")
        return cls(markup, url=url if url is not None else path.as_posix())

    @property
    def key(self) -> str:
        """The normalized key notes for this page are stored under."""
        return normalize_document_key(self.url)

    @property
    def root(self) -> Tag | None:
        """The outermost element of the page."""
        return self.soup.find(True, recursive=False)

    def element_at(self, path: Sequence[PathStep]) -> Tag | None:
        """
        Replay a structural path from the top of the document.

        Args:
            path: ``(tag, index)`` steps, outermost first

        Returns:
            The element at the path, or None if any step cannot be satisfied
            or the path is malformed

        """
        if not path:
            return None
        current: Tag = self.soup
        for step in path:
            try:
                tag, index = step
            except (TypeError, ValueError):
                return None
            if not isinstance(tag, str) or not isinstance(index, int) or index < 0:
                return None
            matches = [
                child
                for child in current.children
                if isinstance(child, Tag) and child.name == tag
            ]
            if index >= len(matches):
                return None
            current = matches[index]
        return current

    def iter_text_nodes(self, element: Tag) -> Iterator[NavigableString]:
        """
        Yield the non-empty text nodes below ``element`` in document order.

        Args:
            element: Element to scan

        Yields:
            Text nodes

        """
        for node in element.descendants:
            if is_text_node(node) and len(node) > 0:
                yield node

    def text_nodes(self, element: Tag) -> list[NavigableString]:
        """
        List the non-empty text nodes below ``element`` in document order.

        Args:
            element: Element to scan

        Returns:
            Text nodes

        """
        return list(self.iter_text_nodes(element))

    def select_text(self, needle: str, occurrence: int = 0) -> TextRange | None:
        """
        Select an occurrence of ``needle`` that lies within one text node.

        Args:
            needle: Text to select

        Keyword Args:
            occurrence: Zero-based index of the occurrence to select

        Returns:
            A range over the occurrence, or None if there are not enough
            occurrences

        """
        if not needle:
            return None
        seen = 0
        for node in self.iter_text_nodes(self.soup):
            text = str(node)
            start = text.find(needle)
            while start != -1:
                if seen == occurrence:
                    return TextRange(node, start, node, start + len(needle))
                seen += 1
                start = text.find(needle, start + 1)
        return None

    def __str__(self) -> str:
        return str(self.soup)
