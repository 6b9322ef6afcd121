"""Anchor descriptor model."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, NamedTuple

from pagenotes.exc import InvalidNoteRecord

#: One step of an XPath-like path: a tag name and an optional 1-based position.
_XPATH_STEP = re.compile(r"([A-Za-z][\w:-]*)(?:\[([0-9]+)\])?")


class PathStep(NamedTuple):
    """
    One level of a structural path: an element's tag name and its index among
    preceding siblings with the same tag name.
    """

    #: The lowercase tag name.
    tag: str
    #: Count of preceding siblings sharing ``tag``.
    index: int

    @staticmethod
    def to_xpath(path: tuple[PathStep, ...]) -> str:
        """
        Render a path as an XPath-like string, e.g. ``/html/body/div[2]/p``.

        Args:
            path: Steps, outermost first

        Returns:
            The XPath form, with 1-based positions shown only past the first

        """
        parts = [
            f"{step.tag}[{step.index + 1}]" if step.index > 0 else step.tag
            for step in path
        ]
        return "/" + "/".join(parts)

    @staticmethod
    def from_xpath(xpath: str) -> tuple[PathStep, ...]:
        """
        Parse the XPath-like form written by :meth:`to_xpath`.

        Args:
            xpath: Path such as ``/html/body/div[2]/p``

        Raises:
            ValueError: if ``xpath`` is not in that form

        Returns:
            Steps, outermost first

        """
        if not xpath.startswith("/"):
            msg = f"XPath must start with /: {xpath!r}"
            raise ValueError(msg)
        if xpath == "/":
            return ()
        steps = []
        for part in xpath[1:].split("/"):
            match = _XPATH_STEP.fullmatch(part)
            position = int(match.group(2) or 1) if match is not None else 0
            if position < 1:
                msg = f"Bad XPath step {part!r} in {xpath!r}"
                raise ValueError(msg)
            steps.append(PathStep(match.group(1).lower(), position - 1))
        return tuple(steps)


def _path_from_json(value: Any) -> tuple[PathStep, ...]:
    if not isinstance(value, list):
        raise InvalidNoteRecord(value, "path is not a list")
    steps = []
    for item in value:
        if (
            not isinstance(item, list)
            or len(item) != 2  # noqa: PLR2004
            or not isinstance(item[0], str)
            or not isinstance(item[1], int)
        ):
            raise InvalidNoteRecord(value, f"bad path step {item!r}")
        steps.append(PathStep(item[0], item[1]))
    return tuple(steps)


def _path_from_xpath(value: Any) -> tuple[PathStep, ...]:
    if not isinstance(value, str):
        raise InvalidNoteRecord(value, "XPath is not a string")
    try:
        return PathStep.from_xpath(value)
    except ValueError as e:
        raise InvalidNoteRecord(value, str(e)) from e


@dataclass(frozen=True)
class AnchorDescriptor:
    """
    A relocatable reference to a span of page text.

    The structural paths locate the start and end elements; the context
    snippets fingerprint the text around each offset so the right text node
    can be picked again when the element holds several.
    """

    #: Path to the element holding the start text node.
    start_path: tuple[PathStep, ...]
    #: Path to the element holding the end text node.
    end_path: tuple[PathStep, ...]
    #: Offset within the start text node.
    start_offset: int
    #: Offset within the end text node.
    end_offset: int
    #: Text surrounding the start offset.
    start_context: str
    #: Text surrounding the end offset.
    end_context: str

    def to_json(self) -> dict[str, Any]:
        """
        Serialize the descriptor to a JSON-compatible dictionary.

        Returns:
            Dictionary of descriptor data

        """
        return {
            "startPath": [list(step) for step in self.start_path],
            "endPath": [list(step) for step in self.end_path],
            "startOffset": self.start_offset,
            "endOffset": self.end_offset,
            "startContext": self.start_context,
            "endContext": self.end_context,
        }

    @classmethod
    def from_json(cls, data: Any) -> AnchorDescriptor:
        """
        Create a descriptor from persisted data.

        Args:
            data: Dictionary produced by :meth:`to_json`, or the
                in-page script's ``startXPath``/``startText`` layout

        Raises:
            InvalidNoteRecord: if the data is malformed

        Returns:
            The descriptor

        """
        if not isinstance(data, dict):
            raise InvalidNoteRecord(data, "position is not an object")
        try:
            start_offset = data["startOffset"]
            end_offset = data["endOffset"]
            if "startXPath" in data:
                # Layout written by the in-page script: XPath strings and
                # startText/endText contexts
                start_context = data.get("startText", "")
                end_context = data.get("endText", "")
                start_path = _path_from_xpath(data["startXPath"])
                end_path = _path_from_xpath(data["endXPath"])
            else:
                start_context = data.get("startContext", "")
                end_context = data.get("endContext", "")
                start_path = _path_from_json(data["startPath"])
                end_path = _path_from_json(data["endPath"])
        except KeyError as e:
            raise InvalidNoteRecord(data, f"missing {e.args[0]}") from e
        if not isinstance(start_offset, int) or not isinstance(end_offset, int):
            raise InvalidNoteRecord(data, "offsets must be integers")
        if not isinstance(start_context, str) or not isinstance(end_context, str):
            raise InvalidNoteRecord(data, "contexts must be strings")
        return cls(
            start_path=start_path,
            end_path=end_path,
            start_offset=start_offset,
            end_offset=end_offset,
            start_context=start_context,
            end_context=end_context,
        )
