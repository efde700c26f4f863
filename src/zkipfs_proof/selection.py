"""Content selections: what part of a file a proof is about.

The set of variants is closed. Each variant is a frozen dataclass exposing the
same small surface (``is_valid``, ``estimated_size``, ``description``,
``to_dict``); :func:`selection_from_dict` and :func:`parse_selection` are the
only constructors that dispatch on a tag.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from .errors import InvalidInputError, SerializationError


@dataclass(frozen=True)
class ByteRange:
    """Half-open byte range ``[start, end)`` of the file content."""

    start: int
    end: int

    def is_valid(self) -> bool:
        return 0 <= self.start < self.end

    def estimated_size(self) -> Optional[int]:
        return max(0, self.end - self.start)

    def description(self) -> str:
        return f"Bytes {self.start}-{self.end} ({self.end - self.start} bytes)"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "byte_range", "start": self.start, "end": self.end}


@dataclass(frozen=True)
class Pattern:
    """Literal byte string that must occur in the file."""

    content: bytes

    def is_valid(self) -> bool:
        return len(self.content) > 0

    def estimated_size(self) -> Optional[int]:
        return len(self.content)

    def description(self) -> str:
        preview = self.content[:50].decode("utf-8", errors="replace")
        return f"Pattern: {preview} ({len(self.content)} bytes)"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "pattern", "content": self.content.hex()}


@dataclass(frozen=True)
class Regex:
    """Regular expression matched against the UTF-8 decoded file."""

    pattern: str

    def is_valid(self) -> bool:
        return len(self.pattern) > 0

    def estimated_size(self) -> Optional[int]:
        return None

    def description(self) -> str:
        return f"Regex: {self.pattern}"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "regex", "pattern": self.pattern}


@dataclass(frozen=True)
class StructuredSelector:
    """XPath expression evaluated over the file parsed as XML or HTML."""

    selector: str

    def is_valid(self) -> bool:
        return len(self.selector.strip()) > 0

    def estimated_size(self) -> Optional[int]:
        return None

    def description(self) -> str:
        return f"XPath: {self.selector}"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "xpath", "selector": self.selector}


@dataclass(frozen=True)
class Multiple:
    """Conjunction of selections; extracted content is concatenated in order."""

    selections: tuple["ContentSelection", ...]

    def __post_init__(self) -> None:
        if not isinstance(self.selections, tuple):
            object.__setattr__(self, "selections", tuple(self.selections))

    def is_valid(self) -> bool:
        return len(self.selections) > 0 and all(s.is_valid() for s in self.selections)

    def estimated_size(self) -> Optional[int]:
        total = 0
        for selection in self.selections:
            size = selection.estimated_size()
            if size is None:
                return None
            total += size
        return total

    def description(self) -> str:
        return f"Multiple selections ({len(self.selections)})"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "multiple", "selections": [s.to_dict() for s in self.selections]}


ContentSelection = Union[ByteRange, Pattern, Regex, StructuredSelector, Multiple]


def selection_from_dict(data: dict[str, Any]) -> ContentSelection:
    """Rebuild a selection from its tagged ``to_dict`` form."""
    if not isinstance(data, dict):
        raise SerializationError("content selection must be an object")
    kind = data.get("type")
    try:
        if kind == "byte_range":
            return ByteRange(start=int(data["start"]), end=int(data["end"]))
        if kind == "pattern":
            return Pattern(content=bytes.fromhex(data["content"]))
        if kind == "regex":
            return Regex(pattern=str(data["pattern"]))
        if kind == "xpath":
            return StructuredSelector(selector=str(data["selector"]))
        if kind == "multiple":
            return Multiple(tuple(selection_from_dict(item) for item in data["selections"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise SerializationError(f"malformed {kind} selection: {exc}") from exc
    raise SerializationError(f"unknown content selection type {kind!r}")


_SCOPES = ("pattern:", "regex:", "xpath:", "range:")


def _parse_item(part: str) -> ContentSelection:
    stripped = part.lstrip()
    return _parse_single(stripped if stripped.startswith(_SCOPES) else part)


def _parse_single(text: str) -> ContentSelection:
    if text.startswith("pattern:"):
        return Pattern(content=text[len("pattern:"):].encode("utf-8"))
    if text.startswith("regex:"):
        return Regex(pattern=text[len("regex:"):])
    if text.startswith("xpath:"):
        return StructuredSelector(selector=text[len("xpath:"):])
    if text.startswith("range:"):
        parts = text[len("range:"):].split(":")
        if len(parts) != 2:
            raise InvalidInputError("selection", "range format should be 'range:start:end'")
        try:
            start, end = int(parts[0]), int(parts[1])
        except ValueError as exc:
            raise InvalidInputError("selection", f"range bounds must be integers: {text!r}") from exc
        return ByteRange(start=start, end=end)
    return Pattern(content=text.encode("utf-8"))


def parse_selection(text: str) -> ContentSelection:
    """Parse the ``pattern:`` / ``regex:`` / ``xpath:`` / ``range:s:e`` grammar.

    Comma-joined items become a :class:`Multiple`; unscoped text is a pattern.
    A literal comma therefore cannot appear inside a single selection. Whitespace
    after a comma is dropped only in front of a scope prefix; unscoped patterns
    keep every byte as typed.
    """
    if not text:
        raise InvalidInputError("selection", "selection string is empty")
    if "," in text:
        return Multiple(tuple(_parse_item(part) for part in text.split(",")))
    return _parse_single(text)


__all__ = [
    "ByteRange",
    "Pattern",
    "Regex",
    "StructuredSelector",
    "Multiple",
    "ContentSelection",
    "selection_from_dict",
    "parse_selection",
]
