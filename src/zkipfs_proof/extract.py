"""Exact extraction of selected content from a block list.

The extractor is shared by the generator (to compute the expected content
hash before proving) and by the guest program (to recompute it inside the
proof), so both sides agree byte for byte on what a selection means.
"""
from __future__ import annotations

import bisect
import hashlib
import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from lxml import etree, html

from .blocks import BlockStore
from .errors import ContentSelectionError
from .selection import (
    ByteRange,
    ContentSelection,
    Multiple,
    Pattern,
    Regex,
    StructuredSelector,
)
from .types import Block

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Extraction:
    content: bytes
    block_indices: tuple[int, ...]
    inclusion_hashes: tuple[bytes, ...]


class _Stream:
    """File bytes laid out over the content blocks that carry them."""

    def __init__(self, pairs: Sequence[tuple[int, Block]]):
        self.indices = [idx for idx, _ in pairs]
        self.starts = []
        offset = 0
        for _, block in pairs:
            self.starts.append(offset)
            offset += block.size
        self.total = offset
        self.data = b"".join(block.data for _, block in pairs)

    def overlapping(self, lo: int, hi: int) -> set[int]:
        """Block indices whose byte span intersects ``[lo, hi)``."""
        if hi <= lo or not self.starts:
            return set()
        first = bisect.bisect_right(self.starts, lo) - 1
        out = set()
        for pos in range(max(first, 0), len(self.starts)):
            if self.starts[pos] >= hi:
                break
            out.add(self.indices[pos])
        return out


def _xpath_string(result) -> str:
    if isinstance(result, bool):
        return "true" if result else "false"
    if isinstance(result, float):
        if result != result:
            return "NaN"
        if result.is_integer():
            return str(int(result))
        return repr(result)
    if isinstance(result, list):
        parts = []
        for node in result:
            if isinstance(node, etree._Element):
                parts.append(etree.tostring(node, method="text", encoding="unicode", with_tail=False))
            else:
                parts.append(str(node))
        return "".join(parts)
    return str(result)


def _parse_document(data: bytes):
    try:
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        return etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError:
        LOGGER.debug("content is not well-formed XML, parsing as HTML")
    try:
        return html.document_fromstring(data)
    except (etree.ParserError, ValueError) as exc:
        raise ContentSelectionError(f"content could not be parsed as XML or HTML: {exc}") from exc


class ContentExtractor:
    def __init__(self, block_store: Optional[BlockStore] = None):
        self.block_store = block_store or BlockStore()

    def extract(self, blocks: Sequence[Block], selection: ContentSelection) -> Extraction:
        if not selection.is_valid():
            raise ContentSelectionError(f"invalid selection: {selection.description()}")
        stream = _Stream(self.block_store.content_blocks(blocks))
        content, indices = self._extract(stream, selection)
        ordered = tuple(sorted(indices))
        hashes = tuple(hashlib.sha256(blocks[i].data).digest() for i in ordered)
        LOGGER.debug(
            "extracted %d bytes from %d blocks for %s",
            len(content),
            len(ordered),
            selection.description(),
        )
        return Extraction(content=content, block_indices=ordered, inclusion_hashes=hashes)

    def content_hash(self, blocks: Sequence[Block], selection: ContentSelection) -> bytes:
        return hashlib.sha256(self.extract(blocks, selection).content).digest()

    def _extract(self, stream: _Stream, selection: ContentSelection) -> tuple[bytes, set[int]]:
        if isinstance(selection, ByteRange):
            return self._byte_range(stream, selection)
        if isinstance(selection, Pattern):
            return self._pattern(stream, selection)
        if isinstance(selection, Regex):
            return self._regex(stream, selection)
        if isinstance(selection, StructuredSelector):
            return self._structured(stream, selection)
        if isinstance(selection, Multiple):
            content = bytearray()
            indices: set[int] = set()
            for member in selection.selections:
                part, part_indices = self._extract(stream, member)
                content.extend(part)
                indices |= part_indices
            return bytes(content), indices
        raise ContentSelectionError(f"unsupported selection type {type(selection).__name__}")

    @staticmethod
    def _byte_range(stream: _Stream, selection: ByteRange) -> tuple[bytes, set[int]]:
        if stream.total <= selection.start or stream.total < selection.end:
            raise ContentSelectionError(
                f"byte range {selection.start}-{selection.end} exceeds content size {stream.total}"
            )
        return (
            stream.data[selection.start : selection.end],
            stream.overlapping(selection.start, selection.end),
        )

    @staticmethod
    def _pattern(stream: _Stream, selection: Pattern) -> tuple[bytes, set[int]]:
        pos = stream.data.find(selection.content)
        if pos < 0:
            raise ContentSelectionError(f"pattern not found: {selection.description()}")
        return selection.content, stream.overlapping(pos, pos + len(selection.content))

    @staticmethod
    def _regex(stream: _Stream, selection: Regex) -> tuple[bytes, set[int]]:
        try:
            text = stream.data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ContentSelectionError("content is not valid UTF-8 for regex matching") from exc
        try:
            compiled = re.compile(selection.pattern)
        except re.error as exc:
            raise ContentSelectionError(f"invalid regex {selection.pattern!r}: {exc}") from exc
        match = compiled.search(text)
        if match is None:
            raise ContentSelectionError(f"regex not matched: {selection.pattern}")
        matched = match.group(0).encode("utf-8")
        if not matched:
            raise ContentSelectionError(f"regex matched empty content: {selection.pattern}")
        start = len(text[: match.start()].encode("utf-8"))
        return matched, stream.overlapping(start, start + len(matched))

    @staticmethod
    def _structured(stream: _Stream, selection: StructuredSelector) -> tuple[bytes, set[int]]:
        if not stream.data.strip():
            raise ContentSelectionError("cannot evaluate XPath over empty content")
        root = _parse_document(stream.data)
        try:
            result = root.xpath(selection.selector)
        except etree.XPathError as exc:
            raise ContentSelectionError(f"invalid XPath {selection.selector!r}: {exc}") from exc
        if isinstance(result, list):
            if not result:
                raise ContentSelectionError(f"XPath matched no nodes: {selection.selector}")
            # a matched node with no text selects the empty string
            return _xpath_string(result).encode("utf-8"), set(stream.indices)
        value = _xpath_string(result)
        if not value:
            raise ContentSelectionError(f"XPath selected nothing: {selection.selector}")
        return value.encode("utf-8"), set(stream.indices)


__all__ = ["Extraction", "ContentExtractor"]
