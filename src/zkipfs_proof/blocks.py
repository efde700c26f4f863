"""Content-addressed chunking of files into raw-codec blocks.

A file becomes an ordered list of :class:`~zkipfs_proof.types.Block`. When the
content needs more than one chunk, a root block is placed at index 0; its data
is ``cid || u64_le(len)`` per chunk and its links name each chunk ``chunk_<i>``.
"""
from __future__ import annotations

import base64
import hashlib
import logging
import os
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .errors import FileError, StructuralError
from .types import Block, BlockLink, FileInfo

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_BLOCK_SIZE = 256 * 1024

CID_VERSION = 0x01
RAW_CODEC = 0x55
SHA2_256_CODE = 0x12
SHA2_256_LEN = 0x20
CID_PREFIX = bytes([CID_VERSION, RAW_CODEC, SHA2_256_CODE, SHA2_256_LEN])

_MIME_BY_EXTENSION = {
    "txt": "text/plain",
    "json": "application/json",
    "csv": "text/csv",
    "pdf": "application/pdf",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "mp4": "video/mp4",
    "zip": "application/zip",
    "xml": "application/xml",
    "html": "text/html",
}


def compute_cid(data: bytes) -> bytes:
    """Binary CIDv1 (raw codec, sha2-256) of ``data``."""
    return CID_PREFIX + hashlib.sha256(data).digest()


def cid_to_str(cid: bytes) -> str:
    """Multibase base32 text form of a binary CID."""
    return "b" + base64.b32encode(cid).decode("ascii").lower().rstrip("=")


def make_block(data: bytes, links: Sequence[BlockLink] = ()) -> Block:
    return Block(data=bytes(data), cid=compute_cid(data), links=tuple(links))


def detect_mime_type(data: bytes, filename: Optional[str] = None) -> str:
    if filename:
        ext = os.path.splitext(filename)[1].lstrip(".").lower()
        if ext in _MIME_BY_EXTENSION:
            return _MIME_BY_EXTENSION[ext]

    if data.startswith(b"%PDF"):
        return "application/pdf"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith(b"PK"):
        return "application/zip"
    if data.startswith(b"{") or data.startswith(b"["):
        return "application/json"
    if data.startswith(b"<?xml"):
        return "application/xml"
    if data and data.isascii():
        return "text/plain"
    return "application/octet-stream"


@dataclass(frozen=True)
class BlockStatistics:
    block_count: int
    total_size: int
    min_block_size: int
    max_block_size: int
    avg_block_size: int
    total_links: int

    def to_dict(self) -> dict[str, int]:
        return {
            "block_count": self.block_count,
            "total_size": self.total_size,
            "min_block_size": self.min_block_size,
            "max_block_size": self.max_block_size,
            "avg_block_size": self.avg_block_size,
            "total_links": self.total_links,
        }


class BlockStore:
    """Splits content into blocks and puts it back together."""

    def __init__(self, max_block_size: int = DEFAULT_MAX_BLOCK_SIZE):
        if max_block_size <= 0:
            raise ValueError("max_block_size must be positive")
        self.max_block_size = max_block_size

    def process(self, data: bytes, filename: Optional[str] = None) -> tuple[list[Block], FileInfo]:
        chunks = [
            make_block(data[offset : offset + self.max_block_size])
            for offset in range(0, len(data), self.max_block_size)
        ]
        if len(chunks) > 1:
            blocks = [self._root_block(chunks), *chunks]
        else:
            blocks = chunks

        info = FileInfo(
            filename=filename,
            size=len(data),
            mime_type=detect_mime_type(data, filename),
            file_hash=hashlib.sha256(data).digest(),
            cid=cid_to_str(compute_cid(data)),
            block_count=len(blocks),
            avg_block_size=(sum(b.size for b in blocks) // len(blocks)) if blocks else 0,
        )
        LOGGER.debug(
            "processed %d bytes into %d blocks (max_block_size=%d)",
            len(data),
            len(blocks),
            self.max_block_size,
        )
        return blocks, info

    def process_file(self, path: str | Path) -> tuple[list[Block], FileInfo]:
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise FileError(f"failed to read {path}: {exc}", path=str(path)) from exc
        return self.process(data, filename=path.name)

    @staticmethod
    def _root_block(chunks: Sequence[Block]) -> Block:
        data = bytearray()
        links = []
        for i, chunk in enumerate(chunks):
            data.extend(chunk.cid)
            data.extend(struct.pack("<Q", chunk.size))
            links.append(BlockLink(name=f"chunk_{i}", cid=chunk.cid, size=chunk.size))
        return make_block(bytes(data), links)

    def content_blocks(self, blocks: Sequence[Block]) -> list[tuple[int, Block]]:
        """Ordered ``(index, block)`` pairs that carry file bytes."""
        if len(blocks) > 1 and blocks[0].links:
            # repeated chunks share a CID; hand out their indices in order
            by_cid: dict[bytes, list[int]] = {}
            for i, block in enumerate(blocks[1:], start=1):
                by_cid.setdefault(block.cid, []).append(i)
            seen: dict[bytes, int] = {}
            out = []
            for link in blocks[0].links:
                candidates = by_cid.get(link.cid)
                idx = None
                if candidates:
                    n = seen.get(link.cid, 0)
                    idx = candidates[min(n, len(candidates) - 1)]
                    seen[link.cid] = n + 1
                if idx is None:
                    raise StructuralError(
                        "content_reconstruction",
                        f"missing block for link {link.name}",
                        block_index=0,
                    )
                out.append((idx, blocks[idx]))
            return out
        return list(enumerate(blocks))

    def reconstruct(self, blocks: Sequence[Block]) -> bytes:
        if not blocks:
            return b""
        if len(blocks) == 1:
            return blocks[0].data
        return b"".join(block.data for _, block in self.content_blocks(blocks))

    def validate(self, blocks: Sequence[Block]) -> None:
        for i, block in enumerate(blocks):
            if compute_cid(block.data) != block.cid:
                raise StructuralError("block_validation", "CID mismatch", block_index=i)
            for link in block.links:
                if not link.name:
                    raise StructuralError("block_validation", "link with empty name", block_index=i)
                if not link.cid:
                    raise StructuralError("block_validation", "link with empty CID", block_index=i)

    @staticmethod
    def stats(blocks: Sequence[Block]) -> BlockStatistics:
        if not blocks:
            return BlockStatistics(0, 0, 0, 0, 0, 0)
        sizes = [block.size for block in blocks]
        return BlockStatistics(
            block_count=len(blocks),
            total_size=sum(sizes),
            min_block_size=min(sizes),
            max_block_size=max(sizes),
            avg_block_size=sum(sizes) // len(sizes),
            total_links=sum(len(block.links) for block in blocks),
        )


__all__ = [
    "DEFAULT_MAX_BLOCK_SIZE",
    "CID_PREFIX",
    "BlockStatistics",
    "BlockStore",
    "compute_cid",
    "cid_to_str",
    "make_block",
    "detect_mime_type",
]
