"""Receipt compression."""
from __future__ import annotations

import gzip
import zlib

import zstandard as zstd

from .errors import SerializationError
from .types import CompressionType

ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"
ZSTD_LEVEL = 3


def compress(data: bytes, compression: CompressionType) -> bytes:
    if compression is CompressionType.NONE:
        return data
    if compression is CompressionType.GZIP:
        return gzip.compress(data, mtime=0)
    if compression is CompressionType.ZSTD:
        return zstd.ZstdCompressor(level=ZSTD_LEVEL).compress(data)
    raise SerializationError(f"unsupported compression {compression!r}")


def decompress(data: bytes, compression: CompressionType) -> bytes:
    if compression is CompressionType.NONE:
        return data
    try:
        if compression is CompressionType.GZIP:
            return gzip.decompress(data)
        if compression is CompressionType.ZSTD:
            if data[:4] != ZSTD_MAGIC:
                raise SerializationError("receipt is not a zstd frame")
            return zstd.ZstdDecompressor().decompress(data)
    except (OSError, EOFError, zlib.error, zstd.ZstdError) as exc:
        raise SerializationError(f"failed to decompress receipt ({compression.value}): {exc}") from exc
    raise SerializationError(f"unsupported compression {compression!r}")


__all__ = ["compress", "decompress"]
