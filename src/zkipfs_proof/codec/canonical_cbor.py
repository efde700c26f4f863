"""Deterministic CBOR for receipts, journals and public inputs.

Only the subset the proof formats need is supported: unsigned and negative
integers, byte and text strings, arrays, maps with text keys, booleans, null
and float64. Encoding is canonical (shortest length prefixes, map keys sorted
by their encoded bytes) and decoding refuses anything that is not, so a byte
string has exactly one meaning and one digest.
"""
from __future__ import annotations

import math
import struct
from typing import Any

from ..errors import SerializationError

ENCODING_ID = "cbor_canonical_v1"

MAJOR_UINT = 0
MAJOR_NEGINT = 1
MAJOR_BYTES = 2
MAJOR_TEXT = 3
MAJOR_ARRAY = 4
MAJOR_MAP = 5
MAJOR_SIMPLE = 7

_FALSE = 0xF4
_TRUE = 0xF5
_NULL = 0xF6
_FLOAT64 = 0xFB

# additional-info value -> width of the argument that follows
_ARG_WIDTH = {24: 1, 25: 2, 26: 4, 27: 8}
_UINT64_LIMIT = 1 << 64


class CanonicalCBORError(SerializationError):
    """Raised when a value cannot be encoded or a blob is not canonical CBOR."""


class _Writer:
    def __init__(self) -> None:
        self.buf = bytearray()

    def head(self, major: int, arg: int) -> None:
        if arg < 0 or arg >= _UINT64_LIMIT:
            raise CanonicalCBORError(f"integer {arg} outside the 64-bit CBOR range")
        if arg < 24:
            self.buf.append((major << 5) | arg)
            return
        for ai, width in _ARG_WIDTH.items():
            if arg < 1 << (8 * width):
                self.buf.append((major << 5) | ai)
                self.buf += arg.to_bytes(width, "big")
                return

    def write(self, value: Any) -> None:
        if value is None:
            self.buf.append(_NULL)
        elif value is True:
            self.buf.append(_TRUE)
        elif value is False:
            self.buf.append(_FALSE)
        elif isinstance(value, int):
            if value >= 0:
                self.head(MAJOR_UINT, value)
            else:
                self.head(MAJOR_NEGINT, -1 - value)
        elif isinstance(value, (bytes, bytearray, memoryview)):
            raw = bytes(value)
            self.head(MAJOR_BYTES, len(raw))
            self.buf += raw
        elif isinstance(value, str):
            raw = value.encode("utf-8")
            self.head(MAJOR_TEXT, len(raw))
            self.buf += raw
        elif isinstance(value, float):
            if math.isnan(value):
                raise CanonicalCBORError("NaN has no canonical encoding")
            self.buf.append(_FLOAT64)
            self.buf += struct.pack(">d", value)
        elif isinstance(value, (list, tuple)):
            self.head(MAJOR_ARRAY, len(value))
            for item in value:
                self.write(item)
        elif isinstance(value, dict):
            self._write_map(value)
        else:
            raise CanonicalCBORError(f"cannot encode {type(value).__name__}")

    def _write_map(self, mapping: dict) -> None:
        entries = []
        for key, item in mapping.items():
            if not isinstance(key, str):
                raise CanonicalCBORError(f"map keys must be text, got {type(key).__name__}")
            entries.append((canonical_encode(key), item))
        entries.sort(key=lambda entry: entry[0])
        self.head(MAJOR_MAP, len(entries))
        for encoded_key, item in entries:
            self.buf += encoded_key
            self.write(item)


class _Reader:
    def __init__(self, blob: bytes) -> None:
        self.data = blob
        self.pos = 0

    def take(self, n: int, what: str) -> bytes:
        end = self.pos + n
        if end > len(self.data):
            raise CanonicalCBORError(f"{what} truncated")
        chunk = self.data[self.pos : end]
        self.pos = end
        return chunk

    def head(self) -> tuple[int, int, int]:
        initial = self.take(1, "item")[0]
        major, ai = initial >> 5, initial & 0x1F
        if ai < 24:
            return initial, major, ai
        width = _ARG_WIDTH.get(ai)
        if width is None:
            # major 7 carries simple values in the low bits; the caller decides
            if major == MAJOR_SIMPLE:
                return initial, major, ai
            raise CanonicalCBORError("indefinite-length items are not canonical")
        if major == MAJOR_SIMPLE:
            return initial, major, ai
        arg = int.from_bytes(self.take(width, "length prefix"), "big")
        smallest = 24 if width == 1 else 1 << (8 * width // 2)
        if arg < smallest:
            raise CanonicalCBORError("length prefix is not in shortest form")
        return initial, major, arg

    def read(self) -> Any:
        initial, major, arg = self.head()
        if major == MAJOR_UINT:
            return arg
        if major == MAJOR_NEGINT:
            return -1 - arg
        if major == MAJOR_BYTES:
            return self.take(arg, "byte string")
        if major == MAJOR_TEXT:
            raw = self.take(arg, "text string")
            try:
                return raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise CanonicalCBORError("text string is not valid UTF-8") from exc
        if major == MAJOR_ARRAY:
            return [self.read() for _ in range(arg)]
        if major == MAJOR_MAP:
            return self._read_map(arg)
        if initial == _FALSE:
            return False
        if initial == _TRUE:
            return True
        if initial == _NULL:
            return None
        if initial == _FLOAT64:
            return struct.unpack(">d", self.take(8, "float64"))[0]
        raise CanonicalCBORError(f"unsupported initial byte 0x{initial:02x}")

    def _read_map(self, count: int) -> dict[str, Any]:
        out: dict[str, Any] = {}
        previous = b""
        for _ in range(count):
            start = self.pos
            key = self.read()
            if not isinstance(key, str):
                raise CanonicalCBORError("map keys must be text strings")
            encoded_key = self.data[start : self.pos]
            if previous and encoded_key <= previous:
                raise CanonicalCBORError("map keys are duplicated or out of order")
            previous = encoded_key
            out[key] = self.read()
        return out


def canonical_encode(obj: Any) -> bytes:
    writer = _Writer()
    writer.write(obj)
    return bytes(writer.buf)


def canonical_decode(blob: bytes | bytearray | memoryview) -> Any:
    reader = _Reader(bytes(blob))
    value = reader.read()
    if reader.pos != len(reader.data):
        raise CanonicalCBORError(f"{len(reader.data) - reader.pos} trailing bytes after CBOR item")
    return value


__all__ = [
    "ENCODING_ID",
    "CanonicalCBORError",
    "canonical_encode",
    "canonical_decode",
]
