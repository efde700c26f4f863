"""Tests for the canonical CBOR codec."""
from __future__ import annotations

import pytest

from zkipfs_proof.codec import (
    CanonicalCBORError,
    canonical_decode,
    canonical_encode,
)


def test_key_order_does_not_change_encoding():
    a = canonical_encode({"b": 1, "a": [1, 2]})
    b = canonical_encode({"a": [1, 2], "b": 1})
    assert a == b


def test_decode_restores_values():
    value = {"n": -5, "big": 2**40, "blob": b"\x00\x01", "text": "héllo", "list": [None, True, False, 1.5]}
    assert canonical_decode(canonical_encode(value)) == value


def test_shortest_integer_form():
    assert canonical_encode(23) == b"\x17"
    assert canonical_encode(24) == b"\x18\x18"
    assert canonical_encode(-1) == b"\x20"


def test_rejects_unsorted_map():
    # {"b": 1, "a": 2} encoded with keys out of canonical order
    blob = b"\xa2\x61b\x01\x61a\x02"
    with pytest.raises(CanonicalCBORError):
        canonical_decode(blob)


def test_rejects_trailing_data():
    with pytest.raises(CanonicalCBORError):
        canonical_decode(canonical_encode(1) + b"\x00")


def test_rejects_truncated_bytes():
    with pytest.raises(CanonicalCBORError):
        canonical_decode(b"\x45ab")


def test_rejects_nan_and_unknown_types():
    with pytest.raises(CanonicalCBORError):
        canonical_encode(float("nan"))
    with pytest.raises(CanonicalCBORError):
        canonical_encode({1, 2})


def test_codec_errors_are_serialization_errors():
    from zkipfs_proof.errors import SerializationError

    assert issubclass(CanonicalCBORError, SerializationError)


def test_rejects_non_shortest_length():
    # 5 encoded with a one-byte argument instead of inline
    with pytest.raises(CanonicalCBORError):
        canonical_decode(b"\x18\x05")


def test_rejects_duplicate_keys():
    blob = b"\xa2\x61a\x01\x61a\x02"
    with pytest.raises(CanonicalCBORError):
        canonical_decode(blob)


def test_rejects_non_text_keys():
    with pytest.raises(CanonicalCBORError):
        canonical_encode({1: "one"})
