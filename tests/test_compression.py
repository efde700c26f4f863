"""Tests for receipt compression."""
from __future__ import annotations

import pytest

from zkipfs_proof.compression import compress, decompress
from zkipfs_proof.errors import SerializationError
from zkipfs_proof.types import CompressionType

PAYLOAD = b"receipt bytes " * 200


@pytest.mark.parametrize("kind", list(CompressionType))
def test_round_trip(kind):
    assert decompress(compress(PAYLOAD, kind), kind) == PAYLOAD


@pytest.mark.parametrize("kind", [CompressionType.GZIP, CompressionType.ZSTD])
def test_repetitive_payload_shrinks(kind):
    assert len(compress(PAYLOAD, kind)) < len(PAYLOAD)


def test_gzip_output_is_stable():
    assert compress(PAYLOAD, CompressionType.GZIP) == compress(PAYLOAD, CompressionType.GZIP)


@pytest.mark.parametrize("kind", [CompressionType.GZIP, CompressionType.ZSTD])
def test_corrupt_input(kind):
    with pytest.raises(SerializationError):
        decompress(b"definitely not compressed", kind)
