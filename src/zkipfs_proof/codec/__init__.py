"""Canonical encoding helpers (cbor_canonical_v1)."""
from __future__ import annotations

from .canonical_cbor import (
    ENCODING_ID,
    CanonicalCBORError,
    canonical_decode,
    canonical_encode,
)

__all__ = [
    "ENCODING_ID",
    "CanonicalCBORError",
    "canonical_encode",
    "canonical_decode",
]
