"""Proving backends."""
from __future__ import annotations

from .base import (
    BIND_TAG,
    CLAIM_TAG,
    ProvingBackend,
    Receipt,
    available_backends,
    compute_binding_hash,
    compute_claim_root,
    encode_journal,
    get_backend,
    register_backend,
)
from .dev import DevModeBackend
from .guest import run_guest

__all__ = [
    "BIND_TAG",
    "CLAIM_TAG",
    "ProvingBackend",
    "Receipt",
    "available_backends",
    "compute_binding_hash",
    "compute_claim_root",
    "encode_journal",
    "get_backend",
    "register_backend",
    "DevModeBackend",
    "run_guest",
]
