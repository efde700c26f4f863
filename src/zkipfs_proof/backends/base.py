"""Proving backend protocol, receipt model and backend registry.

Binding semantics:
- program_id: hash identifying the guest program a receipt was produced by
- journal_digest: sha256 of the committed journal bytes
- binding_hash: H("ZKIPFS_BIND_V1" || program_id || journal_digest)
- claim_root: H("ZKIPFS_CLAIM_V1" || program_id || journal)
"""
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, List, Protocol

from ..codec import ENCODING_ID, CanonicalCBORError, canonical_decode, canonical_encode
from ..errors import ConfigurationError, SerializationError
from ..types import ProofCircuitInput, ProofCircuitOutput

BIND_TAG = b"ZKIPFS_BIND_V1"
CLAIM_TAG = b"ZKIPFS_CLAIM_V1"


def compute_binding_hash(program_id: bytes, journal_digest: bytes) -> bytes:
    h = hashlib.sha256()
    h.update(BIND_TAG)
    h.update(program_id)
    h.update(journal_digest)
    return h.digest()


def compute_claim_root(program_id: bytes, journal: bytes) -> bytes:
    h = hashlib.sha256()
    h.update(CLAIM_TAG)
    h.update(program_id)
    h.update(journal)
    return h.digest()


def encode_journal(output: ProofCircuitOutput) -> bytes:
    return canonical_encode(output.to_dict())


@dataclass(frozen=True)
class Receipt:
    """Backend-produced evidence that the guest committed ``journal``."""

    program_id: bytes
    journal: bytes
    seal: bytes
    cycles: int = 0

    @property
    def journal_digest(self) -> bytes:
        return hashlib.sha256(self.journal).digest()

    @property
    def claim_root(self) -> bytes:
        return compute_claim_root(self.program_id, self.journal)

    def decode_journal(self) -> ProofCircuitOutput:
        try:
            data = canonical_decode(self.journal)
        except CanonicalCBORError as exc:
            raise SerializationError(f"journal is not canonical CBOR: {exc}") from exc
        if not isinstance(data, dict):
            raise SerializationError("journal must decode to a map")
        return ProofCircuitOutput.from_dict(data)

    def to_bytes(self) -> bytes:
        return canonical_encode(
            {
                "encoding": ENCODING_ID,
                "program_id": self.program_id,
                "journal": self.journal,
                "seal": self.seal,
                "cycles": self.cycles,
            }
        )

    @classmethod
    def from_bytes(cls, blob: bytes) -> "Receipt":
        try:
            data = canonical_decode(blob)
        except CanonicalCBORError as exc:
            raise SerializationError(f"receipt is not canonical CBOR: {exc}") from exc
        if not isinstance(data, dict) or data.get("encoding") != ENCODING_ID:
            raise SerializationError("receipt has an unknown encoding")
        try:
            receipt = cls(
                program_id=data["program_id"],
                journal=data["journal"],
                seal=data["seal"],
                cycles=data["cycles"],
            )
        except KeyError as exc:
            raise SerializationError(f"receipt missing field {exc}") from exc
        for name in ("program_id", "journal", "seal"):
            if not isinstance(getattr(receipt, name), bytes):
                raise SerializationError(f"receipt field {name} must be bytes")
        if not isinstance(receipt.cycles, int):
            raise SerializationError("receipt field cycles must be an integer")
        return receipt


class ProvingBackend(Protocol):
    name: str
    proof_system: str
    version: str

    @property
    def program_id(self) -> bytes:
        """Identifier of the guest program this backend proves."""

    def prove(self, circuit_input: ProofCircuitInput) -> Receipt:
        """Run the guest over ``circuit_input`` and return a receipt."""

    def verify(self, receipt: Receipt, program_id: bytes) -> bool:
        """Check ``receipt`` was produced by ``program_id``.

        Returns False for a bad receipt. Raises :class:`VerificationError` only when
        the check itself cannot be carried out.
        """


###############################################################################
# Backend registry helpers


_BACKENDS: Dict[str, type] = {}


def register_backend(cls: type) -> type:
    _BACKENDS[cls.name] = cls
    return cls


def get_backend(name: str, **kwargs: Any) -> ProvingBackend:
    try:
        backend_cls = _BACKENDS[name]
    except KeyError as exc:
        raise ConfigurationError(
            f"unknown proving backend {name!r} (available: {', '.join(available_backends())})"
        ) from exc
    return backend_cls(**kwargs)


def available_backends() -> List[str]:
    return sorted(_BACKENDS.keys())


__all__ = [
    "BIND_TAG",
    "CLAIM_TAG",
    "compute_binding_hash",
    "compute_claim_root",
    "encode_journal",
    "Receipt",
    "ProvingBackend",
    "register_backend",
    "get_backend",
    "available_backends",
]
