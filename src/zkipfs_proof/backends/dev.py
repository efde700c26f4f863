"""Development proving backend.

Runs the guest natively and seals the journal with an HMAC instead of a
succinct proof. Receipts are only as trustworthy as the seal key, which makes
this backend suitable for tests and local pipelines, not for third parties.
"""
from __future__ import annotations

import hashlib
import hmac
import logging

from ..errors import ProofError, ProvingError, SerializationError, VerificationError
from ..types import ProofCircuitInput
from .base import Receipt, compute_binding_hash, encode_journal, register_backend
from .guest import GUEST_DESCRIPTOR, run_guest

LOGGER = logging.getLogger(__name__)

DEFAULT_SEAL_KEY = b"zkipfs-dev-mode-seal-key"


@register_backend
class DevModeBackend:
    name = "dev"
    proof_system = "dev-hmac-sha256"
    version = "1.0.0"

    def __init__(self, seal_key: bytes = DEFAULT_SEAL_KEY, **_: object):
        if not seal_key:
            raise ValueError("seal_key must be non-empty")
        self._seal_key = bytes(seal_key)
        self._program_id = hashlib.sha256(GUEST_DESCRIPTOR).digest()

    @property
    def program_id(self) -> bytes:
        return self._program_id

    def _seal(self, program_id: bytes, journal_digest: bytes) -> bytes:
        binding = compute_binding_hash(program_id, journal_digest)
        return hmac.new(self._seal_key, binding, hashlib.sha256).digest()

    def prove(self, circuit_input: ProofCircuitInput) -> Receipt:
        try:
            output, cycles = run_guest(circuit_input)
        except ProvingError:
            raise
        except ProofError as exc:
            raise ProvingError("guest_execution", exc.message) from exc
        journal = encode_journal(output)
        seal = self._seal(self._program_id, hashlib.sha256(journal).digest())
        LOGGER.debug("dev backend sealed journal (%d bytes, %d cycles)", len(journal), cycles)
        return Receipt(program_id=self._program_id, journal=journal, seal=seal, cycles=cycles)

    def verify(self, receipt: Receipt, program_id: bytes) -> bool:
        if receipt.program_id != program_id:
            LOGGER.debug("receipt program id does not match")
            return False
        if program_id != self._program_id:
            raise VerificationError(
                f"dev backend only verifies its own guest program, not {program_id.hex()[:16]}"
            )
        try:
            receipt.decode_journal()
        except SerializationError as exc:
            LOGGER.debug("receipt journal undecodable: %s", exc)
            return False
        expected = self._seal(program_id, receipt.journal_digest)
        return hmac.compare_digest(expected, receipt.seal)


__all__ = ["DEFAULT_SEAL_KEY", "DevModeBackend"]
