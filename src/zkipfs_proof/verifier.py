"""Proof verification.

Verification runs up to five stages in order:

1. Proof Structure Validation (terminal)
2. Cryptographic Proof Verification (terminal)
3. Content Hash Verification (terminal)
4. Metadata Verification (terminal only in strict mode)
5. Custom Rules Verification (terminal only in strict mode)

A bad proof never raises; it yields a ``VerificationResult`` with
``is_valid=False`` and the failing step recorded.
"""
from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from . import __version__
from .backends import ProvingBackend, Receipt, get_backend
from .compression import decompress
from .environment import arch, os_name
from .errors import ProofError, VerificationError
from .policy import VerificationRule, evaluate_rules
from .types import (
    HASH_LEN,
    Proof,
    VerificationResult,
    VerificationStep,
    VerifierInfo,
)

LOGGER = logging.getLogger(__name__)

STEP_STRUCTURE = "Proof Structure Validation"
STEP_CRYPTO = "Cryptographic Proof Verification"
STEP_CONTENT = "Content Hash Verification"
STEP_METADATA = "Metadata Verification"
STEP_RULES = "Custom Rules Verification"

MIN_RECOMMENDED_SECURITY = 128
MAX_EXPECTED_GENERATION_MS = 60 * 60 * 1000
MAX_EXPECTED_PROOF_BYTES = 100 * 1024 * 1024
DEFAULT_MAX_PROOF_AGE_SECONDS = 30 * 24 * 60 * 60


@dataclass
class VerificationConfig:
    strict_verification: bool = True
    include_verification_steps: bool = False
    max_proof_age_seconds: Optional[int] = DEFAULT_MAX_PROOF_AGE_SECONDS
    verify_metadata: bool = True
    expected_proof_system: Optional[str] = None
    custom_rules: List[VerificationRule] = field(default_factory=list)
    max_workers: int = 4


@dataclass
class VerificationStatistics:
    total_verifications: int = 0
    successful_verifications: int = 0
    failed_verifications: int = 0
    avg_verification_time_ms: float = 0.0
    total_verification_time_ms: int = 0


@dataclass
class _Outcome:
    """Per-call verification state."""

    steps: List[VerificationStep] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    receipt: Optional[Receipt] = None

    def record(self, name: str, passed: bool, start: float, details: Optional[str]) -> bool:
        self.steps.append(
            VerificationStep(
                name=name,
                passed=passed,
                duration_ms=int((time.perf_counter() - start) * 1000),
                details=None if passed else details,
            )
        )
        return passed


class ProofVerifier:
    def __init__(
        self,
        config: Optional[VerificationConfig] = None,
        *,
        backend: Optional[ProvingBackend] = None,
    ):
        self.config = config or VerificationConfig()
        self.backend = backend or get_backend("dev")
        self.stats = VerificationStatistics()

    # ------------------------------------------------------------------ API

    async def verify_detailed(self, proof: Proof, claimed_content: bytes) -> VerificationResult:
        LOGGER.info("starting detailed verification for proof %s", proof.id[:8])
        result = await asyncio.to_thread(self._verify, proof, bytes(claimed_content))
        self._update_stats(result)
        if result.is_valid:
            LOGGER.info("proof %s verified in %dms", proof.id[:8], result.verification_time_ms)
        else:
            LOGGER.warning("proof %s failed verification in %dms", proof.id[:8], result.verification_time_ms)
        return result

    async def verify_simple(self, proof: Proof, claimed_content: bytes) -> bool:
        result = await self.verify_detailed(proof, claimed_content)
        return result.is_valid

    async def verify_batch(self, items: Sequence[Tuple[Proof, bytes]]) -> List[VerificationResult]:
        """Verify ``(proof, claimed_content)`` pairs concurrently; results keep input order."""
        semaphore = asyncio.Semaphore(max(1, self.config.max_workers))

        async def _one(proof: Proof, content: bytes) -> VerificationResult:
            async with semaphore:
                return await self.verify_detailed(proof, content)

        return list(await asyncio.gather(*(_one(p, c) for p, c in items)))

    def add_custom_rule(self, rule: VerificationRule) -> None:
        self.config.custom_rules.append(rule)

    def remove_custom_rule(self, name: str) -> None:
        self.config.custom_rules = [r for r in self.config.custom_rules if r.name != name]

    def update_config(self, config: VerificationConfig) -> None:
        self.config = config

    def get_statistics(self) -> VerificationStatistics:
        return self.stats

    # ------------------------------------------------------------ internals

    def _verify(self, proof: Proof, claimed_content: bytes) -> VerificationResult:
        start = time.perf_counter()
        outcome = _Outcome()
        strict = self.config.strict_verification

        step = time.perf_counter()
        ok, details = self._check_structure(proof)
        if not outcome.record(STEP_STRUCTURE, ok, step, details):
            return self._result(False, start, outcome)

        step = time.perf_counter()
        ok, details = self._check_crypto(proof, outcome)
        if not outcome.record(STEP_CRYPTO, ok, step, details):
            return self._result(False, start, outcome)

        step = time.perf_counter()
        ok, details = self._check_content(proof, claimed_content, outcome)
        if not outcome.record(STEP_CONTENT, ok, step, details):
            return self._result(False, start, outcome)

        if self.config.verify_metadata:
            step = time.perf_counter()
            ok = self._check_metadata(proof, outcome)
            outcome.record(STEP_METADATA, ok, step, "Metadata verification failed")
            if strict and not ok:
                return self._result(False, start, outcome)

        if self.config.custom_rules:
            step = time.perf_counter()
            rule_warnings = evaluate_rules(self.config.custom_rules, proof)
            outcome.warnings.extend(rule_warnings)
            ok = not rule_warnings or not strict
            outcome.record(STEP_RULES, ok, step, "Custom rules verification failed")
            if not ok:
                return self._result(False, start, outcome)

        return self._result(True, start, outcome)

    def _check_structure(self, proof: Proof) -> Tuple[bool, Optional[str]]:
        if not proof.version or not proof.format_version:
            return False, "missing proof version"
        max_age = self.config.max_proof_age_seconds
        if max_age is not None:
            created_at = proof.created_at
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            age = (datetime.now(timezone.utc) - created_at).total_seconds()
            if age > max_age:
                return False, f"proof is older than {max_age} seconds"
        if not proof.backend_receipt:
            return False, "empty backend receipt"
        if not proof.content_selection.is_valid():
            return False, "invalid content selection"
        if len(proof.content_hash) != HASH_LEN or len(proof.root_hash) != HASH_LEN:
            return False, "hashes must be 32 bytes"
        return True, None

    def _check_crypto(self, proof: Proof, outcome: _Outcome) -> Tuple[bool, Optional[str]]:
        try:
            receipt = Receipt.from_bytes(decompress(proof.backend_receipt, proof.compression))
        except ProofError as exc:
            LOGGER.warning("receipt could not be decoded: %s", exc)
            return False, f"receipt could not be decoded: {exc.message}"
        try:
            verified = self.backend.verify(receipt, self.backend.program_id)
        except VerificationError as exc:
            LOGGER.warning("backend could not verify proof %s: %s", proof.id[:8], exc)
            return False, f"Cryptographic verification could not be performed: {exc.message}"
        except Exception as exc:
            LOGGER.warning("backend %s raised during verification: %s", self.backend.name, exc)
            return False, f"Cryptographic verification raised {type(exc).__name__}: {exc}"
        if not verified:
            LOGGER.warning("cryptographic verification failed for proof %s", proof.id[:8])
            return False, "Cryptographic verification failed"
        LOGGER.debug("cryptographic proof verification successful")
        outcome.receipt = receipt
        return True, None

    def _check_content(
        self, proof: Proof, claimed_content: bytes, outcome: _Outcome
    ) -> Tuple[bool, Optional[str]]:
        if hashlib.sha256(claimed_content).digest() != proof.content_hash:
            LOGGER.debug("content hash verification failed")
            return False, "Content hash mismatch"
        try:
            journal = outcome.receipt.decode_journal()
        except ProofError as exc:
            return False, f"journal could not be decoded: {exc.message}"
        if journal.content_hash != proof.content_hash:
            return False, "journal commits a different content hash"
        if journal.root_hash != proof.root_hash:
            return False, "journal commits a different root hash"
        LOGGER.debug("content hash verification successful")
        return True, None

    def _check_metadata(self, proof: Proof, outcome: _Outcome) -> bool:
        strict = self.config.strict_verification
        meta = proof.metadata
        valid = True

        if meta.security.security_level < MIN_RECOMMENDED_SECURITY:
            outcome.warnings.append("Security level below recommended minimum (128 bits)")
            valid = valid and not strict
        expected_system = self.config.expected_proof_system or self.backend.proof_system
        if meta.security.proof_system != expected_system:
            outcome.warnings.append(
                f"Unexpected proof system: {meta.security.proof_system} (expected {expected_system})"
            )
            valid = valid and not strict
        if meta.performance.generation_time_ms > MAX_EXPECTED_GENERATION_MS:
            outcome.warnings.append("Unusually long proof generation time")
        if meta.performance.proof_size_bytes > MAX_EXPECTED_PROOF_BYTES:
            outcome.warnings.append("Unusually large proof size")
        if meta.file_info.block_count == 0:
            outcome.warnings.append("No blocks in file info")
            valid = valid and not strict

        for warning in outcome.warnings:
            LOGGER.warning("metadata check: %s", warning)
        return valid

    def _result(self, is_valid: bool, start: float, outcome: _Outcome) -> VerificationResult:
        return VerificationResult(
            is_valid=is_valid,
            verified_at=datetime.now(timezone.utc),
            verification_time_ms=int((time.perf_counter() - start) * 1000),
            verifier_info=VerifierInfo(
                version=__version__,
                method="local",
                environment=f"{os_name()} {arch()}",
            ),
            warnings=outcome.warnings,
            steps=outcome.steps if self.config.include_verification_steps else [],
        )

    def _update_stats(self, result: VerificationResult) -> None:
        stats = self.stats
        stats.total_verifications += 1
        stats.total_verification_time_ms += result.verification_time_ms
        if result.is_valid:
            stats.successful_verifications += 1
        else:
            stats.failed_verifications += 1
        stats.avg_verification_time_ms = stats.total_verification_time_ms / stats.total_verifications


__all__ = [
    "STEP_STRUCTURE",
    "STEP_CRYPTO",
    "STEP_CONTENT",
    "STEP_METADATA",
    "STEP_RULES",
    "VerificationConfig",
    "VerificationStatistics",
    "ProofVerifier",
]
