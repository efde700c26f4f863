"""Proof generation.

``ProofGenerator.generate_proof`` validates its inputs up front, chunks the
file into blocks, computes the expected content hash, hands the circuit input
to the proving backend in a worker thread and assembles a :class:`Proof` from
the committed journal.
"""
from __future__ import annotations

import asyncio
import hashlib
import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from . import __version__
from .backends import ProvingBackend, get_backend
from .blocks import BlockStore
from .codec import canonical_encode
from .compression import compress
from .environment import (
    arch,
    build_id,
    detect_hardware_acceleration,
    os_name,
    peak_memory_bytes,
)
from .errors import (
    ContentSelectionError,
    FileError,
    InvalidInputError,
    ProofError,
    ProofTimeoutError,
    ProvingError,
    ResourceLimitError,
)
from .extract import ContentExtractor
from .selection import ContentSelection
from .types import (
    PROOF_FORMAT_VERSION,
    GenerationEnvironment,
    JournalSummary,
    PerformanceMetrics,
    Proof,
    ProofCircuitInput,
    ProofConfig,
    ProofMetadata,
    ProofStatistics,
    SecurityParameters,
)
from .verifier import ProofVerifier, VerificationConfig

LOGGER = logging.getLogger(__name__)

Source = Union[str, Path, bytes, bytearray, memoryview]


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _running_average(previous: float, count: int, sample: float) -> float:
    """Average after adding ``sample`` as the ``count``-th observation."""
    return previous + (sample - previous) / count


class ProofGenerator:
    """Generates content-inclusion proofs with a configurable backend."""

    def __init__(
        self,
        config: Optional[ProofConfig] = None,
        *,
        backend: Optional[ProvingBackend] = None,
    ):
        self.config = config or ProofConfig()
        self.config.validate()
        self.backend = backend or get_backend(self.config.backend)
        self.block_store = BlockStore(self.config.max_block_size)
        self.extractor = ContentExtractor(self.block_store)
        self.stats = ProofStatistics()

    # ------------------------------------------------------------------ API

    async def generate_proof(
        self,
        source: Source,
        selection: ContentSelection,
        *,
        filename: Optional[str] = None,
    ) -> Proof:
        start = time.perf_counter()
        try:
            proof = await self._generate(source, selection, filename, start)
        except ProofError as exc:
            self.stats.failed_generations += 1
            LOGGER.warning("proof generation failed after %dms: %s", _elapsed_ms(start), exc)
            raise
        self._record_generation(proof)
        LOGGER.info(
            "proof generation completed in %dms (proof_id: %s)",
            proof.metadata.performance.generation_time_ms,
            proof.id[:8],
        )
        return proof

    def generate_proof_sync(
        self,
        source: Source,
        selection: ContentSelection,
        *,
        filename: Optional[str] = None,
    ) -> Proof:
        return asyncio.run(self.generate_proof(source, selection, filename=filename))

    async def verify_proof(self, proof: Proof, claimed_content: bytes) -> bool:
        """Check ``proof`` against ``claimed_content`` with a lenient verifier."""
        verifier = ProofVerifier(
            VerificationConfig(strict_verification=False),
            backend=self.backend,
        )
        result = await verifier.verify_detailed(proof, claimed_content)
        stats = self.stats
        stats.total_proofs_verified += 1
        if result.is_valid:
            stats.successful_verifications += 1
        stats.avg_verification_time_ms = _running_average(
            stats.avg_verification_time_ms,
            stats.total_proofs_verified,
            result.verification_time_ms,
        )
        return result.is_valid

    def get_statistics(self) -> ProofStatistics:
        return self.stats

    def update_config(self, config: ProofConfig) -> None:
        config.validate()
        if config.backend != self.backend.name:
            self.backend = get_backend(config.backend)
        self.config = config
        self.block_store = BlockStore(config.max_block_size)
        self.extractor = ContentExtractor(self.block_store)

    # ------------------------------------------------------------ internals

    def _check_size(self, size: int) -> None:
        limit = self.config.max_file_size_bytes
        if size > limit:
            raise ResourceLimitError(
                "file_size",
                f"file size ({size} bytes) exceeds maximum allowed size ({limit} bytes)",
            )
        memory = self.config.max_memory_bytes
        if memory is not None and size > memory:
            raise ResourceLimitError(
                "memory",
                f"file size ({size} bytes) exceeds memory limit ({memory} bytes)",
            )

    async def _load(self, source: Source, filename: Optional[str]) -> tuple[bytes, Optional[str]]:
        if isinstance(source, (bytes, bytearray, memoryview)):
            data = bytes(source)
            self._check_size(len(data))
            return data, filename

        path = Path(source)
        if not path.exists():
            raise InvalidInputError("file_path", f"file does not exist: {path}")
        if not path.is_file():
            raise InvalidInputError("file_path", f"path is not a file: {path}")
        self._check_size(path.stat().st_size)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise FileError(f"failed to read {path}: {exc}", path=str(path)) from exc
        return data, filename or path.name

    async def _prove(self, circuit_input: ProofCircuitInput):
        """Run the backend on a private worker thread under the configured timeout.

        On timeout the worker is abandoned rather than joined; the backend call
        keeps running in the background but nobody waits for it.
        """
        timeout = self.config.timeout_seconds
        start = time.perf_counter()
        loop = asyncio.get_running_loop()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="zkipfs-prove")
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(executor, self.backend.prove, circuit_input),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise ProofTimeoutError("proof_generation", _elapsed_ms(start)) from None
        except ProvingError:
            raise
        except ProofError as exc:
            raise ProvingError("proof_generation", exc.message, elapsed_ms=_elapsed_ms(start)) from exc
        except Exception as exc:
            raise ProvingError(
                "proof_generation",
                f"{self.backend.name} backend failed: {exc}",
                elapsed_ms=_elapsed_ms(start),
            ) from exc
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    async def _generate(
        self,
        source: Source,
        selection: ContentSelection,
        filename: Optional[str],
        start: float,
    ) -> Proof:
        config = self.config
        config.validate()
        label = "<bytes>" if isinstance(source, (bytes, bytearray, memoryview)) else str(source)
        LOGGER.info("starting proof generation for %s", label)

        if not selection.is_valid():
            raise ContentSelectionError(f"invalid content selection: {selection.description()}")
        data, filename = await self._load(source, filename)

        processing_start = time.perf_counter()
        blocks, file_info = self.block_store.process(data, filename=filename)
        file_processing_ms = _elapsed_ms(processing_start)
        LOGGER.debug("processed file into %d blocks", len(blocks))

        extraction = self.extractor.extract(blocks, selection)
        expected_hash = hashlib.sha256(extraction.content).digest()
        circuit_input = ProofCircuitInput(
            blocks=tuple(blocks),
            selection=selection,
            expected_content_hash=expected_hash,
        )

        proving_start = time.perf_counter()
        receipt = await self._prove(circuit_input)
        proving_ms = _elapsed_ms(proving_start)
        output = receipt.decode_journal()
        LOGGER.debug(
            "backend %s produced receipt (%d cycles, %d content bytes)",
            self.backend.name,
            receipt.cycles,
            len(extraction.content),
        )

        receipt_bytes = receipt.to_bytes()
        stored_receipt = compress(receipt_bytes, config.compression)
        ratio = len(stored_receipt) / len(receipt_bytes) if receipt_bytes else None

        if config.include_performance_metrics:
            performance = PerformanceMetrics(
                generation_time_ms=_elapsed_ms(start),
                file_processing_time_ms=file_processing_ms,
                proving_time_ms=proving_ms,
                peak_memory_bytes=peak_memory_bytes(),
                cycles=receipt.cycles,
                proof_size_bytes=len(receipt_bytes),
                compression_ratio=ratio,
            )
        else:
            performance = PerformanceMetrics(proof_size_bytes=len(receipt_bytes))

        metadata = ProofMetadata(
            file_info=file_info,
            performance=performance,
            security=SecurityParameters(
                security_level=config.security_level,
                hash_function="SHA-256",
                proof_system=self.backend.proof_system,
                backend_version=self.backend.version,
            ),
            environment=GenerationEnvironment(
                os=os_name(),
                arch=arch(),
                hardware_acceleration=detect_hardware_acceleration(config.use_hardware_acceleration),
                prover_type=config.prover_type,
                library_version=__version__,
                build_id=build_id(),
            ),
            journal=JournalSummary(
                block_count=output.block_count,
                content_size=output.content_size,
                timestamp=output.timestamp,
            ),
            custom=dict(config.custom_metadata),
        )

        public_inputs = canonical_encode(
            {
                "program_id": receipt.program_id,
                "content_hash": output.content_hash,
                "root_hash": output.root_hash,
            }
        )

        return Proof(
            id=str(uuid.uuid4()),
            backend_receipt=stored_receipt,
            public_inputs=public_inputs,
            format_version=PROOF_FORMAT_VERSION,
            compression=config.compression,
            metadata=metadata,
            content_selection=selection,
            content_hash=output.content_hash,
            root_hash=output.root_hash,
            created_at=datetime.now(timezone.utc),
            version=__version__,
        )

    def _record_generation(self, proof: Proof) -> None:
        stats = self.stats
        stats.total_proofs_generated += 1
        stats.avg_generation_time_ms = _running_average(
            stats.avg_generation_time_ms,
            stats.total_proofs_generated,
            proof.metadata.performance.generation_time_ms,
        )
        info = proof.metadata.file_info
        stats.total_data_processed_bytes += info.size
        mime = info.mime_type or "unknown"
        stats.common_file_types[mime] = stats.common_file_types.get(mime, 0) + 1


__all__ = ["ProofGenerator"]
