"""Core data types shared by the block store, generator and verifier."""
from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from .errors import ConfigurationError, SerializationError
from .selection import ContentSelection, selection_from_dict

PROOF_SCHEMA = "zkipfs_proof_v1"
PROOF_FORMAT_VERSION = "1.0"
HASH_LEN = 32

SUPPORTED_SECURITY_LEVELS = (128, 192, 256)


class CompressionType(str, Enum):
    NONE = "none"
    GZIP = "gzip"
    ZSTD = "zstd"


class HardwareAcceleration(str, Enum):
    CUDA = "cuda"
    METAL = "metal"
    CPU_OPTIMIZED = "cpu_optimized"
    NONE = "none"


class ProverType(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    CUSTOM = "custom"


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _unb64(text: str) -> bytes:
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SerializationError(f"invalid base64 payload: {exc}") from exc


def _unhex(text: str) -> bytes:
    try:
        return bytes.fromhex(text)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"invalid hex payload: {text!r}") from exc


# ---------------------------------------------------------------------------
# Blocks


@dataclass(frozen=True)
class BlockLink:
    """Reference from a root block to one of its chunks."""

    name: str
    cid: bytes
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "cid": self.cid, "size": self.size}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BlockLink":
        return cls(name=data["name"], cid=bytes(data["cid"]), size=int(data["size"]))


@dataclass(frozen=True)
class Block:
    """Content-addressed chunk of a file."""

    data: bytes
    cid: bytes
    links: tuple[BlockLink, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.links, tuple):
            object.__setattr__(self, "links", tuple(self.links))

    @property
    def size(self) -> int:
        return len(self.data)

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.data,
            "cid": self.cid,
            "links": [link.to_dict() for link in self.links],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Block":
        return cls(
            data=bytes(data["data"]),
            cid=bytes(data["cid"]),
            links=tuple(BlockLink.from_dict(link) for link in data.get("links", [])),
        )


@dataclass(frozen=True)
class FileInfo:
    """Information about the file a proof was generated for."""

    filename: Optional[str]
    size: int
    mime_type: Optional[str]
    file_hash: bytes
    cid: str
    block_count: int
    avg_block_size: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "size": self.size,
            "mime_type": self.mime_type,
            "file_hash": self.file_hash.hex(),
            "cid": self.cid,
            "block_count": self.block_count,
            "avg_block_size": self.avg_block_size,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileInfo":
        return cls(
            filename=data.get("filename"),
            size=int(data["size"]),
            mime_type=data.get("mime_type"),
            file_hash=_unhex(data["file_hash"]),
            cid=data["cid"],
            block_count=int(data["block_count"]),
            avg_block_size=int(data["avg_block_size"]),
        )


# ---------------------------------------------------------------------------
# Circuit boundary


@dataclass(frozen=True)
class ProofCircuitInput:
    """Everything that crosses into the proving backend."""

    blocks: tuple[Block, ...]
    selection: ContentSelection
    expected_content_hash: bytes

    def to_dict(self) -> dict[str, Any]:
        return {
            "blocks": [block.to_dict() for block in self.blocks],
            "selection": self.selection.to_dict(),
            "expected_content_hash": self.expected_content_hash,
        }


@dataclass(frozen=True)
class ProofCircuitOutput:
    """Journal committed by the guest program."""

    root_hash: bytes
    content_hash: bytes
    inclusion_hashes: tuple[bytes, ...]
    block_count: int
    content_size: int
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "root_hash": self.root_hash,
            "content_hash": self.content_hash,
            "inclusion_hashes": list(self.inclusion_hashes),
            "block_count": self.block_count,
            "content_size": self.content_size,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProofCircuitOutput":
        try:
            return cls(
                root_hash=bytes(data["root_hash"]),
                content_hash=bytes(data["content_hash"]),
                inclusion_hashes=tuple(bytes(h) for h in data["inclusion_hashes"]),
                block_count=int(data["block_count"]),
                content_size=int(data["content_size"]),
                timestamp=int(data["timestamp"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise SerializationError(f"malformed circuit output: {exc}") from exc


# ---------------------------------------------------------------------------
# Proof metadata


@dataclass(frozen=True)
class PerformanceMetrics:
    generation_time_ms: int = 0
    file_processing_time_ms: int = 0
    proving_time_ms: int = 0
    peak_memory_bytes: int = 0
    cycles: int = 0
    proof_size_bytes: int = 0
    compression_ratio: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "generation_time_ms": self.generation_time_ms,
            "file_processing_time_ms": self.file_processing_time_ms,
            "proving_time_ms": self.proving_time_ms,
            "peak_memory_bytes": self.peak_memory_bytes,
            "cycles": self.cycles,
            "proof_size_bytes": self.proof_size_bytes,
            "compression_ratio": self.compression_ratio,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PerformanceMetrics":
        ratio = data.get("compression_ratio")
        return cls(
            generation_time_ms=int(data.get("generation_time_ms", 0)),
            file_processing_time_ms=int(data.get("file_processing_time_ms", 0)),
            proving_time_ms=int(data.get("proving_time_ms", 0)),
            peak_memory_bytes=int(data.get("peak_memory_bytes", 0)),
            cycles=int(data.get("cycles", 0)),
            proof_size_bytes=int(data.get("proof_size_bytes", 0)),
            compression_ratio=float(ratio) if ratio is not None else None,
        )


@dataclass(frozen=True)
class SecurityParameters:
    security_level: int
    hash_function: str
    proof_system: str
    backend_version: str
    formal_verification: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "security_level": self.security_level,
            "hash_function": self.hash_function,
            "proof_system": self.proof_system,
            "backend_version": self.backend_version,
            "formal_verification": self.formal_verification,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SecurityParameters":
        return cls(
            security_level=int(data["security_level"]),
            hash_function=data["hash_function"],
            proof_system=data["proof_system"],
            backend_version=data["backend_version"],
            formal_verification=bool(data.get("formal_verification", False)),
        )


@dataclass(frozen=True)
class GenerationEnvironment:
    os: str
    arch: str
    hardware_acceleration: HardwareAcceleration
    prover_type: ProverType
    library_version: str
    build_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "os": self.os,
            "arch": self.arch,
            "hardware_acceleration": self.hardware_acceleration.value,
            "prover_type": self.prover_type.value,
            "library_version": self.library_version,
            "build_id": self.build_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GenerationEnvironment":
        return cls(
            os=data["os"],
            arch=data["arch"],
            hardware_acceleration=HardwareAcceleration(data["hardware_acceleration"]),
            prover_type=ProverType(data["prover_type"]),
            library_version=data["library_version"],
            build_id=data.get("build_id"),
        )


@dataclass(frozen=True)
class JournalSummary:
    """Counters copied out of the committed journal."""

    block_count: int
    content_size: int
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "block_count": self.block_count,
            "content_size": self.content_size,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JournalSummary":
        return cls(
            block_count=int(data["block_count"]),
            content_size=int(data["content_size"]),
            timestamp=int(data["timestamp"]),
        )


@dataclass(frozen=True)
class ProofMetadata:
    file_info: FileInfo
    performance: PerformanceMetrics
    security: SecurityParameters
    environment: GenerationEnvironment
    journal: JournalSummary
    custom: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_info": self.file_info.to_dict(),
            "performance": self.performance.to_dict(),
            "security": self.security.to_dict(),
            "environment": self.environment.to_dict(),
            "journal": self.journal.to_dict(),
            "custom": dict(self.custom),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProofMetadata":
        return cls(
            file_info=FileInfo.from_dict(data["file_info"]),
            performance=PerformanceMetrics.from_dict(data["performance"]),
            security=SecurityParameters.from_dict(data["security"]),
            environment=GenerationEnvironment.from_dict(data["environment"]),
            journal=JournalSummary.from_dict(data["journal"]),
            custom=dict(data.get("custom") or {}),
        )


# ---------------------------------------------------------------------------
# Proof


@dataclass(frozen=True)
class Proof:
    """A proof that selected content is present in a content-addressed file."""

    id: str
    backend_receipt: bytes
    public_inputs: bytes
    format_version: str
    compression: CompressionType
    metadata: ProofMetadata
    content_selection: ContentSelection
    content_hash: bytes
    root_hash: bytes
    created_at: datetime
    version: str

    def __str__(self) -> str:
        return (
            f"Proof {self.id[:8]} (created: {self.created_at:%Y-%m-%d %H:%M:%S} UTC, "
            f"content: {self.metadata.journal.content_size} bytes)"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema": PROOF_SCHEMA,
            "id": self.id,
            "backend_receipt": _b64(self.backend_receipt),
            "public_inputs": _b64(self.public_inputs),
            "format_version": self.format_version,
            "compression": self.compression.value,
            "metadata": self.metadata.to_dict(),
            "content_selection": self.content_selection.to_dict(),
            "content_hash": self.content_hash.hex(),
            "root_hash": self.root_hash.hex(),
            "created_at": self.created_at.isoformat(),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Proof":
        if not isinstance(data, dict):
            raise SerializationError("proof document must be an object")
        schema = data.get("schema", PROOF_SCHEMA)
        if schema != PROOF_SCHEMA:
            raise SerializationError(f"unsupported proof schema {schema!r}")
        try:
            created_at = datetime.fromisoformat(data["created_at"])
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            return cls(
                id=str(data["id"]),
                backend_receipt=_unb64(data["backend_receipt"]),
                public_inputs=_unb64(data["public_inputs"]),
                format_version=str(data["format_version"]),
                compression=CompressionType(data.get("compression", "none")),
                metadata=ProofMetadata.from_dict(data["metadata"]),
                content_selection=selection_from_dict(data["content_selection"]),
                content_hash=_unhex(data["content_hash"]),
                root_hash=_unhex(data["root_hash"]),
                created_at=created_at,
                version=str(data["version"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise SerializationError(f"malformed proof document: {exc}") from exc

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str) -> "Proof":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SerializationError(f"proof is not valid JSON: {exc}") from exc
        return cls.from_dict(data)


# ---------------------------------------------------------------------------
# Verification results


@dataclass
class VerificationStep:
    name: str
    passed: bool
    duration_ms: int
    details: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "duration_ms": self.duration_ms,
            "details": self.details,
        }


@dataclass
class VerifierInfo:
    version: str
    method: str
    environment: str

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "method": self.method, "environment": self.environment}


@dataclass
class VerificationResult:
    is_valid: bool
    verified_at: datetime
    verification_time_ms: int
    verifier_info: VerifierInfo
    warnings: list[str] = field(default_factory=list)
    steps: list[VerificationStep] = field(default_factory=list)

    def __str__(self) -> str:
        status = "VALID" if self.is_valid else "INVALID"
        return f"Verification: {status} ({self.verification_time_ms}ms)"

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "verified_at": self.verified_at.isoformat(),
            "verification_time_ms": self.verification_time_ms,
            "verifier_info": self.verifier_info.to_dict(),
            "warnings": list(self.warnings),
            "steps": [step.to_dict() for step in self.steps],
        }


# ---------------------------------------------------------------------------
# Configuration and statistics


@dataclass
class ProofConfig:
    """Settings for proof generation."""

    security_level: int = 128
    use_hardware_acceleration: bool = True
    prover_type: ProverType = ProverType.LOCAL
    backend: str = "dev"
    max_memory_bytes: Optional[int] = None
    max_file_size_bytes: int = 1024 * 1024 * 1024
    max_block_size: int = 256 * 1024
    timeout_seconds: Optional[float] = 600
    compression: CompressionType = CompressionType.GZIP
    custom_metadata: dict[str, Any] = field(default_factory=dict)
    include_performance_metrics: bool = True

    def validate(self) -> None:
        if self.security_level not in SUPPORTED_SECURITY_LEVELS:
            raise ConfigurationError(
                f"security_level must be one of {SUPPORTED_SECURITY_LEVELS}, got {self.security_level}"
            )
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be positive")
        if self.max_block_size <= 0:
            raise ConfigurationError("max_block_size must be positive")
        if self.max_file_size_bytes <= 0:
            raise ConfigurationError("max_file_size_bytes must be positive")
        if self.max_memory_bytes is not None and self.max_memory_bytes <= 0:
            raise ConfigurationError("max_memory_bytes must be positive")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProofConfig":
        known = {
            "security_level", "use_hardware_acceleration", "prover_type", "backend",
            "max_memory_bytes", "max_file_size_bytes", "max_block_size", "timeout_seconds",
            "compression", "custom_metadata", "include_performance_metrics",
        }
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"unknown proof config keys: {sorted(unknown)}")
        values = dict(data)
        try:
            if "prover_type" in values:
                values["prover_type"] = ProverType(values["prover_type"])
            if "compression" in values:
                values["compression"] = CompressionType(values["compression"] or "none")
            for key in ("security_level", "max_file_size_bytes", "max_block_size"):
                if key in values:
                    values[key] = int(values[key])
            if values.get("max_memory_bytes") is not None:
                values["max_memory_bytes"] = int(values["max_memory_bytes"])
            if values.get("timeout_seconds") is not None:
                values["timeout_seconds"] = float(values["timeout_seconds"])
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"invalid proof config: {exc}") from exc
        config = cls(**values)
        config.validate()
        return config


@dataclass
class ProofStatistics:
    total_proofs_generated: int = 0
    failed_generations: int = 0
    total_proofs_verified: int = 0
    successful_verifications: int = 0
    avg_generation_time_ms: float = 0.0
    avg_verification_time_ms: float = 0.0
    total_data_processed_bytes: int = 0
    common_file_types: dict[str, int] = field(default_factory=dict)

    @property
    def generation_success_rate(self) -> float:
        attempts = self.total_proofs_generated + self.failed_generations
        return self.total_proofs_generated / attempts if attempts else 1.0

    @property
    def verification_success_rate(self) -> float:
        if not self.total_proofs_verified:
            return 1.0
        return self.successful_verifications / self.total_proofs_verified


__all__ = [
    "PROOF_SCHEMA",
    "PROOF_FORMAT_VERSION",
    "HASH_LEN",
    "SUPPORTED_SECURITY_LEVELS",
    "CompressionType",
    "HardwareAcceleration",
    "ProverType",
    "BlockLink",
    "Block",
    "FileInfo",
    "ProofCircuitInput",
    "ProofCircuitOutput",
    "PerformanceMetrics",
    "SecurityParameters",
    "GenerationEnvironment",
    "JournalSummary",
    "ProofMetadata",
    "Proof",
    "VerificationStep",
    "VerifierInfo",
    "VerificationResult",
    "ProofConfig",
    "ProofStatistics",
]
