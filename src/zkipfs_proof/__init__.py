"""zkipfs-proof - prove that content is part of a content-addressed file.

Submodules:
    blocks     - Content-addressed chunking and reconstruction
    selection  - What part of a file a proof is about
    extract    - Exact extraction of selected content
    backends   - Proving backend protocol, receipts, development backend
    generator  - Proof generation
    verifier   - Proof verification
    policy     - Verification rules and policy files
    storage    - Persisted proof documents
    cli        - Command-line interface

Public API:
    from zkipfs_proof import ProofGenerator, ProofVerifier, Pattern
"""
from __future__ import annotations

__version__ = "0.1.0"

from .blocks import BlockStatistics, BlockStore, cid_to_str, compute_cid, detect_mime_type
from .errors import (
    ConfigurationError,
    ContentSelectionError,
    FileError,
    InvalidInputError,
    ProofError,
    ProofTimeoutError,
    ProvingError,
    ResourceLimitError,
    SerializationError,
    StructuralError,
    VerificationError,
)
from .extract import ContentExtractor, Extraction
from .selection import (
    ByteRange,
    ContentSelection,
    Multiple,
    Pattern,
    Regex,
    StructuredSelector,
    parse_selection,
)
from .types import (
    Block,
    BlockLink,
    CompressionType,
    FileInfo,
    HardwareAcceleration,
    Proof,
    ProofConfig,
    ProofMetadata,
    ProofStatistics,
    ProverType,
    VerificationResult,
    VerificationStep,
)
from .backends import DevModeBackend, Receipt, available_backends, get_backend, register_backend
from .policy import CustomRule, MaxProofSize, MinSecurityLevel, RequiredProofSystem, load_policy
from .verifier import ProofVerifier, VerificationConfig, VerificationStatistics
from .generator import ProofGenerator
from .storage import load_proof, save_proof

__all__ = [
    "__version__",
    # Blocks
    "Block",
    "BlockLink",
    "BlockStatistics",
    "BlockStore",
    "FileInfo",
    "cid_to_str",
    "compute_cid",
    "detect_mime_type",
    # Selection and extraction
    "ByteRange",
    "ContentSelection",
    "Multiple",
    "Pattern",
    "Regex",
    "StructuredSelector",
    "parse_selection",
    "ContentExtractor",
    "Extraction",
    # Backends
    "DevModeBackend",
    "Receipt",
    "available_backends",
    "get_backend",
    "register_backend",
    # Generation and verification
    "CompressionType",
    "HardwareAcceleration",
    "ProverType",
    "Proof",
    "ProofConfig",
    "ProofMetadata",
    "ProofStatistics",
    "ProofGenerator",
    "ProofVerifier",
    "VerificationConfig",
    "VerificationResult",
    "VerificationStatistics",
    "VerificationStep",
    # Policy
    "CustomRule",
    "MaxProofSize",
    "MinSecurityLevel",
    "RequiredProofSystem",
    "load_policy",
    # Storage
    "load_proof",
    "save_proof",
    # Errors
    "ProofError",
    "FileError",
    "StructuralError",
    "ContentSelectionError",
    "ProvingError",
    "VerificationError",
    "SerializationError",
    "ConfigurationError",
    "ResourceLimitError",
    "ProofTimeoutError",
    "InvalidInputError",
]
