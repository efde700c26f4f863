"""Exception hierarchy for proof generation and verification.

Every error raised by the library derives from :class:`ProofError` and carries
a ``context`` dict with the fields a caller needs to decide whether to retry
(operation name, elapsed time, offending field or block index).
"""
from __future__ import annotations

from typing import Any


class ProofError(Exception):
    """Base class for all zkipfs-proof errors."""

    kind = "proof_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, **self.context}


class FileError(ProofError):
    """File could not be read or inspected."""

    kind = "file_error"

    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(message, path=path)
        self.path = path


class StructuralError(ProofError):
    """Block set is malformed: CID mismatch, bad link, missing link target."""

    kind = "structural_error"

    def __init__(self, operation: str, message: str, *, block_index: int | None = None):
        super().__init__(f"{operation}: {message}", operation=operation, block_index=block_index)
        self.operation = operation
        self.block_index = block_index


class ContentSelectionError(ProofError):
    """Selection is invalid or does not match the file content."""

    kind = "content_selection_error"


class ProvingError(ProofError):
    """The proving backend failed."""

    kind = "proving_error"

    def __init__(self, operation: str, message: str, *, elapsed_ms: int | None = None):
        super().__init__(f"{operation}: {message}", operation=operation, elapsed_ms=elapsed_ms)
        self.operation = operation


class VerificationError(ProofError):
    """Cryptographic verification could not be performed."""

    kind = "verification_error"


class SerializationError(ProofError):
    """A proof, receipt or journal could not be encoded or decoded."""

    kind = "serialization_error"


class ConfigurationError(ProofError):
    """Configuration value is missing or out of range."""

    kind = "configuration_error"


class ResourceLimitError(ProofError):
    """Input exceeds a configured resource limit."""

    kind = "resource_limit_error"

    def __init__(self, resource: str, message: str):
        super().__init__(f"{resource}: {message}", resource=resource)
        self.resource = resource


class ProofTimeoutError(ProofError, TimeoutError):
    """An operation exceeded its configured time budget."""

    kind = "timeout_error"

    def __init__(self, operation: str, duration_ms: int):
        super().__init__(
            f"operation timed out: {operation} after {duration_ms}ms",
            operation=operation,
            duration_ms=duration_ms,
        )
        self.operation = operation
        self.duration_ms = duration_ms


class InvalidInputError(ProofError):
    """Caller supplied an invalid argument."""

    kind = "invalid_input_error"

    def __init__(self, field: str, message: str):
        super().__init__(f"invalid {field}: {message}", field=field)
        self.field = field


__all__ = [
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
