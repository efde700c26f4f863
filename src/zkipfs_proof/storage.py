"""Reading and writing proof documents."""
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from .errors import FileError, SerializationError
from .types import Proof

LOGGER = logging.getLogger(__name__)


def _atomic_write(path: Path, content: str) -> None:
    """Write file atomically: temp, fsync, replace."""
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(content.encode("utf-8"))
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def save_proof(proof: Proof, path: Path | str) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    content = proof.to_json()
    try:
        _atomic_write(path, content + "\n")
    except OSError as exc:
        raise FileError(f"failed to write proof to {path}: {exc}", path=str(path)) from exc
    LOGGER.info("wrote proof %s to %s", proof.id[:8], path)
    return path


def load_proof(path: Path | str) -> Proof:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise FileError(f"failed to read proof from {path}: {exc}", path=str(path)) from exc
    except UnicodeDecodeError as exc:
        raise SerializationError(f"proof file is not UTF-8: {path}") from exc
    return Proof.from_json(text)


__all__ = ["save_proof", "load_proof"]
