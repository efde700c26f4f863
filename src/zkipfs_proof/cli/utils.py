"""Shared CLI helpers."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import click

from ..config import load_config
from ..errors import ProofError

EXIT_VALID = 0
EXIT_INVALID = 10
EXIT_MALFORMED = 20
EXIT_GENERATION_ERROR = 30


def format_size(size: int) -> str:
    """Format byte size in human-readable form."""
    if size < 1024:
        return f"{size} B"
    elif size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    elif size < 1024 * 1024 * 1024:
        return f"{size / (1024 * 1024):.1f} MB"
    else:
        return f"{size / (1024 * 1024 * 1024):.2f} GB"


def load_cli_config(config_path: Optional[Path]) -> dict[str, Any]:
    try:
        return load_config(config_path)
    except ProofError as exc:
        raise click.UsageError(str(exc)) from exc


def parse_meta(values: tuple[str, ...]) -> dict[str, str]:
    meta: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {item!r}", param_hint="--meta")
        meta[key.strip()] = value
    return meta
