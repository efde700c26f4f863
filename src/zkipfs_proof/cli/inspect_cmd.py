"""zkipfs inspect command - display proof metadata without verifying it."""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from ..backends import Receipt
from ..compression import decompress
from ..errors import ProofError
from ..storage import load_proof
from ..types import Proof
from .utils import EXIT_MALFORMED, format_size


def _summary(proof: Proof, receipt: Receipt) -> dict[str, Any]:
    meta = proof.metadata
    return {
        "proof_id": proof.id,
        "version": proof.version,
        "format_version": proof.format_version,
        "created_at": proof.created_at.isoformat(),
        "selection": proof.content_selection.description(),
        "content_hash": proof.content_hash.hex(),
        "root_hash": proof.root_hash.hex(),
        "compression": proof.compression.value,
        "receipt_bytes": len(proof.backend_receipt),
        "program_id": receipt.program_id.hex(),
        "claim_root": receipt.claim_root.hex(),
        "cycles": receipt.cycles,
        "file": meta.file_info.to_dict(),
        "security": meta.security.to_dict(),
        "performance": meta.performance.to_dict(),
        "environment": meta.environment.to_dict(),
        "journal": meta.journal.to_dict(),
        "custom": meta.custom,
    }


@click.command("inspect")
@click.argument("proof_path", metavar="PROOF", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def inspect_command(proof_path: Path, output_json: bool) -> None:
    """Display proof metadata.

    Shows key information about a proof and its receipt without
    cryptographic verification.
    """
    try:
        proof = load_proof(proof_path)
        receipt = Receipt.from_bytes(decompress(proof.backend_receipt, proof.compression))
    except ProofError as exc:
        click.echo(f"ERROR: {exc}", err=True)
        sys.exit(EXIT_MALFORMED)

    info = _summary(proof, receipt)
    if output_json:
        click.echo(json.dumps(info, indent=2))
        return

    file_info = info["file"]
    table = Table(title=str(proof), show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Proof ID", info["proof_id"])
    table.add_row("Created", info["created_at"])
    table.add_row("Version", f"{info['version']} (format {info['format_version']})")
    table.add_row("Selection", info["selection"])
    table.add_row("Content hash", info["content_hash"])
    table.add_row("Root hash", info["root_hash"])
    table.add_row("File", f"{file_info['filename'] or '-'} ({format_size(file_info['size'])})")
    table.add_row("MIME type", file_info["mime_type"] or "-")
    table.add_row("File CID", file_info["cid"])
    table.add_row("Blocks", str(file_info["block_count"]))
    table.add_row("Proof system", f"{info['security']['proof_system']} {info['security']['backend_version']}")
    table.add_row("Security level", f"{info['security']['security_level']} bits")
    table.add_row("Receipt", f"{format_size(info['receipt_bytes'])} ({info['compression']})")
    table.add_row("Program ID", info["program_id"])
    table.add_row("Claim root", info["claim_root"])
    for key, value in info["custom"].items():
        table.add_row(f"meta.{key}", str(value))
    Console().print(table)
