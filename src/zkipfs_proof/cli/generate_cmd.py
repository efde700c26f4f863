"""zkipfs generate command - prove that a file contains selected content.

Usage:
    zkipfs generate <file> -c <selection> [-o proof.json]
"""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from ..config import proof_config_from
from ..errors import InvalidInputError, ProofError
from ..generator import ProofGenerator
from ..selection import parse_selection
from ..storage import save_proof
from .utils import EXIT_GENERATION_ERROR, format_size, load_cli_config, parse_meta


def _selection_callback(ctx: click.Context, param: click.Parameter, value: str):
    try:
        return parse_selection(value)
    except InvalidInputError as exc:
        raise click.BadParameter(exc.message) from exc


@click.command("generate")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--content", "-c",
    "selection",
    required=True,
    callback=_selection_callback,
    help="Selection: pattern:TEXT, regex:RE, xpath:EXPR, range:START:END (comma-join for several)",
)
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Proof output path")
@click.option("--security-level", type=click.Choice(["128", "192", "256"]), help="Security level in bits")
@click.option("--compression", type=click.Choice(["none", "gzip", "zstd"]), help="Receipt compression")
@click.option("--timeout", type=float, help="Proving timeout in seconds")
@click.option("--backend", help="Proving backend name")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Config file (YAML or JSON)")
@click.option("--meta", multiple=True, help="Custom metadata as key=value (repeatable)")
@click.option("--json", "output_json", is_flag=True, help="Output summary as JSON")
def generate_command(
    file: Path,
    selection,
    output: Optional[Path],
    security_level: Optional[str],
    compression: Optional[str],
    timeout: Optional[float],
    backend: Optional[str],
    config_path: Optional[Path],
    meta: tuple[str, ...],
    output_json: bool,
) -> None:
    """Generate a proof that FILE contains the selected content.

    \b
    Examples:
        zkipfs generate report.txt -c "pattern:quarterly revenue"
        zkipfs generate data.xml -c "xpath://record[@id='7']/amount"
        zkipfs generate blob.bin -c range:1024:2048 -o blob.proof.json
    """
    config = load_cli_config(config_path)
    section = config.setdefault("proof", {})
    if security_level is not None:
        section["security_level"] = int(security_level)
    if compression is not None:
        section["compression"] = compression
    if timeout is not None:
        section["timeout_seconds"] = timeout
    if backend is not None:
        section["backend"] = backend
    custom = dict(section.get("custom_metadata") or {})
    custom.update(parse_meta(meta))
    section["custom_metadata"] = custom

    output = output or file.with_name(file.name + ".proof.json")
    try:
        generator = ProofGenerator(proof_config_from(config))
        proof = generator.generate_proof_sync(file, selection)
        save_proof(proof, output)
    except ProofError as exc:
        if output_json:
            click.echo(json.dumps({"status": "ERROR", **exc.to_dict()}, indent=2))
        else:
            click.echo(f"ERROR: {exc}", err=True)
        sys.exit(EXIT_GENERATION_ERROR)

    perf = proof.metadata.performance
    if output_json:
        click.echo(json.dumps({
            "status": "OK",
            "proof_id": proof.id,
            "output": str(output),
            "content_hash": proof.content_hash.hex(),
            "root_hash": proof.root_hash.hex(),
            "selection": proof.content_selection.description(),
            "generation_time_ms": perf.generation_time_ms,
        }, indent=2))
        return

    console = Console()
    table = Table(title="Proof generated", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Proof ID", proof.id)
    table.add_row("File", f"{file.name} ({format_size(proof.metadata.file_info.size)})")
    table.add_row("Selection", proof.content_selection.description())
    table.add_row("Content hash", proof.content_hash.hex())
    table.add_row("Root hash", proof.root_hash.hex())
    table.add_row("Blocks", str(proof.metadata.file_info.block_count))
    table.add_row("Generation time", f"{perf.generation_time_ms} ms")
    table.add_row("Output", str(output))
    console.print(table)
