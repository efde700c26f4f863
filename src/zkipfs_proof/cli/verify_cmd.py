"""zkipfs verify command - check a proof against claimed content."""
from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from ..backends import get_backend
from ..config import verification_config_from
from ..errors import ProofError
from ..policy import load_policy
from ..storage import load_proof
from ..verifier import ProofVerifier
from .utils import EXIT_INVALID, EXIT_MALFORMED, EXIT_VALID, load_cli_config


def _fail(message: str, output_json: bool) -> None:
    if output_json:
        click.echo(json.dumps({"status": "MALFORMED", "error": message}, indent=2))
    else:
        click.echo(f"ERROR: {message}", err=True)
    sys.exit(EXIT_MALFORMED)


@click.command("verify")
@click.argument("proof_path", metavar="PROOF", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--content", help="Claimed content as text")
@click.option("--content-file", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="File holding the claimed content bytes")
@click.option("--strict/--lenient", default=None, help="Fail on metadata and policy warnings (default: strict)")
@click.option("--steps", is_flag=True, help="Show individual verification steps")
@click.option("--policy", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Policy file with verification rules")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Config file (YAML or JSON)")
@click.option("--json", "output_json", is_flag=True, help="Output result as JSON")
def verify_command(
    proof_path: Path,
    content: Optional[str],
    content_file: Optional[Path],
    strict: Optional[bool],
    steps: bool,
    policy: Optional[Path],
    config_path: Optional[Path],
    output_json: bool,
) -> None:
    """Verify PROOF against the claimed content.

    \b
    Exit codes:
        0  - Proof valid
        10 - Proof invalid
        20 - Malformed proof, policy or config
    """
    if (content is None) == (content_file is None):
        raise click.UsageError("exactly one of --content or --content-file is required")
    claimed = content.encode("utf-8") if content is not None else content_file.read_bytes()

    config = load_cli_config(config_path)
    try:
        proof = load_proof(proof_path)
        verification = verification_config_from(config)
        verification.custom_rules.extend(load_policy(policy))
        backend = get_backend(config.get("proof", {}).get("backend", "dev"))
    except ProofError as exc:
        _fail(str(exc), output_json)
        return
    if strict is not None:
        verification.strict_verification = strict
    verification.include_verification_steps = steps or verification.include_verification_steps

    verifier = ProofVerifier(verification, backend=backend)
    result = asyncio.run(verifier.verify_detailed(proof, claimed))
    exit_code = EXIT_VALID if result.is_valid else EXIT_INVALID

    if output_json:
        click.echo(json.dumps({"proof_id": proof.id, **result.to_dict()}, indent=2))
        sys.exit(exit_code)

    console = Console()
    if result.is_valid:
        console.print(f"[green]VALID[/green] proof {proof.id[:8]} ({result.verification_time_ms} ms)")
    else:
        console.print(f"[red]INVALID[/red] proof {proof.id[:8]} ({result.verification_time_ms} ms)")
    for warning in result.warnings:
        console.print(f"  [yellow]warning:[/yellow] {warning}")
    if result.steps:
        table = Table(title="Verification steps")
        table.add_column("Step")
        table.add_column("Passed")
        table.add_column("Time (ms)", justify="right")
        table.add_column("Details")
        for step in result.steps:
            table.add_row(
                step.name,
                "[green]yes[/green]" if step.passed else "[red]no[/red]",
                str(step.duration_ms),
                step.details or "",
            )
        console.print(table)
    sys.exit(exit_code)
