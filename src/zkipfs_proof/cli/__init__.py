"""zkipfs CLI - content-inclusion proofs for content-addressed files.

Commands:
    generate  - Prove that a file contains selected content
    verify    - Verify a proof against claimed content
    inspect   - Show proof metadata
    blocks    - Show how a file is chunked into blocks
"""
from __future__ import annotations

import logging

import click

from .. import __version__
from .blocks_cmd import blocks_command
from .generate_cmd import generate_command
from .inspect_cmd import inspect_command
from .verify_cmd import verify_command


@click.group()
@click.version_option(version=__version__, prog_name="zkipfs")
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (-v info, -vv debug)")
def cli(verbose: int) -> None:
    """zkipfs - prove content is in a file without revealing the file

    \b
    Quick start:
      zkipfs generate notes.txt -c "pattern:secret content"
      zkipfs verify notes.txt.proof.json --content "secret content"
      zkipfs inspect notes.txt.proof.json
    """
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


cli.add_command(generate_command, name="generate")
cli.add_command(verify_command, name="verify")
cli.add_command(inspect_command, name="inspect")
cli.add_command(blocks_command, name="blocks")


def main() -> None:
    cli()


__all__ = ["cli", "main"]
