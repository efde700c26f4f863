"""zkipfs blocks command - show how a file is chunked into blocks."""
from __future__ import annotations

import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from ..blocks import DEFAULT_MAX_BLOCK_SIZE, BlockStore, cid_to_str
from ..errors import ProofError
from .utils import EXIT_MALFORMED, format_size


@click.command("blocks")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--block-size", type=click.IntRange(min=1), default=DEFAULT_MAX_BLOCK_SIZE, show_default=True, help="Maximum block size in bytes")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def blocks_command(file: Path, block_size: int, output_json: bool) -> None:
    """List the content-addressed blocks of FILE."""
    store = BlockStore(block_size)
    try:
        blocks, info = store.process_file(file)
    except ProofError as exc:
        click.echo(f"ERROR: {exc}", err=True)
        sys.exit(EXIT_MALFORMED)
    stats = store.stats(blocks)

    if output_json:
        click.echo(json.dumps({
            "file": info.to_dict(),
            "stats": stats.to_dict(),
            "blocks": [
                {"index": i, "cid": cid_to_str(b.cid), "size": b.size, "links": len(b.links)}
                for i, b in enumerate(blocks)
            ],
        }, indent=2))
        return

    console = Console()
    console.print(f"[bold]{file.name}[/bold]  {info.mime_type}  {format_size(info.size)}  cid={info.cid}")
    table = Table()
    table.add_column("#", justify="right")
    table.add_column("CID")
    table.add_column("Size", justify="right")
    table.add_column("Links", justify="right")
    for i, block in enumerate(blocks):
        table.add_row(str(i), cid_to_str(block.cid), format_size(block.size), str(len(block.links)))
    console.print(table)
    console.print(
        f"{stats.block_count} blocks, {format_size(stats.total_size)} total, "
        f"min {stats.min_block_size} / avg {stats.avg_block_size} / max {stats.max_block_size} bytes"
    )
