"""``assetforge manifest`` — show the manifest of a built bundle.

Reads the serialised manifest from the dist directory, or recomputes it
from the bundle's files with ``--compute``.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from assetforge.cli.commands.build import load_config
from assetforge.core.manifest import read_json
from assetforge.core.packer import Packer
from assetforge.core.store import DirectoryStore

console = Console()


def manifest_cmd(
    wd: str = typer.Option(".", "--wd", "-C", help="Project working directory."),
    dist_dir: str = typer.Option(None, "--dist", help="Bundle directory."),
    compute: bool = typer.Option(
        False, "--compute", help="Recompute fingerprints from the bundle's files."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON."),
) -> None:
    """Show the logical name to fingerprinted name mapping of a bundle."""
    config = load_config(wd, dist_dir=dist_dir)
    dist = config.dist_dir
    if not dist.is_dir():
        console.print(f"[bold red]Bundle not found:[/bold red] {dist}")
        console.print("[dim]Build it first with: assetforge build[/dim]")
        raise typer.Exit(code=1)

    if compute:
        mapping = Packer(DirectoryStore(dist), manifest_name=config.pack_manifest).manifest()
    else:
        path = dist / config.pack_manifest
        if not path.exists():
            console.print(f"[bold red]Manifest not found:[/bold red] {path}")
            raise typer.Exit(code=1)
        try:
            mapping = read_json(path)
        except ValueError as exc:
            console.print(f"[bold red]Invalid manifest:[/bold red] {exc}")
            raise typer.Exit(code=1) from exc

    if as_json:
        console.print_json(json.dumps(mapping, sort_keys=True))
        return

    table = Table(title=f"Manifest: {Path(dist).name}", show_header=True, header_style="bold cyan")
    table.add_column("Logical name", style="cyan")
    table.add_column("Fingerprinted name", style="green")
    for name in sorted(mapping):
        table.add_row(name, mapping[name])
    console.print(table)
    console.print(f"[dim]{len(mapping)} entries[/dim]")
