"""``assetforge list-steps`` — show the steps a build would run."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from assetforge.cli.commands.build import load_config
from assetforge.core.builder import AssetBuilder
from assetforge.errors import AssetforgeError

console = Console()


def list_steps_cmd(
    wd: str = typer.Option(".", "--wd", "-C", help="Project working directory."),
) -> None:
    """List the build steps discovered for the project, in execution order."""
    config = load_config(wd)
    try:
        builder = AssetBuilder(config)
    except AssetforgeError as exc:
        console.print(f"[bold red]Invalid configuration:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    if not builder.steps:
        console.print("[dim]No build steps for this project.[/dim]")
        return

    table = Table(title="Build Steps", show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right")
    table.add_column("Step", style="cyan")
    table.add_column("Tools")
    table.add_column("Node packages", style="dim")
    for i, step in enumerate(builder.steps, start=1):
        table.add_row(
            str(i),
            step.name,
            ", ".join(step.executables) or "-",
            ", ".join(step.node_deps) or "-",
        )
    console.print(table)
