"""``assetforge doctor`` — check that the external toolchain is reachable.

Looks up every tool the project's steps invoke on the same ``PATH`` the
build would use (node_modules/.bin first), and reports the node version.
"""

from __future__ import annotations

import shutil
import subprocess

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from assetforge.cli.commands.build import load_config
from assetforge.core.builder import AssetBuilder
from assetforge.errors import AssetforgeError

console = Console()


def _check_tool(tool: str, search_path: str | None) -> tuple[bool, str]:
    """Check if *tool* is on *search_path*."""
    found = shutil.which(tool, path=search_path)
    if found:
        return True, found
    return False, "not found on PATH"


def _check_node(search_path: str | None) -> tuple[bool, str]:
    """Check if ``node`` is available and report its version."""
    node = shutil.which("node", path=search_path)
    if not node:
        return False, "not found on PATH"
    try:
        result = subprocess.run([node, "--version"], capture_output=True, text=True, timeout=5)
        version = result.stdout.strip() or result.stderr.strip() or "unknown"
        return True, f"{node} ({version})"
    except (subprocess.SubprocessError, OSError):
        return True, f"{node} (version check failed)"


def doctor_cmd(
    wd: str = typer.Option(".", "--wd", "-C", help="Project working directory."),
    strict: bool = typer.Option(False, "--strict", help="Exit non-zero if anything is missing."),
) -> None:
    """Report which tools the project's build steps need and whether they are found."""
    config = load_config(wd)
    try:
        builder = AssetBuilder(config)
    except AssetforgeError as exc:
        console.print(f"[bold red]Invalid configuration:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc
    search_path = builder.tools.env.get("PATH")

    checks: list[tuple[str, str, bool, str]] = []
    ok, detail = _check_node(search_path)
    checks.append(("node", "-", ok, detail))
    if config.sync_deps:
        ok, detail = _check_tool(config.yarn_bin, search_path)
        checks.append((config.yarn_bin, "-", ok, detail))
    for step in builder.steps:
        for tool in step.executables:
            ok, detail = _check_tool(tool, search_path)
            checks.append((tool, step.name, ok, detail))

    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Tool", min_width=16)
    table.add_column("Step")
    table.add_column("Status", width=10, justify="center")
    table.add_column("Details")

    all_ok = True
    for tool, step_name, ok, detail in checks:
        if not ok:
            all_ok = False
        status = "[green]OK[/green]" if ok else "[yellow]MISSING[/yellow]"
        table.add_row(tool, step_name, status, detail)

    if all_ok:
        overall = "[bold green]All tools available.[/bold green]"
        border_style = "green"
    else:
        overall = "[bold yellow]Some tools are missing.[/bold yellow]"
        border_style = "yellow"

    console.print()
    console.print(
        Panel(
            table,
            title="[bold]Toolchain Check[/bold]",
            subtitle=overall,
            border_style=border_style,
            padding=(1, 2),
        )
    )
    console.print()
    if strict and not all_ok:
        raise typer.Exit(code=1)
