"""``assetforge build`` — run the asset pipeline for a project.

Resolves the build configuration from the environment and the command
line, runs every discovered step, and writes the bundle, its manifest and
the asset listing.  The first failure aborts the build and is printed with
its full cause chain.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from assetforge.config import Settings
from assetforge.core.builder import AssetBuilder, BuildResult
from assetforge.errors import AssetforgeError
from assetforge.models.config import BuildConfig
from assetforge.models.steps import StepRecord, StepState

console = Console()

_STATE_STYLE = {
    StepState.PASSED: "[green]PASSED[/green]",
    StepState.FAILED: "[red]FAILED[/red]",
    StepState.SKIPPED: "[dim]SKIPPED[/dim]",
}


def load_config(wd: str, **overrides: Any) -> BuildConfig:
    """Resolve a build configuration, exiting with a message on failure."""
    try:
        return BuildConfig.resolve(Path(wd), Settings(), **overrides)
    except (AssetforgeError, ValueError, OSError) as exc:
        console.print(f"[bold red]Invalid configuration:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc


def error_chain(exc: BaseException) -> list[str]:
    """Messages of *exc* and each of its causes, outermost first."""
    chain: list[str] = []
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        chain.append(f"{type(current).__name__}: {current}")
        current = current.__cause__
    return chain


def build_cmd(
    wd: str = typer.Option(".", "--wd", "-C", help="Project working directory."),
    workers: int = typer.Option(None, "--workers", "-w", help="Number of concurrent workers."),
    assets_dir: str = typer.Option(None, "--assets", help="Assets directory."),
    build_dir: str = typer.Option(None, "--build", help="Build (intermediate output) directory."),
    cache_dir: str = typer.Option(None, "--cache", help="Cache directory."),
    dist_dir: str = typer.Option(None, "--dist", help="Bundle output directory."),
    node_modules: str = typer.Option(None, "--node-modules", help="node_modules directory."),
    trans_func_name: str = typer.Option(
        None, "--trans-func-name", help="Template translation function name."
    ),
    in_memory: bool = typer.Option(
        False, "--in-memory", help="Keep the bundle in memory instead of on disk."
    ),
    invert_manifest: bool = typer.Option(
        False, "--invert-manifest", help="Write the reverse manifest."
    ),
    sync_deps: bool = typer.Option(
        False, "--sync-deps", help="Add missing node packages with yarn first."
    ),
    tool_timeout: float = typer.Option(
        None, "--timeout", help="Seconds before an external tool is killed."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log tool invocations."),
) -> None:
    """Build the asset bundle for the project in WD.

    Prints a per-step summary and the manifest location.  Exits non-zero
    on the first failing step.
    """
    config = load_config(
        wd,
        workers=workers,
        assets_dir=assets_dir,
        build_dir=build_dir,
        cache_dir=cache_dir,
        dist_dir=dist_dir,
        node_modules=node_modules,
        trans_func_name=trans_func_name,
        # unset flags fall back to the environment
        in_memory=in_memory or None,
        invert_manifest=invert_manifest or None,
        sync_deps=sync_deps or None,
        tool_timeout=tool_timeout,
        verbose=verbose or None,
    )

    builder: AssetBuilder | None = None
    try:
        builder = AssetBuilder(config)
        result = builder.build()
    except (AssetforgeError, OSError) as exc:
        if builder is not None and builder.executor.records:
            console.print(_records_table(builder.executor.records))
        console.print(
            Panel(
                "\n".join(error_chain(exc)),
                title="[bold red]Build failed[/bold red]",
                border_style="red",
                padding=(1, 2),
            )
        )
        raise typer.Exit(code=1) from exc

    console.print(_records_table(result.records))
    console.print(_summary_panel(config, result))


def _records_table(records: list[StepRecord]) -> Table:
    table = Table(show_header=True, header_style="bold cyan", title="Build Steps")
    table.add_column("Step", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Entries", justify="right")
    table.add_column("Time", justify="right")
    for rec in records:
        table.add_row(
            rec.name,
            _STATE_STYLE.get(rec.state, rec.state.value),
            str(rec.entries_added),
            f"{rec.duration_seconds:.2f}s",
        )
    return table


def _summary_panel(config: BuildConfig, result: BuildResult) -> Panel:
    bundle = str(result.dist_dir) if result.dist_dir is not None else "(in memory)"
    lines = [
        "[bold green]Build complete![/bold green]",
        "",
        f"[bold]Assets:[/bold]    {len(result.manifest)}",
        f"[bold]Bundle:[/bold]    {bundle}",
        f"[bold]Manifest:[/bold]  {config.pack_manifest}",
        f"[bold]Listing:[/bold]   {result.listing_path}",
    ]
    return Panel("\n".join(lines), title="[bold]Assetforge[/bold]", border_style="green", padding=(1, 2))
