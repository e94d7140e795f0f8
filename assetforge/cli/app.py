"""Main Typer application — imports and registers all CLI commands.

Entry point: ``assetforge`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from assetforge.cli.commands.build import build_cmd
from assetforge.cli.commands.doctor import doctor_cmd
from assetforge.cli.commands.list_steps import list_steps_cmd
from assetforge.cli.commands.manifest_cmd import manifest_cmd
from assetforge.config import Settings

app = typer.Typer(
    name="assetforge",
    help="Assetforge: content-addressed static asset pipeline.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="build", help="Build the project's asset bundle.")(build_cmd)
app.command(name="manifest", help="Show the manifest of a built bundle.")(manifest_cmd)
app.command(name="list-steps", help="List the build steps for a project.")(list_steps_cmd)
app.command(name="doctor", help="Check that the external toolchain is available.")(doctor_cmd)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to ASSETFORGE_LOG_LEVEL or INFO).",
    ),
) -> None:
    """Configure logging for every subcommand."""
    configure_logging(log_level or Settings().log_level)


def configure_logging(level: str) -> None:
    """Route log records through Rich at *level*."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False, markup=False)],
        force=True,
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
