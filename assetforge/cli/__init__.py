"""Assetforge CLI — Typer-based command-line interface.

Provides the ``assetforge`` command with subcommands for running a build,
inspecting a bundle's manifest, listing the steps a project would run and
checking that the external toolchain is reachable.

All output uses Rich for formatted terminal display.
"""
