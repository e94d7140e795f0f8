"""Unit tests for the CLI — command registration and basic behavior."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from assetforge.cli.app import app
from assetforge.cli.commands.build import error_chain

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ASSETFORGE_WORKERS", "2")


# ---------------------------------------------------------------------------
# Test: CLI help and registration
# ---------------------------------------------------------------------------


class TestCliApp:
    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)
        assert "usage" in result.output.lower()

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for cmd in ("build", "manifest", "list-steps", "doctor"):
            assert cmd in result.output

    @pytest.mark.parametrize("cmd", ["build", "manifest", "list-steps", "doctor"])
    def test_command_help(self, cmd: str):
        assert runner.invoke(app, [cmd, "--help"]).exit_code == 0


# ---------------------------------------------------------------------------
# Test: commands against a project
# ---------------------------------------------------------------------------


class TestBuildCommand:
    def test_build_and_show_manifest(self, project: Path):
        (project / "assets" / "fonts").mkdir()
        (project / "assets" / "fonts" / "a.woff2").write_bytes(b"font")

        result = runner.invoke(app, ["build", "--wd", str(project)])
        assert result.exit_code == 0, result.output
        assert "Build complete" in result.output
        assert (project / "assets" / "dist" / "manifest.json").exists()

        shown = runner.invoke(app, ["manifest", "--wd", str(project), "--json"])
        assert shown.exit_code == 0
        assert "/fonts/a.woff2" in json.loads(shown.output)

        computed = runner.invoke(app, ["manifest", "--wd", str(project), "--compute"])
        assert computed.exit_code == 0
        assert "/fonts/a.woff2" in computed.output

    def test_build_failure_exits_nonzero(self, project: Path):
        (project / "assets" / "images").mkdir()
        (project / "assets" / "images" / "broken.png").write_bytes(b"x")
        result = runner.invoke(app, ["build", "--wd", str(project)])
        assert result.exit_code == 1
        assert "Build failed" in result.output
        assert "ToolError" in result.output

    def test_invalid_workers(self, project: Path):
        result = runner.invoke(app, ["build", "--wd", str(project), "--workers", "0"])
        assert result.exit_code == 1
        assert "workers" in result.output

    def test_manifest_missing_bundle(self, project: Path):
        result = runner.invoke(app, ["manifest", "--wd", str(project)])
        assert result.exit_code == 1
        assert "Bundle not found" in result.output


class TestInspectionCommands:
    def test_list_steps(self, project: Path):
        (project / "assets" / "sass").mkdir()
        result = runner.invoke(app, ["list-steps", "--wd", str(project)])
        assert result.exit_code == 0
        assert "sass" in result.output
        assert "node-sass" in result.output

    def test_list_steps_empty(self, project: Path):
        result = runner.invoke(app, ["list-steps", "--wd", str(project)])
        assert result.exit_code == 0
        assert "No build steps" in result.output

    def test_doctor_finds_project_tools(self, project: Path):
        (project / "assets" / "images").mkdir()
        result = runner.invoke(app, ["doctor", "--wd", str(project)])
        assert result.exit_code == 0
        assert "imagemin" in result.output

    def test_doctor_strict_reports_missing(self, project: Path):
        (project / "assets" / "images").mkdir()
        (project / ".cache" / "node_modules" / ".bin" / "imagemin").unlink()
        result = runner.invoke(app, ["doctor", "--wd", str(project), "--strict"])
        assert "MISSING" in result.output


def test_error_chain_follows_causes():
    try:
        try:
            raise OSError("disk full")
        except OSError as inner:
            raise RuntimeError("step failed") from inner
    except RuntimeError as outer:
        assert error_chain(outer) == ["RuntimeError: step failed", "OSError: disk full"]
