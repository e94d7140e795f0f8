"""Tests for ToolRunner — invocation modes, environment, error wrapping."""

from __future__ import annotations

import os

import pytest

from assetforge.core.tools import ToolError, ToolRunner, format_command


class TestToolRunner:
    def test_run_combined_returns_output(self, make_tool, tool_runner: ToolRunner):
        make_tool("greet", "import sys\nprint('hello', *sys.argv[1:])\n")
        assert tool_runner.run_combined("greet", "world") == "hello world"

    def test_runs_in_working_directory(self, make_tool, tool_runner: ToolRunner, tmp_dir):
        make_tool("pwd-tool", "import os\nprint(os.getcwd())\n")
        assert os.path.samefile(tool_runner.run_combined("pwd-tool"), tmp_dir)

    def test_run_stdin(self, make_tool, tool_runner: ToolRunner):
        make_tool("upper", "import sys\nsys.stdout.buffer.write(sys.stdin.buffer.read().upper())\n")
        assert tool_runner.run_stdin("upper", data=b"<p>hi</p>") == b"<P>HI</P>"

    def test_nonzero_exit_wrapped(self, make_tool, tool_runner: ToolRunner):
        make_tool("fail", "import sys\nsys.stderr.write('bad input\\n')\nsys.exit(4)\n")
        with pytest.raises(ToolError) as info:
            tool_runner.run_silent("fail", "--flag", "file name")
        err = info.value
        assert err.tool == "fail"
        assert err.tool_args == ["--flag", "file name"]
        assert err.returncode == 4
        assert "bad input" in err.output
        assert "fail --flag 'file name'" in str(err)

    def test_missing_executable(self, tool_runner: ToolRunner):
        with pytest.raises(ToolError) as info:
            tool_runner.run("definitely-not-a-real-tool-xyz")
        assert info.value.returncode is None
        assert "executable not found" in str(info.value)

    def test_timeout(self, make_tool, tmp_dir):
        make_tool("sleepy", "import time\ntime.sleep(10)\n")
        runner = ToolRunner(tmp_dir, dict(os.environ), timeout=0.5).with_path(tmp_dir / "bin")
        with pytest.raises(ToolError) as info:
            runner.run_silent("sleepy")
        assert "timed out" in str(info.value)

    def test_with_env_does_not_touch_host(self, make_tool, tool_runner: ToolRunner):
        make_tool("show-env", "import os\nprint(os.environ.get('ASSETFORGE_SOCK', ''))\n")
        runner = tool_runner.with_env(ASSETFORGE_SOCK="/tmp/x.sock")
        assert runner.run_combined("show-env") == "/tmp/x.sock"
        assert tool_runner.env.get("ASSETFORGE_SOCK") != "/tmp/x.sock"
        assert os.environ.get("ASSETFORGE_SOCK") != "/tmp/x.sock"

    def test_with_path_prepends(self, tmp_dir):
        runner = ToolRunner(tmp_dir, {"PATH": "/usr/bin"}).with_path(tmp_dir / "a", tmp_dir / "b")
        assert runner.env["PATH"] == os.pathsep.join([str(tmp_dir / "a"), str(tmp_dir / "b"), "/usr/bin"])


def test_format_command_quotes():
    assert format_command("tool", ["a b", "c"]) == "tool 'a b' c"
