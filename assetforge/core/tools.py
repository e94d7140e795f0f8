"""Subprocess invocation of external transformation tools.

Tools (compilers, minifiers, optimisers) are opaque executables.  They run
in the build's working directory with an environment assembled by the
builder (``PATH``, ``NODE_PATH`` and the IPC socket variable); the host
process environment is never modified.

Any non-zero exit, missing executable or expired timeout raises
:class:`ToolError` carrying the tool name, arguments, exit status and
whatever output was captured.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from assetforge.errors import AssetforgeError

logger = logging.getLogger(__name__)


class ToolError(AssetforgeError):
    """Raised when an external tool cannot be run or exits non-zero."""

    def __init__(
        self,
        tool: str,
        args: Sequence[str],
        returncode: int | None,
        output: str = "",
        reason: str = "",
    ) -> None:
        self.tool = tool
        self.tool_args = list(args)
        self.returncode = returncode
        self.output = output
        detail = reason or f"exit status {returncode}"
        msg = f"{format_command(tool, args)}: {detail}"
        if output.strip():
            msg += f"\n{output.strip()}"
        super().__init__(msg)


def format_command(tool: str, args: Sequence[str]) -> str:
    """Shell-quoted rendering of a command line, for logs and errors."""
    return shlex.join([tool, *args])


class ToolRunner:
    """Runs external tools in a fixed working directory and environment.

    Parameters
    ----------
    cwd:
        Working directory for every invocation.
    env:
        Complete environment for child processes.  Defaults to a copy of
        the current process environment.
    timeout:
        Seconds before a tool is killed; ``None`` waits indefinitely.
    verbose:
        Log each command line at INFO instead of DEBUG.
    """

    def __init__(
        self,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        *,
        timeout: float | None = None,
        verbose: bool = False,
    ) -> None:
        self.cwd = Path(cwd)
        self.env: dict[str, str] = dict(os.environ if env is None else env)
        self.timeout = timeout
        self.verbose = verbose

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    def with_env(self, **extra: str) -> ToolRunner:
        """Return a runner whose environment also holds *extra*."""
        env = dict(self.env)
        env.update(extra)
        return ToolRunner(self.cwd, env, timeout=self.timeout, verbose=self.verbose)

    def with_path(self, *dirs: Path) -> ToolRunner:
        """Return a runner with *dirs* prepended to ``PATH``."""
        parts = [str(d) for d in dirs if d]
        current = self.env.get("PATH", "")
        if current:
            parts.append(current)
        return self.with_env(PATH=os.pathsep.join(parts))

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    def run(self, tool: str, *args: str) -> None:
        """Run *tool*, streaming its output to this process's streams."""
        self._invoke(tool, args)

    def run_silent(self, tool: str, *args: str) -> None:
        """Run *tool* discarding stdout; stderr is kept for error reports."""
        self._invoke(tool, args, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE)

    def run_combined(self, tool: str, *args: str) -> str:
        """Run *tool* and return its trimmed, combined stdout and stderr."""
        proc = self._invoke(tool, args, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
        return _decode(proc.stdout).strip()

    def run_stdin(self, tool: str, *args: str, data: bytes) -> bytes:
        """Feed *data* to *tool* on stdin and return its stdout."""
        proc = self._invoke(
            tool, args, input=data, stdout=subprocess.PIPE, stderr=subprocess.PIPE
        )
        return proc.stdout

    def _invoke(self, tool: str, args: Sequence[str], **kwargs: object) -> subprocess.CompletedProcess:
        cmdline = format_command(tool, args)
        logger.log(logging.INFO if self.verbose else logging.DEBUG, "exec %s", cmdline)
        try:
            proc = subprocess.run(
                [tool, *args],
                cwd=self.cwd,
                env=self.env,
                timeout=self.timeout,
                check=False,
                **kwargs,  # type: ignore[arg-type]
            )
        except FileNotFoundError as exc:
            raise ToolError(tool, args, None, reason="executable not found") from exc
        except subprocess.TimeoutExpired as exc:
            raise ToolError(
                tool, args, None, _decode(exc.output), reason=f"timed out after {self.timeout}s"
            ) from exc
        if proc.returncode != 0:
            output = _decode(proc.stdout) if kwargs.get("stderr") == subprocess.STDOUT else ""
            output = output or _decode(proc.stderr)
            raise ToolError(tool, args, proc.returncode, output)
        return proc

    def __repr__(self) -> str:
        return f"ToolRunner(cwd={str(self.cwd)!r}, timeout={self.timeout!r})"


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
