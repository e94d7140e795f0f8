"""Shared test fixtures for Assetforge."""

from __future__ import annotations

import os
import stat
import sys
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from assetforge.config import Settings
from assetforge.core.packer import Packer
from assetforge.core.store import DirectoryStore, MemoryStore
from assetforge.core.tools import ToolRunner
from assetforge.models.config import BuildConfig


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def packer() -> Packer:
    """Provide a Packer over a fresh in-memory store."""
    return Packer(MemoryStore())


@pytest.fixture
def disk_packer(tmp_dir: Path) -> Packer:
    """Provide a Packer over a fresh directory store."""
    return Packer(DirectoryStore(tmp_dir / "dist"))


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the host environment and any .env file."""
    return Settings(_env_file=None, workers=2, log_level="DEBUG")


# ---------------------------------------------------------------------------
# Fake external tools — small Python scripts run by this interpreter
# ---------------------------------------------------------------------------


def write_tool(bin_dir: Path, name: str, body: str) -> Path:
    """Write an executable Python script called *name* into *bin_dir*."""
    bin_dir.mkdir(parents=True, exist_ok=True)
    path = bin_dir / name
    path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def make_tool(tmp_dir: Path) -> Callable[[str, str], Path]:
    """Factory fixture: write a fake tool into ``<tmp>/bin``."""

    def _factory(name: str, body: str) -> Path:
        return write_tool(tmp_dir / "bin", name, body)

    return _factory


@pytest.fixture
def tool_runner(tmp_dir: Path) -> ToolRunner:
    """A ToolRunner whose PATH starts with ``<tmp>/bin``."""
    return ToolRunner(tmp_dir, dict(os.environ)).with_path(tmp_dir / "bin")


IMAGEMIN = """
import shutil, sys
args = sys.argv[1:]
out_dir = next(a.split("=", 1)[1] for a in args if a.startswith("--out-dir="))
src = args[-1]
if "broken" in src:
    sys.stderr.write("cannot optimise " + src + "\\n")
    sys.exit(3)
with open(src, "rb") as fh:
    data = fh.read()
import os
with open(os.path.join(out_dir, os.path.basename(src)), "wb") as fh:
    fh.write(b"min:" + data)
"""

NODE_SASS = """
import json, os, re, socket, sys
args = sys.argv[1:]
out_dir = next(a.split("=", 1)[1] for a in args if a.startswith("--output="))
src = args[-1]

def call(payload):
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.connect(os.environ["ASSETFORGE_SOCK"])
    sock.sendall(json.dumps(payload).encode() + b"\\n")
    buf = b""
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            break
        buf += chunk
    sock.close()
    resp = json.loads(buf)
    if "error" in resp:
        sys.stderr.write("error: " + resp["error"] + "\\n")
        sys.exit(1)
    return resp["result"]

names = call({"type": "list-functions"})
assert "asset($url)" in names, names
with open(src) as fh:
    text = fh.read()
text = re.sub(
    r'asset\\("([^"]+)"\\)',
    lambda m: call({"type": "call", "params": {"name": "asset($url)", "args": [m.group(1)]}}),
    text,
)
os.makedirs(out_dir, exist_ok=True)
stem = os.path.splitext(os.path.basename(src))[0]
with open(os.path.join(out_dir, stem + ".css"), "w") as fh:
    fh.write(text)
"""

TAILWIND = """
import shutil, sys
args = sys.argv[1:]
shutil.copyfile(args[1], args[args.index("-o") + 1])
"""

CLEANCSS = """
import sys
args = sys.argv[1:]
out = next(a.split("=", 1)[1] for a in args if a.startswith("--output="))
with open(args[-1]) as fh:
    text = fh.read()
with open(out, "w") as fh:
    fh.write("/*! preserved license */" + " ".join(text.split()))
"""

UGLIFYJS = """
import sys
args = sys.argv[1:]
out = args[args.index("--output") + 1]
with open(args[-1]) as fh:
    lines = [l.strip() for l in fh if l.strip()]
with open(out, "w") as fh:
    fh.write(";".join(lines))
"""

HTML_MINIFIER = """
import re, sys
data = sys.stdin.buffer.read()
sys.stdout.buffer.write(re.sub(rb">\\s+<", b"><", data).strip())
"""

FAKE_TOOLCHAIN = {
    "imagemin": IMAGEMIN,
    "node-sass": NODE_SASS,
    "tailwindcss-cli": TAILWIND,
    "cleancss": CLEANCSS,
    "uglifyjs": UGLIFYJS,
    "html-minifier": HTML_MINIFIER,
}


@pytest.fixture
def project(tmp_dir: Path) -> Path:
    """A project working directory with the fake toolchain installed.

    The tools live in ``.cache/node_modules/.bin``, where the default
    tool runner looks first.
    """
    wd = tmp_dir / "app"
    (wd / "assets").mkdir(parents=True)
    bin_dir = wd / ".cache" / "node_modules" / ".bin"
    for name, body in FAKE_TOOLCHAIN.items():
        write_tool(bin_dir, name, body)
    return wd


@pytest.fixture
def make_config(project: Path, settings: Settings) -> Callable[..., BuildConfig]:
    """Factory fixture: resolve a BuildConfig for the test project."""

    def _factory(**overrides) -> BuildConfig:
        return BuildConfig.resolve(project, settings, **overrides)

    return _factory
