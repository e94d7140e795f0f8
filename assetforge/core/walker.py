"""Symlink-following directory walk with cycle avoidance.

Directories are tracked by their resolved real path; a directory reached
twice (through a symlink loop or two links to the same target) is visited
only once.  Output is sorted so walks are stable between runs.
"""

from __future__ import annotations

import os
import re
from collections.abc import Callable, Iterator
from pathlib import Path

# Predicate over (relative posix path, absolute path).
FileFilter = Callable[[str, Path], bool]


def walk_files(
    root: Path,
    *,
    pattern: re.Pattern[str] | None = None,
    include: FileFilter | None = None,
    skip_hidden: bool = True,
    recursive: bool = True,
) -> Iterator[tuple[str, Path]]:
    """Yield ``(relative_posix_path, path)`` for every file under *root*.

    Parameters
    ----------
    pattern:
        Only yield files whose name matches this regular expression.
    include:
        Additional predicate; files for which it returns ``False`` are skipped.
    skip_hidden:
        Skip files and directories whose name starts with ``.``.
    recursive:
        Descend into subdirectories.
    """
    root = Path(root)
    visited: set[str] = set()
    yield from _walk(root, "", visited, pattern, include, skip_hidden, recursive)


def _walk(
    directory: Path,
    prefix: str,
    visited: set[str],
    pattern: re.Pattern[str] | None,
    include: FileFilter | None,
    skip_hidden: bool,
    recursive: bool,
) -> Iterator[tuple[str, Path]]:
    real = os.path.realpath(directory)
    if real in visited:
        return
    visited.add(real)

    for entry in sorted(os.scandir(directory), key=lambda e: e.name):
        if skip_hidden and entry.name.startswith("."):
            continue
        rel = f"{prefix}{entry.name}"
        path = Path(entry.path)
        if entry.is_dir(follow_symlinks=True):
            if recursive:
                yield from _walk(
                    path, rel + "/", visited, pattern, include, skip_hidden, recursive
                )
            continue
        if not entry.is_file(follow_symlinks=True):
            # dangling symlink or special file
            continue
        if pattern is not None and not pattern.search(entry.name):
            continue
        if include is not None and not include(rel, path):
            continue
        yield rel, path
