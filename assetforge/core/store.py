"""Backing stores for the packer.

A store is a hierarchical, byte-addressable tree keyed by absolute
forward-slash paths (``/css/app.css``).  Two implementations are provided:

* :class:`MemoryStore` keeps everything in memory, for bundles that are
  embedded into another artifact.
* :class:`DirectoryStore` maps the tree onto a real directory, for bundles
  that are distributed on disk.

Neither store is thread-safe on its own; the packer serialises access.
"""

from __future__ import annotations

import posixpath
from collections.abc import Iterator
from pathlib import Path
from typing import Protocol, runtime_checkable


def clean_path(path: str) -> str:
    """Return *path* as a clean absolute store path.

    Raises
    ------
    ValueError
        If the path is empty or contains a ``..`` component.
    """
    if not path or "\x00" in path:
        raise ValueError(f"invalid store path {path!r}")
    parts = [p for p in path.replace("\\", "/").split("/") if p not in ("", ".")]
    if ".." in parts:
        raise ValueError(f"invalid store path {path!r}")
    return "/" + "/".join(parts)


@runtime_checkable
class BackingStore(Protocol):
    """Protocol satisfied by every packer backing store."""

    def makedirs(self, path: str) -> None:
        """Create directory *path* and any missing parents."""
        ...

    def write(self, path: str, data: bytes) -> None:
        """Create or truncate the file at *path* and write *data*."""
        ...

    def read(self, path: str) -> bytes:
        """Return the bytes stored at *path*."""
        ...

    def exists(self, path: str) -> bool:
        """Return ``True`` if a file or directory exists at *path*."""
        ...

    def size(self, path: str) -> int:
        """Return the size in bytes of the file at *path*."""
        ...

    def walk(self) -> Iterator[str]:
        """Yield every file path in the store in sorted order."""
        ...


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class MemoryStore:
    """In-memory store mirroring a filesystem's create/open semantics.

    Writing to a path whose parent directory was never created fails with
    :class:`FileNotFoundError`, the same as a real filesystem would.
    """

    def __init__(self) -> None:
        self._files: dict[str, bytes] = {}
        self._dirs: set[str] = {"/"}

    def makedirs(self, path: str) -> None:
        path = clean_path(path)
        if path in self._files:
            raise NotADirectoryError(f"{path} is a file")
        while path not in self._dirs:
            self._dirs.add(path)
            path = posixpath.dirname(path)

    def write(self, path: str, data: bytes) -> None:
        path = clean_path(path)
        if path in self._dirs:
            raise IsADirectoryError(f"{path} is a directory")
        if posixpath.dirname(path) not in self._dirs:
            raise FileNotFoundError(f"no such directory: {posixpath.dirname(path)}")
        self._files[path] = bytes(data)

    def read(self, path: str) -> bytes:
        path = clean_path(path)
        try:
            return self._files[path]
        except KeyError:
            raise FileNotFoundError(f"no such file: {path}") from None

    def exists(self, path: str) -> bool:
        path = clean_path(path)
        return path in self._files or path in self._dirs

    def size(self, path: str) -> int:
        return len(self.read(path))

    def walk(self) -> Iterator[str]:
        yield from sorted(self._files)

    def __repr__(self) -> str:
        return f"MemoryStore(files={len(self._files)})"


# ---------------------------------------------------------------------------
# Directory store
# ---------------------------------------------------------------------------


class DirectoryStore:
    """Store backed by a real directory tree.

    Parameters
    ----------
    root:
        Directory that holds the bundle.  Created if missing.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        """The directory backing this store."""
        return self._root

    def _os_path(self, path: str) -> Path:
        return self._root.joinpath(*clean_path(path).strip("/").split("/"))

    def makedirs(self, path: str) -> None:
        self._os_path(path).mkdir(parents=True, exist_ok=True)

    def write(self, path: str, data: bytes) -> None:
        self._os_path(path).write_bytes(data)

    def read(self, path: str) -> bytes:
        return self._os_path(path).read_bytes()

    def exists(self, path: str) -> bool:
        return self._os_path(path).exists()

    def size(self, path: str) -> int:
        return self._os_path(path).stat().st_size

    def walk(self) -> Iterator[str]:
        files = [
            "/" + p.relative_to(self._root).as_posix()
            for p in self._root.rglob("*")
            if p.is_file()
        ]
        yield from sorted(files)

    def __repr__(self) -> str:
        return f"DirectoryStore(root={str(self._root)!r})"
