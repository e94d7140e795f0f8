"""Content packer: the write-once bundle produced by one build run.

Every entry is stored under a normalised logical name (``/css/app.css``)
in a backing store, and its MD5 content hash is recomputed from the exact
bytes stored.  The manifest maps each logical name to its fingerprinted
name, a pure function of (logical name, content bytes).

All public methods are safe to call from multiple threads.  Writers
(``pack*``, ``write_manifest*``) are exclusive; readers (``manifest``,
``read``) may run in parallel with each other.
"""

from __future__ import annotations

import json
import logging
import posixpath
from pathlib import Path

from assetforge.core.hasher import fingerprint_from_hash, md5_hex
from assetforge.core.manifest import invert
from assetforge.core.rwlock import ReadWriteLock
from assetforge.core.store import BackingStore, MemoryStore, clean_path

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_NAME = "manifest.json"


class Packer:
    """Content-addressed asset packer.

    Parameters
    ----------
    store:
        Backing store for packed bytes.  Defaults to a fresh
        :class:`~assetforge.core.store.MemoryStore`.
    manifest_name:
        File name the serialised manifest is written to inside the store.
        That file is never listed in the manifest itself.
    """

    def __init__(
        self,
        store: BackingStore | None = None,
        *,
        manifest_name: str = DEFAULT_MANIFEST_NAME,
    ) -> None:
        self._store: BackingStore = store if store is not None else MemoryStore()
        self._manifest_path = clean_path(manifest_name)
        self._hashes: dict[str, str] = {}
        self._lock = ReadWriteLock()

    @property
    def store(self) -> BackingStore:
        """The backing store owned by this packer."""
        return self._store

    @property
    def manifest_path(self) -> str:
        """Absolute store path of the serialised manifest."""
        return self._manifest_path

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def pack(self, name: str, data: bytes) -> str:
        """Store *data* under logical *name* and return the normalised name.

        Intermediate directories are created as needed.  Store failures
        (permissions, disk full, invalid path) propagate unchanged; a failed
        call leaves only that one entry in an indeterminate state.
        """
        name = clean_path(name)
        data = bytes(data)
        with self._lock.write_locked():
            self._store.makedirs(posixpath.dirname(name))
            self._store.write(name, data)
            self._hashes[name] = md5_hex(data)
        logger.debug("packed %s (%d bytes)", name, len(data))
        return name

    def pack_file(self, name: str, path: Path) -> str:
        """Pack the contents of the file at *path* under *name*."""
        return self.pack(name, Path(path).read_bytes())

    def pack_string(self, name: str, text: str) -> str:
        """Pack UTF-8 encoded *text* under *name*."""
        return self.pack(name, text.encode("utf-8"))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read(self, name: str) -> bytes:
        """Return the bytes packed under *name*."""
        with self._lock.read_locked():
            return self._store.read(clean_path(name))

    def hash_of(self, name: str) -> str | None:
        """Return the content hash recorded for *name*, if packed."""
        try:
            key = clean_path(name)
        except ValueError:
            return None
        with self._lock.read_locked():
            return self._hashes.get(key)

    def names(self) -> list[str]:
        """Sorted logical names of every packed entry."""
        with self._lock.read_locked():
            return sorted(self._hashes)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        try:
            key = clean_path(name)
        except ValueError:
            return False
        with self._lock.read_locked():
            return key in self._hashes

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._hashes)

    # ------------------------------------------------------------------
    # Manifest
    # ------------------------------------------------------------------

    def manifest(self) -> dict[str, str]:
        """Map every packed logical name to its fingerprinted name.

        Walks the backing store, skipping the serialised manifest.  Files in
        the store that were not packed through this instance (a reused
        dist directory) are hashed from their bytes.
        """
        with self._lock.read_locked():
            return self._manifest_unlocked()

    def _manifest_unlocked(self) -> dict[str, str]:
        result: dict[str, str] = {}
        for name in self._store.walk():
            if name == self._manifest_path:
                continue
            content_hash = self._hashes.get(name)
            if content_hash is None:
                content_hash = md5_hex(self._store.read(name))
            result[name] = fingerprint_from_hash(name, content_hash)
        return result

    def manifest_bytes(self) -> bytes:
        """JSON-encoded manifest, indented with sorted keys."""
        return _encode(self.manifest())

    def write_manifest(self) -> dict[str, str]:
        """Write the forward manifest into the store and return it."""
        with self._lock.write_locked():
            manifest = self._manifest_unlocked()
            self._store.makedirs(posixpath.dirname(self._manifest_path))
            self._store.write(self._manifest_path, _encode(manifest))
        logger.info("wrote manifest %s (%d entries)", self._manifest_path, len(manifest))
        return manifest

    def write_manifest_inverted(self) -> dict[str, str]:
        """Write the reverse manifest (fingerprint -> logical name) and return it.

        Raises
        ------
        FingerprintCollisionError
            If two logical names share a fingerprinted name.
        """
        with self._lock.write_locked():
            reverse = invert(self._manifest_unlocked())
            self._store.makedirs(posixpath.dirname(self._manifest_path))
            self._store.write(self._manifest_path, _encode(reverse))
        logger.info(
            "wrote inverted manifest %s (%d entries)", self._manifest_path, len(reverse)
        )
        return reverse

    def __repr__(self) -> str:
        return f"Packer(store={self._store!r}, entries={len(self._hashes)})"


def _encode(mapping: dict[str, str]) -> bytes:
    return json.dumps(mapping, indent=2, sort_keys=True).encode("utf-8") + b"\n"
