"""Hashing helpers for content addressing and fingerprinted names.

Content hashes are 128-bit MD5 digests, hex encoded. They identify content
for cache busting; they are not a security boundary.
"""

from __future__ import annotations

import hashlib
import posixpath
from pathlib import Path

# Length of each hash segment in a fingerprinted name.
SEGMENT_LENGTH = 6

_CHUNK_SIZE = 64 * 1024


def md5_hex(data: bytes) -> str:
    """Return the MD5 hex digest of raw bytes."""
    return hashlib.md5(data).hexdigest()


def md5_file(path: Path) -> str:
    """Return the MD5 hex digest of a file's contents, read in chunks."""
    h = hashlib.md5()
    with Path(path).open("rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def normalize_name(name: str) -> str:
    """Normalise a logical name to forward slashes with one leading slash."""
    return "/" + name.replace("\\", "/").lstrip("/")


def fingerprint_from_hash(name: str, content_hash: str) -> str:
    """Build the fingerprinted name from a logical name and a content hash.

    Layout: ``md5(name)[:6] + "." + content_hash[:6] + ext(name)``, where the
    name is hashed without its leading slash.
    """
    name_hash = md5_hex(name.lstrip("/").encode("utf-8"))
    ext = posixpath.splitext(name)[1]
    return f"{name_hash[:SEGMENT_LENGTH]}.{content_hash[:SEGMENT_LENGTH]}{ext}"


def fingerprint(name: str, content: bytes) -> str:
    """Fingerprinted name for *name* holding *content*."""
    return fingerprint_from_hash(name, md5_hex(content))
