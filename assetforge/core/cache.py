"""Incremental build cache keyed on source content hashes.

Each cached output ``<cache>/<rel>`` is accompanied by ``<cache>/<rel>.md5``
holding the MD5 of the source it was produced from.  A source is unchanged
when that recorded hash matches and the cached output still exists.
"""

from __future__ import annotations

import logging
from pathlib import Path

from assetforge.core.hasher import md5_file

logger = logging.getLogger(__name__)

HASH_SUFFIX = ".md5"


class FingerprintCache:
    """Per-step cache directory of transformed outputs.

    Parameters
    ----------
    root:
        Cache directory for one step (e.g. ``.cache/images``).
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def output_path(self, rel: str) -> Path:
        """Where the cached output for source *rel* lives."""
        return self.root.joinpath(*rel.split("/"))

    def hash_path(self, rel: str) -> Path:
        out = self.output_path(rel)
        return out.with_name(out.name + HASH_SUFFIX)

    def cached_hash(self, rel: str) -> str | None:
        """Recorded source hash for *rel*, or ``None`` if absent."""
        try:
            return self.hash_path(rel).read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None

    def check(self, rel: str, source: Path) -> str | None:
        """Return the current hash of *source* if its output must be rebuilt.

        ``None`` means the recorded hash matches and the cached output
        exists.  Call :meth:`record` once the new output has been produced.
        """
        current = md5_file(source)
        if self.cached_hash(rel) == current and self.output_path(rel).exists():
            logger.debug("cache hit for %s", rel)
            return None
        return current

    def record(self, rel: str, source_hash: str) -> None:
        """Remember that the cached output of *rel* matches *source_hash*."""
        path = self.hash_path(rel)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source_hash, encoding="utf-8")
