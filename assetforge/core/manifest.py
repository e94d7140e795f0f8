"""Manifest builder: forward/reverse lookup tables and their persisted forms.

The forward manifest maps logical names to fingerprinted names; the
reverse manifest inverts it.  Inversion is only well defined while the
forward map is injective, so :func:`invert` refuses to silently drop an
entry when two logical names collide on one fingerprinted name.
"""

from __future__ import annotations

import json
import logging
import posixpath
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from assetforge.errors import AssetforgeError

if TYPE_CHECKING:
    from assetforge.core.packer import Packer

logger = logging.getLogger(__name__)

DEFAULT_LISTING_NAME = "assets.lst"


class FingerprintCollisionError(AssetforgeError):
    """Raised when two distinct logical names map to one fingerprinted name."""

    def __init__(self, fingerprint: str, first: str, second: str) -> None:
        self.fingerprint = fingerprint
        self.names = (first, second)
        super().__init__(
            f"fingerprint collision: {first!r} and {second!r} both map to {fingerprint!r}"
        )


def invert(mapping: dict[str, str]) -> dict[str, str]:
    """Swap keys and values of *mapping*.

    Raises
    ------
    FingerprintCollisionError
        If two keys share a value.
    """
    reverse: dict[str, str] = {}
    for name in sorted(mapping):
        value = mapping[name]
        if value in reverse:
            raise FingerprintCollisionError(value, reverse[value], name)
        reverse[value] = name
    return reverse


class Manifest(BaseModel):
    """Snapshot of one build's forward and reverse lookup tables."""

    model_config = ConfigDict(frozen=True)

    forward: dict[str, str]
    reverse: dict[str, str]

    @classmethod
    def from_forward(cls, forward: dict[str, str]) -> Manifest:
        return cls(forward=dict(forward), reverse=invert(forward))

    def path(self, name: str) -> str:
        """Fingerprinted name for logical *name*, or ``""`` if unknown."""
        return self.forward.get("/" + name.lstrip("/"), "")

    def reverse_path(self, fingerprinted: str) -> str:
        """Logical name for *fingerprinted*, or ``""`` if unknown."""
        return self.reverse.get(fingerprinted, "")

    def __len__(self) -> int:
        return len(self.forward)


class ManifestBuilder:
    """Finalises a packer into a manifest and its persisted forms.

    Parameters
    ----------
    dist_prefix:
        Path of the bundle relative to the directory the listing is
        consumed from (e.g. ``"dist"``).  Prefixes every listing line.
    listing_name:
        File name for the embeddable asset listing.
    """

    def __init__(self, dist_prefix: str = "", listing_name: str = DEFAULT_LISTING_NAME) -> None:
        self.dist_prefix = dist_prefix.strip("/")
        self.listing_name = listing_name

    def build(self, packer: Packer) -> Manifest:
        """Compute both lookup tables from the packer's current contents."""
        return Manifest.from_forward(packer.manifest())

    def asset_listing(self, manifest: Manifest, manifest_name: str) -> str:
        """Newline-joined listing of every file in the bundle.

        The serialised manifest comes first, followed by each packed entry in
        sorted order, all prefixed with :attr:`dist_prefix`.
        """
        entries = [manifest_name.lstrip("/")]
        entries.extend(name.lstrip("/") for name in sorted(manifest.forward))
        return "\n".join(posixpath.join(self.dist_prefix, e) for e in entries) + "\n"

    def finalize(self, packer: Packer, out_dir: Path, *, inverted: bool = False) -> Manifest:
        """Write the manifest into the bundle and the listing into *out_dir*.

        With ``inverted=True`` the bundle carries the reverse manifest
        instead of the forward one.
        """
        manifest = self.build(packer)
        if inverted:
            packer.write_manifest_inverted()
        else:
            packer.write_manifest()
        listing_path = Path(out_dir) / self.listing_name
        listing_path.parent.mkdir(parents=True, exist_ok=True)
        listing_path.write_text(
            self.asset_listing(manifest, packer.manifest_path), encoding="utf-8"
        )
        logger.info("wrote asset listing %s (%d assets)", listing_path, len(manifest))
        return manifest


def write_json(path: Path, mapping: dict[str, str]) -> None:
    """Write *mapping* to *path* as indented JSON with sorted keys."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(mapping, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def read_json(path: Path) -> dict[str, str]:
    """Load a manifest written by :func:`write_json` or the packer."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        raise ValueError(f"{path} is not a string-to-string manifest")
    return data
