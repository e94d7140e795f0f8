"""Exception hierarchy shared across assetforge.

Module-specific failures (tool exits, step failures, fingerprint
collisions, bridge misuse) live beside the code that raises them and all
derive from :class:`AssetforgeError`.
"""

from __future__ import annotations


class AssetforgeError(Exception):
    """Base class for every error raised by assetforge."""


class ConfigurationError(AssetforgeError, ValueError):
    """Raised before any work starts when the build is misconfigured.

    Covers invalid worker counts, invalid translation function identifiers,
    invalid static directory names, duplicate step names, and paths that
    escape the working directory.
    """
