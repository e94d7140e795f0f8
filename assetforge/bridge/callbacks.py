"""Callbacks that resolve asset references against a live packer."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from assetforge.bridge.ipc import Callback
from assetforge.core.hasher import normalize_name
from assetforge.models.values import Value

if TYPE_CHECKING:
    from assetforge.core.packer import Packer

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/_/"
WEBFONTS_PREFIX = "../webfonts/"


class AssetResolver:
    """Maps logical asset URLs to public fingerprinted URLs.

    The packer may still be receiving writes from earlier steps, so a URL
    that is not in the manifest yet resolves to a tagged placeholder
    (``__INV:<url>__``) instead of failing or blocking.
    """

    def __init__(self, packer: Packer) -> None:
        self._packer = packer

    def resolve(self, url: str) -> str:
        """Return the public path for *url*, keeping any query or fragment."""
        if url.startswith(WEBFONTS_PREFIX):
            url = url[2:]
        suffix = ""
        for sep in ("?", "#"):
            idx = url.rfind(sep)
            if idx != -1:
                url, suffix = url[:idx], url[idx:]
                break

        fp = self._packer.manifest().get(normalize_name(url))
        if fp is None:
            logger.warning("no asset %r in manifest", url)
            return f"{PUBLIC_PREFIX}__INV:{url}{suffix}__"
        return f"{PUBLIC_PREFIX}{fp}{suffix}"

    def asset(self, *args: Value) -> str:
        """``asset($url)``: CSS ``url(...)`` expression for a logical asset."""
        if len(args) != 1:
            raise ValueError("invalid number of args")
        try:
            url = args[0].as_str()
        except TypeError:
            raise ValueError("$url must be a string") from None
        return f"url('{self.resolve(url)}')"

    def callbacks(self, *, sass_signatures: bool = True) -> dict[str, Callback]:
        """Callback table for an :class:`~assetforge.bridge.ipc.IpcServer`.

        With *sass_signatures* the names carry their sass parameter lists
        (``asset($url)``), which is what the style compiler bridge expects.
        """
        name = "asset($url)" if sass_signatures else "asset"
        return {name: self.asset}
