"""Incremental image optimisation on the worker pool.

Every image under ``assets/images`` has an optimised copy in
``<cache>/images`` next to an ``.md5`` file recording the source hash it
was produced from.  Only images whose hash changed (or whose cached copy
vanished) are re-optimised; all of them are packed afterwards.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from assetforge.core.cache import FingerprintCache
from assetforge.core.packer import Packer
from assetforge.core.walker import walk_files
from assetforge.steps.base import BaseStep

logger = logging.getLogger(__name__)

IMAGES_DIR = "images"
IMAGE_EXT_RE = re.compile(r"(?i)\.(jpe?g|gif|png|svg|mp4|webm|json)$")

# imagemin plugin per lower-case extension; others use imagemin's defaults.
PLUGINS = {
    ".jpg": "guetzli",
    ".jpeg": "guetzli",
    ".svg": "svgo",
    ".png": "pngquant",
    ".gif": "gifsicle",
}


class ImagesStep(BaseStep):
    name = IMAGES_DIR
    executables = ("imagemin",)
    node_deps = (
        "imagemin-cli",
        "imagemin-gifsicle",
        "imagemin-guetzli",
        "imagemin-pngquant",
        "imagemin-svgo",
    )

    def execute(self, packer: Packer) -> None:
        cache = FingerprintCache(self.config.cache_dir / IMAGES_DIR)
        images = list(walk_files(self.ctx.asset_dir(IMAGES_DIR), pattern=IMAGE_EXT_RE))

        changed: list[tuple[str, Path, str]] = []
        for rel, path in images:
            digest = cache.check(rel, path)
            if digest is not None:
                changed.append((rel, path, digest))
        logger.info("images: %d total, %d changed", len(images), len(changed))

        def optimize(item: tuple[str, Path, str]) -> None:
            rel, path, digest = item
            out = cache.output_path(rel)
            out.parent.mkdir(parents=True, exist_ok=True)
            self.ctx.tools.run_silent("imagemin", *imagemin_args(path, out.parent))
            cache.record(rel, digest)

        self.ctx.pool(IMAGES_DIR).run(changed, optimize)

        for rel, _ in images:
            packer.pack_file(f"{IMAGES_DIR}/{rel}", cache.output_path(rel))


def imagemin_args(source: Path, out_dir: Path) -> list[str]:
    """Arguments optimising *source* into *out_dir*."""
    args = []
    plugin = PLUGINS.get(source.suffix.lower())
    if plugin:
        args.append(f"--plugin={plugin}")
    args.extend([f"--out-dir={out_dir}", str(source)])
    return args
