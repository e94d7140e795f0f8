"""Pack font files."""

from __future__ import annotations

import re

from assetforge.core.packer import Packer
from assetforge.core.walker import walk_files
from assetforge.steps.base import BaseStep

FONTS_DIR = "fonts"
FONT_EXT_RE = re.compile(r"(?i)\.(woff2?|ttf|otf|eot|svg|css)$")


class FontsStep(BaseStep):
    """Packs ``assets/fonts/**`` under ``/fonts/`` without transformation."""

    name = FONTS_DIR

    def execute(self, packer: Packer) -> None:
        for rel, path in walk_files(self.ctx.asset_dir(FONTS_DIR), pattern=FONT_EXT_RE):
            packer.pack_file(f"{FONTS_DIR}/{rel}", path)
