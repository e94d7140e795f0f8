"""Pack a project directory verbatim."""

from __future__ import annotations

import re

from assetforge.core.packer import Packer
from assetforge.core.walker import walk_files
from assetforge.errors import ConfigurationError
from assetforge.steps.base import BaseStep, BuildContext

STATIC_DIR_NAME_RE = re.compile(r"^[A-Za-z0-9]+$")


class StaticDirStep(BaseStep):
    """Packs every file of ``assets/<dir_name>`` under ``/<dir_name>/``.

    Raises
    ------
    ConfigurationError
        On construction, if *dir_name* is not purely alphanumeric.
    """

    def __init__(self, ctx: BuildContext, dir_name: str) -> None:
        super().__init__(ctx)
        if not STATIC_DIR_NAME_RE.match(dir_name):
            raise ConfigurationError(f"invalid static dir name {dir_name!r}")
        self.dir_name = dir_name

    @property
    def name(self) -> str:
        return f"static:{self.dir_name}"

    def execute(self, packer: Packer) -> None:
        src = self.ctx.asset_dir(self.dir_name)
        if not src.exists():
            raise FileNotFoundError(f"could not open static dir {str(src)!r}")
        if not src.is_dir():
            raise NotADirectoryError(f"{str(src)!r} is not a directory")
        for rel, path in walk_files(src, skip_hidden=False):
            packer.pack_file(f"{self.dir_name}/{rel}", path)
