"""Concatenate and minify javascript bundles."""

from __future__ import annotations

import fnmatch
import posixpath
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from assetforge.core.packer import Packer
from assetforge.core.walker import walk_files
from assetforge.errors import ConfigurationError
from assetforge.models.config import JsBundle
from assetforge.steps.base import BaseStep, BuildContext

JS_DIR = "js"
NPM_PREFIX = "npm:"

# Sub-directories of a node package searched for a source, in order.
PACKAGE_SEARCH_DIRS = ("", "dist", "src")


class NpmSource(BaseModel):
    """A bundle source located inside an installed node package."""

    model_config = ConfigDict(frozen=True)

    package: str
    version: str = ""
    pattern: str = ""

    @classmethod
    def parse(cls, source: str) -> NpmSource:
        """Parse ``npm:<package>[@version][:<glob>]``.

        Scoped packages (``@scope/name``) are supported.
        """
        target, _, pattern = source[len(NPM_PREFIX):].partition(":")
        package, version = target, ""
        at = target.find("@", 1)
        if at != -1:
            package, version = target[:at], target[at + 1:]
        if not package:
            raise ConfigurationError(f"invalid npm source {source!r}")
        return cls(package=package, version=version, pattern=pattern)

    @property
    def dependency(self) -> str:
        return f"{self.package}@{self.version}" if self.version else self.package


class JsStep(BaseStep):
    """Builds one :class:`~assetforge.models.config.JsBundle` into ``/js/<name>``."""

    executables = ("uglifyjs",)

    def __init__(self, ctx: BuildContext, bundle: JsBundle) -> None:
        super().__init__(ctx)
        self.bundle = bundle
        self._npm = {
            s: NpmSource.parse(s) for s in bundle.sources if s.startswith(NPM_PREFIX)
        }
        self.node_deps = ("uglify-js", "source-map", *(n.dependency for n in self._npm.values()))

    @property
    def name(self) -> str:
        return f"js:{self.bundle.name}"

    def execute(self, packer: Packer) -> None:
        sources = [self.locate(s) for s in self.bundle.sources]
        wd = self.config.wd
        for path in sources:
            if not path.resolve().is_relative_to(wd):
                raise ConfigurationError(f"js source {str(path)!r} is outside of the project")

        out = self.ctx.build_path(JS_DIR, self.bundle.name)
        with out.open("w", encoding="utf-8") as fh:
            for path in sources:
                fh.write(path.read_text(encoding="utf-8").rstrip("\n") + "\n")

        minified = out.with_name(f"{out.stem}.uglify{out.suffix}")
        self.ctx.tools.run(
            "uglifyjs", "--source-map", "--compress", "--output", str(minified), str(out)
        )
        packer.pack_file(f"{JS_DIR}/{self.bundle.name}", minified)

    def locate(self, source: str) -> Path:
        """Absolute path of a bundle source."""
        npm = self._npm.get(source)
        if npm is not None:
            return find_package_file(self.config.node_modules, npm)
        path = self.ctx.asset_dir(JS_DIR) / source
        if not path.is_file():
            raise FileNotFoundError(f"could not find js {source!r}")
        return path


def find_package_file(node_modules: Path, npm: NpmSource) -> Path:
    """First file of *npm*'s package matching its pattern.

    Without a pattern ``<package>.js`` is looked for.  The pattern is tried
    relative to the package root, then its ``dist`` and ``src`` directories.
    """
    pattern = npm.pattern or posixpath.basename(npm.package) + ".js"
    globs = [posixpath.join(d, pattern) if d else pattern for d in PACKAGE_SEARCH_DIRS]
    package_dir = node_modules / npm.package
    if package_dir.is_dir():
        for rel, path in walk_files(package_dir, skip_hidden=False):
            if any(fnmatch.fnmatchcase(rel, g) for g in globs):
                return path
    raise FileNotFoundError(f"could not find {pattern!r} in npm package {npm.package}")
