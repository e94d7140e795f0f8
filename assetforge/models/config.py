"""Build and project configuration models."""

from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from assetforge.config import Settings
from assetforge.errors import ConfigurationError

PROJECT_FILE = "assetforge.toml"

_IDENTIFIER_RE = re.compile(r"^[^\W\d_]\w*$")


class JsBundle(BaseModel):
    """One minified javascript output built from ordered sources.

    Sources are paths under ``assets/js``; a source written as
    ``npm:<package>[@version][:<glob>]`` is located inside node_modules.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    sources: list[str] = Field(min_length=1)


class ProjectSpec(BaseModel):
    """Per-project build description, read from ``assets/assetforge.toml``."""

    model_config = ConfigDict(frozen=True)

    static_dirs: list[str] = []
    js: list[JsBundle] = []
    sass_includes: list[str] = []
    sass_include_node_modules: bool = False

    @classmethod
    def load(cls, path: Path) -> ProjectSpec:
        """Load *path*; a missing file yields an empty project."""
        path = Path(path)
        if not path.exists():
            return cls()
        with path.open("rb") as fh:
            data: dict[str, Any] = tomllib.load(fh)
        return cls.model_validate(data)


class BuildConfig(BaseModel):
    """Fully resolved configuration for one build run.

    Use :meth:`resolve` to derive the directory layout from a working
    directory; every path is absolute afterwards.
    """

    model_config = ConfigDict(frozen=True)

    wd: Path
    assets_dir: Path
    build_dir: Path
    cache_dir: Path
    dist_dir: Path
    node_modules: Path
    node_modules_bin: Path

    workers: int
    trans_func_name: str = "T"
    pack_manifest: str = "manifest.json"
    asset_listing: str = "assets.lst"
    invert_manifest: bool = False
    in_memory: bool = False
    verbose: bool = False
    tool_timeout: float | None = None
    node_bin_dir: Path | None = None
    yarn_bin: str = "yarn"
    sync_deps: bool = False

    project: ProjectSpec = ProjectSpec()

    @classmethod
    def resolve(
        cls,
        wd: Path,
        settings: Settings | None = None,
        **overrides: Any,
    ) -> BuildConfig:
        """Build a config rooted at *wd*.

        Unset directories default to ``<wd>/assets``, ``<wd>/build``,
        ``<wd>/.cache``, ``<assets>/dist``, ``<cache>/node_modules`` and
        ``<node_modules>/.bin``.  *overrides* win over *settings*; ``None``
        overrides are ignored.
        """
        settings = settings or Settings()
        opts = {k: v for k, v in overrides.items() if v is not None}
        wd = Path(wd).resolve()

        def _path(key: str, default: Path) -> Path:
            value = opts.pop(key, None)
            return (wd / value).resolve() if value is not None else default

        assets_dir = _path("assets_dir", wd / "assets")
        build_dir = _path("build_dir", wd / "build")
        cache_dir = _path("cache_dir", wd / ".cache")
        dist_dir = _path("dist_dir", assets_dir / "dist")
        node_modules = _path("node_modules", cache_dir / "node_modules")
        node_modules_bin = _path("node_modules_bin", node_modules / ".bin")

        project = opts.pop("project", None)
        if project is None:
            project = ProjectSpec.load(assets_dir / PROJECT_FILE)

        values: dict[str, Any] = {
            "workers": settings.workers,
            "trans_func_name": settings.trans_func_name,
            "pack_manifest": settings.pack_manifest,
            "asset_listing": settings.asset_listing,
            "invert_manifest": settings.invert_manifest,
            "in_memory": settings.in_memory,
            "verbose": settings.verbose,
            "tool_timeout": settings.tool_timeout,
            "node_bin_dir": settings.node_bin_dir,
            "yarn_bin": settings.yarn_bin,
            "sync_deps": settings.sync_deps,
        }
        values.update(opts)
        return cls(
            wd=wd,
            assets_dir=assets_dir,
            build_dir=build_dir,
            cache_dir=cache_dir,
            dist_dir=dist_dir,
            node_modules=node_modules,
            node_modules_bin=node_modules_bin,
            project=project,
            **values,
        )

    def validate_for_build(self) -> None:
        """Reject configurations that must not reach the build.

        Raises
        ------
        ConfigurationError
            On an invalid worker count, translation function name, or
            directory layout.
        """
        if self.workers < 1:
            raise ConfigurationError("workers must be at least 1")
        if not is_valid_identifier(self.trans_func_name):
            raise ConfigurationError(f"invalid trans func name {self.trans_func_name!r}")
        if not self.wd.is_dir():
            raise ConfigurationError(f"cannot read from working directory {str(self.wd)!r}")
        for label, path in (("node_modules", self.node_modules), ("assets", self.assets_dir)):
            if not _is_within(path, self.wd):
                raise ConfigurationError(f"{label} path must be subdirectory of working directory")
        if not _is_within(self.dist_dir, self.wd) or self.dist_dir == self.wd:
            raise ConfigurationError("dist path must be subdirectory of working directory")
        for label, path in (("assets", self.assets_dir), ("build", self.build_dir), ("cache", self.cache_dir)):
            if _is_within(path, self.dist_dir):
                raise ConfigurationError(f"dist path must not contain the {label} directory")

    @property
    def dist_prefix(self) -> str:
        """Dist directory relative to the assets directory, posix style."""
        try:
            return self.dist_dir.relative_to(self.assets_dir).as_posix()
        except ValueError:
            return self.dist_dir.as_posix()


def is_valid_identifier(name: str) -> bool:
    """``True`` if *name* starts with a letter and continues with word characters."""
    return bool(_IDENTIFIER_RE.match(name))


def _is_within(path: Path, parent: Path) -> bool:
    return Path(path).resolve().is_relative_to(Path(parent).resolve())
