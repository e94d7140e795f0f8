"""Build driver: one run of the asset pipeline.

The :class:`AssetBuilder` wires together the configuration, the tool
runner, the steps discovered for the project, the
:class:`~assetforge.core.executor.StepExecutor` and the
:class:`~assetforge.core.manifest.ManifestBuilder`:

    validate config -> discover steps -> setup files -> sync node deps
        -> run steps in order -> finalize manifest and listing

Configuration errors surface from the constructor, before any file is
written.  The first failing step aborts the run; output already packed is
left in place.
"""

from __future__ import annotations

import json
import logging
import shutil
from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from assetforge.core.executor import StepExecutor, StepFunc
from assetforge.core.manifest import Manifest, ManifestBuilder
from assetforge.core.packer import Packer
from assetforge.core.store import DirectoryStore, MemoryStore
from assetforge.core.templates import TemplateSet
from assetforge.core.tools import ToolRunner
from assetforge.errors import ConfigurationError
from assetforge.models.config import BuildConfig
from assetforge.models.steps import StepRecord
from assetforge.steps import DIRECTORY_STEPS, BaseStep, BuildContext, JsStep, StaticDirStep

logger = logging.getLogger(__name__)

YARN_ADD_ARGS = ("add", "--no-progress", "--silent", "--no-bin-links")


class BuildResult(BaseModel):
    """Outcome of a successful build."""

    model_config = ConfigDict(frozen=True)

    manifest: Manifest
    records: list[StepRecord]
    listing_path: Path
    dist_dir: Path | None = None  # None for in-memory bundles


class AssetBuilder:
    """Runs the pipeline for one project.

    Parameters
    ----------
    config:
        Resolved build configuration; validated on construction.
    templates:
        Generated-file templates.  Defaults to the packaged set.
    tools:
        Tool runner.  Defaults to one rooted at the working directory with
        the project's node toolchain on ``PATH`` and ``NODE_PATH``.
    extra_steps:
        ``(name, fn)`` pairs registered after the discovered steps.
    """

    def __init__(
        self,
        config: BuildConfig,
        *,
        templates: TemplateSet | None = None,
        tools: ToolRunner | None = None,
        extra_steps: Sequence[tuple[str, StepFunc]] = (),
    ) -> None:
        config.validate_for_build()
        self.config = config
        self.templates = templates or TemplateSet()
        self.tools = tools or default_tools(config)
        self.ctx = BuildContext(config, self.tools, self.templates)
        self.steps: list[BaseStep] = self.discover_steps()
        self.executor = StepExecutor()
        for step in self.steps:
            self.executor.register(step.name, step.run_step)
        for name, fn in extra_steps:
            self.executor.register(name, fn)
        self.packer: Packer | None = None

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover_steps(self) -> list[BaseStep]:
        """Steps for this project, in execution order.

        Raises
        ------
        ConfigurationError
            On an invalid static dir name or an asset path that is not a
            directory.
        """
        project = self.config.project
        steps: list[BaseStep] = [StaticDirStep(self.ctx, d) for d in project.static_dirs]
        steps.extend(JsStep(self.ctx, bundle) for bundle in project.js)
        for step_cls in DIRECTORY_STEPS:
            step = step_cls(self.ctx)
            path = self.ctx.asset_dir(step.name)
            if not path.exists():
                continue
            if not path.is_dir():
                raise ConfigurationError(f"path {str(path)!r} must be a directory")
            steps.append(step)
        return steps

    def node_deps(self) -> list[str]:
        """Node packages required by the discovered steps, first use first."""
        seen: dict[str, None] = {}
        for step in self.steps:
            for dep in step.node_deps:
                seen.setdefault(dep, None)
        return list(seen)

    # ------------------------------------------------------------------
    # Project setup
    # ------------------------------------------------------------------

    def setup_files(self) -> None:
        """Create working directories and default project files.

        Existing files are never overwritten.
        """
        cfg = self.config
        for path in (cfg.assets_dir, cfg.build_dir, cfg.cache_dir):
            path.mkdir(parents=True, exist_ok=True)
        cache_list = ",".join(
            f"\n    {json.dumps(d)}"
            for d in cache_dirs(cfg.wd, cfg.cache_dir, cfg.node_modules, cfg.node_modules_bin)
        )
        app = cfg.wd.name
        write_cond(
            cfg.wd / "package.json",
            self.templates.render(
                "package.json", name=app, description=f"{app} app", cache_dirs=cache_list
            ),
        )
        write_cond(cfg.assets_dir / ".gitignore", self.templates.render("gitignore"))

    def sync_node_deps(self) -> list[str]:
        """``yarn add`` every required package missing from package.json.

        Returns the packages that were added.
        """
        package_json = self.config.wd / "package.json"
        try:
            declared = json.loads(package_json.read_text(encoding="utf-8")).get("dependencies") or {}
        except ValueError as exc:
            raise ConfigurationError(f"invalid package.json: {exc}") from exc

        missing = [d for d in self.node_deps() if _package_name(d) not in declared]
        if not missing:
            logger.debug("node dependencies up to date")
            return []
        logger.info("adding node dependencies: %s", ", ".join(missing))
        self.tools.run(
            self.config.yarn_bin,
            *YARN_ADD_ARGS,
            f"--modules-folder={self.config.node_modules}",
            *missing,
        )
        return missing

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def make_packer(self) -> Packer:
        """A packer over a fresh bundle.

        On-disk bundles start from an emptied dist directory.
        """
        if self.config.in_memory:
            return Packer(MemoryStore(), manifest_name=self.config.pack_manifest)
        dist = self.config.dist_dir
        if dist.exists():
            logger.debug("clearing %s", dist)
            shutil.rmtree(dist)
        return Packer(DirectoryStore(dist), manifest_name=self.config.pack_manifest)

    def build(self) -> BuildResult:
        """Run every step and write the manifest and asset listing.

        Raises
        ------
        StepExecutionError
            Wrapping the first step failure.
        """
        cfg = self.config
        logger.info("building %s with %d workers", cfg.wd, cfg.workers)
        self.setup_files()
        if cfg.sync_deps:
            self.sync_node_deps()

        self.packer = self.make_packer()
        records = self.executor.run(self.packer)

        finalizer = ManifestBuilder(dist_prefix=cfg.dist_prefix, listing_name=cfg.asset_listing)
        manifest = finalizer.finalize(self.packer, cfg.assets_dir, inverted=cfg.invert_manifest)
        return BuildResult(
            manifest=manifest,
            records=records,
            listing_path=cfg.assets_dir / cfg.asset_listing,
            dist_dir=None if cfg.in_memory else cfg.dist_dir,
        )

    def __repr__(self) -> str:
        return f"AssetBuilder(wd={str(self.config.wd)!r}, steps={self.executor.step_names})"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def default_tools(config: BuildConfig) -> ToolRunner:
    """Tool runner with the project's node toolchain on the search paths."""
    runner = ToolRunner(config.wd, timeout=config.tool_timeout, verbose=config.verbose)
    dirs = [config.node_modules_bin]
    if config.node_bin_dir is not None:
        dirs.append(config.node_bin_dir)
    return runner.with_path(*dirs).with_env(NODE_PATH=str(config.node_modules))


def cache_dirs(wd: Path, *paths: Path) -> list[str]:
    """Paths relative to *wd* worth caching between CI runs.

    Paths outside *wd*, and paths inside another listed path, are dropped.
    """
    inside = [p for p in paths if p.is_relative_to(wd) and p != wd]
    keep = [
        p for p in inside
        if not any(q != p and p.is_relative_to(q) for q in inside)
    ]
    return sorted({p.relative_to(wd).as_posix() for p in keep})


def write_cond(path: Path, contents: str) -> bool:
    """Write *contents* to *path* unless it already exists.

    Returns ``True`` if the file was written.  The file always ends with a
    single newline.
    """
    if path.is_dir():
        raise IsADirectoryError(f"{path} must not be a directory")
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents.rstrip("\n") + "\n", encoding="utf-8")
    logger.info("created %s", path)
    return True


def _package_name(dep: str) -> str:
    at = dep.find("@", 1)
    return dep[:at] if at != -1 else dep
