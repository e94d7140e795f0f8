"""Abstract build step and the context shared by every step of one build.

Every concrete step inherits from :class:`BaseStep` and implements only
``execute()``.  ``run_step()`` is the callable registered with the
:class:`~assetforge.core.executor.StepExecutor`; it is **not overridable**
and logs what the step added to the packer.
"""

from __future__ import annotations

import abc
import logging
from pathlib import Path
from typing import final

from assetforge.core.packer import Packer
from assetforge.core.templates import TemplateSet
from assetforge.core.tools import ToolRunner
from assetforge.core.worker_pool import WorkerPool
from assetforge.models.config import BuildConfig

logger = logging.getLogger(__name__)


class BuildContext:
    """Run-wide collaborators handed to each step.

    Parameters
    ----------
    config:
        Resolved build configuration.
    tools:
        Runner for external tools, already carrying ``PATH`` and
        ``NODE_PATH`` for the project's toolchain.
    templates:
        Generated-file templates owned by this build.
    """

    def __init__(self, config: BuildConfig, tools: ToolRunner, templates: TemplateSet) -> None:
        self.config = config
        self.tools = tools
        self.templates = templates

    def pool(self, name: str) -> WorkerPool:
        """A fresh worker pool sized by the configured worker count."""
        return WorkerPool(self.config.workers, name=name)

    def asset_dir(self, name: str) -> Path:
        return self.config.assets_dir / name

    def build_path(self, *parts: str) -> Path:
        """Path under the build directory; parent directories are created."""
        path = self.config.build_dir.joinpath(*parts)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path


class BaseStep(abc.ABC):
    """Abstract base for all build steps.

    Subclasses **must** implement:
        * ``name`` — unique step name (e.g. ``"images"``).
        * ``execute(packer)`` — the step's core logic.

    Subclasses **may** set ``node_deps`` to the node packages their tools
    need; the builder adds missing ones to the project before any step runs.
    ``executables`` names the external tools the step invokes.
    """

    node_deps: tuple[str, ...] = ()
    executables: tuple[str, ...] = ()

    def __init__(self, ctx: BuildContext) -> None:
        self.ctx = ctx

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Unique step name."""
        ...

    @abc.abstractmethod
    def execute(self, packer: Packer) -> None:
        """Read sources, transform them and pack the results."""
        ...

    @final
    def run_step(self, packer: Packer) -> None:
        """Run ``execute()`` and log the entries it packed.  **Do not override.**"""
        before = set(packer.names())
        self.execute(packer)
        added = sorted(set(packer.names()) - before)
        logger.debug("%s packed %d entries: %s", self.name, len(added), ", ".join(added))

    @property
    def config(self) -> BuildConfig:
        return self.ctx.config

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
