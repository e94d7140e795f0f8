"""Compile, post-process and minify stylesheets.

Each top-level, non-partial ``.scss`` file in ``assets/sass`` goes through
``node-sass`` (with custom functions served by the IPC bridge), then
``tailwindcss-cli`` and ``cleancss``.  Preserved ``/*! ... */`` comments are
stripped from the result before it is packed under ``/css/``.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from assetforge.bridge.callbacks import AssetResolver
from assetforge.bridge.ipc import IpcServer
from assetforge.core.manifest import write_json
from assetforge.core.packer import Packer
from assetforge.core.tools import ToolRunner
from assetforge.core.walker import walk_files
from assetforge.steps.base import BaseStep

logger = logging.getLogger(__name__)

SASS_DIR = "sass"
CSS_DIR = "css"
SUPPORT_DIR = "assetforge"
SASS_JS = "sass.js"
ASSETGEN_SCSS = "_assetgen.scss"
TAILWIND_CONFIG = "tailwind.config.js"

STRIP_COMMENTS_RE = re.compile(rb"/\*!.*?\*/", re.DOTALL)


class SassStep(BaseStep):
    name = SASS_DIR
    executables = ("node-sass", "tailwindcss-cli", "cleancss")
    node_deps = (
        "autoprefixer",
        "clean-css-cli",
        "deasync",
        "node-sass",
        "tailwindcss",
    )

    def execute(self, packer: Packer) -> None:
        sources = [
            path
            for rel, path in walk_files(self.ctx.asset_dir(SASS_DIR), recursive=False)
            if path.suffix == ".scss" and not path.name.startswith("_")
        ]
        self._write_support_files(packer)
        if not sources:
            return

        resolver = AssetResolver(packer)
        with IpcServer(resolver.callbacks()) as server:
            tools = self.ctx.tools.with_env(**server.env())
            for source in sources:
                self._compile(tools, packer, source)

    def _write_support_files(self, packer: Packer) -> None:
        ctx = self.ctx
        ctx.build_path(SASS_JS).write_text(ctx.templates.render(SASS_JS), encoding="utf-8")
        ctx.build_path(SUPPORT_DIR, ASSETGEN_SCSS).write_text(
            ctx.templates.render(ASSETGEN_SCSS), encoding="utf-8"
        )
        tailwind = ctx.asset_dir(SASS_DIR) / TAILWIND_CONFIG
        if not tailwind.exists():
            templates_dir = ctx.asset_dir("templates").relative_to(self.config.wd).as_posix()
            tailwind.write_text(
                ctx.templates.render(TAILWIND_CONFIG, templates_dir=templates_dir),
                encoding="utf-8",
            )
            logger.info("created %s", tailwind)
        # interim manifest, for inspecting what the bridge resolves against
        write_json(ctx.build_path("manifest.json"), packer.manifest())

    def sass_args(self, source: Path) -> list[str]:
        build = self.config.build_dir
        args = [
            "--quiet",
            "--source-comments",
            "--source-map-embed",
            f"--functions={build / SASS_JS}",
            f"--output={build / CSS_DIR}",
            f"--include-path={build / SUPPORT_DIR}",
        ]
        for include in self.include_paths():
            args.append(f"--include-path={include}")
        args.append(str(source))
        return args

    def include_paths(self) -> list[Path]:
        project = self.config.project
        paths = [self.config.node_modules / p for p in project.sass_includes]
        if project.sass_include_node_modules:
            paths.append(self.config.node_modules)
        return paths

    def _compile(self, tools: ToolRunner, packer: Packer, source: Path) -> None:
        stem = source.stem
        css_dir = self.config.build_dir / CSS_DIR
        css_dir.mkdir(parents=True, exist_ok=True)
        compiled = css_dir / f"{stem}.css"
        tailwind_css = css_dir / f"{stem}.tailwind.css"
        clean_css = css_dir / f"{stem}.cleancss.css"
        final_css = css_dir / f"{stem}.final.css"

        tools.run("node-sass", *self.sass_args(source))
        tools.run("tailwindcss-cli", "build", str(compiled), "-o", str(tailwind_css))
        tools.run_silent(
            "cleancss",
            "-O1", "specialComments:0",
            "-O2",
            "--inline", "all",
            "--source-map",
            f"--output={clean_css}",
            str(tailwind_css),
        )
        final_css.write_bytes(strip_special_comments(clean_css.read_bytes()))
        packer.pack_file(f"{CSS_DIR}/{stem}.css", final_css)


def strip_special_comments(css: bytes) -> bytes:
    """Remove ``/*! ... */`` comments that minifiers preserve."""
    return STRIP_COMMENTS_RE.sub(b"", css)
