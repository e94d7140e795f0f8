"""Minify HTML templates."""

from __future__ import annotations

import re

from assetforge.core.packer import Packer
from assetforge.core.walker import walk_files
from assetforge.steps.base import BaseStep

TEMPLATES_DIR = "templates"
HTML_RE = re.compile(r"\.html$")

HTMLMIN_ARGS = (
    "--collapse-boolean-attributes",
    "--collapse-whitespace",
    "--remove-comments",
    "--remove-attribute-quotes",
    "--remove-script-type-attributes",
    "--remove-style-link-type-attributes",
    "--minify-css",
    "--minify-js",
    r"--ignore-custom-fragments=\{%[^%]+%\}",
    "--trim-custom-fragments",
)

_WHITESPACE_RE = re.compile(rb"\s+")


class TemplatesStep(BaseStep):
    """Minifies ``assets/templates/**.html`` and packs them under ``/templates/``.

    Whitespace inside translation calls (``T(`...`)``) is collapsed to single
    spaces so the translated strings match their catalogue keys.
    """

    name = TEMPLATES_DIR
    executables = ("html-minifier",)
    node_deps = ("html-minifier",)

    def execute(self, packer: Packer) -> None:
        fix = translation_fixer(self.config.trans_func_name)
        for rel, path in walk_files(self.ctx.asset_dir(TEMPLATES_DIR), pattern=HTML_RE):
            minified = self.ctx.tools.run_stdin("html-minifier", *HTMLMIN_ARGS, data=path.read_bytes())
            packer.pack(f"{TEMPLATES_DIR}/{rel}", fix(minified))


def translation_fixer(func_name: str):
    """Return a function collapsing whitespace inside ``<func_name>(`...`)`` calls."""
    call_re = re.compile(re.escape(func_name).encode("utf-8") + rb"\(`[^`]+`")

    def fix(data: bytes) -> bytes:
        return call_re.sub(lambda m: _WHITESPACE_RE.sub(b" ", m.group(0)), data)

    return fix
