"""Generated-file templates owned by one build.

Templates ship as package data under :mod:`assetforge.templates`.  A
:class:`TemplateSet` is constructed by the builder at startup and handed
to whichever step needs it; nothing is loaded at import time.
"""

from __future__ import annotations

import string
from importlib import resources

from assetforge.errors import AssetforgeError

TEMPLATE_PACKAGE = "assetforge.templates"


class TemplateNotFoundError(AssetforgeError, LookupError):
    """Raised when a template name is not part of the set."""


class TemplateSet:
    """Named text templates with ``$name`` placeholders.

    Parameters
    ----------
    templates:
        Mapping of template name to source text.  When omitted, every
        non-Python file of :data:`TEMPLATE_PACKAGE` is loaded.
    """

    def __init__(self, templates: dict[str, str] | None = None) -> None:
        self._templates = dict(templates) if templates is not None else _load_package()

    @property
    def names(self) -> list[str]:
        return sorted(self._templates)

    def source(self, name: str) -> str:
        try:
            return self._templates[name]
        except KeyError:
            raise TemplateNotFoundError(f"could not load template: {name}") from None

    def render(self, name: str, **values: str) -> str:
        """Return template *name* with ``$key`` placeholders filled.

        Without *values* the source is returned verbatim, so templates
        containing ``$`` (SCSS variables) are safe to emit unchanged.
        """
        src = self.source(name)
        if not values:
            return src
        return string.Template(src).safe_substitute(values)


def _load_package() -> dict[str, str]:
    loaded: dict[str, str] = {}
    for entry in resources.files(TEMPLATE_PACKAGE).iterdir():
        if entry.is_file() and not entry.name.endswith((".py", ".pyc")):
            loaded[entry.name] = entry.read_text(encoding="utf-8")
    return loaded
