"""Tests for TemplateSet — packaged templates and placeholder rendering."""

from __future__ import annotations

import pytest

from assetforge.core.templates import TemplateNotFoundError, TemplateSet
from assetforge.errors import AssetforgeError


class TestTemplateSet:
    def test_packaged_templates_loaded(self):
        names = TemplateSet().names
        for expected in ("sass.js", "_assetgen.scss", "package.json", "gitignore", "tailwind.config.js"):
            assert expected in names
        assert "__init__.py" not in names

    def test_render_fills_placeholders(self):
        ts = TemplateSet({"greeting": "hello ${name}, $unknown"})
        assert ts.render("greeting", name="world") == "hello world, $unknown"

    def test_render_without_values_is_verbatim(self):
        ts = TemplateSet()
        assert ts.render("_assetgen.scss") == ts.source("_assetgen.scss")
        assert "$" in ts.render("_assetgen.scss")

    def test_sass_bridge_reads_socket_env(self):
        assert "ASSETFORGE_SOCK" in TemplateSet().source("sass.js")

    def test_unknown_template(self):
        with pytest.raises(TemplateNotFoundError):
            TemplateSet({}).source("missing")

    def test_unknown_template_is_an_assetforge_error(self):
        with pytest.raises(AssetforgeError, match="could not load template: missing"):
            TemplateSet({}).source("missing")
        with pytest.raises(LookupError):
            TemplateSet({}).source("missing")

    def test_sets_are_independent(self):
        a = TemplateSet({"x": "1"})
        b = TemplateSet({"x": "2"})
        assert a.source("x") != b.source("x")
