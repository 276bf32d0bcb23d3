"""
ThemeForge Renderer -- Determinism Tests

Same input -> byte-identical output, at every stage: single blocks, the
compiled artifact set, and the exported archive.
"""

import pytest

from themeforge.kernel.blocks import BLOCK_TYPES
from themeforge.kernel.compiler import compile_theme
from themeforge.kernel.renderer import render_block
from themeforge.kernel.stylesheet import generate_stylesheet
from themeforge.kernel.tokens import ThemeSettings
from themeforge.kernel.types import Block

from themeforge.kernel.tests.factories import build_theme

RICH_PROPS = {
    "title": "Title",
    "subtitle": "Sub",
    "features": [{"title": "A"}, {"title": "B"}],
    "plans": [{"name": "Basic", "price": 9.5, "features": ["x", "y"]}],
    "tabs": [{"label": "One", "content": "1"}, {"label": "Two", "content": "2"}],
    "items": [{"title": "Q", "content": "A", "date": "2024"}],
}


class TestBlockDeterminism:
    @pytest.mark.parametrize("block_type", sorted(BLOCK_TYPES) + ["unknown-future-block"])
    def test_render_twice_is_identical(self, block_type):
        settings = ThemeSettings.from_dict({"colors": {"primary": "#0ea5e9"}})
        block = Block(id="b1", type=block_type, page_id="p1", props=dict(RICH_PROPS))
        assert render_block(block, settings) == render_block(block, settings)

    def test_render_does_not_mutate_props(self):
        props = {"features": [{"title": "A"}], "columns": "bad"}
        block = Block(id="b1", type="features", page_id="p1", props=props)
        render_block(block)
        assert props == {"features": [{"title": "A"}], "columns": "bad"}


class TestCompileDeterminism:
    def test_compile_twice_is_byte_identical(self):
        first = compile_theme(build_theme())
        second = compile_theme(build_theme())
        assert first.files == second.files
        assert first.manifest == second.manifest

    def test_file_order_is_sorted(self):
        compiled = compile_theme(build_theme())
        assert compiled.paths() == sorted(compiled.paths())

    def test_stylesheet_is_stable(self):
        settings = ThemeSettings.from_dict({"components": {"buttons": {"borderRadius": 4}}})
        assert generate_stylesheet(settings, "a{}") == generate_stylesheet(settings, "a{}")

    @pytest.mark.asyncio
    async def test_export_twice_is_byte_identical(self, packager):
        first = await packager.export(build_theme())
        second = await packager.export(build_theme())
        assert first == second
