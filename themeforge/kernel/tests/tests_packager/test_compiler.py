"""
ThemeForge Compiler -- Artifact Set and Manifest

compile_theme() yields the full file layout plus a manifest listing page
templates, system templates, partials, stylesheet, scripts and preview.
"""

import json

import pytest

from themeforge.kernel.compiler import EXPORT_FORMAT, MANIFEST_PATH, PREVIEW_PATH, STYLESHEET_PATH, compile_theme
from themeforge.kernel.errors import ValidationError
from themeforge.kernel.types import Block, Page, Theme

from themeforge.kernel.tests.factories import HOME_PAGE_ID, build_theme


def single_page_theme() -> Theme:
    theme = build_theme()
    theme.pages = [theme.pages[0]]
    return theme


class TestArtifactSet:
    def test_single_page_manifest(self):
        compiled = compile_theme(single_page_theme())
        assert compiled.slug == "aurora"
        assert compiled.manifest["templates"] == ["home"]
        assert compiled.manifest["systemTemplates"] == ["login", "register", "cart", "checkout"]
        assert compiled.manifest["partials"] == ["header", "footer"]
        assert compiled.manifest["stylesheet"] == STYLESHEET_PATH
        assert compiled.manifest["preview"] == PREVIEW_PATH

    def test_stylesheet_carries_primary_color(self):
        compiled = compile_theme(single_page_theme())
        assert "--color-primary: #123456" in compiled.text(STYLESHEET_PATH)

    def test_file_layout(self):
        paths = set(compile_theme(build_theme()).paths())
        assert {
            MANIFEST_PATH,
            STYLESHEET_PATH,
            PREVIEW_PATH,
            "partials/header.mustache",
            "partials/footer.mustache",
            "templates/home.mustache",
            "templates/page-about.mustache",
            "templates/login.mustache",
            "templates/register.mustache",
            "templates/cart.mustache",
            "templates/checkout.mustache",
            "assets/js/main.js",
            "assets/js/cart.js",
            "assets/js/auth.js",
            "assets/js/checkout.js",
        } <= paths

    def test_manifest_file_matches_manifest(self):
        compiled = compile_theme(build_theme())
        assert json.loads(compiled.text(MANIFEST_PATH)) == compiled.manifest

    def test_manifest_settings_are_complete(self):
        settings = compile_theme(build_theme()).manifest["settings"]
        assert settings["colors"]["primary"] == "#123456"
        assert "typography" in settings
        assert "layout" in settings

    def test_version_and_author_overrides(self):
        manifest = compile_theme(build_theme(), version="2.1.0", author="Someone Else").manifest
        assert manifest["version"] == "2.1.0"
        assert manifest["author"] == "Someone Else"

    def test_export_manifest_is_self_sufficient(self):
        theme = build_theme()
        theme.custom_css = ".hero { color: red; }"
        manifest = compile_theme(theme, for_export=True).manifest
        assert manifest["format"] == EXPORT_FORMAT
        assert manifest["customCss"] == ".hero { color: red; }"
        assert [page["slug"] for page in manifest["pages"]] == ["home", "about"]

    def test_preview_uses_theme_colors(self):
        svg = compile_theme(build_theme()).text(PREVIEW_PATH)
        assert svg.startswith("<svg")
        assert "#123456" in svg
        assert "Aurora" in svg

    def test_unknown_blocks_do_not_fail_compilation(self):
        theme = build_theme(home_blocks=[Block(id="x", type="hologram", page_id=HOME_PAGE_ID)])
        assert "tf-unknown-block" in compile_theme(theme).text("templates/home.mustache")


class TestValidation:
    def test_missing_name(self):
        theme = build_theme()
        theme.name = "  "
        with pytest.raises(ValidationError):
            compile_theme(theme)

    def test_duplicate_page_slugs(self):
        theme = build_theme()
        theme.pages.append(Page(id="dup", name="About again", slug="about"))
        with pytest.raises(ValidationError):
            compile_theme(theme)

    @pytest.mark.parametrize("slug", ["../../escape", "a/b", "About", "shop-"])
    def test_page_slug_must_be_slug_form(self, slug):
        theme = build_theme()
        theme.pages[1].slug = slug
        with pytest.raises(ValidationError):
            theme.validate()

    @pytest.mark.asyncio
    async def test_path_like_page_slug_rejected_before_export(self, packager):
        theme = build_theme()
        theme.pages[1].slug = "../../escape"
        with pytest.raises(ValidationError):
            await packager.export(theme)

    def test_two_home_pages(self):
        theme = build_theme()
        theme.pages[1].is_home_page = True
        with pytest.raises(ValidationError):
            compile_theme(theme)

    def test_dangling_parent(self):
        theme = build_theme(home_blocks=[Block(id="c", type="text", page_id=HOME_PAGE_ID, parent_id="ghost")])
        with pytest.raises(ValidationError):
            compile_theme(theme)

    def test_name_without_slug_characters(self):
        with pytest.raises(ValidationError):
            compile_theme(build_theme(name="***"))
