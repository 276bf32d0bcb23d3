"""
ThemeForge Templating -- Render-Time Resolution

Compiled templates resolved against a page context: loops over listings,
else-branches for empty listings, auth-aware sections, partial includes.
"""

import pytest

from themeforge.kernel.compiler import compile_theme
from themeforge.kernel.errors import NotFoundError
from themeforge.kernel.templating import build_page_context, render_page, render_template
from themeforge.kernel.types import Block

from themeforge.kernel.tests.factories import HOME_PAGE_ID, build_theme


def compiled_with_blocks(blocks):
    return compile_theme(build_theme(home_blocks=blocks))


class TestRenderPage:
    def test_products_loop(self):
        compiled = compiled_with_blocks([Block(id="g", type="productGrid", page_id=HOME_PAGE_ID)])
        context = build_page_context(
            site={"name": "Acme"},
            listings={"products": [{"id": "p1", "name": "Lamp", "slug": "lamp", "price": "25.00"}]},
            year=2026,
        )
        html = render_page(compiled, "home", context)
        assert "Lamp" in html
        assert 'data-product-id="p1"' in html
        assert "No products available yet." not in html

    def test_empty_listing_uses_else_branch(self):
        compiled = compiled_with_blocks([Block(id="g", type="productGrid", page_id=HOME_PAGE_ID)])
        html = render_page(compiled, "home", build_page_context(site={"name": "Acme"}, year=2026))
        assert "No products available yet." in html

    def test_header_and_footer_resolved(self):
        compiled = compile_theme(build_theme())
        context = build_page_context(
            site={"name": "Acme"},
            menus={"primary": [{"title": "Shop", "url": "/shop"}]},
            year=2031,
        )
        html = render_page(compiled, "home", context)
        assert html.startswith("<!DOCTYPE html>")
        assert '<a href="/shop" class="nav-link">Shop</a>' in html
        assert "&copy; 2031 Acme" in html
        assert "{{" not in html

    def test_user_sections(self):
        compiled = compile_theme(build_theme())
        anonymous = render_page(compiled, "home", build_page_context(year=2026))
        signed_in = render_page(compiled, "home", build_page_context(user={"name": "Ada"}, year=2026))
        assert "Log in" in anonymous
        assert "Ada" in signed_in
        assert "Log out" in signed_in

    def test_prop_braces_survive_as_text(self):
        compiled = compiled_with_blocks(
            [Block(id="t", type="text", page_id=HOME_PAGE_ID, props={"content": "{{user.name}}"})]
        )
        html = render_page(compiled, "home", build_page_context(user={"name": "Secret"}, year=2026))
        assert "&#123;&#123;user.name&#125;&#125;" in html

    def test_system_template(self):
        compiled = compile_theme(build_theme())
        html = render_page(compiled, "checkout", build_page_context(page={"template": "checkout"}, year=2026))
        assert "js/checkout.js" in html

    def test_unknown_template(self):
        with pytest.raises(NotFoundError):
            render_page(compile_theme(build_theme()), "page-missing", build_page_context())


class TestPageContext:
    def test_defaults(self):
        context = build_page_context(year=2026)
        assert context["products"] == []
        assert context["featuredProduct"] is None
        assert context["isLoggedIn"] is False
        assert context["cart"]["count"] == 0

    def test_cart_count_from_items(self):
        context = build_page_context(cart={"items": [{"quantity": 2}, {"quantity": 1}]})
        assert context["cart"]["count"] == 3

    def test_render_template_with_partials(self):
        out = render_template("{{> hello}}!", {"name": "World"}, {"hello": "Hello {{name}}"})
        assert out == "Hello World!"
