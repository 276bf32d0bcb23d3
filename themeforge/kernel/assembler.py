"""
ThemeForge Kernel - Template Assembler

Turns each Page into one full page template:

    {{> header}}
    <main> rendered top-level blocks, children inlined under their parent </main>
    {{> footer}}

Also owns the shared header/footer partials and the fixed system templates
(login, register, cart, checkout), which are composed from a small static
block set and are identical for every theme apart from design tokens.

Pure. No IO.
"""

from __future__ import annotations

from themeforge.kernel.renderer import escape, render_block
from themeforge.kernel.tokens import ThemeSettings
from themeforge.kernel.types import Block, Page, sorted_blocks

HOME_TEMPLATE = "home"
SYSTEM_TEMPLATES: tuple[str, ...] = ("login", "register", "cart", "checkout")
PARTIALS: tuple[str, ...] = ("header", "footer")


def page_template_name(page: Page) -> str:
    """Home page always maps to `home`; every other page to `page-<slug>`."""
    if page.is_home_page:
        return HOME_TEMPLATE
    return f"page-{page.slug}"


# ---------------------------------------------------------------------------
# Block tree
# ---------------------------------------------------------------------------


def render_tree(blocks: list[Block], settings: ThemeSettings) -> str:
    """
    Render a page's blocks in order, recursing through parent_id.
    Blocks whose parent is missing are not reachable and are not rendered.
    """
    by_parent: dict[str | None, list[Block]] = {}
    for block in blocks:
        by_parent.setdefault(block.parent_id, []).append(block)

    def render_scope(parent_id: str | None, seen: frozenset[str]) -> list[str]:
        out: list[str] = []
        for block in sorted_blocks(by_parent.get(parent_id, [])):
            if block.id in seen:
                continue
            children = "\n".join(render_scope(block.id, seen | {block.id}))
            out.append(render_block(block, settings, children))
        return out

    return "\n".join(render_scope(None, frozenset()))


def default_blocks(page_id: str) -> list[Block]:
    """Built-in layout used when a page has no blocks: hero plus dynamic listings."""
    return [
        Block(
            id=f"{page_id}-default-hero",
            type="hero",
            page_id=page_id,
            order=0,
            props={"title": "Welcome", "subtitle": "Discover our products and courses", "ctaText": "Shop now", "ctaLink": "/shop"},
        ),
        Block(
            id=f"{page_id}-default-products",
            type="productGrid",
            page_id=page_id,
            order=1,
            props={"title": "Featured Products", "source": "featuredProducts", "limit": 8},
        ),
        Block(
            id=f"{page_id}-default-courses",
            type="courseGrid",
            page_id=page_id,
            order=2,
            props={"title": "Latest Courses", "limit": 6},
        ),
    ]


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


def _layout(settings: ThemeSettings, body: str, page_class: str) -> str:
    sidebar = settings.layout.sidebar_position
    parts = ["{{> header}}", f'<main class="site-main {page_class} layout-sidebar-{sidebar}">']
    if sidebar != "none":
        parts.append('<div class="layout-with-sidebar">')
        parts.append('<div class="layout-content">')
        parts.append(body)
        parts.append("</div>")
        parts.append('<aside class="layout-sidebar">{{#menus.sidebar}}<a href="{{url}}">{{title}}</a>{{/menus.sidebar}}</aside>')
        parts.append("</div>")
    else:
        parts.append(body)
    parts.append("</main>")
    parts.append("{{> footer}}")
    return "\n".join(parts) + "\n"


def assemble_page(page: Page, settings: ThemeSettings) -> str:
    blocks = page.blocks or default_blocks(page.id)
    body = render_tree(blocks, settings)
    return _layout(settings, body, f"page-{escape(page.slug)}")


def assemble_pages(pages: list[Page], settings: ThemeSettings) -> dict[str, str]:
    """{template_name: template} for every page, in page order."""
    return {page_template_name(page): assemble_page(page, settings) for page in pages}


# ---------------------------------------------------------------------------
# Partials
# ---------------------------------------------------------------------------


def render_header(settings: ThemeSettings) -> str:
    style = settings.layout.header_style
    return "\n".join(
        [
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            '  <meta charset="utf-8">',
            '  <meta name="viewport" content="width=device-width, initial-scale=1">',
            "  <title>{{#page.title}}{{page.title}} | {{/page.title}}{{site.name}}</title>",
            '  {{#site.description}}<meta name="description" content="{{site.description}}">{{/site.description}}',
            '  <link rel="stylesheet" href="{{assetsUrl}}/css/theme.css">',
            "</head>",
            "<body>",
            f'<header class="site-header header-{style}">',
            '  <div class="container site-header-inner">',
            '    <a href="/" class="site-logo">',
            '      {{#site.logo}}<img src="{{site.logo}}" alt="{{site.name}}">{{/site.logo}}',
            "      {{^site.logo}}{{site.name}}{{/site.logo}}",
            "    </a>",
            '    <button class="nav-toggle" aria-label="Menu" data-nav-toggle>&#9776;</button>',
            '    <nav class="site-nav" data-nav>',
            "      {{#menus.primary}}",
            '      <a href="{{url}}" class="nav-link">{{title}}</a>',
            "      {{/menus.primary}}",
            "    </nav>",
            '    <div class="site-actions">',
            '      <a href="/cart" class="cart-link">Cart <span class="cart-count" data-cart-count>{{cart.count}}</span></a>',
            "      {{#user}}",
            '      <a href="/account" class="nav-link">{{user.name}}</a>',
            '      <a href="/logout" class="btn btn-outline btn-sm" data-logout>Log out</a>',
            "      {{/user}}",
            "      {{^user}}",
            '      <a href="/login" class="nav-link">Log in</a>',
            '      <a href="/register" class="btn btn-primary btn-sm">Sign up</a>',
            "      {{/user}}",
            "    </div>",
            "  </div>",
            "</header>",
        ]
    ) + "\n"


def render_footer(settings: ThemeSettings) -> str:
    style = settings.layout.footer_style
    return "\n".join(
        [
            f'<footer class="site-footer footer-{style}">',
            '  <div class="container site-footer-inner">',
            '    <nav class="footer-nav">',
            "      {{#menus.footer}}",
            '      <a href="{{url}}">{{title}}</a>',
            "      {{/menus.footer}}",
            "    </nav>",
            '    <p class="copyright">&copy; {{year}} {{site.name}}. All rights reserved.</p>',
            "  </div>",
            "</footer>",
            '<script src="{{assetsUrl}}/js/main.js" defer></script>',
            '<script src="{{assetsUrl}}/js/cart.js" defer></script>',
            '<script src="{{assetsUrl}}/js/auth.js" defer></script>',
            '{{#isCheckout}}<script src="{{assetsUrl}}/js/checkout.js" defer></script>{{/isCheckout}}',
            "</body>",
            "</html>",
        ]
    ) + "\n"


def render_partials(settings: ThemeSettings) -> dict[str, str]:
    return {"header": render_header(settings), "footer": render_footer(settings)}


# ---------------------------------------------------------------------------
# System templates
# ---------------------------------------------------------------------------

_CART_BODY = """<section class="cart-page">
  <div class="container">
    <h1>Your Cart</h1>
    {{#cart.items}}
    <div class="cart-item" data-item-id="{{id}}">
      {{#image}}<img src="{{image}}" alt="{{name}}" class="cart-item-image">{{/image}}
      <div class="cart-item-info">
        <h3>{{name}}</h3>
        <p class="cart-item-price">${{price}}</p>
      </div>
      <input type="number" min="1" value="{{quantity}}" class="cart-item-quantity" data-quantity-for="{{id}}">
      <button class="btn btn-outline btn-sm" data-remove-item="{{id}}">Remove</button>
    </div>
    {{/cart.items}}
    {{^cart.items}}
    <p class="empty-state">Your cart is empty. <a href="/shop">Continue shopping</a></p>
    {{/cart.items}}
    {{#cart.total}}
    <div class="cart-summary">
      <p>Subtotal: <strong>${{cart.subtotal}}</strong></p>
      {{#cart.discount}}<p>Discount: -${{cart.discount}}</p>{{/cart.discount}}
      <p class="cart-total">Total: <strong>${{cart.total}}</strong></p>
      <a href="/checkout" class="btn btn-primary btn-lg">Proceed to Checkout</a>
    </div>
    {{/cart.total}}
  </div>
</section>"""

_CHECKOUT_BODY = """<section class="checkout-page">
  <div class="container grid grid-2">
    <form id="checkout-form" class="form" data-checkout>
      <h2>Billing details</h2>
      {{#error}}<div class="alert alert-error">{{error}}</div>{{/error}}
      <label>Full name<input type="text" name="name" value="{{user.name}}" required></label>
      <label>Email<input type="email" name="email" value="{{user.email}}" required></label>
      <label>Address<input type="text" name="address" required></label>
      <label>City<input type="text" name="city" required></label>
      <label>Postal code<input type="text" name="postalCode" required></label>
      <label>Coupon<input type="text" name="coupon" data-coupon></label>
      <button type="submit" class="btn btn-primary btn-lg">Place Order</button>
    </form>
    <aside class="order-summary card">
      <h2>Order summary</h2>
      {{#cart.items}}
      <div class="order-line"><span>{{name}} &times; {{quantity}}</span><span>${{lineTotal}}</span></div>
      {{/cart.items}}
      <p class="cart-total">Total: <strong data-checkout-total>${{cart.total}}</strong></p>
    </aside>
  </div>
</section>"""


def assemble_system_templates(settings: ThemeSettings) -> dict[str, str]:
    login = render_block(Block(id="system-login", type="loginForm", page_id="system"), settings)
    register = render_block(Block(id="system-register", type="registerForm", page_id="system"), settings)
    return {
        "login": _layout(settings, login, "page-login"),
        "register": _layout(settings, register, "page-register"),
        "cart": _layout(settings, _CART_BODY, "page-cart"),
        "checkout": _layout(settings, _CHECKOUT_BODY, "page-checkout"),
    }
