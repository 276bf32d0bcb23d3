"""
ThemeForge Kernel - Template Language

Compiled templates use Mustache, rendered with chevron. The directive set is
deliberately small:

  {{name}} / {{a.b}}            escaped value
  {{#name}}...{{/name}}         iteration over a list, or truthy section
  {{^name}}...{{/name}}         else-branch (falsy / empty list)
  {{> header}}                  shared partial

Compiled templates carry no logic beyond that. Everything dynamic comes from
the page context built by build_page_context().
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import chevron

from themeforge.kernel.errors import NotFoundError
from themeforge.kernel.types import ArtifactSet

LISTING_KEYS: tuple[str, ...] = ("products", "featuredProducts", "featuredProduct", "courses")


def template_path(name: str) -> str:
    return f"templates/{name}.mustache"


def partial_path(name: str) -> str:
    return f"partials/{name}.mustache"


def load_partials(artifacts: ArtifactSet) -> dict[str, str]:
    """{partial name: source} for every partial in the artifact set."""
    partials: dict[str, str] = {}
    for path in artifacts.paths():
        if path.startswith("partials/") and path.endswith(".mustache"):
            name = path[len("partials/") : -len(".mustache")]
            partials[name] = artifacts.text(path)
    return partials


def render_template(source: str, context: dict[str, Any], partials: dict[str, str] | None = None) -> str:
    return chevron.render(source, context, partials_dict=partials or {})


def render_page(artifacts: ArtifactSet, template_name: str, context: dict[str, Any]) -> str:
    """Resolve one compiled template (page or system) against a page context."""
    path = template_path(template_name)
    if path not in artifacts.files:
        raise NotFoundError(f"Template {template_name!r} not found in theme {artifacts.slug!r}")
    return render_template(artifacts.text(path), context, load_partials(artifacts))


def build_page_context(
    site: dict[str, Any] | None = None,
    menus: dict[str, list[dict[str, Any]]] | None = None,
    user: dict[str, Any] | None = None,
    listings: dict[str, Any] | None = None,
    year: int | None = None,
    *,
    cart: dict[str, Any] | None = None,
    page: dict[str, Any] | None = None,
    assets_url: str = "/assets",
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build the render-time context a compiled template expects.

    site     {"name", "description", "logo", ...}  site settings
    menus    {"primary": [{"title", "url"}], "footer": [...], "sidebar": [...]}
    user     logged-in user or None (drives the {{#user}} / {{^user}} sections)
    listings {"products": [...], "featuredProducts": [...], "courses": [...],
              "featuredProduct": {...}} already limited by the caller
    """
    listings = listings or {}
    cart = dict(cart or {})
    cart.setdefault("items", [])
    cart.setdefault("count", sum(int(item.get("quantity", 1)) for item in cart["items"]))
    context: dict[str, Any] = {
        "site": {"name": "", **(site or {})},
        "menus": {"primary": [], "footer": [], "sidebar": [], **(menus or {})},
        "user": user or None,
        "isLoggedIn": bool(user),
        "year": year if year is not None else datetime.now(UTC).year,
        "cart": cart,
        "page": page or {},
        "assetsUrl": assets_url.rstrip("/"),
        "isCheckout": bool(page and page.get("template") == "checkout"),
    }
    for key in LISTING_KEYS:
        default: Any = None if key == "featuredProduct" else []
        context[key] = listings.get(key, default)
    if extra:
        context.update(extra)
    return context
