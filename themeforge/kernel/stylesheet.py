"""
ThemeForge Kernel - Stylesheet Generator

generate_stylesheet(settings, custom_css) -> str

Layers, in source order:
  1. :root variables, one per design token, plus computed shadow levels
  2. component / dark-mode overrides (when present)
  3. fixed structural rules (reset, type scale, nav, buttons, cards, grids, blocks)
  4. one responsive breakpoint
  5. custom CSS, verbatim

User overrides win by source order only. No specificity arbitration.
Deterministic: same settings -> byte-identical stylesheet.
"""

from __future__ import annotations

import re
from typing import Any

from themeforge.kernel.tokens import ThemeSettings, to_camel, to_snake

BREAKPOINT_PX = 768

_UNSAFE_RE = re.compile(r"[;{}<>\\]")
_HEX_RE = re.compile(r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

_HEADING_SCALE: dict[str, float] = {"h1": 2.5, "h2": 2.0, "h3": 1.75, "h4": 1.5, "h5": 1.25, "h6": 1.0}


def _safe(value: Any) -> str:
    """Token values land inside declarations; they may not close them."""
    return _UNSAFE_RE.sub("", str(value)).strip()


def _font_stack(font: str) -> str:
    name = _safe(font).replace("'", "").replace('"', "")
    return f"'{name}', -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif"


def _num(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def _kebab(name: str) -> str:
    return to_snake(name).replace("_", "-")


def hex_to_rgb(color: str) -> tuple[int, int, int] | None:
    match = _HEX_RE.match(color.strip())
    if not match:
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def shadow_levels(color: str) -> dict[str, str]:
    """Three elevation levels tinted by `color` (falls back to black)."""
    r, g, b = hex_to_rgb(color) or (0, 0, 0)
    return {
        "sm": f"0 1px 2px rgba({r}, {g}, {b}, 0.05)",
        "md": f"0 4px 6px -1px rgba({r}, {g}, {b}, 0.1), 0 2px 4px -2px rgba({r}, {g}, {b}, 0.1)",
        "lg": f"0 10px 15px -3px rgba({r}, {g}, {b}, 0.1), 0 4px 6px -4px rgba({r}, {g}, {b}, 0.1)",
    }


# ---------------------------------------------------------------------------
# Variables
# ---------------------------------------------------------------------------


def token_variables(settings: ThemeSettings) -> list[tuple[str, str]]:
    """(name, value) pairs, in a fixed order, for every token."""
    c = settings.colors
    t = settings.typography
    variables: list[tuple[str, str]] = [
        ("--color-primary", c.primary),
        ("--color-secondary", c.secondary),
        ("--color-background", c.background),
        ("--color-surface", c.surface),
        ("--color-text", c.text),
        ("--color-text-muted", c.text_muted),
        ("--color-heading", c.heading),
        ("--color-link", c.link),
        ("--color-link-hover", c.link_hover),
        ("--color-border", c.border),
        ("--color-accent", c.accent),
    ]
    for name in ("success", "warning", "error"):
        value = getattr(c, name)
        if value:
            variables.append((f"--color-{name}", value))

    variables.extend(
        [
            ("--font-heading", _font_stack(t.heading_font)),
            ("--font-body", _font_stack(t.body_font)),
            ("--font-size-base", f"{_num(t.base_font_size)}px"),
            ("--line-height", _num(t.line_height)),
            ("--font-weight-heading", _num(t.heading_weight)),
        ]
    )
    for tag, scale in _HEADING_SCALE.items():
        size = getattr(t, f"{tag}_size")
        variables.append((f"--font-size-{tag}", f"{_num(size)}px" if size else f"{_num(scale)}rem"))

    variables.extend(
        [
            ("--content-width", f"{_num(settings.layout.content_width)}px"),
            ("--section-padding", f"{_num(settings.spacing.section_padding)}px"),
            ("--element-spacing", f"{_num(settings.spacing.element_spacing)}px"),
            ("--container-padding", f"{_num(settings.spacing.container_padding)}px"),
            ("--border-radius", f"{_num(settings.borders.radius)}px"),
            ("--border-width", f"{_num(settings.borders.width)}px"),
        ]
    )
    for level, shadow in shadow_levels(c.text).items():
        variables.append((f"--shadow-{level}", shadow))
    return [(name, _safe(value)) for name, value in variables]


def _component_variables(components: dict[str, Any]) -> list[tuple[str, str]]:
    out: list[tuple[str, str]] = []
    for component in sorted(components):
        props = components[component]
        if not isinstance(props, dict):
            continue
        for prop in sorted(props):
            value = props[prop]
            if isinstance(value, bool) or not isinstance(value, int | float | str):
                continue
            if isinstance(value, int | float):
                value = f"{_num(value)}px"
            out.append((f"--{_kebab(component)}-{_kebab(prop)}", _safe(value)))
    return out


def _color_overrides(colors: Any) -> list[tuple[str, str]]:
    if not isinstance(colors, dict):
        return []
    out = []
    for key in sorted(colors):
        value = colors[key]
        if isinstance(value, str) and value.strip():
            out.append((f"--color-{_kebab(to_camel(key))}", _safe(value)))
    return out


def _declarations(variables: list[tuple[str, str]], indent: str = "  ") -> str:
    return "\n".join(f"{indent}{name}: {value};" for name, value in variables)


# ---------------------------------------------------------------------------
# Structural rules
# ---------------------------------------------------------------------------

_BASE_RULES = """*,
*::before,
*::after {
  box-sizing: border-box;
  margin: 0;
  padding: 0;
}

html {
  font-size: var(--font-size-base);
  -webkit-text-size-adjust: 100%;
}

body {
  font-family: var(--font-body);
  line-height: var(--line-height);
  color: var(--color-text);
  background: var(--color-background);
}

img,
video {
  max-width: 100%;
  display: block;
}

h1, h2, h3, h4, h5, h6 {
  font-family: var(--font-heading);
  font-weight: var(--font-weight-heading);
  color: var(--color-heading);
  line-height: 1.2;
  margin-bottom: var(--element-spacing);
}

h1 { font-size: var(--font-size-h1); }
h2 { font-size: var(--font-size-h2); }
h3 { font-size: var(--font-size-h3); }
h4 { font-size: var(--font-size-h4); }
h5 { font-size: var(--font-size-h5); }
h6 { font-size: var(--font-size-h6); }

p {
  margin-bottom: var(--element-spacing);
}

a {
  color: var(--color-link);
  text-decoration: none;
}

a:hover {
  color: var(--color-link-hover);
}

.container {
  max-width: var(--content-width);
  margin: 0 auto;
  padding: 0 var(--container-padding);
}

section {
  padding: var(--section-padding) 0;
}

.section-title {
  text-align: center;
}

.section-subtitle {
  text-align: center;
  color: var(--color-text-muted);
}

/* Header & navigation */
.site-header {
  background: var(--color-background);
  border-bottom: var(--border-width) solid var(--color-border);
}

.site-header-inner {
  display: flex;
  align-items: center;
  justify-content: space-between;
  gap: var(--element-spacing);
  min-height: 64px;
}

.site-logo {
  font-family: var(--font-heading);
  font-weight: var(--font-weight-heading);
  font-size: 1.25rem;
  color: var(--color-heading);
}

.site-nav {
  display: flex;
  gap: var(--element-spacing);
}

.nav-link {
  color: var(--color-text);
}

.nav-link:hover {
  color: var(--color-primary);
}

.nav-toggle {
  display: none;
  background: none;
  border: none;
  font-size: 1.5rem;
  cursor: pointer;
}

.site-actions {
  display: flex;
  align-items: center;
  gap: var(--element-spacing);
}

.cart-count {
  display: inline-block;
  min-width: 1.5em;
  padding: 0 0.4em;
  border-radius: 999px;
  background: var(--color-primary);
  color: #fff;
  font-size: 0.75rem;
  text-align: center;
}

.site-footer {
  border-top: var(--border-width) solid var(--color-border);
  background: var(--color-surface);
  padding: calc(var(--section-padding) / 2) 0;
  color: var(--color-text-muted);
}

.footer-nav {
  display: flex;
  flex-wrap: wrap;
  gap: var(--element-spacing);
  margin-bottom: var(--element-spacing);
}

/* Buttons */
.btn {
  display: inline-block;
  padding: 0.75em 1.5em;
  border: var(--border-width) solid transparent;
  border-radius: var(--button-border-radius, var(--border-radius));
  font-weight: 600;
  cursor: pointer;
  transition: background 0.2s, color 0.2s, box-shadow 0.2s;
}

.btn-sm { padding: 0.4em 0.9em; font-size: 0.875rem; }
.btn-lg { padding: 1em 2em; font-size: 1.125rem; }

.btn-primary {
  background: var(--color-primary);
  color: #fff;
}

.btn-primary:hover {
  box-shadow: var(--shadow-md);
  color: #fff;
}

.btn-secondary {
  background: var(--color-secondary);
  color: #fff;
}

.btn-outline {
  background: transparent;
  border-color: var(--color-primary);
  color: var(--color-primary);
}

.btn-ghost {
  background: transparent;
  color: var(--color-primary);
}

.btn-gradient {
  background: linear-gradient(135deg, var(--color-primary), var(--color-secondary));
  color: #fff;
}

.btn-light {
  background: #fff;
  color: var(--color-primary);
}

/* Cards & grids */
.card {
  background: var(--color-background);
  border: var(--border-width) solid var(--color-border);
  border-radius: var(--card-border-radius, var(--border-radius));
  box-shadow: var(--shadow-sm);
  padding: var(--element-spacing);
}

.card-image {
  border-radius: var(--border-radius);
  margin-bottom: var(--element-spacing);
}

.grid {
  display: grid;
  gap: calc(var(--element-spacing) * 1.5);
}

.grid-1 { grid-template-columns: 1fr; }
.grid-2 { grid-template-columns: repeat(2, 1fr); }
.grid-3 { grid-template-columns: repeat(3, 1fr); }
.grid-4 { grid-template-columns: repeat(4, 1fr); }
.grid-5 { grid-template-columns: repeat(5, 1fr); }
.grid-6 { grid-template-columns: repeat(6, 1fr); }

/* Blocks */
.hero {
  padding: calc(var(--section-padding) * 1.5) 0;
  background-color: var(--color-surface);
  background-size: cover;
  background-position: center;
}

.hero-center { text-align: center; }
.hero-right { text-align: right; }

.hero-subtitle {
  font-size: 1.25rem;
  color: var(--color-text-muted);
}

.cta {
  color: #fff;
  text-align: center;
}

.cta-heading {
  color: #fff;
}

.feature-icon {
  font-size: 2rem;
  margin-bottom: var(--element-spacing);
}

.stat {
  text-align: center;
}

.stat-value {
  display: block;
  font-size: 2.5rem;
  font-weight: var(--font-weight-heading);
  color: var(--color-primary);
}

.stat-label {
  color: var(--color-text-muted);
}

.pricing-plan-highlighted {
  border-color: var(--color-primary);
  box-shadow: var(--shadow-lg);
}

.pricing-plan-price {
  font-size: 2rem;
  font-weight: var(--font-weight-heading);
}

.product-card,
.course-card {
  border: var(--border-width) solid var(--color-border);
  border-radius: var(--border-radius);
  overflow: hidden;
  background: var(--color-background);
}

.product-info {
  padding: var(--element-spacing);
}

.price-sale {
  color: var(--color-error, #dc2626);
  font-weight: 600;
  margin-right: 0.5em;
}

.price-regular {
  text-decoration: line-through;
  color: var(--color-text-muted);
}

.empty-state {
  text-align: center;
  color: var(--color-text-muted);
}

.sale-banner {
  display: flex;
  justify-content: center;
  gap: var(--element-spacing);
  padding: 0.75em var(--container-padding);
  color: #fff;
}

.sale-banner-link {
  color: #fff;
  text-decoration: underline;
}

.tf-unknown-block {
  padding: var(--element-spacing);
  border: var(--border-width) dashed var(--color-border);
  color: var(--color-text-muted);
  text-align: center;
}

.form {
  display: flex;
  flex-direction: column;
  gap: var(--element-spacing);
}

.form label {
  display: flex;
  flex-direction: column;
  gap: 0.25em;
}

.form input,
.form textarea {
  padding: 0.6em 0.8em;
  border: var(--border-width) solid var(--color-border);
  border-radius: var(--border-radius);
  font: inherit;
}

.auth-form {
  max-width: 420px;
  margin: 0 auto;
}

.alert-error {
  padding: var(--element-spacing);
  border-radius: var(--border-radius);
  background: #fef2f2;
  color: var(--color-error, #dc2626);
}

.layout-with-sidebar {
  display: grid;
  grid-template-columns: 1fr 280px;
  gap: var(--section-padding);
}

.layout-sidebar-left .layout-with-sidebar {
  grid-template-columns: 280px 1fr;
}

.layout-sidebar-left .layout-sidebar {
  order: -1;
}

.countdown-timer {
  display: flex;
  justify-content: center;
  gap: var(--element-spacing);
}

.countdown-unit span {
  display: block;
  font-size: 2rem;
  font-weight: var(--font-weight-heading);
}

.tab-button.active {
  border-bottom: 2px solid var(--color-primary);
}

[data-animation] {
  opacity: 0;
  transition: opacity 0.6s ease, transform 0.6s ease;
}

[data-animation].is-visible {
  opacity: 1;
  transform: none;
}"""

_HEADER_STYLE_RULES: dict[str, str] = {
    "centered": """.header-centered .site-header-inner {
  flex-direction: column;
  justify-content: center;
  padding: var(--element-spacing) 0;
}""",
    "minimal": """.header-minimal {
  border-bottom: none;
}""",
    "sticky": """.header-sticky {
  position: sticky;
  top: 0;
  z-index: 100;
  box-shadow: var(--shadow-sm);
}""",
}

_FOOTER_STYLE_RULES: dict[str, str] = {
    "centered": """.footer-centered .site-footer-inner {
  text-align: center;
}

.footer-centered .footer-nav {
  justify-content: center;
}""",
    "minimal": """.footer-minimal {
  background: transparent;
}""",
}

_RESPONSIVE_RULES = """  .grid-2,
  .grid-3,
  .grid-4,
  .grid-5,
  .grid-6 {
    grid-template-columns: 1fr;
  }

  .nav-toggle {
    display: block;
  }

  .site-nav {
    display: none;
    flex-direction: column;
  }

  .site-nav.is-open {
    display: flex;
  }

  .layout-with-sidebar,
  .layout-sidebar-left .layout-with-sidebar {
    grid-template-columns: 1fr;
  }

  .tf-hide-mobile,
  .tf-hide-tablet {
    display: none !important;
  }"""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def generate_stylesheet(settings: ThemeSettings, custom_css: str | None = None) -> str:
    sections: list[str] = [
        "/* Generated by ThemeForge. Edits belong in the theme's custom CSS. */",
        f":root {{\n{_declarations(token_variables(settings))}\n}}",
    ]

    components = _component_variables(settings.components)
    if components:
        sections.append(f":root {{\n{_declarations(components)}\n}}")

    dark = _color_overrides(settings.dark_mode.get("colors", settings.dark_mode))
    if dark and settings.dark_mode.get("enabled", True) is not False:
        sections.append(
            "@media (prefers-color-scheme: dark) {\n"
            f"  :root {{\n{_declarations(dark, '    ')}\n  }}\n"
            "}"
        )

    sections.append(_BASE_RULES)
    if settings.layout.header_style in _HEADER_STYLE_RULES:
        sections.append(_HEADER_STYLE_RULES[settings.layout.header_style])
    if settings.layout.footer_style in _FOOTER_STYLE_RULES:
        sections.append(_FOOTER_STYLE_RULES[settings.layout.footer_style])

    sections.append(_responsive_block(settings))
    sections.append(
        f"@media (min-width: {BREAKPOINT_PX + 1}px) {{\n"
        "  .tf-hide-desktop {\n    display: none !important;\n  }\n}"
    )

    css = "\n\n".join(sections) + "\n"
    if custom_css and custom_css.strip():
        css += f"\n/* Custom CSS */\n{custom_css.rstrip()}\n"
    return css


def _responsive_block(settings: ThemeSettings) -> str:
    overrides: list[tuple[str, str]] = []
    mobile = settings.responsive.get("mobile")
    if isinstance(mobile, dict):
        for key, var in (
            ("baseFontSize", "--font-size-base"),
            ("sectionPadding", "--section-padding"),
            ("containerPadding", "--container-padding"),
        ):
            value = mobile.get(key)
            if isinstance(value, int | float) and not isinstance(value, bool):
                overrides.append((var, f"{_num(value)}px"))

    body = _RESPONSIVE_RULES
    if overrides:
        body = f"  :root {{\n{_declarations(overrides, '    ')}\n  }}\n\n{body}"
    return f"@media (max-width: {BREAKPOINT_PX}px) {{\n{body}\n}}"
