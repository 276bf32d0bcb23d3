"""
ThemeForge Kernel - Theme Compiler

compile_theme(theme) -> ArtifactSet

Whole-theme, deterministic compilation:
  render blocks -> assemble pages -> generate stylesheet / scripts / preview
  -> manifest

Nothing here touches the filesystem. The packager decides where the
artifact set goes (directory or archive), so both outputs are derived from
the identical in-memory set.

Layout:
  theme.json
  assets/css/theme.css
  assets/js/{main,cart,auth,checkout}.js
  partials/{header,footer}.mustache
  templates/home.mustache, templates/page-<slug>.mustache
  templates/{login,register,cart,checkout}.mustache
  screenshot.svg
"""

from __future__ import annotations

import json
from typing import Any

from themeforge.kernel.assembler import (
    PARTIALS,
    SYSTEM_TEMPLATES,
    assemble_pages,
    assemble_system_templates,
    render_partials,
)
from themeforge.kernel.catalog import slugify
from themeforge.kernel.errors import ValidationError
from themeforge.kernel.renderer import escape
from themeforge.kernel.scripts import generate_scripts
from themeforge.kernel.stylesheet import generate_stylesheet
from themeforge.kernel.templating import partial_path, template_path
from themeforge.kernel.tokens import ThemeSettings
from themeforge.kernel.types import ArtifactSet, Theme

MANIFEST_PATH = "theme.json"
STYLESHEET_PATH = "assets/css/theme.css"
PREVIEW_PATH = "screenshot.svg"
EXPORT_FORMAT = "themeforge-theme/1"


def compile_theme(
    theme: Theme,
    *,
    version: str | None = None,
    author: str | None = None,
    for_export: bool = False,
) -> ArtifactSet:
    """
    Compile a theme into its artifact set.

    Raises ValidationError for structurally broken themes. Unknown block
    types are not errors; they compile to placeholders.

    for_export extends the manifest with the export format marker and the
    theme's custom CSS, making an archive self-sufficient for re-import.
    """
    theme.validate()
    slug = theme.slug or slugify(theme.name)
    if not slug:
        raise ValidationError(f"Theme name {theme.name!r} does not produce a usable slug")

    settings = theme.design_tokens()
    pages = assemble_pages(theme.pages, settings)
    system = assemble_system_templates(settings)
    partials = render_partials(settings)
    scripts = generate_scripts()

    files: dict[str, str] = {
        STYLESHEET_PATH: generate_stylesheet(settings, theme.custom_css),
        PREVIEW_PATH: render_preview(theme.name, settings),
    }
    files.update(scripts)
    for name, source in partials.items():
        files[partial_path(name)] = source
    for name, source in pages.items():
        files[template_path(name)] = source
    for name, source in system.items():
        files[template_path(name)] = source

    manifest = build_manifest(
        theme,
        slug=slug,
        settings=settings,
        page_templates=list(pages),
        scripts=sorted(scripts),
        version=version,
        author=author,
    )
    if for_export:
        manifest["format"] = EXPORT_FORMAT
        manifest["customCss"] = theme.custom_css

    files[MANIFEST_PATH] = json.dumps(manifest, indent=2, sort_keys=True) + "\n"
    return ArtifactSet(
        slug=slug,
        manifest=manifest,
        files={path: files[path].encode("utf-8") for path in sorted(files)},
    )


def build_manifest(
    theme: Theme,
    *,
    slug: str,
    settings: ThemeSettings,
    page_templates: list[str],
    scripts: list[str],
    version: str | None = None,
    author: str | None = None,
) -> dict[str, Any]:
    return {
        "name": theme.name,
        "slug": slug,
        "version": version or theme.version,
        "author": author if author is not None else theme.author,
        "description": theme.description,
        "templates": page_templates,
        "systemTemplates": list(SYSTEM_TEMPLATES),
        "partials": list(PARTIALS),
        "stylesheet": STYLESHEET_PATH,
        "scripts": scripts,
        "preview": PREVIEW_PATH,
        "settings": settings.to_dict(),
        "pages": [page.to_dict() for page in theme.pages],
    }


def render_preview(name: str, settings: ThemeSettings) -> str:
    """A 1200x900 SVG wireframe of the theme in its own colors."""
    c = settings.colors
    title = escape(name)
    font = escape(settings.typography.heading_font)
    return (
        '<svg xmlns="http://www.w3.org/2000/svg" width="1200" height="900" viewBox="0 0 1200 900">\n'
        "  <defs>\n"
        '    <linearGradient id="hero" x1="0" y1="0" x2="1" y2="1">\n'
        f'      <stop offset="0%" stop-color="{escape(c.primary)}"/>\n'
        f'      <stop offset="100%" stop-color="{escape(c.secondary)}"/>\n'
        "    </linearGradient>\n"
        "  </defs>\n"
        f'  <rect width="1200" height="900" fill="{escape(c.background)}"/>\n'
        f'  <rect width="1200" height="80" fill="{escape(c.surface)}"/>\n'
        f'  <rect x="60" y="28" width="160" height="24" rx="4" fill="{escape(c.heading)}"/>\n'
        f'  <rect x="880" y="30" width="80" height="20" rx="4" fill="{escape(c.text_muted)}"/>\n'
        f'  <rect x="980" y="24" width="160" height="32" rx="8" fill="{escape(c.primary)}"/>\n'
        '  <rect y="80" width="1200" height="380" fill="url(#hero)"/>\n'
        f'  <text x="600" y="280" font-family="{font}, sans-serif" font-size="56" font-weight="700" '
        f'fill="#ffffff" text-anchor="middle">{title}</text>\n'
        f'  <rect x="60" y="520" width="340" height="300" rx="12" fill="{escape(c.surface)}" stroke="{escape(c.border)}"/>\n'
        f'  <rect x="430" y="520" width="340" height="300" rx="12" fill="{escape(c.surface)}" stroke="{escape(c.border)}"/>\n'
        f'  <rect x="800" y="520" width="340" height="300" rx="12" fill="{escape(c.surface)}" stroke="{escape(c.border)}"/>\n'
        f'  <rect x="90" y="780" width="120" height="24" rx="6" fill="{escape(c.accent)}"/>\n'
        f'  <rect x="460" y="780" width="120" height="24" rx="6" fill="{escape(c.accent)}"/>\n'
        f'  <rect x="830" y="780" width="120" height="24" rx="6" fill="{escape(c.accent)}"/>\n'
        "</svg>\n"
    )
