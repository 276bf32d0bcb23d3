"""
ThemeForge Kernel - Design Tokens

The theme's design `Settings`: colors, typography, layout, spacing, borders,
plus optional component / dark-mode / responsive override maps.

Wire shape is camelCase (the shape stored on the theme record and restated in
packaged manifests). Attributes are snake_case. Every absent or wrongly typed
token falls back to DEFAULT_SETTINGS, so the stylesheet generator never has
to guess.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field, fields
from typing import Any

_CAMEL_RE = re.compile(r"_([a-z0-9])")
_SNAKE_RE = re.compile(r"(?<!^)(?=[A-Z])")


def to_camel(name: str) -> str:
    return _CAMEL_RE.sub(lambda m: m.group(1).upper(), name)


def to_snake(name: str) -> str:
    return _SNAKE_RE.sub("_", name).lower()


# ---------------------------------------------------------------------------
# Token groups
# ---------------------------------------------------------------------------


@dataclass
class Colors:
    primary: str = "#2563eb"
    secondary: str = "#7c3aed"
    background: str = "#ffffff"
    surface: str = "#f8fafc"
    text: str = "#1e293b"
    text_muted: str = "#64748b"
    heading: str = "#0f172a"
    link: str = "#2563eb"
    link_hover: str = "#1d4ed8"
    border: str = "#e2e8f0"
    accent: str = "#f59e0b"
    success: str | None = None
    warning: str | None = None
    error: str | None = None


@dataclass
class Typography:
    heading_font: str = "Inter"
    body_font: str = "Inter"
    base_font_size: int = 16
    line_height: float = 1.6
    heading_weight: int = 700
    h1_size: float | None = None
    h2_size: float | None = None
    h3_size: float | None = None
    h4_size: float | None = None
    h5_size: float | None = None
    h6_size: float | None = None


@dataclass
class Layout:
    sidebar_position: str = "none"
    content_width: int = 1200
    header_style: str = "default"
    footer_style: str = "default"


@dataclass
class Spacing:
    section_padding: int = 64
    element_spacing: int = 16
    container_padding: int = 24


@dataclass
class Borders:
    radius: int = 8
    width: int = 1


SIDEBAR_POSITIONS: set[str] = {"left", "right", "none"}
HEADER_STYLES: set[str] = {"default", "centered", "minimal", "sticky"}
FOOTER_STYLES: set[str] = {"default", "centered", "minimal"}

_GROUPS: dict[str, type] = {
    "colors": Colors,
    "typography": Typography,
    "layout": Layout,
    "spacing": Spacing,
    "borders": Borders,
}


def _coerce(value: Any, default: Any) -> Any:
    """Keep `value` only when it has the default's type. Loose by design of the token source."""
    if value is None:
        return default
    if default is None:
        return value if isinstance(value, int | float | str) and not isinstance(value, bool) else None
    if isinstance(default, bool):
        return value if isinstance(value, bool) else default
    if isinstance(default, int) and not isinstance(default, bool):
        if isinstance(value, int | float) and not isinstance(value, bool):
            return int(value)
        return default
    if isinstance(default, float):
        if isinstance(value, int | float) and not isinstance(value, bool):
            return float(value)
        return default
    if isinstance(default, str):
        return value if isinstance(value, str) and value.strip() else default
    return value


def _group_from_dict(cls: type, raw: Any) -> Any:
    instance = cls()
    if not isinstance(raw, dict):
        return instance
    for f in fields(cls):
        camel = to_camel(f.name)
        if camel in raw:
            value = raw[camel]
        elif f.name in raw:
            value = raw[f.name]
        else:
            continue
        setattr(instance, f.name, _coerce(value, getattr(instance, f.name)))
    return instance


def _group_to_dict(group: Any) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields(group):
        value = getattr(group, f.name)
        if value is None:
            continue
        out[to_camel(f.name)] = value
    return out


# ---------------------------------------------------------------------------
# ThemeSettings
# ---------------------------------------------------------------------------


@dataclass
class ThemeSettings:
    colors: Colors = field(default_factory=Colors)
    typography: Typography = field(default_factory=Typography)
    layout: Layout = field(default_factory=Layout)
    spacing: Spacing = field(default_factory=Spacing)
    borders: Borders = field(default_factory=Borders)
    components: dict[str, Any] = field(default_factory=dict)
    dark_mode: dict[str, Any] = field(default_factory=dict)
    responsive: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {name: _group_to_dict(getattr(self, name)) for name in _GROUPS}
        if self.components:
            d["components"] = copy.deepcopy(self.components)
        if self.dark_mode:
            d["darkMode"] = copy.deepcopy(self.dark_mode)
        if self.responsive:
            d["responsive"] = copy.deepcopy(self.responsive)
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> ThemeSettings:
        d = d or {}
        settings = cls(**{name: _group_from_dict(group_cls, d.get(name)) for name, group_cls in _GROUPS.items()})

        if settings.layout.sidebar_position not in SIDEBAR_POSITIONS:
            settings.layout.sidebar_position = "none"
        if settings.layout.header_style not in HEADER_STYLES:
            settings.layout.header_style = "default"
        if settings.layout.footer_style not in FOOTER_STYLES:
            settings.layout.footer_style = "default"

        for attr, key in (("components", "components"), ("dark_mode", "darkMode"), ("responsive", "responsive")):
            raw = d.get(key, d.get(attr))
            if isinstance(raw, dict):
                setattr(settings, attr, copy.deepcopy(raw))
        return settings


DEFAULT_SETTINGS: dict[str, Any] = ThemeSettings().to_dict()


# ---------------------------------------------------------------------------
# Merge semantics
# ---------------------------------------------------------------------------


def deep_merge(target: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge `source` into a copy of `target`.

    Nested dicts merge; lists and scalars in `source` replace; `None` values
    in `source` are ignored. Neither input is modified.
    """
    result = copy.deepcopy(target)
    for key, value in source.items():
        if isinstance(value, dict):
            base = result.get(key)
            result[key] = deep_merge(base if isinstance(base, dict) else {}, value)
        elif value is not None:
            result[key] = copy.deepcopy(value)
    return result


def apply_settings_update(
    current: dict[str, Any],
    update: dict[str, Any],
    *,
    merge: bool,
) -> dict[str, Any]:
    """Caller-selectable settings write: deep-merge into `current`, or replace it."""
    if merge:
        return deep_merge(current or {}, update)
    return copy.deepcopy(update)
