"""Theme and packaging request models. Wire fields are camelCase."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

_CONFIG = {"extra": "forbid", "alias_generator": to_camel, "populate_by_name": True}


class PageSpec(BaseModel):
    model_config = _CONFIG

    name: str = Field(min_length=1, max_length=200)
    slug: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9-]+$")
    is_home_page: bool = False


class CreateThemeRequest(BaseModel):
    """New theme. Without pages it gets a single empty home page."""

    model_config = _CONFIG

    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    author: str = ""
    settings: dict[str, Any] = Field(default_factory=dict)
    custom_css: str = ""
    pages: list[PageSpec] = Field(default_factory=list)


class UpdateThemeRequest(BaseModel):
    """Rename, re-describe or (un)mark as default. Omitted fields stay as they are."""

    model_config = _CONFIG

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    is_default: bool | None = None


class DuplicateThemeRequest(BaseModel):
    model_config = _CONFIG

    name: str | None = Field(default=None, min_length=1, max_length=200)


class PackageRequest(BaseModel):
    model_config = _CONFIG

    version: str | None = Field(default=None, max_length=50)
    author: str | None = Field(default=None, max_length=200)


class PreviewRequest(BaseModel):
    """Render-time data for a preview. Everything is optional."""

    model_config = _CONFIG

    site: dict[str, Any] = Field(default_factory=dict)
    menus: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)
    listings: dict[str, Any] = Field(default_factory=dict)
    cart: dict[str, Any] | None = None
    signed_in: bool = False
