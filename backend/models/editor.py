"""Editor request models. Wire fields are camelCase."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

_CONFIG = {"extra": "forbid", "alias_generator": to_camel, "populate_by_name": True}


class AddBlockRequest(BaseModel):
    model_config = _CONFIG

    page_id: str
    type: str = Field(min_length=1)
    props: dict[str, Any] = Field(default_factory=dict)
    position: int | None = Field(default=None, ge=0)
    parent_id: str | None = None
    link: dict[str, Any] | None = None
    visibility: dict[str, bool] | None = None
    animation: dict[str, Any] | None = None


class TemplateBlockRequest(BaseModel):
    model_config = _CONFIG

    template_id: str
    page_id: str
    position: int | None = Field(default=None, ge=0)
    parent_id: str | None = None
    props: dict[str, Any] = Field(default_factory=dict)


class MoveBlockRequest(BaseModel):
    """parentId omitted = stay in the current scope; null = move to the top level."""

    model_config = _CONFIG

    position: int = Field(ge=0)
    parent_id: str | None = None


class UpdateBlockRequest(BaseModel):
    """Only fields present in the request are changed."""

    model_config = _CONFIG

    props: dict[str, Any] | None = None
    link: dict[str, Any] | None = None
    visibility: dict[str, bool] | None = None
    animation: dict[str, Any] | None = None
    replace_props: bool = False


class ReorderRequest(BaseModel):
    model_config = _CONFIG

    page_id: str
    block_ids: list[str]
    parent_id: str | None = None
    save_immediately: bool = True


class InlineEditRequest(BaseModel):
    model_config = _CONFIG

    block_id: str
    field: str = Field(min_length=1)
    value: Any = None
    save_immediately: bool = False


class SettingsUpdateRequest(BaseModel):
    model_config = _CONFIG

    settings: dict[str, Any] = Field(default_factory=dict)
    merge: bool = True
    custom_css: str | None = None
