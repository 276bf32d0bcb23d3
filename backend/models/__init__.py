"""
Pydantic models for the ThemeForge API.

Request shapes only; responses are the kernel types' to_dict() output.
No imports from db, services, or routes.
"""

from backend.models.editor import (
    AddBlockRequest,
    InlineEditRequest,
    MoveBlockRequest,
    ReorderRequest,
    SettingsUpdateRequest,
    TemplateBlockRequest,
    UpdateBlockRequest,
)
from backend.models.theme import (
    CreateThemeRequest,
    DuplicateThemeRequest,
    PackageRequest,
    PageSpec,
    PreviewRequest,
    UpdateThemeRequest,
)
from backend.models.user import User

__all__ = [
    # User models
    "User",
    # Editor models
    "AddBlockRequest",
    "TemplateBlockRequest",
    "MoveBlockRequest",
    "UpdateBlockRequest",
    "ReorderRequest",
    "InlineEditRequest",
    "SettingsUpdateRequest",
    # Theme models
    "PageSpec",
    "CreateThemeRequest",
    "UpdateThemeRequest",
    "DuplicateThemeRequest",
    "PackageRequest",
    "PreviewRequest",
]
