"""User identity carried in the session JWT."""

from __future__ import annotations

from pydantic import BaseModel


class User(BaseModel):
    """The editing user. Only the id matters to the editor; name is shown to collaborators."""

    id: str
    name: str | None = None
