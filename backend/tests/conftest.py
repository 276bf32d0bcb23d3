"""
Pytest configuration and fixtures for ThemeForge API tests.

The API runs on in-memory stores here: DATABASE_URL stays unset and every
test gets fresh services with its own themes directory.
"""

from __future__ import annotations

import os

# Set test environment variables before importing config
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only")
os.environ.pop("DATABASE_URL", None)

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from backend.auth import create_jwt  # noqa: E402
from backend.main import app  # noqa: E402
from backend.services import themes as theme_services  # noqa: E402
from themeforge.kernel.tests.factories import THEME_ID, build_theme  # noqa: E402

USER_ID = "user-alice"
OTHER_USER_ID = "user-bob"


@pytest.fixture
def services(tmp_path):
    """Fresh in-memory services seeded with the Aurora theme."""
    svc = theme_services.init_services(themes_dir=tmp_path / "themes")
    svc.store.themes[THEME_ID] = build_theme()
    yield svc
    theme_services.reset_services()


@pytest.fixture
def token():
    return create_jwt(USER_ID, name="Alice")


@pytest.fixture
def other_token():
    return create_jwt(OTHER_USER_ID, name="Bob")


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def async_client(services):
    """Async HTTP client against the ASGI app."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
