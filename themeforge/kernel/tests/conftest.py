"""
ThemeForge kernel test configuration.

In-memory collaborators for the kernel: MemoryBlockStore, MemoryCatalog,
RecordingBroadcaster. Postgres tests skip when DATABASE_URL is unset.
"""

from __future__ import annotations

import itertools

import pytest

from themeforge.kernel.broadcast import RecordingBroadcaster
from themeforge.kernel.catalog import MemoryCatalog
from themeforge.kernel.editor import EditorService, SessionRegistry
from themeforge.kernel.packager import Packager
from themeforge.kernel.store import MemoryBlockStore
from themeforge.kernel.tests.factories import build_theme
from themeforge.kernel.types import Theme


@pytest.fixture
def theme() -> Theme:
    return build_theme()


@pytest.fixture
def store(theme) -> MemoryBlockStore:
    return MemoryBlockStore([theme])


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def editor(store, broadcaster, registry) -> EditorService:
    counter = itertools.count(1)
    return EditorService(store, broadcaster, registry, id_factory=lambda: f"id-{next(counter):03d}")


@pytest.fixture
def catalog() -> MemoryCatalog:
    return MemoryCatalog()


@pytest.fixture
def packager(catalog, tmp_path) -> Packager:
    return Packager(catalog, tmp_path / "themes", timeout_seconds=5)
