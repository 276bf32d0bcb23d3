"""
Service wiring for the API.

One ThemeServices instance per process, built at startup: Postgres-backed
when a pool is given, in-memory otherwise (local development and tests).
Routes reach it through the get_services() dependency.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import asyncpg

from backend.config import settings
from backend.services.broadcaster import ConnectionManager
from themeforge.kernel.catalog import MemoryCatalog, ThemeCatalog
from themeforge.kernel.editor import EditorService, SessionRegistry
from themeforge.kernel.packager import Packager
from themeforge.kernel.postgres_store import PostgresBlockStore, PostgresCatalog
from themeforge.kernel.store import BlockStore, MemoryBlockStore

logger = logging.getLogger(__name__)


@dataclass
class ThemeServices:
    store: BlockStore
    catalog: ThemeCatalog
    editor: EditorService
    packager: Packager
    connections: ConnectionManager


services: ThemeServices | None = None


def build_services(
    store: BlockStore,
    catalog: ThemeCatalog,
    *,
    themes_dir: Path | str | None = None,
    timeout_seconds: float | None = None,
) -> ThemeServices:
    connections = ConnectionManager()
    editor = EditorService(
        store,
        connections,
        SessionRegistry(),
        history_limit=settings.EDITOR_HISTORY_LIMIT,
    )
    packager = Packager(
        catalog,
        themes_dir or settings.THEMES_DIR,
        timeout_seconds=timeout_seconds or settings.PACKAGING_TIMEOUT_SECONDS,
    )
    return ThemeServices(store=store, catalog=catalog, editor=editor, packager=packager, connections=connections)


def init_services(pool: asyncpg.Pool | None = None, **kwargs) -> ThemeServices:
    """Build and install the process-wide services."""
    global services
    if pool is not None:
        services = build_services(PostgresBlockStore(pool), PostgresCatalog(pool), **kwargs)
        logger.info("services: using postgres stores")
    else:
        services = build_services(MemoryBlockStore(), MemoryCatalog(), **kwargs)
        logger.info("services: using in-memory stores")
    return services


def reset_services() -> None:
    global services
    services = None


def get_services() -> ThemeServices:
    """FastAPI dependency."""
    if services is None:
        raise RuntimeError("Services not initialized. Call init_services() first.")
    return services
