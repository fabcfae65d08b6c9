"""FastAPI application factory and lifespan management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from collector.config import Settings
from collector.database import Database
from collector.figures import FigureRepository
from collector.middleware.auth import APIKeyMiddleware
from collector.middleware.logging import RequestLoggingMiddleware
from collector.routes import admin, health, search
from collector.search import (
    FallbackScoringSearch,
    ManagedIndexSearch,
    SearchIndexer,
    SearchService,
    SqliteSearchStore,
    select_backend,
)

logger = structlog.get_logger()


def build_search_service(
    settings: Settings,
    repository: FigureRepository,
    store: SqliteSearchStore,
) -> SearchService:
    """Wire both search backends and the indexer for a configuration.

    Args:
        settings: Configuration deciding whether the managed index is used.
        repository: Figure repository the fallback path scans.
        store: Search document store backing the managed index.

    Returns:
        Search façade for the configured backend.
    """
    managed_enabled = settings.managed_search_enabled
    backend = select_backend(
        managed_enabled,
        ManagedIndexSearch(store, index_name=settings.search_index_name),
        FallbackScoringSearch(repository),
    )
    return SearchService(backend, SearchIndexer(store), managed_enabled=managed_enabled)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle events.

    Opens the database and builds the figure repository, the search
    document store and the search façade on startup. Closes the
    database on shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings: Settings = app.state.settings
    logger.info("api_startup", host=settings.host, port=settings.port)

    database = Database(settings.database_path)
    database.initialize()

    repository = FigureRepository(database)
    store = SqliteSearchStore(database, index_name=settings.search_index_name)
    search_service = build_search_service(settings, repository, store)
    logger.info("search_backend_selected", backend=search_service.backend_name)

    app.state.database = database
    app.state.figure_repository = repository
    app.state.search_store = store
    app.state.search_service = search_service

    try:
        yield
    finally:
        database.close()
        logger.info("api_shutdown")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Factory function to create configured FastAPI application.

    Args:
        settings: Configuration instance. Creates default if None.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="Figure Collector Search API",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/api/v1/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/api/v1/openapi.json" if settings.debug else None,
    )
    app.state.settings = settings

    app.add_middleware(RequestLoggingMiddleware)
    if settings.key:
        app.add_middleware(APIKeyMiddleware, api_key=settings.key)

    app.include_router(health.router, prefix="/api/v1")
    app.include_router(search.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
