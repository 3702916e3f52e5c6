"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from datadna.agents.learning.learning_store import LearningStore
from datadna.api.routes import admin, health, migrations
from datadna.core.config import AppSettings
from datadna.core.logging import configure_logging
from datadna.model_providers.factory import create_reasoning
from datadna.persistence import create_persistence


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize and tear down application resources."""
    settings = getattr(app.state, "settings", None) or AppSettings()
    configure_logging(settings.log_level)
    learned_store, catalog, cache = create_persistence(settings)
    reasoning, reasoning_cache = create_reasoning(settings.reasoning, cache)

    app.state.settings = settings
    app.state.cache = cache
    app.state.catalog = catalog
    app.state.learning = LearningStore(settings=settings, store=learned_store)
    app.state.reasoning = reasoning
    app.state.reasoning_cache = reasoning_cache
    yield


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="DataDNA Mapping Engine",
        version="0.1.0",
        lifespan=lifespan,
    )
    if settings is not None:
        app.state.settings = settings
    app.include_router(health.router)
    app.include_router(migrations.router, prefix="/migrations")
    app.include_router(admin.router, prefix="/admin")
    return app
