"""
FastAPI application for traitpath.

Provides REST API for:
- Triggering trait-to-skill calculations after a conversation is analysed
- Reading a user's current learning path
- Health checks

Run with:
    uvicorn traitpath.api.main:create_app --factory --port 8100
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from config import Settings, get_settings
from traitpath import __version__
from traitpath.core.log_config import configure_logging
from traitpath.db.database import build_engine, build_session_factory, check_database, init_db


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application with its own engine and session factory."""
    settings = settings or get_settings()
    engine = build_engine(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown events."""
        configure_logging(settings.log_level, settings.log_file)
        logger.info("Starting traitpath service...")
        init_db(engine)
        logger.info(f"Service started on {settings.api_host}:{settings.api_port}")

        yield

        logger.info("Shutting down traitpath service...")
        engine.dispose()

    app = FastAPI(
        title="TraitPath",
        description="""
    Trait-to-skill weighting and learning path service.

    ## Data Flow

    ```
    Conversation analysis (traits / evaluation criteria)
        ↓ trigger
    Skill weights (per trait pattern)
        ↓ rank
    Prioritized skills + learning focus
        ↓ resolve prerequisites
    Learning path (stored per user)
    ```
    """,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    # CORS middleware for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ========================================
    # Health & Status Endpoints
    # ========================================

    @app.get("/", tags=["Health"])
    def root() -> dict[str, str]:
        """Root endpoint returning service info."""
        return {
            "service": "traitpath",
            "version": __version__,
            "status": "ok",
        }

    @app.get("/health", tags=["Health"])
    def health_check() -> dict[str, Any]:
        """Health check with an actual database round trip."""
        db_status, db_error = check_database(engine)

        result: dict[str, Any] = {
            "status": "healthy" if db_status == "ok" else "unhealthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "components": {"database": db_status},
            "config": settings.get_path_config(),
        }
        if db_error:
            result["errors"] = {"database": db_error}
        return result

    # ========================================
    # Routers
    # ========================================

    from traitpath.api.routers import calculation_router

    app.include_router(calculation_router.router, prefix="/api", tags=["Calculations"])

    return app
