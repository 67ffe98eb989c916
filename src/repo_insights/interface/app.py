"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from repo_insights.interface.dependencies import shutdown, startup
from repo_insights.interface.error_handlers import register_error_handlers
from repo_insights.interface.routes import router


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the dashboard session on startup and tear it down on shutdown."""
    await startup()
    yield
    await shutdown()


def create_app() -> FastAPI:
    """Build and wire the FastAPI application."""
    app = FastAPI(
        title="GitHub Repo Insights",
        version="1.0.0",
        description=(
            "Looks up a public GitHub repository and aggregates its metadata, "
            "language breakdown, contributors and recent activity, keeps a "
            "search history and a comparison list, and streams an AI summary "
            "of the README."
        ),
        lifespan=_lifespan,
    )

    register_error_handlers(app)

    # ── Health check (simple liveness probe) ────────────────────────────

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(router)

    return app
