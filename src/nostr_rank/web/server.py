"""FastAPI server for nostr-rank.

Exposes the ranking trigger and the popular/isolated participant queries.
When scheduling is enabled the periodic jobs run inside the server's
event loop for the lifetime of the app.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from importlib.metadata import version
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from nostr_rank.services.ranking_service import RankingService
from nostr_rank.services.scheduler import PeriodicScheduler
from nostr_rank.web.api import (
    activity,
    get_ranking_service,
    ranks,
    set_ranking_service,
    users,
)

logger = logging.getLogger(__name__)


def get_version() -> str:
    """Get the nostr-rank package version."""
    try:
        return version("nostr-rank")
    except Exception:
        return "0.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the periodic scheduler if enabled; release resources on exit."""
    service = get_ranking_service()
    scheduler: PeriodicScheduler | None = None
    schedule = service.config.schedule
    if schedule.enabled:
        scheduler = PeriodicScheduler(service, schedule.interval_seconds)
        scheduler.start()
        logger.info("Scheduled jobs every %d seconds", schedule.interval_seconds)

    yield

    if scheduler is not None:
        await scheduler.stop()
    await service.close()


def create_app(service: RankingService | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        service: Optional service to install as the shared instance

    Returns:
        Configured FastAPI application instance.
    """
    if service is not None:
        set_ranking_service(service)

    app = FastAPI(
        title="nostr-rank",
        description="PageRank influence scores for Nostr participants",
        version=get_version(),
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        """Return a consistent JSON body for HTTP errors."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch unhandled exceptions and return structured JSON."""
        logger.error("Unhandled error: %s", exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc)},
        )

    app.include_router(ranks.router)
    app.include_router(users.router)
    app.include_router(activity.router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "version": get_version()}

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Return API information."""
        return {
            "name": "nostr-rank",
            "version": get_version(),
            "description": "PageRank influence scores for Nostr participants",
            "endpoints": {
                "health": "/health",
                "calculate": "/calculate-pagerank",
                "current_run": "/runs/current",
                "popular": "/popular-users",
                "isolated": "/isolated-users",
                "recent_isolated": "/recent-isolated-users",
                "new_users": "/new-users",
                "last_posts": "/last-posts",
            },
        }

    return app
