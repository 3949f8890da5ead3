"""Ranking API endpoints.

Starting a run returns immediately; the run itself happens in the
background and is observable through ``/runs/current``.
"""

from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from nostr_rank.services.ranking_service import RankingService
from nostr_rank.web.api import get_ranking_service

router = APIRouter(tags=["ranks"])

CALCULATION_STARTED = "PageRank calculation started. Please try again in a few minutes."


def _calculation_pending(service: RankingService) -> JSONResponse:
    service.trigger_ranking()
    return JSONResponse(status_code=202, content={"message": CALCULATION_STARTED})


@router.api_route("/calculate-pagerank", methods=["GET", "POST"])
async def calculate_pagerank() -> dict[str, Any]:
    """Start a ranking run, or report the one already in flight."""
    service = get_ranking_service()
    return service.trigger_ranking()


@router.get("/runs/current")
async def current_run() -> dict[str, Any]:
    """State of the latest ranking run."""
    service = get_ranking_service()
    return service.status.to_dict()


@router.get("/popular-users", response_model=None)
async def popular_users() -> list[dict[str, Any]] | JSONResponse:
    """Top participants by score, with scores."""
    service = get_ranking_service()
    if not await service.has_ranks():
        return _calculation_pending(service)
    return await service.popular_users()


@router.get("/popular-users-pubkey", response_model=None)
async def popular_users_pubkey() -> list[str] | JSONResponse:
    """Top participants by score, identifiers only."""
    service = get_ranking_service()
    if not await service.has_ranks():
        return _calculation_pending(service)
    return [user["pubkey"] for user in await service.popular_users()]


@router.get("/isolated-users", response_model=None)
async def isolated_users() -> list[dict[str, Any]] | JSONResponse:
    """Lowest-scored participants, with scores."""
    service = get_ranking_service()
    if not await service.has_ranks():
        return _calculation_pending(service)
    return await service.isolated_users()


@router.get("/isolated-users-pubkey", response_model=None)
async def isolated_users_pubkey() -> list[str] | JSONResponse:
    """Lowest-scored participants, identifiers only."""
    service = get_ranking_service()
    if not await service.has_ranks():
        return _calculation_pending(service)
    return [user["pubkey"] for user in await service.isolated_users()]
