"""Activity (last post) endpoints."""

from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from nostr_rank.services.ranking_service import RankingService
from nostr_rank.web.api import get_ranking_service
from nostr_rank.web.api.ranks import CALCULATION_STARTED

router = APIRouter(tags=["activity"])

COLLECTION_STARTED = (
    "Last post dates collection started. Please try again in a few minutes."
)


async def _pending_job(service: RankingService) -> JSONResponse | None:
    """Start whichever prerequisite data is missing, if any."""
    if not await service.has_ranks():
        service.trigger_ranking()
        return JSONResponse(status_code=202, content={"message": CALCULATION_STARTED})
    if not await service.has_last_posts():
        service.trigger_last_post_collection()
        return JSONResponse(status_code=202, content={"message": COLLECTION_STARTED})
    return None


@router.get("/collect-last-posts")
async def collect_last_posts() -> dict[str, Any]:
    """Start collecting last post dates for every participant."""
    service = get_ranking_service()
    service.trigger_last_post_collection()
    return {"message": "Last post dates collection started"}


@router.get("/last-posts", response_model=None)
async def last_posts() -> list[dict[str, Any]] | JSONResponse:
    """All participants with a known last post date, newest first."""
    service = get_ranking_service()
    if not await service.has_last_posts():
        service.trigger_last_post_collection()
        return JSONResponse(status_code=202, content={"message": COLLECTION_STARTED})
    return await service.last_posts()


@router.get("/recent-isolated-users", response_model=None)
async def recent_isolated_users() -> list[dict[str, Any]] | JSONResponse:
    """Recently active participants with the lowest scores."""
    service = get_ranking_service()
    pending = await _pending_job(service)
    if pending is not None:
        return pending
    return await service.recent_isolated_users()


@router.get("/recent-isolated-users-pubkey", response_model=None)
async def recent_isolated_users_pubkey() -> list[str] | JSONResponse:
    service = get_ranking_service()
    pending = await _pending_job(service)
    if pending is not None:
        return pending
    return [user["pubkey"] for user in await service.recent_isolated_users()]
