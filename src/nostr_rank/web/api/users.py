"""Participant discovery endpoints."""

from typing import Any

from fastapi import APIRouter

from nostr_rank.web.api import get_ranking_service

router = APIRouter(tags=["users"])


@router.get("/collect-japanese-users")
async def collect_japanese_users() -> dict[str, Any]:
    """Start scanning recent profiles for new Japanese-speaking participants."""
    service = get_ranking_service()
    service.trigger_participant_collection()
    return {"message": "Collection process started"}


@router.get("/new-users")
async def new_users() -> list[str]:
    """Participants discovered recently (not part of the imported seed list)."""
    service = get_ranking_service()
    return await service.new_users()


@router.get("/new-users-pubkey")
async def new_users_pubkey() -> list[str]:
    service = get_ranking_service()
    return await service.new_users()
