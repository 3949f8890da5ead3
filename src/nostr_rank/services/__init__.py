"""Application services shared by the CLI and web ports."""

from nostr_rank.services.ranking_service import (
    RankingRunResult,
    RankingService,
    RunStatus,
    create_ranking_service,
)
from nostr_rank.services.scheduler import PeriodicScheduler

__all__ = [
    "PeriodicScheduler",
    "RankingRunResult",
    "RankingService",
    "RunStatus",
    "create_ranking_service",
]
