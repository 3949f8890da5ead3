"""API module for the nostr-rank web server."""

from nostr_rank.config import load_config
from nostr_rank.services.ranking_service import RankingService, create_ranking_service

_ranking_service: RankingService | None = None


def get_ranking_service() -> RankingService:
    """Get or create the shared RankingService instance."""
    global _ranking_service
    if _ranking_service is None:
        _ranking_service = create_ranking_service(load_config())
    return _ranking_service


def set_ranking_service(service: RankingService | None) -> None:
    """Install (or clear) the shared RankingService instance."""
    global _ranking_service
    _ranking_service = service
