"""Abstract store interface used by the ranking pipeline and the web API."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from nostr_rank.core.ranking.result_types import RankRecord


class RankStore(ABC):
    """Async access to participants, rank records and last-post dates."""

    # Participants

    @abstractmethod
    async def list_participants(self) -> list[str]:
        """All stored participant identifiers, in insertion order."""
        pass

    @abstractmethod
    async def participant_exists(self, pubkey: str) -> bool:
        pass

    @abstractmethod
    async def add_participant(
        self, pubkey: str, registration_date: str, existing_user: bool
    ) -> bool:
        """Insert a participant unless present. Returns True if inserted."""
        pass

    @abstractmethod
    async def new_participants(self, since_date: str) -> list[str]:
        """Discovered (non-imported) participants registered on/after a date."""
        pass

    # Ranks

    @abstractmethod
    async def replace_ranks(
        self, records: Sequence[RankRecord], batch_size: int = 100
    ) -> None:
        """Atomically clear all rank records and write ``records``."""
        pass

    @abstractmethod
    async def count_ranks(self) -> int:
        pass

    @abstractmethod
    async def top_ranks(self, limit: int) -> list[RankRecord]:
        """Highest scores first."""
        pass

    @abstractmethod
    async def bottom_ranks(self, limit: int) -> list[RankRecord]:
        """Lowest scores first."""
        pass

    # Activity

    @abstractmethod
    async def save_last_post(self, pubkey: str, last_post_date: int) -> None:
        pass

    @abstractmethod
    async def count_last_posts(self) -> int:
        pass

    @abstractmethod
    async def last_posts(self) -> list[dict[str, Any]]:
        """``{"pubkey", "last_post_date"}`` rows, newest first."""
        pass

    @abstractmethod
    async def recent_isolated(self, since: int, limit: int) -> list[dict[str, Any]]:
        """Lowest-scored participants who posted after ``since``."""
        pass
