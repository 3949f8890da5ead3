"""Turns a score vector into ordered rank records and persists them."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from nostr_rank.core.ranking.result_types import RankRecord

if TYPE_CHECKING:
    from nostr_rank.storage.base import RankStore

logger = logging.getLogger(__name__)

DEFAULT_SAVE_BATCH_SIZE = 100


class RankAssembler:
    """Sorts scores descending and assigns 1-based ranks.

    Equal scores are ordered by participant key so the assignment is
    reproducible across runs.
    """

    def __init__(
        self, store: RankStore, save_batch_size: int = DEFAULT_SAVE_BATCH_SIZE
    ) -> None:
        if save_batch_size < 1:
            raise ValueError(f"save_batch_size must be positive, got {save_batch_size}")
        self._store = store
        self._save_batch_size = save_batch_size

    @staticmethod
    def assemble(
        scores: Mapping[str, float],
        roster: Sequence[str],
        identifiers: Mapping[str, str] | None = None,
    ) -> list[RankRecord]:
        """Build rank records for every roster member.

        Args:
            scores: Key -> score; members missing here score 0
            roster: Participant keys to rank
            identifiers: Optional key -> external identifier used in records

        Returns:
            Records sorted by score descending, rank 1 first
        """
        identifiers = identifiers or {}
        entries = [
            (pubkey, scores.get(pubkey, 0.0)) for pubkey in dict.fromkeys(roster)
        ]
        entries.sort(key=lambda entry: (-entry[1], entry[0]))

        return [
            RankRecord(pubkey=identifiers.get(pubkey, pubkey), score=score, rank=rank)
            for rank, (pubkey, score) in enumerate(entries, start=1)
        ]

    async def persist(self, records: Sequence[RankRecord]) -> None:
        """Replace all stored ranks with ``records``."""
        await self._store.replace_ranks(records, batch_size=self._save_batch_size)
        logger.info("Saved %d rank records", len(records))
