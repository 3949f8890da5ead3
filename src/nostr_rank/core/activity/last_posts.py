"""Collects the latest text-note timestamp for each participant."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from nostr_rank.schemas.event import KIND_TEXT_NOTE, EventFilter

if TYPE_CHECKING:
    from nostr_rank.core.roster import Roster
    from nostr_rank.relay.base import RelayGateway
    from nostr_rank.storage.base import RankStore

logger = logging.getLogger(__name__)


class LastPostCollector:
    """Records when each roster member last posted, in bounded batches."""

    def __init__(
        self,
        gateway: RelayGateway,
        store: RankStore,
        batch_size: int = 10,
        timeout_seconds: float = 5.0,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._gateway = gateway
        self._store = store
        self._batch_size = batch_size
        self._timeout_seconds = timeout_seconds

    async def fetch_last_post_date(self, pubkey: str) -> int:
        """Unix time of the newest kind-1 event, or 0 if none/failed."""
        try:
            events = await asyncio.wait_for(
                self._gateway.fetch_latest(
                    EventFilter(kinds=[KIND_TEXT_NOTE], authors=[pubkey]), limit=1
                ),
                timeout=self._timeout_seconds,
            )
        except TimeoutError:
            logger.warning("Last post fetch for %s timed out", pubkey)
            return 0
        except Exception as e:
            logger.warning("Error fetching last post date for %s: %s", pubkey, e)
            return 0

        if not events:
            return 0
        return max(event.created_at for event in events)

    async def collect(self, roster: Roster) -> int:
        """Fetch and store last-post dates for the roster.

        Returns:
            Number of participants with a stored date
        """
        pubkeys = roster.pubkeys
        saved = 0
        logger.info("Fetching last post dates for %d users...", len(pubkeys))

        for start in range(0, len(pubkeys), self._batch_size):
            batch = pubkeys[start : start + self._batch_size]
            timestamps = await asyncio.gather(
                *(self.fetch_last_post_date(pubkey) for pubkey in batch)
            )

            for pubkey, timestamp in zip(batch, timestamps, strict=True):
                if timestamp > 0:
                    await self._store.save_last_post(roster.npubs[pubkey], timestamp)
                    saved += 1

            logger.info("Processed %d/%d users", start + len(batch), len(pubkeys))

        logger.info("Last post dates collection completed")
        return saved
