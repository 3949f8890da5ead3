"""Registers participants whose recent profile metadata is Japanese."""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from nostr_rank.core.discovery.japanese import event_contains_japanese
from nostr_rank.identity.codec import encode_npub
from nostr_rank.schemas.event import KIND_METADATA, EventFilter

if TYPE_CHECKING:
    from nostr_rank.relay.base import RelayGateway
    from nostr_rank.storage.base import RankStore

logger = logging.getLogger(__name__)


class ParticipantCollector:
    """Scans recent kind-0 events and adds unseen Japanese-speaking authors."""

    def __init__(
        self,
        gateway: RelayGateway,
        store: RankStore,
        discovery_hours: int = 24,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._discovery_hours = discovery_hours

    async def collect(self) -> int:
        """Stream recent profiles and register new participants.

        Returns:
            Number of participants added
        """
        since = int(time.time()) - self._discovery_hours * 60 * 60
        registration_date = datetime.now(UTC).date().isoformat()
        added = 0

        event_filter = EventFilter(kinds=[KIND_METADATA], since=since)
        async for event in self._gateway.fetch_stream(event_filter):
            if not event_contains_japanese(event):
                continue

            try:
                npub = encode_npub(event.pubkey)
            except ValueError as e:
                logger.warning("Skipping event with bad pubkey: %s", e)
                continue

            logger.debug("Found Japanese user: %s", npub)
            try:
                inserted = await self._store.add_participant(
                    npub, registration_date, existing_user=False
                )
            except Exception as e:
                logger.error("Error processing pubkey %s: %s", npub, e)
                continue

            if inserted:
                added += 1
                logger.info("Added new user with pubkey: %s", npub)

        logger.info("Participant discovery finished, %d added", added)
        return added
