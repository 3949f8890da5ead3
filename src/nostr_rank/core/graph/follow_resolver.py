"""Resolution of a participant's most recent follow list."""

import asyncio
import logging

from nostr_rank.relay.base import RelayGateway
from nostr_rank.schemas.event import KIND_CONTACT_LIST, EventFilter

logger = logging.getLogger(__name__)


class FollowListResolver:
    """Fetches the latest contact-list event for one participant.

    Any failure (timeout, relay error, malformed data) yields an empty
    follow list so a single participant never aborts a batch.
    """

    def __init__(self, gateway: RelayGateway, timeout_seconds: float = 5.0) -> None:
        self._gateway = gateway
        self._timeout_seconds = timeout_seconds

    async def resolve(self, pubkey: str) -> list[str]:
        """Return followed public keys in declaration order (may repeat)."""
        try:
            return await asyncio.wait_for(
                self._fetch_follow_list(pubkey), timeout=self._timeout_seconds
            )
        except TimeoutError:
            logger.warning(
                "Follow list fetch for %s timed out after %.1fs",
                pubkey,
                self._timeout_seconds,
            )
        except Exception as e:
            logger.warning("Error fetching follow list for %s: %s", pubkey, e)
        return []

    async def _fetch_follow_list(self, pubkey: str) -> list[str]:
        events = await self._gateway.fetch_latest(
            EventFilter(kinds=[KIND_CONTACT_LIST], authors=[pubkey]), limit=1
        )
        if not events:
            return []

        latest = max(events, key=lambda event: event.created_at)
        return latest.followed_pubkeys()
