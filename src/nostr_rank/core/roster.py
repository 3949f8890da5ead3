"""Loading the participant roster for a ranking run."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from nostr_rank.identity.codec import NPUB_PREFIX, DecodeError, decode_npub

if TYPE_CHECKING:
    from nostr_rank.storage.base import RankStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Roster:
    """Ordered participant keys plus the identifiers they were read from."""

    pubkeys: tuple[str, ...]
    npubs: dict[str, str]

    def __len__(self) -> int:
        return len(self.pubkeys)


def build_roster(identifiers: Iterable[object]) -> Roster:
    """Decode stored identifiers, skipping anything that is not a valid npub.

    Duplicates keep their first position.
    """
    pubkeys: list[str] = []
    npubs: dict[str, str] = {}

    for identifier in identifiers:
        if not identifier or not isinstance(identifier, str):
            continue
        if not identifier.startswith(NPUB_PREFIX):
            continue
        try:
            pubkey = decode_npub(identifier)
        except DecodeError as e:
            logger.error("Error decoding npub %s: %s", identifier, e)
            continue
        if pubkey in npubs:
            continue
        pubkeys.append(pubkey)
        npubs[pubkey] = identifier

    return Roster(pubkeys=tuple(pubkeys), npubs=npubs)


async def load_roster(store: RankStore) -> Roster:
    """Read every participant from the store and decode the roster."""
    identifiers = await store.list_participants()
    roster = build_roster(identifiers)
    skipped = len(identifiers) - len(roster)
    if skipped:
        logger.info("Skipped %d unusable participant identifier(s)", skipped)
    return roster
