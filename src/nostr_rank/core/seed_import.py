"""Import of pre-existing participants from an npub list file."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from nostr_rank.identity.codec import NPUB_PREFIX

if TYPE_CHECKING:
    from nostr_rank.storage.base import RankStore

logger = logging.getLogger(__name__)

# "12. npub1..." (numbered list) and "12 | npub1..." (table dump)
LINE_PREFIX_PATTERN = re.compile(r"^\s*\d+(?:\.\s*|\s+\|\s+)")


def clean_seed_lines(lines: Iterable[str]) -> list[str]:
    """Strip numbering, drop blank and non-npub lines, keep first occurrences."""
    cleaned: dict[str, None] = {}
    for line in lines:
        candidate = LINE_PREFIX_PATTERN.sub("", line).strip()
        if candidate.startswith(NPUB_PREFIX):
            cleaned.setdefault(candidate, None)
    return list(cleaned)


async def import_participants(store: RankStore, npubs: Iterable[str]) -> int:
    """Insert npubs as existing participants. Returns the number inserted."""
    registration_date = datetime.now(UTC).date().isoformat()
    npub_list = list(npubs)
    inserted = 0

    for position, npub in enumerate(npub_list, start=1):
        if await store.add_participant(npub, registration_date, existing_user=True):
            inserted += 1
        if position % 10 == 0 or position == len(npub_list):
            logger.info("Processed %d/%d pubkeys", position, len(npub_list))

    return inserted


async def import_seed_file(store: RankStore, path: str | Path) -> int:
    """Read ``path`` and import every npub it lists."""
    text = Path(path).read_text(encoding="utf-8")
    npubs = clean_seed_lines(text.splitlines())
    logger.info("Importing %d pubkeys from %s", len(npubs), path)
    return await import_participants(store, npubs)
