"""Japanese-text heuristic for profile metadata events."""

import json
import re

from nostr_rank.schemas.event import KIND_METADATA, Event

# Hiragana, Katakana without ツ (U+30C4, common in kaomoji), CJK ideographs
JAPANESE_PATTERN = re.compile(r"[\u3040-\u309F\u30A0-\u30C3\u30C5-\u30FF\u4E00-\u9FAF]")

PROFILE_TEXT_FIELDS = ("name", "about", "display_name", "displayName")


def contains_japanese(text: str) -> bool:
    return bool(JAPANESE_PATTERN.search(text))


def event_contains_japanese(event: Event) -> bool:
    """Whether a metadata event's profile text looks Japanese.

    Only kind-0 events qualify. Falls back to the raw content when it is
    not valid JSON.
    """
    if event.kind != KIND_METADATA or not event.content:
        return False

    try:
        profile = json.loads(event.content)
    except json.JSONDecodeError:
        return contains_japanese(event.content)

    if not isinstance(profile, dict):
        return False

    return any(
        isinstance(profile.get(key), str) and contains_japanese(profile[key])
        for key in PROFILE_TEXT_FIELDS
    )
