"""Discovery of new participants from profile metadata."""

from nostr_rank.core.discovery.japanese import (
    contains_japanese,
    event_contains_japanese,
)
from nostr_rank.core.discovery.participant_collector import ParticipantCollector

__all__ = ["ParticipantCollector", "contains_japanese", "event_contains_japanese"]
