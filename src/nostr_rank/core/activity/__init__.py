"""Participant activity tracking."""

from nostr_rank.core.activity.last_posts import LastPostCollector

__all__ = ["LastPostCollector"]
