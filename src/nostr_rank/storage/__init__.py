"""Persistent storage for participants, ranks and activity."""

from nostr_rank.storage.base import RankStore
from nostr_rank.storage.sqlite_store import SQLiteRankStore

__all__ = ["RankStore", "SQLiteRankStore"]
