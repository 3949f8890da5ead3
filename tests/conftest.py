"""Shared fixtures for the nostr-rank test suite."""

from pathlib import Path

import pytest

from nostr_rank.identity.codec import encode_npub
from nostr_rank.storage.sqlite_store import SQLiteRankStore
from tests.fakes import make_pubkey


@pytest.fixture
def store(tmp_path: Path) -> SQLiteRankStore:
    """Fresh SQLite store in a temporary directory."""
    return SQLiteRankStore(tmp_path / "ranks.db")


@pytest.fixture
def pubkeys() -> list[str]:
    """Five deterministic hex public keys."""
    return [make_pubkey(n) for n in range(1, 6)]


@pytest.fixture
def npubs(pubkeys: list[str]) -> list[str]:
    """The npub identifiers of ``pubkeys``, in the same order."""
    return [encode_npub(pubkey) for pubkey in pubkeys]
