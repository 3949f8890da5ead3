"""SQLite implementation of the rank store.

Every operation opens its own connection inside a worker thread so the
event loop is never blocked on disk I/O.
"""

import asyncio
import logging
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from nostr_rank.core.ranking.result_types import RankRecord
from nostr_rank.storage.base import RankStore

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS participants (
    pubkey TEXT PRIMARY KEY,
    registration_date TEXT NOT NULL,
    existing_user INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS ranks (
    pubkey TEXT PRIMARY KEY,
    score REAL NOT NULL,
    rank INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_ranks_score ON ranks (score);
CREATE TABLE IF NOT EXISTS last_posts (
    pubkey TEXT PRIMARY KEY,
    last_post_date INTEGER NOT NULL
);
"""


class SQLiteRankStore(RankStore):
    """File-backed store using the standard library sqlite3 driver."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._init_schema()
        logger.debug("SQLite store ready at %s", self.db_path)

    def _init_schema(self) -> None:
        if self.db_path.parent != Path("."):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connection() as conn:
            conn.executescript(SCHEMA)

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Connection that commits on success and rolls back on error."""
        conn = sqlite3.connect(str(self.db_path))
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[tuple[Any, ...]]:
        with self._connection() as conn:
            return conn.execute(sql, params).fetchall()

    def _fetch_count(self, table: str) -> int:
        rows = self._fetch_all(f"SELECT COUNT(*) FROM {table}")
        return int(rows[0][0])

    # Participants

    async def list_participants(self) -> list[str]:
        rows = await asyncio.to_thread(
            self._fetch_all, "SELECT pubkey FROM participants ORDER BY rowid"
        )
        return [row[0] for row in rows]

    async def participant_exists(self, pubkey: str) -> bool:
        rows = await asyncio.to_thread(
            self._fetch_all,
            "SELECT 1 FROM participants WHERE pubkey = ?",
            (pubkey,),
        )
        return bool(rows)

    def _insert_participant(
        self, pubkey: str, registration_date: str, existing_user: bool
    ) -> bool:
        with self._connection() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO participants "
                "(pubkey, registration_date, existing_user) VALUES (?, ?, ?)",
                (pubkey, registration_date, int(existing_user)),
            )
            return cursor.rowcount > 0

    async def add_participant(
        self, pubkey: str, registration_date: str, existing_user: bool
    ) -> bool:
        return await asyncio.to_thread(
            self._insert_participant, pubkey, registration_date, existing_user
        )

    async def new_participants(self, since_date: str) -> list[str]:
        rows = await asyncio.to_thread(
            self._fetch_all,
            "SELECT pubkey FROM participants "
            "WHERE registration_date >= ? AND existing_user = 0 ORDER BY rowid",
            (since_date,),
        )
        return [row[0] for row in rows]

    # Ranks

    def _write_ranks(self, records: Sequence[RankRecord], batch_size: int) -> None:
        rows = [(r.pubkey, r.score, r.rank) for r in records]
        with self._connection() as conn:
            conn.execute("DELETE FROM ranks")
            for start in range(0, len(rows), batch_size):
                batch = rows[start : start + batch_size]
                conn.executemany(
                    "INSERT INTO ranks (pubkey, score, rank) VALUES (?, ?, ?)", batch
                )
                logger.debug("Saved %d/%d scores", start + len(batch), len(rows))

    async def replace_ranks(
        self, records: Sequence[RankRecord], batch_size: int = 100
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        await asyncio.to_thread(self._write_ranks, list(records), batch_size)

    async def count_ranks(self) -> int:
        return await asyncio.to_thread(self._fetch_count, "ranks")

    async def top_ranks(self, limit: int) -> list[RankRecord]:
        rows = await asyncio.to_thread(
            self._fetch_all,
            "SELECT pubkey, score, rank FROM ranks ORDER BY score DESC, rank ASC "
            "LIMIT ?",
            (limit,),
        )
        return [RankRecord(pubkey=p, score=s, rank=r) for p, s, r in rows]

    async def bottom_ranks(self, limit: int) -> list[RankRecord]:
        rows = await asyncio.to_thread(
            self._fetch_all,
            "SELECT pubkey, score, rank FROM ranks ORDER BY score ASC, rank DESC "
            "LIMIT ?",
            (limit,),
        )
        return [RankRecord(pubkey=p, score=s, rank=r) for p, s, r in rows]

    # Activity

    def _upsert_last_post(self, pubkey: str, last_post_date: int) -> None:
        with self._connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO last_posts (pubkey, last_post_date) "
                "VALUES (?, ?)",
                (pubkey, last_post_date),
            )

    async def save_last_post(self, pubkey: str, last_post_date: int) -> None:
        await asyncio.to_thread(self._upsert_last_post, pubkey, last_post_date)

    async def count_last_posts(self) -> int:
        return await asyncio.to_thread(self._fetch_count, "last_posts")

    async def last_posts(self) -> list[dict[str, Any]]:
        rows = await asyncio.to_thread(
            self._fetch_all,
            "SELECT pubkey, last_post_date FROM last_posts "
            "ORDER BY last_post_date DESC",
        )
        return [{"pubkey": p, "last_post_date": d} for p, d in rows]

    async def recent_isolated(self, since: int, limit: int) -> list[dict[str, Any]]:
        rows = await asyncio.to_thread(
            self._fetch_all,
            """
            SELECT lp.pubkey, lp.last_post_date, r.score
            FROM (
                SELECT pubkey, last_post_date FROM last_posts
                WHERE last_post_date > ?
            ) lp
            JOIN ranks r ON lp.pubkey = r.pubkey
            ORDER BY r.score ASC
            LIMIT ?
            """,
            (since, limit),
        )
        return [
            {"pubkey": p, "last_post_date": d, "score": s} for p, d, s in rows
        ]
