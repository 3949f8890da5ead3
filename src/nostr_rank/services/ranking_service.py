"""Application service composing the ranking pipeline and collectors.

Both the web API and the CLI delegate to this service. It owns the
single-run token: at most one ranking run is in flight, and triggers
arriving meanwhile join it instead of starting another.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

from nostr_rank.config import RELAY_CLOSE_TIMEOUT_SECONDS, AppConfig
from nostr_rank.core.activity.last_posts import LastPostCollector
from nostr_rank.core.discovery.participant_collector import ParticipantCollector
from nostr_rank.core.graph.follow_resolver import FollowListResolver
from nostr_rank.core.graph.graph_builder import GraphBuilder
from nostr_rank.core.ranking.pagerank import PageRankEngine
from nostr_rank.core.ranking.rank_assembler import RankAssembler
from nostr_rank.core.ranking.result_types import RankRecord
from nostr_rank.core.roster import load_roster
from nostr_rank.relay.base import RelayGateway
from nostr_rank.relay.websocket_gateway import WebSocketRelayGateway
from nostr_rank.storage.base import RankStore
from nostr_rank.storage.sqlite_store import SQLiteRankStore

logger = logging.getLogger(__name__)

RunState = Literal["idle", "running", "succeeded", "failed", "cancelled"]


@dataclass(frozen=True)
class RunStatus:
    """Snapshot of the run token."""

    run_id: int = 0
    state: RunState = "idle"
    started_at: float | None = None
    finished_at: float | None = None
    last_error: str | None = None
    summary: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "state": self.state,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "last_error": self.last_error,
            "summary": self.summary,
        }


@dataclass(frozen=True)
class RankingRunResult:
    """Outcome of one completed ranking run."""

    run_id: int
    participants: int
    edges: int
    batches: int
    iterations: int
    converged: bool
    records: list[RankRecord] = field(default_factory=list, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "participants": self.participants,
            "edges": self.edges,
            "batches": self.batches,
            "iterations": self.iterations,
            "converged": self.converged,
        }


class RankingService:
    """Runs ranking, discovery and activity jobs against one store/gateway."""

    def __init__(
        self,
        store: RankStore,
        gateway: RelayGateway,
        config: AppConfig | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.store = store
        self.gateway = gateway

        fetch = self.config.fetch
        ranking = self.config.ranking
        resolver = FollowListResolver(gateway, timeout_seconds=fetch.timeout_seconds)
        self._graph_builder = GraphBuilder(resolver, batch_size=fetch.batch_size)
        self._engine = PageRankEngine(
            damping_factor=ranking.damping_factor,
            max_iterations=ranking.max_iterations,
            convergence_threshold=ranking.convergence_threshold,
        )
        self._assembler = RankAssembler(store, save_batch_size=ranking.save_batch_size)
        self._participant_collector = ParticipantCollector(
            gateway, store, discovery_hours=self.config.queries.discovery_hours
        )
        self._last_post_collector = LastPostCollector(
            gateway,
            store,
            batch_size=fetch.batch_size,
            timeout_seconds=fetch.timeout_seconds,
        )

        self._run_ids = itertools.count(1)
        self._status = RunStatus()
        self._current_run: asyncio.Task[RankingRunResult] | None = None
        self._background: set[asyncio.Task[Any]] = set()

    # Ranking runs

    @property
    def status(self) -> RunStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._current_run is not None and not self._current_run.done()

    def trigger_ranking(self) -> dict[str, Any]:
        """Start a ranking run in the background, or join the one in flight.

        Must be called from within a running event loop.

        Returns:
            ``{"status": "started" | "running", "run_id": n}``
        """
        if self.is_running:
            return {"status": "running", "run_id": self._status.run_id}

        run_id = next(self._run_ids)
        self._status = RunStatus(run_id=run_id, state="running", started_at=time.time())
        task = asyncio.create_task(self._execute_run(run_id), name=f"ranking-{run_id}")
        task.add_done_callback(self._consume_run_outcome)
        self._current_run = task
        return {"status": "started", "run_id": run_id}

    async def run_ranking(self) -> RankingRunResult:
        """Run ranking now and wait for the result.

        Raises:
            Exception: Whatever aborted the run (store failures, etc.)
        """
        self.trigger_ranking()
        assert self._current_run is not None
        return await asyncio.shield(self._current_run)

    async def compute_ranks(self, run_id: int = 0) -> RankingRunResult:
        """Roster -> follow graph -> PageRank -> rank records -> store."""
        roster = await load_roster(self.store)
        graph = await self._graph_builder.build(roster.pubkeys)
        result = self._engine.compute(graph.roster, graph.adjacency)
        records = self._assembler.assemble(result.scores, graph.roster, roster.npubs)
        await self._assembler.persist(records)

        logger.info("PageRank calculation and saving completed")
        return RankingRunResult(
            run_id=run_id,
            participants=len(graph.roster),
            edges=graph.edge_count,
            batches=len(graph.batch_sizes),
            iterations=result.iterations,
            converged=result.converged,
            records=records,
        )

    async def _execute_run(self, run_id: int) -> RankingRunResult:
        try:
            result = await self.compute_ranks(run_id)
        except Exception as e:
            logger.exception("Error calculating PageRank (run %d)", run_id)
            self._status = replace(
                self._status, state="failed", finished_at=time.time(), last_error=str(e)
            )
            raise

        self._status = replace(
            self._status,
            state="succeeded",
            finished_at=time.time(),
            last_error=None,
            summary=result.to_dict(),
        )
        return result

    def _consume_run_outcome(self, task: asyncio.Task[Any]) -> None:
        """Settle the run token once the run task is done.

        A cancelled run (possibly cancelled before it started) gets a terminal
        state here; a failed run's exception is retrieved so it is not
        reported as unhandled.
        """
        if not task.cancelled():
            task.exception()
            return

        if self._status.state == "running":
            logger.warning("Ranking run %d cancelled", self._status.run_id)
            self._status = replace(
                self._status,
                state="cancelled",
                finished_at=time.time(),
                last_error="cancelled",
            )

    # Collection jobs

    async def collect_participants(self) -> int:
        return await self._participant_collector.collect()

    async def collect_last_posts(self) -> int:
        roster = await load_roster(self.store)
        return await self._last_post_collector.collect(roster)

    def trigger_participant_collection(self) -> None:
        self._spawn(self.collect_participants(), "collect-participants")

    def trigger_last_post_collection(self) -> None:
        self._spawn(self.collect_last_posts(), "collect-last-posts")

    def _spawn(self, coro: Any, name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._finish_background)

    def _finish_background(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Background job %s failed: %s", task.get_name(), error)

    async def run_scheduled_jobs(self) -> dict[str, Any]:
        """Run discovery, ranking and activity collection concurrently.

        Each job fails independently; failures are logged and reported.
        """
        logger.info("Running scheduled tasks...")
        outcomes = await asyncio.gather(
            self.collect_participants(),
            self.run_ranking(),
            self.collect_last_posts(),
            return_exceptions=True,
        )

        report: dict[str, Any] = {}
        for name, outcome in zip(
            ("participants", "ranking", "last_posts"), outcomes, strict=True
        ):
            if isinstance(outcome, BaseException):
                logger.error("Scheduled job %s failed: %s", name, outcome)
                report[name] = {"status": "failed", "error": str(outcome)}
            elif isinstance(outcome, RankingRunResult):
                report[name] = {"status": "success", **outcome.to_dict()}
            else:
                report[name] = {"status": "success", "count": outcome}

        logger.info("Scheduled tasks completed")
        return report

    # Queries

    async def has_ranks(self) -> bool:
        return await self.store.count_ranks() > 0

    async def has_last_posts(self) -> bool:
        return await self.store.count_last_posts() > 0

    async def popular_users(self, limit: int | None = None) -> list[dict[str, Any]]:
        records = await self.store.top_ranks(limit or self.config.queries.limit)
        return [{"pubkey": r.pubkey, "score": r.score} for r in records]

    async def isolated_users(self, limit: int | None = None) -> list[dict[str, Any]]:
        records = await self.store.bottom_ranks(limit or self.config.queries.limit)
        return [{"pubkey": r.pubkey, "score": r.score} for r in records]

    async def new_users(self) -> list[str]:
        days = self.config.queries.new_user_days
        since = (datetime.now(UTC).date() - timedelta(days=days)).isoformat()
        return await self.store.new_participants(since)

    async def last_posts(self) -> list[dict[str, Any]]:
        return await self.store.last_posts()

    async def recent_isolated_users(
        self, limit: int | None = None
    ) -> list[dict[str, Any]]:
        since = int(time.time()) - self.config.queries.recent_days * 24 * 60 * 60
        return await self.store.recent_isolated(
            since, limit or self.config.queries.limit
        )

    async def close(self) -> None:
        """Cancel outstanding jobs and release the gateway."""
        tasks = [*self._background]
        if self._current_run is not None and not self._current_run.done():
            tasks.append(self._current_run)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self.gateway.close()


def create_ranking_service(config: AppConfig) -> RankingService:
    """Build a service backed by SQLite and the configured relays."""
    store = SQLiteRankStore(config.storage.database_path)
    gateway = WebSocketRelayGateway(
        config.fetch.relays,
        subscription_timeout=config.fetch.subscription_timeout_seconds,
        page_size=config.fetch.stream_page_size,
        close_timeout=RELAY_CLOSE_TIMEOUT_SECONDS,
    )
    return RankingService(store, gateway, config)
