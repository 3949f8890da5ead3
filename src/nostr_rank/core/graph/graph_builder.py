"""Batched construction of the roster follow graph."""

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from nostr_rank.core.graph.follow_resolver import FollowListResolver

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10


def roster_targets(follows: Iterable[str], members: frozenset[str]) -> tuple[str, ...]:
    """Keep targets inside the roster, collapsing duplicates in first-seen order."""
    return tuple(dict.fromkeys(target for target in follows if target in members))


@dataclass(frozen=True)
class FollowGraph:
    """Adjacency mapping restricted to roster members.

    Every roster key is present; members without a resolvable follow
    list map to an empty tuple.
    """

    roster: tuple[str, ...]
    adjacency: dict[str, tuple[str, ...]]
    batch_sizes: tuple[int, ...] = field(default=())

    @property
    def edge_count(self) -> int:
        return sum(len(targets) for targets in self.adjacency.values())


class GraphBuilder:
    """Resolves follow lists for a roster in fixed-size concurrent batches.

    At most ``batch_size`` relay requests are in flight at any time. A batch
    must complete entirely before the next one starts. Each batch writes
    only to the result slots of its own roster positions.
    """

    def __init__(
        self, resolver: FollowListResolver, batch_size: int = DEFAULT_BATCH_SIZE
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._resolver = resolver
        self._batch_size = batch_size

    async def build(self, roster: Sequence[str]) -> FollowGraph:
        nodes = tuple(roster)
        members = frozenset(nodes)
        slots: list[tuple[str, ...]] = [()] * len(nodes)
        batch_sizes: list[int] = []

        logger.info("Fetching follow lists for %d participants...", len(nodes))

        for start in range(0, len(nodes), self._batch_size):
            batch = nodes[start : start + self._batch_size]
            follow_lists = await asyncio.gather(
                *(self._resolver.resolve(pubkey) for pubkey in batch)
            )

            for offset, follows in enumerate(follow_lists):
                slots[start + offset] = roster_targets(follows, members)

            batch_sizes.append(len(batch))
            logger.info("Processed %d/%d participants", start + len(batch), len(nodes))

        adjacency = {pubkey: slots[index] for index, pubkey in enumerate(nodes)}
        return FollowGraph(
            roster=nodes, adjacency=adjacency, batch_sizes=tuple(batch_sizes)
        )
