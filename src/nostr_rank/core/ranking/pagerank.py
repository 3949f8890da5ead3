"""Power-iteration PageRank over the roster follow graph."""

import logging
from collections.abc import Iterable, Mapping, Sequence

from nostr_rank.core.ranking.result_types import PageRankResult

logger = logging.getLogger(__name__)


class PageRankEngine:
    """Computes PageRank scores with damping and an iteration cap.

    Nodes without roster-internal out-links (dangling nodes) do not pass
    their mass on, and the result is not renormalized, so scores may sum
    to less than 1.
    """

    DEFAULT_DAMPING_FACTOR = 0.85
    DEFAULT_MAX_ITERATIONS = 100
    DEFAULT_CONVERGENCE_THRESHOLD = 0.0001

    def __init__(
        self,
        damping_factor: float = DEFAULT_DAMPING_FACTOR,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        convergence_threshold: float = DEFAULT_CONVERGENCE_THRESHOLD,
    ) -> None:
        """Initialize the engine.

        Args:
            damping_factor: Probability of following a link instead of restarting
            max_iterations: Hard cap on power iterations
            convergence_threshold: Stop once the L1 change drops below this
        """
        if not 0.0 < damping_factor < 1.0:
            raise ValueError(f"damping_factor must be in (0, 1), got {damping_factor}")
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be positive, got {max_iterations}")
        if convergence_threshold <= 0.0:
            raise ValueError(
                f"convergence_threshold must be positive, got {convergence_threshold}"
            )
        self.damping_factor = damping_factor
        self.max_iterations = max_iterations
        self.convergence_threshold = convergence_threshold

    def compute(
        self,
        roster: Sequence[str],
        adjacency: Mapping[str, Iterable[str]],
    ) -> PageRankResult:
        """Score every roster member.

        Args:
            roster: Participant keys; defines N and the output keys
            adjacency: Source key -> followed keys. Sources or targets outside
                the roster are ignored and repeated targets count once.

        Returns:
            Final scores with iteration count and convergence flag
        """
        nodes = list(dict.fromkeys(roster))
        n = len(nodes)
        if n == 0:
            return PageRankResult(scores={}, iterations=0, converged=True, delta=0.0)

        index = {node: i for i, node in enumerate(nodes)}
        incoming, out_degree = self._link_structure(index, adjacency)

        d = self.damping_factor
        teleport = (1.0 - d) / n
        scores = [1.0 / n] * n
        delta = 0.0
        iterations = 0
        converged = False

        for iteration in range(1, self.max_iterations + 1):
            new_scores = [0.0] * n
            for node in range(n):
                inflow = 0.0
                for source in incoming[node]:
                    inflow += scores[source] / out_degree[source]
                new_scores[node] = teleport + d * inflow

            delta = sum(abs(new - old) for new, old in zip(new_scores, scores))
            scores = new_scores
            iterations = iteration

            if delta < self.convergence_threshold:
                converged = True
                break

        if converged:
            logger.info("PageRank converged after %d iterations", iterations)
        else:
            logger.info(
                "PageRank stopped at iteration cap %d (delta=%.6f)", iterations, delta
            )

        return PageRankResult(
            scores={node: scores[i] for i, node in enumerate(nodes)},
            iterations=iterations,
            converged=converged,
            delta=delta,
        )

    @staticmethod
    def _link_structure(
        index: Mapping[str, int], adjacency: Mapping[str, Iterable[str]]
    ) -> tuple[list[list[int]], list[int]]:
        """Build reverse adjacency and roster-internal out-degree by position."""
        incoming: list[list[int]] = [[] for _ in index]
        out_degree = [0] * len(index)

        for source, targets in adjacency.items():
            src = index.get(source)
            if src is None:
                continue
            for target in dict.fromkeys(targets):
                dst = index.get(target)
                if dst is None:
                    continue
                incoming[dst].append(src)
                out_degree[src] += 1

        return incoming, out_degree
