"""Typed results of the ranking pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PageRankResult:
    """Score vector plus how the power iteration ended.

    ``converged`` is False when the iteration cap was hit first; the
    scores are still the final iterate.
    """

    scores: dict[str, float]
    iterations: int
    converged: bool
    delta: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "participants": len(self.scores),
            "iterations": self.iterations,
            "converged": self.converged,
            "delta": self.delta,
        }


@dataclass(frozen=True)
class RankRecord:
    """One stored row: participant identifier, score and 1-based rank."""

    pubkey: str
    score: float
    rank: int

    def to_dict(self) -> dict[str, Any]:
        return {"pubkey": self.pubkey, "score": self.score, "rank": self.rank}
