"""PageRank scoring and rank assignment."""

from nostr_rank.core.ranking.pagerank import PageRankEngine
from nostr_rank.core.ranking.rank_assembler import RankAssembler
from nostr_rank.core.ranking.result_types import PageRankResult, RankRecord

__all__ = ["PageRankEngine", "PageRankResult", "RankAssembler", "RankRecord"]
