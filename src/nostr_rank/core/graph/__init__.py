"""Follow graph construction."""

from nostr_rank.core.graph.follow_resolver import FollowListResolver
from nostr_rank.core.graph.graph_builder import FollowGraph, GraphBuilder

__all__ = ["FollowGraph", "FollowListResolver", "GraphBuilder"]
