"""Tests for PageRankEngine."""

import pytest

from nostr_rank.core.ranking.pagerank import PageRankEngine


class TestPageRankEngineInit:
    """Test parameter validation."""

    def test_defaults(self) -> None:
        engine = PageRankEngine()

        assert engine.damping_factor == 0.85
        assert engine.max_iterations == 100
        assert engine.convergence_threshold == 0.0001

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"damping_factor": 0.0},
            {"damping_factor": 1.0},
            {"max_iterations": 0},
            {"convergence_threshold": 0.0},
        ],
    )
    def test_rejects_invalid_parameters(self, kwargs: dict[str, float]) -> None:
        with pytest.raises(ValueError):
            PageRankEngine(**kwargs)  # type: ignore[arg-type]


class TestPageRankEngineCompute:
    """Test the power iteration."""

    def test_empty_roster(self) -> None:
        result = PageRankEngine().compute([], {})

        assert result.scores == {}
        assert result.iterations == 0
        assert result.converged

    def test_no_edges_gives_teleport_only(self) -> None:
        roster = ["a", "b", "c", "d"]

        result = PageRankEngine().compute(roster, {node: [] for node in roster})

        for score in result.scores.values():
            assert score == pytest.approx(0.15 / 4)
        assert result.converged
        assert result.iterations == 2

    def test_cycle_gives_equal_scores(self) -> None:
        result = PageRankEngine().compute(
            ["a", "b", "c"], {"a": ["b"], "b": ["c"], "c": ["a"]}
        )

        assert result.scores["a"] == pytest.approx(1 / 3)
        assert result.scores["b"] == pytest.approx(result.scores["a"])
        assert result.scores["c"] == pytest.approx(result.scores["a"])
        assert result.converged

    def test_single_link(self) -> None:
        result = PageRankEngine().compute(["a", "b"], {"a": ["b"], "b": []})

        assert result.scores["a"] == pytest.approx(0.075)
        assert result.scores["b"] == pytest.approx(0.075 + 0.85 * 0.075)
        assert result.iterations == 3

    def test_followed_node_outranks_followers(self) -> None:
        result = PageRankEngine().compute(
            ["hub", "x", "y", "z"], {"x": ["hub"], "y": ["hub"], "z": ["hub", "x"]}
        )

        scores = result.scores
        assert scores["hub"] > scores["x"] > scores["y"]
        assert scores["y"] == pytest.approx(scores["z"])

    def test_targets_outside_roster_do_not_matter(self) -> None:
        roster = ["a", "b", "c"]
        inside = {"a": ["b"], "b": ["c", "a"], "c": []}
        with_outsiders = {
            "a": ["b", "stranger"],
            "b": ["c", "ghost", "a"],
            "c": ["ghost"],
            "ghost": ["a"],
        }

        engine = PageRankEngine()
        assert engine.compute(roster, with_outsiders).scores == pytest.approx(
            engine.compute(roster, inside).scores
        )

    def test_repeated_targets_count_once(self) -> None:
        engine = PageRankEngine()

        repeated = engine.compute(["a", "b", "c"], {"a": ["b", "b", "c"]})
        single = engine.compute(["a", "b", "c"], {"a": ["b", "c"]})

        assert repeated.scores == single.scores

    def test_respects_iteration_cap(self) -> None:
        engine = PageRankEngine(max_iterations=1, convergence_threshold=1e-12)

        result = engine.compute(["a", "b"], {"a": ["b"]})

        assert result.iterations == 1
        assert not result.converged

    def test_never_exceeds_default_cap(self) -> None:
        roster = [f"n{i}" for i in range(30)]
        adjacency = {
            node: [roster[(i * 7 + 3) % 30], roster[(i + 1) % 30]]
            for i, node in enumerate(roster)
        }

        result = PageRankEngine().compute(roster, adjacency)

        assert 1 <= result.iterations <= 100

    def test_deterministic(self) -> None:
        roster = [f"n{i}" for i in range(20)]
        adjacency = {node: [roster[(i * 3) % 20]] for i, node in enumerate(roster)}
        engine = PageRankEngine()

        first = engine.compute(roster, adjacency)
        second = engine.compute(roster, adjacency)

        for node in roster:
            assert abs(first.scores[node] - second.scores[node]) <= 1e-9

    def test_scores_are_positive_and_bounded(self) -> None:
        roster = ["a", "b", "c"]

        result = PageRankEngine().compute(roster, {"a": ["b"], "b": ["a"]})

        assert all(score >= 0.15 / 3 for score in result.scores.values())
        assert sum(result.scores.values()) <= 1.0 + 1e-9

    def test_to_dict(self) -> None:
        result = PageRankEngine().compute(["a"], {})

        assert result.to_dict() == {
            "participants": 1,
            "iterations": result.iterations,
            "converged": True,
            "delta": result.delta,
        }
