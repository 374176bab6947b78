"""
Tests for Capability Utility Scoring

Tests confidence-weighted success, entropy bands, cost efficiency, weight
normalization and tie-breaking.
"""

import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from routing.capabilities import ALL_CAPABILITIES, Capability
from routing.performance import RoutePerformance
from routing.policy import RoutingPolicy, UtilityWeights
from routing.scoring import (
    ScoredCapability,
    UtilityScorer,
    capability_match,
    cost_efficiency,
    historical_success,
)


# Test Fixtures


@pytest.fixture
def scorer():
    """Scorer with default weights"""
    return UtilityScorer()


@pytest.fixture
def neutral_performance():
    """Neutral prior for every capability"""
    return {cap: RoutePerformance(capability=cap) for cap in ALL_CAPABILITIES}


# Component Tests


class TestComponents:
    """Test individual utility components"""

    def test_historical_success_untrusted_without_samples(self):
        perf = RoutePerformance(Capability.CODING, success_rate=1.0, sample_count=0)
        assert historical_success(perf) == pytest.approx(0.5)

    def test_historical_success_partial_confidence(self):
        perf = RoutePerformance(Capability.CODING, success_rate=0.9, sample_count=10)
        # confidence 0.5 -> halfway between 0.9 and neutral
        assert historical_success(perf) == pytest.approx(0.7)

    def test_historical_success_full_confidence(self):
        perf = RoutePerformance(Capability.CODING, success_rate=0.9, sample_count=500)
        assert historical_success(perf) == pytest.approx(0.9)

    @pytest.mark.parametrize(
        "capability,entropy,expected",
        [
            (Capability.ANALYSIS, 0.8, 1.0),
            (Capability.CODING, 0.8, 1.0),
            (Capability.RESEARCH, 0.8, 0.3),
            (Capability.RESEARCH, 0.5, 0.9),
            (Capability.ANALYSIS, 0.5, 0.7),
            (Capability.CREATIVE, 0.5, 0.5),
            (Capability.FAST_TASK, 0.2, 1.0),
            (Capability.CODING, 0.2, 0.6),
        ],
    )
    def test_capability_match_bands(self, capability, entropy, expected):
        assert capability_match(capability, entropy) == expected

    def test_capability_match_band_edges(self):
        # Bands are strict: 0.7 is medium, 0.4 is low
        assert capability_match(Capability.RESEARCH, 0.7) == 0.9
        assert capability_match(Capability.FAST_TASK, 0.4) == 1.0

    def test_cost_efficiency(self):
        assert cost_efficiency(RoutePerformance(Capability.RESEARCH, avg_tokens=0)) == 1.0
        assert cost_efficiency(
            RoutePerformance(Capability.RESEARCH, avg_tokens=1000)
        ) == pytest.approx(0.5)
        assert cost_efficiency(
            RoutePerformance(Capability.RESEARCH, avg_tokens=3000)
        ) == pytest.approx(0.25)


# Scorer Tests


class TestUtilityScorer:
    """Test weighted utility and selection"""

    def test_score_breakdown(self, scorer):
        perf = RoutePerformance(Capability.ANALYSIS, success_rate=0.9, sample_count=50)
        scored = scorer.score(Capability.ANALYSIS, perf, 0.8)

        assert scored.breakdown["historical_success"] == pytest.approx(0.9)
        assert scored.breakdown["capability_match"] == 1.0
        assert scored.breakdown["cost_efficiency"] == pytest.approx(0.5)
        assert scored.utility == pytest.approx(0.9 * 0.4 + 1.0 * 0.4 + 0.5 * 0.2)

    def test_missing_performance_scores_neutral(self, scorer):
        scored = scorer.score(Capability.CREATIVE, None, 0.9)

        assert scored.utility == 0.5
        assert scored.breakdown == {}

    def test_score_all_preserves_order(self, scorer, neutral_performance):
        candidates = [Capability.CODING, Capability.FAST_TASK, Capability.ANALYSIS]
        scored = scorer.score_all(candidates, neutral_performance, 0.5)

        assert [s.capability for s in scored] == candidates

    def test_first_seen_wins_ties(self, scorer, neutral_performance):
        scored = scorer.score_all(
            [Capability.CODING, Capability.ANALYSIS], neutral_performance, 0.9
        )

        assert scored[0].utility == pytest.approx(scored[1].utility)
        assert scorer.select_best(scored).capability == Capability.CODING

    def test_select_best_empty(self, scorer):
        assert scorer.select_best([]) is None

    def test_select_best_highest_utility(self, scorer):
        scored = [
            ScoredCapability(Capability.RESEARCH, 0.4, {}),
            ScoredCapability(Capability.CODING, 0.8, {}),
            ScoredCapability(Capability.CREATIVE, 0.6, {}),
        ]
        assert scorer.select_best(scored).capability == Capability.CODING

    def test_cheaper_capability_wins_when_otherwise_equal(self, scorer):
        performance = {
            Capability.ANALYSIS: RoutePerformance(Capability.ANALYSIS, avg_tokens=4000),
            Capability.CODING: RoutePerformance(Capability.CODING, avg_tokens=500),
        }
        scored = scorer.score_all([Capability.ANALYSIS, Capability.CODING], performance, 0.9)

        assert scorer.select_best(scored).capability == Capability.CODING


# Policy Tests


class TestPolicy:
    """Test routing policy configuration"""

    def test_default_weights(self):
        weights = UtilityWeights()
        assert weights.to_dict() == {
            "historical_success": 0.4,
            "capability_match": 0.4,
            "cost_efficiency": 0.2,
        }

    def test_weights_normalized(self):
        weights = UtilityWeights(historical_success=2, capability_match=2, cost_efficiency=1)

        assert weights.historical_success == pytest.approx(0.4)
        assert weights.cost_efficiency == pytest.approx(0.2)

    def test_zero_weights_restore_defaults(self):
        weights = UtilityWeights(0, 0, 0)
        assert weights.historical_success == 0.4

    def test_policy_clamps(self):
        policy = RoutingPolicy(exploration_rate=1.5, learning_rate=-1, max_agents=0)

        assert policy.exploration_rate == 1.0
        assert policy.learning_rate == 0.0
        assert policy.max_agents == 1

    def test_policy_from_env(self, monkeypatch):
        monkeypatch.setenv("ROUTING_EXPLORATION_RATE", "0.25")
        monkeypatch.setenv("ROUTING_MAX_AGENTS", "3")
        monkeypatch.setenv("ROUTING_WEIGHT_COST", "0.2")

        policy = RoutingPolicy.from_env()

        assert policy.exploration_rate == 0.25
        assert policy.max_agents == 3
        assert policy.utility_weights.cost_efficiency == pytest.approx(0.2)
