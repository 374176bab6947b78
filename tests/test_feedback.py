"""
Tests for Execution Feedback and Entropy Scoring

Tests outcome normalization, reward calculation and the lexical entropy
heuristic.
"""

import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cortex.experience import Experience
from routing.capabilities import Capability, coerce_capability
from routing.entropy import LexicalEntropyScorer
from routing.feedback import ExecutionOutcome, calculate_outcome_reward


# Test Fixtures


@pytest.fixture
def scorer():
    """Default lexical scorer"""
    return LexicalEntropyScorer()


class TestExecutionOutcome:
    """Test outcome normalization"""

    def test_values_clamped(self):
        outcome = ExecutionOutcome(success=1, tokens_used=-5, latency_ms=-1, quality=1.7)

        assert outcome.success is True
        assert outcome.tokens_used == 0
        assert outcome.latency_ms == 0.0
        assert outcome.quality == 1.0

    def test_from_camel_case(self):
        outcome = ExecutionOutcome.from_dict(
            {"success": True, "tokensUsed": 1200, "latencyMs": 340.5, "quality": 0.8}
        )

        assert outcome.tokens_used == 1200
        assert outcome.latency_ms == 340.5
        assert outcome.quality == 0.8

    def test_from_snake_case(self):
        outcome = ExecutionOutcome.from_dict(
            {"success": False, "tokens_used": 50, "latency_ms": 10}
        )

        assert not outcome.success
        assert outcome.tokens_used == 50

    def test_garbage_numbers_fall_back(self):
        outcome = ExecutionOutcome.from_dict({"success": True, "tokensUsed": "lots"})
        assert outcome.tokens_used == 0

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf"), "nan", "inf"])
    def test_non_finite_payload_absorbed(self, bad):
        outcome = ExecutionOutcome.from_dict(
            {"success": True, "tokensUsed": bad, "latencyMs": bad, "quality": bad}
        )

        assert outcome.tokens_used == 0
        assert outcome.latency_ms == 0.0
        assert outcome.quality == 0.0

    @pytest.mark.parametrize("bad", [float("nan"), float("inf")])
    def test_non_finite_constructor_absorbed(self, bad):
        outcome = ExecutionOutcome(success=True, tokens_used=bad, latency_ms=bad, quality=bad)

        assert outcome.tokens_used == 0
        assert outcome.latency_ms == 0.0
        assert outcome.quality == 0.0

    def test_non_finite_tokens_reach_engine_safely(self):
        from routing.orchestrator import OrchestrationEngine
        from routing.plan import AgentSelection

        engine = OrchestrationEngine(seed=1)
        selection = AgentSelection(
            capability=Capability.CODING,
            role="Code Architect",
            confidence=0.5,
            estimated_cost=1000.0,
            reasoning="Exploitation: test",
        )

        updated = engine.update_from_execution(
            selection, {"success": True, "tokensUsed": float("nan"), "latencyMs": float("inf")}
        )

        assert updated.avg_tokens == pytest.approx(800.0)
        assert updated.avg_latency == pytest.approx(4000.0)

    @pytest.mark.parametrize(
        "flag,expected",
        [
            ("false", False),
            ("0", False),
            ("no", False),
            ("", False),
            ("TRUE", True),
            ("1", True),
            (" yes ", True),
            (1, True),
            (0, False),
        ],
    )
    def test_success_flag_parsing(self, flag, expected):
        outcome = ExecutionOutcome.from_dict({"success": flag, "tokensUsed": "10"})
        assert outcome.success is expected

    def test_coerce_passthrough(self):
        outcome = ExecutionOutcome(success=True)
        assert ExecutionOutcome.coerce(outcome) is outcome

    def test_reward(self):
        assert calculate_outcome_reward(ExecutionOutcome(success=True, quality=0.8)) == 0.8
        assert calculate_outcome_reward(ExecutionOutcome(success=False, quality=0.8)) == 0.0


class TestCapabilities:
    """Test capability resolution"""

    def test_coerce_names(self):
        assert coerce_capability("coding") == Capability.CODING
        assert coerce_capability(" FAST_TASK ") == Capability.FAST_TASK
        assert coerce_capability(Capability.CREATIVE) == Capability.CREATIVE

    def test_coerce_unknown(self):
        assert coerce_capability("TELEPATHY") is None
        assert coerce_capability(None) is None
        assert coerce_capability(3) is None


class TestLexicalEntropy:
    """Test the keyword and length heuristic"""

    def test_empty_prompt(self, scorer):
        assert scorer.prompt_entropy("") == 0.0
        assert scorer.prompt_entropy(None) == 0.0

    def test_keywords_raise_entropy(self, scorer):
        plain = scorer.prompt_entropy("Tell me about the weather today")
        loaded = scorer.prompt_entropy("Research the weather and compare forecasts today")

        assert loaded > plain
        assert loaded >= 0.3

    def test_length_saturates(self, scorer):
        assert scorer.prompt_entropy("x" * 500) == pytest.approx(0.5)
        assert scorer.prompt_entropy("x" * 5000) == pytest.approx(0.5)

    def test_capped_at_one(self, scorer):
        prompt = "analyze compare code research evaluate " * 40
        assert scorer.prompt_entropy(prompt) == 1.0

    def test_case_insensitive(self, scorer):
        assert scorer.prompt_entropy("ANALYZE") == scorer.prompt_entropy("analyze")

    def test_experience_features(self, scorer):
        experience = Experience(
            task_entropy=0.5,
            capability=Capability.ANALYSIS,
            prompt_length=250,
            has_visual=True,
            history_length=20,
            predicted_budget=0,
            predicted_success=0.5,
            actual_budget=0,
            actual_success=True,
            actual_quality=0.9,
            actual_latency=0.0,
        )

        features = scorer.experience_features(experience)

        assert features.as_list() == [0.5, 0.5, 1.0, 1.0]
