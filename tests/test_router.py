"""
Tests for the Adaptive Router

Tests plan execution, fallback retries, dependency skipping, executor error
handling and feedback to the engine and the cortex.
"""

import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cortex.config import CortexConfig
from cortex.learning import LearningCortex
from routing.capabilities import FALLBACK_TABLE, Capability
from routing.feedback import ExecutionOutcome
from routing.orchestrator import OrchestrationEngine
from routing.policy import RoutingPolicy
from routing.router import AdaptiveRouter, StageDirective


HIGH_ENTROPY_PROMPT = "Analyze and compare the code, research the options and evaluate them"


# Test Fixtures


@pytest.fixture
def router(routing_seed):
    """Greedy router; the cortex never runs a pass during a test"""
    engine = OrchestrationEngine(policy=RoutingPolicy(exploration_rate=0.0), seed=routing_seed)
    cortex = LearningCortex(CortexConfig(update_frequency=1000))
    return AdaptiveRouter(engine=engine, cortex=cortex)


class RecordingExecutor:
    """Async executor that replays a script of outcomes"""

    def __init__(self, outcomes=None, default=True):
        self.outcomes = list(outcomes or [])
        self.default = default
        self.directives = []

    async def __call__(self, directive: StageDirective):
        self.directives.append(directive)
        success = self.outcomes.pop(0) if self.outcomes else self.default
        return ExecutionOutcome(
            success=success,
            tokens_used=900,
            latency_ms=250.0,
            quality=0.9 if success else 0.0,
        )


# Execution Tests


class TestExecution:
    """Test running plans end to end"""

    @pytest.mark.asyncio
    async def test_all_stages_succeed(self, router):
        executor = RecordingExecutor()

        result = await router.execute(HIGH_ENTROPY_PROMPT, executor, max_agents=3)

        assert len(result.plan.stages) == 3
        assert result.success_count == 3
        assert all(r.attempts == 1 and not r.fallback_used for r in result.stage_results)
        assert [d.stage_id for d in executor.directives] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_every_attempt_reported_once(self, router):
        executor = RecordingExecutor()

        await router.execute(HIGH_ENTROPY_PROMPT, executor, max_agents=3)

        assert router.engine.get_routing_analytics()["total_executions"] == 3
        assert len(router.cortex.buffer) == 3
        perf = router.engine.performance.get(Capability.ANALYSIS)
        assert perf.sample_count == 3

    @pytest.mark.asyncio
    async def test_directive_carries_predictions(self, router):
        executor = RecordingExecutor()

        result = await router.execute(HIGH_ENTROPY_PROMPT, executor, max_agents=1)
        directive = executor.directives[0]
        capability = directive.selection.capability

        assert directive.prompt == HIGH_ENTROPY_PROMPT
        assert directive.predicted_budget == router.cortex.predict_budget(
            result.plan.entropy, capability
        )
        assert directive.temperature == router.cortex.get_temperature(capability)
        assert 0.1 <= directive.predicted_success <= 1.0

    @pytest.mark.asyncio
    async def test_visual_flag_grows_budget(self, router):
        plain = RecordingExecutor()
        visual = RecordingExecutor()

        await router.execute(HIGH_ENTROPY_PROMPT, plain, max_agents=1)
        await router.execute(HIGH_ENTROPY_PROMPT, visual, max_agents=1, has_visual=True)

        assert visual.directives[0].predicted_budget > plain.directives[0].predicted_budget
        assert visual.directives[0].has_visual

    @pytest.mark.asyncio
    async def test_sync_executor_returning_dict(self, router):
        def executor(directive):
            return {"success": True, "tokensUsed": 400, "latencyMs": 80, "quality": 0.7}

        result = await router.execute(HIGH_ENTROPY_PROMPT, executor, max_agents=2)

        assert result.success_count == 2
        assert result.stage_results[0].outcome.tokens_used == 400

    @pytest.mark.asyncio
    async def test_empty_plan(self, router):
        executor = RecordingExecutor()

        result = await router.execute(HIGH_ENTROPY_PROMPT, executor, budget=500)

        assert result.plan.stages == []
        assert result.stage_results == []
        assert executor.directives == []


# Fallback Tests


class TestFallbacks:
    """Test fallback retries and dependency skipping"""

    @pytest.mark.asyncio
    async def test_fallback_recovers_stage(self, router):
        executor = RecordingExecutor(outcomes=[False, True])

        result = await router.execute(HIGH_ENTROPY_PROMPT, executor, max_agents=1)
        stage_result = result.stage_results[0]
        primary = result.plan.stages[0].selection.capability

        assert stage_result.success
        assert stage_result.attempts == 2
        assert stage_result.fallback_used
        assert stage_result.selection.capability == FALLBACK_TABLE[primary]
        assert executor.directives[1].attempt == 1

    @pytest.mark.asyncio
    async def test_retries_capped(self, router):
        executor = RecordingExecutor(default=False)

        result = await router.execute(HIGH_ENTROPY_PROMPT, executor, max_agents=3)

        first = result.stage_results[0]
        assert first.attempts == 3
        assert not first.success
        assert len(executor.directives) == 3
        # Every attempt is learned from
        assert router.engine.get_routing_analytics()["total_executions"] == 3
        assert len(router.cortex.buffer) == 3

    @pytest.mark.asyncio
    async def test_failed_dependency_skips_downstream(self, router):
        executor = RecordingExecutor(default=False)

        result = await router.execute(HIGH_ENTROPY_PROMPT, executor, max_agents=3)

        assert [r.skipped for r in result.stage_results] == [False, True, True]
        assert result.stage_results[1].attempts == 0
        assert result.success_count == 0

    @pytest.mark.asyncio
    async def test_failures_lower_engine_success_rate(self, router):
        executor = RecordingExecutor(default=False)

        await router.execute(HIGH_ENTROPY_PROMPT, executor, max_agents=1)

        assert router.engine.performance.get(Capability.ANALYSIS).success_rate < 0.5
        assert router.engine.performance.get(Capability.CODING).success_rate < 0.5


# Error Handling Tests


class TestExecutorErrors:
    """Test executor exceptions"""

    @pytest.mark.asyncio
    async def test_exception_becomes_failure(self, router):
        calls = []

        async def executor(directive):
            calls.append(directive)
            if len(calls) == 1:
                raise RuntimeError("agent crashed")
            return ExecutionOutcome(success=True, tokens_used=500, quality=0.8)

        result = await router.execute(HIGH_ENTROPY_PROMPT, executor, max_agents=1)
        stage_result = result.stage_results[0]

        assert stage_result.success
        assert stage_result.attempts == 2
        assert router.engine.get_routing_analytics()["total_executions"] == 2

    @pytest.mark.asyncio
    async def test_persistent_exception_recorded(self, router):
        async def executor(directive):
            raise RuntimeError("agent crashed")

        result = await router.execute(HIGH_ENTROPY_PROMPT, executor, max_agents=1)
        stage_result = result.stage_results[0]

        assert not stage_result.success
        assert stage_result.error == "agent crashed"
        assert stage_result.outcome.tokens_used == 0


# Stats Tests


class TestRouterStats:
    """Test combined statistics"""

    @pytest.mark.asyncio
    async def test_get_stats(self, router):
        await router.execute(HIGH_ENTROPY_PROMPT, RecordingExecutor(), max_agents=2)

        stats = router.get_stats()

        assert stats["routing"]["total_executions"] == 2
        assert stats["cortex"]["total_experiences"] == 2
        assert "budget_multipliers" in stats["weights"]

    @pytest.mark.asyncio
    async def test_result_serializes(self, router):
        result = await router.execute(HIGH_ENTROPY_PROMPT, RecordingExecutor(), max_agents=2)
        data = result.to_dict()

        assert data["success_count"] == 2
        assert len(data["stage_results"]) == 2
        assert data["stage_results"][0]["outcome"]["success"] is True
