"""
Adaptive Router

Runs an execution plan against an external executor and closes the learning
loop:

Plan → Predict (budget, temperature, success) → Execute → Report outcome
to the orchestration engine and the learning cortex → Fallback on failure
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union
import inspect
import time
import logging

from cortex.experience import TaskRecord
from cortex.learning import LearningCortex
from observability.tracing import create_span

from .feedback import ExecutionOutcome, calculate_outcome_reward
from .orchestrator import OrchestrationEngine
from .plan import AgentSelection, ExecutionPlan, ExecutionStage

logger = logging.getLogger(__name__)


@dataclass
class StageDirective:
    """Everything the executor needs to run one stage attempt"""

    stage_id: int
    attempt: int
    prompt: str
    selection: AgentSelection
    predicted_budget: int
    temperature: float
    predicted_success: float
    has_visual: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage_id": self.stage_id,
            "attempt": self.attempt,
            "selection": self.selection.to_dict(),
            "predicted_budget": self.predicted_budget,
            "temperature": self.temperature,
            "predicted_success": self.predicted_success,
            "has_visual": self.has_visual,
        }


Executor = Callable[
    [StageDirective],
    Union[Awaitable[Union[ExecutionOutcome, Mapping[str, Any]]], ExecutionOutcome, Mapping[str, Any]],
]


@dataclass
class StageResult:
    """Final state of one stage after all attempts"""

    stage_id: int
    selection: AgentSelection
    outcome: Optional[ExecutionOutcome] = None
    attempts: int = 0
    skipped: bool = False
    fallback_used: bool = False
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome is not None and self.outcome.success

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage_id": self.stage_id,
            "selection": self.selection.to_dict(),
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "attempts": self.attempts,
            "skipped": self.skipped,
            "fallback_used": self.fallback_used,
            "error": self.error,
        }


@dataclass
class SwarmRunResult:
    """Plan plus per-stage results"""

    plan: ExecutionPlan
    stage_results: List[StageResult] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.stage_results if result.success)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": self.plan.to_dict(),
            "stage_results": [result.to_dict() for result in self.stage_results],
            "success_count": self.success_count,
        }


class AdaptiveRouter:
    """
    Drives plans through an executor and feeds outcomes back.

    The executor is the opaque agent execution capability: it receives a
    StageDirective and returns an ExecutionOutcome (or an equivalent
    mapping), synchronously or as an awaitable.
    """

    def __init__(
        self,
        engine: Optional[OrchestrationEngine] = None,
        cortex: Optional[LearningCortex] = None,
    ):
        """
        Initialize adaptive router.

        Args:
            engine: Orchestration engine
            cortex: Learning cortex
        """
        self.engine = engine or OrchestrationEngine()
        self.cortex = cortex or LearningCortex()

    def directive_for(
        self,
        stage: ExecutionStage,
        plan: ExecutionPlan,
        prompt: str = "",
        selection: Optional[AgentSelection] = None,
        attempt: int = 0,
        has_visual: bool = False,
    ) -> StageDirective:
        """
        Attach cortex predictions to a stage selection.

        Args:
            stage: Planned stage
            plan: Plan the stage belongs to
            prompt: Task prompt
            selection: Override selection (fallback attempts)
            attempt: Attempt number (0 = primary)
            has_visual: Whether the task includes visual input

        Returns:
            StageDirective
        """
        selection = selection or stage.selection
        capability = selection.capability

        return StageDirective(
            stage_id=stage.stage_id,
            attempt=attempt,
            prompt=prompt,
            selection=selection,
            predicted_budget=self.cortex.predict_budget(plan.entropy, capability, has_visual),
            temperature=self.cortex.get_temperature(capability),
            predicted_success=self.cortex.predict_success(plan.entropy, capability),
            has_visual=has_visual,
        )

    async def execute(
        self,
        prompt: str,
        executor: Executor,
        max_agents: Optional[int] = None,
        budget: Optional[float] = None,
        has_visual: bool = False,
    ) -> SwarmRunResult:
        """
        Plan and run a prompt.

        Stages run in plan order. A stage whose dependency did not succeed,
        or whose condition is false, is skipped. A failed attempt is retried
        on the stage's fallback capability up to max_retries times. Every
        attempt is reported exactly once to the engine and the cortex.

        Args:
            prompt: Task prompt
            executor: Agent execution capability
            max_agents: Maximum number of stages
            budget: Token budget
            has_visual: Whether the task includes visual input

        Returns:
            SwarmRunResult
        """
        plan = self.engine.plan_execution(prompt, max_agents=max_agents, budget=budget)
        run = SwarmRunResult(plan=plan)
        results: Dict[str, StageResult] = {}

        with create_span("swarm_execute", {"stages": len(plan.stages)}):
            for stage in plan.stages:
                result = await self._run_stage(stage, plan, prompt, executor, results, has_visual)
                results[str(stage.stage_id)] = result
                run.stage_results.append(result)

        logger.info(
            f"Executed plan: {run.success_count}/{len(plan.stages)} stages succeeded"
        )
        return run

    async def _run_stage(
        self,
        stage: ExecutionStage,
        plan: ExecutionPlan,
        prompt: str,
        executor: Executor,
        results: Dict[str, StageResult],
        has_visual: bool,
    ) -> StageResult:
        result = StageResult(stage_id=stage.stage_id, selection=stage.selection)

        for dependency in stage.dependencies:
            upstream = results.get(dependency)
            if upstream is None or not upstream.success:
                logger.info(f"Skipping stage {stage.stage_id}: dependency {dependency} not satisfied")
                result.skipped = True
                return result

        previous = results.get(stage.dependencies[-1]).outcome if stage.dependencies else None
        if not stage.condition.evaluate(previous):
            logger.info(f"Skipping stage {stage.stage_id}: condition {stage.condition.type.value} false")
            result.skipped = True
            return result

        max_retries = stage.fallback.max_retries if stage.fallback else 0
        selection = stage.selection

        for attempt in range(max_retries + 1):
            if attempt > 0:
                selection = self.engine.fallback_selection(stage)
                result.fallback_used = True

            directive = self.directive_for(stage, plan, prompt, selection, attempt, has_visual)

            with create_span(
                "execute_stage",
                {
                    "stage_id": stage.stage_id,
                    "attempt": attempt,
                    "capability": selection.capability.value,
                },
            ) as span:
                outcome, error = await self._invoke(executor, directive)
                span.set_attribute("reward", calculate_outcome_reward(outcome))

            self._report(stage, plan, prompt, directive, outcome, has_visual)

            result.selection = selection
            result.outcome = outcome
            result.attempts = attempt + 1
            result.error = error

            if outcome.success:
                break

            logger.warning(
                f"Stage {stage.stage_id} attempt {attempt + 1} on "
                f"{selection.capability.value} failed"
            )

        return result

    async def _invoke(self, executor: Executor, directive: StageDirective):
        start_time = time.time()
        try:
            raw = executor(directive)
            if inspect.isawaitable(raw):
                raw = await raw
            return ExecutionOutcome.coerce(raw), None
        except Exception as e:
            latency_ms = (time.time() - start_time) * 1000
            logger.error(f"Executor error on stage {directive.stage_id}: {e}")
            return ExecutionOutcome(success=False, latency_ms=latency_ms), str(e)

    def _report(
        self,
        stage: ExecutionStage,
        plan: ExecutionPlan,
        prompt: str,
        directive: StageDirective,
        outcome: ExecutionOutcome,
        has_visual: bool,
    ) -> None:
        capability = directive.selection.capability

        self.engine.update_from_execution(directive.selection, outcome, plan.entropy)

        task = TaskRecord(
            task_id=f"{capability.value}_{stage.stage_id}_{directive.attempt}",
            capability=capability,
            description=prompt,
            entropy=plan.entropy,
            has_visual=has_visual,
            history_length=stage.stage_id,
        )
        experience = self.cortex.create_experience(
            task,
            predicted={
                "budget": directive.predicted_budget,
                "success": directive.predicted_success,
            },
            actual={
                "budget": outcome.tokens_used,
                "success": outcome.success,
                "quality": outcome.quality,
                "latency": outcome.latency_ms,
            },
        )
        self.cortex.record_experience(experience)

    def get_stats(self) -> Dict[str, Any]:
        """Routing analytics and cortex learning metrics"""
        return {
            "routing": self.engine.get_routing_analytics(),
            "cortex": self.cortex.get_metrics(),
            "weights": self.cortex.export_weights(),
        }
