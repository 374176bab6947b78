"""
Orchestration Engine

Epsilon-greedy capability selection over learned per-capability statistics,
multi-stage plan construction with deterministic fallbacks, and EMA updates
from reported outcomes.
"""

from typing import Any, Dict, List, Mapping, Optional, Union
import threading
import logging

import numpy as np

from observability.metrics import selection_latency, telemetry, track_time
from observability.tracing import create_span

from .capabilities import (
    ALL_CAPABILITIES,
    DEFAULT_COST_ESTIMATES,
    FALLBACK_TABLE,
    ROLE_NAMES,
    Capability,
)
from .entropy import EntropyScorer, LexicalEntropyScorer
from .errors import NoEligibleCapabilityError
from .feedback import ExecutionOutcome
from .metrics import MetricsCollector
from .performance import RoutePerformance, RoutePerformanceStore
from .plan import (
    EXPLOITATION_TAG,
    EXPLORATION_TAG,
    AgentSelection,
    ExecutionCondition,
    ExecutionContext,
    ExecutionPlan,
    ExecutionStage,
    FallbackStrategy,
)
from .policy import RoutingPolicy
from .scoring import UtilityScorer

logger = logging.getLogger(__name__)


EXPLORATION_CONFIDENCE = 0.5
FALLBACK_MAX_RETRIES = 2


class OrchestrationEngine:
    """
    Adaptive router over the fixed capability set.

    Owns its Routing Policy Store; every mutation of routing state is
    serialized through the engine lock.
    """

    def __init__(
        self,
        policy: Optional[RoutingPolicy] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        entropy_scorer: Optional[EntropyScorer] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        """
        Initialize orchestration engine.

        Args:
            policy: Routing policy (defaults to RoutingPolicy())
            rng: Random source for exploration and role naming
            seed: Seed for a fresh random source when rng is not given
            entropy_scorer: Prompt complexity scorer
            metrics_collector: Execution log for analytics
        """
        self.policy = policy or RoutingPolicy()
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.entropy_scorer = entropy_scorer or LexicalEntropyScorer()
        self.metrics = metrics_collector or MetricsCollector()
        self.scorer = UtilityScorer(self.policy.utility_weights)
        self.lock = threading.RLock()
        self.performance = RoutePerformanceStore(lock=self.lock)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def get_eligible_capabilities(
        self,
        context: ExecutionContext,
        performance: Optional[Dict[Capability, RoutePerformance]] = None,
    ) -> List[Capability]:
        """
        Capabilities whose learned average cost fits the remaining budget.

        Unknown capabilities are dropped; known ones without statistics
        are always eligible.
        """
        performance = performance if performance is not None else self.performance.snapshot()
        eligible = []

        for capability in context.available_capabilities:
            if not isinstance(capability, Capability):
                logger.warning(f"Skipping unknown capability: {capability!r}")
                continue
            perf = performance.get(capability)
            if perf is None or perf.avg_tokens < context.budget:
                eligible.append(capability)

        return eligible

    @track_time(selection_latency)
    def select_next_agent(self, context: ExecutionContext) -> AgentSelection:
        """
        Select the next capability for a context.

        With probability epsilon a uniformly random eligible capability is
        explored; otherwise the highest-utility capability is exploited.

        Args:
            context: Current planning context

        Returns:
            AgentSelection

        Raises:
            NoEligibleCapabilityError: If no capability fits the budget
        """
        performance = self.performance.snapshot()
        candidates = self.get_eligible_capabilities(context, performance)

        if not candidates:
            telemetry.record_no_eligible()
            logger.warning(
                f"No eligible capability for budget {context.budget:.0f} "
                f"({len(context.available_capabilities)} available)"
            )
            raise NoEligibleCapabilityError(context.budget, len(context.available_capabilities))

        with self.lock:
            explore = self.rng.random() < self.policy.exploration_rate

        if explore:
            selection = self._explore(candidates, context, performance)
        else:
            selection = self._exploit(candidates, context, performance)

        telemetry.record_selection(selection.capability.value, selection.is_exploration)
        logger.debug(f"Selected {selection.capability.value}: {selection.reasoning}")

        return selection

    def _explore(
        self,
        candidates: List[Capability],
        context: ExecutionContext,
        performance: Dict[Capability, RoutePerformance],
    ) -> AgentSelection:
        with self.lock:
            capability = candidates[int(self.rng.integers(len(candidates)))]

        return AgentSelection(
            capability=capability,
            role=self._generate_role_name(capability),
            confidence=EXPLORATION_CONFIDENCE,
            estimated_cost=self._estimate_cost(capability, performance),
            reasoning=f"{EXPLORATION_TAG}: testing {capability.value} capability",
        )

    def _exploit(
        self,
        candidates: List[Capability],
        context: ExecutionContext,
        performance: Dict[Capability, RoutePerformance],
    ) -> AgentSelection:
        scored = self.scorer.score_all(candidates, performance, context.entropy)
        best = self.scorer.select_best(scored)
        perf = performance.get(best.capability)
        success_rate = perf.success_rate if perf is not None else EXPLORATION_CONFIDENCE

        return AgentSelection(
            capability=best.capability,
            role=self._generate_role_name(best.capability),
            confidence=success_rate,
            estimated_cost=self._estimate_cost(best.capability, performance),
            reasoning=(
                f"{EXPLOITATION_TAG}: {best.capability.value} has "
                f"{success_rate * 100:.1f}% success rate"
            ),
        )

    def _estimate_cost(
        self, capability: Capability, performance: Dict[Capability, RoutePerformance]
    ) -> float:
        perf = performance.get(capability)
        if perf is None:
            return float(DEFAULT_COST_ESTIMATES.get(capability, 1000))
        return perf.avg_tokens

    def _generate_role_name(self, capability: Capability) -> str:
        options = ROLE_NAMES[capability]
        with self.lock:
            return options[int(self.rng.integers(len(options)))]

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def update_from_execution(
        self,
        selection: AgentSelection,
        result: Union[ExecutionOutcome, Mapping[str, Any]],
        context_entropy: float = 0.0,
    ) -> Optional[RoutePerformance]:
        """
        Update routing statistics from a completed stage.

        Call exactly once per completed stage.

        Args:
            selection: Selection the stage ran with
            result: Reported outcome
            context_entropy: Entropy of the task the stage belonged to

        Returns:
            Updated statistics, or None if the capability is unknown
        """
        outcome = ExecutionOutcome.coerce(result)

        with self.lock:
            updated = self.performance.update(
                selection.capability, outcome, self.policy.learning_rate
            )
            if updated is None:
                return None
            self.metrics.record_execution(selection, outcome, context_entropy)

        telemetry.record_outcome(selection.capability.value, outcome.success)
        return updated

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan_execution(
        self,
        prompt: str,
        max_agents: Optional[int] = None,
        budget: Optional[float] = None,
    ) -> ExecutionPlan:
        """
        Build a multi-stage plan for a prompt.

        Stages are chained sequentially. Planning stops once the projected
        cost reaches the termination ratio of the budget, the stage cap is
        hit, a low-entropy task has one stage, or no capability is
        eligible (the plan built so far is kept).

        Args:
            prompt: Task prompt
            max_agents: Maximum number of stages
            budget: Token budget for the whole plan

        Returns:
            ExecutionPlan with fallbacks attached
        """
        max_agents = self.policy.max_agents if max_agents is None else max(0, int(max_agents))
        budget = float(self.policy.default_budget if budget is None else budget)

        entropy = self.entropy_scorer.prompt_entropy(prompt)
        context = ExecutionContext(
            prompt=prompt,
            entropy=entropy,
            available_capabilities=list(ALL_CAPABILITIES),
            budget=budget,
        )
        plan = ExecutionPlan(entropy=entropy, budget=budget)

        with create_span(
            "plan_execution",
            {"max_agents": max_agents, "budget": budget, "entropy": round(entropy, 3)},
        ) as span:
            for stage_id in range(max_agents):
                try:
                    selection = self.select_next_agent(context)
                except NoEligibleCapabilityError as e:
                    plan.termination_reason = "no_eligible_capability"
                    logger.info(f"Stopping plan at {len(plan.stages)} stages: {e}")
                    break

                plan.estimated_cost += selection.estimated_cost
                plan.stages.append(
                    ExecutionStage(
                        stage_id=stage_id,
                        selection=selection,
                        dependencies=self._identify_dependencies(plan.stages),
                        condition=ExecutionCondition(),
                        cumulative_cost=plan.estimated_cost,
                    )
                )

                reason = self._termination_reason(context, plan, max_agents)
                if reason:
                    plan.termination_reason = reason
                    break

                context = context.project(selection.estimated_cost)
            else:
                plan.termination_reason = plan.termination_reason or "max_agents"

            self._attach_fallbacks(plan)
            span.set_attribute("stages", len(plan.stages))

        telemetry.record_plan(len(plan.stages))
        logger.info(
            f"Planned {len(plan.stages)} stages "
            f"({', '.join(s.selection.capability.value for s in plan.stages)}), "
            f"estimated_cost={plan.estimated_cost:.0f}, reason={plan.termination_reason}"
        )

        return plan

    def _identify_dependencies(self, stages: List[ExecutionStage]) -> List[str]:
        # Sequential: each stage waits on the one before it
        if not stages:
            return []
        return [str(stages[-1].stage_id)]

    def _termination_reason(
        self, context: ExecutionContext, plan: ExecutionPlan, max_agents: int
    ) -> str:
        # Measured against the initial budget; eligibility uses the remaining one
        if plan.estimated_cost >= plan.budget * self.policy.termination_ratio:
            return "budget_exhausted"
        if len(plan.stages) >= max_agents:
            return "max_agents"
        if context.entropy < self.policy.low_entropy_cutoff and len(plan.stages) >= 1:
            return "low_entropy"
        return ""

    def fallback_selection(self, stage: ExecutionStage) -> AgentSelection:
        """
        Selection for a stage's fallback capability.

        Args:
            stage: Stage whose primary attempt failed

        Returns:
            AgentSelection bound to the fallback capability
        """
        primary = stage.selection.capability
        fallback = stage.fallback.fallback if stage.fallback else FALLBACK_TABLE[primary]
        performance = self.performance.snapshot()
        perf = performance.get(fallback)

        return AgentSelection(
            capability=fallback,
            role=self._generate_role_name(fallback),
            confidence=perf.success_rate if perf is not None else EXPLORATION_CONFIDENCE,
            estimated_cost=self._estimate_cost(fallback, performance),
            reasoning=f"Fallback: {fallback.value} after {primary.value} failure",
        )

    def _attach_fallbacks(self, plan: ExecutionPlan) -> None:
        for stage in plan.stages:
            primary = stage.selection.capability
            stage.fallback = FallbackStrategy(
                stage_id=stage.stage_id,
                primary=primary,
                fallback=FALLBACK_TABLE[primary],
                max_retries=FALLBACK_MAX_RETRIES,
            )

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def get_routing_analytics(self) -> Dict[str, Any]:
        """
        Snapshot of routing statistics.

        Returns:
            capability_performance, total_executions, exploration_rate and
            avg_utility_score
        """
        performance = self.performance.snapshot()
        with self.lock:
            stats = self.metrics.get_stats()

        return {
            "capability_performance": [
                performance[capability].to_dict() for capability in ALL_CAPABILITIES
            ],
            "total_executions": stats["total_executions"],
            "exploration_rate": stats["exploration_rate"],
            "avg_utility_score": stats["avg_utility_score"],
            "capability_distribution": stats["capability_distribution"],
        }

    def reset(self) -> None:
        """Restore neutral priors and clear the execution log"""
        with self.lock:
            self.performance.reset()
            self.metrics.clear()
