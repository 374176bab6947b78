"""
Adaptive Routing Module

Capability selection, multi-stage planning with fallbacks, and learned
per-capability performance statistics.

AdaptiveRouter lives in routing.router; it depends on the cortex package,
which itself imports from routing, so it is not re-exported here.
"""

from .capabilities import Capability, ALL_CAPABILITIES, FALLBACK_TABLE, coerce_capability
from .errors import RoutingError, NoEligibleCapabilityError
from .entropy import EntropyFeatures, EntropyScorer, LexicalEntropyScorer
from .feedback import ExecutionOutcome, calculate_outcome_reward
from .performance import RoutePerformance, RoutePerformanceStore
from .policy import RoutingPolicy, UtilityWeights
from .plan import (
    AgentSelection,
    ConditionType,
    ExecutionCondition,
    ExecutionContext,
    ExecutionPlan,
    ExecutionStage,
    FallbackStrategy,
    FallbackTrigger,
)
from .scoring import UtilityScorer, ScoredCapability
from .metrics import MetricsCollector, ExecutionRecord
from .orchestrator import OrchestrationEngine

__all__ = [
    "Capability",
    "ALL_CAPABILITIES",
    "FALLBACK_TABLE",
    "coerce_capability",
    "RoutingError",
    "NoEligibleCapabilityError",
    "EntropyFeatures",
    "EntropyScorer",
    "LexicalEntropyScorer",
    "ExecutionOutcome",
    "calculate_outcome_reward",
    "RoutePerformance",
    "RoutePerformanceStore",
    "RoutingPolicy",
    "UtilityWeights",
    "AgentSelection",
    "ConditionType",
    "ExecutionCondition",
    "ExecutionContext",
    "ExecutionPlan",
    "ExecutionStage",
    "FallbackStrategy",
    "FallbackTrigger",
    "UtilityScorer",
    "ScoredCapability",
    "MetricsCollector",
    "ExecutionRecord",
    "OrchestrationEngine",
]
