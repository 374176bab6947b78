"""
Execution Plan Types

Context, selections and the staged plan produced by the orchestration engine.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from .capabilities import ALL_CAPABILITIES, Capability
from .feedback import ExecutionOutcome


EXPLORATION_TAG = "Exploration"
EXPLOITATION_TAG = "Exploitation"


@dataclass
class ExecutionContext:
    """Planning state carried from one stage to the next"""

    prompt: str
    entropy: float
    history_length: int = 0
    completed_tasks: List[str] = field(default_factory=list)
    available_capabilities: List[Capability] = field(
        default_factory=lambda: list(ALL_CAPABILITIES)
    )
    budget: float = 100000.0

    def project(self, estimated_cost: float) -> "ExecutionContext":
        """
        Context for the next stage after spending estimated_cost.

        Returns:
            New context with the budget decremented and history advanced
        """
        return replace(
            self,
            budget=self.budget - estimated_cost,
            history_length=self.history_length + 1,
            completed_tasks=list(self.completed_tasks),
            available_capabilities=list(self.available_capabilities),
        )


@dataclass
class AgentSelection:
    """Capability chosen for a stage"""

    capability: Capability
    role: str
    confidence: float
    estimated_cost: float
    reasoning: str

    @property
    def is_exploration(self) -> bool:
        return self.reasoning.startswith(EXPLORATION_TAG)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capability": self.capability.value,
            "role": self.role,
            "confidence": self.confidence,
            "estimated_cost": self.estimated_cost,
            "reasoning": self.reasoning,
        }


class ConditionType(Enum):
    ALWAYS = "ALWAYS"
    IF_SUCCESS = "IF_SUCCESS"
    IF_FAILURE = "IF_FAILURE"
    IF_QUALITY_BELOW = "IF_QUALITY_BELOW"


@dataclass
class ExecutionCondition:
    """Gate evaluated against the previous stage's outcome"""

    type: ConditionType = ConditionType.ALWAYS
    threshold: float = 0.0

    def evaluate(self, previous: Optional[ExecutionOutcome] = None) -> bool:
        if self.type is ConditionType.ALWAYS or previous is None:
            return True
        if self.type is ConditionType.IF_SUCCESS:
            return previous.success
        if self.type is ConditionType.IF_FAILURE:
            return not previous.success
        return previous.quality < self.threshold

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "threshold": self.threshold}


class FallbackTrigger(Enum):
    FAILURE = "FAILURE"
    TIMEOUT = "TIMEOUT"
    LOW_QUALITY = "LOW_QUALITY"


@dataclass
class FallbackStrategy:
    """Retry policy for a stage"""

    stage_id: int
    primary: Capability
    fallback: Capability
    trigger: FallbackTrigger = FallbackTrigger.FAILURE
    max_retries: int = 2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage_id": self.stage_id,
            "primary": self.primary.value,
            "fallback": self.fallback.value,
            "trigger": self.trigger.value,
            "max_retries": self.max_retries,
        }


@dataclass
class ExecutionStage:
    """One planned unit of work"""

    stage_id: int
    selection: AgentSelection
    dependencies: List[str] = field(default_factory=list)
    condition: ExecutionCondition = field(default_factory=ExecutionCondition)
    cumulative_cost: float = 0.0
    fallback: Optional[FallbackStrategy] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage_id": self.stage_id,
            "selection": self.selection.to_dict(),
            "dependencies": list(self.dependencies),
            "condition": self.condition.to_dict(),
            "cumulative_cost": self.cumulative_cost,
            "fallback": self.fallback.to_dict() if self.fallback else None,
        }


@dataclass
class ExecutionPlan:
    """Ordered stages with their projected cost"""

    stages: List[ExecutionStage] = field(default_factory=list)
    estimated_cost: float = 0.0
    entropy: float = 0.0
    budget: float = 0.0
    termination_reason: str = ""

    @property
    def fallback_strategies(self) -> List[FallbackStrategy]:
        return [stage.fallback for stage in self.stages if stage.fallback is not None]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stages": [stage.to_dict() for stage in self.stages],
            "estimated_cost": self.estimated_cost,
            "entropy": self.entropy,
            "budget": self.budget,
            "termination_reason": self.termination_reason,
        }
