"""
Routing Policy Configuration

Exploration rate, utility weights and planning limits for the
orchestration engine.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict

logger = logging.getLogger(__name__)


@dataclass
class UtilityWeights:
    """Weights of the utility components (normalized to sum to 1.0)"""

    historical_success: float = 0.4
    capability_match: float = 0.4
    cost_efficiency: float = 0.2

    def __post_init__(self):
        self.historical_success = max(0.0, float(self.historical_success))
        self.capability_match = max(0.0, float(self.capability_match))
        self.cost_efficiency = max(0.0, float(self.cost_efficiency))

        total = self.historical_success + self.capability_match + self.cost_efficiency
        if total <= 0:
            logger.warning("Utility weights sum to 0, restoring defaults")
            self.historical_success, self.capability_match, self.cost_efficiency = 0.4, 0.4, 0.2
        elif abs(total - 1.0) > 0.01:
            logger.warning(f"Utility weights sum to {total}, not 1.0. Normalizing.")
            self.historical_success /= total
            self.capability_match /= total
            self.cost_efficiency /= total

    def to_dict(self) -> Dict[str, float]:
        return {
            "historical_success": self.historical_success,
            "capability_match": self.capability_match,
            "cost_efficiency": self.cost_efficiency,
        }


@dataclass
class RoutingPolicy:
    """
    Routing policy settings.

    Attributes:
        exploration_rate: Epsilon for epsilon-greedy selection
        utility_weights: Weights of the exploitation utility
        learning_rate: EMA rate for performance updates
        max_agents: Default stage cap for plans
        default_budget: Default token budget for plans
        termination_ratio: Fraction of the budget at which planning stops
        low_entropy_cutoff: Entropy below which a single stage suffices
    """

    exploration_rate: float = 0.1
    utility_weights: UtilityWeights = field(default_factory=UtilityWeights)
    learning_rate: float = 0.2
    max_agents: int = 5
    default_budget: int = 100000
    termination_ratio: float = 0.9
    low_entropy_cutoff: float = 0.3

    def __post_init__(self):
        self.exploration_rate = max(0.0, min(1.0, float(self.exploration_rate)))
        self.learning_rate = max(0.0, min(1.0, float(self.learning_rate)))
        self.max_agents = max(1, int(self.max_agents))

    @classmethod
    def from_env(cls) -> "RoutingPolicy":
        """Create policy from environment variables"""
        return cls(
            exploration_rate=float(os.getenv("ROUTING_EXPLORATION_RATE", "0.1")),
            utility_weights=UtilityWeights(
                historical_success=float(os.getenv("ROUTING_WEIGHT_HISTORICAL", "0.4")),
                capability_match=float(os.getenv("ROUTING_WEIGHT_MATCH", "0.4")),
                cost_efficiency=float(os.getenv("ROUTING_WEIGHT_COST", "0.2")),
            ),
            learning_rate=float(os.getenv("ROUTING_LEARNING_RATE", "0.2")),
            max_agents=int(os.getenv("ROUTING_MAX_AGENTS", "5")),
            default_budget=int(os.getenv("ROUTING_DEFAULT_BUDGET", "100000")),
        )
