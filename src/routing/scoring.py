"""
Capability Utility Scoring

Scores candidate capabilities with a weighted multi-factor utility used
during exploitation.
"""

from typing import Dict, List, Optional, Sequence
from dataclasses import dataclass
import logging

from .capabilities import Capability
from .performance import NEUTRAL_SUCCESS_RATE, RoutePerformance
from .policy import UtilityWeights

logger = logging.getLogger(__name__)


NEUTRAL_UTILITY = 0.5
# Samples needed before the learned success rate is fully trusted
CONFIDENCE_SAMPLES = 20


@dataclass
class ScoredCapability:
    """Capability with computed utility and breakdown"""

    capability: Capability
    utility: float
    breakdown: Dict[str, float]  # Component scores


def historical_success(perf: RoutePerformance) -> float:
    """
    Success rate blended toward neutral while samples are scarce.

    Args:
        perf: Learned statistics

    Returns:
        Blended success score (0.0 - 1.0)
    """
    confidence = min(perf.sample_count / CONFIDENCE_SAMPLES, 1.0)
    return perf.success_rate * confidence + NEUTRAL_SUCCESS_RATE * (1 - confidence)


def capability_match(capability: Capability, entropy: float) -> float:
    """
    Entropy-banded fit of a capability to a task.

    High entropy needs ANALYSIS or CODING, medium favors RESEARCH,
    low favors FAST_TASK.
    """
    if entropy > 0.7:
        if capability in (Capability.ANALYSIS, Capability.CODING):
            return 1.0
        return 0.3

    if entropy > 0.4:
        if capability is Capability.RESEARCH:
            return 0.9
        if capability is Capability.ANALYSIS:
            return 0.7
        return 0.5

    if capability is Capability.FAST_TASK:
        return 1.0
    return 0.6


def cost_efficiency(perf: RoutePerformance) -> float:
    """Inverse token cost: 1 / (1 + avg_tokens / 1000)"""
    return 1.0 / (1.0 + max(perf.avg_tokens, 0.0) / 1000.0)


class UtilityScorer:
    """
    Scores capabilities with a configurable weighted formula.

    Factors:
    - Historical success (confidence-weighted)
    - Capability match (entropy bands)
    - Cost efficiency (inverse average tokens)
    """

    def __init__(self, weights: Optional[UtilityWeights] = None):
        """
        Initialize utility scorer.

        Args:
            weights: Component weights (defaults 0.4 / 0.4 / 0.2)
        """
        self.weights = weights or UtilityWeights()

    def score(
        self, capability: Capability, perf: Optional[RoutePerformance], entropy: float
    ) -> ScoredCapability:
        """
        Score a single capability.

        Args:
            capability: Candidate capability
            perf: Learned statistics (None if unknown)
            entropy: Task entropy

        Returns:
            ScoredCapability with utility and breakdown
        """
        if perf is None:
            return ScoredCapability(capability, NEUTRAL_UTILITY, {})

        scores = {
            "historical_success": historical_success(perf),
            "capability_match": capability_match(capability, entropy),
            "cost_efficiency": cost_efficiency(perf),
        }

        utility = (
            scores["historical_success"] * self.weights.historical_success
            + scores["capability_match"] * self.weights.capability_match
            + scores["cost_efficiency"] * self.weights.cost_efficiency
        )

        logger.debug(
            f"Scored {capability.value}: utility={utility:.3f}, "
            f"breakdown={', '.join(f'{k}={v:.2f}' for k, v in scores.items())}"
        )

        return ScoredCapability(capability, utility, scores)

    def score_all(
        self,
        candidates: Sequence[Capability],
        performance: Dict[Capability, RoutePerformance],
        entropy: float,
    ) -> List[ScoredCapability]:
        """Score candidates, preserving input order"""
        return [self.score(cap, performance.get(cap), entropy) for cap in candidates]

    def select_best(self, scored: Sequence[ScoredCapability]) -> Optional[ScoredCapability]:
        """
        Highest utility; the first seen wins ties.

        Returns:
            Best ScoredCapability or None if nothing was scored
        """
        best: Optional[ScoredCapability] = None
        for candidate in scored:
            if best is None or candidate.utility > best.utility:
                best = candidate
        return best
