"""
Cortex Weight Store

The small parametric model the learning cortex adapts: entropy weights,
per-capability budget multipliers, temperatures and routing preferences.
Snapshots are plain nested dicts of numbers keyed by capability name.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple
import copy
import math
import time
import logging

from routing.capabilities import ALL_CAPABILITIES, Capability, coerce_capability

logger = logging.getLogger(__name__)


ENTROPY_WEIGHT_NAMES = ("length", "keyword", "history", "visual")

ENTROPY_WEIGHT_RANGES: Dict[str, Tuple[float, float]] = {
    "length": (0.1, 0.6),
    "keyword": (0.2, 0.6),
    "history": (0.05, 0.4),
    "visual": (0.0, 0.3),
}

BUDGET_MULTIPLIER_RANGE = (0.5, 3.0)
TEMPERATURE_RANGE = (0.0, 1.0)
PREFERENCE_RANGE = (0.0, 1.0)
CONFIDENCE_RANGE = (0.0, 1.0)

DEFAULT_BUDGET_MULTIPLIERS: Dict[Capability, float] = {
    Capability.FAST_TASK: 0.5,
    Capability.RESEARCH: 1.2,
    Capability.ANALYSIS: 1.5,
    Capability.CODING: 2.0,
    Capability.CREATIVE: 1.1,
}

DEFAULT_TEMPERATURES: Dict[Capability, float] = {
    Capability.FAST_TASK: 0.3,
    Capability.RESEARCH: 0.7,
    Capability.ANALYSIS: 0.5,
    Capability.CODING: 0.4,
    Capability.CREATIVE: 0.9,
}

DEFAULT_PREFERENCE = 0.5
DEFAULT_CONFIDENCE = 0.3


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]; non-finite values collapse to low"""
    if value is None or not math.isfinite(value):
        return low
    return max(low, min(high, value))


@dataclass
class EntropyWeights:
    """Contribution of each entropy feature (sums to 1.0)"""

    length: float = 0.35
    keyword: float = 0.45
    history: float = 0.15
    visual: float = 0.05

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in ENTROPY_WEIGHT_NAMES}

    def total(self) -> float:
        return sum(self.as_dict().values())

    def normalize_and_clamp(self) -> None:
        """
        Normalize to sum 1.0 and clamp each weight into its range.

        After clamping, the leftover mass is spread over the weights that
        still have room, proportionally to that room, so both the sum and
        the ranges hold exactly.
        """
        values = self.as_dict()

        if not all(math.isfinite(v) for v in values.values()) or sum(values.values()) <= 0:
            logger.warning(f"Invalid entropy weights {values}, restoring defaults")
            values = EntropyWeights().as_dict()

        total = sum(values.values())
        values = {name: v / total for name, v in values.items()}
        values = {
            name: clamp(v, *ENTROPY_WEIGHT_RANGES[name]) for name, v in values.items()
        }

        residual = 1.0 - sum(values.values())
        if residual > 0:
            room = {name: ENTROPY_WEIGHT_RANGES[name][1] - v for name, v in values.items()}
        else:
            room = {name: v - ENTROPY_WEIGHT_RANGES[name][0] for name, v in values.items()}

        total_room = sum(room.values())
        if residual != 0 and total_room > 0:
            sign = 1.0 if residual > 0 else -1.0
            share = min(abs(residual) / total_room, 1.0)
            values = {name: v + sign * room[name] * share for name, v in values.items()}

        for name, v in values.items():
            setattr(self, name, v)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "EntropyWeights":
        defaults = cls()
        data = data or {}
        weights = cls(
            **{
                name: _as_float(data.get(name), getattr(defaults, name))
                for name in ENTROPY_WEIGHT_NAMES
            }
        )
        weights.normalize_and_clamp()
        return weights


def _as_float(value: Any, fallback: float) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return fallback
    return result if math.isfinite(result) else fallback


def _capability_table(
    data: Optional[Mapping[Any, Any]],
    defaults: Dict[Capability, float],
    bounds: Tuple[float, float],
) -> Dict[Capability, float]:
    table = dict(defaults)
    for key, value in (data or {}).items():
        capability = coerce_capability(key)
        if capability is None:
            logger.warning(f"Dropping weight for unknown capability: {key!r}")
            continue
        table[capability] = _as_float(value, defaults[capability])
    return {cap: clamp(v, *bounds) for cap, v in table.items()}


@dataclass
class CortexWeights:
    """
    Learned parameters of the cortex.

    Attributes:
        entropy_weights: Feature weights for entropy estimation
        budget_multipliers: Reasoning-budget scale per capability (0.5 - 3.0)
        temperature_settings: Sampling temperature per capability (0.0 - 1.0)
        routing_preferences: Smoothed success rate per capability (0.0 - 1.0)
        last_updated: Time of the last optimization pass
        update_count: Number of applied passes
        confidence: Trust in the weights; never decreases
    """

    entropy_weights: EntropyWeights = field(default_factory=EntropyWeights)
    budget_multipliers: Dict[Capability, float] = field(
        default_factory=lambda: dict(DEFAULT_BUDGET_MULTIPLIERS)
    )
    temperature_settings: Dict[Capability, float] = field(
        default_factory=lambda: dict(DEFAULT_TEMPERATURES)
    )
    routing_preferences: Dict[Capability, float] = field(
        default_factory=lambda: {cap: DEFAULT_PREFERENCE for cap in ALL_CAPABILITIES}
    )
    last_updated: float = field(default_factory=time.time)
    update_count: int = 0
    confidence: float = DEFAULT_CONFIDENCE

    def clamp_all(self) -> None:
        """Force every bounded scalar back into its range"""
        self.entropy_weights.normalize_and_clamp()
        self.budget_multipliers = {
            cap: clamp(v, *BUDGET_MULTIPLIER_RANGE) for cap, v in self.budget_multipliers.items()
        }
        self.temperature_settings = {
            cap: clamp(v, *TEMPERATURE_RANGE) for cap, v in self.temperature_settings.items()
        }
        self.routing_preferences = {
            cap: clamp(v, *PREFERENCE_RANGE) for cap, v in self.routing_preferences.items()
        }
        self.confidence = clamp(self.confidence, *CONFIDENCE_RANGE)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable snapshot"""
        return {
            "entropy_weights": self.entropy_weights.as_dict(),
            "budget_multipliers": {cap.value: v for cap, v in self.budget_multipliers.items()},
            "temperature_settings": {
                cap.value: v for cap, v in self.temperature_settings.items()
            },
            "routing_preferences": {
                cap.value: v for cap, v in self.routing_preferences.items()
            },
            "last_updated": self.last_updated,
            "update_count": self.update_count,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]] = None) -> "CortexWeights":
        """
        Build weights from a (possibly partial) snapshot.

        Missing entries take their defaults; every value is clamped.

        Raises:
            ValueError: If data is not a mapping
        """
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ValueError(f"Weights snapshot must be a mapping, got {type(data).__name__}")

        data = copy.deepcopy(dict(data))
        weights = cls(
            entropy_weights=EntropyWeights.from_dict(data.get("entropy_weights")),
            budget_multipliers=_capability_table(
                data.get("budget_multipliers"), DEFAULT_BUDGET_MULTIPLIERS, BUDGET_MULTIPLIER_RANGE
            ),
            temperature_settings=_capability_table(
                data.get("temperature_settings"), DEFAULT_TEMPERATURES, TEMPERATURE_RANGE
            ),
            routing_preferences=_capability_table(
                data.get("routing_preferences"),
                {cap: DEFAULT_PREFERENCE for cap in ALL_CAPABILITIES},
                PREFERENCE_RANGE,
            ),
            last_updated=_as_float(data.get("last_updated"), time.time()),
            update_count=max(0, int(_as_float(data.get("update_count"), 0))),
            confidence=clamp(
                _as_float(data.get("confidence"), DEFAULT_CONFIDENCE), *CONFIDENCE_RANGE
            ),
        )
        return weights
