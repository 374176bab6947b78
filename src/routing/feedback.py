"""
Execution Feedback

Normalizes outcome records reported by the execution layer.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Union
import math
import logging

logger = logging.getLogger(__name__)


TRUE_STRINGS = ("true", "1", "yes")


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _finite(value: Any, fallback: float = 0.0) -> float:
    """Float value, or fallback if unparseable, NaN or infinite"""
    try:
        result = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Unparseable outcome value {value!r}, using {fallback}")
        return fallback
    if not math.isfinite(result):
        logger.warning(f"Non-finite outcome value {value!r}, using {fallback}")
        return fallback
    return result


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


@dataclass
class ExecutionOutcome:
    """Outcome of one completed stage"""

    success: bool
    tokens_used: int = 0
    latency_ms: float = 0.0
    quality: float = 0.0

    def __post_init__(self):
        self.success = _truthy(self.success)
        self.tokens_used = max(0, int(_finite(self.tokens_used)))
        self.latency_ms = max(0.0, _finite(self.latency_ms))
        self.quality = max(0.0, min(1.0, _finite(self.quality)))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExecutionOutcome":
        """
        Build an outcome from a loosely-typed result payload.

        Accepts camelCase or snake_case keys. Unparseable or non-finite
        numbers fall back to zero; string flags count as success only
        for "true", "1" or "yes".

        Args:
            data: Result payload

        Returns:
            ExecutionOutcome
        """
        return cls(
            success=_truthy(_pick(data, "success", default=False)),
            tokens_used=int(_finite(_pick(data, "tokens_used", "tokensUsed", default=0))),
            latency_ms=_finite(_pick(data, "latency_ms", "latencyMs", default=0.0)),
            quality=_finite(_pick(data, "quality", "quality_score", default=0.0)),
        )

    @classmethod
    def coerce(cls, result: Union["ExecutionOutcome", Mapping[str, Any]]) -> "ExecutionOutcome":
        if isinstance(result, ExecutionOutcome):
            return result
        return cls.from_dict(result)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "tokens_used": self.tokens_used,
            "latency_ms": self.latency_ms,
            "quality": self.quality,
        }


def calculate_outcome_reward(outcome: ExecutionOutcome) -> float:
    """
    Scalar reward for an outcome.

    Returns:
        Quality if the stage succeeded, 0.0 otherwise
    """
    return outcome.quality if outcome.success else 0.0
