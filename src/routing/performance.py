"""
Routing Policy Store

Per-capability performance statistics maintained as exponential moving
averages of reported outcomes.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Union
import threading
import time
import logging

from .capabilities import ALL_CAPABILITIES, Capability, coerce_capability
from .feedback import ExecutionOutcome

logger = logging.getLogger(__name__)


NEUTRAL_SUCCESS_RATE = 0.5
NEUTRAL_AVG_TOKENS = 1000.0
NEUTRAL_AVG_LATENCY_MS = 5000.0


@dataclass
class RoutePerformance:
    """
    Learned statistics for one capability.

    Starts from neutral priors and is updated once per reported outcome.
    """

    capability: Capability
    success_rate: float = NEUTRAL_SUCCESS_RATE
    avg_tokens: float = NEUTRAL_AVG_TOKENS
    avg_latency: float = NEUTRAL_AVG_LATENCY_MS
    sample_count: int = 0
    last_updated: float = field(default_factory=time.time)

    def apply_outcome(self, outcome: ExecutionOutcome, alpha: float) -> None:
        """
        Fold an outcome into the moving averages.

        Args:
            outcome: Reported stage outcome
            alpha: EMA learning rate (0.0 - 1.0)
        """
        alpha = max(0.0, min(1.0, alpha))
        sample = 1.0 if outcome.success else 0.0

        self.success_rate = self.success_rate * (1 - alpha) + sample * alpha
        self.avg_tokens = self.avg_tokens * (1 - alpha) + outcome.tokens_used * alpha
        self.avg_latency = self.avg_latency * (1 - alpha) + outcome.latency_ms * alpha

        self.success_rate = max(0.0, min(1.0, self.success_rate))
        self.avg_tokens = max(0.0, self.avg_tokens)
        self.avg_latency = max(0.0, self.avg_latency)

        self.sample_count += 1
        self.last_updated = time.time()

    def to_dict(self) -> Dict:
        """Serialize to dictionary"""
        return {
            "capability": self.capability.value,
            "success_rate": self.success_rate,
            "avg_tokens": self.avg_tokens,
            "avg_latency": self.avg_latency,
            "sample_count": self.sample_count,
            "last_updated": self.last_updated,
        }


class RoutePerformanceStore:
    """
    Fixed table of RoutePerformance records, one per capability.

    Records are created once at construction. Writes go through update()
    under the owner's lock; reads return copies.
    """

    def __init__(self, lock: Optional[threading.RLock] = None):
        """
        Args:
            lock: Guard shared with the owning engine (a private one if None)
        """
        self.lock = lock if lock is not None else threading.RLock()
        self._records: Dict[Capability, RoutePerformance] = {
            capability: RoutePerformance(capability=capability)
            for capability in ALL_CAPABILITIES
        }

    def get(self, capability: Union[Capability, str, None]) -> Optional[RoutePerformance]:
        """
        Copy of the record for a capability.

        Returns:
            RoutePerformance copy, or None for an unknown capability
        """
        resolved = coerce_capability(capability)
        if resolved is None:
            return None
        with self.lock:
            return replace(self._records[resolved])

    def snapshot(self) -> Dict[Capability, RoutePerformance]:
        """Consistent copy of every record"""
        with self.lock:
            return {cap: replace(perf) for cap, perf in self._records.items()}

    def update(
        self, capability: Union[Capability, str], outcome: ExecutionOutcome, alpha: float
    ) -> Optional[RoutePerformance]:
        """
        Apply an outcome to a capability's record.

        Returns:
            Copy of the updated record, or None if the capability is unknown
        """
        resolved = coerce_capability(capability)
        if resolved is None:
            logger.warning(f"Ignoring outcome for unknown capability: {capability!r}")
            return None

        with self.lock:
            record = self._records[resolved]
            record.apply_outcome(outcome, alpha)
            updated = replace(record)

        logger.info(
            f"Updated {resolved.value}: samples={updated.sample_count}, "
            f"success_rate={updated.success_rate:.3f}, "
            f"avg_tokens={updated.avg_tokens:.0f}, avg_latency={updated.avg_latency:.0f}ms"
        )
        return updated

    def set(self, record: RoutePerformance) -> None:
        """Replace a record wholesale (seeding from persisted statistics)"""
        with self.lock:
            current = self._records[record.capability]
            self._records[record.capability] = replace(
                record, sample_count=max(record.sample_count, current.sample_count)
            )

    def reset(self) -> None:
        """Restore neutral priors for every capability"""
        with self.lock:
            self._records = {
                capability: RoutePerformance(capability=capability)
                for capability in ALL_CAPABILITIES
            }
        logger.info("Reset routing performance statistics")
