"""
Routing Analytics

Execution log behind the orchestration engine's analytics snapshot.
"""

from typing import Dict, List, Optional
import time
import logging
from dataclasses import dataclass, field

from .feedback import ExecutionOutcome
from .plan import AgentSelection

logger = logging.getLogger(__name__)


DEFAULT_MAX_RECORDS = 10000


@dataclass
class ExecutionRecord:
    """One reported stage outcome"""

    selection: AgentSelection
    outcome: ExecutionOutcome
    context_entropy: float = 0.0
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict:
        """Serialize to dictionary"""
        return {
            "timestamp": self.timestamp,
            "selection": self.selection.to_dict(),
            "outcome": self.outcome.to_dict(),
            "context_entropy": self.context_entropy,
        }


class MetricsCollector:
    """
    Collects execution records and derives routing analytics.

    Tracks:
    - Total executions
    - Observed exploration fraction
    - Success-derived utility
    """

    def __init__(self, max_records: Optional[int] = DEFAULT_MAX_RECORDS):
        """
        Args:
            max_records: Keep only the most recent N records (None = unbounded)
        """
        self.max_records = max_records
        self.total_recorded = 0
        self.execution_log: List[ExecutionRecord] = []

    def record_execution(
        self,
        selection: AgentSelection,
        outcome: ExecutionOutcome,
        context_entropy: float = 0.0,
    ) -> ExecutionRecord:
        """Append a record for a completed stage"""
        record = ExecutionRecord(
            selection=selection, outcome=outcome, context_entropy=context_entropy
        )
        self.execution_log.append(record)
        self.total_recorded += 1

        if self.max_records is not None and len(self.execution_log) > self.max_records:
            self.execution_log = self.execution_log[-self.max_records:]

        return record

    def get_exploration_rate(self, recent_n: Optional[int] = None) -> float:
        """
        Fraction of records whose selection was an exploration.

        Args:
            recent_n: Only consider recent N records

        Returns:
            Exploration rate from 0.0 to 1.0
        """
        history = self.execution_log
        if recent_n is not None:
            history = history[-recent_n:]

        if not history:
            return 0.0

        explorations = sum(1 for record in history if record.selection.is_exploration)
        return explorations / len(history)

    def get_avg_utility(self, recent_n: Optional[int] = None) -> float:
        """
        Success fraction of reported outcomes.

        Returns:
            Average utility from 0.0 to 1.0
        """
        history = self.execution_log
        if recent_n is not None:
            history = history[-recent_n:]

        if not history:
            return 0.0

        return sum(1 for record in history if record.outcome.success) / len(history)

    def get_capability_distribution(self) -> Dict[str, int]:
        """Count of records per capability"""
        distribution: Dict[str, int] = {}
        for record in self.execution_log:
            key = record.selection.capability.value
            distribution[key] = distribution.get(key, 0) + 1
        return distribution

    def get_stats(self) -> Dict:
        return {
            "total_executions": self.total_recorded,
            "exploration_rate": self.get_exploration_rate(),
            "avg_utility_score": self.get_avg_utility(),
            "capability_distribution": self.get_capability_distribution(),
        }

    def clear(self) -> None:
        """Clear all records"""
        self.execution_log.clear()
        self.total_recorded = 0
