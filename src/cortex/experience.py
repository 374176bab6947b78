"""
Experience Buffer

Outcome records the cortex learns from, held in a bounded FIFO.
"""

from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any, Deque, Dict, List, Optional
import time

from routing.capabilities import Capability


@dataclass
class TaskRecord:
    """View of a task at completion time"""

    task_id: str
    capability: Capability
    description: str = ""
    entropy: float = 0.0
    has_visual: bool = False
    history_length: int = 0


@dataclass
class Experience:
    """
    One completed task: input features, the predictions made for it, and
    what actually happened.
    """

    # Input features
    task_entropy: float
    capability: Capability
    prompt_length: int
    has_visual: bool
    history_length: int

    # Predicted at decision time
    predicted_budget: float
    predicted_success: float

    # Observed at completion
    actual_budget: float
    actual_success: bool
    actual_quality: float
    actual_latency: float

    task_id: str = ""
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["capability"] = self.capability.value
        return data


class ExperienceBuffer:
    """
    Bounded FIFO of experiences; the oldest entry is evicted first.

    Not synchronized on its own: the owning cortex serializes access.
    """

    def __init__(self, max_size: int = 1000):
        self.max_size = max(1, int(max_size))
        self._entries: Deque[Experience] = deque(maxlen=self.max_size)

    def append(self, experience: Experience) -> None:
        self._entries.append(experience)

    def drain(self) -> List[Experience]:
        """Remove and return every buffered experience"""
        entries = list(self._entries)
        self._entries.clear()
        return entries

    def snapshot(self) -> List[Experience]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))


def experience_from_task(
    task: TaskRecord,
    predicted: Dict[str, Any],
    actual: Dict[str, Any],
    timestamp: Optional[float] = None,
) -> Experience:
    """
    Map a finished task plus predicted/actual figures to an Experience.

    Args:
        task: Task view (entropy, capability, description, visual flag)
        predicted: {"budget", "success"} at decision time
        actual: {"budget", "success", "quality", "latency"} at completion

    Returns:
        Experience
    """
    return Experience(
        task_entropy=float(task.entropy),
        capability=task.capability,
        prompt_length=len(task.description or ""),
        has_visual=bool(task.has_visual),
        history_length=int(task.history_length),
        predicted_budget=float(predicted.get("budget", 0)),
        predicted_success=float(predicted.get("success", 0.0)),
        actual_budget=float(actual.get("budget", 0)),
        actual_success=bool(actual.get("success", False)),
        actual_quality=float(actual.get("quality", 0.0)),
        actual_latency=float(actual.get("latency", 0.0)),
        task_id=task.task_id,
        timestamp=time.time() if timestamp is None else timestamp,
    )
