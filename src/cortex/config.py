"""
Cortex Configuration

Buffer sizing, optimization cadence and update rules for the learning cortex.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class CortexConfig:
    """
    Learning cortex settings.

    Attributes:
        max_buffer_size: Experiences kept before FIFO eviction
        update_frequency: Buffered experiences that trigger a pass
        learning_rate: Step size for entropy weight updates
        min_batch_size: Smallest batch a pass will run on
        preference_smoothing: EMA factor for routing preferences
        success_threshold: Average success below which budgets grow
        quality_threshold: Average quality above which budgets may shrink
        efficiency_threshold: Minimum quality per token to shrink budgets
        increase_factor: Multiplier applied when budgets grow
        decrease_factor: Multiplier applied when budgets shrink
        confidence_step: Confidence gained per applied pass
        weights_path: JSON file used by save_weights/load_weights
    """

    max_buffer_size: int = 1000
    update_frequency: int = 100
    learning_rate: float = 0.05
    min_batch_size: int = 10
    preference_smoothing: float = 0.2
    success_threshold: float = 0.7
    quality_threshold: float = 0.85
    efficiency_threshold: float = 0.001
    increase_factor: float = 1.1
    decrease_factor: float = 0.95
    confidence_step: float = 0.1
    weights_path: Optional[str] = None

    def __post_init__(self):
        self.max_buffer_size = max(1, int(self.max_buffer_size))
        self.update_frequency = max(1, int(self.update_frequency))
        self.min_batch_size = max(1, int(self.min_batch_size))
        if self.update_frequency > self.max_buffer_size:
            logger.warning(
                f"update_frequency {self.update_frequency} exceeds buffer size "
                f"{self.max_buffer_size}; passes will trigger at the buffer size"
            )
            self.update_frequency = self.max_buffer_size

    @classmethod
    def from_env(cls) -> "CortexConfig":
        """Create config from environment variables"""
        return cls(
            max_buffer_size=int(os.getenv("CORTEX_MAX_BUFFER_SIZE", "1000")),
            update_frequency=int(os.getenv("CORTEX_UPDATE_FREQUENCY", "100")),
            learning_rate=float(os.getenv("CORTEX_LEARNING_RATE", "0.05")),
            min_batch_size=int(os.getenv("CORTEX_MIN_BATCH_SIZE", "10")),
            preference_smoothing=float(os.getenv("CORTEX_PREFERENCE_SMOOTHING", "0.2")),
            weights_path=os.getenv("CORTEX_WEIGHTS_PATH") or None,
        )
