"""
Learning Cortex

Buffers execution experiences, predicts reasoning budget, success and
temperature per capability, and periodically re-optimizes its weights from
the buffer:

1. Entropy weights: batch-averaged gradient step on
   (actual_success - weighted_entropy) * feature, then normalize and clamp.
2. Budget multipliers: grow when a capability keeps failing, shrink when it
   is reliably high quality and efficient.
3. Routing preferences: exponential smoothing toward observed success.
"""

from collections import defaultdict, deque
from pathlib import Path
from typing import Any, Deque, Dict, List, Mapping, Optional, Union
import copy
import json
import math
import threading
import time
import logging

import numpy as np

from observability.metrics import telemetry
from observability.tracing import create_span
from routing.capabilities import MAX_REASONING_BUFFER, Capability, coerce_capability
from routing.entropy import EntropyScorer, LexicalEntropyScorer

from .config import CortexConfig
from .experience import Experience, ExperienceBuffer, TaskRecord, experience_from_task
from .weights import (
    BUDGET_MULTIPLIER_RANGE,
    DEFAULT_PREFERENCE,
    ENTROPY_WEIGHT_NAMES,
    PREFERENCE_RANGE,
    CortexWeights,
    EntropyWeights,
    clamp,
)

logger = logging.getLogger(__name__)


BASE_BUDGET = 100
MAX_BUDGET = 32000
VISUAL_BUDGET_FACTOR = 1.5
ENTROPY_SUCCESS_PENALTY = 0.2
MIN_PREDICTED_SUCCESS = 0.1
NEUTRAL_TEMPERATURE = 0.5


class LearningCortex:
    """
    Online learner for budget sizing and success estimation.

    Owns its weights and experience buffer; all mutation happens under the
    instance lock, and a pass always runs on a drained copy of the buffer.
    """

    def __init__(
        self,
        config: Optional[CortexConfig] = None,
        initial_weights: Optional[Mapping[str, Any]] = None,
        entropy_scorer: Optional[EntropyScorer] = None,
    ):
        """
        Initialize learning cortex.

        Args:
            config: Cortex configuration
            initial_weights: Partial weights snapshot overriding the defaults
            entropy_scorer: Feature extractor for entropy weight learning
        """
        self.config = config or CortexConfig()
        self.weights = CortexWeights.from_dict(initial_weights)
        self.entropy_scorer = entropy_scorer or LexicalEntropyScorer()
        self.learning_rate = self.config.learning_rate
        self.buffer = ExperienceBuffer(self.config.max_buffer_size)
        self.lock = threading.Lock()

        telemetry.set_confidence(self.weights.confidence)

    # ------------------------------------------------------------------
    # Experience recording
    # ------------------------------------------------------------------

    def record_experience(self, experience: Experience) -> bool:
        """
        Buffer an experience; run a pass once the update frequency is reached.

        Args:
            experience: Completed-task experience

        Returns:
            True if this call triggered an applied pass
        """
        with self.lock:
            self.buffer.append(experience)
            telemetry.set_buffer_size(len(self.buffer))

            if len(self.buffer) >= self.config.update_frequency:
                return self._reoptimize_locked()

        return False

    def create_experience(
        self,
        task: TaskRecord,
        predicted: Dict[str, Any],
        actual: Dict[str, Any],
    ) -> Experience:
        """
        Build an experience from a finished task. Does not touch cortex state.

        Args:
            task: Task view
            predicted: {"budget", "success"} at decision time
            actual: {"budget", "success", "quality", "latency"}

        Returns:
            Experience
        """
        return experience_from_task(task, predicted, actual)

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def predict_budget(
        self, entropy: float, capability: Union[Capability, str], has_visual: bool = False
    ) -> int:
        """
        Reasoning-token budget for a task.

        budget = floor(min(100 + entropy * max_buffer * multiplier * visual, 32000))

        Capabilities without a reasoning buffer (FAST_TASK) get no budget.

        Args:
            entropy: Task entropy (0.0 - 1.0)
            capability: Capability that will run the task
            has_visual: Whether the task includes visual input

        Returns:
            Token budget
        """
        resolved = coerce_capability(capability)
        if resolved is None:
            return BASE_BUDGET

        max_buffer = MAX_REASONING_BUFFER[resolved]
        if max_buffer <= 0:
            return 0

        with self.lock:
            multiplier = self.weights.budget_multipliers[resolved]

        entropy = clamp(entropy, 0.0, 1.0)
        visual = VISUAL_BUDGET_FACTOR if has_visual else 1.0
        budget = BASE_BUDGET + entropy * max_buffer * multiplier * visual

        return int(math.floor(min(budget, MAX_BUDGET)))

    def predict_success(self, entropy: float, capability: Union[Capability, str]) -> float:
        """
        Success probability: routing preference minus an entropy penalty,
        clamped to [0.1, 1.0].
        """
        resolved = coerce_capability(capability)
        with self.lock:
            preference = (
                self.weights.routing_preferences[resolved]
                if resolved is not None
                else DEFAULT_PREFERENCE
            )

        penalty = clamp(entropy, 0.0, 1.0) * ENTROPY_SUCCESS_PENALTY
        return clamp(preference - penalty, MIN_PREDICTED_SUCCESS, 1.0)

    def get_temperature(self, capability: Union[Capability, str]) -> float:
        """Recommended sampling temperature for a capability"""
        resolved = coerce_capability(capability)
        if resolved is None:
            return NEUTRAL_TEMPERATURE
        with self.lock:
            return self.weights.temperature_settings[resolved]

    # ------------------------------------------------------------------
    # Optimization
    # ------------------------------------------------------------------

    def reoptimize(self) -> bool:
        """
        Run a pass over the current buffer.

        Returns:
            True if weights were updated; False if the batch was too small
            or the pass failed
        """
        with self.lock:
            return self._reoptimize_locked()

    def _reoptimize_locked(self) -> bool:
        if len(self.buffer) < self.config.min_batch_size:
            logger.debug(
                f"Skipping pass: {len(self.buffer)} experiences "
                f"(< {self.config.min_batch_size})"
            )
            telemetry.record_cortex_pass("skipped")
            return False

        batch = self.buffer.drain()
        telemetry.set_buffer_size(0)

        logger.info(f"Updating weights from {len(batch)} experiences")

        with create_span("cortex_reoptimize", {"batch_size": len(batch)}):
            try:
                candidate = copy.deepcopy(self.weights)
                prediction_error = self._mean_prediction_error(batch, candidate)

                self._optimize_entropy_weights(batch, candidate)
                self._optimize_budget_multipliers(batch, candidate)
                self._optimize_routing_preferences(batch, candidate)

                candidate.last_updated = time.time()
                candidate.update_count += 1
                candidate.confidence = min(
                    candidate.confidence + self.config.confidence_step, 1.0
                )
                candidate.clamp_all()
            except Exception as e:
                logger.error(f"Weight update failed, keeping previous weights: {e}", exc_info=True)
                telemetry.record_cortex_pass("failed")
                return False

            self.weights = candidate

        self._after_pass(batch, prediction_error)

        telemetry.record_cortex_pass("applied")
        telemetry.set_confidence(self.weights.confidence)
        logger.info(
            f"Weight update complete: update_count={self.weights.update_count}, "
            f"confidence={self.weights.confidence:.2f}, "
            f"entropy_weights={self.weights.entropy_weights.as_dict()}"
        )
        return True

    def _after_pass(self, batch: List[Experience], prediction_error: float) -> None:
        """Hook run after an applied pass (lock held)"""

    def _mean_prediction_error(self, batch: List[Experience], weights: CortexWeights) -> float:
        if not batch:
            return 0.0
        errors = []
        for exp in batch:
            preference = weights.routing_preferences.get(exp.capability, DEFAULT_PREFERENCE)
            predicted = clamp(
                preference - clamp(exp.task_entropy, 0.0, 1.0) * ENTROPY_SUCCESS_PENALTY,
                MIN_PREDICTED_SUCCESS,
                1.0,
            )
            errors.append(abs(predicted - (1.0 if exp.actual_success else 0.0)))
        return float(np.mean(errors))

    def _optimize_entropy_weights(self, batch: List[Experience], weights: CortexWeights) -> None:
        # Goal: weighted entropy estimate tracks task success
        features = np.array(
            [self.entropy_scorer.experience_features(exp).as_list() for exp in batch],
            dtype=float,
        )
        targets = np.array([1.0 if exp.actual_success else 0.0 for exp in batch])
        current = np.array(
            [getattr(weights.entropy_weights, name) for name in ENTROPY_WEIGHT_NAMES]
        )

        errors = targets - features @ current
        gradient = (errors[:, np.newaxis] * features).sum(axis=0) / max(len(batch), 1)
        updated = current + self.learning_rate * gradient

        weights.entropy_weights = EntropyWeights(
            **{name: float(value) for name, value in zip(ENTROPY_WEIGHT_NAMES, updated)}
        )
        weights.entropy_weights.normalize_and_clamp()

    def _optimize_budget_multipliers(
        self, batch: List[Experience], weights: CortexWeights
    ) -> None:
        for capability, experiences in _group_by_capability(batch).items():
            count = len(experiences)
            avg_success = sum(1 for e in experiences if e.actual_success) / count
            avg_quality = sum(e.actual_quality for e in experiences) / count
            avg_efficiency = (
                sum(e.actual_quality / max(e.actual_budget, 1) for e in experiences) / count
            )

            current = weights.budget_multipliers.get(capability, 1.0)

            if avg_success < self.config.success_threshold:
                updated = current * self.config.increase_factor
            elif (
                avg_quality > self.config.quality_threshold
                and avg_efficiency > self.config.efficiency_threshold
            ):
                updated = current * self.config.decrease_factor
            else:
                updated = current

            weights.budget_multipliers[capability] = clamp(updated, *BUDGET_MULTIPLIER_RANGE)

            logger.debug(
                f"Budget multiplier {capability.value}: {current:.3f} -> "
                f"{weights.budget_multipliers[capability]:.3f} "
                f"(success={avg_success:.2f}, quality={avg_quality:.2f})"
            )

    def _optimize_routing_preferences(
        self, batch: List[Experience], weights: CortexWeights
    ) -> None:
        alpha = self.config.preference_smoothing
        for capability, experiences in _group_by_capability(batch).items():
            success_rate = sum(1 for e in experiences if e.actual_success) / len(experiences)
            current = weights.routing_preferences.get(capability, DEFAULT_PREFERENCE)
            weights.routing_preferences[capability] = clamp(
                current * (1 - alpha) + success_rate * alpha, *PREFERENCE_RANGE
            )

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def get_metrics(self) -> Dict[str, Any]:
        """
        Learning metrics over the buffered experiences.

        Returns:
            total_experiences, avg_prediction_error, success_rate,
            avg_quality, last_update, update_count, convergence_score
        """
        with self.lock:
            batch = self.buffer.snapshot()
            weights = self.weights
            metrics = {
                "total_experiences": len(batch),
                "avg_prediction_error": 0.0,
                "success_rate": 0.0,
                "avg_quality": 0.0,
                "last_update": weights.last_updated,
                "update_count": weights.update_count,
                # Confidence stands in for weight stability
                "convergence_score": weights.confidence,
            }

            if batch:
                metrics["avg_prediction_error"] = self._mean_prediction_error(batch, weights)
                metrics["success_rate"] = sum(1 for e in batch if e.actual_success) / len(batch)
                metrics["avg_quality"] = sum(e.actual_quality for e in batch) / len(batch)

        return metrics

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def export_weights(self) -> Dict[str, Any]:
        """Snapshot of the current weights"""
        with self.lock:
            return self.weights.to_dict()

    def import_weights(self, snapshot: Mapping[str, Any]) -> None:
        """
        Replace the current weights with a snapshot.

        Raises:
            ValueError: If snapshot is not a mapping
        """
        weights = CortexWeights.from_dict(snapshot)
        with self.lock:
            self.weights = weights
        telemetry.set_confidence(weights.confidence)
        logger.info(f"Imported weights (update_count={weights.update_count})")

    def save_weights(self, path: Optional[Union[str, Path]] = None) -> Path:
        """
        Write the weights snapshot as JSON.

        Args:
            path: Target file (defaults to config.weights_path)

        Returns:
            Path written
        """
        target = self._resolve_path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(self.export_weights(), indent=2, sort_keys=True))
        logger.info(f"Saved cortex weights to {target}")
        return target

    def load_weights(self, path: Optional[Union[str, Path]] = None) -> bool:
        """
        Load a JSON weights snapshot if the file exists.

        Returns:
            True if weights were loaded
        """
        target = self._resolve_path(path)
        if not target.exists():
            logger.warning(f"No cortex weights at {target}, keeping current weights")
            return False
        self.import_weights(json.loads(target.read_text()))
        return True

    def _resolve_path(self, path: Optional[Union[str, Path]]) -> Path:
        path = path or self.config.weights_path
        if not path:
            raise ValueError("No weights path given and config.weights_path is unset")
        return Path(path).expanduser()

    def clear_buffer(self) -> None:
        with self.lock:
            self.buffer.clear()
        telemetry.set_buffer_size(0)


def _group_by_capability(batch: List[Experience]) -> Dict[Capability, List[Experience]]:
    groups: Dict[Capability, List[Experience]] = defaultdict(list)
    for exp in batch:
        capability = coerce_capability(exp.capability)
        if capability is None:
            logger.warning(f"Ignoring experience with unknown capability: {exp.capability!r}")
            continue
        groups[capability].append(exp)
    return groups


class MetaLearningCortex(LearningCortex):
    """
    Cortex that tunes its own learning rate.

    Tracks the mean prediction error of each pass. When the last five are
    flat the learning rate grows; when they swing it shrinks.
    """

    HISTORY_WINDOW = 5
    PLATEAU_VARIANCE = 0.001
    OSCILLATION_VARIANCE = 0.01
    MAX_LEARNING_RATE = 0.2
    MIN_LEARNING_RATE = 0.01

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.error_history: Deque[float] = deque(maxlen=self.HISTORY_WINDOW)

    def _after_pass(self, batch: List[Experience], prediction_error: float) -> None:
        self.error_history.append(prediction_error)
        self._adapt_learning_rate()

    def _adapt_learning_rate(self) -> None:
        if len(self.error_history) < self.HISTORY_WINDOW:
            return

        variance = float(np.var(list(self.error_history)))
        previous = self.learning_rate

        if variance < self.PLATEAU_VARIANCE:
            self.learning_rate = min(self.learning_rate * 1.2, self.MAX_LEARNING_RATE)
        elif variance > self.OSCILLATION_VARIANCE:
            self.learning_rate = max(self.learning_rate * 0.8, self.MIN_LEARNING_RATE)

        if self.learning_rate != previous:
            logger.info(
                f"Learning rate {previous:.4f} -> {self.learning_rate:.4f} "
                f"(error variance={variance:.5f})"
            )
