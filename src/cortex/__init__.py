"""
Learning Cortex Module

Experience buffering, budget/success/temperature prediction and periodic
weight re-optimization.
"""

from .config import CortexConfig
from .experience import Experience, ExperienceBuffer, TaskRecord, experience_from_task
from .weights import CortexWeights, EntropyWeights
from .learning import LearningCortex, MetaLearningCortex

__all__ = [
    "CortexConfig",
    "Experience",
    "ExperienceBuffer",
    "TaskRecord",
    "experience_from_task",
    "CortexWeights",
    "EntropyWeights",
    "LearningCortex",
    "MetaLearningCortex",
]
