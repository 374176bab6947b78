"""
Task Entropy Scoring

Estimates how complex a task is on a 0.0 - 1.0 scale. The default scorer is a
lexical heuristic (prompt length plus keyword hits); it sits behind
EntropyScorer so a learned or semantic scorer can replace it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence
import logging

logger = logging.getLogger(__name__)


DEFAULT_KEYWORDS = ("analyze", "compare", "code", "research", "evaluate")


@dataclass
class EntropyFeatures:
    """Per-experience features that feed the entropy weights"""

    length: float
    keyword: float
    history: float
    visual: float

    def as_list(self) -> list:
        return [self.length, self.keyword, self.history, self.visual]



class EntropyScorer(ABC):
    """Strategy interface for task complexity scoring"""

    @abstractmethod
    def prompt_entropy(self, prompt: str) -> float:
        """Entropy of a raw prompt (0.0 - 1.0)"""

    @abstractmethod
    def experience_features(self, experience: Any) -> EntropyFeatures:
        """Features of a recorded experience (each 0.0 - 1.0)"""


class LexicalEntropyScorer(EntropyScorer):
    """
    Keyword and length heuristic.

    Prompt entropy = min(length_score * 0.5 + keyword_hits * 0.15, 1.0)
    where length_score saturates at 500 characters.

    Experiences only carry the prompt length, so the keyword feature is a
    fixed proxy value.
    """

    def __init__(
        self,
        keywords: Sequence[str] = DEFAULT_KEYWORDS,
        length_scale: int = 500,
        length_weight: float = 0.5,
        keyword_weight: float = 0.15,
        keyword_proxy: float = 0.5,
        history_scale: int = 10,
    ):
        """
        Initialize lexical scorer.

        Args:
            keywords: Words that signal a demanding task
            length_scale: Characters at which the length score saturates
            length_weight: Contribution of the length score to prompt entropy
            keyword_weight: Contribution of each keyword hit
            keyword_proxy: Keyword feature used for recorded experiences
            history_scale: History length at which the history feature saturates
        """
        self.keywords = tuple(k.lower() for k in keywords)
        self.length_scale = max(length_scale, 1)
        self.length_weight = length_weight
        self.keyword_weight = keyword_weight
        self.keyword_proxy = keyword_proxy
        self.history_scale = max(history_scale, 1)

    def prompt_entropy(self, prompt: str) -> float:
        text = (prompt or "").lower()
        length_score = min(len(text) / self.length_scale, 1.0)
        hits = sum(1 for keyword in self.keywords if keyword in text)

        entropy = min(length_score * self.length_weight + hits * self.keyword_weight, 1.0)

        logger.debug(f"Prompt entropy: length={length_score:.2f}, hits={hits}, entropy={entropy:.3f}")

        return entropy

    def experience_features(self, experience: Any) -> EntropyFeatures:
        return EntropyFeatures(
            length=min(max(experience.prompt_length, 0) / self.length_scale, 1.0),
            keyword=self.keyword_proxy,
            history=min(max(experience.history_length, 0) / self.history_scale, 1.0),
            visual=1.0 if experience.has_visual else 0.0,
        )
