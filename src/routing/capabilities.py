"""
Capability Catalog

Closed set of execution capabilities and the fixed per-capability tables
used by routing, planning and budget sizing.
"""

from enum import Enum
from typing import Dict, List, Optional, Union


class Capability(Enum):
    """Categories of work a task can be routed to."""

    FAST_TASK = "FAST_TASK"  # Extraction, formatting, low-effort work
    RESEARCH = "RESEARCH"
    ANALYSIS = "ANALYSIS"
    CODING = "CODING"
    CREATIVE = "CREATIVE"


ALL_CAPABILITIES: List[Capability] = list(Capability)

# Deterministic fallback used when a stage fails
FALLBACK_TABLE: Dict[Capability, Capability] = {
    Capability.FAST_TASK: Capability.RESEARCH,
    Capability.RESEARCH: Capability.ANALYSIS,
    Capability.ANALYSIS: Capability.CODING,
    Capability.CODING: Capability.ANALYSIS,
    Capability.CREATIVE: Capability.ANALYSIS,
}

ROLE_NAMES: Dict[Capability, List[str]] = {
    Capability.FAST_TASK: ["Quick Processor", "Rapid Executor", "Fast Handler"],
    Capability.RESEARCH: ["Research Analyst", "Information Gatherer", "Data Collector"],
    Capability.ANALYSIS: ["Deep Analyzer", "Strategic Thinker", "Critical Evaluator"],
    Capability.CODING: ["Software Engineer", "Code Architect", "Technical Developer"],
    Capability.CREATIVE: ["Creative Writer", "Content Designer", "Creative Strategist"],
}

# Token cost estimates when no learned average exists
DEFAULT_COST_ESTIMATES: Dict[Capability, int] = {
    Capability.FAST_TASK: 100,
    Capability.RESEARCH: 2000,
    Capability.ANALYSIS: 4000,
    Capability.CODING: 8000,
    Capability.CREATIVE: 3000,
}

# Upper bound of extra reasoning tokens per capability
MAX_REASONING_BUFFER: Dict[Capability, int] = {
    Capability.FAST_TASK: 0,
    Capability.RESEARCH: 4000,
    Capability.ANALYSIS: 8000,
    Capability.CODING: 16000,
    Capability.CREATIVE: 8000,
}


def coerce_capability(value: Union[Capability, str, None]) -> Optional[Capability]:
    """
    Resolve a capability from an enum member or its string value.

    Args:
        value: Capability or capability name

    Returns:
        Capability, or None if the value is not a known capability
    """
    if isinstance(value, Capability):
        return value
    if isinstance(value, str):
        try:
            return Capability(value.strip().upper())
        except ValueError:
            return None
    return None
