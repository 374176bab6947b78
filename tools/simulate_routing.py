#!/usr/bin/env python3
"""
Routing Simulation Tool

Runs a seeded synthetic workload through the adaptive router and prints the
resulting routing analytics, cortex metrics and learned weights.
"""

import sys
import json
import asyncio
import logging
import argparse
from pathlib import Path
from typing import Dict, Optional

import numpy as np

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cortex import CortexConfig, LearningCortex, MetaLearningCortex
from observability import get_metrics_text, setup_tracing_from_config
from routing import Capability, ExecutionOutcome, OrchestrationEngine, RoutingPolicy
from routing.capabilities import DEFAULT_COST_ESTIMATES
from routing.router import AdaptiveRouter, StageDirective

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# Ground-truth success probability per capability
TRUE_SUCCESS_RATES: Dict[Capability, float] = {
    Capability.FAST_TASK: 0.95,
    Capability.RESEARCH: 0.75,
    Capability.ANALYSIS: 0.85,
    Capability.CODING: 0.6,
    Capability.CREATIVE: 0.7,
}

PROMPTS = [
    "Summarize this paragraph",
    "Research recent work on sparse attention and compare the main approaches",
    "Analyze the quarterly numbers and evaluate the growth trend",
    "Write code for a rate limiter and analyze its complexity",
    "Draft a short story about a lighthouse keeper",
    "Compare three caching strategies, research their trade-offs and evaluate which fits",
]


class SyntheticExecutor:
    """
    Seeded stand-in for the agent execution capability.

    Success is drawn from TRUE_SUCCESS_RATES; token usage scales with the
    capability's default cost and the predicted reasoning budget.
    """

    def __init__(self, seed: Optional[int] = None, failure_bias: float = 0.0):
        self.rng = np.random.default_rng(seed)
        self.failure_bias = failure_bias

    async def __call__(self, directive: StageDirective) -> ExecutionOutcome:
        capability = directive.selection.capability
        p_success = max(0.0, TRUE_SUCCESS_RATES[capability] - self.failure_bias)
        success = bool(self.rng.random() < p_success)

        base = DEFAULT_COST_ESTIMATES[capability] + directive.predicted_budget * 0.5
        tokens = max(1, int(self.rng.normal(base, base * 0.1)))
        quality = float(np.clip(self.rng.normal(0.85, 0.08), 0.0, 1.0)) if success else 0.0
        latency_ms = float(self.rng.gamma(2.0, 400.0))

        return ExecutionOutcome(
            success=success,
            tokens_used=tokens,
            latency_ms=latency_ms,
            quality=quality,
        )


async def run_simulation(router: AdaptiveRouter, executor: SyntheticExecutor, tasks: int,
                         max_agents: int, budget: float, seed: Optional[int]) -> None:
    rng = np.random.default_rng(seed)
    for i in range(tasks):
        prompt = PROMPTS[int(rng.integers(len(PROMPTS)))]
        result = await router.execute(prompt, executor, max_agents=max_agents, budget=budget)
        logger.debug(
            f"Task {i}: {result.success_count}/{len(result.plan.stages)} stages succeeded "
            f"({result.plan.termination_reason})"
        )


def main():
    """Command-line interface for the routing simulation"""
    parser = argparse.ArgumentParser(
        description="Run a synthetic workload through the adaptive router"
    )

    parser.add_argument(
        '--tasks',
        type=int,
        default=200,
        help='Number of prompts to run (default: 200)'
    )

    parser.add_argument(
        '--seed',
        type=int,
        default=42,
        help='Random seed (default: 42)'
    )

    parser.add_argument(
        '--max-agents',
        type=int,
        default=5,
        help='Maximum stages per plan (default: 5)'
    )

    parser.add_argument(
        '--budget',
        type=float,
        default=100000.0,
        help='Token budget per plan (default: 100000)'
    )

    parser.add_argument(
        '--exploration-rate',
        type=float,
        default=0.1,
        help='Exploration rate epsilon (default: 0.1)'
    )

    parser.add_argument(
        '--failure-bias',
        type=float,
        default=0.0,
        help='Subtract from every true success rate (default: 0.0)'
    )

    parser.add_argument(
        '--meta',
        action='store_true',
        help='Use the meta-learning cortex (adaptive learning rate)'
    )

    parser.add_argument(
        '--save-weights',
        type=Path,
        help='Write learned cortex weights to this JSON file'
    )

    parser.add_argument(
        '--metrics',
        action='store_true',
        help='Print Prometheus metrics after the run'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    setup_tracing_from_config()

    policy = RoutingPolicy.from_env()
    policy.exploration_rate = args.exploration_rate

    cortex_class = MetaLearningCortex if args.meta else LearningCortex
    router = AdaptiveRouter(
        engine=OrchestrationEngine(policy=policy, seed=args.seed),
        cortex=cortex_class(CortexConfig.from_env()),
    )
    executor = SyntheticExecutor(seed=args.seed, failure_bias=args.failure_bias)

    try:
        logger.info(f"Running {args.tasks} tasks (seed={args.seed})...")
        asyncio.run(
            run_simulation(router, executor, args.tasks, args.max_agents, args.budget, args.seed)
        )
    except KeyboardInterrupt:
        logger.info("Simulation interrupted by user")
        sys.exit(130)

    print(json.dumps(router.get_stats(), indent=2, default=str))

    if args.metrics:
        print(get_metrics_text())

    if args.save_weights:
        path = router.cortex.save_weights(args.save_weights)
        logger.info(f"✓ Weights written to {path}")

    sys.exit(0)


if __name__ == "__main__":
    main()
