"""
Pytest configuration.

Puts src/ on the path and adds --routing-seed for reproducible random
sources in routing tests.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent / "src"))


def pytest_addoption(parser):
    """Add custom command line options"""
    parser.addoption(
        "--routing-seed",
        action="store",
        type=int,
        default=42,
        help="Seed for engine random sources in routing tests"
    )


@pytest.fixture(scope="session")
def routing_seed(request):
    """Seed used by engine fixtures"""
    return request.config.getoption("--routing-seed")
