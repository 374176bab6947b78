"""Routing exceptions"""


class RoutingError(Exception):
    """Base class for routing failures"""


class NoEligibleCapabilityError(RoutingError):
    """Raised when budget or eligibility filtering leaves no capability to select"""

    def __init__(self, budget: float, available: int):
        self.budget = budget
        self.available = available
        super().__init__(
            f"No eligible capability (budget={budget:.0f}, available={available})"
        )
