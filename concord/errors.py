"""Exception taxonomy for the decision engine.

Caller errors (unknown decision, unknown strategy) are raised synchronously
from the engine API. The ``timeout`` and ``insufficient_votes`` outcomes are
not errors and never raise.
"""

from __future__ import annotations


class ConcordError(Exception):
    """Base exception for all engine-specific errors."""


class DecisionNotFoundError(ConcordError, KeyError):
    """Raised when a decision id is unknown or no longer pending."""

    def __init__(self, decision_id: str) -> None:
        super().__init__(decision_id)
        self.decision_id = decision_id

    def __str__(self) -> str:
        return f"Decision {self.decision_id} not found"


class InvalidStrategyError(ConcordError, ValueError):
    """Raised when a conflict-resolution strategy name is not recognized."""

    def __init__(self, strategy: str) -> None:
        super().__init__(f"Unknown conflict resolution strategy: {strategy}")
        self.strategy = strategy


class DecisionWaitTimeoutError(ConcordError, TimeoutError):
    """Raised when ``wait_for_decision`` gives up before a decision exists."""

    def __init__(self, decision_id: str, timeout_ms: int) -> None:
        super().__init__(f"Decision {decision_id} timeout after {timeout_ms}ms")
        self.decision_id = decision_id
        self.timeout_ms = timeout_ms


class EngineClosedError(ConcordError, RuntimeError):
    """Raised when the engine is used after ``shutdown()``."""
