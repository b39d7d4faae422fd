"""Concord — multi-agent decision arbitration engine."""

__version__ = "0.1.0"

from concord.engine import DecisionEngine
from concord.errors import (
    ConcordError,
    DecisionNotFoundError,
    DecisionWaitTimeoutError,
    EngineClosedError,
    InvalidStrategyError,
)
from concord.events import DecisionEvent, EventBus, EventType
from concord.reliability import FeedbackOutcome, ReliabilityLedger, StaticReliability
from concord.schemas import (
    AgentVote,
    ConflictResolution,
    Decision,
    DecisionContext,
    DecisionMetrics,
    DecisionPattern,
    DecisionRequest,
    Outcome,
    Priority,
    ResolutionStrategy,
    VoteChoice,
)

__all__ = [
    "AgentVote",
    "ConcordError",
    "ConflictResolution",
    "Decision",
    "DecisionContext",
    "DecisionEngine",
    "DecisionEvent",
    "DecisionMetrics",
    "DecisionNotFoundError",
    "DecisionPattern",
    "DecisionRequest",
    "DecisionWaitTimeoutError",
    "EngineClosedError",
    "EventBus",
    "EventType",
    "FeedbackOutcome",
    "InvalidStrategyError",
    "Outcome",
    "Priority",
    "ReliabilityLedger",
    "ResolutionStrategy",
    "StaticReliability",
    "VoteChoice",
]
