"""Pydantic schemas for the decision engine."""

from concord.schemas.decision import (
    AgentVote,
    Decision,
    DecisionContext,
    DecisionRequest,
    ExecutionStep,
    Outcome,
    Priority,
    VoteChoice,
)
from concord.schemas.engine import (
    DecisionMetrics,
    DecisionPattern,
    EngineConfig,
    ReliabilityConfig,
)
from concord.schemas.resolution import ConflictResolution, ResolutionStrategy

__all__ = [
    "AgentVote",
    "ConflictResolution",
    "Decision",
    "DecisionContext",
    "DecisionMetrics",
    "DecisionPattern",
    "DecisionRequest",
    "EngineConfig",
    "ExecutionStep",
    "Outcome",
    "Priority",
    "ReliabilityConfig",
    "ResolutionStrategy",
    "VoteChoice",
]
