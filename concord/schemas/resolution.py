"""Conflict-resolution schemas.

Defines the strategy enum and the options model passed to the conflict
resolver when a caller forces resolution instead of waiting for consensus.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class ResolutionStrategy(StrEnum):
    """Explicitly invoked aggregation rules that override default evaluation."""

    WEIGHTED_VOTE = "weighted_vote"
    EXPERT_OVERRIDE = "expert_override"
    HIERARCHICAL = "hierarchical"
    MAJORITY_PLUS = "majority_plus"
    UNANIMOUS_REQUIRED = "unanimous_required"


class ConflictResolution(BaseModel):
    """A strategy plus the options it reads.

    Options irrelevant to the chosen strategy are ignored.
    """

    strategy: ResolutionStrategy = Field(description="Resolution rule to apply")
    weights: dict[str, float] = Field(
        default_factory=dict,
        description="Per-agent weights for weighted_vote (missing agents weigh 1.0)",
    )
    expert_agents: list[str] = Field(
        default_factory=list, description="Expert subset for expert_override"
    )
    hierarchy: list[str] = Field(
        default_factory=list, description="Ordered agent list for hierarchical"
    )
