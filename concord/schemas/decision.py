"""Decision lifecycle schemas.

Defines the request a caller submits (DecisionRequest), the pending context
the engine owns while votes arrive (DecisionContext), individual agent votes
(AgentVote), and the immutable outcome (Decision) with its execution plan.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Timezone-aware current time used for every engine timestamp."""
    return datetime.now(UTC)


def new_decision_id() -> str:
    return f"decision_{uuid4().hex}"


class Priority(StrEnum):
    """Urgency tag carried by a decision request."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class VoteChoice(StrEnum):
    """A single agent's position on a proposed action."""

    APPROVE = "approve"
    REJECT = "reject"
    ABSTAIN = "abstain"


class Outcome(StrEnum):
    """Terminal outcome of a decision.

    ``timeout`` and ``insufficient_votes`` are valid outcomes, not errors.
    """

    APPROVED = "approved"
    REJECTED = "rejected"
    TIMEOUT = "timeout"
    INSUFFICIENT_VOTES = "insufficient_votes"


class DecisionRequest(BaseModel):
    """A request for arbitration, as submitted by a caller.

    The engine assigns the id and creation time when it accepts the request.
    """

    type: str = Field(min_length=1, description="Decision type tag (e.g. 'order_modification')")
    priority: Priority = Field(default=Priority.MEDIUM, description="Urgency of the decision")
    data: dict[str, Any] = Field(
        default_factory=dict, description="Opaque payload describing the proposed action"
    )
    required_agents: list[str] = Field(
        min_length=1, description="Agents whose vote is mandatory"
    )
    optional_agents: list[str] = Field(
        default_factory=list, description="Agents invited to vote but not required"
    )
    timeout_ms: int = Field(gt=0, description="Deadline for the decision in milliseconds")
    threshold: float = Field(
        ge=0.0, le=1.0, description="Minimum weighted approval fraction for approval"
    )

    @field_validator("required_agents", "optional_agents")
    @classmethod
    def _dedupe_agents(cls, agents: list[str]) -> list[str]:
        return list(dict.fromkeys(agents))


class DecisionContext(DecisionRequest):
    """A pending decision owned by the engine until it is finalized."""

    id: str = Field(default_factory=new_decision_id, description="Unique decision id")
    created_at: datetime = Field(
        default_factory=utc_now, description="When the engine accepted the request"
    )

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive times are read as UTC
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)

    @classmethod
    def from_request(cls, request: DecisionRequest) -> DecisionContext:
        return cls(**request.model_dump())

    @property
    def all_agents(self) -> list[str]:
        """Required agents followed by optional agents, without duplicates."""
        return list(dict.fromkeys([*self.required_agents, *self.optional_agents]))


class AgentVote(BaseModel):
    """One agent's vote on a decision. The latest vote per agent wins."""

    agent_id: str = Field(min_length=1, description="Identifier of the voting agent")
    vote: VoteChoice = Field(description="approve, reject or abstain")
    confidence: float = Field(ge=0.0, le=1.0, description="Agent's confidence in its vote")
    reasoning: str = Field(default="", description="Agent's justification")
    data: dict[str, Any] | None = Field(
        default=None, description="Optional structured contribution merged on approval"
    )
    timestamp: datetime = Field(
        default_factory=utc_now, description="When the engine received the vote"
    )


class ExecutionStep(BaseModel):
    """A symbolic instruction for an external executor."""

    step: int = Field(ge=1, description="1-based position in the plan")
    action: str = Field(description="Symbolic action name")
    agent: str = Field(description="Agent expected to carry out the action")
    data: dict[str, Any] = Field(default_factory=dict, description="Step parameters")


class Decision(BaseModel):
    """The immutable outcome of a decision context.

    Produced exactly once per context by consensus evaluation, a
    conflict-resolution strategy, or the timeout supervisor.
    """

    model_config = ConfigDict(frozen=True)

    context_id: str = Field(description="Id of the DecisionContext this resolves")
    outcome: Outcome = Field(description="Terminal outcome")
    confidence: float = Field(ge=0.0, le=1.0, description="Confidence in the outcome")
    votes: list[AgentVote] = Field(
        default_factory=list, description="Snapshot of votes at finalization"
    )
    reasoning: str = Field(default="", description="Human-readable derivation of the outcome")
    final_data: dict[str, Any] | None = Field(
        default=None, description="Data merged from approving votes (approved only)"
    )
    execution_plan: list[ExecutionStep] = Field(
        default_factory=list, description="Follow-up steps (approved only)"
    )
    strategy: str = Field(
        default="consensus",
        description="How the outcome was reached: 'consensus', 'timeout' or a strategy name",
    )
    timestamp: datetime = Field(default_factory=utc_now, description="When it was finalized")

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)

    @property
    def approved(self) -> bool:
        return self.outcome == Outcome.APPROVED
