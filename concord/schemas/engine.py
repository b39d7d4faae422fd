"""Engine configuration, decision pattern and metrics schemas.

EngineConfig and ReliabilityConfig are loaded from defaults.toml;
DecisionPattern entries from patterns.toml. DecisionMetrics is the
aggregate view returned by the history.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class ReliabilityConfig(BaseModel):
    """Bounds and drift for agent reliability scores."""

    default_score: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Reliability read for unseen agents"
    )
    initial_score: float = Field(
        default=0.8, ge=0.0, le=1.0, description="Seed value for known agents"
    )
    step: float = Field(
        default=0.05, gt=0.0, le=1.0, description="Adjustment per feedback report"
    )
    min_score: float = Field(default=0.1, ge=0.0, le=1.0, description="Lower clamp")
    max_score: float = Field(default=1.0, ge=0.0, le=1.0, description="Upper clamp")
    known_agents: list[str] = Field(
        default_factory=list, description="Agents seeded at initial_score"
    )

    @model_validator(mode="after")
    def _check_bounds(self) -> ReliabilityConfig:
        if self.min_score > self.max_score:
            raise ValueError(
                f"min_score ({self.min_score}) exceeds max_score ({self.max_score})"
            )
        return self


class EngineConfig(BaseModel):
    """Top-level engine settings."""

    default_wait_timeout_ms: int = Field(
        default=30_000, gt=0, description="wait_for_decision timeout when none is given"
    )
    history_max_entries: int = Field(
        default=0, ge=0, description="History cap, oldest evicted first (0 = unbounded)"
    )
    default_history_limit: int = Field(
        default=50, gt=0, description="Default number of decisions returned by history"
    )
    reliability: ReliabilityConfig = Field(
        default_factory=ReliabilityConfig, description="Reliability ledger settings"
    )


class DecisionPattern(BaseModel):
    """Template that prefills a decision request for a recurring type."""

    type: str = Field(min_length=1, description="Decision type this pattern applies to")
    required_agents: list[str] = Field(min_length=1, description="Default required agents")
    optional_agents: list[str] = Field(
        default_factory=list, description="Default optional agents"
    )
    threshold: float = Field(ge=0.0, le=1.0, description="Default consensus threshold")
    timeout_ms: int = Field(gt=0, description="Default deadline in milliseconds")
    description: str = Field(default="", description="What the decision type is for")


class DecisionMetrics(BaseModel):
    """Aggregate statistics over the decision history."""

    total: int = Field(default=0, ge=0)
    approved: int = Field(default=0, ge=0)
    rejected: int = Field(default=0, ge=0)
    timeouts: int = Field(default=0, ge=0)
    insufficient_votes: int = Field(default=0, ge=0)
    average_latency_ms: float = Field(
        default=0.0, ge=0.0, description="Mean time from request to decision"
    )
    consensus_rate: float = Field(
        default=0.0, ge=0.0, le=1.0, description="(approved + rejected) / total"
    )
