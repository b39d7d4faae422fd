"""Agent reliability ledger.

Reliability is a trust multiplier applied to each agent's vote confidence
during consensus evaluation. It only changes when a caller reports whether
an agent's vote was later judged correct; the engine never infers this.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Protocol, runtime_checkable

from concord.schemas.engine import ReliabilityConfig

logger = logging.getLogger(__name__)


class FeedbackOutcome(StrEnum):
    """Caller's verdict on a past vote."""

    CORRECT = "correct"
    INCORRECT = "incorrect"


@runtime_checkable
class ReliabilityStore(Protocol):
    """Read/write interface the engine uses for reliability scores."""

    def get(self, agent_id: str) -> float: ...

    def update(self, agent_id: str, outcome: FeedbackOutcome | str) -> float: ...

    def snapshot(self) -> dict[str, float]: ...


class ReliabilityLedger:
    """Mutable per-agent reliability scores, clamped to configured bounds.

    Agents listed in ``config.known_agents`` start at ``initial_score``.
    Any other agent reads as ``default_score`` until feedback is recorded.
    """

    def __init__(self, config: ReliabilityConfig | None = None) -> None:
        self._config = config or ReliabilityConfig()
        self._scores: dict[str, float] = {
            agent_id: self._config.initial_score
            for agent_id in self._config.known_agents
        }

    def get(self, agent_id: str) -> float:
        return self._scores.get(agent_id, self._config.default_score)

    def update(self, agent_id: str, outcome: FeedbackOutcome | str) -> float:
        """Apply one feedback report and return the new score.

        Raises:
            ValueError: If ``outcome`` is not 'correct' or 'incorrect'.
        """
        outcome = FeedbackOutcome(outcome)
        step = self._config.step if outcome == FeedbackOutcome.CORRECT else -self._config.step
        current = self.get(agent_id)
        updated = max(
            self._config.min_score,
            min(self._config.max_score, round(current + step, 6)),
        )
        self._scores[agent_id] = updated

        logger.info(
            "Updated %s reliability %.3f -> %.3f (%s)",
            agent_id, current, updated, outcome.value,
        )
        return updated

    def snapshot(self) -> dict[str, float]:
        return dict(self._scores)

    def reset(self) -> None:
        """Drop all recorded feedback and re-seed known agents."""
        self._scores = {
            agent_id: self._config.initial_score
            for agent_id in self._config.known_agents
        }


class StaticReliability:
    """Fixed-score store. Feedback is accepted but ignored."""

    def __init__(self, score: float = 1.0, overrides: dict[str, float] | None = None) -> None:
        self._score = score
        self._overrides = dict(overrides or {})

    def get(self, agent_id: str) -> float:
        return self._overrides.get(agent_id, self._score)

    def update(self, agent_id: str, outcome: FeedbackOutcome | str) -> float:
        FeedbackOutcome(outcome)
        return self.get(agent_id)

    def snapshot(self) -> dict[str, float]:
        return dict(self._overrides)
