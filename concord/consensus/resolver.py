"""Conflict resolver — dispatches a forced resolution to its strategy."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from concord.consensus.strategies import (
    expert_override,
    hierarchical,
    majority_plus,
    unanimous_required,
    weighted_vote,
)
from concord.consensus.voting import ReliabilityFn
from concord.errors import InvalidStrategyError
from concord.schemas.decision import AgentVote, Decision, DecisionContext
from concord.schemas.resolution import ConflictResolution, ResolutionStrategy

logger = logging.getLogger(__name__)

StrategyFn = Callable[
    [DecisionContext, Sequence[AgentVote], ConflictResolution, ReliabilityFn],
    Decision,
]

# Strategy dispatcher
_STRATEGY_FN: dict[ResolutionStrategy, StrategyFn] = {
    ResolutionStrategy.WEIGHTED_VOTE: weighted_vote,
    ResolutionStrategy.EXPERT_OVERRIDE: expert_override,
    ResolutionStrategy.HIERARCHICAL: hierarchical,
    ResolutionStrategy.MAJORITY_PLUS: majority_plus,
    ResolutionStrategy.UNANIMOUS_REQUIRED: unanimous_required,
}


def coerce_resolution(
    strategy: ConflictResolution | ResolutionStrategy | str,
    **options: Any,
) -> ConflictResolution:
    """Normalize the caller's strategy argument into a ConflictResolution.

    Args:
        strategy: A full ConflictResolution, an enum member, or a name.
        **options: weights / expert_agents / hierarchy, used when
            ``strategy`` is not already a ConflictResolution.

    Raises:
        InvalidStrategyError: If the name is not a known strategy.
    """
    if isinstance(strategy, ConflictResolution):
        return strategy.model_copy(update=options) if options else strategy
    try:
        name = ResolutionStrategy(strategy)
    except ValueError:
        raise InvalidStrategyError(str(strategy)) from None
    return ConflictResolution(strategy=name, **options)


class ConflictResolver:
    """Applies an explicit resolution strategy to a vote snapshot."""

    def __init__(self, reliability: ReliabilityFn) -> None:
        self._reliability = reliability

    @staticmethod
    def strategies() -> list[str]:
        return [s.value for s in _STRATEGY_FN]

    def resolve(
        self,
        context: DecisionContext,
        votes: Sequence[AgentVote],
        resolution: ConflictResolution,
    ) -> Decision:
        fn = _STRATEGY_FN.get(resolution.strategy)
        if fn is None:
            raise InvalidStrategyError(str(resolution.strategy))

        decision = fn(context, votes, resolution, self._reliability)
        logger.info(
            "Resolved %s via %s -> %s (confidence=%.2f)",
            context.id, resolution.strategy.value,
            decision.outcome.value, decision.confidence,
        )
        return decision
