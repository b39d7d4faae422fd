"""Conflict-resolution strategies.

Each strategy is a pure function of the context, the vote snapshot and
the caller's resolution options, returning a finalized Decision. Strategies
that can find no deciding votes fall back to default consensus.
"""

from __future__ import annotations

from collections.abc import Sequence

from concord.consensus.voting import (
    ReliabilityFn,
    build_decision,
    evaluate_consensus,
    partition_votes,
    weighted_ratio,
)
from concord.schemas.decision import (
    AgentVote,
    Decision,
    DecisionContext,
    Outcome,
    VoteChoice,
)
from concord.schemas.resolution import ConflictResolution, ResolutionStrategy

# Approval fraction required by majority_plus
SUPERMAJORITY = 0.67

# Approval fraction among experts required by expert_override
EXPERT_MAJORITY = 0.5


def _outcome(approved: bool) -> Outcome:
    return Outcome.APPROVED if approved else Outcome.REJECTED


def weighted_vote(
    context: DecisionContext,
    votes: Sequence[AgentVote],
    resolution: ConflictResolution,
    reliability: ReliabilityFn,
) -> Decision:
    """Weighted approval using caller-supplied weights instead of reliability."""
    approve, reject, _ = partition_votes(votes)
    ratio = weighted_ratio(
        approve, reject, lambda agent_id: resolution.weights.get(agent_id, 1.0),
    )
    return build_decision(
        context,
        votes,
        _outcome(ratio >= context.threshold),
        max(ratio, 1 - ratio),
        f"Weighted vote resolution: {ratio:.0%} approval "
        f"(threshold {context.threshold:.0%})",
        ResolutionStrategy.WEIGHTED_VOTE.value,
    )


def expert_override(
    context: DecisionContext,
    votes: Sequence[AgentVote],
    resolution: ConflictResolution,
    reliability: ReliabilityFn,
) -> Decision:
    """Majority of the expert subset decides; no expert votes -> consensus."""
    experts = set(resolution.expert_agents)
    expert_votes = [v for v in votes if v.agent_id in experts]
    if not expert_votes:
        return _fallback(context, votes, reliability, ResolutionStrategy.EXPERT_OVERRIDE)

    approvals = sum(1 for v in expert_votes if v.vote == VoteChoice.APPROVE)
    ratio = approvals / len(expert_votes)
    return build_decision(
        context,
        votes,
        _outcome(ratio >= EXPERT_MAJORITY),
        max(ratio, 1 - ratio),
        f"Expert override: {approvals}/{len(expert_votes)} experts approved",
        ResolutionStrategy.EXPERT_OVERRIDE.value,
    )


def hierarchical(
    context: DecisionContext,
    votes: Sequence[AgentVote],
    resolution: ConflictResolution,
    reliability: ReliabilityFn,
) -> Decision:
    """First agent in the hierarchy with a non-abstain vote decides."""
    by_agent = {v.agent_id: v for v in votes}
    for agent_id in resolution.hierarchy:
        vote = by_agent.get(agent_id)
        if vote is None or vote.vote == VoteChoice.ABSTAIN:
            continue
        return build_decision(
            context,
            votes,
            _outcome(vote.vote == VoteChoice.APPROVE),
            vote.confidence,
            f"Hierarchical decision by {agent_id}: {vote.vote.value}",
            ResolutionStrategy.HIERARCHICAL.value,
        )
    return _fallback(context, votes, reliability, ResolutionStrategy.HIERARCHICAL)


def majority_plus(
    context: DecisionContext,
    votes: Sequence[AgentVote],
    resolution: ConflictResolution,
    reliability: ReliabilityFn,
) -> Decision:
    """Unweighted supermajority of non-abstain votes."""
    approve, reject, _ = partition_votes(votes)
    cast = len(approve) + len(reject)
    ratio = len(approve) / cast if cast else 0.0
    return build_decision(
        context,
        votes,
        _outcome(ratio >= SUPERMAJORITY),
        max(ratio, 1 - ratio),
        f"Supermajority required: {len(approve)}/{cast} ({ratio:.0%}) approval",
        ResolutionStrategy.MAJORITY_PLUS.value,
    )


def unanimous_required(
    context: DecisionContext,
    votes: Sequence[AgentVote],
    resolution: ConflictResolution,
    reliability: ReliabilityFn,
) -> Decision:
    """Every non-abstain vote must approve, and at least one must exist."""
    approve, reject, _ = partition_votes(votes)
    unanimous = bool(approve) and not reject
    return build_decision(
        context,
        votes,
        _outcome(unanimous),
        1.0 if unanimous else 0.0,
        "Unanimous approval"
        if unanimous
        else f"Unanimous approval required but not achieved ({len(reject)} reject)",
        ResolutionStrategy.UNANIMOUS_REQUIRED.value,
    )


def _fallback(
    context: DecisionContext,
    votes: Sequence[AgentVote],
    reliability: ReliabilityFn,
    strategy: ResolutionStrategy,
) -> Decision:
    decision = evaluate_consensus(context, votes, reliability)
    return decision.model_copy(update={
        "reasoning": f"{strategy.value}: no deciding votes, fell back to consensus. "
        f"{decision.reasoning}",
        "strategy": strategy.value,
    })
