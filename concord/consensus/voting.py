"""Vote collection, readiness, and reliability-weighted consensus.

Pure functions over a context and its current vote snapshot. The engine
owns the vote sets and the locking; nothing here mutates shared state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from numbers import Real
from typing import Any

from concord.planner import build_execution_plan
from concord.schemas.decision import (
    AgentVote,
    Decision,
    DecisionContext,
    Outcome,
    VoteChoice,
)

logger = logging.getLogger(__name__)

# Reliability lookup: agent id -> trust multiplier
ReliabilityFn = Callable[[str], float]


def upsert_vote(votes: dict[str, AgentVote], vote: AgentVote) -> bool:
    """Insert or replace ``vote`` keyed by agent id.

    Replacing keeps the agent's original position in submission order.

    Returns:
        True if an earlier vote from the same agent was replaced.
    """
    replaced = vote.agent_id in votes
    votes[vote.agent_id] = vote
    return replaced


def is_ready(context: DecisionContext, votes: Sequence[AgentVote]) -> bool:
    """Whether enough votes are in to run consensus evaluation.

    Ready when every required agent has voted, or when the vote count
    reaches ``max(2, len(required_agents))`` regardless of who voted.
    """
    voted = {v.agent_id for v in votes}
    has_all_required = all(agent_id in voted for agent_id in context.required_agents)
    has_minimum_votes = len(votes) >= max(2, len(context.required_agents))
    return has_all_required or has_minimum_votes


def partition_votes(
    votes: Iterable[AgentVote],
) -> tuple[list[AgentVote], list[AgentVote], list[AgentVote]]:
    """Split votes into (approve, reject, abstain)."""
    approve: list[AgentVote] = []
    reject: list[AgentVote] = []
    abstain: list[AgentVote] = []
    for vote in votes:
        if vote.vote == VoteChoice.APPROVE:
            approve.append(vote)
        elif vote.vote == VoteChoice.REJECT:
            reject.append(vote)
        else:
            abstain.append(vote)
    return approve, reject, abstain


def weighted_ratio(
    approve: Iterable[AgentVote],
    reject: Iterable[AgentVote],
    weight: ReliabilityFn,
) -> float:
    """Weighted approval fraction, 0.0 when no weight was cast."""
    approve_weight = sum(v.confidence * weight(v.agent_id) for v in approve)
    reject_weight = sum(v.confidence * weight(v.agent_id) for v in reject)
    total = approve_weight + reject_weight
    return approve_weight / total if total > 0 else 0.0


def merge_vote_data(approving_votes: Iterable[AgentVote]) -> dict[str, Any]:
    """Combine the ``data`` contributions of approving votes.

    For each key, every contribution is collected as
    ``{"agent_id", "value", "confidence"}``. If all values for a key are
    numbers the key becomes their confidence-weighted mean; otherwise the
    list of contributions is kept as-is.
    """
    collected: dict[str, list[dict[str, Any]]] = {}
    for vote in approving_votes:
        if not vote.data:
            continue
        for key, value in vote.data.items():
            collected.setdefault(key, []).append({
                "agent_id": vote.agent_id,
                "value": value,
                "confidence": vote.confidence,
            })

    merged: dict[str, Any] = {}
    for key, items in collected.items():
        if all(_is_number(item["value"]) for item in items):
            total_weight = sum(item["confidence"] for item in items)
            if total_weight > 0:
                merged[key] = (
                    sum(item["value"] * item["confidence"] for item in items)
                    / total_weight
                )
            else:
                merged[key] = items[0]["value"]
        else:
            merged[key] = items
    return merged


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def build_decision(
    context: DecisionContext,
    votes: Sequence[AgentVote],
    outcome: Outcome,
    confidence: float,
    reasoning: str,
    strategy: str,
) -> Decision:
    """Assemble a Decision, attaching plan and merged data when approved."""
    final_data = None
    execution_plan = []
    if outcome == Outcome.APPROVED:
        approving = [v for v in votes if v.vote == VoteChoice.APPROVE]
        final_data = merge_vote_data(approving)
        execution_plan = build_execution_plan(context.type, context.data, approving)

    return Decision(
        context_id=context.id,
        outcome=outcome,
        confidence=round(min(1.0, max(0.0, confidence)), 2),
        votes=list(votes),
        reasoning=reasoning,
        final_data=final_data,
        execution_plan=execution_plan,
        strategy=strategy,
    )


def evaluate_consensus(
    context: DecisionContext,
    votes: Sequence[AgentVote],
    reliability: ReliabilityFn,
) -> Decision:
    """Default reliability-weighted consensus.

    Precedence: too few votes for the required agents gives
    ``insufficient_votes``; otherwise the weighted approval ratio is
    compared against the context threshold. Abstains only count toward
    the vote total.
    """
    approve, reject, _ = partition_votes(votes)
    ratio = weighted_ratio(approve, reject, reliability)
    required = len(context.required_agents)

    if len(votes) < required:
        outcome = Outcome.INSUFFICIENT_VOTES
        confidence = 0.0
        reasoning = f"Insufficient votes: {len(votes)}/{required} required agents"
    elif ratio >= context.threshold:
        outcome = Outcome.APPROVED
        confidence = ratio
        reasoning = (
            f"Consensus achieved with {ratio:.0%} weighted approval "
            f"(threshold {context.threshold:.0%}, "
            f"{len(approve)} approve / {len(reject)} reject)"
        )
    else:
        outcome = Outcome.REJECTED
        confidence = 1 - ratio
        reasoning = (
            f"Rejected with {1 - ratio:.0%} weighted rejection "
            f"(approval {ratio:.0%} below threshold {context.threshold:.0%})"
        )

    logger.debug(
        "Consensus for %s: ratio=%.3f threshold=%.2f -> %s",
        context.id, ratio, context.threshold, outcome.value,
    )
    return build_decision(context, votes, outcome, confidence, reasoning, "consensus")


def timeout_decision(context: DecisionContext, votes: Sequence[AgentVote]) -> Decision:
    """Terminal decision produced when the deadline elapses first."""
    return build_decision(
        context,
        votes,
        Outcome.TIMEOUT,
        0.0,
        f"Decision timeout after {context.timeout_ms}ms with {len(votes)} vote(s)",
        "timeout",
    )
