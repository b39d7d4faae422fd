"""Consensus evaluation and conflict resolution.

Provides the readiness check, reliability-weighted consensus, vote-data
merging, and the explicitly invoked resolution strategies.
"""

from concord.consensus.resolver import ConflictResolver, coerce_resolution
from concord.consensus.strategies import (
    expert_override,
    hierarchical,
    majority_plus,
    unanimous_required,
    weighted_vote,
)
from concord.consensus.voting import (
    evaluate_consensus,
    is_ready,
    merge_vote_data,
    timeout_decision,
    upsert_vote,
)

__all__ = [
    "ConflictResolver",
    "coerce_resolution",
    "evaluate_consensus",
    "expert_override",
    "hierarchical",
    "is_ready",
    "majority_plus",
    "merge_vote_data",
    "timeout_decision",
    "unanimous_required",
    "upsert_vote",
    "weighted_vote",
]
