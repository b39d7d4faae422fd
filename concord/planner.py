"""Execution planner — turns an approved decision into symbolic steps.

The plan is an ordered list of instructions for an external executor. The
engine never performs the steps and never calls the agents named in them.
Each decision type maps to a fixed template; unknown types get a single
generic step.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from concord.schemas.decision import AgentVote, ExecutionStep

# A template step: (action, agent, context data -> step data)
StepTemplate = tuple[str, str, Callable[[dict[str, Any]], dict[str, Any]]]


def _whole(data: dict[str, Any]) -> dict[str, Any]:
    return dict(data)


PLAN_TEMPLATES: dict[str, list[StepTemplate]] = {
    "order_modification": [
        ("validate_order_changes", "orderOptimization", _whole),
        (
            "update_kitchen_stations",
            "orderOptimization",
            lambda d: {"changes": d.get("modifications")},
        ),
        (
            "notify_customer",
            "customerSatisfaction",
            lambda d: {"tableId": d.get("tableId"), "changes": d.get("modifications")},
        ),
    ],
    "inventory_emergency_order": [
        ("calculate_optimal_quantity", "inventoryPrediction", _whole),
        (
            "find_best_supplier",
            "revenueOptimization",
            lambda d: {"item": d.get("item"), "urgency": "high"},
        ),
        ("place_emergency_order", "inventoryPrediction", lambda d: {"approved": True}),
    ],
    "staff_reallocation": [
        ("analyze_current_workload", "orderOptimization", _whole),
        (
            "optimize_staff_assignment",
            "orderOptimization",
            lambda d: {"reallocation": d.get("changes")},
        ),
    ],
}

_FALLBACK: list[StepTemplate] = [("execute_decision", "system", _whole)]


def build_execution_plan(
    decision_type: str,
    context_data: dict[str, Any],
    approving_votes: Sequence[AgentVote],
) -> list[ExecutionStep]:
    """Build the ordered step list for an approved decision.

    Args:
        decision_type: The context's type tag.
        context_data: The context payload; templates read keys from it.
        approving_votes: Votes that approved; their agent ids are attached
            to the first step so the executor knows who signed off.

    Returns:
        Steps numbered from 1.
    """
    template = PLAN_TEMPLATES.get(decision_type, _FALLBACK)
    steps = [
        ExecutionStep(step=i, action=action, agent=agent, data=extract(context_data))
        for i, (action, agent, extract) in enumerate(template, start=1)
    ]
    steps[0].data["approving_agents"] = [v.agent_id for v in approving_votes]
    return steps
