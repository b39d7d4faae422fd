"""Decision pattern registry.

Patterns are named templates keyed by decision type. A caller can build a
full DecisionRequest from a pattern and override individual fields.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from concord.config_loader import load_patterns
from concord.schemas.decision import DecisionRequest, Priority
from concord.schemas.engine import DecisionPattern

logger = logging.getLogger(__name__)


class PatternRegistry:
    """Read-mostly lookup of decision patterns by type."""

    def __init__(self, patterns: dict[str, DecisionPattern] | None = None) -> None:
        self._patterns: dict[str, DecisionPattern] = dict(patterns or {})

    @classmethod
    def from_toml(cls, config_path: Path | None = None) -> PatternRegistry:
        return cls(load_patterns(config_path))

    def __contains__(self, decision_type: object) -> bool:
        return decision_type in self._patterns

    def __len__(self) -> int:
        return len(self._patterns)

    def get(self, decision_type: str) -> DecisionPattern | None:
        return self._patterns.get(decision_type)

    def all(self) -> list[DecisionPattern]:
        return list(self._patterns.values())

    def register(self, pattern: DecisionPattern) -> None:
        """Add a pattern, replacing any existing one for the same type."""
        if pattern.type in self._patterns:
            logger.info("Replacing decision pattern for %s", pattern.type)
        self._patterns[pattern.type] = pattern

    def clear(self) -> None:
        self._patterns.clear()

    def build_request(
        self,
        decision_type: str,
        data: dict[str, Any] | None = None,
        priority: Priority | str = Priority.MEDIUM,
        **overrides: Any,
    ) -> DecisionRequest:
        """Prefill a DecisionRequest from the pattern for ``decision_type``.

        Args:
            decision_type: Registered pattern type.
            data: Payload for the request.
            priority: Request priority.
            **overrides: Any DecisionRequest field to use instead of the
                pattern default (e.g. ``threshold=0.9``).

        Raises:
            KeyError: If no pattern is registered for the type.
        """
        pattern = self._patterns.get(decision_type)
        if pattern is None:
            valid = ", ".join(sorted(self._patterns)) or "none registered"
            raise KeyError(f"No decision pattern for '{decision_type}'. Known: {valid}")

        fields: dict[str, Any] = {
            "type": decision_type,
            "priority": priority,
            "data": data or {},
            "required_agents": list(pattern.required_agents),
            "optional_agents": list(pattern.optional_agents),
            "threshold": pattern.threshold,
            "timeout_ms": pattern.timeout_ms,
        }
        fields.update(overrides)
        return DecisionRequest(**fields)
