"""Decision history and aggregate metrics.

Finalized decisions are kept together with the context they resolved so
they can be filtered by decision type and timed from request to outcome.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from concord.schemas.decision import Decision, DecisionContext, Outcome
from concord.schemas.engine import DecisionMetrics


@dataclass(frozen=True)
class HistoryRecord:
    context: DecisionContext
    decision: Decision

    @property
    def latency_ms(self) -> float:
        delta = self.decision.timestamp - self.context.created_at
        return max(0.0, delta.total_seconds() * 1000)


class DecisionHistory:
    """In-memory, recency-ordered record of finalized decisions.

    With ``max_entries`` > 0 the oldest records are evicted first.
    """

    def __init__(self, max_entries: int = 0) -> None:
        self._records: deque[HistoryRecord] = deque(maxlen=max_entries or None)
        self._by_id: dict[str, Decision] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, decision_id: object) -> bool:
        return decision_id in self._by_id

    def get(self, decision_id: str) -> Decision | None:
        return self._by_id.get(decision_id)

    def record(self, context: DecisionContext, decision: Decision) -> None:
        """Append a finalized decision, evicting the oldest when full."""
        if self._records.maxlen and len(self._records) == self._records.maxlen:
            evicted = self._records[0]
            self._by_id.pop(evicted.decision.context_id, None)
        self._records.append(HistoryRecord(context=context, decision=decision))
        self._by_id[decision.context_id] = decision

    def query(
        self,
        limit: int | None = 50,
        decision_type: str | None = None,
    ) -> list[Decision]:
        """Most recent decisions first, optionally filtered by context type."""
        results: list[Decision] = []
        for rec in reversed(self._records):
            if limit is not None and len(results) >= limit:
                break
            if decision_type and rec.context.type != decision_type:
                continue
            results.append(rec.decision)
        return results

    def metrics(self) -> DecisionMetrics:
        """Aggregate outcome counts, latency, and consensus rate."""
        total = len(self._records)
        if total == 0:
            return DecisionMetrics()

        counts = {outcome: 0 for outcome in Outcome}
        latency = 0.0
        for rec in self._records:
            counts[rec.decision.outcome] += 1
            latency += rec.latency_ms

        approved = counts[Outcome.APPROVED]
        rejected = counts[Outcome.REJECTED]
        return DecisionMetrics(
            total=total,
            approved=approved,
            rejected=rejected,
            timeouts=counts[Outcome.TIMEOUT],
            insufficient_votes=counts[Outcome.INSUFFICIENT_VOTES],
            average_latency_ms=round(latency / total, 1),
            consensus_rate=round((approved + rejected) / total, 2),
        )

    def clear(self) -> None:
        self._records.clear()
        self._by_id.clear()
