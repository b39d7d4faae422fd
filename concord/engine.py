"""Decision engine — the coordinating unit for multi-agent arbitration.

Accepts decision requests, collects agent votes, and finalizes each
decision exactly once through one of four triggers: readiness-driven
consensus after a vote, a forced evaluation, an explicit conflict
resolution, or the per-decision deadline.

Concurrency model: the engine runs on a single asyncio event loop. Each
pending decision owns its own lock, vote set, timer and completion event,
so work on one decision never waits on another. Finalization is a
synchronous compare-and-set on the pending map: whichever trigger removes
the pending entry first commits its Decision; the others see nothing to
finalize.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from concord.config_loader import load_engine_config
from concord.consensus.resolver import ConflictResolver, coerce_resolution
from concord.consensus.voting import (
    evaluate_consensus,
    is_ready,
    timeout_decision,
    upsert_vote,
)
from concord.errors import (
    DecisionNotFoundError,
    DecisionWaitTimeoutError,
    EngineClosedError,
)
from concord.events import EventBus, EventListener, EventType
from concord.history import DecisionHistory
from concord.patterns import PatternRegistry
from concord.reliability import FeedbackOutcome, ReliabilityLedger, ReliabilityStore
from concord.schemas.decision import (
    AgentVote,
    Decision,
    DecisionContext,
    DecisionRequest,
    Priority,
    utc_now,
)
from concord.schemas.engine import DecisionMetrics, EngineConfig
from concord.schemas.resolution import ConflictResolution, ResolutionStrategy

logger = logging.getLogger(__name__)


@dataclass
class _PendingDecision:
    """Per-decision mutable state, owned by the engine until finalized."""

    context: DecisionContext
    votes: dict[str, AgentVote] = field(default_factory=dict)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    done: asyncio.Event = field(default_factory=asyncio.Event)
    timer: asyncio.TimerHandle | None = None

    def snapshot(self) -> list[AgentVote]:
        return list(self.votes.values())


class DecisionEngine:
    """Multi-agent decision arbitration engine.

    Reliability, patterns, and the event bus are injected so tests can
    substitute fixed stores. With no arguments the engine loads the
    shipped defaults.toml and patterns.toml.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        reliability: ReliabilityStore | None = None,
        patterns: PatternRegistry | None = None,
        events: EventBus | None = None,
    ) -> None:
        self._config = config or load_engine_config()
        self._reliability = reliability or ReliabilityLedger(self._config.reliability)
        self._patterns = patterns if patterns is not None else PatternRegistry.from_toml()
        self._events = events or EventBus()
        self._history = DecisionHistory(self._config.history_max_entries)
        self._resolver = ConflictResolver(self._reliability.get)
        self._pending: dict[str, _PendingDecision] = {}
        self._closed = False

    # ── Accessors ────────────────────────────────────────────────────

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def patterns(self) -> PatternRegistry:
        return self._patterns

    @property
    def reliability(self) -> ReliabilityStore:
        return self._reliability

    @property
    def closed(self) -> bool:
        return self._closed

    def pending_decisions(self) -> list[DecisionContext]:
        """Contexts still collecting votes, oldest first."""
        return [p.context for p in self._pending.values()]

    # ── Requests ─────────────────────────────────────────────────────

    async def request_decision(
        self,
        request: DecisionRequest | dict[str, Any],
    ) -> str:
        """Open a decision and start its deadline.

        Args:
            request: The request, or a dict of DecisionRequest fields.
                A DecisionContext keeps its own id and creation time.

        Returns:
            The new decision id.

        Raises:
            EngineClosedError: After shutdown.
            ValueError: If the request is invalid or its id is in use.
        """
        self._check_open()
        if isinstance(request, DecisionContext):
            context = request
        elif isinstance(request, DecisionRequest):
            context = DecisionContext.from_request(request)
        else:
            context = DecisionContext.from_request(DecisionRequest.model_validate(request))

        if context.id in self._pending or context.id in self._history:
            raise ValueError(f"Decision id already in use: {context.id}")

        loop = asyncio.get_running_loop()
        pending = _PendingDecision(context=context)
        self._pending[context.id] = pending
        pending.timer = loop.call_later(
            context.timeout_ms / 1000, self._on_timeout, context.id,
        )

        logger.info(
            "Decision %s requested (type=%s, priority=%s, required=%s, "
            "threshold=%.2f, timeout=%dms)",
            context.id, context.type, context.priority.value,
            context.required_agents, context.threshold, context.timeout_ms,
        )

        self._events.publish(
            EventType.DECISION_REQUESTED, decision_id=context.id, context=context,
        )
        for agent_id in context.all_agents:
            self._events.publish(
                EventType.VOTE_REQUEST,
                decision_id=context.id,
                agent_id=agent_id,
                context=context,
                is_required=agent_id in context.required_agents,
            )
        return context.id

    async def request_from_pattern(
        self,
        decision_type: str,
        data: dict[str, Any] | None = None,
        priority: Priority | str = Priority.MEDIUM,
        **overrides: Any,
    ) -> str:
        """Open a decision prefilled from the registered pattern for its type.

        Raises:
            KeyError: If no pattern is registered for ``decision_type``.
        """
        request = self._patterns.build_request(
            decision_type, data=data, priority=priority, **overrides,
        )
        return await self.request_decision(request)

    # ── Votes ────────────────────────────────────────────────────────

    async def submit_vote(
        self,
        decision_id: str,
        vote: AgentVote | dict[str, Any],
    ) -> bool:
        """Record a vote, replacing any earlier vote from the same agent.

        If the decision becomes ready, consensus is evaluated and the
        decision finalized before this call returns.

        Raises:
            DecisionNotFoundError: If the decision is unknown or already final.
        """
        self._check_open()
        if not isinstance(vote, AgentVote):
            vote = AgentVote.model_validate(vote)
        pending = self._require_pending(decision_id)

        async with pending.lock:
            self._require_still_pending(pending)
            stamped = vote.model_copy(update={"timestamp": utc_now()})
            replaced = upsert_vote(pending.votes, stamped)
            votes = pending.snapshot()

            logger.debug(
                "Vote on %s from %s: %s (confidence=%.2f%s)",
                decision_id, vote.agent_id, vote.vote.value, vote.confidence,
                ", replaced" if replaced else "",
            )
            self._events.publish(
                EventType.VOTE_SUBMITTED,
                decision_id=decision_id,
                agent_id=vote.agent_id,
                vote=stamped,
                total_votes=len(votes),
            )

            if is_ready(pending.context, votes):
                decision = evaluate_consensus(
                    pending.context, votes, self._reliability.get,
                )
                self._finalize(pending, decision, EventType.DECISION_MADE)
        return True

    # ── Outcomes ─────────────────────────────────────────────────────

    def get_decision(self, decision_id: str) -> Decision | None:
        return self._history.get(decision_id)

    async def wait_for_decision(
        self,
        decision_id: str,
        timeout_ms: int | None = None,
    ) -> Decision:
        """Wait until the decision is finalized.

        Returns immediately if it already is.

        Raises:
            DecisionNotFoundError: If the id is neither pending nor in history
                (never requested, or evicted from a capped history).
            DecisionWaitTimeoutError: If ``timeout_ms`` elapses first.
            EngineClosedError: If the engine shuts down while waiting.
        """
        decision = self._history.get(decision_id)
        if decision is not None:
            return decision

        pending = self._require_pending(decision_id)
        if timeout_ms is None:
            timeout_ms = self._config.default_wait_timeout_ms
        try:
            await asyncio.wait_for(pending.done.wait(), timeout_ms / 1000)
        except TimeoutError:
            raise DecisionWaitTimeoutError(decision_id, timeout_ms) from None

        decision = self._history.get(decision_id)
        if decision is None:
            raise EngineClosedError(f"Engine shut down before {decision_id} was decided")
        return decision

    async def evaluate_now(self, decision_id: str) -> Decision:
        """Run default consensus immediately, bypassing the readiness check.

        Raises:
            DecisionNotFoundError: If the decision is unknown or already final.
        """
        self._check_open()
        pending = self._require_pending(decision_id)
        async with pending.lock:
            self._require_still_pending(pending)
            decision = evaluate_consensus(
                pending.context, pending.snapshot(), self._reliability.get,
            )
            return self._finalize(pending, decision, EventType.DECISION_MADE)

    async def resolve_conflict(
        self,
        decision_id: str,
        strategy: ConflictResolution | ResolutionStrategy | str,
        **options: Any,
    ) -> Decision:
        """Finalize a pending decision with an explicit resolution strategy.

        Args:
            decision_id: A pending decision.
            strategy: A ConflictResolution, or a strategy name with
                ``weights`` / ``expert_agents`` / ``hierarchy`` as options.

        Raises:
            DecisionNotFoundError: If the decision is unknown or already final.
            InvalidStrategyError: If the strategy name is not recognized.
        """
        self._check_open()
        pending = self._require_pending(decision_id)
        resolution = coerce_resolution(strategy, **options)
        async with pending.lock:
            self._require_still_pending(pending)
            decision = self._resolver.resolve(
                pending.context, pending.snapshot(), resolution,
            )
            return self._finalize(pending, decision, EventType.DECISION_RESOLVED)

    # ── Reliability ──────────────────────────────────────────────────

    def get_reliability(self, agent_id: str) -> float:
        return self._reliability.get(agent_id)

    def update_agent_reliability(
        self,
        agent_id: str,
        outcome: FeedbackOutcome | str,
    ) -> float:
        """Report whether an agent's past vote was judged correct.

        Returns:
            The agent's updated reliability.

        Raises:
            ValueError: If ``outcome`` is not 'correct' or 'incorrect'.
        """
        return self._reliability.update(agent_id, outcome)

    # ── History ──────────────────────────────────────────────────────

    def get_decision_history(
        self,
        limit: int | None = None,
        decision_type: str | None = None,
    ) -> list[Decision]:
        """Finalized decisions, most recent first."""
        return self._history.query(
            limit=self._config.default_history_limit if limit is None else limit,
            decision_type=decision_type,
        )

    def get_metrics(self) -> DecisionMetrics:
        return self._history.metrics()

    # ── Events ───────────────────────────────────────────────────────

    def on(self, event: EventType | str, handler: EventListener) -> None:
        self._events.on(event, handler)

    def off(self, event: EventType | str, handler: EventListener) -> None:
        self._events.off(event, handler)

    # ── Lifecycle ────────────────────────────────────────────────────

    def shutdown(self) -> None:
        """Cancel every timer, release waiters, and drop pending state.

        History and reliability stay readable. Further requests, votes,
        and resolutions raise EngineClosedError.
        """
        if self._closed:
            return
        self._closed = True

        abandoned = list(self._pending.values())
        self._pending.clear()
        for pending in abandoned:
            if pending.timer is not None:
                pending.timer.cancel()
            pending.done.set()
        self._events.clear()

        logger.info("Decision engine shut down (%d pending abandoned)", len(abandoned))

    # ── Internals ────────────────────────────────────────────────────

    def _check_open(self) -> None:
        if self._closed:
            raise EngineClosedError("Decision engine has been shut down")

    def _require_pending(self, decision_id: str) -> _PendingDecision:
        pending = self._pending.get(decision_id)
        if pending is None:
            raise DecisionNotFoundError(decision_id)
        return pending

    def _require_still_pending(self, pending: _PendingDecision) -> None:
        # Another trigger may have finalized while we waited for the lock
        if self._pending.get(pending.context.id) is not pending:
            raise DecisionNotFoundError(pending.context.id)

    def _finalize(
        self,
        pending: _PendingDecision,
        decision: Decision,
        event_type: EventType,
    ) -> Decision:
        """Commit ``decision`` unless another trigger already did.

        Contains no await, so the check and the commit are atomic on the
        event loop.

        Returns:
            The committed Decision (the earlier one if this call lost).
        """
        decision_id = pending.context.id
        if self._pending.get(decision_id) is not pending:
            existing = self._history.get(decision_id)
            logger.debug("Ignoring late %s for %s", event_type.value, decision_id)
            return existing if existing is not None else decision

        del self._pending[decision_id]
        if pending.timer is not None:
            pending.timer.cancel()
        self._history.record(pending.context, decision)
        pending.done.set()

        logger.info(
            "Decision %s %s via %s (confidence=%.2f, votes=%d)",
            decision_id, decision.outcome.value, decision.strategy,
            decision.confidence, len(decision.votes),
        )
        self._events.publish(event_type, decision_id=decision_id, decision=decision)
        return decision

    def _on_timeout(self, decision_id: str) -> None:
        pending = self._pending.get(decision_id)
        if pending is None:
            logger.debug("Stale timer fired for %s", decision_id)
            return

        logger.warning(
            "Decision %s timed out after %dms with %d vote(s)",
            decision_id, pending.context.timeout_ms, len(pending.votes),
        )
        decision = timeout_decision(pending.context, pending.snapshot())
        self._finalize(pending, decision, EventType.DECISION_TIMEOUT)
