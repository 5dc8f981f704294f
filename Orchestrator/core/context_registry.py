"""
context_registry.py

Single source of truth for the set of known cases and which one is active.

Every context-bearing operation asks the registry for a boundary check
before it touches case data. A failed check is recorded as a BreachEvent
and triggers the breach response: registered listeners halt dispatch and
block the agents. The registry itself never rolls back or rewrites
recorded state. A flush listener that raises is logged and the switch
still completes.

The active-case pointer is the only contended mutable state in the system;
all reads and writes of it go through ``self._lock``.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional

from Orchestrator.ids import generate_case_id
from Orchestrator.state import (
    AgentRole,
    BreachEvent,
    BreachKind,
    CaseContext,
    Severity,
    utcnow,
)

logger = logging.getLogger(__name__)

# (previous_case_id, new_case_id)
FlushListener = Callable[[Optional[str], str], None]
BreachListener = Callable[[BreachEvent], None]


class ContextRegistry:
    """Owns every CaseContext and enforces the no-bleed invariant."""

    def __init__(self, id_factory: Callable[[], str] = generate_case_id) -> None:
        self._id_factory = id_factory
        self._lock = threading.RLock()
        self._cases: Dict[str, CaseContext] = {}
        self._issued_ids: set = set()
        self._active_case_id: Optional[str] = None
        self._breach_events: List[BreachEvent] = []
        self._flush_listeners: List[FlushListener] = []
        self._breach_listeners: List[BreachListener] = []

    # ------------------------------------------------------------------
    # Listener wiring
    # ------------------------------------------------------------------

    def add_flush_listener(self, listener: FlushListener) -> None:
        """Register a callback run synchronously inside ``switch_to_case``."""
        with self._lock:
            self._flush_listeners.append(listener)

    def add_breach_listener(self, listener: BreachListener) -> None:
        """Register a callback run once per detected cross-context breach."""
        with self._lock:
            self._breach_listeners.append(listener)

    # ------------------------------------------------------------------
    # Case lifecycle
    # ------------------------------------------------------------------

    def create_case(self, title: str) -> str:
        """Store a new unlocked case and return its never-reused id.

        The active case is not changed.
        """
        with self._lock:
            case_id = self._id_factory()
            while case_id in self._issued_ids:
                case_id = self._id_factory()
            self._issued_ids.add(case_id)
            self._cases[case_id] = CaseContext(case_id=case_id, title=title)

        logger.info("Case created: %s - %r", case_id, title)
        return case_id

    def switch_to_case(self, case_id: str) -> bool:
        """Flush session state and make ``case_id`` the active case.

        Returns ``False`` (and records an ``unknown_context`` breach event)
        when the id was never issued.
        """
        with self._lock:
            if case_id not in self._cases:
                self._record_breach(
                    kind=BreachKind.UNKNOWN_CONTEXT,
                    source_agent=AgentRole.COORDINATOR,
                    attempted_case_id=case_id,
                    severity=Severity.MEDIUM,
                    description=f"Attempted to switch to non-existent case: {case_id}",
                )
                return False

            previous = self._active_case_id
            for listener in list(self._flush_listeners):
                try:
                    listener(previous, case_id)
                except Exception:
                    # Listeners that already flushed must match the new pointer.
                    logger.exception("Flush listener %r failed on switch to %s", listener, case_id)

            self._active_case_id = case_id
            self._cases[case_id].last_activity = utcnow()

        logger.info("Context switch %s -> %s", previous, case_id)
        return True

    def lock_case(self, case_id: str) -> bool:
        with self._lock:
            context = self._cases.get(case_id)
            if context is None:
                return False
            context.locked = True
        logger.info("Case locked: %s", case_id)
        return True

    def is_locked(self, case_id: str) -> bool:
        with self._lock:
            context = self._cases.get(case_id)
            return bool(context and context.locked)

    def touch(self, case_id: str) -> None:
        """Refresh ``last_activity`` for a known case."""
        with self._lock:
            context = self._cases.get(case_id)
            if context is not None:
                context.last_activity = utcnow()

    # ------------------------------------------------------------------
    # Boundary enforcement
    # ------------------------------------------------------------------

    def enforce_boundary(self, requested_id: str, source_agent: AgentRole) -> bool:
        """Return ``True`` iff ``requested_id`` is the active case.

        On mismatch a critical ``cross_context_access`` event is recorded and
        the breach response runs before ``False`` is returned.
        """
        source_agent = AgentRole(source_agent)
        with self._lock:
            active = self._active_case_id
            if requested_id == active and active is not None:
                return True
            breach = self._record_breach(
                kind=BreachKind.CROSS_CONTEXT_ACCESS,
                source_agent=source_agent,
                attempted_case_id=requested_id,
                severity=Severity.CRITICAL,
                description=(
                    f"Agent {source_agent.value} attempted cross-case access: "
                    f"{requested_id} != {active}"
                ),
            )
            listeners = list(self._breach_listeners)

        self._trigger_breach_response(breach, listeners)
        return False

    def is_active(self, case_id: str) -> bool:
        """Non-recording comparison against the active case."""
        with self._lock:
            return self._active_case_id is not None and case_id == self._active_case_id

    def record_validation_failure(
        self, source_agent: AgentRole, case_id: str, description: str
    ) -> BreachEvent:
        """Record a ``validation_failure`` event without halting the system."""
        with self._lock:
            return self._record_breach(
                kind=BreachKind.VALIDATION_FAILURE,
                source_agent=AgentRole(source_agent),
                attempted_case_id=case_id,
                severity=Severity.HIGH,
                description=description,
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_active_case_id(self) -> Optional[str]:
        with self._lock:
            return self._active_case_id

    def get_case_context(self, case_id: str) -> Optional[CaseContext]:
        with self._lock:
            context = self._cases.get(case_id)
            return context.model_copy() if context is not None else None

    def list_cases(self) -> List[CaseContext]:
        """All cases, most recently active first."""
        with self._lock:
            contexts = [c.model_copy() for c in self._cases.values()]
        return sorted(contexts, key=lambda c: c.last_activity, reverse=True)

    def get_breach_events(self) -> List[BreachEvent]:
        with self._lock:
            return list(self._breach_events)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _record_breach(
        self,
        kind: BreachKind,
        source_agent: AgentRole,
        attempted_case_id: str,
        severity: Severity,
        description: str,
    ) -> BreachEvent:
        breach = BreachEvent(
            kind=kind,
            source_agent=source_agent,
            attempted_case_id=attempted_case_id,
            active_case_id_at_time=self._active_case_id,
            severity=severity,
            description=description,
        )
        self._breach_events.append(breach)
        logger.error("BREACH DETECTED [%s/%s]: %s", kind.value, severity.value, description)
        return breach

    @staticmethod
    def _trigger_breach_response(
        breach: BreachEvent, listeners: List[BreachListener]
    ) -> None:
        logger.critical(
            "Case context mismatch (breach %s). Dispatch halted; no data has "
            "been written. Manual recovery required.",
            breach.id,
        )
        for listener in listeners:
            listener(breach)
