"""
system.py

Composition root: wires the context registry, content policy firewall,
frontline agent and dispatch coordinator together and exposes the public
API (``send_message`` and friends).

There is no module-level instance. Each session constructs its own
``CaseOrchestrator``; two orchestrators never share mutable state.
"""

import logging
import threading
from concurrent.futures import Future, wait
from typing import Iterable, List, Optional

from Orchestrator.agents.base import SpecialistAgent
from Orchestrator.agents.coordinator import DispatchCoordinator
from Orchestrator.agents.frontline import FrontlineAgent
from Orchestrator.agents.specialists import default_specialists
from Orchestrator.config import BACKGROUND_DISPATCH, DISPATCH_TIMEOUT_SECONDS
from Orchestrator.core.context_registry import ContextRegistry
from Orchestrator.core.firewall import ContentPolicyFirewall
from Orchestrator.errors import (
    BoundaryViolationError,
    CaseLockedError,
    UnknownContextError,
)
from Orchestrator.nodes.decide_task import required_roles
from Orchestrator.state import (
    AgentRole,
    BreachEvent,
    CaseContext,
    CaseSnapshot,
    ConversationTurn,
    HandlerResponse,
    IntegrityReport,
    Persona,
    PolicyViolationRecord,
    SystemStatus,
    TaskChain,
    TaskDescriptor,
    TaskStatus,
)

logger = logging.getLogger(__name__)


class CaseOrchestrator:
    """One user session: exactly one active case, one frontline, one coordinator."""

    def __init__(
        self,
        registry: Optional[ContextRegistry] = None,
        firewall: Optional[ContentPolicyFirewall] = None,
        specialists: Optional[Iterable[SpecialistAgent]] = None,
        persona: Optional[Persona] = None,
        background_dispatch: bool = BACKGROUND_DISPATCH,
        dispatch_timeout: float = DISPATCH_TIMEOUT_SECONDS,
    ) -> None:
        self.registry = registry or ContextRegistry()
        self.frontline = FrontlineAgent(self.registry, firewall, persona)
        self.coordinator = DispatchCoordinator(
            self.registry, timeout_seconds=dispatch_timeout
        )
        self.background_dispatch = background_dispatch

        for agent in default_specialists() if specialists is None else specialists:
            self.coordinator.register_agent(agent)
        self.coordinator.validate_routes(required_roles())

        self.registry.add_flush_listener(self.frontline.on_context_flush)
        self.registry.add_flush_listener(self.coordinator.on_context_flush)
        self.registry.add_breach_listener(self._on_breach)

        self._lock = threading.Lock()
        self._pending: List["Future[TaskChain]"] = []
        self._dispatch_errors: List[str] = []
        logger.info(
            "Orchestrator initialised: specialists=%s, background_dispatch=%s",
            [r.value for r in self.coordinator.registered_roles()],
            background_dispatch,
        )

    # ------------------------------------------------------------------
    # Cases
    # ------------------------------------------------------------------

    def create_case(self, title: str) -> str:
        """Create a case and make it the active one."""
        case_id = self.registry.create_case(title)
        self.registry.switch_to_case(case_id)
        return case_id

    def switch_to_case(self, case_id: str) -> bool:
        return self.registry.switch_to_case(case_id)

    def list_cases(self) -> List[CaseContext]:
        return self.registry.list_cases()

    def lock_case(self, case_id: str) -> bool:
        return self.registry.lock_case(case_id)

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    def send_message(self, text: str, case_id: str) -> HandlerResponse:
        """Run one user turn against ``case_id``.

        Switches to ``case_id`` first when another case is active. Any task
        the turn requests is handed to the coordinator without waiting for
        it; its outcome never changes the returned response.
        """
        if not self.registry.is_active(case_id):
            if not self.registry.switch_to_case(case_id):
                raise UnknownContextError(f"Failed to switch to case: {case_id}")

        if self.registry.is_locked(case_id):
            self.registry.record_validation_failure(
                AgentRole.FRONTLINE, case_id, f"Message sent to locked case {case_id}"
            )
            raise CaseLockedError(f"Case {case_id} is locked")

        response = self.frontline.respond_to_user(text, case_id)
        self.registry.touch(case_id)

        if response.trigger_task is not None:
            self._hand_off(case_id, response.trigger_task)
        return response

    def set_persona(self, persona: Persona) -> None:
        self.frontline.set_persona(persona)

    def get_conversation_history(self, case_id: str) -> List[ConversationTurn]:
        """History of the active case; other cases read as empty."""
        if not self.registry.is_active(case_id):
            return []
        return self.frontline.get_conversation_history(case_id)

    def get_policy_violations(self) -> List[PolicyViolationRecord]:
        return self.frontline.get_policy_violations()

    def core_directive(self) -> str:
        return self.frontline.core_directive()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _hand_off(self, case_id: str, descriptor: TaskDescriptor) -> None:
        try:
            if self.background_dispatch:
                future = self.coordinator.submit_chain(
                    case_id, descriptor.kind, descriptor.payload
                )
                with self._lock:
                    self._pending.append(future)
                future.add_done_callback(self._on_dispatch_done)
            else:
                chain = self.coordinator.run_chain(
                    case_id, descriptor.kind, descriptor.payload
                )
                self._note_chain(chain)
        except Exception as exc:
            logger.exception("Failed to hand task %s to the coordinator", descriptor.kind)
            with self._lock:
                self._dispatch_errors.append(f"{descriptor.kind}: {exc}")

    def _on_dispatch_done(self, future: "Future[TaskChain]") -> None:
        exc = future.exception()
        if exc is not None:
            logger.error("Background dispatch raised: %s", exc)
            with self._lock:
                self._dispatch_errors.append(str(exc))
            return
        self._note_chain(future.result())

    def _note_chain(self, chain: TaskChain) -> None:
        if chain.status == TaskStatus.FAILED:
            message = f"{chain.kind}: {chain.error}"
            logger.error("Dispatch failure: %s", message)
            with self._lock:
                self._dispatch_errors.append(message)

    def wait_for_dispatches(self, timeout: Optional[float] = None) -> List[TaskChain]:
        """Block until handed-off chains finish; return the finished ones."""
        with self._lock:
            pending = list(self._pending)
        done, _ = wait(pending, timeout=timeout)
        with self._lock:
            self._pending = [f for f in self._pending if f not in done]
        return [f.result() for f in done if f.exception() is None]

    # ------------------------------------------------------------------
    # Breach response
    # ------------------------------------------------------------------

    def _on_breach(self, breach: BreachEvent) -> None:
        logger.critical(
            "EMERGENCY BREACH RESPONSE: %s attempted %s while %s active",
            breach.source_agent.value,
            breach.attempted_case_id,
            breach.active_case_id_at_time,
        )
        self.coordinator.halt(breach)
        self.frontline.block()

    # ------------------------------------------------------------------
    # Status and export
    # ------------------------------------------------------------------

    def get_system_status(self) -> SystemStatus:
        with self._lock:
            dispatch_errors = list(self._dispatch_errors)
        return SystemStatus(
            active_case_id=self.registry.get_active_case_id(),
            halted=self.coordinator.halted,
            agent_statuses={
                AgentRole.FRONTLINE.value: self.frontline.status_report(),
                AgentRole.COORDINATOR.value: self.coordinator.status_report(),
            },
            breach_events=self.registry.get_breach_events(),
            active_tasks=self.coordinator.get_active_task_chains(),
            task_chains=self.coordinator.get_task_chains(),
            policy_violations=len(self.frontline.get_policy_violations()),
            dispatch_errors=dispatch_errors,
        )

    def export_case(self, case_id: str) -> CaseSnapshot:
        """Snapshot of the active case; any other id is a boundary violation."""
        if not self.registry.enforce_boundary(case_id, AgentRole.EXPORT):
            raise BoundaryViolationError("Case boundary violation during export")

        context = self.registry.get_case_context(case_id)
        if context is None:
            raise UnknownContextError(f"Case not found: {case_id}")

        return CaseSnapshot(
            case_id=case_id,
            title=context.title,
            created_at=context.created_at,
            locked=context.locked,
            conversation_log=self.frontline.get_conversation_history(case_id),
            task_history=self.coordinator.get_task_history(case_id),
            task_chains=self.coordinator.get_task_chains(case_id),
        )

    def validate_integrity(self) -> IntegrityReport:
        issues: List[str] = []
        system_case = self.registry.get_active_case_id()
        if not (
            self.frontline.current_case_id
            == self.coordinator.current_case_id
            == system_case
        ):
            issues.append("Case context mismatch between agents")

        breaches = self.registry.get_breach_events()
        if breaches:
            issues.append(f"{len(breaches)} breach events detected")
        if self.coordinator.halted:
            issues.append("Dispatch halted")
        return IntegrityReport(valid=not issues, issues=issues)

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def shutdown(self, wait_for_tasks: bool = True) -> None:
        self.coordinator.shutdown(wait=wait_for_tasks)

    def __enter__(self) -> "CaseOrchestrator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
