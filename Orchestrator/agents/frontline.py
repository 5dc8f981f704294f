"""
frontline.py

The frontline agent: the only component that emits text to the user.

Each turn runs the LangGraph workflow from ``Orchestrator.graph``. The
agent owns the current persona, an append-only conversation log per case
and the audit trail of firewall rewrites. It never processes task
payloads itself.
"""

import logging
import threading
from collections import defaultdict
from typing import Dict, List, Optional

from Orchestrator.agents.base import BaseAgent
from Orchestrator.config import DEFAULT_PERSONA
from Orchestrator.core.context_registry import ContextRegistry
from Orchestrator.core.firewall import ContentPolicyFirewall
from Orchestrator.errors import (
    BoundaryViolationError,
    ProgrammingError,
    SessionHaltedError,
)
from Orchestrator.graph import build_frontline_graph
from Orchestrator.prompts import FRONTLINE_CORE_DIRECTIVE
from Orchestrator.state import (
    AgentRole,
    AgentStatus,
    AgentTask,
    ConversationTurn,
    FrontlineState,
    HandlerResponse,
    MemoryScope,
    Persona,
    PolicyViolationRecord,
    utcnow,
)

logger = logging.getLogger(__name__)


class FrontlineAgent(BaseAgent):
    """Drafts every user-facing response and decides on background tasks."""

    role = AgentRole.FRONTLINE
    name = "Frontline"
    description = (
        "The only user-facing interface. Hands background work to the "
        "coordinator; never processes task data directly."
    )

    def __init__(
        self,
        registry: ContextRegistry,
        firewall: Optional[ContentPolicyFirewall] = None,
        persona: Optional[Persona] = None,
    ) -> None:
        super().__init__()
        self.firewall = firewall or ContentPolicyFirewall()
        self._persona = Persona(persona or DEFAULT_PERSONA)
        self._lock = threading.Lock()
        self._conversation_logs: Dict[str, List[ConversationTurn]] = defaultdict(list)
        self._policy_violations: List[PolicyViolationRecord] = []
        self._graph = build_frontline_graph(
            registry,
            self.firewall,
            record_violation=self._record_violation,
            record_turn=self._record_turn,
        )

    # ------------------------------------------------------------------
    # Persona
    # ------------------------------------------------------------------

    @property
    def persona(self) -> Persona:
        return self._persona

    def set_persona(self, persona: Persona) -> None:
        self._persona = Persona(persona)
        logger.info("Frontline persona set to: %s", self._persona.value)

    # ------------------------------------------------------------------
    # Turn handling
    # ------------------------------------------------------------------

    def respond_to_user(self, user_input: str, case_id: str) -> HandlerResponse:
        """Run one turn for ``case_id`` and return the response envelope.

        Raises ``BoundaryViolationError`` when ``case_id`` is not the active
        case, and ``SessionHaltedError`` once a breach has blocked the agent.
        """
        if self.is_blocked:
            raise SessionHaltedError(
                "Session halted after a case boundary breach; start a new session."
            )

        self.status = AgentStatus.ACTIVE
        result = self._graph.invoke(self._initial_state(user_input, case_id))

        if not result.get("boundary_ok", False):
            raise BoundaryViolationError(
                f"Cross-case access refused: {case_id} is not the active case."
            )

        triggers = list(result.get("triggers", []))
        trigger_task = result.get("trigger_task")

        self.memory.store(case_id, "recent_triggers", triggers, MemoryScope.SESSION)
        if trigger_task is not None:
            self.memory.store(
                case_id, "requested_task", trigger_task.model_dump(), MemoryScope.TASK
            )

        self.current_case_id = case_id
        self.last_activity = utcnow()
        if self.status == AgentStatus.ACTIVE:
            self.status = AgentStatus.IDLE

        return HandlerResponse(
            message=result["message"],
            persona=self._persona,
            awaiting_user_input=trigger_task is None,
            trigger_task=trigger_task,
            triggers=triggers,
        )

    def execute_task(self, task: AgentTask) -> None:
        """The frontline never processes task payloads; calling this is a bug."""
        raise ProgrammingError(
            f"Frontline agent does not process tasks directly (task {task.id}, "
            f"kind {task.kind}). All tasks route through the coordinator."
        )

    def _initial_state(self, user_input: str, case_id: str) -> FrontlineState:
        return FrontlineState(
            user_input=user_input,
            case_id=case_id,
            persona=self._persona,
            boundary_ok=False,
            triggers=[],
            draft="",
            message="",
            policy_violation=None,
            trigger_task=None,
            timestamp=utcnow(),
        )

    # ------------------------------------------------------------------
    # Logs
    # ------------------------------------------------------------------

    def _record_turn(self, turn: ConversationTurn) -> None:
        with self._lock:
            self._conversation_logs[turn.case_id].append(turn)

    def _record_violation(self, record: PolicyViolationRecord) -> None:
        with self._lock:
            self._policy_violations.append(record)

    def get_conversation_history(self, case_id: str) -> List[ConversationTurn]:
        """Copy of the log for ``case_id`` only."""
        with self._lock:
            return [t.model_copy() for t in self._conversation_logs.get(case_id, [])]

    def get_policy_violations(self) -> List[PolicyViolationRecord]:
        with self._lock:
            return list(self._policy_violations)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def capabilities(self) -> List[str]:
        return [
            "User interaction",
            "Educational responses",
            "Content policy enforcement",
            "Conversation management",
            "Task triggering",
        ]

    @staticmethod
    def core_directive() -> str:
        return FRONTLINE_CORE_DIRECTIVE
