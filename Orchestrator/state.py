"""
state.py

Defines the enumerations, the FrontlineState TypedDict and all Pydantic
records shared across the orchestrator (case contexts, breach events,
agent tasks, firewall verdicts, response envelopes and snapshots).
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, TypedDict

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware current time; every record timestamp uses this."""
    return datetime.now(timezone.utc)


def new_record_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class AgentRole(str, Enum):
    """Closed set of agent roles known to the routing table."""

    FRONTLINE = "frontline"
    COORDINATOR = "coordinator"
    RESEARCH = "research"
    EVIDENCE = "evidence"
    DRAFTING = "drafting"
    TIMELINE = "timeline"
    ENTITY = "entity"
    CALENDAR = "calendar"
    EXPORT = "export"


class Persona(str, Enum):
    """Tone variants for the frontline agent."""

    STRATEGIST = "strategist"   # Professional & supportive
    GUIDE = "guide"             # Direct & confident
    RAZOR = "razor"             # Blunt
    ALLY = "ally"               # Balanced


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    BLOCKED = "blocked"


# Allowed forward moves; anything else is a regression.
TASK_TRANSITIONS: Dict[TaskStatus, frozenset] = {
    TaskStatus.PENDING: frozenset(
        {TaskStatus.IN_PROGRESS, TaskStatus.FAILED, TaskStatus.BLOCKED}
    ),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
    TaskStatus.BLOCKED: frozenset(),
}


class BreachKind(str, Enum):
    CROSS_CONTEXT_ACCESS = "cross_context_access"
    UNKNOWN_CONTEXT = "unknown_context"
    VALIDATION_FAILURE = "validation_failure"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AgentStatus(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    ERROR = "error"
    BLOCKED = "blocked"


class MemoryScope(str, Enum):
    SESSION = "session"   # Wiped on every context switch
    CASE = "case"         # Kept for the lifetime of the case
    TASK = "task"         # Wiped on context switch or task handoff


# ---------------------------------------------------------------------------
# Case isolation records
# ---------------------------------------------------------------------------

class CaseContext(BaseModel):
    """A unit of isolated work; the tenancy boundary."""

    case_id: str = Field(..., description="Opaque, sortable, never reused id")
    title: str = Field(..., description="Human-readable case title")
    created_at: datetime = Field(default_factory=utcnow)
    last_activity: datetime = Field(default_factory=utcnow)
    locked: bool = Field(
        default=False, description="Locked cases refuse further mutation"
    )


class BreachEvent(BaseModel):
    """Append-only audit entry created when a boundary check fails."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_record_id)
    kind: BreachKind
    source_agent: AgentRole
    attempted_case_id: str
    active_case_id_at_time: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
    severity: Severity = Severity.CRITICAL
    description: str = ""


# ---------------------------------------------------------------------------
# Dispatch records
# ---------------------------------------------------------------------------

class TaskDescriptor(BaseModel):
    """Task request the frontline attaches to its response envelope."""

    to_agent: AgentRole
    kind: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class TrackedRecord(BaseModel):
    """Status, completion time and error shared by tasks and task chains."""

    status: TaskStatus = TaskStatus.PENDING
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return not TASK_TRANSITIONS[self.status]

    def _move(self, status: TaskStatus, error: Optional[str]) -> None:
        if status not in TASK_TRANSITIONS[self.status]:
            raise ValueError(
                f"{type(self).__name__} {self.id}: illegal status transition "
                f"{self.status.value} -> {status.value}"
            )
        self.status = status
        if error is not None:
            self.error = error
        if self.is_terminal:
            self.completed_at = utcnow()


class AgentTask(TrackedRecord):
    """A unit of background work owned by the dispatch coordinator."""

    id: str = Field(default_factory=new_record_id)
    from_agent: AgentRole
    to_agent: AgentRole
    case_id: str
    kind: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    result: Optional[Dict[str, Any]] = None

    def advance(
        self,
        status: TaskStatus,
        *,
        result: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> None:
        """Move the task forward; regressions raise ``ValueError``."""
        if result is not None and status in TASK_TRANSITIONS[self.status]:
            self.result = result
        self._move(status, error)


class TaskChain(TrackedRecord):
    """Ordered steps run one after another; the chain stops at the first
    step that does not complete."""

    id: str = Field(default_factory=new_record_id)
    case_id: str
    kind: str
    plan: List[TaskDescriptor] = Field(default_factory=list)
    task_ids: List[str] = Field(
        default_factory=list, description="Ids of the steps opened so far"
    )
    current_step: int = 0
    created_at: datetime = Field(default_factory=utcnow)

    def advance(self, status: TaskStatus, *, error: Optional[str] = None) -> None:
        self._move(status, error)


class AgentResult(BaseModel):
    """Standardised result returned by every specialist agent."""

    response: str = Field(
        default="", description="The main textual output from the agent"
    )
    sources: List[str] = Field(
        default_factory=list,
        description="Citations or references produced by the agent",
    )
    raw_output: Dict[str, Any] = Field(
        default_factory=dict,
        description="Structured output for downstream consumers",
    )
    error: Optional[str] = Field(
        default=None,
        description="Error message if the agent invocation failed",
    )


# ---------------------------------------------------------------------------
# Content policy records
# ---------------------------------------------------------------------------

class FirewallVerdict(BaseModel):
    """Outcome of a single firewall check; lives for one response cycle."""

    original_text: str
    violates: bool
    reason: Optional[str] = None
    matched_phrase: Optional[str] = None
    category: Optional[str] = Field(
        default=None, description="'advisory' or 'conclusion'"
    )
    rewritten_text: Optional[str] = None
    alternative_phrasing: Optional[str] = None


class ValidationOutcome(BaseModel):
    valid: bool
    corrected_text: Optional[str] = None
    violation: Optional[str] = None


class PolicyViolationRecord(BaseModel):
    """Audit entry for a draft the firewall had to rewrite."""

    case_id: str
    persona: Persona
    violation: str
    original_text: str
    corrected_text: str
    timestamp: datetime = Field(default_factory=utcnow)


# ---------------------------------------------------------------------------
# Frontline envelopes
# ---------------------------------------------------------------------------

class HandlerResponse(BaseModel):
    """Response envelope returned for every user turn."""

    message: str
    persona: Persona
    awaiting_user_input: bool = True
    trigger_task: Optional[TaskDescriptor] = None
    triggers: List[str] = Field(default_factory=list)


class ConversationTurn(BaseModel):
    case_id: str
    user_input: str
    response: str
    persona: Persona
    triggers: List[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utcnow)


class MemoryObject(BaseModel):
    id: str = Field(default_factory=new_record_id)
    case_id: str
    scope: MemoryScope
    kind: str
    data: Any = None
    source: AgentRole
    created_at: datetime = Field(default_factory=utcnow)


# ---------------------------------------------------------------------------
# Status and export
# ---------------------------------------------------------------------------

class AgentStatusReport(BaseModel):
    role: AgentRole
    name: str
    status: AgentStatus
    current_case_id: Optional[str] = None
    memory_objects: int = 0
    last_activity: datetime
    capabilities: List[str] = Field(default_factory=list)


class SystemStatus(BaseModel):
    active_case_id: Optional[str] = None
    halted: bool = False
    agent_statuses: Dict[str, AgentStatusReport] = Field(default_factory=dict)
    breach_events: List[BreachEvent] = Field(default_factory=list)
    active_tasks: List[AgentTask] = Field(default_factory=list)
    task_chains: List[TaskChain] = Field(default_factory=list)
    policy_violations: int = 0
    dispatch_errors: List[str] = Field(default_factory=list)


class IntegrityReport(BaseModel):
    valid: bool
    issues: List[str] = Field(default_factory=list)


class CaseSnapshot(BaseModel):
    """Flat, append-only export of one case."""

    case_id: str
    title: str
    created_at: datetime
    exported_at: datetime = Field(default_factory=utcnow)
    locked: bool = False
    conversation_log: List[ConversationTurn] = Field(default_factory=list)
    task_history: List[AgentTask] = Field(default_factory=list)
    task_chains: List[TaskChain] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# FrontlineState -- shared state flowing through the LangGraph turn workflow
# ---------------------------------------------------------------------------

class FrontlineState(TypedDict):
    """Complete state for a single frontline turn."""

    # -- Input --
    user_input: str                           # Raw user message
    case_id: str                              # Case the turn is addressed to
    persona: Persona                          # Current tone variant

    # -- Boundary --
    boundary_ok: bool                         # Registry boundary check result

    # -- Classification --
    triggers: List[str]                       # Matched trigger tags

    # -- Drafting / firewall --
    draft: str                                # Pre-firewall response body
    message: str                              # Text that reaches the user
    policy_violation: Optional[str]           # Firewall reason, if rewritten

    # -- Task decision --
    trigger_task: Optional[TaskDescriptor]    # Background task request

    # -- Output --
    timestamp: datetime                       # Turn receipt time
