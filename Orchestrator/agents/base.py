"""
base.py

Shared agent plumbing and the abstract specialist interface.

Every agent tracks its status, the case it is working on and a small
scoped memory. A context flush drops session- and task-scoped memory.
Specialists get a thin subclass of ``SpecialistAgent`` so the dispatch
coordinator can invoke them uniformly.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from Orchestrator.state import (
    AgentResult,
    AgentRole,
    AgentStatus,
    AgentStatusReport,
    AgentTask,
    MemoryObject,
    MemoryScope,
    utcnow,
)

logger = logging.getLogger(__name__)


class AgentMemory:
    """Case-tagged memory objects with session/case/task scopes."""

    def __init__(self, owner: AgentRole) -> None:
        self._owner = owner
        self._objects: List[MemoryObject] = []
        self._lock = threading.Lock()

    def store(
        self,
        case_id: str,
        kind: str,
        data: Any,
        scope: MemoryScope = MemoryScope.CASE,
    ) -> MemoryObject:
        obj = MemoryObject(
            case_id=case_id, scope=scope, kind=kind, data=data, source=self._owner
        )
        with self._lock:
            self._objects.append(obj)
        return obj

    def recall(
        self,
        case_id: str,
        kind: Optional[str] = None,
        scope: Optional[MemoryScope] = None,
    ) -> List[MemoryObject]:
        """Objects for ``case_id`` only; other cases are never returned."""
        with self._lock:
            return [
                obj
                for obj in self._objects
                if obj.case_id == case_id
                and (kind is None or obj.kind == kind)
                and (scope is None or obj.scope == scope)
            ]

    def flush(self) -> int:
        """Drop session- and task-scoped objects; return how many went."""
        with self._lock:
            before = len(self._objects)
            self._objects = [o for o in self._objects if o.scope == MemoryScope.CASE]
            return before - len(self._objects)

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)


class BaseAgent:
    """Status, case pointer and memory common to every agent."""

    role: AgentRole
    name: str = ""
    description: str = ""

    def __init__(self) -> None:
        self.status = AgentStatus.IDLE
        self.current_case_id: Optional[str] = None
        self.last_activity = utcnow()
        self.memory = AgentMemory(self.role)

    def on_context_flush(self, previous_case_id: Optional[str], new_case_id: str) -> None:
        """Flush transient memory and follow the registry to ``new_case_id``."""
        dropped = self.memory.flush()
        self.current_case_id = new_case_id
        self.last_activity = utcnow()
        if self.status != AgentStatus.BLOCKED:
            self.status = AgentStatus.IDLE
        logger.debug(
            "%s flushed %d transient objects (%s -> %s)",
            self.role.value, dropped, previous_case_id, new_case_id,
        )

    def block(self) -> None:
        self.status = AgentStatus.BLOCKED
        logger.warning("%s blocked", self.role.value)

    @property
    def is_blocked(self) -> bool:
        return self.status == AgentStatus.BLOCKED

    def capabilities(self) -> List[str]:
        return []

    def status_report(self) -> AgentStatusReport:
        return AgentStatusReport(
            role=self.role,
            name=self.name or self.role.value,
            status=self.status,
            current_case_id=self.current_case_id,
            memory_objects=len(self.memory),
            last_activity=self.last_activity,
            capabilities=self.capabilities(),
        )


class SpecialistAgent(BaseAgent, ABC):
    """Uniform interface that every background specialist must implement."""

    @abstractmethod
    def invoke(self, task: AgentTask) -> AgentResult:
        """Run the specialist on ``task`` and return a standardised result.

        Parameters
        ----------
        task:
            The task record. ``task.case_id`` has already passed the
            coordinator's boundary check; ``task.payload`` holds the
            request built by the frontline agent.

        Returns
        -------
        AgentResult
            ``error`` set means the task is recorded as failed.
        """
        ...
