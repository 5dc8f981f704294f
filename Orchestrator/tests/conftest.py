"""Shared fixtures and stub specialists for the orchestrator tests."""

import threading
from typing import List, Optional

import pytest

from Orchestrator.agents.base import SpecialistAgent
from Orchestrator.core.context_registry import ContextRegistry
from Orchestrator.core.firewall import ContentPolicyFirewall
from Orchestrator.state import AgentResult, AgentRole, AgentTask
from Orchestrator.system import CaseOrchestrator


class StubSpecialist(SpecialistAgent):
    """Specialist that records calls and returns a canned result."""

    def __init__(
        self,
        role: AgentRole = AgentRole.RESEARCH,
        result: Optional[AgentResult] = None,
        exc: Optional[Exception] = None,
        started: Optional[threading.Event] = None,
        release: Optional[threading.Event] = None,
    ):
        self.role = role
        self.name = f"Stub {role.value}"
        super().__init__()
        self.calls: List[AgentTask] = []
        self._result = result or AgentResult(response="ok")
        self._exc = exc
        self._started = started
        self._release = release

    def invoke(self, task: AgentTask) -> AgentResult:
        self.calls.append(task)
        if self._started is not None:
            self._started.set()
        if self._release is not None:
            self._release.wait(timeout=5)
        if self._exc is not None:
            raise self._exc
        return self._result


@pytest.fixture
def registry():
    return ContextRegistry()


@pytest.fixture
def firewall():
    return ContentPolicyFirewall()


@pytest.fixture
def two_cases(registry):
    """Registry holding C1 and C2 with C2 active."""
    c1 = registry.create_case("First case")
    c2 = registry.create_case("Second case")
    registry.switch_to_case(c2)
    return registry, c1, c2


@pytest.fixture
def orchestrator():
    orch = CaseOrchestrator(background_dispatch=False, dispatch_timeout=0)
    yield orch
    orch.shutdown()
