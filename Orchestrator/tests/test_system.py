"""End-to-end tests for CaseOrchestrator."""

import pytest

from Orchestrator.errors import (
    BoundaryViolationError,
    CaseLockedError,
    ConfigurationError,
    SessionHaltedError,
    UnknownContextError,
)
from Orchestrator.state import AgentRole, BreachKind, Persona, TaskStatus
from Orchestrator.system import CaseOrchestrator
from conftest import StubSpecialist


class TestConversation:
    def test_search_without_warrant(self, orchestrator):
        case_id = orchestrator.create_case("Traffic stop")
        response = orchestrator.send_message(
            "They searched my car without a warrant", case_id
        )

        assert response.trigger_task is None
        assert response.awaiting_user_input is True
        firewall = orchestrator.frontline.firewall
        assert firewall.is_educational(response.message)
        assert not firewall.check(response.message).violates

    def test_history_isolated_across_switches(self, orchestrator):
        a = orchestrator.create_case("A")
        orchestrator.send_message("message for a", a)
        b = orchestrator.create_case("B")
        orchestrator.send_message("message for b", b)
        orchestrator.send_message("second message for a", a)

        assert orchestrator.registry.get_active_case_id() == a
        history = orchestrator.get_conversation_history(a)
        assert [t.user_input for t in history] == [
            "message for a",
            "second message for a",
        ]
        assert all(t.case_id == a for t in history)
        assert orchestrator.get_conversation_history(b) == []
        assert orchestrator.registry.get_breach_events() == []

    def test_unknown_case(self, orchestrator):
        orchestrator.create_case("A")
        with pytest.raises(UnknownContextError):
            orchestrator.send_message("hello", "AIC-19990101-000000000000-FFFFFF")

    def test_locked_case_refuses_messages(self, orchestrator):
        case_id = orchestrator.create_case("Closed")
        orchestrator.lock_case(case_id)
        with pytest.raises(CaseLockedError):
            orchestrator.send_message("hello", case_id)

        events = orchestrator.registry.get_breach_events()
        assert [e.kind for e in events] == [BreachKind.VALIDATION_FAILURE]
        assert not orchestrator.get_system_status().halted

    def test_persona(self, orchestrator):
        case_id = orchestrator.create_case("A")
        orchestrator.set_persona(Persona.ALLY)
        assert orchestrator.send_message("hi", case_id).persona == Persona.ALLY


class TestDispatch:
    def test_research_task_dispatched(self, orchestrator):
        case_id = orchestrator.create_case("Force")
        response = orchestrator.send_message(
            "Show me the legal standard for force", case_id
        )
        assert response.trigger_task.to_agent == AgentRole.RESEARCH

        history = orchestrator.coordinator.get_task_history(case_id)
        assert len(history) == 1
        assert history[0].status == TaskStatus.COMPLETED
        assert any("Graham" in s for s in history[0].result["sources"])

    def test_timeline_task_dispatched(self, orchestrator):
        case_id = orchestrator.create_case("Stop")
        orchestrator.send_message(
            "What happened: they stopped me. Then they searched the car.", case_id
        )
        history = orchestrator.coordinator.get_task_history(case_id)
        assert [t.kind for t in history] == ["extract_events", "extract_entities"]
        assert all(t.status == TaskStatus.COMPLETED for t in history)
        assert len(history[0].result["raw_output"]["events"]) == 2
        assert history[1].result["raw_output"]["names"] == []

        chains = orchestrator.coordinator.get_task_chains(case_id)
        assert [c.kind for c in chains] == ["build_timeline"]
        assert chains[0].task_ids == [t.id for t in history]

    def test_background_dispatch(self):
        with CaseOrchestrator(background_dispatch=True, dispatch_timeout=0) as orch:
            case_id = orch.create_case("Background")
            orch.send_message("What does the law say about an arrest?", case_id)
            chains = orch.wait_for_dispatches(timeout=5)

            assert len(chains) == 1
            assert chains[0].status == TaskStatus.COMPLETED
            assert orch.get_system_status().dispatch_errors == []

    def test_failed_specialist_does_not_change_response(self):
        failing = StubSpecialist(AgentRole.RESEARCH, exc=RuntimeError("down"))
        timeline = StubSpecialist(AgentRole.TIMELINE)
        entity = StubSpecialist(AgentRole.ENTITY)
        with CaseOrchestrator(
            specialists=[failing, timeline, entity],
            background_dispatch=False,
            dispatch_timeout=0,
        ) as orch:
            case_id = orch.create_case("A")
            response = orch.send_message("show me the law", case_id)

            assert response.message
            errors = orch.get_system_status().dispatch_errors
            assert len(errors) == 1
            assert "down" in errors[0]
            assert errors[0].startswith("research_legal_standard:")

    def test_failed_timeline_step_skips_entities(self):
        entity = StubSpecialist(AgentRole.ENTITY)
        with CaseOrchestrator(
            specialists=[
                StubSpecialist(AgentRole.RESEARCH),
                StubSpecialist(AgentRole.TIMELINE, exc=RuntimeError("down")),
                entity,
            ],
            background_dispatch=False,
            dispatch_timeout=0,
        ) as orch:
            case_id = orch.create_case("A")
            orch.send_message("Here is what happened.", case_id)

            assert entity.calls == []
            chain = orch.coordinator.get_task_chains(case_id)[0]
            assert chain.status == TaskStatus.FAILED
            assert "step 1 (extract_events)" in orch.get_system_status().dispatch_errors[0]

    def test_missing_specialist_fails_fast(self):
        with pytest.raises(ConfigurationError):
            CaseOrchestrator(specialists=[StubSpecialist(AgentRole.RESEARCH)])


class TestBreachResponse:
    def test_dispatch_to_earlier_case_fails_and_halts(self):
        research = StubSpecialist(AgentRole.RESEARCH)
        with CaseOrchestrator(
            specialists=[
                research,
                StubSpecialist(AgentRole.TIMELINE),
                StubSpecialist(AgentRole.ENTITY),
            ],
            background_dispatch=False,
            dispatch_timeout=0,
        ) as orch:
            a = orch.create_case("A")
            b = orch.create_case("B")

            task = orch.coordinator.dispatch(
                AgentRole.RESEARCH, a, "research_legal_standard", {"triggers": []}
            )

            assert task.status == TaskStatus.FAILED
            assert "boundary violation" in task.error
            events = orch.registry.get_breach_events()
            assert [e.kind for e in events] == [BreachKind.CROSS_CONTEXT_ACCESS]
            assert events[0].attempted_case_id == a
            assert events[0].active_case_id_at_time == b
            assert research.calls == []
            assert orch.get_system_status().halted
            assert orch.frontline.is_blocked

    def test_cross_case_turn_halts_session(self, orchestrator):
        a = orchestrator.create_case("A")
        b = orchestrator.create_case("B")

        with pytest.raises(BoundaryViolationError):
            orchestrator.frontline.respond_to_user("hello", a)

        status = orchestrator.get_system_status()
        assert status.halted
        assert status.breach_events[0].attempted_case_id == a
        assert status.breach_events[0].active_case_id_at_time == b

        with pytest.raises(SessionHaltedError):
            orchestrator.send_message("hello again", b)

    def test_export_of_inactive_case_is_breach(self, orchestrator):
        a = orchestrator.create_case("A")
        orchestrator.create_case("B")
        with pytest.raises(BoundaryViolationError):
            orchestrator.export_case(a)
        assert orchestrator.coordinator.halted
        assert not orchestrator.validate_integrity().valid


class TestStatusAndExport:
    def test_export_snapshot(self, orchestrator):
        case_id = orchestrator.create_case("Export me")
        orchestrator.send_message("show me the deadline rules", case_id)

        snapshot = orchestrator.export_case(case_id)
        assert snapshot.case_id == case_id
        assert snapshot.title == "Export me"
        assert len(snapshot.conversation_log) == 1
        assert len(snapshot.task_history) == 1
        assert len(snapshot.task_chains) == 1
        assert snapshot.task_chains[0].status == TaskStatus.COMPLETED

    def test_system_status(self, orchestrator):
        case_id = orchestrator.create_case("A")
        orchestrator.send_message("hi", case_id)

        status = orchestrator.get_system_status()
        assert status.active_case_id == case_id
        assert set(status.agent_statuses) == {"frontline", "coordinator"}
        assert status.agent_statuses["frontline"].current_case_id == case_id
        assert status.breach_events == []
        assert status.policy_violations == 0

    def test_integrity_after_normal_use(self, orchestrator):
        a = orchestrator.create_case("A")
        orchestrator.create_case("B")
        orchestrator.switch_to_case(a)
        assert orchestrator.validate_integrity().valid

    def test_list_cases(self, orchestrator):
        a = orchestrator.create_case("A")
        b = orchestrator.create_case("B")
        assert {c.case_id for c in orchestrator.list_cases()} == {a, b}
