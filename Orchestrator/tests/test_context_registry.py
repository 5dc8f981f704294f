"""Tests for the context registry: case lifecycle, boundary checks, listeners."""

import random

from Orchestrator.core.context_registry import ContextRegistry
from Orchestrator.state import AgentRole, BreachKind, Severity


class TestCaseLifecycle:
    def test_create_does_not_activate(self, registry):
        registry.create_case("Traffic stop")
        assert registry.get_active_case_id() is None

    def test_switch_activates(self, registry):
        case_id = registry.create_case("Traffic stop")
        assert registry.switch_to_case(case_id) is True
        assert registry.get_active_case_id() == case_id
        assert registry.is_active(case_id)

    def test_ids_never_reused(self):
        ids = iter(["X-1", "X-1", "X-2"])
        registry = ContextRegistry(id_factory=lambda: next(ids))
        assert registry.create_case("a") == "X-1"
        assert registry.create_case("b") == "X-2"

    def test_switch_to_unknown_case_records_breach(self, registry):
        known = registry.create_case("Known")
        registry.switch_to_case(known)

        assert registry.switch_to_case("AIC-00000000-000000000000-DEAD") is False
        assert registry.get_active_case_id() == known

        events = registry.get_breach_events()
        assert len(events) == 1
        assert events[0].kind == BreachKind.UNKNOWN_CONTEXT
        assert events[0].severity == Severity.MEDIUM

    def test_lock_case(self, registry):
        case_id = registry.create_case("Locked")
        assert registry.lock_case(case_id) is True
        assert registry.is_locked(case_id)
        assert registry.lock_case("missing") is False
        assert not registry.is_locked("missing")

    def test_get_case_context_returns_copy(self, registry):
        case_id = registry.create_case("Original")
        ctx = registry.get_case_context(case_id)
        ctx.title = "Changed"
        assert registry.get_case_context(case_id).title == "Original"
        assert registry.get_case_context("missing") is None

    def test_list_cases_most_recent_first(self, registry):
        a = registry.create_case("A")
        b = registry.create_case("B")
        registry.switch_to_case(b)
        registry.switch_to_case(a)
        assert [c.case_id for c in registry.list_cases()][0] == a


class TestBoundaryEnforcement:
    def test_active_case_passes(self, two_cases):
        registry, _c1, c2 = two_cases
        assert registry.enforce_boundary(c2, AgentRole.FRONTLINE) is True
        assert registry.get_breach_events() == []

    def test_inactive_case_records_single_critical_breach(self, two_cases):
        registry, c1, c2 = two_cases
        assert registry.enforce_boundary(c1, AgentRole.FRONTLINE) is False

        events = registry.get_breach_events()
        assert len(events) == 1
        breach = events[0]
        assert breach.kind == BreachKind.CROSS_CONTEXT_ACCESS
        assert breach.severity == Severity.CRITICAL
        assert breach.attempted_case_id == c1
        assert breach.active_case_id_at_time == c2
        assert breach.source_agent == AgentRole.FRONTLINE

    def test_no_active_case_fails(self, registry):
        case_id = registry.create_case("Idle")
        assert registry.enforce_boundary(case_id, AgentRole.COORDINATOR) is False

    def test_string_role_is_coerced(self, two_cases):
        registry, c1, _c2 = two_cases
        registry.enforce_boundary(c1, "research")
        assert registry.get_breach_events()[0].source_agent == AgentRole.RESEARCH

    def test_breach_listener_called_once(self, two_cases):
        registry, c1, _c2 = two_cases
        seen = []
        registry.add_breach_listener(seen.append)
        registry.enforce_boundary(c1, AgentRole.FRONTLINE)
        assert len(seen) == 1
        assert seen[0].attempted_case_id == c1

    def test_is_active_does_not_record(self, two_cases):
        registry, c1, _c2 = two_cases
        assert registry.is_active(c1) is False
        assert registry.get_breach_events() == []

    def test_validation_failure_is_high_severity(self, two_cases):
        registry, _c1, c2 = two_cases
        seen = []
        registry.add_breach_listener(seen.append)
        event = registry.record_validation_failure(AgentRole.FRONTLINE, c2, "locked")
        assert event.kind == BreachKind.VALIDATION_FAILURE
        assert event.severity == Severity.HIGH
        assert seen == []

    def test_boundary_holds_over_random_switch_sequences(self):
        rng = random.Random(1234)
        registry = ContextRegistry()
        cases = []
        active = None
        for _ in range(200):
            if not cases or rng.random() < 0.3:
                cases.append(registry.create_case(f"case {len(cases)}"))
            else:
                active = rng.choice(cases)
                assert registry.switch_to_case(active)

            for case_id in cases:
                expected = case_id == active
                assert registry.enforce_boundary(case_id, AgentRole.COORDINATOR) is expected


class TestFlushListeners:
    def test_called_synchronously_before_activation(self, registry):
        a = registry.create_case("A")
        b = registry.create_case("B")
        registry.switch_to_case(a)

        calls = []

        def listener(previous, new):
            calls.append((previous, new, registry.get_active_case_id()))

        registry.add_flush_listener(listener)
        registry.switch_to_case(b)
        assert calls == [(a, b, a)]

    def test_not_called_for_unknown_case(self, registry):
        calls = []
        registry.add_flush_listener(lambda prev, new: calls.append(new))
        registry.switch_to_case("nope")
        assert calls == []

    def test_listener_error_does_not_stop_switch(self, registry):
        a = registry.create_case("A")
        b = registry.create_case("B")
        registry.switch_to_case(a)
        seen = []

        def broken(previous, new):
            raise RuntimeError("flush failed")

        registry.add_flush_listener(lambda prev, new: seen.append(("first", new)))
        registry.add_flush_listener(broken)
        registry.add_flush_listener(lambda prev, new: seen.append(("last", new)))

        assert registry.switch_to_case(b) is True
        assert registry.get_active_case_id() == b
        assert seen == [("first", b), ("last", b)]

    def test_agents_follow_switch_when_a_listener_fails(self, orchestrator):
        a = orchestrator.create_case("A")
        orchestrator.create_case("B")

        def broken(previous, new):
            raise RuntimeError("flush failed")

        orchestrator.registry.add_flush_listener(broken)
        assert orchestrator.switch_to_case(a)
        assert orchestrator.frontline.current_case_id == a
        assert orchestrator.coordinator.current_case_id == a
        assert orchestrator.validate_integrity().valid
