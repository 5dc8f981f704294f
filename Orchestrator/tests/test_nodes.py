"""Tests for the individual frontline workflow nodes and the graph router."""

from Orchestrator.graph import boundary_router
from Orchestrator.nodes.apply_firewall import make_apply_firewall_node
from Orchestrator.nodes.boundary_check import make_boundary_check_node
from Orchestrator.nodes.classify_triggers import classify_triggers
from Orchestrator.nodes.decide_task import decide_task, required_roles
from Orchestrator.nodes.draft_response import draft_response
from Orchestrator.nodes.record_turn import make_record_turn_node
from Orchestrator.prompts import (
    DEADLINES_BODY,
    FALLBACK_BODY,
    FORCE_BODY,
    PERSONA_OPENINGS,
    SEARCH_BODY,
)
from Orchestrator.state import AgentRole, Persona, utcnow


class TestClassifyTriggers:
    def test_multiple_groups_in_fixed_order(self):
        tags = classify_triggers("In court they said the arrest involved FORCE")
        assert tags == ["excessive_force", "unlawful_detention", "court_procedure"]

    def test_substring_match(self):
        assert classify_triggers("They searched my car") == ["fourth_amendment"]

    def test_no_match(self):
        assert classify_triggers("Hello there") == []


class TestDraftResponse:
    def test_highest_priority_body_wins(self):
        draft = draft_response(["deadlines", "excessive_force"], Persona.RAZOR)
        assert draft.startswith(PERSONA_OPENINGS[Persona.RAZOR])
        assert FORCE_BODY in draft
        assert DEADLINES_BODY not in draft

    def test_search_body(self):
        assert SEARCH_BODY in draft_response(["fourth_amendment"], Persona.GUIDE)

    def test_tags_without_body_fall_back(self):
        draft = draft_response(["civil_rights"], Persona.ALLY)
        assert draft.endswith(FALLBACK_BODY)

    def test_string_persona_accepted(self):
        assert draft_response([], "guide").startswith(PERSONA_OPENINGS[Persona.GUIDE])


class TestDecideTask:
    def test_research_request(self):
        task = decide_task("Can you show me the rules?", ["fourth_amendment"])
        assert task.kind == "research_legal_standard"
        assert task.to_agent == AgentRole.RESEARCH
        assert task.payload == {
            "triggers": ["fourth_amendment"],
            "user_query": "Can you show me the rules?",
        }

    def test_timeline_request(self):
        task = decide_task("Here is the sequence of events.", [])
        assert task.kind == "build_timeline"
        assert task.to_agent == AgentRole.TIMELINE
        assert task.payload == {"user_input": "Here is the sequence of events."}

    def test_research_checked_first(self):
        assert decide_task("Show me what happened", []).kind == "research_legal_standard"

    def test_no_action_phrase(self):
        assert decide_task("They searched my car without a warrant", ["x"]) is None

    def test_required_roles(self):
        assert required_roles() == [
            AgentRole.RESEARCH,
            AgentRole.TIMELINE,
            AgentRole.ENTITY,
        ]


class TestBoundaryNode:
    def test_reports_registry_result(self, two_cases):
        registry, c1, c2 = two_cases
        node = make_boundary_check_node(registry)
        assert node({"case_id": c2}) == {"boundary_ok": True}
        assert node({"case_id": c1}) == {"boundary_ok": False}

    def test_router(self):
        assert boundary_router({"boundary_ok": True}) == "continue"
        assert boundary_router({"boundary_ok": False}) == "blocked"
        assert boundary_router({}) == "blocked"


class TestApplyFirewallNode:
    def test_clean_draft_passes_through(self, firewall):
        records = []
        node = make_apply_firewall_node(firewall, records.append)
        out = node({"draft": "Courts look at this.", "persona": Persona.GUIDE, "case_id": "C"})
        assert out == {"message": "Courts look at this.", "policy_violation": None}
        assert records == []

    def test_violation_rewritten_and_recorded(self, firewall):
        records = []
        node = make_apply_firewall_node(firewall, records.append)
        out = node({"draft": "You should file now.", "persona": Persona.ALLY, "case_id": "C"})

        assert not firewall.check(out["message"]).violates
        assert "you should" in out["policy_violation"]
        assert len(records) == 1
        assert records[0].case_id == "C"
        assert records[0].original_text == "You should file now."


class TestRecordTurnNode:
    def test_records_turn(self):
        turns = []
        node = make_record_turn_node(turns.append)
        now = utcnow()
        out = node(
            {
                "case_id": "C",
                "user_input": "hi",
                "message": "hello",
                "persona": Persona.RAZOR,
                "triggers": ["deadlines"],
                "timestamp": now,
            }
        )
        assert out == {"timestamp": now}
        assert turns[0].response == "hello"
        assert turns[0].triggers == ["deadlines"]
