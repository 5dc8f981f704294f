"""Tests for the CLI helpers."""

from Orchestrator.main import _handle_command, run_single_query


class TestCommands:
    def test_switch_rejects_malformed_id(self, orchestrator, capsys):
        orchestrator.create_case("A")
        assert _handle_command(orchestrator, "/switch garbage") is True
        assert "Not a case id: 'garbage'" in capsys.readouterr().out
        assert orchestrator.registry.get_breach_events() == []

    def test_switch_to_unknown_case(self, orchestrator, capsys):
        orchestrator.create_case("A")
        _handle_command(orchestrator, "/switch AIC-19990101-000000000000-FFFFFF")
        assert "Unknown case" in capsys.readouterr().out

    def test_switch_between_cases(self, orchestrator, capsys):
        a = orchestrator.create_case("A")
        orchestrator.create_case("B")
        _handle_command(orchestrator, f"/switch {a}")
        assert f"Switched to {a}" in capsys.readouterr().out
        assert orchestrator.registry.get_active_case_id() == a

    def test_quit(self, orchestrator):
        assert _handle_command(orchestrator, "/quit") is False


def test_run_single_query(orchestrator):
    result = run_single_query(orchestrator, "Here is the sequence of events.", title="Stop")
    assert result["case_id"] == orchestrator.registry.get_active_case_id()
    assert result["trigger_task"]["kind"] == "build_timeline"
    assert [c["kind"] for c in result["chains"]] == ["build_timeline"]
    assert result["chains"][0]["status"] == "completed"
