"""
record_turn.py

Last node of the frontline turn: appends the exchange to the case's
append-only conversation log.
"""

from typing import Any, Callable, Dict

from Orchestrator.state import ConversationTurn, FrontlineState


def make_record_turn_node(
    record: Callable[[ConversationTurn], None],
) -> Callable[[FrontlineState], Dict[str, Any]]:

    def record_turn_node(state: FrontlineState) -> Dict[str, Any]:
        """Updates state keys: ``timestamp`` (unchanged, the recorded time)."""
        turn = ConversationTurn(
            case_id=state["case_id"],
            user_input=state.get("user_input", ""),
            response=state.get("message", ""),
            persona=state["persona"],
            triggers=list(state.get("triggers", [])),
            timestamp=state["timestamp"],
        )
        record(turn)
        return {"timestamp": turn.timestamp}

    return record_turn_node
