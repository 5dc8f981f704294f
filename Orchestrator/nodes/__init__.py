"""Node implementations for the frontline turn LangGraph workflow."""

from Orchestrator.nodes.apply_firewall import make_apply_firewall_node
from Orchestrator.nodes.boundary_check import make_boundary_check_node
from Orchestrator.nodes.classify_triggers import classify_triggers_node
from Orchestrator.nodes.decide_task import decide_task_node
from Orchestrator.nodes.draft_response import draft_response_node
from Orchestrator.nodes.record_turn import make_record_turn_node

__all__ = [
    "make_boundary_check_node",
    "classify_triggers_node",
    "draft_response_node",
    "make_apply_firewall_node",
    "decide_task_node",
    "make_record_turn_node",
]
