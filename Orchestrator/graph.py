"""
graph.py

Defines and constructs the LangGraph workflow for one frontline turn.

The turn runs: boundary check -> trigger classification -> drafting ->
content policy firewall -> task decision -> conversation log.

A conditional edge after the boundary check ends the turn immediately
when the requested case is not the active one.
"""

from typing import Callable

from langgraph.graph import END, START, StateGraph

from Orchestrator.core.context_registry import ContextRegistry
from Orchestrator.core.firewall import ContentPolicyFirewall
from Orchestrator.nodes.apply_firewall import make_apply_firewall_node
from Orchestrator.nodes.boundary_check import make_boundary_check_node
from Orchestrator.nodes.classify_triggers import classify_triggers_node
from Orchestrator.nodes.decide_task import decide_task_node
from Orchestrator.nodes.draft_response import draft_response_node
from Orchestrator.nodes.record_turn import make_record_turn_node
from Orchestrator.state import ConversationTurn, FrontlineState, PolicyViolationRecord


# ---------------------------------------------------------------------------
# Router functions (used by conditional edges)
# ---------------------------------------------------------------------------

def boundary_router(state: FrontlineState) -> str:
    """Route after the boundary check.

    Returns ``"continue"`` when the case is active, ``"blocked"`` otherwise.
    """
    if state.get("boundary_ok", False):
        return "continue"
    return "blocked"


# ---------------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------------

def build_frontline_graph(
    registry: ContextRegistry,
    firewall: ContentPolicyFirewall,
    record_violation: Callable[[PolicyViolationRecord], None],
    record_turn: Callable[[ConversationTurn], None],
):
    """Construct and compile the frontline turn workflow.

    The registry, firewall and recorders are bound into the nodes so each
    orchestrator instance gets its own graph. Returns the compiled graph
    ready for ``graph.invoke(state)``.
    """
    workflow = StateGraph(FrontlineState)

    # -- Nodes --
    workflow.add_node("boundary_check", make_boundary_check_node(registry))
    workflow.add_node("classify_triggers", classify_triggers_node)
    workflow.add_node("draft_response", draft_response_node)
    workflow.add_node(
        "apply_firewall", make_apply_firewall_node(firewall, record_violation)
    )
    workflow.add_node("decide_task", decide_task_node)
    workflow.add_node("record_turn", make_record_turn_node(record_turn))

    # -- Edges --
    workflow.add_edge(START, "boundary_check")

    workflow.add_conditional_edges(
        "boundary_check",
        boundary_router,
        {
            "continue": "classify_triggers",
            "blocked": END,
        },
    )

    workflow.add_edge("classify_triggers", "draft_response")
    workflow.add_edge("draft_response", "apply_firewall")
    workflow.add_edge("apply_firewall", "decide_task")
    workflow.add_edge("decide_task", "record_turn")
    workflow.add_edge("record_turn", END)

    return workflow.compile()
