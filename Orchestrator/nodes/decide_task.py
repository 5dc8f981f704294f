"""
decide_task.py

Decides whether the turn should hand a background task to the
coordinator. The scan runs over the raw input and is independent of the
trigger classification; the triggers only travel along in the payload.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from Orchestrator.config import TASK_CHAINS
from Orchestrator.state import AgentRole, FrontlineState, TaskDescriptor

logger = logging.getLogger(__name__)

# (task kind, action phrases); first kind with a matching phrase wins.
ACTION_PHRASES: List[Tuple[str, Tuple[str, ...]]] = [
    (
        "research_legal_standard",
        ("show me", "what does the law say", "legal standard"),
    ),
    (
        "build_timeline",
        ("what happened", "timeline", "sequence of events", "chronology"),
    ),
]


def required_roles() -> List[AgentRole]:
    """Every role a requestable chain visits; must be registered at start-up."""
    roles: List[AgentRole] = []
    for kind, _ in ACTION_PHRASES:
        for role, _step in TASK_CHAINS[kind]:
            if AgentRole(role) not in roles:
                roles.append(AgentRole(role))
    return roles


def decide_task(user_input: str, triggers: Sequence[str]) -> Optional[TaskDescriptor]:
    lowered = user_input.lower()
    for kind, phrases in ACTION_PHRASES:
        if any(phrase in lowered for phrase in phrases):
            if kind == "research_legal_standard":
                payload: Dict[str, Any] = {
                    "triggers": list(triggers),
                    "user_query": user_input,
                }
            else:
                payload = {"user_input": user_input}
            return TaskDescriptor(
                to_agent=AgentRole(TASK_CHAINS[kind][0][0]),
                kind=kind,
                payload=payload,
            )
    return None


def decide_task_node(state: FrontlineState) -> Dict[str, Any]:
    """Updates state keys: ``trigger_task``."""
    task = decide_task(state.get("user_input", ""), state.get("triggers", []))
    if task is not None:
        logger.info("Turn requests task %s -> %s", task.kind, task.to_agent.value)
    return {"trigger_task": task}
