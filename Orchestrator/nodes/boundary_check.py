"""
boundary_check.py

First node of the frontline turn: asks the context registry whether the
turn's case is the active one. A failed check ends the turn.
"""

import logging
from typing import Any, Callable, Dict

from Orchestrator.core.context_registry import ContextRegistry
from Orchestrator.state import AgentRole, FrontlineState

logger = logging.getLogger(__name__)


def make_boundary_check_node(
    registry: ContextRegistry,
) -> Callable[[FrontlineState], Dict[str, Any]]:
    """Bind the node to one registry instance."""

    def boundary_check_node(state: FrontlineState) -> Dict[str, Any]:
        """Updates state keys: ``boundary_ok``."""
        case_id = state.get("case_id", "")
        ok = registry.enforce_boundary(case_id, AgentRole.FRONTLINE)
        if not ok:
            logger.error("Frontline turn aborted: case %s is not active", case_id)
        return {"boundary_ok": ok}

    return boundary_check_node
