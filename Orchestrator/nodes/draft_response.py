"""
draft_response.py

Selects the response body from the decision table in ``prompts``.
"""

from typing import Any, Dict, Sequence

from Orchestrator.prompts import (
    DRAFT_BODIES,
    DRAFT_PRIORITY,
    FALLBACK_BODY,
    PERSONA_OPENINGS,
)
from Orchestrator.state import FrontlineState, Persona


def draft_response(triggers: Sequence[str], persona: Persona) -> str:
    """Persona opening plus the body of the highest-priority tag present."""
    opening = PERSONA_OPENINGS[Persona(persona)]
    for tag in DRAFT_PRIORITY:
        if tag in triggers:
            return f"{opening}\n\n{DRAFT_BODIES[tag]}"
    return f"{opening}\n\n{FALLBACK_BODY}"


def draft_response_node(state: FrontlineState) -> Dict[str, Any]:
    """Updates state keys: ``draft``."""
    return {"draft": draft_response(state.get("triggers", []), state["persona"])}
