"""
classify_triggers.py

Deterministic keyword classification of the user's message.

Every group whose keywords appear (as substrings of the lowercased input)
contributes its tag. Tags come back in ``TRIGGER_ORDER`` regardless of
where the keywords appear in the text.
"""

import logging
from typing import Any, Dict, List

from Orchestrator.state import FrontlineState

logger = logging.getLogger(__name__)

TRIGGER_GROUPS: Dict[str, List[str]] = {
    # Constitutional rights
    "excessive_force": ["force", "violence"],
    "fourth_amendment": ["search", "seizure"],
    "unlawful_detention": ["arrest", "detained"],
    "property_seizure": ["property", "towed"],
    "civil_rights": ["discrimination", "race"],
    # Procedural
    "court_procedure": ["court", "filing"],
    "deadlines": ["deadline", "response"],
}

TRIGGER_ORDER: List[str] = list(TRIGGER_GROUPS)


def classify_triggers(text: str) -> List[str]:
    lowered = text.lower()
    return [
        tag
        for tag in TRIGGER_ORDER
        if any(keyword in lowered for keyword in TRIGGER_GROUPS[tag])
    ]


def classify_triggers_node(state: FrontlineState) -> Dict[str, Any]:
    """Updates state keys: ``triggers``."""
    triggers = classify_triggers(state.get("user_input", ""))
    logger.info("Triggers classified: %s", triggers)
    return {"triggers": triggers}
