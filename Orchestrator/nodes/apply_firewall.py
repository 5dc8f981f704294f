"""
apply_firewall.py

Runs the draft through the content policy firewall.

A violation is never fatal: the corrected text replaces the draft and the
violation is handed to the audit recorder.
"""

import logging
from typing import Any, Callable, Dict

from Orchestrator.core.firewall import ContentPolicyFirewall
from Orchestrator.state import FrontlineState, PolicyViolationRecord

logger = logging.getLogger(__name__)


def make_apply_firewall_node(
    firewall: ContentPolicyFirewall,
    record_violation: Callable[[PolicyViolationRecord], None],
) -> Callable[[FrontlineState], Dict[str, Any]]:

    def apply_firewall_node(state: FrontlineState) -> Dict[str, Any]:
        """Updates state keys: ``message``, ``policy_violation``."""
        draft = state.get("draft", "")
        persona = state["persona"]
        outcome = firewall.validate(draft, persona)

        if outcome.valid:
            return {"message": draft, "policy_violation": None}

        corrected = outcome.corrected_text or firewall.educational_template(persona)
        logger.warning("Policy violation corrected: %s", outcome.violation)
        record_violation(
            PolicyViolationRecord(
                case_id=state.get("case_id", ""),
                persona=persona,
                violation=outcome.violation or "",
                original_text=draft,
                corrected_text=corrected,
            )
        )
        return {"message": corrected, "policy_violation": outcome.violation}

    return apply_firewall_node
