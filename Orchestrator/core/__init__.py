"""Context isolation and content policy enforcement."""

from Orchestrator.core.context_registry import ContextRegistry
from Orchestrator.core.firewall import ContentPolicyFirewall

__all__ = ["ContextRegistry", "ContentPolicyFirewall"]
