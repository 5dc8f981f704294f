"""
Case Orchestrator - case-isolated multi-agent coordination.

A single frontline agent answers the user; a dispatch coordinator routes
background tasks to specialists; a context registry guarantees that
nothing from one case reaches another; a content policy firewall keeps
every reply educational rather than advisory.
"""

from Orchestrator.state import HandlerResponse, Persona
from Orchestrator.system import CaseOrchestrator

__all__ = ["CaseOrchestrator", "HandlerResponse", "Persona"]
