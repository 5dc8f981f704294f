"""Agents: the frontline responder, the dispatch coordinator and specialists."""

from Orchestrator.agents.base import AgentMemory, BaseAgent, SpecialistAgent
from Orchestrator.agents.coordinator import DispatchCoordinator
from Orchestrator.agents.frontline import FrontlineAgent
from Orchestrator.agents.specialists import (
    EntitySpecialist,
    ResearchSpecialist,
    TimelineSpecialist,
    default_specialists,
)

__all__ = [
    "AgentMemory",
    "BaseAgent",
    "SpecialistAgent",
    "DispatchCoordinator",
    "FrontlineAgent",
    "EntitySpecialist",
    "ResearchSpecialist",
    "TimelineSpecialist",
    "default_specialists",
]
