"""
specialists.py

Deterministic stand-ins for the background specialists.

They return reference material only; no specialist reasoning lives here.
Real deployments register their own ``SpecialistAgent`` subclasses with
the coordinator under the same roles.
"""

import logging
import re
from typing import Dict, List

from Orchestrator.agents.base import SpecialistAgent
from Orchestrator.state import AgentResult, AgentRole, AgentTask

logger = logging.getLogger(__name__)

# Trigger tag -> reference legal standards
LEGAL_STANDARDS: Dict[str, List[str]] = {
    "excessive_force": [
        "Graham v. Connor, 490 U.S. 386 (1989) - objective reasonableness",
        "Tennessee v. Garner, 471 U.S. 1 (1985) - deadly force",
    ],
    "fourth_amendment": [
        "U.S. Const. amend. IV",
        "Katz v. United States, 389 U.S. 347 (1967) - reasonable expectation of privacy",
        "Terry v. Ohio, 392 U.S. 1 (1968) - investigative stops",
    ],
    "unlawful_detention": [
        "Terry v. Ohio, 392 U.S. 1 (1968) - reasonable suspicion",
        "Dunaway v. New York, 442 U.S. 200 (1979) - probable cause for arrest",
    ],
    "property_seizure": [
        "Soldal v. Cook County, 506 U.S. 56 (1992) - seizure of property",
    ],
    "civil_rights": [
        "42 U.S.C. § 1983",
        "Whren v. United States, 517 U.S. 806 (1996)",
    ],
    "court_procedure": [
        "Fed. R. Civ. P. 3-5 - commencing an action and service",
    ],
    "deadlines": [
        "Fed. R. Civ. P. 6 - computing time",
        "Fed. R. Civ. P. 12(a) - time to serve a responsive pleading",
    ],
}

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+|\n+")


class ResearchSpecialist(SpecialistAgent):
    """Looks up reference legal standards for the turn's trigger tags."""

    role = AgentRole.RESEARCH
    name = "Research"
    description = "Returns reference legal standards for classified trigger tags."

    def invoke(self, task: AgentTask) -> AgentResult:
        triggers = task.payload.get("triggers") or []
        standards: Dict[str, List[str]] = {
            tag: LEGAL_STANDARDS[tag] for tag in triggers if tag in LEGAL_STANDARDS
        }
        sources = [ref for refs in standards.values() for ref in refs]
        logger.info(
            "Research task %s: %d standards for %s", task.id, len(sources), triggers
        )
        return AgentResult(
            response=f"{len(sources)} reference standards located",
            sources=sources,
            raw_output={"standards": standards, "query": task.payload.get("user_query", "")},
        )

    def capabilities(self) -> List[str]:
        return ["Legal standard lookup"]


class TimelineSpecialist(SpecialistAgent):
    """Splits a narrative into ordered candidate events."""

    role = AgentRole.TIMELINE
    name = "Timeline"
    description = "Extracts an ordered list of candidate events from user narrative."

    def invoke(self, task: AgentTask) -> AgentResult:
        text = task.payload.get("user_input", "")
        sentences = [s.strip() for s in _SENTENCE_SPLIT.split(text) if s.strip()]
        events = [
            {"order": index, "text": sentence}
            for index, sentence in enumerate(sentences, start=1)
        ]
        return AgentResult(
            response=f"{len(events)} candidate events extracted",
            raw_output={"events": events},
        )

    def capabilities(self) -> List[str]:
        return ["Chronology building"]


# Role words that name a participant even when not capitalised
PARTICIPANT_WORDS = (
    "officer",
    "deputy",
    "trooper",
    "sergeant",
    "detective",
    "witness",
    "judge",
    "clerk",
)


def _capitalised_runs(text: str) -> List[str]:
    """Runs of capitalised words, ignoring each sentence's first word."""
    names: List[str] = []
    for sentence in _SENTENCE_SPLIT.split(text):
        run: List[str] = []
        words = [w.strip(",;:.!?\"'()") for w in sentence.split()]
        for word in words[1:] + [""]:
            if word[:1].isupper() and word[1:].islower():
                run.append(word)
                continue
            if run and " ".join(run) not in names:
                names.append(" ".join(run))
            run = []
    return names


class EntitySpecialist(SpecialistAgent):
    """Picks out the people and roles mentioned in a narrative."""

    role = AgentRole.ENTITY
    name = "Entity"
    description = "Lists participants named or described in user narrative."

    def invoke(self, task: AgentTask) -> AgentResult:
        text = task.payload.get("user_input", "")
        lowered = text.lower()

        names = _capitalised_runs(text)
        roles = [word for word in PARTICIPANT_WORDS if word in lowered]

        return AgentResult(
            response=f"{len(names)} names and {len(roles)} roles found",
            raw_output={"names": names, "roles": roles},
        )

    def capabilities(self) -> List[str]:
        return ["Participant extraction"]


def default_specialists() -> List[SpecialistAgent]:
    return [ResearchSpecialist(), TimelineSpecialist(), EntitySpecialist()]
