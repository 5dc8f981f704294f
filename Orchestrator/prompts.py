"""
prompts.py

Template text used by the frontline agent and the content policy firewall.

Every string here is user-facing and must itself pass the firewall; the
test suite checks that.
"""

from Orchestrator.state import Persona

# ---------------------------------------------------------------------------
# Core directive
# ---------------------------------------------------------------------------

FRONTLINE_CORE_DIRECTIVE = """\
You are not the lawyer.
You are the interpreter of the legal landscape.
Your job is to teach the user how to speak in a language the law understands,
without ever speaking for them.

NEVER:
- Give legal advice
- Make legal conclusions
- Suggest what to do
- Coach on strategy

ALWAYS:
- Explain legal frameworks
- Provide definitions
- Show what courts look for
- Let the user draw their own conclusions
"""

# ---------------------------------------------------------------------------
# Persona openings and closings
# ---------------------------------------------------------------------------

PERSONA_OPENINGS = {
    Persona.STRATEGIST: (
        "That sounds overwhelming. I can only imagine what that felt like. "
        "But let me show you how the law looks at it, so we can get a "
        "better understanding."
    ),
    Persona.GUIDE: (
        "I understand this is frustrating. Let me walk you through how "
        "courts typically analyze situations like this."
    ),
    Persona.RAZOR: (
        "Alright, let's cut through the noise. Here's what the law "
        "says about situations like this."
    ),
    Persona.ALLY: (
        "I hear you, and this matters. Let me help you understand the "
        "legal framework that applies here."
    ),
}

PERSONA_CLOSINGS = {
    Persona.STRATEGIST: "I want to make sure you understand this clearly.",
    Persona.GUIDE: "Let's work through this step by step.",
    Persona.RAZOR: "No sugarcoating: here's the straight legal analysis.",
    Persona.ALLY: "I'm here to help you understand this completely.",
}

# ---------------------------------------------------------------------------
# Drafting bodies keyed by trigger tag
# ---------------------------------------------------------------------------

FORCE_BODY = """\
Legally, officers are allowed to use force. But the law puts limits on that. It must be:
- Necessary
- Reasonable
- Proportionate to the situation

So it helps to break down:
- What was happening before the officer acted?
- What did they see or know?
- Was there a threat? Resistance? Confusion?

Because the law asks: 'What would another reasonable officer have done in that moment?'

Would you like me to show you what courts use to decide whether force was reasonable under the law?"""

SEARCH_BODY = """\
The law allows searches under certain circumstances, but generally requires either:
- A warrant based on probable cause
- Specific exceptions (consent, emergency, etc.)

For seizures, courts look at whether it was:
- Justified at its inception
- Reasonably related in scope to the circumstances

Let's explore what happened step by step to understand which legal standard applies to your situation."""

DETENTION_BODY = """\
The legal standard for a stop is different from the standard for an arrest.
Courts generally look for:
- Reasonable suspicion for a brief investigative stop
- Probable cause for an arrest

Let me explain what each of those terms means and how courts apply them to the facts."""

COURT_PROCEDURE_BODY = """\
Court procedures have specific rules and deadlines. The law provides frameworks for:
- Filing requirements
- Response deadlines
- Service of process
- Evidence presentation

Let me help you understand what procedural requirements might apply to your situation."""

DEADLINES_BODY = """\
Court rules set time limits, and the limit that applies depends on the kind of filing
and the court involved. Courts generally count deadlines from the date of service.

Let me explain how those time limits are usually measured."""

FALLBACK_BODY = (
    "I can help you understand the legal framework that might apply to your "
    "situation. What specific aspect would you like me to explain?"
)

DRAFT_BODIES = {
    "excessive_force": FORCE_BODY,
    "fourth_amendment": SEARCH_BODY,
    "unlawful_detention": DETENTION_BODY,
    "court_procedure": COURT_PROCEDURE_BODY,
    "deadlines": DEADLINES_BODY,
}

# First tag present in this order selects the body.
DRAFT_PRIORITY = [
    "excessive_force",
    "fourth_amendment",
    "unlawful_detention",
    "court_procedure",
    "deadlines",
]

# ---------------------------------------------------------------------------
# Short framing used by ContentPolicyFirewall.educational_response
# ---------------------------------------------------------------------------

FORCE_FRAMING = (
    "Legally, officers are allowed to use force. But the law puts limits on "
    "that: it must be necessary, reasonable and proportionate to the "
    "situation.\n\nSo it helps to break down what was happening before the "
    "officer acted and what they saw or knew."
)

SEARCH_FRAMING = (
    "The law allows searches under certain circumstances, but requires "
    "either a warrant based on probable cause or a specific exception "
    "(consent, emergency, etc.).\n\nLet's look at what happened step by step "
    "to understand which legal standard applies."
)

GENERIC_FRAMING = (
    "Let me help you understand what legal standards might apply to your "
    "situation."
)
