"""
config.py

Central configuration for the case orchestrator.

All tuneable parameters live here so that nothing is hardcoded in the
agent, node or registry modules.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------
# Case identifiers
# ---------------------------------------------------------------------------
CASE_ID_PREFIX: str = os.getenv("ORCHESTRATOR_CASE_ID_PREFIX", "AIC")
CASE_ID_SUFFIX_LENGTH: int = 6

# ---------------------------------------------------------------------------
# Frontline persona
# ---------------------------------------------------------------------------
DEFAULT_PERSONA: str = os.getenv("ORCHESTRATOR_DEFAULT_PERSONA", "strategist")

# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------
BACKGROUND_DISPATCH: bool = _env_bool("ORCHESTRATOR_BACKGROUND_DISPATCH", "true")
DISPATCH_TIMEOUT_SECONDS: float = float(
    os.getenv("ORCHESTRATOR_DISPATCH_TIMEOUT_SECONDS", "30")
)
TASK_HISTORY_LIMIT: int = int(os.getenv("ORCHESTRATOR_TASK_HISTORY_LIMIT", "50"))

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL: str = os.getenv("ORCHESTRATOR_LOG_LEVEL", "INFO")
LOG_FORMAT: str = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

# ---------------------------------------------------------------------------
# Task chains the frontline may request: ordered (specialist role, step kind)
# ---------------------------------------------------------------------------
TASK_CHAINS = {
    "research_legal_standard": [
        ("research", "legal_research"),
    ],
    "build_timeline": [
        ("timeline", "extract_events"),
        ("entity", "extract_entities"),
    ],
}
