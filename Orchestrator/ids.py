"""
ids.py

Case identifier generation.

Format: ``<PREFIX>-YYYYMMDD-HHMMSSffffff-XXXXXX`` where the timestamp is UTC
to the microsecond and the suffix is random uppercase hex. Lexicographic
order of ids follows creation order across distinct microseconds.
"""

import re
import uuid
from datetime import datetime, timezone
from typing import Optional

from Orchestrator.config import CASE_ID_PREFIX, CASE_ID_SUFFIX_LENGTH

_CASE_ID_RE = re.compile(r"^[A-Z]+-\d{8}-\d{12}-[0-9A-F]+$")


def generate_case_id(
    prefix: str = CASE_ID_PREFIX,
    now: Optional[datetime] = None,
    suffix: Optional[str] = None,
) -> str:
    """Return a new case id built from a UTC timestamp and a random suffix."""
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    if suffix is None:
        suffix = uuid.uuid4().hex[:CASE_ID_SUFFIX_LENGTH]
    return f"{prefix}-{moment:%Y%m%d}-{moment:%H%M%S%f}-{suffix.upper()}"


def is_case_id(value: str) -> bool:
    return isinstance(value, str) and bool(_CASE_ID_RE.match(value))
