"""
errors.py

Exception hierarchy for the orchestrator.

Only boundary, unknown-context and locked-case errors reach callers of the
public API. Policy violations are rewritten in-process and dispatch
failures end up on task records.
"""


class OrchestratorError(Exception):
    """Base class for recoverable orchestrator errors."""

    pass


class BoundaryViolationError(OrchestratorError):
    """Raised when work is attempted outside the active case."""

    pass


class SessionHaltedError(BoundaryViolationError):
    """Raised for any turn attempted after a breach halted the session."""

    pass


class UnknownContextError(OrchestratorError):
    """Raised when a case id was never issued by the registry."""

    pass


class CaseLockedError(OrchestratorError):
    """Raised when a locked case would be mutated."""

    pass


class DispatchFailure(OrchestratorError):
    """Raised inside the coordinator; always converted into a failed task."""

    pass


class ConfigurationError(OrchestratorError):
    """Raised at start-up when wiring or configuration is invalid."""

    pass


class ProgrammingError(RuntimeError):
    """A defect in the calling code, not a runtime condition to recover from."""

    pass
