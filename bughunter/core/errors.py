"""Error taxonomy shared by the Jira client, the search engine and the triage pipeline.

Every error raised on purpose by this package derives from ``BugHunterError``.
Error messages carry a short snippet of the upstream body for diagnostics and
never the credential used for the call.
"""

from __future__ import annotations

from typing import Any, Optional


def body_snippet(text: Optional[str], limit: int = 300) -> str:
    """Return a single-line, length-capped excerpt of an HTTP body."""
    return (text or "")[:limit].replace("\n", " ")


class BugHunterError(Exception):
    pass


class ValidationError(BugHunterError):
    """Caller input violates a required-field or range contract.

    Always raised before any network call. Not a ValueError, so pydantic
    lets it escape model validators unwrapped.
    """

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"{field} required")


class TrackerError(BugHunterError):
    pass


class TrackerRequestError(TrackerError):
    """The tracker answered with a non-2xx status."""

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"Jira API error {status}: {body_snippet(body)}")


class TrackerEndpointRemoved(TrackerError):
    """The tracker answered 410 Gone: the endpoint is deprecated, do not retry."""

    def __init__(self, status: int = 410, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"Jira API removed endpoint ({status}). Response: {body_snippet(body)}")


class TrackerDecodeError(TrackerError):
    """A 2xx tracker body did not have the expected shape."""


class TrackerTransportError(TrackerError):
    """The tracker could not be reached (connection error, timeout)."""


class AiCompletionError(BugHunterError):
    """The AI completion call itself failed (HTTP, transport or empty answer)."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class TicketCreationError(BugHunterError):
    """Filing a triaged ticket failed; the AI output is kept so no work is lost."""

    def __init__(self, cause: BugHunterError, raw_output: str, triage: Any = None):
        self.cause = cause
        self.raw_output = raw_output
        # parsed TriageSummary, None when the model answer was free text
        self.triage = triage
        super().__init__(f"Ticket creation failed: {cause}")


def status_for(exc: BaseException) -> int:
    """Map an error to the HTTP status the API surfaces for it."""
    if isinstance(exc, TicketCreationError):
        return status_for(exc.cause)
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, TrackerEndpointRemoved):
        return 410
    if isinstance(exc, TrackerTransportError):
        return 504
    return 502
