"""
Custom exceptions for the ticket assistant.

LLM-side errors (transport, malformed envelope, parse failure, exhausted
candidates, missing configuration) are absorbed by the extraction layer.
ProjectServiceError is the only kind that reaches the HTTP caller.
"""

from typing import Optional, Dict, Any, List, TYPE_CHECKING

if TYPE_CHECKING:
    from ticket_assistant.services.model_sequencer import CandidateFailure


class TicketAssistantError(Exception):
    """Base exception for all ticket assistant errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class TransportError(TicketAssistantError):
    """Raised when a network call fails or times out."""

    def __init__(self, message: str = "Transport error", **kwargs):
        super().__init__(message, **kwargs)


class MalformedResponse(TicketAssistantError):
    """Raised when the model replied but the envelope lacks expected fields."""

    def __init__(self, message: str = "Malformed response from model", **kwargs):
        super().__init__(message, **kwargs)


class ParseFailure(TicketAssistantError):
    """Raised when the response normalizer exhausts every repair strategy."""

    def __init__(self, message: str = "Could not parse model output", **kwargs):
        super().__init__(message, **kwargs)


class ConfigurationMissing(TicketAssistantError):
    """Raised when a required credential or setting is absent."""

    def __init__(self, message: str = "Configuration missing", **kwargs):
        super().__init__(message, **kwargs)


class ExhaustedCandidates(TicketAssistantError):
    """Raised when every configured model candidate has failed."""

    def __init__(self, failures: List["CandidateFailure"], message: Optional[str] = None):
        self.failures = list(failures)
        self.last_error = self.failures[-1].error if self.failures else None
        if message is None:
            message = f"All {len(self.failures)} model candidate(s) failed"
            if self.last_error is not None:
                message += f": {self.last_error}"
        super().__init__(message, details={"models": [f.model for f in self.failures]})


class TeamIdMissing(ConfigurationMissing):
    """Raised when a search has neither a request team id nor a configured one."""

    def __init__(self, message: str = (
        "Team ID is required for searching. Please provide teamId or set "
        "CLICKUP_TEAM_ID in your environment."
    ), **kwargs):
        super().__init__(message, **kwargs)


class ProjectServiceError(TicketAssistantError):
    """Raised when the project-management API call fails."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        super().__init__(message, details=details)


class EmptyInput(TicketAssistantError):
    """Raised when a required free-text field is empty or whitespace."""

    def __init__(self, field: str):
        super().__init__(f"{field.capitalize()} is required", details={"field": field})
