"""Exception types raised by the gateway services."""

from typing import Optional


class StudyAssistError(Exception):
    """Base class for gateway errors."""


class ConfigurationError(StudyAssistError):
    """A required credential or store setting is missing."""


class MalformedInputError(StudyAssistError, ValueError):
    """Input rejected before any network activity."""


class InferenceRequestError(StudyAssistError):
    """The inference service call did not produce a usable result."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TransientUpstreamError(InferenceRequestError):
    """429, 5xx or transport failure. Retried until attempts run out."""


class UpstreamRejectionError(InferenceRequestError):
    """Non-retryable response from the inference service."""


class PayloadTooLargeError(MalformedInputError):
    """Submitted text exceeds the configured upload size."""
