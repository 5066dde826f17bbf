"""Errors raised by the assistant pipeline.

Only transport-level failures are exceptions. Malformed model output is
recovered inside the processors and never surfaces here.
"""
from typing import Optional


class AIError(Exception):
    """Base exception for assistant service errors."""

    message = "AI request failed"

    def __init__(self, detail: Optional[str] = None, status_code: Optional[int] = None):
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail or self.message)


class NotConnectedError(AIError):
    """Provider unreachable, rejected our credentials, or no API key is configured."""

    message = "AI service is not connected. Start the local model server or configure an API key."


class RequestFailedError(AIError):
    """Provider answered with a non-200 status that is not an auth or routing problem."""

    message = "Failed to process AI request"


class CompletionTimeoutError(AIError):
    """Request exceeded the configured request or resource timeout."""

    message = "AI request timed out"


class InvalidResponseError(AIError):
    """Completion envelope could not be decoded."""

    message = "Received invalid response from AI service"
