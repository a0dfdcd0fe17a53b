"""Exception types raised by the relay core and the upstream client.

Every exception carries the HTTP status the API layer should answer with
and a ``details`` payload that is safe to show to the caller.  None of them
ever include a backend model id.
"""

from __future__ import annotations

from typing import Any

GENERIC_UPSTREAM_MESSAGE = "Failed to generate image"


class RelayError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidModelIdentifier(RelayError):
    """The caller supplied a model identifier that is not in the registry."""

    status_code = 400

    def __init__(self, identifier: str) -> None:
        super().__init__("Invalid model identifier", {"modelIdentifier": identifier})
        self.identifier = identifier


class UpstreamServiceError(RelayError):
    """The external generation service answered with a failure status.

    The upstream body is passed through untouched.  The message is the
    upstream ``error`` text when there is one, otherwise *fallback*.
    """

    def __init__(
        self,
        status_code: int,
        body: Any = None,
        fallback: str = GENERIC_UPSTREAM_MESSAGE,
    ) -> None:
        message = fallback
        if isinstance(body, dict) and body.get("error"):
            message = str(body["error"])
        super().__init__(message, body)
        self.status_code = status_code
        self.body = body


class MalformedUpstreamResponse(RelayError):
    """A success response from upstream is missing a field we rely on."""

    status_code = 500

    def __init__(self, message: str, body: Any = None, status_code: int = 500) -> None:
        super().__init__(message, body)
        self.status_code = status_code
        self.body = body
