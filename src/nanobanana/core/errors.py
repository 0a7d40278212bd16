"""Error taxonomy for the generation relay.

Every failure a generation request can hit is represented by a subclass of
:class:`GenerationError`.  Each subclass fixes the HTTP status and the stable
machine-readable ``code`` that clients see, so route handlers never build
error responses by hand: they raise, and the exception handlers registered in
:mod:`nanobanana.api.main` render the single JSON envelope::

    {"error": {"code": "validation_error", "message": "...", "details": {...}}}

``details`` is omitted when empty.

========================  ======  ======================
Exception                 Status  Code
========================  ======  ======================
ValidationError           400     ``validation_error``
ConfigurationError        500     ``configuration_error``
UpstreamError             varies  ``upstream_error``
GenerationTimeoutError    504     ``upstream_timeout``
InternalError             500     ``internal_error``
========================  ======  ======================

All of them are terminal for the request: nothing is retried.
"""

from __future__ import annotations

from typing import Any


class GenerationError(Exception):
    """Base class for every error surfaced to API clients.

    Attributes:
        status_code: HTTP status used for the response.
        code: Stable error code placed in the envelope.
        message: Human-readable description.
        details: Optional JSON-serialisable context.
    """

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_envelope(self) -> dict:
        """Render the error as the client-facing JSON envelope."""
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}


class ValidationError(GenerationError):
    """Client input could not be accepted."""

    status_code = 400
    code = "validation_error"


class ConfigurationError(GenerationError):
    """The deployment is missing provider configuration or credentials."""

    status_code = 500
    code = "configuration_error"


class UpstreamError(GenerationError):
    """The provider answered with a non-success status or could not be reached.

    The provider's status is passed through to the client unchanged, except
    for transport failures where no status exists and 502 is used.
    """

    code = "upstream_error"

    def __init__(self, message: str, status_code: int = 502, details: Any | None = None) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class GenerationTimeoutError(GenerationError):
    """The provider did not answer within the request's deadline."""

    status_code = 504
    code = "upstream_timeout"


class InternalError(GenerationError):
    """Anything unanticipated."""

    status_code = 500
    code = "internal_error"
