"""Error taxonomy for slide generation.

Every failure that reaches a caller of the client is a ``GenerationError``
tagged with one ``ErrorKind``, so a UI can render a specific message instead
of a generic failure.
"""

from enum import Enum
from typing import List, Optional


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""

    AUTH_ERROR = "auth_error"
    RATE_LIMIT = "rate_limit"
    NETWORK_ERROR = "network_error"
    API_ERROR = "api_error"
    VALIDATION_ERROR = "validation_error"
    CANCELLED = "cancelled"


class GenerationError(Exception):
    """Base exception for all slide generation failures."""

    kind: ErrorKind = ErrorKind.API_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        attempts: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.attempts = attempts

    def __str__(self):
        parts = [self.message]
        if self.status_code is not None:
            parts.append(f" (HTTP {self.status_code})")
        if self.code:
            parts.append(f" [{self.code}]")
        if self.attempts:
            parts.append(f" after {self.attempts} attempt(s)")
        return "".join(parts)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "attempts": self.attempts,
        }


class AuthError(GenerationError):
    """Credential missing, malformed or rejected by the provider."""

    kind = ErrorKind.AUTH_ERROR


class RateLimitError(GenerationError):
    """Provider throttling (HTTP 429)."""

    kind = ErrorKind.RATE_LIMIT

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = 429,
        attempts: Optional[int] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message, code=code, status_code=status_code, attempts=attempts)
        self.retry_after = retry_after


class NetworkError(GenerationError):
    """Transport-level failure: DNS, connect, timeout."""

    kind = ErrorKind.NETWORK_ERROR


class ApiError(GenerationError):
    """Provider-side fault (5xx) or malformed success payload."""

    kind = ErrorKind.API_ERROR


class ValidationError(GenerationError):
    """Invalid caller input or generated content that failed validation."""

    kind = ErrorKind.VALIDATION_ERROR


class MissingVariablesError(ValidationError):
    """Raised when a template is rendered without all required variables."""

    def __init__(self, template_id: str, missing: List[str]):
        self.template_id = template_id
        self.missing_variables = list(missing)
        super().__init__(
            f"Missing required variables for template '{template_id}': "
            f"{', '.join(self.missing_variables)}"
        )


class Cancelled(GenerationError):
    """The caller aborted the operation."""

    kind = ErrorKind.CANCELLED

    def __init__(self, message: str = "Generation cancelled", attempts: Optional[int] = None):
        super().__init__(message, attempts=attempts)


class TemplateNotFoundError(KeyError):
    """Unknown template id. A programmer error, never retried."""

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(template_id)

    def __str__(self):
        return f"Template with id '{self.template_id}' not found"


_USER_MESSAGES = {
    ErrorKind.AUTH_ERROR: "The API key is missing, malformed or was rejected. Check the key and try again.",
    ErrorKind.RATE_LIMIT: "The provider is throttling requests. Wait a moment before trying again.",
    ErrorKind.NETWORK_ERROR: "Could not reach the provider. Check your network connection.",
    ErrorKind.API_ERROR: "The provider returned an error. Try again later.",
    ErrorKind.VALIDATION_ERROR: "The request or the generated content was invalid. Adjust the topic or template and retry.",
    ErrorKind.CANCELLED: "Generation was cancelled.",
}


def user_message(error: GenerationError) -> str:
    """Actionable, human readable text for an error, suitable for a UI."""
    base = _USER_MESSAGES[error.kind]
    if error.kind is ErrorKind.VALIDATION_ERROR and error.message:
        return f"{base} ({error.message})"
    return base
