"""Failure classification and retry policy with exponential backoff.

Everything here is pure: it maps an HTTP outcome to an error kind and an
error to a retry decision, without performing I/O or sleeping.
"""

import json
import math
import random
import time
from dataclasses import dataclass, field
from email.utils import parsedate_to_datetime
from typing import Callable, Optional, Tuple

import requests

from .errors import (
    ApiError,
    AuthError,
    Cancelled,
    ErrorKind,
    GenerationError,
    NetworkError,
    RateLimitError,
    ValidationError,
)
from .transport import HttpResponse


def provider_error_details(response: HttpResponse) -> Tuple[Optional[str], Optional[str]]:
    """Extract ``(message, code)`` from an OpenAI style ``{"error": {...}}`` body."""
    try:
        data = json.loads(response.text or "")
    except ValueError:
        return None, None
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        message = error.get("message") or None
        code = error.get("code") or error.get("type") or None
        return message, str(code) if code is not None else None
    if isinstance(error, str) and error:
        return error, None
    return None, None


def _finite_float(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    # float() accepts "nan" and "inf", which no sleep can honour
    return number if math.isfinite(number) else None


def parse_retry_after(response: HttpResponse, now: Optional[float] = None) -> Optional[float]:
    """Seconds to wait according to the provider, or None when no usable hint."""
    millis = _finite_float(response.header("retry-after-ms"))
    if millis is not None:
        return max(millis / 1000.0, 0.0)

    value = response.header("retry-after")
    if not value:
        return None
    seconds = _finite_float(value)
    if seconds is not None:
        return max(seconds, 0.0)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    current = time.time() if now is None else now
    return max(when.timestamp() - current, 0.0)


def classify_exception(error: Exception) -> GenerationError:
    """Map a transport exception to the error taxonomy."""
    if isinstance(error, GenerationError):
        return error
    if isinstance(error, requests.exceptions.Timeout):
        return NetworkError(f"Request timeout: {error}")
    if isinstance(error, requests.exceptions.ConnectionError):
        return NetworkError(f"Network connection failed: {error}")
    if isinstance(error, requests.exceptions.RequestException):
        return NetworkError(f"HTTP transport error: {error}")
    raise TypeError(f"Cannot classify {type(error).__name__}: {error}")


def classify_response(response: HttpResponse) -> Optional[GenerationError]:
    """Map a non-2xx response to an error; ``None`` for 2xx."""
    status = response.status_code
    if 200 <= status < 300:
        return None

    message, code = provider_error_details(response)
    if status in (401, 403):
        return AuthError(message or "Invalid API key", code=code, status_code=status)
    if status == 429:
        return RateLimitError(
            message or "Rate limit exceeded",
            code=code,
            status_code=status,
            retry_after=parse_retry_after(response),
        )
    if status >= 500:
        return ApiError(message or "API request failed", code=code, status_code=status)
    if 400 <= status < 500:
        return ValidationError(message or "Bad request", code=code, status_code=status)
    return ApiError(message or f"Unexpected HTTP status {status}", code=code, status_code=status)


def is_retryable(error: GenerationError) -> bool:
    """Network failures, throttling and 5xx faults are worth another attempt."""
    if isinstance(error, Cancelled):
        return False
    if error.kind in (ErrorKind.NETWORK_ERROR, ErrorKind.RATE_LIMIT):
        return True
    if error.kind is ErrorKind.API_ERROR:
        return error.status_code is not None and error.status_code >= 500
    return False


@dataclass
class RetryDecision:
    """Whether to try again and how long to wait first."""

    retry: bool
    delay: float = 0.0


@dataclass
class RetryPolicy:
    """Bounded exponential backoff with jitter."""

    max_retries: int = 2
    base_delay: float = 1.0
    max_delay: float = 60.0
    jitter: bool = True
    rng: Callable[[], float] = field(default=random.random, repr=False)

    def backoff_delay(self, retry_number: int) -> float:
        """Delay before retry number ``retry_number`` (1-based)."""
        delay = min(self.base_delay * (2 ** (retry_number - 1)), self.max_delay)

        # Add jitter to prevent thundering herd
        if self.jitter:
            delay *= 0.5 + self.rng()
        return delay

    def decide(self, error: GenerationError, attempts_made: int) -> RetryDecision:
        """Decide what happens after ``attempts_made`` attempts ended in ``error``.

        A provider ``retry_after`` hint replaces the computed backoff. A hint
        longer than ``max_delay`` is never shortened: the error is surfaced
        instead, still carrying ``retry_after``, so the caller can decide
        whether to wait that long.
        """
        if not is_retryable(error):
            return RetryDecision(retry=False)
        if attempts_made > self.max_retries:
            return RetryDecision(retry=False)

        retry_after = getattr(error, "retry_after", None)
        if retry_after is not None:
            if retry_after > self.max_delay:
                return RetryDecision(retry=False)
            return RetryDecision(retry=True, delay=retry_after)
        return RetryDecision(retry=True, delay=self.backoff_delay(attempts_made))
