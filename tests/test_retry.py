"""Tests for failure classification and the retry policy."""

import json
from email.utils import formatdate

import pytest
import requests

from conftest import error_response
from mdslides.errors import (
    ApiError,
    AuthError,
    Cancelled,
    ErrorKind,
    NetworkError,
    RateLimitError,
    ValidationError,
)
from mdslides.retry import (
    RetryPolicy,
    classify_exception,
    classify_response,
    is_retryable,
    parse_retry_after,
    provider_error_details,
)
from mdslides.transport import HttpResponse


class TestClassifyResponse:
    """HTTP status to error kind mapping."""

    @pytest.mark.parametrize("status", [200, 201, 204])
    def test_success_is_not_an_error(self, status):
        """2xx responses are not classified as errors."""
        assert classify_response(HttpResponse(status_code=status)) is None

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_errors(self, status):
        """401 and 403 become auth errors with the provider code."""
        error = classify_response(error_response(status, "Invalid API key", "invalid_api_key"))
        assert isinstance(error, AuthError)
        assert error.kind is ErrorKind.AUTH_ERROR
        assert error.status_code == status
        assert error.code == "invalid_api_key"

    def test_rate_limit(self):
        """429 becomes a rate limit error with no hint by default."""
        error = classify_response(error_response(429, "Rate limit exceeded", "rate_limit_exceeded"))
        assert isinstance(error, RateLimitError)
        assert error.status_code == 429
        assert error.retry_after is None

    def test_rate_limit_with_retry_after(self):
        """The Retry-After header is attached to the rate limit error."""
        error = classify_response(error_response(429, headers={"Retry-After": "7"}))
        assert error.retry_after == 7.0

    def test_rate_limit_with_non_finite_retry_after(self):
        """A nan hint still yields a tagged rate limit error, without a hint."""
        error = classify_response(error_response(429, headers={"Retry-After": "nan"}))
        assert error.kind is ErrorKind.RATE_LIMIT
        assert error.retry_after is None

    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    def test_server_errors(self, status):
        """5xx responses become API errors keeping the provider message."""
        error = classify_response(error_response(status, "Server exploded"))
        assert isinstance(error, ApiError)
        assert error.message == "Server exploded"
        assert error.status_code == status

    @pytest.mark.parametrize("status", [400, 404, 408, 422])
    def test_other_client_errors_are_validation_errors(self, status):
        """Remaining 4xx responses are validation errors."""
        error = classify_response(error_response(status, "Invalid request", "invalid_request"))
        assert isinstance(error, ValidationError)
        assert error.message == "Invalid request"

    def test_default_message_when_body_unparseable(self):
        """Non-JSON error bodies fall back to a default message."""
        error = classify_response(HttpResponse(status_code=503, text="<html>down</html>"))
        assert error.message == "API request failed"
        assert error.code is None


class TestClassifyException:
    """Transport exceptions."""

    def test_timeout(self):
        """Timeouts are network errors that mention the timeout."""
        error = classify_exception(requests.exceptions.ReadTimeout("slow"))
        assert isinstance(error, NetworkError)
        assert "timeout" in error.message.lower()

    def test_connection_error(self):
        """Connection failures are network errors."""
        error = classify_exception(requests.exceptions.ConnectionError("dns"))
        assert isinstance(error, NetworkError)

    def test_other_request_exception(self):
        """Any other requests exception is a network error."""
        error = classify_exception(requests.exceptions.ChunkedEncodingError("broken"))
        assert error.kind is ErrorKind.NETWORK_ERROR

    def test_unrelated_exception_is_not_classified(self):
        """Programming errors are not folded into the taxonomy."""
        with pytest.raises(TypeError):
            classify_exception(RuntimeError("bug"))


class TestProviderDetails:
    def test_string_error(self):
        """A bare string error is used as the message."""
        response = HttpResponse(status_code=400, text=json.dumps({"error": "bad"}))
        assert provider_error_details(response) == ("bad", None)

    def test_type_used_when_code_missing(self):
        """The error type stands in for a missing code."""
        response = HttpResponse(
            status_code=400,
            text=json.dumps({"error": {"message": "m", "type": "invalid_request_error"}}),
        )
        assert provider_error_details(response) == ("m", "invalid_request_error")


class TestParseRetryAfter:
    def test_seconds(self):
        """Numeric Retry-After values are seconds."""
        assert parse_retry_after(HttpResponse(429, headers={"retry-after": "2.5"})) == 2.5

    def test_milliseconds_take_precedence(self):
        """retry-after-ms wins over Retry-After."""
        response = HttpResponse(429, headers={"retry-after-ms": "1500", "retry-after": "9"})
        assert parse_retry_after(response) == 1.5

    def test_http_date(self):
        """HTTP dates are converted to seconds from now."""
        now = 1_700_000_000.0
        response = HttpResponse(429, headers={"retry-after": formatdate(now + 30, usegmt=True)})
        assert parse_retry_after(response, now=now) == pytest.approx(30.0, abs=1.0)

    def test_date_in_past_is_zero(self):
        """A date already passed means no wait."""
        now = 1_700_000_000.0
        response = HttpResponse(429, headers={"retry-after": formatdate(now - 30, usegmt=True)})
        assert parse_retry_after(response, now=now) == 0.0

    def test_garbage(self):
        """Unparseable values give no hint."""
        assert parse_retry_after(HttpResponse(429, headers={"retry-after": "soon"})) is None

    def test_absent(self):
        """No header gives no hint."""
        assert parse_retry_after(HttpResponse(429)) is None

    @pytest.mark.parametrize("value", ["nan", "NaN", "inf", "-inf", "Infinity"])
    def test_non_finite_seconds_ignored(self, value):
        """Values that float() accepts but no sleep can honour give no hint."""
        assert parse_retry_after(HttpResponse(429, headers={"retry-after": value})) is None

    @pytest.mark.parametrize("value", ["nan", "inf"])
    def test_non_finite_milliseconds_fall_back_to_seconds(self, value):
        """A non-finite retry-after-ms is skipped in favour of Retry-After."""
        response = HttpResponse(429, headers={"retry-after-ms": value, "retry-after": "4"})
        assert parse_retry_after(response) == 4.0

    def test_mixed_case_header_names(self):
        """Header names are matched regardless of case."""
        assert parse_retry_after(HttpResponse(429, headers={"Retry-After": "6"})) == 6.0


class TestIsRetryable:
    @pytest.mark.parametrize(
        "error,expected",
        [
            (NetworkError("down"), True),
            (RateLimitError("slow down"), True),
            (ApiError("boom", status_code=500), True),
            (ApiError("Malformed response body", status_code=200), False),
            (ApiError("no status"), False),
            (AuthError("nope", status_code=401), False),
            (ValidationError("bad", status_code=400), False),
            (Cancelled(), False),
        ],
    )
    def test_retryable_kinds(self, error, expected):
        """Only network, rate limit and 5xx failures are retryable."""
        assert is_retryable(error) is expected


class TestRetryPolicy:
    """Backoff schedule and attempt budget."""

    def test_exponential_growth_without_jitter(self):
        """Delays double with each retry."""
        policy = RetryPolicy(max_retries=5, base_delay=1.0, max_delay=60.0, jitter=False)
        assert [policy.backoff_delay(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]

    def test_delay_is_capped(self):
        """Computed delays never exceed max_delay before jitter."""
        policy = RetryPolicy(base_delay=10.0, max_delay=15.0, jitter=False)
        assert policy.backoff_delay(3) == 15.0

    def test_jitter_range(self):
        """Jitter scales the delay by a factor in [0.5, 1.5)."""
        low = RetryPolicy(base_delay=2.0, jitter=True, rng=lambda: 0.0)
        high = RetryPolicy(base_delay=2.0, jitter=True, rng=lambda: 0.999)
        assert low.backoff_delay(1) == 1.0
        assert high.backoff_delay(1) == pytest.approx(2.998)

    def test_budget(self):
        """max_retries extra attempts are allowed, no more."""
        policy = RetryPolicy(max_retries=2, jitter=False)
        error = NetworkError("down")
        assert policy.decide(error, 1).retry is True
        assert policy.decide(error, 2).retry is True
        assert policy.decide(error, 3).retry is False

    def test_non_retryable_never_retried(self):
        """Auth and validation errors stop immediately."""
        policy = RetryPolicy(max_retries=5)
        assert policy.decide(AuthError("nope", status_code=401), 1).retry is False
        assert policy.decide(ValidationError("bad"), 1).retry is False

    def test_retry_after_hint_overrides_backoff(self):
        """A provider hint replaces the computed delay."""
        policy = RetryPolicy(max_retries=2, base_delay=1.0, max_delay=60.0, rng=lambda: 0.9)
        decision = policy.decide(RateLimitError("slow", retry_after=12.0), 1)
        assert decision.retry is True
        assert decision.delay == 12.0

    def test_retry_after_at_max_delay_is_honoured(self):
        """A hint equal to max_delay is waited out in full."""
        policy = RetryPolicy(max_retries=2, max_delay=5.0)
        decision = policy.decide(RateLimitError("slow", retry_after=5.0), 1)
        assert decision.retry is True
        assert decision.delay == 5.0

    def test_retry_after_beyond_max_delay_is_not_shortened(self):
        """A hint longer than max_delay surfaces the error instead of retrying early."""
        policy = RetryPolicy(max_retries=2, max_delay=5.0)
        assert policy.decide(RateLimitError("slow", retry_after=120.0), 1).retry is False

    def test_zero_retries(self):
        """With no retries the first failure is final."""
        policy = RetryPolicy(max_retries=0)
        assert policy.decide(NetworkError("down"), 1).retry is False
