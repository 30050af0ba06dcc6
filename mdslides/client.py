"""Resilient client for generating Markdown slide decks with an LLM."""

import json
import logging
import random
import time
from enum import Enum
from typing import Any, Dict, Optional

import requests

from .cancellation import CancellationToken
from .errors import ApiError, AuthError, Cancelled, GenerationError
from .models import (
    ClientConfig,
    Completion,
    GenerationOptions,
    ProviderMetadata,
    SlideGenerationRequest,
    SlideGenerationResponse,
    TokenUsage,
)
from .request_builder import RequestBuilder, build_payload
from .retry import RetryPolicy, classify_exception, classify_response
from .templates import TemplateRegistry
from .transport import HttpResponse, RequestsTransport, Transport
from .validator import ResponseNormalizer

logger = logging.getLogger(__name__)

CREDENTIAL_PREFIX = "sk-"
MIN_CREDENTIAL_LENGTH = 20


def validate_credential(credential: Optional[str]) -> None:
    """Reject obviously malformed API keys before any network call."""
    if not credential:
        raise AuthError("API key is required")
    if not credential.startswith(CREDENTIAL_PREFIX):
        raise AuthError("Invalid API key format")
    if len(credential) < MIN_CREDENTIAL_LENGTH:
        raise AuthError("API key is too short")


def _parse_usage(raw: Any) -> Optional[TokenUsage]:
    if raw is None:
        return None
    try:
        return TokenUsage.model_validate(raw)
    except ValueError as e:
        logger.warning(f"Ignoring malformed token usage from provider: {e}")
        return None


def parse_completion(response: HttpResponse, model: str, attempts: int = 1) -> Completion:
    """Parse a 2xx chat completion body; malformed payloads raise ``ApiError``."""
    try:
        data = json.loads(response.text or "")
    except ValueError:
        raise ApiError("Malformed response body", status_code=response.status_code) from None

    choices = data.get("choices") if isinstance(data, dict) else None
    if not isinstance(choices, list) or not choices:
        raise ApiError("No completion choices returned", status_code=response.status_code)

    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    # Some providers return the content as a list of text parts
    if isinstance(content, list):
        content = "".join(
            part.get("text", "") for part in content if isinstance(part, dict)
        )
    if not isinstance(content, str):
        raise ApiError("Completion has no text content", status_code=response.status_code)

    return Completion(
        content=content,
        model=model,
        usage=_parse_usage(data.get("usage")),
        attempts=attempts,
    )


class CallState(str, Enum):
    """States of a single generate call."""

    IDLE = "idle"
    VALIDATING_CREDENTIAL = "validating_credential"
    BUILDING = "building"
    DISPATCHING = "dispatching"
    BACKOFF = "backoff"
    VALIDATING_RESPONSE = "validating_response"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


class _Call:
    """Per-call bookkeeping; never shared between calls."""

    def __init__(self):
        self.state = CallState.IDLE
        self.attempts = 0

    def to(self, state: CallState) -> None:
        logger.debug(f"{self.state.value} -> {state.value} (attempts={self.attempts})")
        self.state = state


class SlideClient:
    """Generates slide decks against an OpenAI compatible chat completions API.

    A client holds only read-only configuration, so one instance can serve
    concurrent calls from several threads.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[Transport] = None,
        registry: Optional[TemplateRegistry] = None,
        normalizer: Optional[ResponseNormalizer] = None,
        rng=None,
    ):
        self.config = config
        self.transport = transport or RequestsTransport()
        self.builder = RequestBuilder(
            defaults=GenerationOptions(model=config.default_model), registry=registry
        )
        self.normalizer = normalizer or ResponseNormalizer()
        self.retry_policy = RetryPolicy(
            max_retries=config.retry_attempts,
            base_delay=config.retry_delay,
            max_delay=config.max_retry_delay,
            jitter=config.jitter,
            rng=rng or random.random,
        )

    def get_config(self) -> Dict[str, Any]:
        """Client configuration without the credential."""
        return self.config.model_dump(exclude={"credential"})

    def _url(self, endpoint: str) -> str:
        return f"{self.config.base_url.rstrip('/')}{endpoint}"

    @staticmethod
    def _headers(credential: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {credential}",
        }

    def _credential(self, credential: Optional[str]) -> Optional[str]:
        return credential if credential is not None else self.config.credential

    def _backoff(self, delay: float, cancel_token: Optional[CancellationToken]) -> None:
        if cancel_token is None:
            time.sleep(delay)
        elif cancel_token.wait(delay):
            raise Cancelled()

    def _complete(
        self,
        payload: Dict[str, Any],
        credential: str,
        call: _Call,
        cancel_token: Optional[CancellationToken],
    ) -> Completion:
        """Dispatch ``payload`` with bounded retries until success or a terminal error."""
        url = self._url("/chat/completions")
        headers = self._headers(credential)

        while True:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            call.to(CallState.DISPATCHING)
            call.attempts += 1
            try:
                response = self.transport.send(
                    "POST",
                    url,
                    headers=headers,
                    json=payload,
                    timeout=self.config.timeout,
                    cancel_token=cancel_token,
                )
            except requests.exceptions.RequestException as e:
                error = classify_exception(e)
            else:
                error = classify_response(response)
                if error is None:
                    return parse_completion(response, payload["model"], call.attempts)

            decision = self.retry_policy.decide(error, call.attempts)
            if not decision.retry:
                raise error
            logger.warning(
                f"Attempt {call.attempts} failed ({error.kind.value}): {error.message}. "
                f"Retrying in {decision.delay:.2f}s"
            )
            call.to(CallState.BACKOFF)
            self._backoff(decision.delay, cancel_token)

    def generate_completion(
        self,
        prompt: str,
        options: Optional[GenerationOptions] = None,
        credential: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Completion:
        """Run a single raw completion with the same credential and retry rules."""
        call = _Call()
        try:
            call.to(CallState.VALIDATING_CREDENTIAL)
            credential = self._credential(credential)
            validate_credential(credential)
            effective = (options or GenerationOptions()).merged_over(self.builder.defaults)
            payload = build_payload(prompt, effective, self.config.default_model)
            logger.info(
                f"Generating completion with model {payload['model']} "
                f"(prompt length {len(prompt)} characters)"
            )
            completion = self._complete(payload, credential, call, cancel_token)
        except GenerationError as e:
            self._fail(call, e)
            raise
        call.to(CallState.DONE)
        return completion

    def generate(
        self,
        request: SlideGenerationRequest,
        cancel_token: Optional[CancellationToken] = None,
    ) -> SlideGenerationResponse:
        """Generate a slide deck for ``request``.

        Raises a ``GenerationError`` subclass on failure and ``Cancelled``
        when ``cancel_token`` fires during dispatch or backoff.
        """
        call = _Call()
        try:
            call.to(CallState.VALIDATING_CREDENTIAL)
            credential = self._credential(request.credential)
            validate_credential(credential)

            call.to(CallState.BUILDING)
            built = self.builder.build(request)
            payload = build_payload(built.prompt, built.options, self.config.default_model)
            logger.info(
                f"Generating slides for topic '{request.topic.strip()}' "
                f"using template '{built.template_id}' and model {payload['model']}"
            )

            completion = self._complete(payload, credential, call, cancel_token)

            call.to(CallState.VALIDATING_RESPONSE)
            result = self.normalizer.normalize(
                completion.content,
                ProviderMetadata(
                    model=completion.model,
                    usage=completion.usage,
                    attempts=completion.attempts,
                ),
            )
        except GenerationError as e:
            self._fail(call, e)
            raise

        call.to(CallState.DONE)
        usage = result.metadata.token_usage
        logger.info(
            f"Generated {result.metadata.slide_count} slides in {call.attempts} attempt(s)"
            + (f", {usage.total_tokens} tokens" if usage else "")
        )
        return result

    def validate_connection(self, credential: Optional[str] = None) -> bool:
        """Probe the provider with a cheap ``GET /models``; no retries."""
        try:
            credential = self._credential(credential)
            validate_credential(credential)
            response = self.transport.send(
                "GET",
                self._url("/models"),
                headers=self._headers(credential),
                timeout=self.config.timeout,
            )
            error = classify_response(response)
        except requests.exceptions.RequestException as e:
            error = classify_exception(e)
        except GenerationError as e:
            error = e

        if error is not None:
            logger.warning(f"API connection validation failed: {error}")
            return False
        logger.info("API connection validated successfully")
        return True

    @staticmethod
    def _fail(call: _Call, error: GenerationError) -> None:
        if error.attempts is None:
            error.attempts = call.attempts
        if isinstance(error, Cancelled):
            call.to(CallState.CANCELLED)
            logger.info(f"Generation cancelled after {call.attempts} attempt(s)")
        else:
            call.to(CallState.FAILED)
            logger.error(f"Generation failed: {error}")
