"""Pytest configuration and fixtures for testing."""

import json
import os
from typing import List, Optional, Union
from unittest.mock import patch

import pytest

from mdslides.models import ClientConfig
from mdslides.transport import HttpResponse

VALID_API_KEY = "sk-test1234567890abcdef1234567890abcdef"


def completion_response(
    content: str = "# Title\n\n---\n\n# Agenda",
    usage: Optional[dict] = None,
    status_code: int = 200,
) -> HttpResponse:
    """Build a chat completions style HTTP response."""
    body = {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
    }
    if usage is not None:
        body["usage"] = usage
    return HttpResponse(status_code=status_code, text=json.dumps(body))


def error_response(
    status_code: int,
    message: str = "error",
    code: Optional[str] = None,
    headers: Optional[dict] = None,
) -> HttpResponse:
    """Build an OpenAI style error response."""
    body = {"error": {"message": message, "code": code}}
    return HttpResponse(
        status_code=status_code,
        text=json.dumps(body),
        headers=dict(headers or {}),
    )


class FakeTransport:
    """Transport that replays scripted outcomes and records every call.

    Each outcome is either an ``HttpResponse`` to return or an exception to
    raise. The last outcome repeats once the script is exhausted.
    """

    def __init__(self, outcomes: List[Union[HttpResponse, Exception]]):
        self.outcomes = list(outcomes)
        self.calls = []

    def send(self, method, url, *, headers, json=None, timeout, cancel_token=None):
        self.calls.append(
            {"method": method, "url": url, "headers": headers, "json": json, "timeout": timeout}
        )
        index = min(len(self.calls), len(self.outcomes)) - 1
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def valid_api_key():
    """A credential that passes format validation."""
    return VALID_API_KEY


@pytest.fixture
def fast_config():
    """Client config with tiny backoff delays and no jitter."""
    return ClientConfig(
        credential=VALID_API_KEY,
        retry_attempts=2,
        retry_delay=0.001,
        max_retry_delay=0.01,
        jitter=False,
    )


@pytest.fixture
def sample_deck():
    """A three slide Marp deck."""
    return "# Quarterly Sales Review\n\n---\n\n## Agenda\n\n- Results\n\n---\n\n## Thank you"


@pytest.fixture
def mock_api_keys():
    """Mock API key environment variables."""
    with patch.dict(os.environ, {"OPENAI_API_KEY": VALID_API_KEY}):
        yield
