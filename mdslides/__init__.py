"""Markdown slide generator backed by an LLM chat completions API."""

__version__ = "0.1.0"
__description__ = "Resilient LLM client that turns a topic into a Marp Markdown slide deck"

from .cancellation import CancellationToken
from .client import SlideClient, validate_credential
from .default_client import (
    get_default_client,
    initialize_default_client,
    set_default_client,
)
from .errors import (
    ApiError,
    AuthError,
    Cancelled,
    ErrorKind,
    GenerationError,
    MissingVariablesError,
    NetworkError,
    RateLimitError,
    TemplateNotFoundError,
    ValidationError,
    user_message,
)
from .models import (
    ClientConfig,
    GenerationOptions,
    PromptTemplate,
    SlideGenerationRequest,
    SlideGenerationResponse,
)
from .templates import get_template, list_templates, render_prompt, validate_variables

__all__ = [
    "CancellationToken",
    "SlideClient",
    "validate_credential",
    "get_default_client",
    "initialize_default_client",
    "set_default_client",
    "ApiError",
    "AuthError",
    "Cancelled",
    "ErrorKind",
    "GenerationError",
    "MissingVariablesError",
    "NetworkError",
    "RateLimitError",
    "TemplateNotFoundError",
    "ValidationError",
    "user_message",
    "ClientConfig",
    "GenerationOptions",
    "PromptTemplate",
    "SlideGenerationRequest",
    "SlideGenerationResponse",
    "get_template",
    "list_templates",
    "render_prompt",
    "validate_variables",
]
