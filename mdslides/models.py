"""Pydantic models for the Markdown slide generator."""

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^{}]+)\}\}")


class PromptTemplate(BaseModel):
    """A reusable generation recipe with ``{{var}}`` placeholders."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique template identifier")
    name: str = Field(..., description="Display name")
    description: str = Field(default="", description="Short description for selection UIs")
    template: str = Field(..., description="Prompt text with {{var}} placeholders")
    variables: List[str] = Field(
        default_factory=list, description="Required variable names, in declaration order"
    )
    max_slides: int = Field(..., gt=0, description="Expected maximum slide count")

    @model_validator(mode="after")
    def _placeholders_declared(self):
        undeclared = [
            name
            for name in dict.fromkeys(PLACEHOLDER_PATTERN.findall(self.template))
            if name not in self.variables
        ]
        if undeclared:
            raise ValueError(
                f"Template '{self.id}' uses undeclared placeholders: {', '.join(undeclared)}"
            )
        return self

    def placeholders(self) -> List[str]:
        """Placeholder names present in the template text, first occurrence order."""
        return list(dict.fromkeys(PLACEHOLDER_PATTERN.findall(self.template)))


class GenerationOptions(BaseModel):
    """Tunable LLM parameters. Unset fields fall back to defaults."""

    model: Optional[str] = Field(None, description="Model name")
    temperature: Optional[float] = Field(None, ge=0, le=2, description="Sampling temperature")
    max_tokens: Optional[int] = Field(None, ge=1, description="Completion token limit")
    top_p: Optional[float] = Field(None, ge=0, le=1, description="Nucleus sampling")
    frequency_penalty: Optional[float] = Field(None, ge=-2, le=2)
    presence_penalty: Optional[float] = Field(None, ge=-2, le=2)

    def merged_over(self, defaults: "GenerationOptions") -> "GenerationOptions":
        """Field-by-field merge: values set here win, unset ones fall through."""
        merged = defaults.model_dump(exclude_none=True)
        merged.update(self.model_dump(exclude_none=True))
        return GenerationOptions(**merged)


class SlideGenerationRequest(BaseModel):
    """One slide generation attempt."""

    topic: str = Field(..., description="Presentation topic")
    credential: Optional[str] = Field(
        None, repr=False, description="API key; falls back to the client's configured key"
    )
    options: GenerationOptions = Field(default_factory=GenerationOptions)
    template_type: Optional[str] = Field(None, description="Template id, defaults to 'basic'")


class TokenUsage(BaseModel):
    """Provider-reported token counts."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class ProviderMetadata(BaseModel):
    """What the client knows about a completion besides its text."""

    model: str
    usage: Optional[TokenUsage] = None
    attempts: int = Field(default=1, ge=1)


class SlideMetadata(BaseModel):
    """Metadata attached to every generated deck."""

    slide_count: int = Field(..., ge=1)
    generated_at: datetime
    model: str
    token_usage: Optional[TokenUsage] = Field(
        None, description="None when the provider did not report usage"
    )
    attempts: int = Field(default=1, ge=1, description="HTTP attempts made")


class SlideGenerationResponse(BaseModel):
    """Successful outcome of a generation."""

    markdown: str
    metadata: SlideMetadata


class VariableValidation(BaseModel):
    """Result of checking provided variables against a template."""

    is_valid: bool
    missing_variables: List[str] = Field(default_factory=list)


class BuiltRequest(BaseModel):
    """Prompt and effective options produced by the request builder."""

    template_id: str
    prompt: str
    options: GenerationOptions


class Completion(BaseModel):
    """A parsed chat completion."""

    content: str
    model: str
    usage: Optional[TokenUsage] = None
    attempts: int = 1


class ClientConfig(BaseModel):
    """Construction parameters for ``SlideClient``."""

    model_config = ConfigDict(frozen=True)

    credential: Optional[str] = Field(None, repr=False, description="Default API key")
    base_url: str = Field(default="https://api.openai.com/v1")
    default_model: str = Field(default="gpt-3.5-turbo")
    timeout: float = Field(default=30.0, gt=0, description="Per-attempt timeout in seconds")
    retry_attempts: int = Field(default=2, ge=0, description="Retries after the first attempt")
    retry_delay: float = Field(default=1.0, gt=0, description="Backoff base in seconds")
    max_retry_delay: float = Field(default=60.0, gt=0)
    jitter: bool = Field(default=True)

    @classmethod
    def from_settings(cls, settings=None, **overrides) -> "ClientConfig":
        """Build a config from environment settings, with explicit overrides."""
        if settings is None:
            from .settings import get_settings

            settings = get_settings()
        values = {
            "credential": settings.openai_api_key,
            "base_url": settings.openai_base_url,
            "default_model": settings.openai_model,
            "timeout": settings.request_timeout,
            "retry_attempts": settings.retry_attempts,
            "retry_delay": settings.retry_delay,
            "max_retry_delay": settings.max_retry_delay,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
