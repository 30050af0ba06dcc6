"""Turn a slide generation request into a prompt and effective options."""

from typing import Any, Dict, Optional

from .errors import ValidationError
from .models import BuiltRequest, GenerationOptions, SlideGenerationRequest
from .templates import DEFAULT_TEMPLATE_ID, TemplateRegistry, default_registry

MIN_TOPIC_LENGTH = 2
MAX_TOPIC_LENGTH = 200

# Sampling parameters sent to the provider only when set
_SAMPLING_FIELDS = (
    "temperature",
    "max_tokens",
    "top_p",
    "frequency_penalty",
    "presence_penalty",
)


class RequestBuilder:
    """Pure transformation from ``SlideGenerationRequest`` to ``BuiltRequest``."""

    def __init__(
        self,
        defaults: Optional[GenerationOptions] = None,
        registry: Optional[TemplateRegistry] = None,
    ):
        self.defaults = defaults or GenerationOptions()
        self.registry = registry or default_registry

    def build(self, request: SlideGenerationRequest) -> BuiltRequest:
        topic = (request.topic or "").strip()
        if not topic:
            raise ValidationError("Topic must not be empty")
        if len(topic) < MIN_TOPIC_LENGTH:
            raise ValidationError(
                f"Topic must be at least {MIN_TOPIC_LENGTH} characters (got {len(topic)})"
            )
        if len(topic) > MAX_TOPIC_LENGTH:
            raise ValidationError(
                f"Topic must be at most {MAX_TOPIC_LENGTH} characters (got {len(topic)})"
            )

        template_id = request.template_type or DEFAULT_TEMPLATE_ID
        # Unknown template ids raise TemplateNotFoundError straight through;
        # missing variables raise MissingVariablesError, a ValidationError
        prompt = self.registry.render_prompt(template_id, {"topic": topic})
        options = request.options.merged_over(self.defaults)
        return BuiltRequest(template_id=template_id, prompt=prompt, options=options)


def build_payload(
    prompt: str, options: GenerationOptions, default_model: str
) -> Dict[str, Any]:
    """Chat completions request body for a prompt and effective options."""
    payload: Dict[str, Any] = {
        "model": options.model or default_model,
        "messages": [{"role": "user", "content": prompt}],
    }
    for name in _SAMPLING_FIELDS:
        value = getattr(options, name)
        if value is not None:
            payload[name] = value
    return payload
