"""
Prompt templates for slide generation.

All prompt text lives here so the wording can be tuned without touching the
client. Placeholders use ``{{name}}`` syntax and every placeholder a template
uses must be declared in its ``variables``.
"""

from textwrap import dedent
from typing import Dict, Iterable, List, Mapping, Optional

from .errors import MissingVariablesError, TemplateNotFoundError
from .models import PromptTemplate, VariableValidation

DEFAULT_TEMPLATE_ID = "basic"

_OUTPUT_RULES = (
    'Use Marp Markdown and separate slides with a line containing only "---".\n'
    "Output the slide deck only, with no explanation before or after it."
)


BASIC_TEMPLATE = PromptTemplate(
    id="basic",
    name="Basic presentation",
    description="General purpose slide deck",
    template=dedent(
        """
        Create a professional Markdown slide deck on the topic "{{topic}}".

        Requirements:
        1. Produce 8-12 slides.
        2. The first slide is a title slide with a title and subtitle.
        3. Include an agenda slide.
        4. Every slide has a clear heading and focused key points.
        5. The last slide is a conclusion or thank-you slide.
        6. Keep the content professional, concise and easy to follow.
        7. Use Markdown formatting (headings, lists, bold) where it helps.

        """
    ).strip()
    + "\n\n"
    + _OUTPUT_RULES,
    variables=["topic"],
    max_slides=12,
)

ACADEMIC_TEMPLATE = PromptTemplate(
    id="academic",
    name="Academic report",
    description="Research talks and paper presentations",
    template=dedent(
        """
        Create an academic-style Markdown slide deck on the topic "{{topic}}".

        Requirements:
        1. Produce 12-16 slides.
        2. Follow this structure:
           - Title slide (topic, author, institution, date)
           - Background and motivation
           - Related work
           - Method
           - Results and analysis
           - Discussion
           - Conclusion and future work
           - References
        3. Keep the argument rigorous and logically ordered.
        4. Use an academic writing style and cite relevant concepts.

        """
    ).strip()
    + "\n\n"
    + _OUTPUT_RULES,
    variables=["topic"],
    max_slides=16,
)

BUSINESS_TEMPLATE = PromptTemplate(
    id="business",
    name="Business proposal",
    description="Business pitches and proposals",
    template=dedent(
        """
        Create a business-style Markdown slide deck on the topic "{{topic}}".

        Requirements:
        1. Produce 10-14 slides.
        2. Follow this structure:
           - Title slide
           - Executive summary
           - Problem statement
           - Proposed solution
           - Market analysis
           - Business model
           - Financial projections
           - Implementation plan
           - Risk assessment
           - Conclusion and next steps
        3. Be persuasive and data driven.
        4. Emphasise the value proposition and return on investment.

        """
    ).strip()
    + "\n\n"
    + _OUTPUT_RULES,
    variables=["topic"],
    max_slides=14,
)

CREATIVE_TEMPLATE = PromptTemplate(
    id="creative",
    name="Creative showcase",
    description="Creative projects and design showcases",
    template=dedent(
        """
        Create a creative Markdown slide deck on the topic "{{topic}}".

        Requirements:
        1. Produce 8-10 slides.
        2. Follow this structure:
           - Creative title slide
           - Inspiration
           - Concept development
           - Design process
           - Highlights
           - Visual showcase
           - Technical realisation
           - Results
           - Outlook
        3. Use vivid descriptions and metaphors.
        4. Emphasise what is new and distinctive.
        5. Emoji and visual elements are welcome.

        """
    ).strip()
    + "\n\n"
    + _OUTPUT_RULES,
    variables=["topic"],
    max_slides=10,
)


def replace_template_variables(template: str, variables: Mapping[str, str]) -> str:
    """
    Replace every ``{{name}}`` occurrence for each given variable.

    Matching is literal and case-sensitive. Placeholders for names not in
    ``variables`` are left in the text as-is.
    """
    result = template
    for name, value in variables.items():
        result = result.replace("{{" + name + "}}", value)
    return result


class TemplateRegistry:
    """Fixed, ordered catalog of prompt templates."""

    def __init__(self, templates: Iterable[PromptTemplate]):
        self._templates: Dict[str, PromptTemplate] = {}
        for template in templates:
            if template.id in self._templates:
                raise ValueError(f"Duplicate template id: {template.id}")
            self._templates[template.id] = template

    def __contains__(self, template_id: str) -> bool:
        return template_id in self._templates

    def list_templates(self) -> List[PromptTemplate]:
        return list(self._templates.values())

    def get_template(self, template_id: str) -> PromptTemplate:
        try:
            return self._templates[template_id]
        except KeyError:
            raise TemplateNotFoundError(template_id) from None

    def validate_variables(
        self, template_id: str, variables: Mapping[str, Optional[str]]
    ) -> VariableValidation:
        """Check that every declared variable is present and not blank."""
        template = self.get_template(template_id)
        missing = [
            name
            for name in template.variables
            if variables.get(name) is None or not str(variables[name]).strip()
        ]
        return VariableValidation(is_valid=not missing, missing_variables=missing)

    def render_prompt(self, template_id: str, variables: Mapping[str, Optional[str]]) -> str:
        """Validate the variables and substitute them into the template text."""
        template = self.get_template(template_id)
        validation = self.validate_variables(template_id, variables)
        if not validation.is_valid:
            raise MissingVariablesError(template_id, validation.missing_variables)

        declared = {name: str(variables[name]) for name in template.variables}
        return replace_template_variables(template.template, declared)


default_registry = TemplateRegistry(
    [BASIC_TEMPLATE, ACADEMIC_TEMPLATE, BUSINESS_TEMPLATE, CREATIVE_TEMPLATE]
)


def list_templates() -> List[PromptTemplate]:
    return default_registry.list_templates()


def get_template(template_id: str) -> PromptTemplate:
    return default_registry.get_template(template_id)


def validate_variables(
    template_id: str, variables: Mapping[str, Optional[str]]
) -> VariableValidation:
    return default_registry.validate_variables(template_id, variables)


def render_prompt(template_id: str, variables: Mapping[str, Optional[str]]) -> str:
    return default_registry.render_prompt(template_id, variables)
