"""Validate and package raw completion text as a slide deck."""

import logging
import re
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .errors import ValidationError
from .models import ProviderMetadata, SlideGenerationResponse, SlideMetadata

logger = logging.getLogger(__name__)

SLIDE_SEPARATOR = "---"

# A separator is a line holding only "---", optionally followed by whitespace
_SEPARATOR_LINE = re.compile(r"^---[ \t]*$", re.MULTILINE)


def count_separators(text: str) -> int:
    """Number of slide separator lines in ``text``."""
    return len(_SEPARATOR_LINE.findall(text))


def split_slides(text: str) -> List[str]:
    """Split a deck into trimmed, non-empty slide bodies."""
    return [part.strip() for part in _SEPARATOR_LINE.split(text) if part.strip()]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResponseNormalizer:
    """Turns completion text into a ``SlideGenerationResponse``.

    The Markdown is never rewritten beyond trimming surrounding whitespace;
    a malformed deck is for the caller to re-prompt.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or _utcnow

    def normalize(
        self, raw_text: Optional[str], provider_metadata: ProviderMetadata
    ) -> SlideGenerationResponse:
        markdown = (raw_text or "").strip()
        if not markdown:
            raise ValidationError("Generated content is empty")
        if not split_slides(markdown):
            raise ValidationError("Generated content contains no slide content")

        slide_count = count_separators(markdown) + 1
        metadata = SlideMetadata(
            slide_count=slide_count,
            generated_at=self._clock(),
            model=provider_metadata.model,
            token_usage=provider_metadata.usage,
            attempts=provider_metadata.attempts,
        )
        logger.debug(f"Normalized deck with {slide_count} slides")
        return SlideGenerationResponse(markdown=markdown, metadata=metadata)


def normalize(raw_text: Optional[str], provider_metadata: ProviderMetadata) -> SlideGenerationResponse:
    return ResponseNormalizer().normalize(raw_text, provider_metadata)
