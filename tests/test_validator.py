"""Tests for response validation and normalization."""

from datetime import datetime, timezone

import pytest

from mdslides.errors import ValidationError
from mdslides.models import ProviderMetadata, TokenUsage
from mdslides.validator import ResponseNormalizer, count_separators, normalize, split_slides

FIXED_TIME = datetime(2024, 1, 25, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def normalizer():
    return ResponseNormalizer(clock=lambda: FIXED_TIME)


@pytest.fixture
def metadata():
    return ProviderMetadata(model="gpt-3.5-turbo")


class TestSlideCount:
    @pytest.mark.parametrize("k", [0, 1, 5, 13])
    def test_count_is_separators_plus_one(self, normalizer, metadata, k):
        """Slide count is the separator count plus one."""
        raw = "\n\n---\n\n".join(f"# Slide {i}" for i in range(k + 1))
        result = normalizer.normalize(raw, metadata)
        assert result.metadata.slide_count == k + 1

    def test_separator_with_trailing_whitespace(self):
        """Trailing spaces and tabs still make a separator."""
        assert count_separators("# A\n---  \n# B\n---\t\n# C") == 2

    def test_inline_dashes_are_not_separators(self):
        """Dashes inside text or longer rules are not separators."""
        assert count_separators('Separate slides with "---" markers\n----\n- --- -') == 0


class TestNormalize:
    def test_trims_but_does_not_rewrite(self, normalizer, metadata, sample_deck):
        """Only surrounding whitespace is removed."""
        result = normalizer.normalize(f"\n\n  {sample_deck}  \n\n", metadata)
        assert result.markdown == sample_deck

    def test_timestamp_taken_at_normalization(self, normalizer, metadata, sample_deck):
        """generated_at comes from the clock at normalization."""
        assert normalizer.normalize(sample_deck, metadata).metadata.generated_at == FIXED_TIME

    def test_default_clock_is_utc(self, metadata, sample_deck):
        """The default clock is timezone aware."""
        generated_at = normalize(sample_deck, metadata).metadata.generated_at
        assert generated_at.tzinfo is not None

    def test_usage_passed_through(self, normalizer, sample_deck):
        """Usage, model and attempts are copied from the provider."""
        usage = TokenUsage(prompt_tokens=10, completion_tokens=90, total_tokens=100)
        result = normalizer.normalize(
            sample_deck, ProviderMetadata(model="gpt-4o", usage=usage, attempts=2)
        )
        assert result.metadata.token_usage == usage
        assert result.metadata.model == "gpt-4o"
        assert result.metadata.attempts == 2

    def test_usage_absent_not_zero(self, normalizer, metadata, sample_deck):
        """Missing usage stays None."""
        assert normalizer.normalize(sample_deck, metadata).metadata.token_usage is None

    @pytest.mark.parametrize("raw", [None, "", "   \n\t  "])
    def test_empty_content_rejected(self, normalizer, metadata, raw):
        """Empty content fails validation."""
        with pytest.raises(ValidationError, match="empty"):
            normalizer.normalize(raw, metadata)

    def test_only_separators_rejected(self, normalizer, metadata):
        """A deck of only separators fails validation."""
        with pytest.raises(ValidationError, match="no slide content"):
            normalizer.normalize("---\n\n---\n", metadata)


class TestSplitSlides:
    def test_split(self, sample_deck):
        """Decks split into their slides."""
        slides = split_slides(sample_deck)
        assert len(slides) == 3
        assert slides[0] == "# Quarterly Sales Review"
        assert slides[-1] == "## Thank you"

    def test_empty_slides_dropped(self):
        """Blank slides are dropped when splitting."""
        assert split_slides("# A\n---\n\n---\n# B") == ["# A", "# B"]
