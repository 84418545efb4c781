"""Unit tests for submission readiness checks."""

import pytest

from arkstudio.ui.models import LocalImage, Mode, StudioState, UrlItem
from arkstudio.ui.validation import (
    ValidationError,
    can_submit,
    effective_source_count,
    validate_submission,
)


def _state(mode: Mode, prompt: str = "a prompt", files: int = 0, urls: list[str] | None = None) -> StudioState:
    sources = [LocalImage(name=f"{i}.png", path=f"/tmp/{i}.png") for i in range(files)]
    sources += [UrlItem(url=u) for u in (urls or [])]
    return StudioState(mode=mode, prompt=prompt, sources=sources + [UrlItem()])


class TestEffectiveSourceCount:
    def test_text_mode_counts_nothing(self):
        assert effective_source_count(_state(Mode.TEXT, files=2)) == 0

    def test_single_mode_at_most_one(self):
        assert effective_source_count(_state(Mode.SINGLE, files=1, urls=["https://a"])) == 1
        assert effective_source_count(_state(Mode.SINGLE)) == 0

    def test_multi_mode_counts_files_and_filled_urls(self):
        state = _state(Mode.MULTI, files=2, urls=["https://a", "   "])
        assert effective_source_count(state) == 3


class TestValidateSubmission:
    """Tests for validate_submission."""

    def test_blank_prompt(self):
        with pytest.raises(ValidationError, match="Please enter a prompt"):
            validate_submission(_state(Mode.TEXT, prompt="   "))

    def test_text_mode_valid(self):
        validate_submission(_state(Mode.TEXT))

    def test_single_mode_needs_source(self):
        with pytest.raises(ValidationError, match="Single-image mode"):
            validate_submission(_state(Mode.SINGLE))

    def test_single_mode_with_url(self):
        validate_submission(_state(Mode.SINGLE, urls=["https://a"]))

    def test_multi_mode_needs_two(self):
        with pytest.raises(ValidationError, match=r"currently 1"):
            validate_submission(_state(Mode.MULTI, files=1))

    def test_multi_mode_mixed_sources(self):
        validate_submission(_state(Mode.MULTI, files=1, urls=["https://a"]))


class TestCanSubmit:
    def test_mirrors_validation(self):
        assert can_submit(_state(Mode.TEXT)) is True
        assert can_submit(_state(Mode.TEXT, prompt="")) is False
        assert can_submit(_state(Mode.MULTI, urls=["https://a"])) is False
