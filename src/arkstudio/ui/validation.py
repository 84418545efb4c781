"""Submission readiness checks for the studio UI."""

import logging

from .models import Mode, StudioState

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """User-friendly validation error.

    The message is displayed inline and the request is never sent.
    """

    pass


def effective_source_count(state: StudioState) -> int:
    """Count the image sources that would be submitted in the current mode.

    Single-image mode resolves to at most one source (a file wins over a URL);
    text mode submits none.
    """
    if state.mode is Mode.SINGLE:
        return 1 if state.files or state.filled_urls else 0
    if state.mode is Mode.MULTI:
        return len(state.files) + len(state.filled_urls)
    return 0


def validate_submission(state: StudioState) -> None:
    """Check that the state can be submitted.

    Args:
        state: Current UI state.

    Raises:
        ValidationError: If the prompt is blank or the mode's image
            requirement is not met.
    """
    if not state.prompt.strip():
        raise ValidationError("Please enter a prompt")

    count = effective_source_count(state)
    if state.mode is Mode.SINGLE and count != 1:
        raise ValidationError("Single-image mode needs one image: upload a file or enter a URL")
    if state.mode is Mode.MULTI and count < 2:
        raise ValidationError(
            f"Multi-image mode needs at least two images (currently {count})"
        )


def can_submit(state: StudioState) -> bool:
    """Whether the submit action should be enabled."""
    try:
        validate_submission(state)
    except ValidationError:
        return False
    return True
