"""Pydantic request and response models for the generation API.

These models define the JSON schema of ``POST /api/generate``.  Multipart
submissions are parsed field by field in :mod:`arkstudio.api.translator` and
end up in the same :class:`~arkstudio.api.translator.Submission` shape, so
only the JSON variant needs a request model.

Models
------
GenerateRequest
    JSON payload for ``POST /api/generate``.
GenerateResponse
    Successful response: result URLs plus the raw provider body.
ErrorResponse
    Every failure, whatever its status code.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GenerateRequest(BaseModel):
    """JSON request body for the ``POST /api/generate`` endpoint.

    Missing or ``null`` values fall back to server defaults; see
    :func:`arkstudio.api.translator.submission_from_json`.

    Attributes:
        mode: ``"text"``, ``"img"`` or ``"imgs"``.  Defaults to ``"text"``.
        prompt: Generation prompt.  Required (validated by the translator so
            the error message matches the multipart path).
        model: Provider model identifier.  ``None`` uses the configured default.
        size: Requested resolution (``1K``, ``2K`` or ``4K``).
        watermark: Whether the provider should watermark the result.
        image_urls: Reference image URLs; a single string is accepted too.
        source_order: Optional ``url``/``file`` tokens (unused for JSON, which
            carries no files, but accepted for symmetry with multipart).
    """

    model_config = ConfigDict(populate_by_name=True)

    mode: str | None = Field(
        default=None,
        description="Generation mode: 'text', 'img' or 'imgs'.",
    )
    prompt: str | None = Field(
        default=None,
        description="Text prompt describing the desired image.",
    )
    model: str | None = Field(
        default=None,
        description="Provider model identifier (defaults to the configured model).",
    )
    size: str | None = Field(
        default=None,
        description="Resolution: '1K', '2K' or '4K'.  Anything else becomes '2K'.",
    )
    watermark: bool | None = Field(
        default=None,
        description="Ask the provider to watermark the result.",
    )
    image_urls: list[str] = Field(
        default_factory=list,
        alias="imageUrls",
        description="Reference image URLs in order.",
    )
    source_order: list[str] = Field(
        default_factory=list,
        alias="sourceOrder",
        description="Optional 'url'/'file' tokens giving the merged source order.",
    )

    @field_validator("image_urls", "source_order", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> list:
        """Accept a scalar in place of a list and drop empty entries."""
        if value is None or value == "":
            return []
        if not isinstance(value, list):
            value = [value]
        return [str(v) for v in value if v]


class GenerateResponse(BaseModel):
    """Successful generation response.

    Attributes:
        images: Result image URLs in provider order.
        raw: The provider's response body, relayed unchanged.
    """

    images: list[str] = Field(default_factory=list)
    raw: Any = None


class ErrorResponse(BaseModel):
    """Error response body shared by every failure status."""

    error: Any = Field(
        ...,
        description="Human-readable message, or the provider's error object.",
    )
