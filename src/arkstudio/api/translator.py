"""Translate client submissions into provider request payloads.

A submission arrives either as ``multipart/form-data`` (the UI's format, which
may carry files) or as ``application/json``.  Both are normalised into a
:class:`Submission`, validated, and finally turned into the JSON body the
provider expects.

Validation policy
-----------------
Parameters that have a safe default are normalised silently: a missing mode
becomes ``text``, a missing model the configured default, and a size outside
:data:`~arkstudio.core.config.ALLOWED_SIZES` becomes ``2K``.  Inputs without a
safe default are rejected with 400: a blank prompt, an unrecognised mode, and
an image mode without any image source.

Payload shape
-------------
The provider distinguishes one reference image from several: a single source
is sent as a scalar ``image`` string, two or more as an ordered list, and a
submission without sources carries no ``image`` key at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from starlette.datastructures import FormData, UploadFile

from arkstudio.api.models import GenerateRequest
from arkstudio.core.config import ALLOWED_SIZES, DEFAULT_SIZE
from arkstudio.core.storage import StorageNotConfiguredError, UploadStore

logger = logging.getLogger(__name__)

MODES = ("text", "img", "imgs")

MISSING_PROMPT = "Missing prompt"
MISSING_IMAGES = "img/imgs mode requires at least one image"
UPLOADS_NOT_CONFIGURED = (
    "File upload is not configured: set ARKSTUDIO_PUBLIC_BASE_URL to enable upload "
    "storage, or pass the images as imageUrls links instead."
)


class GenerationError(Exception):
    """A request failure that maps onto an HTTP status and an ``error`` body."""

    status_code = 500

    def __init__(self, error, status_code: int | None = None):
        super().__init__(error if isinstance(error, str) else repr(error))
        self.error = error
        if status_code is not None:
            self.status_code = status_code


class SubmissionError(GenerationError):
    """The submission is incomplete or malformed."""

    status_code = 400


class UploadUnavailableError(GenerationError):
    """Files were uploaded but upload storage is unavailable."""

    status_code = 501


@dataclass
class PendingUpload:
    """An uploaded file that has not been stored yet."""

    filename: str
    content: bytes


@dataclass
class Submission:
    """A normalised generation submission.

    Attributes:
        mode: One of :data:`MODES`.
        prompt: Stripped prompt text.
        model: Provider model identifier.
        size: Normalised resolution.
        watermark: Watermark flag.
        image_urls: Reference image URLs supplied directly.
        uploads: Files still to be stored.
        source_order: ``url``/``file`` tokens describing how ``image_urls``
            and ``uploads`` interleave.  Empty means URLs first.
    """

    mode: str = "text"
    prompt: str = ""
    model: str = ""
    size: str = DEFAULT_SIZE
    watermark: bool = False
    image_urls: list[str] = field(default_factory=list)
    uploads: list[PendingUpload] = field(default_factory=list)
    source_order: list[str] = field(default_factory=list)

    @property
    def source_count(self) -> int:
        return len(self.image_urls) + len(self.uploads)


def normalize_size(size: str | None) -> str:
    """Return *size* if it is an allowed resolution, otherwise ``2K``."""
    if size in ALLOWED_SIZES:
        return size
    if size:
        logger.debug(f"Normalising unsupported size {size!r} to {DEFAULT_SIZE}")
    return DEFAULT_SIZE


def parse_mode(mode: str | None) -> str:
    """Validate the generation mode, defaulting a blank value to ``text``.

    Raises:
        SubmissionError: The mode is not one of :data:`MODES`.
    """
    mode = (mode or "").strip()
    if not mode:
        return "text"
    if mode not in MODES:
        raise SubmissionError(f"Unknown mode: {mode}")
    return mode


def parse_form_bool(value) -> bool:
    """Multipart booleans are the literal string ``true``; anything else is false."""
    return str(value if value is not None else "false").strip().lower() == "true"


async def submission_from_form(form: FormData, default_model: str) -> Submission:
    """Build a :class:`Submission` from a parsed multipart form.

    Args:
        form: The request's form data.
        default_model: Model used when the form has no ``model`` field.

    Returns:
        The normalised submission.  File contents are read into memory.
    """
    uploads: list[PendingUpload] = []
    for item in form.getlist("files"):
        if not isinstance(item, UploadFile):
            continue
        content = await item.read()
        # Browsers send an empty, unnamed part for an untouched file input.
        if not item.filename and not content:
            continue
        uploads.append(PendingUpload(filename=item.filename or "", content=content))

    return Submission(
        mode=parse_mode(_form_str(form, "mode")),
        prompt=(_form_str(form, "prompt") or "").strip(),
        model=_form_str(form, "model") or default_model,
        size=normalize_size(_form_str(form, "size")),
        watermark=parse_form_bool(form.get("watermark")),
        image_urls=[u.strip() for u in _form_strs(form, "imageUrls") if u.strip()],
        uploads=uploads,
        source_order=[t.strip() for t in _form_strs(form, "sourceOrder") if t.strip()],
    )


def submission_from_json(body: GenerateRequest, default_model: str) -> Submission:
    """Build a :class:`Submission` from a validated JSON body."""
    return Submission(
        mode=parse_mode(body.mode),
        prompt=(body.prompt or "").strip(),
        model=body.model or default_model,
        size=normalize_size(body.size),
        watermark=bool(body.watermark),
        image_urls=[u.strip() for u in body.image_urls if u.strip()],
        source_order=body.source_order,
    )


def _form_str(form: FormData, key: str) -> str | None:
    value = form.get(key)
    return value if isinstance(value, str) else None


def _form_strs(form: FormData, key: str) -> list[str]:
    return [v for v in form.getlist(key) if isinstance(v, str)]


def validate_submission(submission: Submission) -> None:
    """Reject submissions that cannot be sent to the provider.

    Raises:
        SubmissionError: The prompt is blank, or an image mode has no source.
    """
    if not submission.prompt:
        raise SubmissionError(MISSING_PROMPT)
    if submission.mode != "text" and submission.source_count == 0:
        raise SubmissionError(MISSING_IMAGES)


def store_uploads(uploads: list[PendingUpload], store: UploadStore | None) -> list[str]:
    """Persist pending uploads and return their public URLs in order.

    Raises:
        UploadUnavailableError: Upload storage is missing or failed.
    """
    if not uploads:
        return []
    if store is None:
        raise UploadUnavailableError(UPLOADS_NOT_CONFIGURED)

    urls = []
    for upload in uploads:
        try:
            urls.append(store.save(upload.filename, upload.content))
        except StorageNotConfiguredError as e:
            logger.warning(f"Upload storage unavailable: {e}")
            raise UploadUnavailableError(UPLOADS_NOT_CONFIGURED) from e
    return urls


def merge_sources(image_urls: list[str], uploaded_urls: list[str], order: list[str]) -> list[str]:
    """Interleave direct URLs and uploaded-file URLs according to *order*.

    *order* must contain exactly one ``url`` token per direct URL and one
    ``file`` token per upload; otherwise it is ignored and the direct URLs
    come first.
    """
    if order:
        consistent = (
            order.count("url") == len(image_urls)
            and order.count("file") == len(uploaded_urls)
            and len(order) == len(image_urls) + len(uploaded_urls)
        )
        if consistent:
            urls = iter(image_urls)
            files = iter(uploaded_urls)
            return [next(urls) if token == "url" else next(files) for token in order]
        logger.warning(f"Ignoring inconsistent sourceOrder {order}")
    return [*image_urls, *uploaded_urls]


def build_provider_payload(submission: Submission, images: list[str]) -> dict:
    """Build the provider request body.

    Args:
        submission: Validated submission.
        images: Ordered reference image URLs.

    Returns:
        JSON-serialisable payload.  ``image`` is a string for one source, a
        list for several, and absent for none.
    """
    payload: dict = {
        "model": submission.model,
        "prompt": submission.prompt,
        "sequential_image_generation": "disabled",
        "response_format": "url",
        "size": submission.size,
        "stream": False,
        "watermark": submission.watermark,
    }

    images = [url for url in images if url]
    if len(images) == 1:
        payload["image"] = images[0]
    elif len(images) > 1:
        payload["image"] = images

    return payload
