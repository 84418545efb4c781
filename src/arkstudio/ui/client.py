"""HTTP client used by the UI to talk to the generation API.

Submissions are always sent as ``multipart/form-data`` so that text fields,
repeated ``imageUrls`` and uploaded ``files`` travel in a single request.
"""

import json
import logging
import uuid
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx

from arkstudio.core.storage import sanitize_upload_name

from .models import URL_PLACEHOLDER_NAME, ClientSubmission
from .state import name_from_url

logger = logging.getLogger(__name__)


class GenerationRequestError(Exception):
    """The API call failed; the message is shown to the user.

    Attributes:
        status_code: HTTP status of the failed response, or None for
            transport failures.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class GenerationResult:
    """Decoded ``POST /api/generate`` success body."""

    images: list[str] = field(default_factory=list)
    raw: Any = None


def _error_message(error: Any) -> str:
    """Turn an ``error`` member (string or provider object) into display text."""
    if isinstance(error, str) and error:
        return error
    if isinstance(error, dict):
        for key in ("message", "code"):
            if error.get(key):
                return str(error[key])
    if error:
        return json.dumps(error, ensure_ascii=False)
    return "Request failed"


class GenerateClient:
    """Synchronous client for the studio API.

    Args:
        base_url: API base URL, e.g. ``http://127.0.0.1:8000``.
        timeout: Seconds to wait for a response.  Generation can take close to
            a minute, so this should exceed the server's provider timeout.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 90.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    def generate(self, submission: ClientSubmission) -> GenerationResult:
        """POST a submission and return the generated image URLs.

        Args:
            submission: Packaged request from
                :func:`arkstudio.ui.state.build_submission`.

        Returns:
            The result URLs and the raw provider response.

        Raises:
            GenerationRequestError: A file could not be read, the transport
                failed or the API returned an error response.
        """
        with ExitStack() as stack:
            # (None, value) parts are plain form fields; httpx then always
            # encodes the body as multipart.
            parts: list[tuple] = [
                ("mode", (None, submission.mode.value)),
                ("prompt", (None, submission.prompt)),
                ("size", (None, submission.size)),
            ]
            parts += [("imageUrls", (None, url)) for url in submission.image_urls]
            parts += [("sourceOrder", (None, token)) for token in submission.source_order]
            for item in submission.files:
                try:
                    handle = stack.enter_context(open(item.path, "rb"))
                except OSError as e:
                    logger.error(f"Could not read {item.path}: {e}")
                    raise GenerationRequestError(f"Could not read {item.name}: {e.strerror or e}") from e
                parts.append(("files", (item.name, handle, item.content_type)))

            logger.info(
                f"Submitting {submission.mode.value} request with {len(submission.files)} "
                f"file(s) and {len(submission.image_urls)} URL(s)"
            )
            try:
                with self._client() as client:
                    response = client.post(f"{self.base_url}/api/generate", files=parts)
            except httpx.HTTPError as e:
                logger.error(f"Generation request failed: {e}")
                raise GenerationRequestError(f"Request error: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            error = body.get("error") if isinstance(body, dict) else None
            raise GenerationRequestError(_error_message(error), response.status_code)

        images = body.get("images") if isinstance(body, dict) else None
        return GenerationResult(
            images=[u for u in images if isinstance(u, str)] if isinstance(images, list) else [],
            raw=body.get("raw") if isinstance(body, dict) else None,
        )

    def download(self, url: str, dest_dir: Path) -> Path:
        """Fetch a result image into *dest_dir* and return the local path.

        Raises:
            GenerationRequestError: The image could not be fetched.
        """
        name = sanitize_upload_name(name_from_url(url))
        if name == URL_PLACEHOLDER_NAME:
            name = "image.png"
        dest_dir = Path(dest_dir)
        target = dest_dir / f"{uuid.uuid4().hex[:8]}-{name}"

        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
            with self._client() as client:
                with client.stream("GET", url, follow_redirects=True) as response:
                    response.raise_for_status()
                    with open(target, "wb") as f:
                        for chunk in response.iter_bytes():
                            f.write(chunk)
        except (httpx.HTTPError, OSError) as e:
            if target.exists():
                target.unlink()
            raise GenerationRequestError(f"Download failed: {e}") from e

        logger.info(f"Downloaded {url} to {target}")
        return target
