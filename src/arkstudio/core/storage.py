"""Upload storage for reference images.

The provider only accepts image *URLs*, so files uploaded through the API are
written to a directory that the FastAPI application serves under
``/uploads`` and turned into absolute URLs on the configured public base URL.

Storage is a flat directory:

- no database
- file names are ``<epoch-ms>-<random hex>-<original name>``
- nothing is ever overwritten or cleaned up by the application
"""

from __future__ import annotations

import logging
import time
import uuid
from pathlib import Path
from urllib.parse import quote

logger = logging.getLogger(__name__)

UPLOADS_ROUTE = "/uploads"

_INVALID_CHARS = '<>:"/\\|?*'


class StorageNotConfiguredError(Exception):
    """Uploads cannot be stored or published as URLs."""


def sanitize_upload_name(name: str | None) -> str:
    """Reduce a client-supplied file name to a safe single path component.

    Directory parts are dropped, characters that are invalid on common file
    systems are replaced with ``_`` and the result is capped at 100
    characters.  An empty name becomes ``image``.
    """
    base = Path(name or "").name.strip()
    for char in _INVALID_CHARS:
        base = base.replace(char, "_")
    return base[:100] or "image"


class UploadStore:
    """File-backed upload storage published under :data:`UPLOADS_ROUTE`.

    Args:
        uploads_dir: Directory the files are written to.
        public_base_url: Externally reachable base URL of the server.  When
            ``None`` the store is unconfigured and every save fails.
    """

    def __init__(self, uploads_dir: Path, public_base_url: str | None):
        self.uploads_dir = Path(uploads_dir)
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

    @property
    def configured(self) -> bool:
        return self.public_base_url is not None

    def save(self, filename: str | None, content: bytes) -> str:
        """Persist one uploaded file and return its public URL.

        Args:
            filename: Client-supplied file name.
            content: File bytes.

        Returns:
            Absolute URL under which the provider can fetch the file.

        Raises:
            StorageNotConfiguredError: No public base URL is configured or the
                file could not be written.
        """
        if not self.configured:
            raise StorageNotConfiguredError("Upload storage has no public base URL")

        stored_name = (
            f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{sanitize_upload_name(filename)}"
        )
        try:
            self.uploads_dir.mkdir(parents=True, exist_ok=True)
            (self.uploads_dir / stored_name).write_bytes(content)
        except OSError as e:
            raise StorageNotConfiguredError(f"Could not write upload: {e}") from e

        url = f"{self.public_base_url}{UPLOADS_ROUTE}/{quote(stored_name)}"
        logger.info(f"Stored upload {stored_name} ({len(content)} bytes)")
        return url
