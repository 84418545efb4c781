"""Data models for the studio UI state."""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from arkstudio.core.config import ALLOWED_SIZES, DEFAULT_SIZE

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    """Which generation flow is active.

    The values are the wire values understood by ``POST /api/generate``.
    """

    TEXT = "text"
    SINGLE = "img"
    MULTI = "imgs"


def new_id() -> str:
    """Return a fresh unique identifier for a UI item."""
    return uuid.uuid4().hex


@dataclass
class LocalImage:
    """A locally selected image file.

    ``path`` points at a preview copy owned by the session; it is deleted
    through :class:`~arkstudio.ui.previews.PreviewCache` when the item is
    removed or superseded.
    """

    name: str
    path: str
    content_type: str = "image/png"
    id: str = field(default_factory=new_id)

    kind = "file"

    @property
    def key(self) -> str:
        return f"f:{self.id}"


@dataclass
class UrlItem:
    """One external image URL row. Empty rows are input slots."""

    url: str = ""
    id: str = field(default_factory=new_id)

    kind = "url"

    @property
    def key(self) -> str:
        return f"u:{self.id}"

    @property
    def filled(self) -> bool:
        return bool(self.url.strip())


# A single ordered sequence holds both kinds of image source.
ImageSource = LocalImage | UrlItem


@dataclass
class SourceItem:
    """One entry of the merged, orderable source list shown as previews."""

    key: str
    kind: str  # "file" or "url"
    url: str  # local preview path for files, trimmed URL for links
    name: str


@dataclass
class HistoryEntry:
    """A previously generated image URL.

    Attributes:
        url: Result image URL.
        ts: Creation time in milliseconds since the epoch.
        id: Unique identifier used for deletion.
    """

    url: str
    ts: int
    id: str = field(default_factory=new_id)


@dataclass
class ClientSubmission:
    """A packaged request, ready to be sent as multipart form data.

    ``source_order`` lists ``url``/``file`` tokens so the server can rebuild
    the user's merged order across the two field types.
    """

    mode: Mode
    prompt: str
    size: str
    files: list[LocalImage] = field(default_factory=list)
    image_urls: list[str] = field(default_factory=list)
    source_order: list[str] = field(default_factory=list)


@dataclass
class StudioState:
    """Session state for the Gradio UI.

    Each browser session gets its own copy through ``gr.State``. History is
    mirrored into ``gr.BrowserState`` whenever it changes.

    Attributes
    ----------
    mode : Mode
        Active generation flow
    prompt : str
        Prompt text as typed
    size : str
        Requested resolution
    sources : list[ImageSource]
        Files and URL rows in user order; filled items first, empty rows last
    images : list[str]
        URLs returned by the last successful generation
    history : list[HistoryEntry]
        Locally remembered results, newest first
    loading : bool
        True while a generation request is outstanding
    error : str | None
        Inline error message, cleared on dismiss or next submit
    selected_source : str | None
        Key of the preview selected for moving or removal
    selected_image : str | None
        Result URL selected for continue-editing or download
    selected_history : str | None
        Id of the history entry selected for continue-editing or deletion
    previews : Any | None
        PreviewCache owning the local preview copies
    """

    mode: Mode = Mode.TEXT
    prompt: str = ""
    size: str = DEFAULT_SIZE
    sources: list[ImageSource] = field(default_factory=lambda: [UrlItem()])
    images: list[str] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)
    loading: bool = False
    error: str | None = None
    selected_source: str | None = None
    selected_image: str | None = None
    selected_history: str | None = None
    previews: Any | None = None  # PreviewCache instance

    @property
    def files(self) -> list[LocalImage]:
        return [s for s in self.sources if isinstance(s, LocalImage)]

    @property
    def url_items(self) -> list[UrlItem]:
        return [s for s in self.sources if isinstance(s, UrlItem)]

    @property
    def filled_urls(self) -> list[str]:
        return [u.url.strip() for u in self.url_items if u.filled]

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"StudioState(mode={self.mode.value}, files={len(self.files)}, "
            f"urls={len(self.filled_urls)}, history={len(self.history)})"
        )


# UI constants
MODE_LABELS = {
    Mode.TEXT: "Text to image",
    Mode.SINGLE: "Single image",
    Mode.MULTI: "Multiple images",
}

SIZES = list(ALLOWED_SIZES)

HISTORY_KEY = "image_history_v1"
HISTORY_MAX = 200

URL_PLACEHOLDER_NAME = "Linked image"
