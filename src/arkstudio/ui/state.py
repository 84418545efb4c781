"""State management for the studio UI.

Every operation takes the session's :class:`StudioState`, updates it and
returns it, so Gradio handlers can thread the state through their outputs.

Source ordering
---------------
Local files and URL rows share one ordered sequence, ``state.sources``.
Filled items (every file, every non-blank URL) form a prefix in the user's
order and empty URL rows trail behind them.  The merged preview list used
for reordering is exactly that prefix, so a reorder never has to reconcile
two separately indexed lists.

Mode invariants
---------------
- ``img``: at most one active source.  Picking a file clears the URL rows,
  filling the URL removes the files.
- ``imgs``: any number of sources; submission needs at least two.
- ``text``: sources are kept but never submitted.
"""

import logging
import mimetypes
from pathlib import Path
from urllib.parse import unquote, urlparse

from arkstudio.core.config import ALLOWED_SIZES, DEFAULT_SIZE, config

from .history import clear_history, load_history, merge_history, remove_history_entry
from .models import (
    URL_PLACEHOLDER_NAME,
    ClientSubmission,
    ImageSource,
    LocalImage,
    Mode,
    SourceItem,
    StudioState,
    UrlItem,
)
from .previews import PreviewCache
from .validation import validate_submission

logger = logging.getLogger(__name__)


def initialize_studio_state(state: StudioState | None = None) -> StudioState:
    """Create the state if needed and attach its preview cache.

    Args:
        state: Existing StudioState or None

    Returns:
        Initialized StudioState instance
    """
    if state is None:
        logger.info("Creating new StudioState")
        state = StudioState()

    if state.previews is None:
        state.previews = PreviewCache(config.previews_dir)

    return state


# ---------------------------------------------------------------------------
# Sequence helpers
# ---------------------------------------------------------------------------


def _is_filled(source: ImageSource) -> bool:
    return isinstance(source, LocalImage) or source.filled


def _normalize(state: StudioState) -> StudioState:
    """Move empty URL rows behind the filled items and keep one row present."""
    filled = [s for s in state.sources if _is_filled(s)]
    empty = [s for s in state.sources if not _is_filled(s)]
    state.sources = filled + empty
    if not state.url_items:
        state.sources.append(UrlItem())
    return state


def _release(state: StudioState, items: list[LocalImage]) -> None:
    if state.previews is None:
        return
    for item in items:
        state.previews.release(item.path)


def _make_local_image(state: StudioState, path: str) -> LocalImage:
    name = Path(path).name
    content_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
    preview = state.previews.acquire(path) if state.previews is not None else Path(path)
    return LocalImage(name=name, path=str(preview), content_type=content_type)


def is_image_file(path: str) -> bool:
    """Whether *path* looks like an image judging by its file name."""
    content_type = mimetypes.guess_type(str(path))[0]
    return bool(content_type and content_type.startswith("image/"))


def name_from_url(url: str) -> str:
    """Display name for a URL: its last path segment, URL-decoded."""
    parsed = urlparse(url.strip())
    if not parsed.scheme or not parsed.netloc:
        return URL_PLACEHOLDER_NAME
    name = parsed.path.rstrip("/").split("/")[-1]
    return unquote(name) or URL_PLACEHOLDER_NAME


# ---------------------------------------------------------------------------
# Local files
# ---------------------------------------------------------------------------


def add_files(state: StudioState, paths: list[str]) -> StudioState:
    """Add selected, pasted or dropped files.

    Non-image files are ignored.  In text mode the mode is promoted to
    single-image (one file) or multi-image (several).  Single-image mode
    keeps only the first file and clears the URL rows; multi-image mode
    appends after the existing filled items.

    Args:
        state: UI state
        paths: File paths provided by the upload component

    Returns:
        Updated state
    """
    images = [p for p in (paths or []) if p and is_image_file(p)]
    if not images:
        logger.debug("No image files in selection; ignoring")
        return state

    if state.mode is Mode.TEXT:
        state.mode = Mode.MULTI if len(images) > 1 else Mode.SINGLE
        logger.info(f"Promoted mode to {state.mode.value} for {len(images)} file(s)")

    if state.mode is Mode.SINGLE:
        _release(state, state.files)
        state.sources = [_make_local_image(state, images[0]), UrlItem()]
        return state

    new_items = [_make_local_image(state, p) for p in images]
    filled = [s for s in state.sources if _is_filled(s)]
    empty = [s for s in state.sources if not _is_filled(s)]
    state.sources = filled + new_items + empty
    logger.info(f"Added {len(new_items)} file(s); {len(state.files)} total")
    return _normalize(state)


def remove_file(state: StudioState, file_id: str) -> StudioState:
    """Remove a local file and release its preview."""
    target = next((f for f in state.files if f.id == file_id), None)
    if target is None:
        return state
    _release(state, [target])
    state.sources = [s for s in state.sources if s is not target]
    return _normalize(state)


# ---------------------------------------------------------------------------
# URL rows
# ---------------------------------------------------------------------------


def add_url_row(state: StudioState) -> StudioState:
    """Append an empty URL row (single-image mode has exactly one row)."""
    if state.mode is Mode.SINGLE:
        return state
    state.sources.append(UrlItem())
    return state


def change_url(state: StudioState, row_id: str, value: str) -> StudioState:
    """Set the URL of a row.

    In single-image mode, a non-blank URL in the first row replaces any
    selected file.
    """
    rows = state.url_items
    row = next((u for u in rows if u.id == row_id), None)
    if row is None:
        return state

    row.url = value or ""
    if state.mode is Mode.SINGLE and row is rows[0] and row.filled and state.files:
        _release(state, state.files)
        state.sources = [s for s in state.sources if isinstance(s, UrlItem)]
    return _normalize(state)


def type_url(state: StudioState, row_id: str, value: str) -> StudioState:
    """Record a URL while it is still being typed.

    Rows keep their positions so every textbox stays bound to its row.
    :func:`change_url` applies ordering and single-image replacement once
    the edit is committed.
    """
    row = next((u for u in state.url_items if u.id == row_id), None)
    if row is not None:
        row.url = value or ""
    return state


def remove_url(state: StudioState, row_id: str) -> StudioState:
    """Remove a URL row; single-image mode resets to one empty row."""
    if state.mode is Mode.SINGLE:
        state.sources = [*state.files, UrlItem()]
        return state
    state.sources = [s for s in state.sources if not (isinstance(s, UrlItem) and s.id == row_id)]
    return _normalize(state)


# ---------------------------------------------------------------------------
# Mode, prompt and size
# ---------------------------------------------------------------------------


def change_mode(state: StudioState, mode: Mode | str) -> StudioState:
    """Switch the generation mode.

    Switching to single-image collapses the sources: the first file is kept
    (the others are released) and the URL rows are cleared, or, without
    files, only the first URL survives.
    """
    mode = Mode(mode)
    if mode is Mode.SINGLE:
        files = state.files
        if files:
            _release(state, files[1:])
            state.sources = [files[0], UrlItem()]
        else:
            rows = state.url_items
            first = rows[0].url.strip() if rows else ""
            state.sources = [UrlItem(url=first)]
    state.mode = mode
    state.selected_source = None
    return _normalize(state)


def set_prompt(state: StudioState, prompt: str) -> StudioState:
    state.prompt = prompt or ""
    return state


def set_size(state: StudioState, size: str) -> StudioState:
    state.size = size if size in ALLOWED_SIZES else DEFAULT_SIZE
    return state


# ---------------------------------------------------------------------------
# Merged source list and reordering
# ---------------------------------------------------------------------------


def merged_sources(state: StudioState) -> list[SourceItem]:
    """Return the preview list for the current mode.

    Multi-image mode lists every file and filled URL in order.  Single-image
    mode lists its one resolved source.  Text mode lists nothing.
    """
    if state.mode is Mode.TEXT:
        return []

    filled = [s for s in state.sources if _is_filled(s)]
    if state.mode is Mode.SINGLE:
        files = state.files
        urls = [u for u in state.url_items if u.filled]
        filled = files[:1] if files else urls[:1]

    return [_to_source_item(s) for s in filled]


def _to_source_item(source: ImageSource) -> SourceItem:
    if isinstance(source, LocalImage):
        return SourceItem(key=source.key, kind="file", url=source.path, name=source.name)
    url = source.url.strip()
    return SourceItem(key=source.key, kind="url", url=url, name=name_from_url(url))


def reorder_sources(state: StudioState, from_key: str, to_key: str) -> StudioState:
    """Move the item *from_key* to the position of *to_key*.

    This is an array move over the merged list: the dragged item is removed
    and re-inserted at the target's index.  Unknown keys, or dropping an item
    onto itself, leave the state unchanged.
    """
    filled = [s for s in state.sources if _is_filled(s)]
    keys = [s.key for s in filled]
    if from_key == to_key or from_key not in keys or to_key not in keys:
        return state

    item = filled.pop(keys.index(from_key))
    filled.insert(keys.index(to_key), item)
    empty = [s for s in state.sources if not _is_filled(s)]
    state.sources = filled + empty
    return state


def move_source(state: StudioState, key: str, offset: int) -> StudioState:
    """Move a merged item *offset* places (negative is earlier)."""
    keys = [item.key for item in merged_sources(state)]
    if key not in keys:
        return state
    target = keys.index(key) + offset
    if target < 0 or target >= len(keys):
        return state
    return reorder_sources(state, key, keys[target])


def remove_source(state: StudioState, key: str) -> StudioState:
    """Remove a merged item by key, whichever kind it is."""
    if key.startswith("f:"):
        state = remove_file(state, key[2:])
    elif key.startswith("u:"):
        state = remove_url(state, key[2:])
    if state.selected_source == key:
        state.selected_source = None
    return state


# ---------------------------------------------------------------------------
# Submission and results
# ---------------------------------------------------------------------------


def build_submission(state: StudioState) -> ClientSubmission:
    """Package the state into a request.

    Raises:
        ValidationError: The state is not ready to submit.
    """
    validate_submission(state)

    submission = ClientSubmission(mode=state.mode, prompt=state.prompt, size=state.size)
    if state.mode is Mode.SINGLE:
        if state.files:
            submission.files = [state.files[0]]
            submission.source_order = ["file"]
        else:
            submission.image_urls = [state.filled_urls[0]]
            submission.source_order = ["url"]
    elif state.mode is Mode.MULTI:
        for source in state.sources:
            if isinstance(source, LocalImage):
                submission.files.append(source)
                submission.source_order.append("file")
            elif source.filled:
                submission.image_urls.append(source.url.strip())
                submission.source_order.append("url")

    return submission


def begin_generation(state: StudioState) -> StudioState:
    """Mark a request as outstanding and clear the previous outcome."""
    state.loading = True
    state.error = None
    state.images = []
    state.selected_image = None
    return state


def apply_generation_result(state: StudioState, urls: list[str], ts: int | None = None) -> StudioState:
    """Show the results and remember unseen URLs, newest first."""
    state.images = list(urls)
    state.loading = False
    if urls:
        state.history = merge_history(state.history, urls, ts)
    logger.info(f"Generation returned {len(urls)} image(s); history has {len(state.history)}")
    return state


def fail_generation(state: StudioState, message: str) -> StudioState:
    state.loading = False
    state.error = message or "Request failed"
    return state


def dismiss_error(state: StudioState) -> StudioState:
    state.error = None
    return state


def clear_results(state: StudioState) -> StudioState:
    """Clear results and inputs: release files and reset the URL rows."""
    _release(state, state.files)
    state.images = []
    state.error = None
    state.sources = [UrlItem()]
    state.selected_source = None
    state.selected_image = None
    return state


def release_session(state: StudioState | None) -> None:
    """Delete the previews a session still holds when Gradio discards it."""
    if state is None:
        return
    logger.info(f"Releasing {len(state.files)} preview(s) of an expired session")
    _release(state, state.files)


def continue_editing(state: StudioState, url: str, mode: Mode | str) -> StudioState:
    """Feed a generated image back in as an input.

    Single-image: the URL replaces every current source.  Multi-image: the
    URL is appended after the filled items and an empty row is kept.
    """
    if not url:
        return state

    if Mode(mode) is Mode.SINGLE:
        _release(state, state.files)
        state.sources = [UrlItem(url=url)]
        state.mode = Mode.SINGLE
    else:
        filled = [s for s in state.sources if _is_filled(s)]
        empty = [s for s in state.sources if not _is_filled(s)] or [UrlItem()]
        state.sources = [*filled, UrlItem(url=url), *empty]
        state.mode = Mode.MULTI

    logger.info(f"Continue editing {url} in {state.mode.value} mode")
    return state


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


def restore_history(state: StudioState, raw) -> StudioState:
    """Load history from browser storage (called once on page load)."""
    state.history = load_history(raw)
    return state


def delete_history_entry(state: StudioState, entry_id: str) -> StudioState:
    state.history = remove_history_entry(state.history, entry_id)
    return state


def reset_history(state: StudioState) -> StudioState:
    state.history = clear_history()
    return state
