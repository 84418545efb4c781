"""Gradio event handlers for the studio UI.

Handlers are thin: they translate Gradio values into calls on
:mod:`arkstudio.ui.state` and re-render the view from the resulting state.

Every handler that can change what is on screen returns
``(state, *render_view(state))``; handlers that change history additionally
return the serialised history for ``gr.BrowserState`` right after the state.
The order of the view tuple is fixed by :func:`render_view` and mirrored by
``arkstudio.ui.app`` when it wires the outputs.
"""

import logging

import gradio as gr

from arkstudio.core.config import config

from .client import GenerateClient, GenerationRequestError
from .history import dump_history
from .models import Mode, StudioState
from .state import (
    add_files,
    add_url_row,
    apply_generation_result,
    begin_generation,
    build_submission,
    change_mode,
    change_url,
    clear_results,
    continue_editing,
    delete_history_entry,
    dismiss_error,
    fail_generation,
    initialize_studio_state,
    merged_sources,
    move_source,
    remove_source,
    remove_url,
    reset_history,
    restore_history,
    set_prompt,
    set_size,
    type_url,
)
from .validation import ValidationError, can_submit

logger = logging.getLogger(__name__)

# Number of URL input rows the page pre-creates.
MAX_URL_ROWS = 6

# Length of the tuple returned by render_view().
VIEW_SIZE = 3 + 2 * MAX_URL_ROWS + 9


def get_client() -> GenerateClient:
    """Return a client for the configured API."""
    return GenerateClient(config.api_base_url, timeout=config.request_timeout + 30)


def visible_url_rows(state: StudioState) -> list:
    """URL rows shown on the page: one in single-image mode, all otherwise."""
    rows = state.url_items
    return rows[:1] if state.mode is Mode.SINGLE else rows[:MAX_URL_ROWS]


def render_view(state: StudioState) -> tuple:
    """Build the component updates that reflect *state*.

    Order: mode radio, inputs group, add-URL button, URL textboxes,
    URL remove buttons, sources gallery, source controls, generate button,
    error message, dismiss button, results gallery, result actions,
    history gallery, history actions.
    """
    mode = state.mode
    sources = merged_sources(state)
    single_selected = mode is Mode.SINGLE and bool(sources)

    rows = visible_url_rows(state)
    url_boxes = []
    url_removes = []
    for i in range(MAX_URL_ROWS):
        if i < len(rows):
            url_boxes.append(gr.update(value=rows[i].url, visible=True))
            url_removes.append(gr.update(visible=mode is Mode.MULTI))
        else:
            url_boxes.append(gr.update(value="", visible=False))
            url_removes.append(gr.update(visible=False))

    ready = can_submit(state) and not state.loading

    return (
        gr.update(value=mode.value),
        gr.update(visible=mode is not Mode.TEXT and not single_selected),
        gr.update(visible=mode is Mode.MULTI and len(state.url_items) < MAX_URL_ROWS),
        *url_boxes,
        *url_removes,
        gr.update(value=[(item.url, item.name) for item in sources] or None, visible=bool(sources)),
        gr.update(visible=bool(sources)),
        gr.update(interactive=ready, value="Generating…" if state.loading else "Generate"),
        gr.update(value=f"**Error:** {state.error}" if state.error else "", visible=bool(state.error)),
        gr.update(visible=bool(state.error)),
        gr.update(value=list(state.images) or None, visible=bool(state.images)),
        gr.update(visible=bool(state.images)),
        gr.update(value=[entry.url for entry in state.history] or None, visible=bool(state.history)),
        gr.update(visible=bool(state.history)),
    )


def _view(state: StudioState) -> tuple:
    return (state, *render_view(state))


def _view_with_history(state: StudioState) -> tuple:
    return (state, dump_history(state.history), *render_view(state))


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


def change_mode_handler(mode: str, state: StudioState) -> tuple:
    """Switch between text, single-image and multi-image generation."""
    state = initialize_studio_state(state)
    state = change_mode(state, mode)
    logger.info(f"Mode changed to {state.mode.value}")
    return _view(state)


def prompt_changed_handler(prompt: str, state: StudioState) -> tuple:
    """Store the prompt and refresh the generate button only."""
    state = set_prompt(initialize_studio_state(state), prompt)
    return state, gr.update(interactive=can_submit(state) and not state.loading)


def size_changed_handler(size: str, state: StudioState) -> StudioState:
    return set_size(initialize_studio_state(state), size)


def add_files_handler(paths: list[str] | None, state: StudioState) -> tuple:
    """Take files from the upload widget and clear the widget.

    Returns:
        Tuple of (state, upload_reset, *view)
    """
    state = initialize_studio_state(state)
    try:
        state = add_files(state, paths or [])
    except OSError as e:
        logger.error(f"Could not read selected files: {e}", exc_info=True)
        state = fail_generation(state, f"Could not read selected files: {e}")
    return (state, None, *render_view(state))


def add_url_handler(state: StudioState) -> tuple:
    return _view(add_url_row(initialize_studio_state(state)))


def change_url_handler(index: int, value: str, state: StudioState) -> tuple:
    """Apply the edit of the *index*-th visible URL row."""
    state = initialize_studio_state(state)
    rows = visible_url_rows(state)
    if index < len(rows):
        state = change_url(state, rows[index].id, value)
    return _view(state)


def url_typed_handler(index: int, value: str, state: StudioState) -> tuple:
    """Track a URL row keystroke by keystroke and refresh the generate button only.

    Returns:
        Tuple of (state, generate_button_update)
    """
    state = initialize_studio_state(state)
    rows = visible_url_rows(state)
    if index < len(rows):
        state = type_url(state, rows[index].id, value)
    return state, gr.update(interactive=can_submit(state) and not state.loading)


def remove_url_handler(index: int, state: StudioState) -> tuple:
    state = initialize_studio_state(state)
    rows = visible_url_rows(state)
    if index < len(rows):
        state = remove_url(state, rows[index].id)
    return _view(state)


# ---------------------------------------------------------------------------
# Source previews
# ---------------------------------------------------------------------------


def select_source_handler(state: StudioState, evt: gr.SelectData) -> StudioState:
    """Remember which preview was clicked."""
    sources = merged_sources(state)
    if evt.index is not None and 0 <= evt.index < len(sources):
        state.selected_source = sources[evt.index].key
    return state


def move_source_handler(offset: int, state: StudioState) -> tuple:
    """Move the selected preview one place earlier (-1) or later (+1)."""
    state = initialize_studio_state(state)
    if state.selected_source:
        state = move_source(state, state.selected_source, offset)
    return _view(state)


def remove_selected_source_handler(state: StudioState) -> tuple:
    """Remove the selected preview, or the only one when nothing is selected."""
    state = initialize_studio_state(state)
    key = state.selected_source
    if key is None:
        sources = merged_sources(state)
        key = sources[0].key if len(sources) == 1 else None
    if key:
        state = remove_source(state, key)
    return _view(state)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


def generate_handler(prompt: str, size: str, state: StudioState):
    """Validate, submit and render the outcome.

    A generator: the first yield disables the generate button while the
    request is outstanding, the second shows results or the error.

    Yields:
        Tuples of (state, history_json, *view)
    """
    state = initialize_studio_state(state)
    state = set_size(set_prompt(state, prompt), size)

    try:
        submission = build_submission(state)
    except ValidationError as e:
        state = fail_generation(state, str(e))
        yield _view_with_history(state)
        return

    state = begin_generation(state)
    yield _view_with_history(state)

    try:
        result = get_client().generate(submission)
    except GenerationRequestError as e:
        logger.warning(f"Generation failed: {e}")
        state = fail_generation(state, str(e))
    except Exception as e:
        logger.error(f"Unexpected error during generation: {e}", exc_info=True)
        state = fail_generation(state, f"Unexpected error: {e}")
    else:
        state = apply_generation_result(state, result.images)

    yield _view_with_history(state)


def dismiss_error_handler(state: StudioState) -> tuple:
    return _view(dismiss_error(initialize_studio_state(state)))


def clear_handler(state: StudioState) -> tuple:
    """Clear results, files and URLs (the prompt and history are kept)."""
    return _view(clear_results(initialize_studio_state(state)))


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


def select_result_handler(state: StudioState, evt: gr.SelectData) -> StudioState:
    if evt.index is not None and 0 <= evt.index < len(state.images):
        state.selected_image = state.images[evt.index]
    return state


def continue_result_handler(mode: str, state: StudioState) -> tuple:
    """Feed the selected result back in as a single or additional input."""
    state = initialize_studio_state(state)
    if not state.selected_image and state.images:
        state.selected_image = state.images[0]
    if state.selected_image:
        state = continue_editing(state, state.selected_image, mode)
    return _view(state)


def download_result_handler(state: StudioState) -> tuple:
    """Download the selected result so the browser can save it.

    Returns:
        Tuple of (state, file_update, *view)
    """
    state = initialize_studio_state(state)
    url = state.selected_image or (state.images[0] if state.images else None)
    if not url:
        return (state, gr.update(visible=False), *render_view(state))

    try:
        path = get_client().download(url, config.downloads_dir)
    except GenerationRequestError as e:
        state = fail_generation(state, str(e))
        return (state, gr.update(visible=False), *render_view(state))
    return (state, gr.update(value=str(path), visible=True), *render_view(state))


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


def load_history_handler(stored, state: StudioState) -> tuple:
    """Restore history from browser storage on page load."""
    state = restore_history(initialize_studio_state(state), stored)
    logger.info(f"Restored {len(state.history)} history entries")
    return _view_with_history(state)


def select_history_handler(state: StudioState, evt: gr.SelectData) -> StudioState:
    if evt.index is not None and 0 <= evt.index < len(state.history):
        state.selected_history = state.history[evt.index].id
    return state


def _selected_history_url(state: StudioState) -> str | None:
    entry = next((e for e in state.history if e.id == state.selected_history), None)
    return entry.url if entry else None


def continue_history_handler(mode: str, state: StudioState) -> tuple:
    state = initialize_studio_state(state)
    url = _selected_history_url(state)
    if url:
        state = continue_editing(state, url, mode)
    return _view(state)


def delete_history_handler(state: StudioState) -> tuple:
    state = initialize_studio_state(state)
    if state.selected_history:
        state = delete_history_entry(state, state.selected_history)
        state.selected_history = None
    return _view_with_history(state)


def clear_history_handler(state: StudioState) -> tuple:
    state = reset_history(initialize_studio_state(state))
    state.selected_history = None
    return _view_with_history(state)
