"""Unit tests for the Gradio event handlers."""

from pathlib import Path
from unittest.mock import Mock, patch

import gradio as gr
import httpx

from arkstudio.ui.client import GenerateClient, GenerationRequestError, GenerationResult
from arkstudio.ui.handlers import (
    MAX_URL_ROWS,
    VIEW_SIZE,
    add_files_handler,
    add_url_handler,
    change_mode_handler,
    change_url_handler,
    clear_history_handler,
    continue_history_handler,
    continue_result_handler,
    delete_history_handler,
    download_result_handler,
    generate_handler,
    load_history_handler,
    move_source_handler,
    remove_selected_source_handler,
    render_view,
    select_history_handler,
    select_result_handler,
    select_source_handler,
    url_typed_handler,
)
from arkstudio.ui.models import Mode
from arkstudio.ui.state import merged_sources

# Positions within render_view()
INPUTS_GROUP = 1
ADD_URL_BUTTON = 2
FIRST_URL_BOX = 3
GENERATE_BUTTON = 3 + 2 * MAX_URL_ROWS + 2
ERROR_MESSAGE = GENERATE_BUTTON + 1
RESULTS_GALLERY = GENERATE_BUTTON + 3
HISTORY_GALLERY = GENERATE_BUTTON + 5


def _select(index: int) -> Mock:
    evt = Mock(spec=gr.SelectData)
    evt.index = index
    return evt


class TestRenderView:
    """Tests for render_view."""

    def test_text_mode_hides_inputs(self, studio_state):
        view = render_view(studio_state)
        assert len(view) == VIEW_SIZE
        assert view[INPUTS_GROUP]["visible"] is False
        assert view[GENERATE_BUTTON]["interactive"] is False

    def test_multi_mode_shows_add_url(self, studio_state):
        studio_state.mode = Mode.MULTI
        view = render_view(studio_state)
        assert view[INPUTS_GROUP]["visible"] is True
        assert view[ADD_URL_BUTTON]["visible"] is True

    def test_generate_enabled_when_valid(self, studio_state):
        studio_state.prompt = "a fox"
        assert render_view(studio_state)[GENERATE_BUTTON]["interactive"] is True

    def test_loading_disables_generate(self, studio_state):
        studio_state.prompt = "a fox"
        studio_state.loading = True
        button = render_view(studio_state)[GENERATE_BUTTON]
        assert button["interactive"] is False
        assert button["value"] == "Generating…"

    def test_error_shown(self, studio_state):
        studio_state.error = "Missing prompt"
        message = render_view(studio_state)[ERROR_MESSAGE]
        assert message["visible"] is True
        assert "Missing prompt" in message["value"]


class TestInputHandlers:
    """Tests for the mode, file and URL handlers."""

    def test_change_mode_returns_state_and_view(self, studio_state):
        result = change_mode_handler("imgs", studio_state)
        assert len(result) == 1 + VIEW_SIZE
        assert result[0].mode is Mode.MULTI

    def test_add_files_clears_upload_widget(self, studio_state, image_files):
        result = add_files_handler([str(p) for p in image_files], studio_state)
        state = result[0]
        assert result[1] is None
        assert len(state.files) == 3
        assert len(result) == 2 + VIEW_SIZE

    def test_change_url_by_visible_index(self, studio_state):
        studio_state.mode = Mode.SINGLE
        result = change_url_handler(0, "https://x.test/a.png", studio_state)
        state = result[0]
        assert state.filled_urls == ["https://x.test/a.png"]
        assert result[1 + FIRST_URL_BOX]["value"] == "https://x.test/a.png"

    def test_change_url_out_of_range_ignored(self, studio_state):
        result = change_url_handler(MAX_URL_ROWS - 1, "https://x.test/a.png", studio_state)
        assert result[0].filled_urls == []

    def test_typing_url_enables_generate(self, studio_state):
        """The button follows keystrokes, before the row loses focus."""
        studio_state.mode = Mode.SINGLE
        studio_state.prompt = "make it blue"

        state, button = url_typed_handler(0, "https://x.test/a.png", studio_state)

        assert state.filled_urls == ["https://x.test/a.png"]
        assert button["interactive"] is True

    def test_typing_keeps_row_positions(self, studio_state):
        studio_state.mode = Mode.MULTI
        add_url_handler(studio_state)
        first, second = studio_state.url_items[:2]

        state = url_typed_handler(1, "https://x.test/b", studio_state)[0]
        state = url_typed_handler(1, "https://x.test/b.png", state)[0]

        assert state.url_items[0] is first
        assert state.url_items[1] is second
        assert second.url == "https://x.test/b.png"
        assert first.url == ""


class TestSourceHandlers:
    """Tests for preview selection, moving and removal."""

    def test_select_then_move(self, studio_state, image_files):
        state = add_files_handler([str(p) for p in image_files], studio_state)[0]

        state = select_source_handler(state, _select(2))
        state = move_source_handler(-1, state)[0]

        assert [item.name for item in merged_sources(state)] == ["cat.png", "bird.png", "dog.png"]

    def test_remove_only_source_without_selection(self, studio_state, image_files):
        state = add_files_handler([str(image_files[0])], studio_state)[0]
        state = remove_selected_source_handler(state)[0]
        assert state.files == []


class TestGenerateHandler:
    """Tests for generate_handler."""

    def test_validation_error_yields_once(self, studio_state):
        with patch("arkstudio.ui.handlers.get_client") as mock_get_client:
            outputs = list(generate_handler("", "2K", studio_state))

        assert len(outputs) == 1
        assert outputs[0][0].error == "Please enter a prompt"
        mock_get_client.assert_not_called()

    def test_success_updates_results_and_history(self, studio_state):
        client = Mock()
        client.generate.return_value = GenerationResult(images=["https://r/1.png"], raw={})

        with patch("arkstudio.ui.handlers.get_client", return_value=client):
            outputs = list(generate_handler("a fox", "4K", studio_state))

        assert len(outputs) == 2
        loading_state = outputs[0]
        assert loading_state[2 + GENERATE_BUTTON]["interactive"] is False

        state, stored_history = outputs[1][0], outputs[1][1]
        assert state.loading is False
        assert state.images == ["https://r/1.png"]
        assert [entry["url"] for entry in stored_history] == ["https://r/1.png"]
        submission = client.generate.call_args.args[0]
        assert submission.prompt == "a fox"
        assert submission.size == "4K"

    def test_request_error_shown(self, studio_state):
        client = Mock()
        client.generate.side_effect = GenerationRequestError("Slow down", 429)

        with patch("arkstudio.ui.handlers.get_client", return_value=client):
            outputs = list(generate_handler("a fox", "2K", studio_state))

        state = outputs[-1][0]
        assert state.error == "Slow down"
        assert state.loading is False
        assert state.history == []

    def test_unreadable_preview_clears_loading(self, studio_state, image_files):
        """A preview deleted behind the session's back becomes a visible error."""
        state = add_files_handler([str(image_files[0])], studio_state)[0]
        Path(state.files[0].path).unlink()
        client = GenerateClient(
            "http://api.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"images": []})),
        )

        with patch("arkstudio.ui.handlers.get_client", return_value=client):
            outputs = list(generate_handler("a fox", "2K", state))

        state = outputs[-1][0]
        assert state.loading is False
        assert state.error.startswith("Could not read cat.png")
        assert outputs[-1][2 + GENERATE_BUTTON]["interactive"] is True

    def test_unexpected_error_clears_loading(self, studio_state):
        client = Mock()
        client.generate.side_effect = RuntimeError("boom")

        with patch("arkstudio.ui.handlers.get_client", return_value=client):
            outputs = list(generate_handler("a fox", "2K", studio_state))

        state = outputs[-1][0]
        assert state.loading is False
        assert state.error == "Unexpected error: boom"


class TestResultHandlers:
    """Tests for continue-editing and download from results."""

    def test_continue_selected_result_as_single(self, studio_state):
        studio_state.images = ["https://r/1.png", "https://r/2.png"]
        state = select_result_handler(studio_state, _select(1))

        state = continue_result_handler("img", state)[0]

        assert state.mode is Mode.SINGLE
        assert state.filled_urls == ["https://r/2.png"]

    def test_continue_defaults_to_first_result(self, studio_state):
        studio_state.images = ["https://r/1.png"]
        state = continue_result_handler("imgs", studio_state)[0]
        assert state.mode is Mode.MULTI
        assert state.filled_urls == ["https://r/1.png"]

    def test_download(self, studio_state, temp_dir):
        studio_state.images = ["https://r/1.png"]
        client = Mock()
        client.download.return_value = temp_dir / "1.png"

        with patch("arkstudio.ui.handlers.get_client", return_value=client):
            result = download_result_handler(studio_state)

        assert result[1]["value"] == str(temp_dir / "1.png")
        assert result[1]["visible"] is True

    def test_download_failure_sets_error(self, studio_state):
        studio_state.images = ["https://r/1.png"]
        client = Mock()
        client.download.side_effect = GenerationRequestError("Download failed: 404")

        with patch("arkstudio.ui.handlers.get_client", return_value=client):
            result = download_result_handler(studio_state)

        assert result[0].error == "Download failed: 404"


class TestHistoryHandlers:
    """Tests for the history handlers."""

    STORED = [
        {"id": "x", "url": "https://r/1.png", "ts": 2},
        {"id": "y", "url": "https://r/2.png", "ts": 1},
    ]

    def test_load_restores_history(self, studio_state):
        result = load_history_handler(self.STORED, studio_state)
        state = result[0]
        assert [e.url for e in state.history] == ["https://r/1.png", "https://r/2.png"]
        assert result[2 + HISTORY_GALLERY]["value"] == ["https://r/1.png", "https://r/2.png"]

    def test_delete_selected_entry(self, studio_state):
        state = load_history_handler(self.STORED, studio_state)[0]
        state = select_history_handler(state, _select(0))

        result = delete_history_handler(state)

        assert [e["url"] for e in result[1]] == ["https://r/2.png"]
        assert result[0].selected_history is None

    def test_continue_from_history(self, studio_state):
        state = load_history_handler(self.STORED, studio_state)[0]
        state = select_history_handler(state, _select(1))

        state = continue_history_handler("imgs", state)[0]

        assert state.mode is Mode.MULTI
        assert state.filled_urls == ["https://r/2.png"]

    def test_clear_history(self, studio_state):
        state = load_history_handler(self.STORED, studio_state)[0]
        result = clear_history_handler(state)
        assert result[0].history == []
        assert result[1] == []
        assert result[2 + HISTORY_GALLERY]["visible"] is False
