"""Gradio UI for Ark Image Studio."""

import logging
from functools import partial

import gradio as gr

from arkstudio.core.config import DEFAULT_SIZE, config

from .handlers import (
    MAX_URL_ROWS,
    add_files_handler,
    add_url_handler,
    change_mode_handler,
    change_url_handler,
    clear_handler,
    clear_history_handler,
    continue_history_handler,
    continue_result_handler,
    delete_history_handler,
    dismiss_error_handler,
    download_result_handler,
    generate_handler,
    load_history_handler,
    move_source_handler,
    prompt_changed_handler,
    remove_selected_source_handler,
    remove_url_handler,
    select_history_handler,
    select_result_handler,
    select_source_handler,
    size_changed_handler,
    url_typed_handler,
)
from .models import HISTORY_KEY, MODE_LABELS, SIZES, Mode, StudioState
from .state import release_session

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_ui() -> gr.Blocks:
    """Build the studio page.

    Returns:
        Gradio Blocks app
    """
    app = gr.Blocks(title="Ark Image Studio")

    with app:
        # Session state - one instance per user; previews are deleted with it
        studio_state = gr.State(StudioState(), delete_callback=release_session)
        # Survives reloads; written whenever history changes
        history_store = gr.BrowserState([], storage_key=HISTORY_KEY)

        gr.Markdown(
            """
            # Ark Image Studio
            ### Text-to-image and image-to-image generation with Seedream
            """
        )

        with gr.Row():
            with gr.Column(scale=1):
                mode_radio = gr.Radio(
                    choices=[(label, mode.value) for mode, label in MODE_LABELS.items()],
                    value=Mode.TEXT.value,
                    label="Mode",
                )
                prompt_box = gr.Textbox(
                    label="Prompt",
                    placeholder="Describe the image you want...",
                    lines=4,
                )
                size_dropdown = gr.Dropdown(choices=SIZES, value=DEFAULT_SIZE, label="Size")

                with gr.Group(visible=False) as inputs_group:
                    file_input = gr.File(
                        label="Reference images (drop or click to choose)",
                        file_count="multiple",
                        file_types=["image"],
                        type="filepath",
                    )
                    url_boxes = []
                    url_removes = []
                    for i in range(MAX_URL_ROWS):
                        with gr.Row():
                            url_boxes.append(
                                gr.Textbox(
                                    label="Image URL",
                                    placeholder="https://...",
                                    visible=i == 0,
                                    scale=5,
                                )
                            )
                            url_removes.append(gr.Button("Remove", visible=False, size="sm", scale=1))
                    add_url_btn = gr.Button("Add URL", visible=False, size="sm")

                sources_gallery = gr.Gallery(
                    label="Input images (click to select)",
                    columns=4,
                    height=200,
                    object_fit="cover",
                    visible=False,
                )
                with gr.Row(visible=False) as source_controls:
                    move_earlier_btn = gr.Button("◀ Earlier", size="sm")
                    move_later_btn = gr.Button("Later ▶", size="sm")
                    remove_source_btn = gr.Button("Remove", size="sm", variant="stop")

                with gr.Row():
                    generate_btn = gr.Button("Generate", variant="primary", interactive=False)
                    clear_btn = gr.Button("Clear")

                error_md = gr.Markdown(visible=False)
                dismiss_btn = gr.Button("Dismiss", size="sm", visible=False)

            with gr.Column(scale=1):
                results_gallery = gr.Gallery(
                    label="Results",
                    columns=2,
                    height=420,
                    object_fit="contain",
                    visible=False,
                )
                with gr.Row(visible=False) as result_actions:
                    result_single_btn = gr.Button("Edit as single image", size="sm")
                    result_multi_btn = gr.Button("Add to multi-image", size="sm")
                    download_btn = gr.Button("Download", size="sm")
                download_file = gr.File(label="Download", visible=False, interactive=False)

                gr.Markdown("### History")
                history_gallery = gr.Gallery(
                    label="History",
                    columns=6,
                    height=240,
                    object_fit="cover",
                    visible=False,
                )
                with gr.Row(visible=False) as history_actions:
                    history_single_btn = gr.Button("Edit as single image", size="sm")
                    history_multi_btn = gr.Button("Add to multi-image", size="sm")
                    delete_history_btn = gr.Button("Delete", size="sm")
                    clear_history_btn = gr.Button("Clear history", size="sm", variant="stop")

        # Order matches handlers.render_view()
        view = [
            mode_radio,
            inputs_group,
            add_url_btn,
            *url_boxes,
            *url_removes,
            sources_gallery,
            source_controls,
            generate_btn,
            error_md,
            dismiss_btn,
            results_gallery,
            result_actions,
            history_gallery,
            history_actions,
        ]
        state_view = [studio_state, *view]
        history_view = [studio_state, history_store, *view]

        # Inputs
        mode_radio.input(fn=change_mode_handler, inputs=[mode_radio, studio_state], outputs=state_view)
        prompt_box.change(
            fn=prompt_changed_handler,
            inputs=[prompt_box, studio_state],
            outputs=[studio_state, generate_btn],
        )
        size_dropdown.change(fn=size_changed_handler, inputs=[size_dropdown, studio_state], outputs=[studio_state])
        file_input.upload(
            fn=add_files_handler,
            inputs=[file_input, studio_state],
            outputs=[studio_state, file_input, *view],
        )
        add_url_btn.click(fn=add_url_handler, inputs=[studio_state], outputs=state_view)
        for i, (box, remove) in enumerate(zip(url_boxes, url_removes)):
            box.input(
                fn=partial(url_typed_handler, i),
                inputs=[box, studio_state],
                outputs=[studio_state, generate_btn],
                trigger_mode="always_last",
                show_progress="hidden",
            )
            box.blur(fn=partial(change_url_handler, i), inputs=[box, studio_state], outputs=state_view)
            box.submit(fn=partial(change_url_handler, i), inputs=[box, studio_state], outputs=state_view)
            remove.click(fn=partial(remove_url_handler, i), inputs=[studio_state], outputs=state_view)

        # Source previews
        sources_gallery.select(fn=select_source_handler, inputs=[studio_state], outputs=[studio_state])
        move_earlier_btn.click(fn=partial(move_source_handler, -1), inputs=[studio_state], outputs=state_view)
        move_later_btn.click(fn=partial(move_source_handler, 1), inputs=[studio_state], outputs=state_view)
        remove_source_btn.click(fn=remove_selected_source_handler, inputs=[studio_state], outputs=state_view)

        # Generation
        generate_btn.click(
            fn=generate_handler,
            inputs=[prompt_box, size_dropdown, studio_state],
            outputs=history_view,
        )
        clear_btn.click(fn=clear_handler, inputs=[studio_state], outputs=state_view)
        dismiss_btn.click(fn=dismiss_error_handler, inputs=[studio_state], outputs=state_view)

        # Results
        results_gallery.select(fn=select_result_handler, inputs=[studio_state], outputs=[studio_state])
        result_single_btn.click(
            fn=partial(continue_result_handler, Mode.SINGLE.value),
            inputs=[studio_state],
            outputs=state_view,
        )
        result_multi_btn.click(
            fn=partial(continue_result_handler, Mode.MULTI.value),
            inputs=[studio_state],
            outputs=state_view,
        )
        download_btn.click(
            fn=download_result_handler,
            inputs=[studio_state],
            outputs=[studio_state, download_file, *view],
        )

        # History
        history_gallery.select(fn=select_history_handler, inputs=[studio_state], outputs=[studio_state])
        history_single_btn.click(
            fn=partial(continue_history_handler, Mode.SINGLE.value),
            inputs=[studio_state],
            outputs=state_view,
        )
        history_multi_btn.click(
            fn=partial(continue_history_handler, Mode.MULTI.value),
            inputs=[studio_state],
            outputs=state_view,
        )
        delete_history_btn.click(fn=delete_history_handler, inputs=[studio_state], outputs=history_view)
        clear_history_btn.click(fn=clear_history_handler, inputs=[studio_state], outputs=history_view)

        app.load(fn=load_history_handler, inputs=[history_store, studio_state], outputs=history_view)

    return app


def main():
    """Main entry point for the UI."""
    logger.info("Starting Ark Image Studio UI...")
    logger.info(f"Configuration: {config.model_dump(exclude={'ark_api_key'})}")

    app = create_ui()

    logger.info(f"Launching Gradio UI on {config.gradio_server_name}:{config.gradio_server_port}")
    logger.info(f"Submitting to API at {config.api_base_url}")

    app.launch(
        server_name=config.gradio_server_name,
        server_port=config.gradio_server_port,
        share=config.gradio_share,
        show_error=True,
        inbrowser=False,
        allowed_paths=[str(config.previews_dir), str(config.downloads_dir)],
    )


if __name__ == "__main__":
    main()
