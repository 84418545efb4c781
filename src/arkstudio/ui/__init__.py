"""Gradio front end: session state, validation, history and the API client."""
