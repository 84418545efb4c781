"""Ark Image Studio — FastAPI request translator.

This package contains the FastAPI application, the Pydantic request/response
models, and the logic that turns a submission into a provider payload.

Modules
-------
main
    FastAPI application with the route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic models for API request and response validation.
translator
    Submission parsing, validation and provider payload construction.
"""
