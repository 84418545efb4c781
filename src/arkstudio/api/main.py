"""Ark Image Studio — FastAPI Application.

This module defines the FastAPI ``app`` instance, the REST routes and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
The application is a stateless request translator:

- **Submissions** arrive as ``multipart/form-data`` (with optional files) or
  ``application/json`` and are normalised by :mod:`arkstudio.api.translator`.
- **Uploads** are stored by :class:`~arkstudio.core.storage.UploadStore` and
  served back under ``/uploads`` so the provider can fetch them.
- **Generation** is delegated to the provider through
  :class:`~arkstudio.core.provider.ArkClient`; one request in, one response
  out, no streaming.
- **Errors** of every kind are answered with a JSON ``{"error": ...}`` body;
  nothing escapes to crash the worker.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/api/config``               Sizes, modes and defaults for the UI
POST      ``/api/generate``             Translate and forward a submission
GET       ``/uploads/{name}``           Stored reference images
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    arkstudio

Direct invocation::

    python -m arkstudio.api.main
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from arkstudio import __version__
from arkstudio.api.models import ErrorResponse, GenerateRequest, GenerateResponse
from arkstudio.api.translator import (
    MODES,
    GenerationError,
    Submission,
    SubmissionError,
    build_provider_payload,
    merge_sources,
    store_uploads,
    submission_from_form,
    submission_from_json,
    validate_submission,
)
from arkstudio.core.config import ALLOWED_SIZES, DEFAULT_SIZE, config
from arkstudio.core.provider import ArkClient, ProviderError
from arkstudio.core.storage import UPLOADS_ROUTE, UploadStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Application lifecycle: provider client setup and teardown.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    On startup:
        Creates the shared :class:`ArkClient` and :class:`UploadStore` and
        stores them on ``app.state``.

    On shutdown:
        Closes the provider client's connection pool.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    app.state.ark_client = ArkClient(config)
    app.state.upload_store = UploadStore(config.uploads_dir, config.public_base_url)
    if not config.uploads_configured:
        logger.info("ARKSTUDIO_PUBLIC_BASE_URL is not set; file uploads are disabled.")

    yield

    await app.state.ark_client.aclose()
    logger.info("Provider client closed on shutdown.")


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Ark Image Studio",
    description="Request translator between the studio UI and the Seedream generation API.",
    version=__version__,
    lifespan=lifespan,
)

# Allow cross-origin requests so the UI can be served from a different port.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Stored uploads must be publicly fetchable by the provider.
app.mount(UPLOADS_ROUTE, StaticFiles(directory=str(config.uploads_dir)), name="uploads")


# ---------------------------------------------------------------------------
# Error responses.
# ---------------------------------------------------------------------------


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
    """Render a :class:`GenerationError` as ``{"error": ...}`` with its status."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.error})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Keep routing errors (404, 405, ...) in the same ``{"error": ...}`` shape."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


# ---------------------------------------------------------------------------
# Submission parsing.
# ---------------------------------------------------------------------------


async def _read_submission(request: Request) -> Submission:
    """Parse the request body into a :class:`Submission`.

    Multipart (and url-encoded) bodies are read as forms; every other content
    type is treated as JSON.

    Raises:
        SubmissionError: The form or JSON body is malformed or fails validation.
    """
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" in content_type or "application/x-www-form-urlencoded" in content_type:
        try:
            form = await request.form()
        except StarletteHTTPException as e:
            raise SubmissionError(f"Malformed form body: {e.detail}") from e
        except MultiPartException as e:
            raise SubmissionError(f"Malformed form body: {e.message}") from e
        return await submission_from_form(form, config.default_model)

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SubmissionError("Request body must be JSON or multipart/form-data") from e
    if not isinstance(body, dict):
        raise SubmissionError("Request body must be a JSON object")

    try:
        req = GenerateRequest.model_validate(body)
    except PydanticValidationError as e:
        raise SubmissionError(f"Invalid request: {e.errors(include_url=False)}") from e
    return submission_from_json(req, config.default_model)


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/api/config")
async def get_config() -> dict:
    """Return the values the UI needs to render its controls.

    Returns:
        Dictionary with keys ``version``, ``modes``, ``sizes``,
        ``default_size``, ``default_model`` and ``uploads_enabled``.
    """
    return {
        "version": __version__,
        "modes": list(MODES),
        "sizes": list(ALLOWED_SIZES),
        "default_size": DEFAULT_SIZE,
        "default_model": config.default_model,
        "uploads_enabled": config.uploads_configured,
    }


@app.post(
    "/api/generate",
    response_model=GenerateResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing prompt or images"},
        501: {"model": ErrorResponse, "description": "Upload storage unavailable"},
        500: {"model": ErrorResponse, "description": "Unexpected server error"},
    },
)
async def generate_images(request: Request) -> GenerateResponse:
    """Translate a submission and forward it to the generation provider.

    This endpoint:

    1. Parses the multipart or JSON body into a :class:`Submission`.
    2. Rejects a blank prompt, or an image mode without image sources (400).
    3. Stores uploaded files and converts them to public URLs (501 when
       upload storage is unavailable).
    4. Builds the provider payload (scalar ``image`` for one source, list
       for several) and calls the provider.
    5. Relays provider failures with the provider's status and error body.

    Args:
        request: The raw request; the body format is chosen by content type.

    Returns:
        :class:`GenerateResponse` with the result URLs and the raw provider
        response.

    Raises:
        GenerationError: Rendered as ``{"error": ...}`` by
            :func:`generation_error_handler`.
    """
    try:
        submission = await _read_submission(request)
        validate_submission(submission)

        uploaded = store_uploads(submission.uploads, request.app.state.upload_store)
        images = merge_sources(submission.image_urls, uploaded, submission.source_order)
        payload = build_provider_payload(submission, images)

        result = await request.app.state.ark_client.generate(payload)
    except GenerationError:
        raise
    except ProviderError as e:
        raise GenerationError(e.error, status_code=e.status_code) from e
    except Exception as e:
        logger.error(f"Unexpected error during generation: {e}", exc_info=True)
        raise GenerationError(str(e) or "Internal error") from e

    logger.info(f"Generated {len(result.images)} image(s) in {submission.mode} mode")
    return GenerateResponse(images=result.images, raw=result.raw)


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~arkstudio.core.config.config` (which
    loads from ``ARKSTUDIO_SERVER_HOST`` and ``ARKSTUDIO_SERVER_PORT``
    environment variables).  Defaults to ``0.0.0.0:8000``.

    This function is registered as the ``arkstudio`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    uvicorn.run(
        "arkstudio.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
