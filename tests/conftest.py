"""Shared pytest fixtures for Ark Image Studio tests."""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import httpx
import pytest
from fastapi.testclient import TestClient

from arkstudio.core.config import ArkStudioConfig
from arkstudio.core.provider import ArkClient
from arkstudio.core.storage import UploadStore
from arkstudio.ui.models import StudioState
from arkstudio.ui.previews import PreviewCache

# Smallest valid PNG (1x1, transparent)
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)

PUBLIC_BASE_URL = "https://studio.example.com"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> ArkStudioConfig:
    """Create a test configuration with temporary directories.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        ArkStudioConfig instance for testing
    """
    return ArkStudioConfig(
        ark_api_key="test-key",
        ark_url="https://ark.test/api/v3/images/generations",
        uploads_dir=temp_dir / "uploads",
        previews_dir=temp_dir / "previews",
        downloads_dir=temp_dir / "downloads",
        public_base_url=PUBLIC_BASE_URL,
        _env_file=None,
    )


@pytest.fixture
def png_bytes() -> bytes:
    """Contents of a valid 1x1 PNG."""
    return PNG_BYTES


@pytest.fixture
def image_files(temp_dir: Path) -> list[Path]:
    """Write three small PNG files, standing in for files Gradio uploaded.

    Returns:
        Paths to cat.png, dog.png and bird.png
    """
    source_dir = temp_dir / "selected"
    source_dir.mkdir()
    paths = []
    for name in ("cat.png", "dog.png", "bird.png"):
        path = source_dir / name
        path.write_bytes(PNG_BYTES)
        paths.append(path)
    return paths


@pytest.fixture
def studio_state(test_config: ArkStudioConfig) -> StudioState:
    """Create a UI state whose previews live in the test directory.

    Returns:
        StudioState instance
    """
    state = StudioState()
    state.previews = PreviewCache(test_config.previews_dir)
    return state


class FakeProvider:
    """Records provider requests and answers with a canned response.

    Attributes:
        requests: Decoded JSON bodies of every request received.
        headers: Headers of the last request.
        status_code: Status of the canned response.
        body: Body of the canned response.
    """

    def __init__(self):
        self.requests: list[dict] = []
        self.headers: httpx.Headers | None = None
        self.status_code = 200
        self.body: object = {
            "model": "doubao-seedream-4-0-250828",
            "created": 1757321139,
            "data": [
                {"url": "https://cdn.example.com/result-1.png", "size": "2048x2048"},
                {"url": "https://cdn.example.com/result-2.png", "size": "2048x2048"},
            ],
            "usage": {"generated_images": 2},
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        self.headers = request.headers
        if isinstance(self.body, str):
            return httpx.Response(self.status_code, text=self.body)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def payload(self) -> dict:
        """Body of the most recent request."""
        return self.requests[-1]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def test_client(test_config: ArkStudioConfig, fake_provider: FakeProvider) -> Generator[TestClient, None, None]:
    """FastAPI TestClient with the provider and upload storage replaced.

    The application's lifespan runs normally; afterwards the provider client
    is swapped for one backed by :class:`FakeProvider` and uploads are
    written below the test directory.

    Yields:
        TestClient bound to the application
    """
    from arkstudio.api.main import app

    with TestClient(app) as client:
        app.state.ark_client = ArkClient(test_config, transport=fake_provider.transport())
        app.state.upload_store = UploadStore(test_config.uploads_dir, test_config.public_base_url)
        yield client
