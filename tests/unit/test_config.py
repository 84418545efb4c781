"""Tests for arkstudio.core.config — configuration management.

Tests cover:
- Default values for provider and server settings.
- Environment variable overrides via the ARKSTUDIO_ prefix.
- The VOLC_API_KEY credential alias.
- Automatic directory creation on initialisation.
- Pydantic validation constraints (port range, timeout).
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from arkstudio.core.config import (
    ALLOWED_SIZES,
    ARK_GENERATIONS_URL,
    DEFAULT_MODEL,
    DEFAULT_SIZE,
    ArkStudioConfig,
)


def _config(temp_dir: Path, **overrides) -> ArkStudioConfig:
    return ArkStudioConfig(
        uploads_dir=temp_dir / "uploads",
        previews_dir=temp_dir / "previews",
        downloads_dir=temp_dir / "downloads",
        _env_file=None,
        **overrides,
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Remove provider-related variables that could leak in from the shell."""
    for name in (
        "VOLC_API_KEY",
        "ARKSTUDIO_ARK_API_KEY",
        "ARKSTUDIO_ARK_URL",
        "ARKSTUDIO_DEFAULT_MODEL",
        "ARKSTUDIO_PUBLIC_BASE_URL",
        "ARKSTUDIO_SERVER_PORT",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestConfigDefaults:
    """Verify that ArkStudioConfig provides sensible defaults."""

    def test_default_provider_settings(self, clean_env, temp_dir):
        cfg = _config(temp_dir)
        assert cfg.ark_url == ARK_GENERATIONS_URL
        assert cfg.default_model == DEFAULT_MODEL
        assert cfg.ark_api_key == ""
        assert cfg.request_timeout == 60.0

    def test_uploads_disabled_without_public_url(self, clean_env, temp_dir):
        """Upload storage is unconfigured until a public base URL is set."""
        cfg = _config(temp_dir)
        assert cfg.public_base_url is None
        assert cfg.uploads_configured is False

    def test_default_ports(self, clean_env, temp_dir):
        cfg = _config(temp_dir)
        assert cfg.server_port == 8000
        assert cfg.gradio_server_port == 7860

    def test_size_constants(self):
        assert ALLOWED_SIZES == ("1K", "2K", "4K")
        assert DEFAULT_SIZE == "2K"


class TestEnvironmentOverrides:
    """Values are read from ARKSTUDIO_* variables."""

    def test_prefixed_variables(self, clean_env, temp_dir):
        clean_env.setenv("ARKSTUDIO_DEFAULT_MODEL", "seedream-test")
        clean_env.setenv("ARKSTUDIO_PUBLIC_BASE_URL", "https://studio.example.com")

        cfg = _config(temp_dir)

        assert cfg.default_model == "seedream-test"
        assert cfg.uploads_configured is True

    def test_volc_api_key_alias(self, clean_env, temp_dir):
        """The provider credential is also read from VOLC_API_KEY."""
        clean_env.setenv("VOLC_API_KEY", "ark-volc")
        assert _config(temp_dir).ark_api_key == "ark-volc"

    def test_prefixed_api_key(self, clean_env, temp_dir):
        clean_env.setenv("ARKSTUDIO_ARK_API_KEY", "ark-prefixed")
        assert _config(temp_dir).ark_api_key == "ark-prefixed"

    def test_keyword_override(self, clean_env, temp_dir):
        assert _config(temp_dir, ark_api_key="explicit").ark_api_key == "explicit"


class TestDirectoryCreation:
    """Configured directories exist after initialisation."""

    def test_directories_created(self, temp_dir):
        cfg = _config(temp_dir)
        assert cfg.uploads_dir.is_dir()
        assert cfg.previews_dir.is_dir()
        assert cfg.downloads_dir.is_dir()


class TestValidation:
    """Pydantic constraints on configuration values."""

    def test_port_below_range_rejected(self, temp_dir):
        with pytest.raises(ValidationError):
            _config(temp_dir, server_port=80)

    def test_non_positive_timeout_rejected(self, temp_dir):
        with pytest.raises(ValidationError):
            _config(temp_dir, request_timeout=0)
