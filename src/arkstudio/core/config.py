"""Configuration management for Ark Image Studio.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the ARKSTUDIO_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (ARKSTUDIO_* prefix)
2. .env file in the project root
3. Default values defined in ArkStudioConfig

The provider credential is the one exception to the prefix rule: it is read
from ``ARKSTUDIO_ARK_API_KEY`` or, for compatibility with existing Volcengine
deployments, from ``VOLC_API_KEY``.

Example .env file:
    VOLC_API_KEY=ark-xxxxxxxx
    ARKSTUDIO_PUBLIC_BASE_URL=https://studio.example.com
    ARKSTUDIO_REQUEST_TIMEOUT=60

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
This ensures a single source of truth for all configuration values across
the application.

Usage Example
-------------
    from arkstudio.core.config import config

    print(config.ark_url)
    print(config.uploads_dir)

Upload Storage
--------------
Uploaded reference images must be reachable by the provider, so they are
written to ``uploads_dir`` and served back under ``/uploads``.  The public
URL of that mount is built from ``public_base_url``.  When
``public_base_url`` is unset, upload storage is considered "not configured"
and the API answers file uploads with 501; image URLs still work.

Directory Management
--------------------
The configuration automatically creates required directories on initialization:
- uploads_dir: Stored reference images served to the provider
- previews_dir: Session-owned preview copies of locally selected files
- downloads_dir: Generated images fetched for download from the UI
"""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Allowed provider resolutions and the fallback used for anything else.
ALLOWED_SIZES = ("1K", "2K", "4K")
DEFAULT_SIZE = "2K"

DEFAULT_MODEL = "doubao-seedream-4-0-250828"
ARK_GENERATIONS_URL = "https://ark.cn-beijing.volces.com/api/v3/images/generations"


class ArkStudioConfig(BaseSettings):
    """Main configuration for Ark Image Studio.

    This class uses Pydantic Settings to manage all application configuration.
    Values are loaded from environment variables with the ARKSTUDIO_ prefix,
    with fallback to defaults defined here.

    All Path fields are created if they don't exist.

    Attributes
    ----------
    Provider Settings:
        ark_api_key : str
            Bearer credential for the generation provider
        ark_url : str
            Provider image generation endpoint
        default_model : str
            Model identifier used when a submission omits one
        request_timeout : float
            Seconds to wait for the provider before giving up

    Upload Storage:
        uploads_dir : Path
            Directory where uploaded reference images are stored
        public_base_url : str | None
            Externally reachable base URL of this server; ``None`` disables
            file uploads

    UI Settings:
        previews_dir : Path
            Directory for preview copies of locally selected files
        downloads_dir : Path
            Directory for generated images downloaded through the UI
        api_base_url : str
            Base URL the UI posts submissions to
        gradio_server_name : str
            Gradio bind address
        gradio_server_port : int
            Gradio port (1024-65535)
        gradio_share : bool
            Create public gradio.live link (keep False for local-only)

    API Server:
        server_host : str
            uvicorn bind address
        server_port : int
            uvicorn port (1024-65535)

    Examples
    --------
    Create a custom configuration:

        >>> custom_config = ArkStudioConfig(
        ...     ark_api_key="test-key",
        ...     public_base_url="https://studio.example.com",
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ARKSTUDIO_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Provider settings
    ark_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("ARKSTUDIO_ARK_API_KEY", "VOLC_API_KEY"),
        description="Bearer credential for the image generation provider",
    )
    ark_url: str = Field(
        default=ARK_GENERATIONS_URL,
        description="Provider image generation endpoint",
    )
    default_model: str = Field(
        default=DEFAULT_MODEL,
        description="Model identifier used when the submission does not name one",
    )
    request_timeout: float = Field(
        default=60.0,
        description="Provider request timeout in seconds",
        gt=0,
    )

    # Upload storage
    uploads_dir: Path = Field(
        default=Path("uploads"),
        description="Directory for uploaded reference images",
    )
    public_base_url: str | None = Field(
        default=None,
        description="Public base URL of this server (unset disables file uploads)",
    )

    # UI paths
    previews_dir: Path = Field(
        default=Path("previews"),
        description="Directory for preview copies of selected files",
    )
    downloads_dir: Path = Field(
        default=Path("downloads"),
        description="Directory for downloaded results",
    )

    # API server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="API server bind address",
    )
    server_port: int = Field(
        default=8000,
        description="API server port",
        ge=1024,
        le=65535,
    )

    # UI settings
    api_base_url: str = Field(
        default="http://127.0.0.1:8000",
        description="Base URL of the generation API used by the UI",
    )
    gradio_server_name: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    gradio_server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )
    gradio_share: bool = Field(
        default=False,
        description="Create public gradio.live link (keep False for local-only)",
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create required directories.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        self.previews_dir.mkdir(parents=True, exist_ok=True)
        self.downloads_dir.mkdir(parents=True, exist_ok=True)

    @property
    def uploads_configured(self) -> bool:
        """Whether stored uploads can be turned into provider-reachable URLs."""
        return bool(self.public_base_url)


# Global configuration instance
# Loads values from environment variables (ARKSTUDIO_* prefix) and .env file.
config = ArkStudioConfig()
