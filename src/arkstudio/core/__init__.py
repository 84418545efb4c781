"""Core functionality shared by the API and the UI.

- **ArkStudioConfig / config**: Pydantic Settings configuration (ARKSTUDIO_ prefix)
- **ArkClient**: async client for the provider's generation endpoint
- **UploadStore**: file-backed storage that turns uploads into public URLs
"""

from arkstudio.core.config import ALLOWED_SIZES, DEFAULT_SIZE, ArkStudioConfig, config
from arkstudio.core.provider import ArkClient, ProviderError, ProviderResult
from arkstudio.core.storage import StorageNotConfiguredError, UploadStore

__all__ = [
    "ALLOWED_SIZES",
    "DEFAULT_SIZE",
    "ArkClient",
    "ArkStudioConfig",
    "ProviderError",
    "ProviderResult",
    "StorageNotConfiguredError",
    "UploadStore",
    "config",
]
