"""Client for the Volcengine Ark image generation endpoint.

The provider is treated as an opaque collaborator: this module only knows how
to POST a JSON payload with a bearer credential, how to tell success from
failure, and where the result URLs live in a successful response body.

Success bodies look like::

    {"model": "...", "created": 1757321139,
     "data": [{"url": "https://...", "size": "2048x2048"}],
     "usage": {...}}

Failure bodies carry an ``error`` object, which is relayed verbatim to the
caller together with the provider's HTTP status code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from arkstudio.core.config import ArkStudioConfig

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """The provider answered with a non-2xx status.

    Attributes:
        status_code: HTTP status returned by the provider.
        body: Parsed JSON body when available, otherwise the raw text.
    """

    def __init__(self, status_code: int, body: Any):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Provider returned HTTP {status_code}")

    @property
    def error(self) -> Any:
        """The ``error`` member of the body, or the whole body if absent."""
        if isinstance(self.body, dict) and self.body.get("error"):
            return self.body["error"]
        return self.body


@dataclass
class ProviderResult:
    """Successful provider response.

    Attributes:
        images: Result image URLs in provider order.
        raw: The full decoded response body.
    """

    images: list[str] = field(default_factory=list)
    raw: Any = None


def extract_image_urls(body: Any) -> list[str]:
    """Pull the result URLs out of a provider response body.

    Entries without a ``url`` are skipped; a body without a ``data`` list
    yields an empty list.
    """
    if not isinstance(body, dict):
        return []
    data = body.get("data")
    if not isinstance(data, list):
        return []
    return [item["url"] for item in data if isinstance(item, dict) and item.get("url")]


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class ArkClient:
    """Async HTTP client for the generation endpoint.

    One instance is created per application lifespan and reused across
    requests so the underlying connection pool is shared.

    Args:
        config: Application configuration supplying the endpoint, the
            credential and the timeout.
        transport: Optional httpx transport, used by tests to substitute a
            ``httpx.MockTransport``.
    """

    def __init__(self, config: ArkStudioConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.url = config.ark_url
        self._api_key = config.ark_api_key
        self._client = httpx.AsyncClient(timeout=config.request_timeout, transport=transport)

        if not self._api_key:
            logger.warning("No provider API key configured; requests will be rejected upstream")

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    async def generate(self, payload: dict) -> ProviderResult:
        """Submit a generation payload and wait for the complete response.

        Args:
            payload: Provider request body built by the request translator.

        Returns:
            The extracted image URLs and the raw response body.

        Raises:
            ProviderError: The provider answered with a non-2xx status.
            httpx.HTTPError: The request could not be completed.
        """
        logger.info(
            f"Calling provider: model={payload.get('model')} size={payload.get('size')} "
            f"images={_count_images(payload)}"
        )
        response = await self._client.post(self.url, json=payload, headers=self._headers())
        body = _decode_body(response)

        if response.is_error:
            logger.warning(f"Provider failed with HTTP {response.status_code}: {body}")
            raise ProviderError(response.status_code, body)

        images = extract_image_urls(body)
        logger.info(f"Provider returned {len(images)} image(s)")
        return ProviderResult(images=images, raw=body)

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()


def _count_images(payload: dict) -> int:
    image = payload.get("image")
    if image is None:
        return 0
    return len(image) if isinstance(image, list) else 1
