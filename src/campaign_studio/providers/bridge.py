"""Token bridge image provider.

The bridge is a local HTTP relay in front of an alternate image service. It
accepts a bearer token issued to the user and answers with a batch of image
URLs (or data URIs).
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import httpx

from ..config import DEFAULT_BRIDGE_URL
from .common import ProviderError

LOG = logging.getLogger(__name__)

BRIDGE_ASPECT_RATIO = "9:16"
BRIDGE_IMAGE_COUNT = 2


class HttpBridgeImageProvider:
    def __init__(
        self,
        base_url: str = DEFAULT_BRIDGE_URL,
        *,
        timeout: float = 120.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/v1/generate"

    def generate_images(self, prompt: str, token: str) -> List[str]:
        payload = {"prompt": prompt, "aspect_ratio": BRIDGE_ASPECT_RATIO, "image_count": BRIDGE_IMAGE_COUNT}
        headers = {"Authorization": f"Bearer {token}"}
        client = self._client or httpx.Client(timeout=self.timeout)
        try:
            response = client.post(self.endpoint, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Bridge request failed: {exc}") from exc
        finally:
            if self._client is None:
                client.close()

        if response.status_code < 200 or response.status_code >= 300:
            raise ProviderError(_failure_message(response))

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError("Bridge returned a non-JSON response.") from exc
        images = _extract_images(data)
        LOG.debug("Bridge returned %d image(s)", len(images))
        return images


def _failure_message(response: httpx.Response) -> str:
    fallback = f"API Request failed with status {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return fallback


def _extract_images(data: Any) -> List[str]:
    if not isinstance(data, dict):
        return []
    items = data.get("images") or data.get("results") or []
    if not isinstance(items, list):
        return []
    return [str(item) for item in items if item]


__all__ = ["HttpBridgeImageProvider", "DEFAULT_BRIDGE_URL"]
