"""
AI Gateway Image Service Implementation

Calls an OpenAI-compatible chat completions endpoint that can answer with
images. Used when ENV_MODE=staging or ENV_MODE=production.

Requirements:
    - AI_GATEWAY_API_KEY must be set; without it every call returns 503

Response shape read:
    choices[0].message.images[0].image_url.url = "data:image/png;base64,..."
"""

import base64
import binascii
import logging
import re
import time
from typing import Optional

import httpx

from app.core.config import get_settings
from app.core.errors import UpstreamError
from app.services.imaging.base import (
    GENERATION_FAILED,
    RATE_LIMITED,
    SERVICE_UNAVAILABLE,
    BaseImageService,
    ImageResult,
)

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")


def extract_image_data(payload: dict) -> Optional[str]:
    """Pull the first image data URL out of a completion, if any."""
    try:
        return payload["choices"][0]["message"]["images"][0]["image_url"]["url"]
    except (KeyError, IndexError, TypeError):
        return None


def decode_data_url(data_url: str) -> bytes:
    return base64.b64decode(DATA_URL_PREFIX.sub("", data_url))


class GatewayImageService(BaseImageService):
    """
    Image provider backed by the AI gateway.

    An ``httpx.AsyncClient`` may be injected (tests use ``httpx.MockTransport``);
    otherwise one is created per call.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self._api_key = api_key if api_key is not None else settings.ai_gateway_api_key
        self._url = url or settings.ai_gateway_url
        self._model = model or settings.ai_image_model
        self._timeout = timeout or settings.ai_gateway_timeout
        self._client = client

        if not self._api_key:
            logger.warning("GatewayImageService: AI_GATEWAY_API_KEY not configured")

    @property
    def provider_name(self) -> str:
        return "gateway"

    async def _post(self, body: dict) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        if self._client is not None:
            return await self._client.post(self._url, json=body, headers=headers, timeout=self._timeout)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(self._url, json=body, headers=headers)

    async def generate(self, prompt: str) -> ImageResult:
        if not self._api_key:
            logger.error("Image generation requested but AI_GATEWAY_API_KEY is not configured")
            raise UpstreamError(SERVICE_UNAVAILABLE, status_code=503)

        body = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "modalities": ["image", "text"],
        }

        start = time.perf_counter()
        try:
            response = await self._post(body)
        except httpx.HTTPError as e:
            logger.error(f"AI gateway request failed: {e}")
            raise UpstreamError(GENERATION_FAILED, status_code=500)
        elapsed_ms = (time.perf_counter() - start) * 1000

        if response.status_code == 429:
            logger.warning("AI gateway rate limited the request")
            raise UpstreamError(RATE_LIMITED, status_code=429)
        if response.status_code == 402:
            logger.error("AI gateway credits exhausted")
            raise UpstreamError(SERVICE_UNAVAILABLE, status_code=402)
        if response.is_error:
            logger.error(f"AI gateway error {response.status_code}: {response.text[:500]}")
            raise UpstreamError(GENERATION_FAILED, status_code=500)

        try:
            payload = response.json()
        except ValueError:
            logger.error("AI gateway returned a non-JSON body")
            raise UpstreamError(GENERATION_FAILED, status_code=500)

        data_url = extract_image_data(payload)
        if not data_url:
            logger.error("AI gateway response contained no image")
            raise UpstreamError(GENERATION_FAILED, status_code=500)

        try:
            data = decode_data_url(data_url)
        except (binascii.Error, ValueError):
            logger.error("AI gateway returned an undecodable image")
            raise UpstreamError(GENERATION_FAILED, status_code=500)

        logger.info(f"Gateway: image generated in {elapsed_ms:.0f}ms ({len(data)} bytes)")
        return ImageResult(
            data=data,
            provider=self.provider_name,
            response_time_ms=elapsed_ms,
        )

    async def health_check(self) -> bool:
        # Only configuration is checked; a probe call would cost credits.
        return bool(self._api_key)
