"""
Mock Image Service Implementation

Returns a fixed 1x1 PNG without calling the AI gateway. Used in development
mode (ENV_MODE=development) and in tests so the menu image workflow can run
offline and for free.
"""

import asyncio
import base64
import logging
from typing import Optional

from app.core.errors import UpstreamError
from app.services.imaging.base import (
    GENERATION_FAILED,
    BaseImageService,
    ImageResult,
)

logger = logging.getLogger(__name__)

# 1x1 transparent PNG
PLACEHOLDER_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class MockImageService(BaseImageService):
    """
    Mock image provider.

    Attributes:
        latency: Simulated provider latency in seconds
        fail_with: When set, every call raises UpstreamError with this status
        prompts: Every prompt received, for inspection in tests
    """

    def __init__(self, latency: float = 0.0, fail_with: Optional[int] = None):
        self.latency = latency
        self.fail_with = fail_with
        self.prompts: list[str] = []

    @property
    def provider_name(self) -> str:
        return "mock"

    async def generate(self, prompt: str) -> ImageResult:
        self.prompts.append(prompt)
        logger.info(f"Mock: Generating image ({len(prompt)} char prompt)")

        if self.latency:
            await asyncio.sleep(self.latency)

        if self.fail_with is not None:
            raise UpstreamError(GENERATION_FAILED, status_code=self.fail_with)

        return ImageResult(
            data=PLACEHOLDER_PNG,
            provider=self.provider_name,
            response_time_ms=self.latency * 1000,
        )

    async def health_check(self) -> bool:
        return True
