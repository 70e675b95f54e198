"""
Image Service Abstract Base Class

Defines the interface shared by MockImageService and GatewayImageService
so the menu image workflow does not care which provider is active.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


# User-facing messages for image generation failures
GENERATION_FAILED = "Failed to generate image. Please try again."
RATE_LIMITED = "Service temporarily unavailable. Please try again later."
SERVICE_UNAVAILABLE = "Service temporarily unavailable. Please contact support."


@dataclass
class ImageResult:
    """
    A generated image.

    Attributes:
        data: Raw image bytes
        content_type: MIME type of ``data``
        provider: Name of the service that produced the image
        response_time_ms: Time spent waiting on the provider
    """
    data: bytes
    content_type: str = "image/png"
    provider: str = "unknown"
    response_time_ms: float = 0.0


class BaseImageService(ABC):
    """Interface for image generation providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Short provider identifier used in logs and health output."""

    @abstractmethod
    async def generate(self, prompt: str) -> ImageResult:
        """
        Produce one image for ``prompt``.

        Raises:
            UpstreamError: With the status the caller should return
                (429 rate limited, 402 credits exhausted, 503 not
                configured, 500 anything else)
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True if the provider is usable."""
