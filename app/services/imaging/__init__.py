"""
Image Service Factory

Usage:
    from app.services.imaging import get_image_service

    service = get_image_service()
    result = await service.generate(prompt)

Environment Switching:
    - ENV_MODE=development -> MockImageService (no API calls)
    - ENV_MODE=staging/production -> GatewayImageService
"""

import logging
from functools import lru_cache

from app.core.config import get_settings
from app.services.imaging.base import BaseImageService, ImageResult
from app.services.imaging.gateway import GatewayImageService
from app.services.imaging.mock import MockImageService
from app.services.imaging.prompt import (
    VALID_CATEGORIES,
    ImageRequest,
    build_prompt,
    validate_image_request,
)

logger = logging.getLogger(__name__)


@lru_cache()
def get_image_service() -> BaseImageService:
    """Get the configured image service instance (cached)."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Image Service: Using MockImageService (development mode)")
        return MockImageService()

    logger.info(f"Image Service: Using GatewayImageService ({settings.env_mode.value} mode)")
    return GatewayImageService()


def reset_image_service() -> None:
    """Clear the cached image service instance."""
    get_image_service.cache_clear()
    logger.debug("Image service cache cleared")


__all__ = [
    "get_image_service",
    "reset_image_service",
    "BaseImageService",
    "ImageResult",
    "MockImageService",
    "GatewayImageService",
    "ImageRequest",
    "VALID_CATEGORIES",
    "build_prompt",
    "validate_image_request",
]
