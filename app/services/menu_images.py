"""
Menu Image Generation

Validates the request, confirms the menu item exists, asks the image
service for a picture, stores it in the menu image bucket and points the
menu item at it.
"""

import logging
import time
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import NotFound, PersistenceFailure, UpstreamError
from app.models import MenuItem
from app.schemas import GenerateImageRequest
from app.services.imaging import (
    BaseImageService,
    build_prompt,
    get_image_service,
    validate_image_request,
)
from app.services.imaging.base import GENERATION_FAILED
from app.services.storage import LocalObjectStorage, StorageError, get_storage

logger = logging.getLogger(__name__)


class MenuImageService:
    """Generate and attach an image to a menu item."""

    def __init__(
        self,
        db: AsyncSession,
        images: Optional[BaseImageService] = None,
        storage: Optional[LocalObjectStorage] = None,
    ):
        self.db = db
        self.images = images or get_image_service()
        self.storage = storage or get_storage()
        self.bucket = get_settings().menu_image_bucket

    async def generate(self, request: GenerateImageRequest) -> str:
        """
        Returns:
            Public URL of the stored image
        """
        image_request = validate_image_request(request)

        menu_item = await self.db.scalar(
            select(MenuItem).where(MenuItem.id == image_request.menu_item_id)
        )
        if menu_item is None:
            logger.warning(f"Image requested for unknown menu item {image_request.menu_item_id}")
            raise NotFound("Menu item not found")

        logger.info(f"Generating image for menu item {menu_item.id} ({image_request.name})")
        result = await self.images.generate(build_prompt(image_request))

        path = f"ai-generated/{menu_item.id}-{int(time.time() * 1000)}.png"
        try:
            self.storage.upload(self.bucket, path, result.data, upsert=True)
        except StorageError:
            logger.exception(f"Upload failed for menu item {menu_item.id}")
            raise UpstreamError(GENERATION_FAILED, status_code=500)

        public_url = self.storage.public_url(self.bucket, path)

        try:
            menu_item.image_url = public_url
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception(f"Could not attach image to menu item {image_request.menu_item_id}")
            raise PersistenceFailure(GENERATION_FAILED)

        logger.info(f"Image generated for menu item {image_request.menu_item_id} via {result.provider}")
        return public_url
