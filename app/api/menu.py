"""
Menu catalog endpoints and AI image generation.
"""

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.common import apply_changes, get_or_404, remove, save
from app.core.security import ALL_ROLES, MANAGERS, CurrentUser, require_roles
from app.database import get_db
from app.models import MenuItem
from app.schemas import (
    ErrorResponse,
    GenerateImageRequest,
    GenerateImageResponse,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
)
from app.services.menu_images import MenuImageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/menu", tags=["Menu"])


@router.get("/public", response_model=List[MenuItemResponse], summary="Customer Menu")
async def public_menu(db: AsyncSession = Depends(get_db)) -> List[MenuItemResponse]:
    """Available items only; no sign-in needed (customer QR flow)."""
    result = await db.execute(
        select(MenuItem)
        .where(MenuItem.available.is_(True))
        .order_by(MenuItem.category, MenuItem.name)
    )
    return [MenuItemResponse.model_validate(m) for m in result.scalars().all()]


@router.get("", response_model=List[MenuItemResponse])
async def list_menu_items(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ALL_ROLES)),
) -> List[MenuItemResponse]:
    result = await db.execute(select(MenuItem).order_by(MenuItem.category, MenuItem.name))
    return [MenuItemResponse.model_validate(m) for m in result.scalars().all()]


@router.post("", response_model=MenuItemResponse, status_code=201)
async def create_menu_item(
    data: MenuItemCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> MenuItemResponse:
    item = MenuItem(**data.model_dump())
    db.add(item)
    await save(db, item)
    logger.info(f"Menu item {item.name} created by {user.user_id}")
    return MenuItemResponse.model_validate(item)


@router.post(
    "/generate-image",
    response_model=GenerateImageResponse,
    responses={
        400: {"model": ErrorResponse},
        402: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Generate Menu Image",
)
async def generate_image(
    request: GenerateImageRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(ALL_ROLES)),
) -> GenerateImageResponse:
    """Create a food photo for a menu item and attach it."""
    image_url = await MenuImageService(db).generate(request)
    return GenerateImageResponse(success=True, image_url=image_url)


@router.patch("/{item_id}", response_model=MenuItemResponse)
async def update_menu_item(
    item_id: uuid.UUID,
    data: MenuItemUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> MenuItemResponse:
    item = await get_or_404(db, MenuItem, item_id, "Menu item")
    apply_changes(item, data.model_dump(exclude_unset=True))
    await save(db, item)
    return MenuItemResponse.model_validate(item)


@router.delete("/{item_id}")
async def delete_menu_item(
    item_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_roles(MANAGERS)),
) -> dict:
    item = await get_or_404(db, MenuItem, item_id, "Menu item")
    await remove(db, item)
    logger.info(f"Menu item {item_id} deleted by {user.user_id}")
    return {"success": True}
