"""
Order Intake Service

Validates a submitted order, reprices it from the menu catalog and persists
it as a header row followed by its line items.

Pricing rule: the client-supplied ``price`` of each line is checked for sign
only and then ignored. The stored total and every line's price snapshot come
from the catalog, so a tampered payload cannot change what is charged.

Failure mapping:
    ValidationFailed   (400) malformed input, unknown/unavailable item
    PersistenceFailure (500) catalog lookup, header or item insert failed
"""

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import PersistenceFailure, ValidationFailed
from app.models import MenuItem, Order, OrderItem, OrderStatus
from app.schemas import OrderIntakeRequest

logger = logging.getLogger(__name__)

TABLE_NUMBER_PATTERN = re.compile(r"[0-9A-Za-z_-]{1,20}")
MIN_QUANTITY = 1
MAX_QUANTITY = 100


@dataclass
class PricedLine:
    """A validated line, priced from the catalog."""
    menu_item_id: uuid.UUID
    quantity: int
    price: float
    notes: Optional[str]

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


def truncate(text: Optional[str], max_length: int) -> Optional[str]:
    """Cut ``text`` to ``max_length``; empty text becomes None."""
    if not text:
        return None
    return text[:max_length] or None


def compute_total(lines: list[PricedLine]) -> float:
    return round(sum(line.line_total for line in lines), 2)


class OrderIntakeService:
    """Validate, price and persist incoming orders."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate_shape(self, request: OrderIntakeRequest) -> list[uuid.UUID]:
        """
        Check table number, item list, quantities and prices.

        Returns:
            Parsed menu item ids in request order
        """
        table_number = request.table_number
        if not table_number or not TABLE_NUMBER_PATTERN.fullmatch(table_number):
            raise ValidationFailed("Invalid table number format")

        if not request.items:
            raise ValidationFailed("Order must contain at least one item")

        ids: list[uuid.UUID] = []
        for item in request.items:
            if not item.menu_item_id:
                raise ValidationFailed("Invalid menu item ID")
            try:
                ids.append(uuid.UUID(item.menu_item_id))
            except ValueError:
                raise ValidationFailed("Invalid menu item ID")

            if item.quantity is None or not MIN_QUANTITY <= item.quantity <= MAX_QUANTITY:
                raise ValidationFailed("Invalid item quantity")

            if item.price is None or item.price < 0:
                raise ValidationFailed("Invalid item price")

        return ids

    async def load_catalog(self, ids: list[uuid.UUID]) -> dict[uuid.UUID, MenuItem]:
        """Fetch every referenced menu item in one query."""
        try:
            result = await self.db.execute(
                select(MenuItem).where(MenuItem.id.in_(set(ids)))
            )
        except SQLAlchemyError:
            logger.exception("Menu validation error")
            raise PersistenceFailure("Failed to validate menu items")
        return {item.id: item for item in result.scalars().all()}

    def price_lines(
        self,
        request: OrderIntakeRequest,
        ids: list[uuid.UUID],
        catalog: dict[uuid.UUID, MenuItem],
    ) -> list[PricedLine]:
        """Reject missing or unavailable items, then price from the catalog."""
        for raw_id, menu_item_id in zip((i.menu_item_id for i in request.items), ids):
            menu_item = catalog.get(menu_item_id)
            if menu_item is None:
                raise ValidationFailed(f"Menu item not found: {raw_id}")
            if not menu_item.available:
                raise ValidationFailed("One or more items are no longer available")

        return [
            PricedLine(
                menu_item_id=menu_item_id,
                quantity=item.quantity,
                price=catalog[menu_item_id].price,
                notes=truncate(item.notes, self.settings.item_notes_max_length),
            )
            for item, menu_item_id in zip(request.items, ids)
        ]

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def _insert_header(self, table_number: str, notes: Optional[str], total: float) -> Order:
        order = Order(
            table_number=table_number,
            notes=notes,
            total=total,
            status=OrderStatus.PENDING,
        )
        self.db.add(order)
        await self.db.commit()
        await self.db.refresh(order)
        return order

    async def _insert_items(self, order: Order, lines: list[PricedLine]) -> None:
        self.db.add_all([
            OrderItem(
                order_id=order.id,
                menu_item_id=line.menu_item_id,
                quantity=line.quantity,
                price=line.price,
                notes=line.notes,
            )
            for line in lines
        ])
        await self.db.commit()

    async def _discard_header(self, order_id: uuid.UUID) -> None:
        """Compensating delete so a failed item insert leaves no orphan order."""
        try:
            await self.db.execute(delete(Order).where(Order.id == order_id))
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception(f"Could not remove orphan order {order_id}")

    async def create_order(self, request: OrderIntakeRequest) -> Order:
        """
        Run the full intake pipeline.

        Returns:
            The persisted Order header (status pending)
        """
        ids = self.validate_shape(request)
        catalog = await self.load_catalog(ids)
        lines = self.price_lines(request, ids, catalog)
        total = compute_total(lines)
        notes = truncate(request.notes, self.settings.order_notes_max_length)

        try:
            order = await self._insert_header(request.table_number, notes, total)
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("Order creation error")
            raise PersistenceFailure("Failed to create order")

        # Rollback expires loaded instances; keep the id for the cleanup.
        order_id = order.id
        try:
            await self._insert_items(order, lines)
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception(f"Order items creation error for order {order_id}")
            await self._discard_header(order_id)
            raise PersistenceFailure("Failed to create order items")

        logger.info(
            f"Order {order.id} created for table {order.table_number} "
            f"({len(lines)} lines, total {order.total:.2f})"
        )
        return order
