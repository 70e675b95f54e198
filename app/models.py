"""
SQLAlchemy Database Models

Flat relational rows for the floor-management dashboard:
- Orders and their line items (price snapshots)
- Menu catalog
- Floor tables and reservations
- Staff roster, inventory and financial transactions
- Profiles and role assignments for authorization

Every row has a server-generated UUID and created/updated timestamps.
"""

import enum
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    Uuid,
)
from sqlalchemy.sql import func

from app.database import Base


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"


class TableStatus(str, enum.Enum):
    """Floor table status."""
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    CLEANING = "cleaning"


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SEATED = "seated"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StaffStatus(str, enum.Enum):
    ACTIVE = "active"
    OFF = "off"
    VACATION = "vacation"


class TransactionType(str, enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"


class AppRole(str, enum.Enum):
    """Authorization roles, lowest to highest."""
    STAFF = "staff"
    MANAGER = "manager"
    ADMIN = "admin"


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


# =============================================================================
# ORDERS
# =============================================================================

class Order(TimestampMixin, Base):
    """
    Order header.

    ``total`` is always computed from catalog prices at intake time.
    """
    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    table_number = Column(String(20), nullable=False, index=True)
    notes = Column(Text, nullable=True)
    total = Column(Float, nullable=False, default=0.0)
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )

    def __repr__(self):
        return f"<Order {self.id} - Table {self.table_number} - {self.status.value}>"


class OrderItem(TimestampMixin, Base):
    """Line item; ``price`` is a snapshot of the catalog price at order time."""
    __tablename__ = "order_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    menu_item_id = Column(Uuid, ForeignKey("menu_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    notes = Column(String(200), nullable=True)

    def __repr__(self):
        return f"<OrderItem {self.menu_item_id} x{self.quantity}>"


# =============================================================================
# MENU
# =============================================================================

class MenuItem(TimestampMixin, Base):
    __tablename__ = "menu_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    price = Column(Float, nullable=False)
    category = Column(String(50), nullable=False, index=True)
    available = Column(Boolean, nullable=False, default=True)
    popular = Column(Boolean, nullable=False, default=False)
    image_url = Column(String(500), nullable=True)

    def __repr__(self):
        return f"<MenuItem {self.name} - {self.price:.2f}>"


# =============================================================================
# FLOOR
# =============================================================================

class FloorTable(TimestampMixin, Base):
    __tablename__ = "floor_tables"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    table_number = Column(Integer, nullable=False, unique=True)
    seats = Column(Integer, nullable=False, default=4)
    status = Column(
        Enum(TableStatus),
        default=TableStatus.AVAILABLE,
        nullable=False
    )

    def __repr__(self):
        return f"<FloorTable {self.table_number} - {self.status.value}>"


class Reservation(TimestampMixin, Base):
    __tablename__ = "reservations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(20), nullable=False)
    customer_email = Column(String(255), nullable=True)
    reservation_date = Column(Date, nullable=False, index=True)
    reservation_time = Column(Time, nullable=False)
    guests = Column(Integer, nullable=False)
    # Free-form on purpose: "T-12", "Private Room", ...
    table_number = Column(String(20), nullable=True)
    notes = Column(String(500), nullable=True)
    status = Column(
        Enum(ReservationStatus),
        default=ReservationStatus.PENDING,
        nullable=False
    )

    def __repr__(self):
        return f"<Reservation {self.customer_name} {self.reservation_date} {self.reservation_time}>"


# =============================================================================
# STAFF & INVENTORY
# =============================================================================

class StaffMember(TimestampMixin, Base):
    __tablename__ = "staff_members"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    full_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    role = Column(String(50), nullable=False)
    status = Column(
        Enum(StaffStatus),
        default=StaffStatus.ACTIVE,
        nullable=False
    )
    avatar_url = Column(String(500), nullable=True)
    hire_date = Column(Date, nullable=True)


class InventoryItem(TimestampMixin, Base):
    __tablename__ = "inventory_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    category = Column(String(50), nullable=False, index=True)
    current_stock = Column(Float, nullable=False, default=0.0)
    minimum_stock = Column(Float, nullable=False, default=0.0)
    maximum_stock = Column(Float, nullable=True)
    unit = Column(String(20), nullable=False)
    cost_per_unit = Column(Float, nullable=True)
    supplier = Column(String(100), nullable=True)


# =============================================================================
# FINANCES
# =============================================================================

class Transaction(TimestampMixin, Base):
    __tablename__ = "transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    type = Column(Enum(TransactionType), nullable=False, index=True)
    category = Column(String(50), nullable=False)
    description = Column(String(255), nullable=False)
    amount = Column(Float, nullable=False)
    transaction_date = Column(Date, nullable=False, index=True)
    payment_method = Column(String(50), nullable=True)
    reference_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(Uuid, nullable=True)

    def __repr__(self):
        return f"<Transaction {self.type.value} {self.amount:.2f} on {self.transaction_date}>"


# =============================================================================
# USERS & ROLES
# =============================================================================

class Profile(TimestampMixin, Base):
    """Public profile of an authenticated user; ``id`` is the user id."""
    __tablename__ = "profiles"

    id = Column(Uuid, primary_key=True)
    full_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)


class UserRole(TimestampMixin, Base):
    __tablename__ = "user_roles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, unique=True, index=True)
    role = Column(Enum(AppRole), nullable=False)

    def __repr__(self):
        return f"<UserRole {self.user_id} - {self.role.value}>"
