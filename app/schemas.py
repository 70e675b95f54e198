"""
Pydantic Schemas for Request/Response Validation

One create/update/response triple per entity. Create schemas carry the
explicit constraints every row must satisfy before it is inserted; update
schemas carry the same constraints with every field optional so they can
be used for partial updates (``model_dump(exclude_unset=True)``).
"""

import re
from datetime import date, datetime, time
from enum import Enum
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================

class OrderStatusEnum(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"


class TableStatusEnum(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    CLEANING = "cleaning"


class ReservationStatusEnum(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SEATED = "seated"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StaffStatusEnum(str, Enum):
    ACTIVE = "active"
    OFF = "off"
    VACATION = "vacation"


class TransactionTypeEnum(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class AppRoleEnum(str, Enum):
    STAFF = "staff"
    MANAGER = "manager"
    ADMIN = "admin"


class DateRangeEnum(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    CUSTOM = "custom"


EMAIL_PATTERN = re.compile(r'[\w\.\+-]+@[\w\.-]+\.\w+')
URL_PATTERN = re.compile(r'https?://\S+')


def _blank_to_none(v: Any) -> Any:
    """Forms submit "" for untouched optional fields."""
    if isinstance(v, str) and v.strip() == "":
        return None
    return v


def _check_email(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not EMAIL_PATTERN.fullmatch(v):
        raise ValueError('Invalid email address')
    return v


def _check_url(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if not URL_PATTERN.fullmatch(v):
        raise ValueError('Invalid URL')
    return v


# =============================================================================
# ORDER INTAKE
# =============================================================================

class IntakeItem(BaseModel):
    """
    One requested line. Semantic checks (quantity range, price sign,
    catalog membership) live in the intake service so that every rejection
    carries its own message.
    """
    menu_item_id: Optional[str] = Field(None, examples=["7b1c..."])
    quantity: Optional[int] = Field(None, examples=[2])
    price: Optional[float] = Field(None, examples=[14.99])
    notes: Optional[str] = Field(None)


class OrderIntakeRequest(BaseModel):
    """Public order submission (customer QR flow or staff order taking)."""
    table_number: Optional[str] = Field(None, examples=["T-12"])
    notes: Optional[str] = Field(None)
    items: Optional[List[IntakeItem]] = Field(None)


class OrderResponse(BaseModel):
    id: UUID
    table_number: str
    notes: Optional[str]
    total: float
    status: OrderStatusEnum
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderItemResponse(BaseModel):
    id: UUID
    order_id: UUID
    menu_item_id: UUID
    quantity: int
    price: float
    notes: Optional[str]

    class Config:
        from_attributes = True


class OrderDetailResponse(OrderResponse):
    items: List[OrderItemResponse] = []


class OrderIntakeResponse(BaseModel):
    success: bool
    order: OrderResponse


class OrderStatusUpdate(BaseModel):
    status: OrderStatusEnum


# =============================================================================
# MENU
# =============================================================================

class MenuItemBase(BaseModel):
    @field_validator('description', 'image_url', mode='before', check_fields=False)
    @classmethod
    def blank_optional(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator('image_url', check_fields=False)
    @classmethod
    def validate_image_url(cls, v: Optional[str]) -> Optional[str]:
        return _check_url(v)

    class Config:
        str_strip_whitespace = True


class MenuItemCreate(MenuItemBase):
    name: str = Field(..., min_length=1, max_length=100, examples=["Margherita"])
    description: Optional[str] = Field(None, max_length=500)
    price: float = Field(..., ge=0, le=10000, examples=[14.5])
    category: str = Field(..., min_length=1, max_length=50, examples=["Main Courses"])
    available: bool = True
    popular: bool = False
    image_url: Optional[str] = Field(None, max_length=500)


class MenuItemUpdate(MenuItemBase):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    price: Optional[float] = Field(None, ge=0, le=10000)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    available: Optional[bool] = None
    popular: Optional[bool] = None
    image_url: Optional[str] = Field(None, max_length=500)


class MenuItemResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str]
    price: float
    category: str
    available: bool
    popular: bool
    image_url: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class GenerateImageRequest(BaseModel):
    """Field names match the dashboard's JSON payload."""
    menuItemId: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None


class GenerateImageResponse(BaseModel):
    success: bool
    image_url: str


# =============================================================================
# FLOOR TABLES
# =============================================================================

class FloorTableCreate(BaseModel):
    table_number: int = Field(..., ge=1, le=9999)
    seats: int = Field(4, ge=1, le=100)


class FloorTableUpdate(BaseModel):
    table_number: Optional[int] = Field(None, ge=1, le=9999)
    seats: Optional[int] = Field(None, ge=1, le=100)


class TableStatusUpdate(BaseModel):
    status: TableStatusEnum


class FloorTableResponse(BaseModel):
    id: UUID
    table_number: int
    seats: int
    status: TableStatusEnum
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# RESERVATIONS
# =============================================================================

class ReservationBase(BaseModel):
    @field_validator('customer_email', 'table_number', 'notes', mode='before', check_fields=False)
    @classmethod
    def blank_optional(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator('customer_email', check_fields=False)
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v)

    class Config:
        str_strip_whitespace = True


class ReservationCreate(ReservationBase):
    customer_name: str = Field(..., min_length=1, max_length=100)
    customer_phone: str = Field(..., min_length=1, max_length=20)
    customer_email: Optional[str] = Field(None, max_length=255)
    reservation_date: date
    reservation_time: time
    guests: int = Field(..., ge=1, le=100)
    table_number: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = Field(None, max_length=500)
    status: ReservationStatusEnum = ReservationStatusEnum.PENDING


class ReservationUpdate(ReservationBase):
    customer_name: Optional[str] = Field(None, min_length=1, max_length=100)
    customer_phone: Optional[str] = Field(None, min_length=1, max_length=20)
    customer_email: Optional[str] = Field(None, max_length=255)
    reservation_date: Optional[date] = None
    reservation_time: Optional[time] = None
    guests: Optional[int] = Field(None, ge=1, le=100)
    table_number: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = Field(None, max_length=500)
    status: Optional[ReservationStatusEnum] = None


class ReservationResponse(BaseModel):
    id: UUID
    customer_name: str
    customer_phone: str
    customer_email: Optional[str]
    reservation_date: date
    reservation_time: time
    guests: int
    table_number: Optional[str]
    notes: Optional[str]
    status: ReservationStatusEnum
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# STAFF
# =============================================================================

class StaffMemberBase(BaseModel):
    @field_validator('phone', 'avatar_url', mode='before', check_fields=False)
    @classmethod
    def blank_optional(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator('email', check_fields=False)
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v)

    @field_validator('avatar_url', check_fields=False)
    @classmethod
    def validate_avatar_url(cls, v: Optional[str]) -> Optional[str]:
        return _check_url(v)

    class Config:
        str_strip_whitespace = True


class StaffMemberCreate(StaffMemberBase):
    full_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    role: str = Field(..., min_length=1, max_length=50, examples=["Head Chef"])
    status: StaffStatusEnum = StaffStatusEnum.ACTIVE
    avatar_url: Optional[str] = Field(None, max_length=500)
    hire_date: Optional[date] = None


class StaffMemberUpdate(StaffMemberBase):
    full_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    role: Optional[str] = Field(None, min_length=1, max_length=50)
    status: Optional[StaffStatusEnum] = None
    avatar_url: Optional[str] = Field(None, max_length=500)
    hire_date: Optional[date] = None


class StaffMemberResponse(BaseModel):
    id: UUID
    full_name: str
    email: str
    phone: Optional[str]
    role: str
    status: StaffStatusEnum
    avatar_url: Optional[str]
    hire_date: Optional[date]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# INVENTORY
# =============================================================================

class InventoryItemBase(BaseModel):
    @field_validator('supplier', mode='before', check_fields=False)
    @classmethod
    def blank_optional(cls, v: Any) -> Any:
        return _blank_to_none(v)

    class Config:
        str_strip_whitespace = True


class InventoryItemCreate(InventoryItemBase):
    name: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., min_length=1, max_length=50, examples=["Proteins"])
    current_stock: float = Field(..., ge=0)
    minimum_stock: float = Field(..., ge=0)
    maximum_stock: Optional[float] = Field(None, ge=0)
    unit: str = Field(..., min_length=1, max_length=20, examples=["lbs"])
    cost_per_unit: Optional[float] = Field(None, ge=0)
    supplier: Optional[str] = Field(None, max_length=100)


class InventoryItemUpdate(InventoryItemBase):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    current_stock: Optional[float] = Field(None, ge=0)
    minimum_stock: Optional[float] = Field(None, ge=0)
    maximum_stock: Optional[float] = Field(None, ge=0)
    unit: Optional[str] = Field(None, min_length=1, max_length=20)
    cost_per_unit: Optional[float] = Field(None, ge=0)
    supplier: Optional[str] = Field(None, max_length=100)


class InventoryItemResponse(BaseModel):
    id: UUID
    name: str
    category: str
    current_stock: float
    minimum_stock: float
    maximum_stock: Optional[float]
    unit: str
    cost_per_unit: Optional[float]
    supplier: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InventoryAlert(BaseModel):
    id: UUID
    name: str
    current_stock: float
    minimum_stock: float
    unit: str
    stock_status: str  # critical | low


class InventoryAlertsResponse(BaseModel):
    total_value: float
    critical: int
    alerts: List[InventoryAlert]


# =============================================================================
# TRANSACTIONS & FINANCES
# =============================================================================

class TransactionBase(BaseModel):
    @field_validator('payment_method', 'reference_number', 'notes', mode='before', check_fields=False)
    @classmethod
    def blank_optional(cls, v: Any) -> Any:
        return _blank_to_none(v)

    class Config:
        str_strip_whitespace = True


class TransactionCreate(TransactionBase):
    type: TransactionTypeEnum
    category: str = Field(..., min_length=1, max_length=50, examples=["Food Sales"])
    description: str = Field(..., min_length=1, max_length=255)
    amount: float = Field(..., ge=0)
    transaction_date: date
    payment_method: Optional[str] = Field(None, max_length=50)
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=1000)


class TransactionUpdate(TransactionBase):
    type: Optional[TransactionTypeEnum] = None
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[float] = Field(None, ge=0)
    transaction_date: Optional[date] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=1000)


class TransactionResponse(BaseModel):
    id: UUID
    type: TransactionTypeEnum
    category: str
    description: str
    amount: float
    transaction_date: date
    payment_method: Optional[str]
    reference_number: Optional[str]
    notes: Optional[str]
    created_by: Optional[UUID]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TimeSeriesPointResponse(BaseModel):
    label: str
    period_start: date
    period_end: date
    revenue: float
    expenses: float
    profit: float


class CategoryShareResponse(BaseModel):
    category: str
    amount: float
    percentage: float


class FinanceTotalsResponse(BaseModel):
    revenue: float
    expenses: float
    net_profit: float
    margin: float
    average_transaction: float
    transaction_count: int


class FinanceReportResponse(BaseModel):
    range: DateRangeEnum
    start: date
    end: date
    granularity: str
    totals: FinanceTotalsResponse
    time_series: List[TimeSeriesPointResponse]
    income_by_category: List[CategoryShareResponse]
    transactions: List[TransactionResponse]


class ExportQueuedResponse(BaseModel):
    success: bool
    task_id: str
    message: str


# =============================================================================
# USERS & ROLES
# =============================================================================

class UserWithRole(BaseModel):
    id: UUID
    full_name: Optional[str]
    email: Optional[str]
    avatar_url: Optional[str]
    role: Optional[AppRoleEnum]
    role_id: Optional[UUID]


class RoleAssignment(BaseModel):
    """``role=None`` removes the user's role."""
    role: Optional[AppRoleEnum] = None


class MeResponse(BaseModel):
    user_id: UUID
    role: Optional[AppRoleEnum]
    is_manager: bool
    is_admin: bool


# =============================================================================
# DASHBOARD & SYSTEM
# =============================================================================

class DashboardSummary(BaseModel):
    active_orders: int
    orders_by_status: dict[str, int]
    today_revenue: float
    tables_by_status: dict[str, int]
    today_reservations: int
    low_stock_items: int
    staff_on_duty: int


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    image_service: str
    rate_limiter: str
    timestamp: datetime
