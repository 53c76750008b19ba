"""
Pydantic Schemas for Request/Response Validation

Grouped by resource:
- Users & organizations (members, membership context)
- Venues & tables
- Menus, categories, items, modifiers
- Orders (staff and public), payments, grouping
- Tax configurations, plans & subscriptions, QR codes, uploads
- Analytics, reports, health
"""

import re
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tableserve.core.enums import (
    BillingCycle,
    MemberRole,
    OrderItemStatus,
    OrderPaymentStatus,
    OrderSource,
    OrderStatus,
    OrganizationType,
    PaymentMethod,
    ServiceType,
    StaffType,
    SubscriptionStatus,
    TableStatus,
    TaxType,
)


def _validate_phone(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    cleaned = re.sub(r"[^\d]", "", v)
    if len(cleaned) < 10:
        raise ValueError("Phone number must have at least 10 digits")
    return v


def _validate_email(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    if not re.match(r"^[\w\.\+-]+@[\w\.-]+\.\w+$", v):
        raise ValueError("Invalid email format")
    return v.lower()


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# USERS
# =============================================================================

class UserCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, examples=["Priya Sharma"])
    email: str = Field(..., max_length=255, examples=["priya@example.com"])

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        validated = _validate_email(v)
        if validated is None:
            raise ValueError("Email is required")
        return validated


class UserResponse(ORMModel):
    id: str
    name: str
    email: str
    is_super_admin: bool = False
    created_at: Optional[datetime] = None


class UserTokenResponse(BaseModel):
    """Returned once, at registration."""
    user: UserResponse
    api_token: str


# =============================================================================
# ORGANIZATIONS & MEMBERS
# =============================================================================

class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, examples=["Spice Route"])
    type: OrganizationType = Field(default=OrganizationType.RESTAURANT)
    description: Optional[str] = Field(None, max_length=1000)
    logo_url: Optional[str] = Field(None, max_length=500)
    website: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=255)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _validate_email(v)


class OrganizationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    type: Optional[OrganizationType] = None
    description: Optional[str] = Field(None, max_length=1000)
    logo_url: Optional[str] = Field(None, max_length=500)
    website: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _validate_email(v)


class OrganizationResponse(ORMModel):
    id: str
    name: str
    slug: str
    type: OrganizationType
    description: Optional[str] = None
    logo_url: Optional[str] = None
    website: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SubscriptionInfo(BaseModel):
    plan_name: Optional[str] = None
    status: Optional[SubscriptionStatus] = None
    venues_included: int
    venues_used: int
    current_period_end: Optional[datetime] = None


class OrganizationStats(BaseModel):
    venue_count: int
    member_count: int
    menu_count: int
    order_count: int
    active_order_count: int


class OrganizationDetailsResponse(BaseModel):
    organization: OrganizationResponse
    stats: OrganizationStats
    subscription: SubscriptionInfo


class MemberAdd(BaseModel):
    email: str = Field(..., max_length=255)
    role: MemberRole = Field(default=MemberRole.STAFF)
    staff_type: Optional[StaffType] = None
    venue_ids: List[str] = Field(default_factory=list)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        validated = _validate_email(v)
        if validated is None:
            raise ValueError("Email is required")
        return validated


class MemberUpdate(BaseModel):
    role: Optional[MemberRole] = None
    staff_type: Optional[StaffType] = None
    venue_ids: Optional[List[str]] = None


class MemberResponse(ORMModel):
    id: str
    organization_id: str
    user_id: str
    role: MemberRole
    staff_type: Optional[StaffType] = None
    venue_ids: List[str] = Field(default_factory=list)
    user: Optional[UserResponse] = None
    created_at: Optional[datetime] = None


class NavigationItemResponse(BaseModel):
    path: str
    label: str
    icon: str
    permissions: List[str]
    children: List[Any] = Field(default_factory=list)


class MembershipContextResponse(BaseModel):
    """What the signed-in user may do inside one organization."""
    organization_id: str
    role: MemberRole
    staff_type: Optional[StaffType] = None
    venue_ids: List[str]
    permissions: List[str]
    dashboard_route: str
    navigation: List[NavigationItemResponse]
    allowed_order_statuses: Optional[List[OrderStatus]] = None
    access_level: str


# =============================================================================
# VENUES & TABLES
# =============================================================================

class VenueCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, examples=["Downtown"])
    description: Optional[str] = Field(None, max_length=1000)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=255)
    image_url: Optional[str] = Field(None, max_length=500)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _validate_email(v)


class VenueUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=255)
    image_url: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _validate_email(v)


class VenueResponse(ORMModel):
    id: str
    organization_id: str
    name: str
    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TableCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50, examples=["T1"])
    capacity: Optional[int] = Field(None, ge=1, le=100)
    location: Optional[str] = Field(None, max_length=100)
    status: TableStatus = Field(default=TableStatus.AVAILABLE)


class TableUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    capacity: Optional[int] = Field(None, ge=1, le=100)
    location: Optional[str] = Field(None, max_length=100)
    status: Optional[TableStatus] = None
    is_active: Optional[bool] = None


class TableStatusUpdate(BaseModel):
    status: TableStatus


class TableResponse(ORMModel):
    id: str
    venue_id: str
    name: str
    capacity: Optional[int] = None
    status: TableStatus
    location: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None


class TableCapacityResponse(BaseModel):
    venue_id: str
    total_tables: int
    total_seats: int
    available_seats: int
    by_status: dict[str, int]


# =============================================================================
# MENUS
# =============================================================================

class MenuCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, examples=["Dinner"])
    description: Optional[str] = Field(None, max_length=1000)
    is_active: bool = True


class MenuUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    is_active: Optional[bool] = None


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Starters"])
    description: Optional[str] = Field(None, max_length=1000)
    image_url: Optional[str] = Field(None, max_length=500)
    display_order: int = Field(default=0, ge=0)
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    image_url: Optional[str] = Field(None, max_length=500)
    display_order: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class ModifierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Extra cheese"])
    price: float = Field(default=0.0, ge=0)


class ModifierResponse(ORMModel):
    id: str
    menu_item_id: str
    name: str
    price: float


class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Paneer Tikka"])
    description: Optional[str] = Field(None, max_length=1000)
    price: float = Field(..., ge=0, examples=[12.5])
    discount_price: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = Field(None, max_length=500)
    preparation_time: Optional[int] = Field(None, ge=0, le=600)
    calories: Optional[int] = Field(None, ge=0)
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False
    spicy_level: Optional[int] = Field(None, ge=0, le=5)
    allergens: Optional[str] = Field(None, max_length=255)
    display_order: int = Field(default=0, ge=0)
    is_available: bool = True
    modifiers: List[ModifierCreate] = Field(default_factory=list)


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    price: Optional[float] = Field(None, ge=0)
    discount_price: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = Field(None, max_length=500)
    preparation_time: Optional[int] = Field(None, ge=0, le=600)
    calories: Optional[int] = Field(None, ge=0)
    is_vegetarian: Optional[bool] = None
    is_vegan: Optional[bool] = None
    is_gluten_free: Optional[bool] = None
    spicy_level: Optional[int] = Field(None, ge=0, le=5)
    allergens: Optional[str] = Field(None, max_length=255)
    display_order: Optional[int] = Field(None, ge=0)
    is_available: Optional[bool] = None


class MenuItemAvailabilityUpdate(BaseModel):
    is_available: bool


class MenuItemResponse(ORMModel):
    id: str
    category_id: str
    name: str
    description: Optional[str] = None
    price: float
    discount_price: Optional[float] = None
    image_url: Optional[str] = None
    preparation_time: Optional[int] = None
    calories: Optional[int] = None
    is_vegetarian: bool
    is_vegan: bool
    is_gluten_free: bool
    spicy_level: Optional[int] = None
    allergens: Optional[str] = None
    display_order: int
    is_available: bool
    modifiers: List[ModifierResponse] = Field(default_factory=list)


class CategoryResponse(ORMModel):
    id: str
    menu_id: str
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    display_order: int
    is_active: bool
    items: List[MenuItemResponse] = Field(default_factory=list)


class MenuResponse(ORMModel):
    id: str
    organization_id: str
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    categories: List[CategoryResponse] = Field(default_factory=list)


# =============================================================================
# ORDERS
# =============================================================================

class OrderItemModifierCreate(BaseModel):
    modifier_id: str


class OrderItemCreate(BaseModel):
    """Single item in an order."""
    menu_item_id: str
    quantity: int = Field(..., ge=1, le=99, examples=[2])
    notes: Optional[str] = Field(None, max_length=200)
    modifiers: List[OrderItemModifierCreate] = Field(default_factory=list)


class OrderCreate(BaseModel):
    """Request schema for a staff-entered order."""
    venue_id: str
    table_id: Optional[str] = None
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_email: Optional[str] = Field(None, max_length=255)
    customer_phone: Optional[str] = Field(None, max_length=20)
    room_number: Optional[str] = Field(None, max_length=20)
    party_size: Optional[int] = Field(None, ge=1, le=100)
    notes: Optional[str] = Field(None, max_length=500)
    service_type: ServiceType = Field(default=ServiceType.DINE_IN)
    status: Optional[OrderStatus] = None
    items: List[OrderItemCreate] = Field(..., min_length=1)

    @field_validator("customer_phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)

    @field_validator("customer_email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _validate_email(v)


class OrderItemQuantityUpdate(BaseModel):
    item_id: str
    quantity: int = Field(..., ge=0, le=99)
    notes: Optional[str] = Field(None, max_length=200)


class OrderItemUpdate(BaseModel):
    quantity: Optional[int] = Field(None, ge=1, le=99)
    notes: Optional[str] = Field(None, max_length=200)
    status: Optional[OrderItemStatus] = None


class RefundOrder(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class OrderUpdate(BaseModel):
    table_id: Optional[str] = None
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_email: Optional[str] = Field(None, max_length=255)
    customer_phone: Optional[str] = Field(None, max_length=20)
    room_number: Optional[str] = Field(None, max_length=20)
    party_size: Optional[int] = Field(None, ge=1, le=100)
    notes: Optional[str] = Field(None, max_length=500)
    status: Optional[OrderStatus] = None
    add_items: List[OrderItemCreate] = Field(default_factory=list)
    remove_item_ids: List[str] = Field(default_factory=list)
    update_items: List[OrderItemQuantityUpdate] = Field(default_factory=list)

    @field_validator("customer_phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)

    @field_validator("customer_email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _validate_email(v)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class MarkOrderPaid(BaseModel):
    payment_method: PaymentMethod
    payment_notes: Optional[str] = Field(None, max_length=500)
    amount: Optional[float] = Field(None, gt=0)


class MarkOrderUnpaid(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class OrderItemResponse(ORMModel):
    id: str
    menu_item_id: Optional[str] = None
    name: str
    quantity: int
    unit_price: float
    modifiers: List[dict] = Field(default_factory=list)
    modifiers_price: float
    total_price: float
    notes: Optional[str] = None
    status: OrderItemStatus


class OrderVenueInfo(ORMModel):
    id: str
    name: str


class OrderTableInfo(ORMModel):
    id: str
    name: str
    capacity: Optional[int] = None


class OrderResponse(ORMModel):
    """Response schema for a single order."""
    id: str
    order_number: str
    organization_id: str
    venue_id: str
    table_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    room_number: Optional[str] = None
    party_size: Optional[int] = None
    notes: Optional[str] = None
    status: OrderStatus
    source: OrderSource
    payment_status: OrderPaymentStatus
    payment_method: Optional[PaymentMethod] = None
    paid_amount: Optional[float] = None
    paid_at: Optional[datetime] = None
    paid_by: Optional[str] = None
    payment_notes: Optional[str] = None
    subtotal_amount: float
    tax_amount: float
    tax_rate: float
    tax_type: TaxType
    service_type: ServiceType
    total_amount: float
    is_tax_exempt: bool
    is_price_inclusive: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    items: List[OrderItemResponse] = Field(default_factory=list)
    venue: Optional[OrderVenueInfo] = None
    table: Optional[OrderTableInfo] = None


class PaginatedOrdersResponse(BaseModel):
    data: List[OrderResponse]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class PaymentStatusResponse(BaseModel):
    order_id: str
    payment_status: OrderPaymentStatus
    paid_at: Optional[datetime] = None
    paid_by: Optional[str] = None
    paid_by_name: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    payment_notes: Optional[str] = None
    paid_amount: Optional[float] = None
    total_amount: float
    balance_due: float


class OrderGroupResponse(BaseModel):
    key: str
    display_name: str
    table_name: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    orders: List[OrderResponse]
    has_multiple_orders: bool
    latest_order_time: Optional[datetime] = None
    total_amount: float
    active_orders_count: int


class GroupedOrdersResponse(BaseModel):
    groups: List[OrderGroupResponse]
    should_show_grouped: bool


# =============================================================================
# PUBLIC ORDERING
# =============================================================================

class PublicOrderCreate(BaseModel):
    """Order placed by a guest from the public menu."""
    venue_id: Optional[str] = None
    table_id: Optional[str] = None
    customer_name: str = Field(..., min_length=2, max_length=100, examples=["Alex"])
    customer_email: Optional[str] = Field(None, max_length=255)
    customer_phone: str = Field(..., min_length=10, max_length=20, examples=["555-123-4567"])
    room_number: Optional[str] = Field(None, max_length=20)
    party_size: Optional[int] = Field(None, ge=1, le=100)
    notes: Optional[str] = Field(None, max_length=500)
    service_type: ServiceType = Field(default=ServiceType.DINE_IN)
    items: List[OrderItemCreate] = Field(..., min_length=1)

    @field_validator("customer_phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)

    @field_validator("customer_email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _validate_email(v)


class PublicOrderResponse(ORMModel):
    id: str
    order_number: str
    status: OrderStatus
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    table_id: Optional[str] = None
    venue_id: str
    room_number: Optional[str] = None
    notes: Optional[str] = None
    subtotal_amount: float
    tax_amount: float
    total_amount: float
    items: List[OrderItemResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PublicOrderStatusResponse(BaseModel):
    id: str
    order_number: str
    status: OrderStatus
    payment_status: OrderPaymentStatus
    updated_at: Optional[datetime] = None


class PublicVenueInfo(ORMModel):
    id: str
    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    image_url: Optional[str] = None


class PublicMenuResponse(BaseModel):
    organization: OrganizationResponse
    venue: Optional[PublicVenueInfo] = None
    table: Optional[OrderTableInfo] = None
    menus: List[MenuResponse]


# =============================================================================
# TAX
# =============================================================================

class TaxConfigurationCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, examples=["GST 5%"])
    description: Optional[str] = Field(None, max_length=500)
    tax_type: TaxType = TaxType.GST
    tax_rate: float = Field(..., ge=0, le=100)
    is_default: bool = False
    is_active: bool = True
    is_tax_exempt: bool = False
    is_price_inclusive: bool = False
    applicable_region: Optional[str] = Field(None, max_length=100)
    service_type: ServiceType = ServiceType.ALL

    @field_validator("tax_rate")
    @classmethod
    def validate_rate(cls, v: float) -> float:
        return round(v, 2)


class TaxConfigurationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    tax_type: Optional[TaxType] = None
    tax_rate: Optional[float] = Field(None, ge=0, le=100)
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None
    is_tax_exempt: Optional[bool] = None
    is_price_inclusive: Optional[bool] = None
    applicable_region: Optional[str] = Field(None, max_length=100)
    service_type: Optional[ServiceType] = None


class TaxConfigurationResponse(ORMModel):
    id: str
    organization_id: str
    name: str
    description: Optional[str] = None
    tax_type: TaxType
    tax_rate: float
    is_default: bool
    is_active: bool
    is_tax_exempt: bool
    is_price_inclusive: bool
    applicable_region: Optional[str] = None
    service_type: ServiceType


class TaxLineItem(BaseModel):
    menu_item_id: Optional[str] = None
    quantity: int = Field(..., ge=1)
    unit_price: float = Field(..., ge=0)
    modifiers_price: float = Field(default=0.0, ge=0)


class TaxCalculationRequest(BaseModel):
    service_type: ServiceType = ServiceType.DINE_IN
    items: List[TaxLineItem] = Field(..., min_length=1)


class TaxBreakdownResponse(BaseModel):
    tax_type: TaxType
    tax_rate: float
    tax_amount: float
    is_price_inclusive: bool
    is_tax_exempt: bool


class OrderTotalsResponse(BaseModel):
    subtotal_amount: float
    tax_amount: float
    total_amount: float
    service_type: ServiceType
    tax_breakdown: TaxBreakdownResponse
    display_message: Optional[str] = None


# =============================================================================
# PLANS & SUBSCRIPTIONS
# =============================================================================

class PlanCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    organization_type: Optional[OrganizationType] = None
    monthly_price: float = Field(..., ge=0)
    annual_price: float = Field(..., ge=0)
    venues_included: int = Field(default=1, ge=1)
    trial_days: int = Field(default=0, ge=0, le=90)
    features: List[str] = Field(default_factory=list)
    is_active: bool = True


class PlanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    monthly_price: Optional[float] = Field(None, ge=0)
    annual_price: Optional[float] = Field(None, ge=0)
    venues_included: Optional[int] = Field(None, ge=1)
    trial_days: Optional[int] = Field(None, ge=0, le=90)
    features: Optional[List[str]] = None
    is_active: Optional[bool] = None


class PlanResponse(ORMModel):
    id: str
    name: str
    description: Optional[str] = None
    organization_type: Optional[OrganizationType] = None
    monthly_price: float
    annual_price: float
    venues_included: int
    trial_days: int
    features: List[str] = Field(default_factory=list)
    is_active: bool


class SubscriptionCreate(BaseModel):
    plan_id: str
    billing_cycle: BillingCycle = BillingCycle.MONTHLY


class SubscriptionChangePlan(BaseModel):
    plan_id: str
    billing_cycle: Optional[BillingCycle] = None


class SubscriptionCancel(BaseModel):
    immediately: bool = False


class SubscriptionResponse(ORMModel):
    id: str
    organization_id: str
    plan_id: str
    status: SubscriptionStatus
    billing_cycle: BillingCycle
    current_period_start: datetime
    current_period_end: datetime
    cancel_at_period_end: bool
    canceled_at: Optional[datetime] = None
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    venues_included: int
    amount: float
    currency: str
    payment_reference: Optional[str] = None
    plan: Optional[PlanResponse] = None


class SubscriptionUsage(BaseModel):
    venues_used: int
    venues_included: int
    venues_remaining: int
    usage_percentage: float


class SubscriptionBilling(BaseModel):
    next_billing_date: Optional[datetime] = None
    last_billing_date: Optional[datetime] = None
    amount: float
    currency: str
    billing_cycle: BillingCycle


class SubscriptionSummaryResponse(BaseModel):
    subscription: SubscriptionResponse
    usage: SubscriptionUsage
    billing: SubscriptionBilling
    is_trial_active: bool
    trial_days_remaining: Optional[int] = None
    can_upgrade: bool
    can_downgrade: bool
    can_cancel: bool


# =============================================================================
# QR CODES
# =============================================================================

class QrCodeCreate(BaseModel):
    venue_id: str
    menu_id: str
    table_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100, examples=["Table 4"])
    description: Optional[str] = Field(None, max_length=500)
    is_active: bool = True


class QrCodeUpdate(BaseModel):
    menu_id: Optional[str] = None
    table_id: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None


class QrCodeResponse(ORMModel):
    id: str
    organization_id: str
    venue_id: str
    menu_id: str
    table_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    qr_code_url: str
    is_active: bool
    scan_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QrScanResponse(BaseModel):
    qr_code_id: str
    redirect_url: str
    scan_count: int


# =============================================================================
# UPLOADS
# =============================================================================

class UploadResponse(BaseModel):
    url: str
    filename: str
    size: int
    content_type: str


# =============================================================================
# ANALYTICS & REPORTS
# =============================================================================

class TopItem(BaseModel):
    name: str
    quantity: int
    revenue: float


class DashboardAnalyticsResponse(BaseModel):
    organization_id: str
    venue_id: Optional[str] = None
    days: int
    total_orders: int
    active_orders: int
    completed_orders: int
    cancelled_orders: int
    revenue: float
    average_order_value: float
    unpaid_amount: float
    orders_by_status: dict[str, int]
    top_items: List[TopItem]


class ActiveOrderCountResponse(BaseModel):
    organization_id: str
    active_count: int


class PaymentMethodSummary(BaseModel):
    payment_method: str
    order_count: int
    amount: float


class PaymentReportResponse(BaseModel):
    organization_id: str
    start: datetime
    end: datetime
    paid_orders: int
    total_collected: float
    outstanding_orders: int
    outstanding_amount: float
    by_method: List[PaymentMethodSummary]


class ReportExportResponse(BaseModel):
    success: bool
    message: str
    task_id: Optional[str] = None
    rows: int


# =============================================================================
# GENERIC
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    payment_service: str
    timestamp: datetime
