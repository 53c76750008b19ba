"""
SQLAlchemy Database Models

Multi-tenant data model:
- Organizations own venues, menus, members, tax configurations and a subscription
- Venues contain tables; QR codes point a table at a menu
- Orders belong to a venue (and optionally a table) and carry their items

All primary keys are UUID strings so public order-tracking links cannot
be enumerated.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    DateTime,
    Text,
    Enum,
    Boolean,
    ForeignKey,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from tableserve.database import Base
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


def generate_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# USERS & ORGANIZATIONS
# =============================================================================

class User(Base):
    """A person who can sign in to the dashboard."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    api_token = Column(String(64), nullable=False, unique=True, index=True)
    is_super_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    memberships = relationship("OrganizationMember", back_populates="user", lazy="selectin")

    def __repr__(self):
        return f"<User {self.email}>"


class Organization(Base):
    """Top-level tenant."""
    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    slug = Column(String(120), nullable=False, unique=True, index=True)
    type = Column(Enum(OrganizationType), default=OrganizationType.RESTAURANT, nullable=False)
    description = Column(Text, nullable=True)
    logo_url = Column(String(500), nullable=True)
    website = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    members = relationship(
        "OrganizationMember",
        back_populates="organization",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Organization {self.slug}>"


class OrganizationMember(Base):
    """Membership of a user in an organization."""
    __tablename__ = "organization_members"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_member_org_user"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    organization_id = Column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(Enum(MemberRole), default=MemberRole.MEMBER, nullable=False)
    staff_type = Column(Enum(StaffType), nullable=True)
    venue_ids = Column(JSON, default=list, nullable=False)  # empty = every venue
    created_at = Column(DateTime(timezone=True), default=utcnow)

    organization = relationship("Organization", back_populates="members")
    user = relationship("User", back_populates="memberships", lazy="selectin")

    def __repr__(self):
        return f"<OrganizationMember {self.user_id} - {self.role.value}>"


# =============================================================================
# VENUES & TABLES
# =============================================================================

class Venue(Base):
    """A physical location belonging to an organization."""
    __tablename__ = "venues"

    id = Column(String(36), primary_key=True, default=generate_id)
    organization_id = Column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    image_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    tables = relationship(
        "Table",
        back_populates="venue",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="Table.name",
    )

    def __repr__(self):
        return f"<Venue {self.name}>"


class Table(Base):
    __tablename__ = "tables"
    __table_args__ = (
        UniqueConstraint("venue_id", "name", name="uq_table_venue_name"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    venue_id = Column(String(36), ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    capacity = Column(Integer, nullable=True)
    status = Column(Enum(TableStatus), default=TableStatus.AVAILABLE, nullable=False)
    location = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    venue = relationship("Venue", back_populates="tables")

    def __repr__(self):
        return f"<Table {self.name} ({self.status.value})>"


# =============================================================================
# MENUS
# =============================================================================

class Menu(Base):
    __tablename__ = "menus"

    id = Column(String(36), primary_key=True, default=generate_id)
    organization_id = Column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    categories = relationship(
        "Category",
        back_populates="menu",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="Category.display_order",
    )


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=generate_id)
    menu_id = Column(String(36), ForeignKey("menus.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    menu = relationship("Menu", back_populates="categories")
    items = relationship(
        "MenuItem",
        back_populates="category",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="MenuItem.display_order",
    )


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True, default=generate_id)
    category_id = Column(String(36), ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    discount_price = Column(Float, nullable=True)
    image_url = Column(String(500), nullable=True)
    preparation_time = Column(Integer, nullable=True)  # minutes
    calories = Column(Integer, nullable=True)
    is_vegetarian = Column(Boolean, default=False, nullable=False)
    is_vegan = Column(Boolean, default=False, nullable=False)
    is_gluten_free = Column(Boolean, default=False, nullable=False)
    spicy_level = Column(Integer, nullable=True)
    allergens = Column(String(255), nullable=True)
    display_order = Column(Integer, default=0, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    category = relationship("Category", back_populates="items")
    modifiers = relationship(
        "Modifier",
        back_populates="menu_item",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def effective_price(self) -> float:
        """Price a customer pays for one unit before modifiers."""
        if self.discount_price is not None:
            return self.discount_price
        return self.price


class Modifier(Base):
    """Optional add-on for a menu item (extra cheese, large size)."""
    __tablename__ = "modifiers"

    id = Column(String(36), primary_key=True, default=generate_id)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Float, default=0.0, nullable=False)

    menu_item = relationship("MenuItem", back_populates="modifiers")


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    """
    A customer's placed selection of menu items.

    Tracks the complete lifecycle from placement to completion, plus the
    payment state which moves independently of the status.
    """
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=generate_id)
    order_number = Column(String(40), nullable=False, unique=True, index=True)

    organization_id = Column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    venue_id = Column(String(36), ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True)
    table_id = Column(String(36), ForeignKey("tables.id", ondelete="SET NULL"), nullable=True, index=True)

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    customer_name = Column(String(100), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(20), nullable=True, index=True)
    room_number = Column(String(20), nullable=True)
    party_size = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    # =========================================================================
    # STATUS
    # =========================================================================
    status = Column(Enum(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)
    source = Column(Enum(OrderSource), default=OrderSource.STAFF, nullable=False)

    # =========================================================================
    # PAYMENT INFO
    # =========================================================================
    payment_status = Column(
        Enum(OrderPaymentStatus), default=OrderPaymentStatus.UNPAID, nullable=False, index=True
    )
    payment_method = Column(Enum(PaymentMethod), nullable=True)
    paid_amount = Column(Float, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    paid_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    payment_notes = Column(Text, nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal_amount = Column(Float, nullable=False, default=0.0)
    tax_amount = Column(Float, nullable=False, default=0.0)
    tax_rate = Column(Float, nullable=False, default=0.0)
    tax_type = Column(Enum(TaxType), default=TaxType.GST, nullable=False)
    service_type = Column(Enum(ServiceType), default=ServiceType.DINE_IN, nullable=False)
    total_amount = Column(Float, nullable=False, default=0.0)
    is_tax_exempt = Column(Boolean, default=False, nullable=False)
    is_price_inclusive = Column(Boolean, default=False, nullable=False)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.created_at",
    )
    venue = relationship("Venue", lazy="selectin")
    table = relationship("Table", lazy="selectin")

    def __repr__(self):
        return f"<Order {self.order_number} - {self.status.value} - {self.payment_status.value}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=generate_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(100), nullable=False)  # snapshot at order time
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    modifiers = Column(JSON, default=list, nullable=False)  # [{modifier_id, name, price}]
    modifiers_price = Column(Float, default=0.0, nullable=False)
    total_price = Column(Float, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(Enum(OrderItemStatus), default=OrderItemStatus.PENDING, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    order = relationship("Order", back_populates="items")


# =============================================================================
# TAX
# =============================================================================

class TaxConfiguration(Base):
    __tablename__ = "tax_configurations"

    id = Column(String(36), primary_key=True, default=generate_id)
    organization_id = Column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    tax_type = Column(Enum(TaxType), default=TaxType.GST, nullable=False)
    tax_rate = Column(Float, nullable=False)  # percent
    is_default = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_tax_exempt = Column(Boolean, default=False, nullable=False)
    is_price_inclusive = Column(Boolean, default=False, nullable=False)
    applicable_region = Column(String(100), nullable=True)
    service_type = Column(Enum(ServiceType), default=ServiceType.ALL, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)


# =============================================================================
# PLANS & SUBSCRIPTIONS
# =============================================================================

class Plan(Base):
    __tablename__ = "plans"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    organization_type = Column(Enum(OrganizationType), nullable=True)  # None = any type
    monthly_price = Column(Float, nullable=False)
    annual_price = Column(Float, nullable=False)
    venues_included = Column(Integer, default=1, nullable=False)
    trial_days = Column(Integer, default=0, nullable=False)
    features = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=generate_id)
    organization_id = Column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    plan_id = Column(String(36), ForeignKey("plans.id"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    status = Column(Enum(SubscriptionStatus), default=SubscriptionStatus.INACTIVE, nullable=False)
    billing_cycle = Column(Enum(BillingCycle), default=BillingCycle.MONTHLY, nullable=False)
    current_period_start = Column(DateTime(timezone=True), nullable=False)
    current_period_end = Column(DateTime(timezone=True), nullable=False)
    cancel_at_period_end = Column(Boolean, default=False, nullable=False)
    canceled_at = Column(DateTime(timezone=True), nullable=True)
    trial_start = Column(DateTime(timezone=True), nullable=True)
    trial_end = Column(DateTime(timezone=True), nullable=True)
    venues_included = Column(Integer, default=1, nullable=False)
    amount = Column(Float, nullable=False, default=0.0)
    currency = Column(String(3), nullable=False, default="usd")
    payment_reference = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    plan = relationship("Plan", lazy="selectin")


# =============================================================================
# QR CODES
# =============================================================================

class QrCode(Base):
    """Printed code that opens the public menu for a venue (and table)."""
    __tablename__ = "qr_codes"

    id = Column(String(36), primary_key=True, default=generate_id)
    organization_id = Column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    venue_id = Column(String(36), ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_id = Column(String(36), ForeignKey("menus.id", ondelete="CASCADE"), nullable=False)
    table_id = Column(String(36), ForeignKey("tables.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    qr_code_url = Column(String(500), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    scan_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)
