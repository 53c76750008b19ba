"""
Shared Enumerations

Used by the ORM models, the request/response schemas, the permission
layer and the client SDK, so every layer agrees on the same values.
"""

import enum


class OrganizationType(str, enum.Enum):
    RESTAURANT = "RESTAURANT"
    HOTEL = "HOTEL"
    CAFE = "CAFE"
    FOOD_TRUCK = "FOOD_TRUCK"
    BAR = "BAR"
    OTHER = "OTHER"


class MemberRole(str, enum.Enum):
    """Organization membership role."""
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"
    MEMBER = "MEMBER"


class StaffType(str, enum.Enum):
    """Refines the STAFF role."""
    KITCHEN = "KITCHEN"
    FRONT_OF_HOUSE = "FRONT_OF_HOUSE"
    GENERAL = "GENERAL"


class TableStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    RESERVED = "RESERVED"
    UNAVAILABLE = "UNAVAILABLE"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    SERVED = "SERVED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class OrderPaymentStatus(str, enum.Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    UPI = "UPI"
    NET_BANKING = "NET_BANKING"
    WALLET = "WALLET"
    MOBILE_PAYMENT = "MOBILE_PAYMENT"
    ROOM_CHARGE = "ROOM_CHARGE"
    OTHER = "OTHER"


class OrderItemStatus(str, enum.Enum):
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    READY = "READY"
    SERVED = "SERVED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class OrderSource(str, enum.Enum):
    """Who placed the order."""
    STAFF = "STAFF"
    PUBLIC = "PUBLIC"


class TaxType(str, enum.Enum):
    GST = "GST"


class ServiceType(str, enum.Enum):
    DINE_IN = "DINE_IN"
    TAKEAWAY = "TAKEAWAY"
    DELIVERY = "DELIVERY"
    ALL = "ALL"


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    TRIAL = "TRIAL"
    PAST_DUE = "PAST_DUE"


class BillingCycle(str, enum.Enum):
    MONTHLY = "MONTHLY"
    ANNUAL = "ANNUAL"


# Statuses the kitchen and the floor still have to act on
ACTIVE_ORDER_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
)

TERMINAL_ORDER_STATUSES = (
    OrderStatus.COMPLETED,
    OrderStatus.CANCELLED,
)
