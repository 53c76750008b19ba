"""
TableServe Python client.

    - api: HTTP client and ApiError
    - services: one wrapper per API resource
    - query_keys / query_cache / queries: cached reads and optimistic writes
    - cart / checkout: guest ordering state
"""

from tableserve.client.api import ApiClient, ApiError
from tableserve.client.cart import Cart, CartStore
from tableserve.client.checkout import CheckoutFlow, ConfirmedOrder, ViewState
from tableserve.client.queries import OrderQueries, RoleBasedOrders
from tableserve.client.query_cache import QueryClient, default_retry
from tableserve.client.services import (
    MenuService,
    OrderService,
    OrganizationService,
    PublicMenuService,
    PublicOrderService,
    QrCodeService,
    SubscriptionService,
    UploadService,
    UserService,
    VenueService,
)

__all__ = [
    "ApiClient",
    "ApiError",
    "Cart",
    "CartStore",
    "CheckoutFlow",
    "ConfirmedOrder",
    "ViewState",
    "OrderQueries",
    "RoleBasedOrders",
    "QueryClient",
    "default_retry",
    "MenuService",
    "OrderService",
    "OrganizationService",
    "PublicMenuService",
    "PublicOrderService",
    "QrCodeService",
    "SubscriptionService",
    "UploadService",
    "UserService",
    "VenueService",
]
