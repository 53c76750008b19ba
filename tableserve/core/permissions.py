"""
Role-Based Access Control

Pure functions mapping (role, staff type, venue assignment, order status)
to permissions, visible order statuses and allowed order actions.
No I/O happens here: the API layer resolves the caller's membership and
passes the plain values in, and the client SDK uses the same functions
to decide what to show.

Usage:
    from tableserve.core.permissions import has_permission, Permission

    if has_permission(MemberRole.STAFF, Permission.VIEW_ORDERS, StaffType.KITCHEN):
        ...
"""

import enum
from dataclasses import dataclass, field
from typing import Iterable, Optional

from tableserve.core.enums import MemberRole, OrderStatus, StaffType


class Permission(str, enum.Enum):
    # Dashboard
    VIEW_DASHBOARD = "VIEW_DASHBOARD"
    VIEW_ANALYTICS = "VIEW_ANALYTICS"

    # Organization
    VIEW_ORGANIZATIONS = "VIEW_ORGANIZATIONS"
    CREATE_ORGANIZATION = "CREATE_ORGANIZATION"
    EDIT_ORGANIZATION = "EDIT_ORGANIZATION"
    DELETE_ORGANIZATION = "DELETE_ORGANIZATION"
    MANAGE_ORGANIZATION_SETTINGS = "MANAGE_ORGANIZATION_SETTINGS"
    MANAGE_BILLING = "MANAGE_BILLING"

    # Members
    VIEW_MEMBERS = "VIEW_MEMBERS"
    ADD_MEMBERS = "ADD_MEMBERS"
    EDIT_MEMBER_ROLES = "EDIT_MEMBER_ROLES"
    REMOVE_MEMBERS = "REMOVE_MEMBERS"

    # Venues
    VIEW_VENUES = "VIEW_VENUES"
    CREATE_VENUE = "CREATE_VENUE"
    EDIT_VENUE = "EDIT_VENUE"
    DELETE_VENUE = "DELETE_VENUE"
    MANAGE_VENUE_SETTINGS = "MANAGE_VENUE_SETTINGS"

    # Menus
    VIEW_MENUS = "VIEW_MENUS"
    CREATE_MENU = "CREATE_MENU"
    EDIT_MENU = "EDIT_MENU"
    DELETE_MENU = "DELETE_MENU"
    MANAGE_MENU_ITEMS = "MANAGE_MENU_ITEMS"

    # Orders
    VIEW_ORDERS = "VIEW_ORDERS"
    CREATE_ORDER = "CREATE_ORDER"
    EDIT_ORDER = "EDIT_ORDER"
    CANCEL_ORDER = "CANCEL_ORDER"
    MANAGE_ORDER_STATUS = "MANAGE_ORDER_STATUS"

    # Kitchen
    VIEW_KITCHEN_ORDERS = "VIEW_KITCHEN_ORDERS"
    MARK_ORDER_READY = "MARK_ORDER_READY"
    MANAGE_KITCHEN_QUEUE = "MANAGE_KITCHEN_QUEUE"

    # Front of house
    TAKE_ORDERS = "TAKE_ORDERS"
    MANAGE_TABLES = "MANAGE_TABLES"
    SERVE_CUSTOMERS = "SERVE_CUSTOMERS"
    HANDLE_PAYMENTS = "HANDLE_PAYMENTS"

    # QR codes
    VIEW_QR_CODES = "VIEW_QR_CODES"
    GENERATE_QR_CODES = "GENERATE_QR_CODES"

    # Settings
    VIEW_SETTINGS = "VIEW_SETTINGS"
    MANAGE_PROFILE = "MANAGE_PROFILE"


class OrderAction(str, enum.Enum):
    CREATE = "create"
    EDIT = "edit"
    CANCEL = "cancel"
    UPDATE_STATUS = "update_status"
    DELETE = "delete"
    MANAGE_PAYMENT = "manage_payment"


# =============================================================================
# PERMISSION GROUPS
# =============================================================================

PERMISSION_GROUPS: dict[str, tuple[Permission, ...]] = {
    "DASHBOARD": (Permission.VIEW_DASHBOARD, Permission.VIEW_ANALYTICS),
    "ORGANIZATION_ADMIN": (
        Permission.VIEW_ORGANIZATIONS,
        Permission.CREATE_ORGANIZATION,
        Permission.EDIT_ORGANIZATION,
        Permission.DELETE_ORGANIZATION,
        Permission.MANAGE_ORGANIZATION_SETTINGS,
        Permission.MANAGE_BILLING,
    ),
    "ORGANIZATION_BASIC": (Permission.VIEW_ORGANIZATIONS,),
    "MEMBER_MANAGEMENT": (
        Permission.VIEW_MEMBERS,
        Permission.ADD_MEMBERS,
        Permission.EDIT_MEMBER_ROLES,
        Permission.REMOVE_MEMBERS,
    ),
    "VENUE_MANAGEMENT": (
        Permission.VIEW_VENUES,
        Permission.CREATE_VENUE,
        Permission.EDIT_VENUE,
        Permission.DELETE_VENUE,
        Permission.MANAGE_VENUE_SETTINGS,
        Permission.MANAGE_TABLES,
    ),
    "VENUE_BASIC": (Permission.VIEW_VENUES,),
    "MENU_MANAGEMENT": (
        Permission.VIEW_MENUS,
        Permission.CREATE_MENU,
        Permission.EDIT_MENU,
        Permission.DELETE_MENU,
        Permission.MANAGE_MENU_ITEMS,
    ),
    "MENU_BASIC": (Permission.VIEW_MENUS,),
    "ORDER_MANAGEMENT": (
        Permission.VIEW_ORDERS,
        Permission.CREATE_ORDER,
        Permission.EDIT_ORDER,
        Permission.CANCEL_ORDER,
        Permission.MANAGE_ORDER_STATUS,
        Permission.HANDLE_PAYMENTS,
    ),
    "ORDER_BASIC": (Permission.VIEW_ORDERS,),
    "KITCHEN_STAFF": (
        Permission.VIEW_KITCHEN_ORDERS,
        Permission.MARK_ORDER_READY,
        Permission.MANAGE_KITCHEN_QUEUE,
        Permission.VIEW_ORDERS,
        Permission.MANAGE_ORDER_STATUS,
    ),
    "FRONT_OF_HOUSE_STAFF": (
        Permission.TAKE_ORDERS,
        Permission.SERVE_CUSTOMERS,
        Permission.HANDLE_PAYMENTS,
        Permission.MANAGE_TABLES,
        Permission.VIEW_ORDERS,
        Permission.CREATE_ORDER,
        Permission.EDIT_ORDER,
        Permission.MANAGE_ORDER_STATUS,
    ),
    "QR_CODES": (Permission.VIEW_QR_CODES, Permission.GENERATE_QR_CODES),
    "QR_BASIC": (Permission.VIEW_QR_CODES,),
    "SETTINGS": (Permission.VIEW_SETTINGS, Permission.MANAGE_PROFILE),
}


def _groups(*names: str) -> tuple[Permission, ...]:
    merged: list[Permission] = []
    for name in names:
        for permission in PERMISSION_GROUPS[name]:
            if permission not in merged:
                merged.append(permission)
    return tuple(merged)


ROLE_PERMISSIONS: dict[MemberRole, tuple[Permission, ...]] = {
    MemberRole.OWNER: _groups(
        "DASHBOARD", "ORGANIZATION_ADMIN", "MEMBER_MANAGEMENT",
        "VENUE_MANAGEMENT", "MENU_MANAGEMENT", "ORDER_MANAGEMENT",
        "QR_CODES", "SETTINGS",
    ),
    # Everything except billing and organization deletion
    MemberRole.ADMIN: _groups(
        "DASHBOARD", "ORGANIZATION_BASIC", "MEMBER_MANAGEMENT",
        "VENUE_MANAGEMENT", "MENU_MANAGEMENT", "ORDER_MANAGEMENT",
        "QR_CODES", "SETTINGS",
    ) + (Permission.EDIT_ORGANIZATION, Permission.MANAGE_ORGANIZATION_SETTINGS),
    # Member management is read-only
    MemberRole.MANAGER: _groups(
        "DASHBOARD", "ORGANIZATION_BASIC", "VENUE_MANAGEMENT",
        "MENU_MANAGEMENT", "ORDER_MANAGEMENT", "QR_CODES", "SETTINGS",
    ) + (Permission.VIEW_MEMBERS,),
    # Extended by the staff type
    MemberRole.STAFF: _groups("SETTINGS") + (Permission.VIEW_DASHBOARD,),
    MemberRole.MEMBER: _groups(
        "SETTINGS", "VENUE_BASIC", "MENU_BASIC", "ORDER_BASIC", "QR_BASIC",
    ) + (Permission.VIEW_DASHBOARD, Permission.VIEW_ORGANIZATIONS),
}

STAFF_TYPE_PERMISSIONS: dict[StaffType, tuple[Permission, ...]] = {
    StaffType.KITCHEN: _groups("KITCHEN_STAFF", "MENU_BASIC", "SETTINGS"),
    StaffType.FRONT_OF_HOUSE: _groups(
        "FRONT_OF_HOUSE_STAFF", "MENU_BASIC", "VENUE_BASIC", "QR_CODES", "SETTINGS",
    ),
    StaffType.GENERAL: _groups("ORDER_BASIC", "MENU_BASIC", "SETTINGS"),
}

FULL_ACCESS_ROLES = (MemberRole.OWNER, MemberRole.ADMIN, MemberRole.MANAGER)

KITCHEN_ORDER_STATUSES = (
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
)

FRONT_OF_HOUSE_ORDER_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.READY,
    OrderStatus.SERVED,
    OrderStatus.COMPLETED,
    OrderStatus.CANCELLED,
)

LIMITED_ORDER_STATUSES = (OrderStatus.PENDING, OrderStatus.CONFIRMED)

ROUTE_PERMISSIONS: dict[str, tuple[Permission, ...]] = {
    "/dashboard": (Permission.VIEW_DASHBOARD,),
    "/organizations": (Permission.VIEW_ORGANIZATIONS,),
    "/venues": (Permission.VIEW_VENUES,),
    "/menus": (Permission.VIEW_MENUS,),
    "/orders": (Permission.VIEW_ORDERS,),
    "/analytics": (Permission.VIEW_ANALYTICS,),
    "/settings": (Permission.VIEW_SETTINGS,),
    "/kitchen-dashboard": (Permission.VIEW_KITCHEN_ORDERS,),
    "/staff-dashboard": (Permission.VIEW_DASHBOARD,),
    "/tables": (Permission.MANAGE_TABLES,),
    "/qr-codes": (Permission.VIEW_QR_CODES,),
    "/members": (Permission.VIEW_MEMBERS,),
    "/subscriptions": (Permission.MANAGE_BILLING,),
}


# =============================================================================
# NAVIGATION
# =============================================================================

@dataclass(frozen=True)
class NavigationItem:
    path: str
    label: str
    icon: str
    permissions: tuple[Permission, ...] = ()
    children: tuple["NavigationItem", ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "label": self.label,
            "icon": self.icon,
            "permissions": [p.value for p in self.permissions],
            "children": [c.to_dict() for c in self.children],
        }


NAVIGATION_CONFIG: tuple[NavigationItem, ...] = (
    NavigationItem("/dashboard", "Dashboard", "LayoutDashboard", (Permission.VIEW_DASHBOARD,)),
    NavigationItem("/organizations", "Organizations", "Building2", (Permission.VIEW_ORGANIZATIONS,)),
    NavigationItem("/venues", "Venues", "MapPin", (Permission.VIEW_VENUES,)),
    NavigationItem("/menus", "Menus", "Menu", (Permission.VIEW_MENUS,)),
    NavigationItem("/orders", "Orders", "ShoppingCart", (Permission.VIEW_ORDERS,)),
    NavigationItem("/qr-codes", "QR Codes", "QrCode", (Permission.VIEW_QR_CODES,)),
    NavigationItem("/analytics", "Analytics", "BarChart3", (Permission.VIEW_ANALYTICS,)),
    NavigationItem("/settings", "Settings", "Settings", (Permission.VIEW_SETTINGS,)),
)

STAFF_NAVIGATION_CONFIG: dict[StaffType, tuple[NavigationItem, ...]] = {
    StaffType.KITCHEN: (
        NavigationItem("/kitchen-dashboard", "Kitchen Dashboard", "ChefHat", (Permission.VIEW_KITCHEN_ORDERS,)),
        NavigationItem("/menus", "Menus", "Menu", (Permission.VIEW_MENUS,)),
        NavigationItem("/settings", "Settings", "Settings", (Permission.VIEW_SETTINGS,)),
    ),
    StaffType.FRONT_OF_HOUSE: (
        NavigationItem("/orders", "Orders", "ShoppingCart", (Permission.VIEW_ORDERS,)),
        NavigationItem("/menus", "Menus", "Menu", (Permission.VIEW_MENUS,)),
        NavigationItem("/settings", "Settings", "Settings", (Permission.VIEW_SETTINGS,)),
    ),
}


# =============================================================================
# PERMISSION CHECKS
# =============================================================================

def get_user_permissions(
    role: MemberRole,
    staff_type: Optional[StaffType] = None,
) -> frozenset[Permission]:
    """Get all permissions granted by a role, extended by the staff type for STAFF."""
    permissions = set(ROLE_PERMISSIONS.get(role, ()))

    if role == MemberRole.STAFF and staff_type:
        permissions.update(STAFF_TYPE_PERMISSIONS.get(staff_type, ()))

    return frozenset(permissions)


def has_permission(
    role: MemberRole,
    permission: Permission,
    staff_type: Optional[StaffType] = None,
    venue_ids: Optional[Iterable[str]] = None,
    current_venue_id: Optional[str] = None,
) -> bool:
    """
    Check if a user has a specific permission.

    Staff members assigned to specific venues only hold their permissions
    inside those venues. An empty assignment means every venue.

    Args:
        role: Organization role
        permission: Permission to check
        staff_type: Staff type (only used for STAFF)
        venue_ids: Venues the member is assigned to
        current_venue_id: Venue the action targets

    Returns:
        bool: True if the permission is granted
    """
    if permission not in get_user_permissions(role, staff_type):
        return False

    venue_ids = list(venue_ids or [])
    if role == MemberRole.STAFF and venue_ids and current_venue_id:
        return current_venue_id in venue_ids

    return True


def can_access_route(
    route: str,
    role: MemberRole,
    staff_type: Optional[StaffType] = None,
    venue_ids: Optional[Iterable[str]] = None,
    current_venue_id: Optional[str] = None,
) -> bool:
    """Check if any of the permissions a route requires is granted. Unknown routes are open."""
    required = ROUTE_PERMISSIONS.get(route)
    if not required:
        return True

    return any(
        has_permission(role, permission, staff_type, venue_ids, current_venue_id)
        for permission in required
    )


def get_dashboard_route(role: MemberRole, staff_type: Optional[StaffType] = None) -> str:
    """Get the landing route for a user."""
    if role == MemberRole.STAFF and staff_type == StaffType.KITCHEN:
        return "/kitchen-dashboard"
    return "/dashboard"


def filter_navigation_items(
    items: Iterable[NavigationItem],
    role: MemberRole,
    staff_type: Optional[StaffType] = None,
    venue_ids: Optional[Iterable[str]] = None,
    current_venue_id: Optional[str] = None,
) -> list[NavigationItem]:
    """Keep the navigation items the user holds at least one permission for."""
    venue_ids = list(venue_ids or [])
    return [
        item for item in items
        if not item.permissions or any(
            has_permission(role, p, staff_type, venue_ids, current_venue_id)
            for p in item.permissions
        )
    ]


def get_navigation(
    role: MemberRole,
    staff_type: Optional[StaffType] = None,
    venue_ids: Optional[Iterable[str]] = None,
    current_venue_id: Optional[str] = None,
) -> list[NavigationItem]:
    """Get the navigation for a user, using the staff layout where one exists."""
    if role == MemberRole.STAFF and staff_type in STAFF_NAVIGATION_CONFIG:
        items = STAFF_NAVIGATION_CONFIG[staff_type]
    else:
        items = NAVIGATION_CONFIG
    return filter_navigation_items(items, role, staff_type, venue_ids, current_venue_id)


def can_manage_organization(role: MemberRole) -> bool:
    return role in (MemberRole.OWNER, MemberRole.ADMIN)


def can_manage_venues(role: MemberRole) -> bool:
    return role in FULL_ACCESS_ROLES


def can_manage_members(role: MemberRole) -> bool:
    return role in (MemberRole.OWNER, MemberRole.ADMIN)


# =============================================================================
# ORDER VISIBILITY & ACTIONS
# =============================================================================

def get_allowed_order_statuses(
    role: MemberRole,
    staff_type: Optional[StaffType] = None,
) -> Optional[tuple[OrderStatus, ...]]:
    """
    Get the order statuses a user may see.

    Returns:
        None when the user sees every status, otherwise the visible statuses
    """
    if role in FULL_ACCESS_ROLES:
        return None

    if role == MemberRole.STAFF:
        if staff_type == StaffType.KITCHEN:
            return KITCHEN_ORDER_STATUSES
        if staff_type == StaffType.FRONT_OF_HOUSE:
            return FRONT_OF_HOUSE_ORDER_STATUSES

    return LIMITED_ORDER_STATUSES


def can_perform_order_action(
    action: OrderAction,
    role: MemberRole,
    staff_type: Optional[StaffType] = None,
    order_status: Optional[OrderStatus] = None,
) -> bool:
    """
    Check if a user can perform an action on an order in the given status.

    Kitchen staff only move orders through their own part of the workflow;
    front-of-house staff take, edit and settle orders and move them through
    the service workflow. Everyone below MANAGER that is not one of those
    staff types is read-only.
    """
    action = OrderAction(action)

    if role in FULL_ACCESS_ROLES:
        return True

    if role != MemberRole.STAFF:
        return False

    if staff_type == StaffType.KITCHEN:
        if action == OrderAction.UPDATE_STATUS:
            return order_status in KITCHEN_ORDER_STATUSES
        return False

    if staff_type == StaffType.FRONT_OF_HOUSE:
        if action in (OrderAction.CREATE, OrderAction.EDIT, OrderAction.MANAGE_PAYMENT):
            return True
        if action == OrderAction.UPDATE_STATUS:
            return order_status in FRONT_OF_HOUSE_ORDER_STATUSES
        return False

    return False


def resolve_order_venue_filter(
    role: MemberRole,
    venue_ids: Optional[Iterable[str]],
    requested_venue_id: Optional[str],
) -> Optional[str]:
    """
    Decide which venue filter a listing should use.

    Staff may only narrow to a venue they are assigned to; otherwise the
    request is ignored and the assignment itself restricts the listing.
    """
    if not requested_venue_id:
        return None

    venue_ids = list(venue_ids or [])
    if role == MemberRole.STAFF and venue_ids and requested_venue_id not in venue_ids:
        return None

    return requested_venue_id


def get_access_level_description(role: MemberRole, staff_type: Optional[StaffType] = None) -> str:
    if role == MemberRole.STAFF and staff_type:
        return {
            StaffType.KITCHEN: "Kitchen operations and order management",
            StaffType.FRONT_OF_HOUSE: "Customer service and table management",
        }.get(staff_type, "Staff-level access")

    return {
        MemberRole.OWNER: "Full system access including billing and organization management",
        MemberRole.ADMIN: "Administrative access to all features except billing",
        MemberRole.MANAGER: "Venue and operations management",
    }.get(role, "Limited access based on role")


def get_order_page_info(
    role: Optional[MemberRole],
    staff_type: Optional[StaffType] = None,
    venue_name: Optional[str] = None,
    venue_ids: Optional[Iterable[str]] = None,
) -> dict[str, str]:
    """Title and description for a role-based order view."""
    default = {
        "title": "Orders",
        "description": "Manage orders for your business",
    }
    if role != MemberRole.STAFF or not staff_type:
        return default

    venue_ids = list(venue_ids or [])
    if venue_name:
        context = f" at {venue_name}"
    elif len(venue_ids) == 1:
        context = " for your assigned venue"
    elif len(venue_ids) > 1:
        context = " for your assigned venues"
    else:
        context = ""

    if staff_type == StaffType.KITCHEN:
        return {
            "title": "Kitchen Orders",
            "description": f"Orders that need kitchen attention{context}",
        }
    if staff_type == StaffType.FRONT_OF_HOUSE:
        return {
            "title": "Service Orders",
            "description": f"Manage the complete customer service workflow{context}",
        }
    return {
        "title": "Orders",
        "description": f"View order information{context}",
    }
