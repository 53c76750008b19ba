"""
Request Authentication & Membership Context

Dashboard users authenticate with ``Authorization: Bearer <api_token>``.
Organization-scoped routes resolve the caller's membership into a
``MembershipContext`` that the route uses for permission checks.
"""

import logging
import secrets
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.core.enums import MemberRole, OrderStatus, StaffType
from tableserve.core.exceptions import (
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
)
from tableserve.core.permissions import (
    OrderAction,
    Permission,
    can_perform_order_action,
    get_allowed_order_statuses,
    get_user_permissions,
    has_permission,
)
from tableserve.database import get_db
from tableserve.models import Organization, OrganizationMember, User

logger = logging.getLogger(__name__)


def generate_api_token() -> str:
    return secrets.token_hex(32)


@dataclass
class MembershipContext:
    """The caller's role inside one organization."""

    user: User
    organization: Organization
    role: MemberRole
    staff_type: Optional[StaffType] = None
    venue_ids: list[str] = field(default_factory=list)

    @property
    def organization_id(self) -> str:
        return self.organization.id

    @property
    def permissions(self) -> frozenset[Permission]:
        return get_user_permissions(self.role, self.staff_type)

    @property
    def allowed_order_statuses(self) -> Optional[tuple[OrderStatus, ...]]:
        return get_allowed_order_statuses(self.role, self.staff_type)

    @property
    def restricted_venue_ids(self) -> Optional[list[str]]:
        """Venues a staff member is limited to, None when unrestricted."""
        if self.role == MemberRole.STAFF and self.venue_ids:
            return list(self.venue_ids)
        return None

    def can(self, permission: Permission, venue_id: Optional[str] = None) -> bool:
        return has_permission(self.role, permission, self.staff_type, self.venue_ids, venue_id)

    def require(self, permission: Permission, venue_id: Optional[str] = None) -> None:
        if not self.can(permission, venue_id):
            logger.info(
                f"Denied {permission.value} to user {self.user.id} "
                f"in organization {self.organization_id}"
            )
            raise PermissionDeniedError(f"Missing permission: {permission.value}")

    def can_access_venue(self, venue_id: str) -> bool:
        restricted = self.restricted_venue_ids
        return restricted is None or venue_id in restricted

    def require_venue(self, venue_id: str) -> None:
        if not self.can_access_venue(venue_id):
            raise PermissionDeniedError("You are not assigned to this venue")

    def require_order_visible(self, order_status: OrderStatus) -> None:
        allowed = self.allowed_order_statuses
        if allowed is not None and order_status not in allowed:
            raise PermissionDeniedError(f"{order_status.value} orders are not visible to your role")

    def require_order_action(
        self,
        action: OrderAction,
        order_status: Optional[OrderStatus] = None,
    ) -> None:
        if not can_perform_order_action(action, self.role, self.staff_type, order_status):
            raise PermissionDeniedError(f"You cannot {OrderAction(action).value.replace('_', ' ')} this order")

    def require_status_change(self, current: OrderStatus, target: OrderStatus) -> None:
        """Both the order's current status and the target must be within reach."""
        self.require_order_action(OrderAction.UPDATE_STATUS, current)
        allowed = self.allowed_order_statuses
        if allowed is not None and target not in allowed:
            raise PermissionDeniedError(f"You cannot move orders to {target.value}")


# =============================================================================
# DEPENDENCIES
# =============================================================================

async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to a user."""
    if not authorization:
        raise AuthenticationError("Missing Authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authorization header must be 'Bearer <token>'")

    result = await db.execute(select(User).where(User.api_token == token.strip()))
    user = result.scalar_one_or_none()
    if not user:
        raise AuthenticationError("Invalid API token")

    return user


async def get_membership_context(
    db: AsyncSession,
    user: User,
    organization_id: str,
) -> MembershipContext:
    """
    Build the membership context for a user in an organization.

    Raises:
        NotFoundError: organization does not exist
        PermissionDeniedError: user is not a member (super admins act as OWNER)
    """
    organization = await db.get(Organization, organization_id)
    if not organization:
        raise NotFoundError(f"Organization {organization_id} not found")

    if user.is_super_admin:
        return MembershipContext(user=user, organization=organization, role=MemberRole.OWNER)

    result = await db.execute(
        select(OrganizationMember).where(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user.id,
        )
    )
    member = result.scalar_one_or_none()
    if not member:
        raise PermissionDeniedError("You are not a member of this organization")

    return MembershipContext(
        user=user,
        organization=organization,
        role=member.role,
        staff_type=member.staff_type if member.role == MemberRole.STAFF else None,
        venue_ids=list(member.venue_ids or []),
    )


async def get_org_context(
    organization_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MembershipContext:
    """FastAPI dependency for routes under /api/organizations/{organization_id}."""
    return await get_membership_context(db, user, organization_id)


async def require_super_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_super_admin:
        raise PermissionDeniedError("Super admin access required")
    return user
