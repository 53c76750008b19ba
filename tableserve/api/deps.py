"""
Shared route helpers: load an organization-scoped record and check that
the caller may reach it.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.core.permissions import Permission
from tableserve.core.security import MembershipContext, get_org_context
from tableserve.database import get_db
from tableserve.models import Order, Venue
from tableserve.services.orders import get_order
from tableserve.services.venues import get_venue


async def load_venue(ctx: MembershipContext, db: AsyncSession, venue_id: str) -> Venue:
    venue = await get_venue(db, venue_id, ctx.organization_id)
    ctx.require_venue(venue.id)
    return venue


async def load_order(ctx: MembershipContext, db: AsyncSession, order_id: str) -> Order:
    order = await get_order(db, order_id, ctx.organization_id)
    ctx.require_venue(order.venue_id)
    ctx.require_order_visible(order.status)
    return order


def require(permission: Permission):
    """Dependency factory: the org context, after checking one permission."""

    async def dependency(ctx: MembershipContext = Depends(get_org_context)) -> MembershipContext:
        ctx.require(permission)
        return ctx

    return dependency


__all__ = ["load_venue", "load_order", "require", "get_db", "get_org_context"]
