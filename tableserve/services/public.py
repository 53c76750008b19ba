"""
Public Ordering Service

Unauthenticated guest journey: open the menu from a QR code, place an
order, then follow it by order ID or phone number. Only active
organizations and venues are reachable here.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.core.config import get_settings
from tableserve.core.enums import OrderSource
from tableserve.core.exceptions import NotFoundError, ValidationFailedError
from tableserve.models import Order, Organization, Table, Venue
from tableserve.schemas import OrderCreate, PublicOrderCreate
from tableserve.services.menus import list_menus, public_menu_view
from tableserve.services.orders import create_order, get_order, list_orders_by_phone
from tableserve.services.organizations import get_organization_by_slug

logger = logging.getLogger(__name__)


async def _active_venue(db: AsyncSession, venue_id: str) -> Venue:
    venue = await db.get(Venue, venue_id)
    if not venue or not venue.is_active:
        raise NotFoundError(f"Venue {venue_id} not found")
    return venue


async def _active_organization(db: AsyncSession, organization_id: str) -> Organization:
    organization = await db.get(Organization, organization_id)
    if not organization or not organization.is_active:
        raise NotFoundError("Organization not found")
    return organization


async def get_public_menu(
    db: AsyncSession,
    org_slug: str,
    venue_id: Optional[str] = None,
    table_id: Optional[str] = None,
) -> dict:
    """
    Menus of an organization as guests see them, with venue and table info.

    Raises:
        NotFoundError: unknown or inactive organization, venue or table, or a
            venue/table that belongs elsewhere
    """
    organization = await get_organization_by_slug(db, org_slug, active_only=True)

    table = None
    if table_id:
        table = await db.get(Table, table_id)
        if not table or not table.is_active or (venue_id and table.venue_id != venue_id):
            raise NotFoundError(f"Table {table_id} not found")
        venue_id = table.venue_id

    venue = None
    if venue_id:
        venue = await _active_venue(db, venue_id)
        if venue.organization_id != organization.id:
            raise NotFoundError(f"Venue {venue_id} not found")

    menus = await list_menus(db, organization.id, active_only=True)

    return {
        "organization": organization,
        "venue": venue,
        "table": table,
        "menus": [public_menu_view(menu) for menu in menus],
    }


async def create_public_order(
    db: AsyncSession,
    data: PublicOrderCreate,
    venue_id: Optional[str] = None,
) -> Order:
    """
    Place a guest order. The venue comes from the path, the payload or the
    table, and the organization from the venue.
    """
    venue_id = venue_id or data.venue_id
    if data.table_id:
        table = await db.get(Table, data.table_id)
        if not table or not table.is_active:
            raise NotFoundError(f"Table {data.table_id} not found")
        if venue_id and table.venue_id != venue_id:
            raise ValidationFailedError("Table does not belong to this venue")
        venue_id = table.venue_id

    if not venue_id:
        raise ValidationFailedError("A venue or a table is required")

    venue = await _active_venue(db, venue_id)
    organization = await _active_organization(db, venue.organization_id)

    order_data = OrderCreate(**data.model_dump(exclude={"venue_id"}), venue_id=venue.id)
    order = await create_order(db, organization.id, order_data, source=OrderSource.PUBLIC)

    logger.info(f"Public order {order.order_number} placed at venue {venue.id}")
    return order


async def get_public_order(db: AsyncSession, order_id: str) -> Order:
    return await get_order(db, order_id)


async def get_public_order_status(db: AsyncSession, order_id: str) -> dict:
    order = await get_order(db, order_id)
    return {
        "id": order.id,
        "order_number": order.order_number,
        "status": order.status,
        "payment_status": order.payment_status,
        "updated_at": order.updated_at or order.created_at,
    }


async def find_orders_by_phone(db: AsyncSession, phone: str) -> list[Order]:
    """A guest's recent orders, newest first."""
    phone = phone.strip()
    if not phone:
        raise ValidationFailedError("Phone number is required")
    return await list_orders_by_phone(db, phone, get_settings().public_order_lookup_limit)
