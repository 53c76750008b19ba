"""
Venue & Table Service
"""

import logging
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.core.enums import TableStatus
from tableserve.core.exceptions import ConflictError, NotFoundError, QuotaExceededError
from tableserve.models import Table, Venue
from tableserve.schemas import TableCreate, TableUpdate, VenueCreate, VenueUpdate
from tableserve.services.organizations import count_venues
from tableserve.services.subscriptions import get_venue_limit

logger = logging.getLogger(__name__)


# =============================================================================
# VENUES
# =============================================================================

async def list_venues(
    db: AsyncSession,
    organization_id: str,
    venue_scope: Optional[Sequence[str]] = None,
) -> list[Venue]:
    query = select(Venue).where(Venue.organization_id == organization_id).order_by(Venue.created_at)
    if venue_scope is not None:
        query = query.where(Venue.id.in_(list(venue_scope)))
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_venue(db: AsyncSession, venue_id: str, organization_id: Optional[str] = None) -> Venue:
    venue = await db.get(Venue, venue_id)
    if not venue or (organization_id and venue.organization_id != organization_id):
        raise NotFoundError(f"Venue {venue_id} not found")
    return venue


async def create_venue(db: AsyncSession, organization_id: str, data: VenueCreate) -> Venue:
    """
    Create a venue within the subscription's venue quota.

    Raises:
        QuotaExceededError: every included venue is already in use
    """
    limit = await get_venue_limit(db, organization_id)
    used = await count_venues(db, organization_id)
    if used >= limit:
        raise QuotaExceededError(
            f"Venue limit reached ({used}/{limit}). Upgrade your plan to add more venues."
        )

    venue = Venue(organization_id=organization_id, **data.model_dump())
    db.add(venue)
    await db.commit()
    await db.refresh(venue, ["tables"])

    logger.info(f"Venue '{venue.name}' created for organization {organization_id} ({used + 1}/{limit})")
    return venue


async def update_venue(db: AsyncSession, venue: Venue, data: VenueUpdate) -> Venue:
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(venue, key, value)
    await db.commit()
    return venue


async def delete_venue(db: AsyncSession, venue: Venue) -> None:
    await db.delete(venue)
    await db.commit()
    logger.info(f"Venue {venue.id} deleted")


# =============================================================================
# TABLES
# =============================================================================

async def get_table(db: AsyncSession, venue: Venue, table_id: str) -> Table:
    table = await db.get(Table, table_id)
    if not table or table.venue_id != venue.id:
        raise NotFoundError(f"Table {table_id} not found")
    return table


async def _commit_table(db: AsyncSession, table: Table) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"A table named '{table.name}' already exists in this venue")


async def create_table(db: AsyncSession, venue: Venue, data: TableCreate) -> Table:
    table = Table(venue_id=venue.id, **data.model_dump())
    db.add(table)
    await _commit_table(db, table)
    logger.info(f"Table '{table.name}' added to venue {venue.id}")
    return table


async def update_table(db: AsyncSession, table: Table, data: TableUpdate) -> Table:
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(table, key, value)
    await _commit_table(db, table)
    return table


async def update_table_status(db: AsyncSession, table: Table, status: TableStatus) -> Table:
    table.status = status
    await db.commit()
    return table


async def delete_table(db: AsyncSession, table: Table) -> None:
    await db.delete(table)
    await db.commit()


async def get_capacity_status(db: AsyncSession, venue: Venue) -> dict:
    """Seat and table counts for a venue, by table status."""
    result = await db.execute(select(Table).where(Table.venue_id == venue.id, Table.is_active.is_(True)))
    tables = list(result.scalars().all())

    by_status = {status.value: 0 for status in TableStatus}
    for table in tables:
        by_status[table.status.value] += 1

    return {
        "venue_id": venue.id,
        "total_tables": len(tables),
        "total_seats": sum(t.capacity or 0 for t in tables),
        "available_seats": sum(t.capacity or 0 for t in tables if t.status == TableStatus.AVAILABLE),
        "by_status": by_status,
    }
