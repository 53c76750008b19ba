"""
Venue and table endpoints.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.api.deps import load_venue, require
from tableserve.core.exceptions import PermissionDeniedError
from tableserve.core.permissions import Permission
from tableserve.core.security import MembershipContext, get_org_context
from tableserve.database import get_db
from tableserve.schemas import (
    TableCapacityResponse,
    TableCreate,
    TableResponse,
    TableStatusUpdate,
    TableUpdate,
    VenueCreate,
    VenueResponse,
    VenueUpdate,
)
from tableserve.services import venues as venue_service

router = APIRouter(prefix="/api/organizations/{organization_id}/venues", tags=["Venues"])


def _require_table_management(ctx: MembershipContext, venue_id: str) -> None:
    if not (ctx.can(Permission.MANAGE_TABLES, venue_id) or ctx.can(Permission.EDIT_VENUE, venue_id)):
        raise PermissionDeniedError("Missing permission: MANAGE_TABLES")


# =============================================================================
# VENUES
# =============================================================================

@router.get("", response_model=list[VenueResponse])
async def list_venues(
    ctx: MembershipContext = Depends(require(Permission.VIEW_VENUES)),
    db: AsyncSession = Depends(get_db),
):
    return await venue_service.list_venues(db, ctx.organization_id, ctx.restricted_venue_ids)


@router.post("", response_model=VenueResponse, status_code=status.HTTP_201_CREATED)
async def create_venue(
    data: VenueCreate,
    ctx: MembershipContext = Depends(require(Permission.CREATE_VENUE)),
    db: AsyncSession = Depends(get_db),
):
    return await venue_service.create_venue(db, ctx.organization_id, data)


@router.get("/{venue_id}", response_model=VenueResponse)
async def get_venue(
    venue_id: str,
    ctx: MembershipContext = Depends(require(Permission.VIEW_VENUES)),
    db: AsyncSession = Depends(get_db),
):
    return await load_venue(ctx, db, venue_id)


@router.patch("/{venue_id}", response_model=VenueResponse)
async def update_venue(
    venue_id: str,
    data: VenueUpdate,
    ctx: MembershipContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    ctx.require(Permission.EDIT_VENUE, venue_id)
    venue = await load_venue(ctx, db, venue_id)
    return await venue_service.update_venue(db, venue, data)


@router.delete("/{venue_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_venue(
    venue_id: str,
    ctx: MembershipContext = Depends(require(Permission.DELETE_VENUE)),
    db: AsyncSession = Depends(get_db),
) -> Response:
    venue = await load_venue(ctx, db, venue_id)
    await venue_service.delete_venue(db, venue)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{venue_id}/capacity", response_model=TableCapacityResponse, summary="Venue Capacity Status")
async def get_capacity(
    venue_id: str,
    ctx: MembershipContext = Depends(require(Permission.VIEW_VENUES)),
    db: AsyncSession = Depends(get_db),
):
    venue = await load_venue(ctx, db, venue_id)
    return await venue_service.get_capacity_status(db, venue)


# =============================================================================
# TABLES
# =============================================================================

@router.get("/{venue_id}/tables", response_model=list[TableResponse], tags=["Tables"])
async def list_tables(
    venue_id: str,
    ctx: MembershipContext = Depends(require(Permission.VIEW_VENUES)),
    db: AsyncSession = Depends(get_db),
):
    venue = await load_venue(ctx, db, venue_id)
    return venue.tables


@router.post(
    "/{venue_id}/tables",
    response_model=TableResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Tables"],
)
async def create_table(
    venue_id: str,
    data: TableCreate,
    ctx: MembershipContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    _require_table_management(ctx, venue_id)
    venue = await load_venue(ctx, db, venue_id)
    return await venue_service.create_table(db, venue, data)


@router.patch("/{venue_id}/tables/{table_id}", response_model=TableResponse, tags=["Tables"])
async def update_table(
    venue_id: str,
    table_id: str,
    data: TableUpdate,
    ctx: MembershipContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    _require_table_management(ctx, venue_id)
    venue = await load_venue(ctx, db, venue_id)
    table = await venue_service.get_table(db, venue, table_id)
    return await venue_service.update_table(db, table, data)


@router.patch("/{venue_id}/tables/{table_id}/status", response_model=TableResponse, tags=["Tables"])
async def update_table_status(
    venue_id: str,
    table_id: str,
    data: TableStatusUpdate,
    ctx: MembershipContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    _require_table_management(ctx, venue_id)
    venue = await load_venue(ctx, db, venue_id)
    table = await venue_service.get_table(db, venue, table_id)
    return await venue_service.update_table_status(db, table, data.status)


@router.delete(
    "/{venue_id}/tables/{table_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Tables"],
)
async def delete_table(
    venue_id: str,
    table_id: str,
    ctx: MembershipContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
) -> Response:
    _require_table_management(ctx, venue_id)
    venue = await load_venue(ctx, db, venue_id)
    table = await venue_service.get_table(db, venue, table_id)
    await venue_service.delete_table(db, table)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
