"""
Organization, membership and tax configuration endpoints.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.api.deps import require
from tableserve.core.permissions import (
    Permission,
    get_access_level_description,
    get_dashboard_route,
    get_navigation,
)
from tableserve.core.security import MembershipContext, get_current_user, get_org_context
from tableserve.database import get_db
from tableserve.models import User
from tableserve.schemas import (
    MemberAdd,
    MemberResponse,
    MembershipContextResponse,
    MemberUpdate,
    OrderTotalsResponse,
    OrganizationCreate,
    OrganizationDetailsResponse,
    OrganizationResponse,
    OrganizationUpdate,
    TaxCalculationRequest,
    TaxConfigurationCreate,
    TaxConfigurationResponse,
    TaxConfigurationUpdate,
)
from tableserve.services import organizations as org_service
from tableserve.services import tax as tax_service
from tableserve.services.subscriptions import get_current_subscription, get_venue_limit

router = APIRouter(prefix="/api/organizations", tags=["Organizations"])


# =============================================================================
# ORGANIZATIONS
# =============================================================================

@router.post("", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    data: OrganizationCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await org_service.create_organization(db, user, data)


@router.get("", response_model=list[OrganizationResponse], summary="List My Organizations")
async def list_organizations(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await org_service.list_user_organizations(db, user)


@router.get("/slug/{slug}", response_model=OrganizationResponse, summary="Get Organization by Slug")
async def get_organization_by_slug(slug: str, db: AsyncSession = Depends(get_db)):
    """Public lookup used by the customer menu."""
    return await org_service.get_organization_by_slug(db, slug)


@router.get("/{organization_id}", response_model=OrganizationResponse)
async def get_organization(ctx: MembershipContext = Depends(get_org_context)):
    return ctx.organization


@router.get("/{organization_id}/details", response_model=OrganizationDetailsResponse)
async def get_organization_details(
    ctx: MembershipContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    """Organization with venue/member/order counts and subscription usage."""
    organization = ctx.organization
    stats = await org_service.get_organization_stats(db, organization)
    subscription = await get_current_subscription(db, organization.id)

    return {
        "organization": organization,
        "stats": stats,
        "subscription": {
            "plan_name": subscription.plan.name if subscription and subscription.plan else None,
            "status": subscription.status if subscription else None,
            "venues_included": await get_venue_limit(db, organization.id),
            "venues_used": stats["venue_count"],
            "current_period_end": subscription.current_period_end if subscription else None,
        },
    }


@router.get("/{organization_id}/me", response_model=MembershipContextResponse, summary="My Access")
async def get_my_access(ctx: MembershipContext = Depends(get_org_context)):
    """Role, permissions and navigation of the caller in this organization."""
    return {
        "organization_id": ctx.organization_id,
        "role": ctx.role,
        "staff_type": ctx.staff_type,
        "venue_ids": ctx.venue_ids,
        "permissions": sorted(p.value for p in ctx.permissions),
        "dashboard_route": get_dashboard_route(ctx.role, ctx.staff_type),
        "navigation": [item.to_dict() for item in get_navigation(ctx.role, ctx.staff_type, ctx.venue_ids)],
        "allowed_order_statuses": ctx.allowed_order_statuses,
        "access_level": get_access_level_description(ctx.role, ctx.staff_type),
    }


@router.patch("/{organization_id}", response_model=OrganizationResponse)
async def update_organization(
    data: OrganizationUpdate,
    ctx: MembershipContext = Depends(require(Permission.EDIT_ORGANIZATION)),
    db: AsyncSession = Depends(get_db),
):
    return await org_service.update_organization(db, ctx.organization, data)


@router.delete("/{organization_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_organization(
    ctx: MembershipContext = Depends(require(Permission.DELETE_ORGANIZATION)),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await org_service.delete_organization(db, ctx.organization)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# MEMBERS
# =============================================================================

@router.get("/{organization_id}/members", response_model=list[MemberResponse], tags=["Members"])
async def list_members(ctx: MembershipContext = Depends(require(Permission.VIEW_MEMBERS))):
    return ctx.organization.members


@router.post(
    "/{organization_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Members"],
)
async def add_member(
    data: MemberAdd,
    ctx: MembershipContext = Depends(require(Permission.ADD_MEMBERS)),
    db: AsyncSession = Depends(get_db),
):
    return await org_service.add_member(db, ctx.organization, data)


@router.patch("/{organization_id}/members/{member_id}", response_model=MemberResponse, tags=["Members"])
async def update_member(
    member_id: str,
    data: MemberUpdate,
    ctx: MembershipContext = Depends(require(Permission.EDIT_MEMBER_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    member = org_service.get_member(ctx.organization, member_id)
    return await org_service.update_member(db, ctx.organization, member, data)


@router.delete(
    "/{organization_id}/members/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Members"],
)
async def remove_member(
    member_id: str,
    ctx: MembershipContext = Depends(require(Permission.REMOVE_MEMBERS)),
    db: AsyncSession = Depends(get_db),
) -> Response:
    member = org_service.get_member(ctx.organization, member_id)
    await org_service.remove_member(db, ctx.organization, member)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{organization_id}/leave", status_code=status.HTTP_204_NO_CONTENT, tags=["Members"])
async def leave_organization(
    ctx: MembershipContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await org_service.leave_organization(db, ctx.organization, ctx.user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# TAX CONFIGURATIONS
# =============================================================================

@router.get(
    "/{organization_id}/tax-configurations",
    response_model=list[TaxConfigurationResponse],
    tags=["Tax"],
)
async def list_tax_configurations(
    ctx: MembershipContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    return await tax_service.list_tax_configurations(db, ctx.organization_id)


@router.post(
    "/{organization_id}/tax-configurations",
    response_model=TaxConfigurationResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Tax"],
)
async def create_tax_configuration(
    data: TaxConfigurationCreate,
    ctx: MembershipContext = Depends(require(Permission.MANAGE_ORGANIZATION_SETTINGS)),
    db: AsyncSession = Depends(get_db),
):
    return await tax_service.create_tax_configuration(db, ctx.organization_id, data)


@router.post(
    "/{organization_id}/tax-configurations/calculate",
    response_model=OrderTotalsResponse,
    tags=["Tax"],
    summary="Preview Order Totals",
)
async def calculate_totals(
    data: TaxCalculationRequest,
    ctx: MembershipContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    """Totals the given lines would get with the organization's tax setup."""
    tax = await tax_service.resolve_tax_settings(db, ctx.organization_id, data.service_type)
    lines = (
        tax_service.OrderLine(line.unit_price, line.quantity, line.modifiers_price)
        for line in data.items
    )
    return tax_service.calculate_order_totals(lines, tax, data.service_type).to_dict()


@router.get(
    "/{organization_id}/tax-configurations/{config_id}",
    response_model=TaxConfigurationResponse,
    tags=["Tax"],
)
async def get_tax_configuration(
    config_id: str,
    ctx: MembershipContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    return await tax_service.get_tax_configuration(db, ctx.organization_id, config_id)


@router.patch(
    "/{organization_id}/tax-configurations/{config_id}",
    response_model=TaxConfigurationResponse,
    tags=["Tax"],
)
async def update_tax_configuration(
    config_id: str,
    data: TaxConfigurationUpdate,
    ctx: MembershipContext = Depends(require(Permission.MANAGE_ORGANIZATION_SETTINGS)),
    db: AsyncSession = Depends(get_db),
):
    config = await tax_service.get_tax_configuration(db, ctx.organization_id, config_id)
    return await tax_service.update_tax_configuration(db, config, data)


@router.delete(
    "/{organization_id}/tax-configurations/{config_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Tax"],
)
async def delete_tax_configuration(
    config_id: str,
    ctx: MembershipContext = Depends(require(Permission.MANAGE_ORGANIZATION_SETTINGS)),
    db: AsyncSession = Depends(get_db),
) -> Response:
    config = await tax_service.get_tax_configuration(db, ctx.organization_id, config_id)
    await tax_service.delete_tax_configuration(db, config)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
