"""
Plans (public listing, super-admin management) and organization
subscriptions.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.api.deps import require
from tableserve.core.exceptions import NotFoundError
from tableserve.core.permissions import Permission
from tableserve.core.security import MembershipContext, get_org_context, require_super_admin
from tableserve.database import get_db
from tableserve.models import User
from tableserve.schemas import (
    PlanCreate,
    PlanResponse,
    PlanUpdate,
    SubscriptionCancel,
    SubscriptionChangePlan,
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionSummaryResponse,
)
from tableserve.services import subscriptions as subscription_service

plans_router = APIRouter(prefix="/api/plans", tags=["Plans"])
router = APIRouter(prefix="/api/organizations/{organization_id}/subscription", tags=["Subscriptions"])


# =============================================================================
# PLANS
# =============================================================================

@plans_router.get("", response_model=list[PlanResponse])
async def list_plans(db: AsyncSession = Depends(get_db)):
    return await subscription_service.list_plans(db)


@plans_router.get("/{plan_id}", response_model=PlanResponse)
async def get_plan(plan_id: str, db: AsyncSession = Depends(get_db)):
    return await subscription_service.get_plan(db, plan_id, active_only=True)


@plans_router.post("", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def create_plan(
    data: PlanCreate,
    admin: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.create_plan(db, data)


@plans_router.patch("/{plan_id}", response_model=PlanResponse)
async def update_plan(
    plan_id: str,
    data: PlanUpdate,
    admin: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    plan = await subscription_service.get_plan(db, plan_id)
    return await subscription_service.update_plan(db, plan, data)


@plans_router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(
    plan_id: str,
    admin: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
) -> Response:
    plan = await subscription_service.get_plan(db, plan_id)
    await subscription_service.delete_plan(db, plan)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# SUBSCRIPTION
# =============================================================================

@router.get("", response_model=SubscriptionResponse)
async def get_subscription(
    ctx: MembershipContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    subscription = await subscription_service.get_current_subscription(db, ctx.organization_id)
    if subscription is None:
        subscription = await subscription_service.get_latest_subscription(db, ctx.organization_id)
    if subscription is None:
        raise NotFoundError("Organization has no subscription")
    return subscription


@router.get("/summary", response_model=SubscriptionSummaryResponse)
async def get_summary(
    ctx: MembershipContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.get_subscription_summary(db, ctx.organization_id)


@router.post("", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def subscribe(
    data: SubscriptionCreate,
    ctx: MembershipContext = Depends(require(Permission.MANAGE_BILLING)),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.subscribe(db, ctx.organization, data.plan_id, data.billing_cycle, ctx.user)


@router.post("/cancel", response_model=SubscriptionResponse)
async def cancel(
    data: SubscriptionCancel,
    ctx: MembershipContext = Depends(require(Permission.MANAGE_BILLING)),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.cancel_subscription(db, ctx.organization_id, data.immediately)


@router.post("/reactivate", response_model=SubscriptionResponse)
async def reactivate(
    ctx: MembershipContext = Depends(require(Permission.MANAGE_BILLING)),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.reactivate_subscription(db, ctx.organization_id)


@router.post("/change-plan", response_model=SubscriptionResponse)
async def change_plan(
    data: SubscriptionChangePlan,
    ctx: MembershipContext = Depends(require(Permission.MANAGE_BILLING)),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.change_plan(
        db, ctx.organization, data.plan_id, ctx.user, data.billing_cycle
    )
