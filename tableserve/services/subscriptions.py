"""
Plans & Subscriptions

An organization holds at most one current subscription. Paid plans are
charged through the configured payment service; plans with trial days
start in TRIAL without a charge.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.core.config import get_settings
from tableserve.core.enums import BillingCycle, SubscriptionStatus
from tableserve.core.exceptions import (
    ConflictError,
    NotFoundError,
    QuotaExceededError,
    ValidationFailedError,
)
from tableserve.models import Organization, Plan, Subscription, User, Venue, utcnow
from tableserve.schemas import PlanCreate, PlanUpdate
from tableserve.services.payment import get_payment_service

logger = logging.getLogger(__name__)

CURRENT_STATUSES = (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIAL)

PERIOD_DAYS = {
    BillingCycle.MONTHLY: 30,
    BillingCycle.ANNUAL: 365,
}


def as_aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands timestamps back naive; they are stored as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def plan_price(plan: Plan, cycle: BillingCycle) -> float:
    return plan.annual_price if cycle == BillingCycle.ANNUAL else plan.monthly_price


# =============================================================================
# PLANS
# =============================================================================

async def list_plans(db: AsyncSession, include_inactive: bool = False) -> list[Plan]:
    query = select(Plan).order_by(Plan.monthly_price)
    if not include_inactive:
        query = query.where(Plan.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_plan(db: AsyncSession, plan_id: str, active_only: bool = False) -> Plan:
    plan = await db.get(Plan, plan_id)
    if not plan or (active_only and not plan.is_active):
        raise NotFoundError(f"Plan {plan_id} not found")
    return plan


async def create_plan(db: AsyncSession, data: PlanCreate) -> Plan:
    plan = Plan(**data.model_dump())
    db.add(plan)
    await db.commit()
    logger.info(f"Plan '{plan.name}' created")
    return plan


async def update_plan(db: AsyncSession, plan: Plan, data: PlanUpdate) -> Plan:
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(plan, key, value)
    await db.commit()
    return plan


async def delete_plan(db: AsyncSession, plan: Plan) -> None:
    in_use = (
        await db.execute(select(func.count(Subscription.id)).where(Subscription.plan_id == plan.id))
    ).scalar() or 0
    if in_use:
        raise ConflictError(f"Plan '{plan.name}' is used by {in_use} subscriptions; deactivate it instead")
    await db.delete(plan)
    await db.commit()


# =============================================================================
# SUBSCRIPTION LOOKUP & QUOTA
# =============================================================================

async def get_current_subscription(db: AsyncSession, organization_id: str) -> Optional[Subscription]:
    """
    The organization's most recent subscription that still grants access.

    Subscriptions whose period (or trial) has run out are marked EXPIRED
    on the way.
    """
    result = await db.execute(
        select(Subscription)
        .where(
            Subscription.organization_id == organization_id,
            Subscription.status.in_(CURRENT_STATUSES),
        )
        .order_by(Subscription.created_at.desc())
    )
    subscription = result.scalars().first()
    if subscription is None:
        return None

    now = utcnow()
    if subscription.status == SubscriptionStatus.TRIAL:
        ends_at = subscription.trial_end
    else:
        ends_at = subscription.current_period_end
    if ends_at is not None and as_aware(ends_at) <= now:
        subscription.status = (
            SubscriptionStatus.CANCELLED if subscription.cancel_at_period_end else SubscriptionStatus.EXPIRED
        )
        await db.commit()
        logger.info(f"Subscription {subscription.id} ended ({subscription.status.value})")
        return None

    return subscription


async def get_latest_subscription(db: AsyncSession, organization_id: str) -> Optional[Subscription]:
    result = await db.execute(
        select(Subscription)
        .where(Subscription.organization_id == organization_id)
        .order_by(Subscription.created_at.desc())
    )
    return result.scalars().first()


async def get_venue_limit(db: AsyncSession, organization_id: str) -> int:
    subscription = await get_current_subscription(db, organization_id)
    if subscription is None:
        return get_settings().free_venue_limit
    return subscription.venues_included


async def _venues_used(db: AsyncSession, organization_id: str) -> int:
    result = await db.execute(select(func.count(Venue.id)).where(Venue.organization_id == organization_id))
    return result.scalar() or 0


# =============================================================================
# LIFECYCLE
# =============================================================================

async def _charge(
    plan: Plan,
    cycle: BillingCycle,
    organization: Organization,
    user: User,
) -> Optional[str]:
    """Charge the plan price. Returns the payment reference, None for free plans."""
    amount = plan_price(plan, cycle)
    if amount <= 0:
        return None

    settings = get_settings()
    payment_service = get_payment_service()
    result = await payment_service.process_payment(
        amount=amount,
        currency=settings.currency,
        customer_email=user.email,
        customer_name=user.name,
        description=f"{plan.name} ({cycle.value.lower()}) for {organization.name}",
        metadata={"organization_id": organization.id, "plan_id": plan.id},
    )
    if not result.success:
        logger.warning(
            f"Subscription charge declined for {organization.slug}: "
            f"{result.error_code} - {result.error_message}"
        )
        raise QuotaExceededError(result.error_message or "Payment declined")

    return result.payment_intent_id


async def subscribe(
    db: AsyncSession,
    organization: Organization,
    plan_id: str,
    billing_cycle: BillingCycle,
    user: User,
) -> Subscription:
    """
    Subscribe an organization to a plan.

    Raises:
        ConflictError: the organization already has a current subscription
        QuotaExceededError: the payment was declined
    """
    if await get_current_subscription(db, organization.id):
        raise ConflictError("Organization already has an active subscription; change the plan instead")

    plan = await get_plan(db, plan_id, active_only=True)
    if plan.organization_type and plan.organization_type != organization.type:
        raise ValidationFailedError(
            f"Plan '{plan.name}' is not available for {organization.type.value} organizations"
        )

    now = utcnow()
    settings = get_settings()
    subscription = Subscription(
        organization_id=organization.id,
        plan_id=plan.id,
        user_id=user.id,
        billing_cycle=billing_cycle,
        venues_included=plan.venues_included,
        amount=plan_price(plan, billing_cycle),
        currency=settings.currency,
        current_period_start=now,
    )

    if plan.trial_days > 0:
        subscription.status = SubscriptionStatus.TRIAL
        subscription.trial_start = now
        subscription.trial_end = now + timedelta(days=plan.trial_days)
        subscription.current_period_end = subscription.trial_end
    else:
        subscription.payment_reference = await _charge(plan, billing_cycle, organization, user)
        subscription.status = SubscriptionStatus.ACTIVE
        subscription.current_period_end = now + timedelta(days=PERIOD_DAYS[billing_cycle])

    db.add(subscription)
    await db.commit()
    await db.refresh(subscription, ["plan"])

    logger.info(
        f"{organization.slug} subscribed to '{plan.name}' ({billing_cycle.value}) - {subscription.status.value}"
    )
    return subscription


async def _require_current(db: AsyncSession, organization_id: str) -> Subscription:
    subscription = await get_current_subscription(db, organization_id)
    if subscription is None:
        raise NotFoundError("Organization has no active subscription")
    return subscription


async def _refund_unused_period(subscription: Subscription) -> None:
    """Refund the unused share of a paid period."""
    if subscription.status != SubscriptionStatus.ACTIVE or not subscription.payment_reference:
        return

    start = as_aware(subscription.current_period_start)
    end = as_aware(subscription.current_period_end)
    period = (end - start).total_seconds()
    remaining = (end - utcnow()).total_seconds()
    if period <= 0 or remaining <= 0:
        return

    amount = round(subscription.amount * remaining / period, 2)
    result = await get_payment_service().refund_payment(
        subscription.payment_reference,
        amount=amount,
        reason="subscription cancelled",
    )
    if result.success:
        logger.info(f"Refunded {amount:.2f} for subscription {subscription.id} ({result.refund_id})")
    else:
        logger.warning(f"Refund for subscription {subscription.id} failed: {result.error_message}")


async def cancel_subscription(db: AsyncSession, organization_id: str, immediately: bool = False) -> Subscription:
    """
    Cancel at the end of the period, or right away with a prorated refund.
    """
    subscription = await _require_current(db, organization_id)
    subscription.canceled_at = utcnow()
    subscription.cancel_at_period_end = True
    if immediately:
        await _refund_unused_period(subscription)
        subscription.status = SubscriptionStatus.CANCELLED
        subscription.current_period_end = subscription.canceled_at

    await db.commit()
    logger.info(f"Subscription {subscription.id} cancelled (immediately={immediately})")
    return subscription


async def reactivate_subscription(db: AsyncSession, organization_id: str) -> Subscription:
    subscription = await _require_current(db, organization_id)
    if not subscription.cancel_at_period_end:
        raise ConflictError("Subscription is not scheduled for cancellation")

    subscription.cancel_at_period_end = False
    subscription.canceled_at = None
    await db.commit()
    logger.info(f"Subscription {subscription.id} reactivated")
    return subscription


async def change_plan(
    db: AsyncSession,
    organization: Organization,
    plan_id: str,
    user: User,
    billing_cycle: Optional[BillingCycle] = None,
) -> Subscription:
    """
    Move the current subscription to another plan.

    Raises:
        QuotaExceededError: the new plan includes fewer venues than are in use
    """
    subscription = await _require_current(db, organization.id)
    plan = await get_plan(db, plan_id, active_only=True)
    if plan.id == subscription.plan_id and (billing_cycle is None or billing_cycle == subscription.billing_cycle):
        raise ConflictError(f"Organization is already on '{plan.name}'")

    used = await _venues_used(db, organization.id)
    if used > plan.venues_included:
        raise QuotaExceededError(
            f"'{plan.name}' includes {plan.venues_included} venues but {used} are in use. "
            f"Remove venues before downgrading."
        )

    cycle = billing_cycle or subscription.billing_cycle
    new_amount = plan_price(plan, cycle)
    if subscription.status == SubscriptionStatus.ACTIVE and new_amount > subscription.amount:
        reference = await _charge(plan, cycle, organization, user)
        subscription.payment_reference = reference or subscription.payment_reference

    subscription.plan_id = plan.id
    subscription.billing_cycle = cycle
    subscription.venues_included = plan.venues_included
    subscription.amount = new_amount

    await db.commit()
    await db.refresh(subscription, ["plan"])
    logger.info(f"{organization.slug} moved to plan '{plan.name}' ({cycle.value})")
    return subscription


async def get_subscription_summary(db: AsyncSession, organization_id: str) -> dict:
    subscription = await get_current_subscription(db, organization_id)
    if subscription is None:
        subscription = await get_latest_subscription(db, organization_id)
    if subscription is None:
        raise NotFoundError("Organization has no subscription")

    used = await _venues_used(db, organization_id)
    included = subscription.venues_included
    now = utcnow()

    is_current = subscription.status in CURRENT_STATUSES
    trial_end = as_aware(subscription.trial_end)
    is_trial_active = subscription.status == SubscriptionStatus.TRIAL and trial_end is not None and trial_end > now
    trial_days_remaining = None
    if is_trial_active:
        trial_days_remaining = math.ceil((trial_end - now).total_seconds() / 86400)

    current_price = subscription.plan.monthly_price if subscription.plan else 0.0
    other_plans = [p for p in await list_plans(db) if p.id != subscription.plan_id]
    can_upgrade = any(
        p.venues_included > included or p.monthly_price > current_price for p in other_plans
    )
    can_downgrade = any(used <= p.venues_included < included for p in other_plans)
    next_billing_date = None
    if is_current and not subscription.cancel_at_period_end:
        next_billing_date = subscription.current_period_end

    return {
        "subscription": subscription,
        "usage": {
            "venues_used": used,
            "venues_included": included,
            "venues_remaining": max(included - used, 0),
            "usage_percentage": round(used / included * 100, 1) if included else 0.0,
        },
        "billing": {
            "next_billing_date": next_billing_date,
            "last_billing_date": subscription.current_period_start,
            "amount": subscription.amount,
            "currency": subscription.currency,
            "billing_cycle": subscription.billing_cycle,
        },
        "is_trial_active": is_trial_active,
        "trial_days_remaining": trial_days_remaining,
        "can_upgrade": is_current and can_upgrade,
        "can_downgrade": is_current and can_downgrade,
        "can_cancel": is_current and not subscription.cancel_at_period_end,
    }
