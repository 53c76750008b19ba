"""
Dashboard Analytics & Payment Reports
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.core.enums import (
    ACTIVE_ORDER_STATUSES,
    OrderPaymentStatus,
    OrderStatus,
)
from tableserve.models import Order, OrderItem, utcnow
from tableserve.services.tax import round_money

logger = logging.getLogger(__name__)

PAID_STATUSES = (OrderPaymentStatus.PAID, OrderPaymentStatus.PARTIALLY_PAID)
OUTSTANDING_STATUSES = (OrderPaymentStatus.UNPAID, OrderPaymentStatus.PARTIALLY_PAID)


def _scope(
    organization_id: str,
    venue_id: Optional[str] = None,
    venue_scope: Optional[Sequence[str]] = None,
) -> list:
    conditions = [Order.organization_id == organization_id]
    if venue_id:
        conditions.append(Order.venue_id == venue_id)
    if venue_scope is not None:
        conditions.append(Order.venue_id.in_(list(venue_scope)))
    return conditions


async def get_dashboard_stats(
    db: AsyncSession,
    organization_id: str,
    venue_id: Optional[str] = None,
    days: int = 30,
    venue_scope: Optional[Sequence[str]] = None,
    top_items_limit: int = 5,
) -> dict:
    """Aggregate order statistics for the last ``days`` days."""
    since = utcnow() - timedelta(days=days)
    conditions = _scope(organization_id, venue_id, venue_scope) + [Order.created_at >= since]

    status_rows = await db.execute(
        select(Order.status, func.count(Order.id)).where(*conditions).group_by(Order.status)
    )
    by_status = {status.value: 0 for status in OrderStatus}
    for status, count in status_rows.all():
        by_status[OrderStatus(status).value] = count

    total_orders = sum(by_status.values())
    active_orders = sum(by_status[s.value] for s in ACTIVE_ORDER_STATUSES)

    revenue = (
        await db.execute(
            select(func.coalesce(func.sum(Order.paid_amount), 0.0)).where(
                *conditions, Order.payment_status.in_(PAID_STATUSES)
            )
        )
    ).scalar() or 0.0

    paid_count = (
        await db.execute(
            select(func.count(Order.id)).where(*conditions, Order.payment_status.in_(PAID_STATUSES))
        )
    ).scalar() or 0

    unpaid_rows = await db.execute(
        select(Order.total_amount, Order.paid_amount).where(
            *conditions,
            Order.status != OrderStatus.CANCELLED,
            Order.payment_status.in_(OUTSTANDING_STATUSES),
        )
    )
    unpaid_amount = sum(total - (paid or 0.0) for total, paid in unpaid_rows.all())

    top_rows = await db.execute(
        select(
            OrderItem.name,
            func.sum(OrderItem.quantity).label("quantity"),
            func.sum(OrderItem.total_price).label("revenue"),
        )
        .join(Order, OrderItem.order_id == Order.id)
        .where(*conditions, Order.status != OrderStatus.CANCELLED)
        .group_by(OrderItem.name)
        .order_by(func.sum(OrderItem.quantity).desc())
        .limit(top_items_limit)
    )

    return {
        "organization_id": organization_id,
        "venue_id": venue_id,
        "days": days,
        "total_orders": total_orders,
        "active_orders": active_orders,
        "completed_orders": by_status[OrderStatus.COMPLETED.value],
        "cancelled_orders": by_status[OrderStatus.CANCELLED.value],
        "revenue": round_money(revenue),
        "average_order_value": round_money(revenue / paid_count) if paid_count else 0.0,
        "unpaid_amount": round_money(unpaid_amount),
        "orders_by_status": by_status,
        "top_items": [
            {"name": name, "quantity": int(quantity or 0), "revenue": round_money(item_revenue or 0.0)}
            for name, quantity, item_revenue in top_rows.all()
        ],
    }


async def get_active_order_count(
    db: AsyncSession,
    organization_id: str,
    venue_scope: Optional[Sequence[str]] = None,
) -> int:
    result = await db.execute(
        select(func.count(Order.id)).where(
            *_scope(organization_id, venue_scope=venue_scope),
            Order.status.in_(ACTIVE_ORDER_STATUSES),
        )
    )
    return result.scalar() or 0


async def get_recent_active_orders(
    db: AsyncSession,
    organization_id: str,
    limit: int = 10,
    venue_scope: Optional[Sequence[str]] = None,
) -> list[Order]:
    result = await db.execute(
        select(Order)
        .where(
            *_scope(organization_id, venue_scope=venue_scope),
            Order.status.in_(ACTIVE_ORDER_STATUSES),
        )
        .order_by(Order.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


# =============================================================================
# PAYMENT REPORT
# =============================================================================

async def get_paid_orders(
    db: AsyncSession,
    organization_id: str,
    start: datetime,
    end: datetime,
    venue_id: Optional[str] = None,
) -> list[Order]:
    result = await db.execute(
        select(Order)
        .where(
            *_scope(organization_id, venue_id),
            Order.payment_status.in_(PAID_STATUSES),
            Order.paid_at >= start,
            Order.paid_at <= end,
        )
        .order_by(Order.paid_at)
    )
    return list(result.scalars().all())


async def get_payment_report(
    db: AsyncSession,
    organization_id: str,
    start: datetime,
    end: datetime,
    venue_id: Optional[str] = None,
) -> dict:
    """Collected payments in a date range, broken down by payment method."""
    paid_orders = await get_paid_orders(db, organization_id, start, end, venue_id)

    by_method: dict[str, dict] = {}
    for order in paid_orders:
        method = order.payment_method.value if order.payment_method else "UNKNOWN"
        summary = by_method.setdefault(method, {"payment_method": method, "order_count": 0, "amount": 0.0})
        summary["order_count"] += 1
        summary["amount"] += order.paid_amount or 0.0

    outstanding = await db.execute(
        select(Order.total_amount, Order.paid_amount).where(
            *_scope(organization_id, venue_id),
            Order.status != OrderStatus.CANCELLED,
            Order.payment_status.in_(OUTSTANDING_STATUSES),
            Order.created_at >= start,
            Order.created_at <= end,
        )
    )
    outstanding_rows = outstanding.all()

    return {
        "organization_id": organization_id,
        "start": start,
        "end": end,
        "paid_orders": len(paid_orders),
        "total_collected": round_money(sum(o.paid_amount or 0.0 for o in paid_orders)),
        "outstanding_orders": len(outstanding_rows),
        "outstanding_amount": round_money(sum(t - (p or 0.0) for t, p in outstanding_rows)),
        "by_method": [
            {**summary, "amount": round_money(summary["amount"])}
            for summary in sorted(by_method.values(), key=lambda s: s["amount"], reverse=True)
        ],
    }


def payment_report_rows(orders: Sequence[Order]) -> list[dict]:
    """Flatten paid orders into spreadsheet rows."""
    return [
        {
            "order_number": order.order_number,
            "venue": order.venue.name if order.venue else None,
            "table": order.table.name if order.table else None,
            "customer_name": order.customer_name,
            "customer_phone": order.customer_phone,
            "status": order.status.value,
            "payment_status": order.payment_status.value,
            "payment_method": order.payment_method.value if order.payment_method else None,
            "subtotal": order.subtotal_amount,
            "tax": order.tax_amount,
            "total_amount": order.total_amount,
            "paid_amount": order.paid_amount,
            "paid_at": order.paid_at.isoformat() if order.paid_at else None,
            "created_at": order.created_at.isoformat() if order.created_at else None,
        }
        for order in orders
    ]
