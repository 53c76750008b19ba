"""
Staff order endpoints: listing, lifecycle, items and payments.

Listings are narrowed to the statuses and venues the caller may see;
every mutation checks the order action against the order's current status.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.api.deps import load_order, require
from tableserve.core.config import get_settings
from tableserve.core.enums import OrderPaymentStatus, OrderStatus
from tableserve.core.permissions import OrderAction, Permission, resolve_order_venue_filter
from tableserve.core.security import MembershipContext
from tableserve.database import get_db
from tableserve.schemas import (
    ActiveOrderCountResponse,
    GroupedOrdersResponse,
    MarkOrderPaid,
    MarkOrderUnpaid,
    OrderCreate,
    OrderItemUpdate,
    OrderResponse,
    OrderStatusUpdate,
    OrderUpdate,
    PaginatedOrdersResponse,
    PaymentStatusResponse,
    RefundOrder,
)
from tableserve.services import analytics
from tableserve.services import orders as order_service
from tableserve.services.order_grouping import group_orders_for_display

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/organizations/{organization_id}/orders", tags=["Orders"])


def order_filters(
    venue_id: Optional[str] = None,
    table_id: Optional[str] = None,
    status: Optional[OrderStatus] = None,
    payment_status: Optional[OrderPaymentStatus] = None,
    customer_name: Optional[str] = None,
    customer_email: Optional[str] = None,
    customer_phone: Optional[str] = None,
    room_number: Optional[str] = None,
    created_after: Optional[datetime] = None,
    created_before: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
) -> order_service.OrderFilters:
    return order_service.OrderFilters(
        venue_id=venue_id,
        table_id=table_id,
        status=status,
        payment_status=payment_status,
        customer_name=customer_name,
        customer_email=customer_email,
        customer_phone=customer_phone,
        room_number=room_number,
        created_after=created_after,
        created_before=created_before,
        page=page,
        limit=limit,
    )


def _scoped(ctx: MembershipContext, filters: order_service.OrderFilters) -> order_service.OrderFilters:
    filters.venue_id = resolve_order_venue_filter(ctx.role, ctx.venue_ids, filters.venue_id)
    return filters


# =============================================================================
# LISTING
# =============================================================================

@router.get("", response_model=PaginatedOrdersResponse, summary="List Orders")
async def list_orders(
    filters: order_service.OrderFilters = Depends(order_filters),
    ctx: MembershipContext = Depends(require(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    return await order_service.list_orders(
        db,
        ctx.organization_id,
        _scoped(ctx, filters),
        allowed_statuses=ctx.allowed_order_statuses,
        venue_scope=ctx.restricted_venue_ids,
    )


@router.get("/grouped", response_model=GroupedOrdersResponse, summary="List Orders Grouped by Table")
async def list_grouped_orders(
    filters: order_service.OrderFilters = Depends(order_filters),
    ctx: MembershipContext = Depends(require(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    page = await order_service.list_orders(
        db,
        ctx.organization_id,
        _scoped(ctx, filters),
        allowed_statuses=ctx.allowed_order_statuses,
        venue_scope=ctx.restricted_venue_ids,
    )
    grouped = group_orders_for_display(page["data"])
    return {
        "groups": [group.to_dict() for group in grouped["groups"]],
        "should_show_grouped": grouped["should_show_grouped"],
    }


@router.get("/unpaid", response_model=list[OrderResponse], summary="List Unpaid Orders")
async def list_unpaid_orders(
    venue_id: Optional[str] = None,
    ctx: MembershipContext = Depends(require(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    return await order_service.list_unpaid_orders(
        db,
        ctx.organization_id,
        venue_id=resolve_order_venue_filter(ctx.role, ctx.venue_ids, venue_id),
        venue_scope=ctx.restricted_venue_ids,
    )


@router.get("/active-count", response_model=ActiveOrderCountResponse)
async def get_active_count(
    ctx: MembershipContext = Depends(require(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    count = await analytics.get_active_order_count(db, ctx.organization_id, ctx.restricted_venue_ids)
    return {"organization_id": ctx.organization_id, "active_count": count}


@router.get("/recent-active", response_model=list[OrderResponse])
async def get_recent_active(
    limit: int = Query(10, ge=1, le=50),
    ctx: MembershipContext = Depends(require(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    return await analytics.get_recent_active_orders(db, ctx.organization_id, limit, ctx.restricted_venue_ids)


# =============================================================================
# CREATE & EDIT
# =============================================================================

@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    data: OrderCreate,
    ctx: MembershipContext = Depends(require(Permission.CREATE_ORDER)),
    db: AsyncSession = Depends(get_db),
):
    ctx.require_order_action(OrderAction.CREATE)
    ctx.require_venue(data.venue_id)
    return await order_service.create_order(db, ctx.organization_id, data)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    ctx: MembershipContext = Depends(require(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    return await load_order(ctx, db, order_id)


@router.patch("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: str,
    data: OrderUpdate,
    ctx: MembershipContext = Depends(require(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    order = await load_order(ctx, db, order_id)
    ctx.require_order_action(OrderAction.EDIT, order.status)
    if data.status is not None and data.status != order.status:
        ctx.require_status_change(order.status, data.status)
    return await order_service.update_order(db, order, data)


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    ctx: MembershipContext = Depends(require(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    order = await load_order(ctx, db, order_id)
    ctx.require_status_change(order.status, data.status)
    return await order_service.update_order_status(db, order, data.status)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    ctx: MembershipContext = Depends(require(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    order = await load_order(ctx, db, order_id)
    ctx.require_order_action(OrderAction.CANCEL, order.status)
    return await order_service.cancel_order(db, order)


@router.patch("/{order_id}/items/{item_id}", response_model=OrderResponse)
async def update_order_item(
    order_id: str,
    item_id: str,
    data: OrderItemUpdate,
    ctx: MembershipContext = Depends(require(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    order = await load_order(ctx, db, order_id)
    ctx.require_order_action(OrderAction.EDIT, order.status)
    return await order_service.update_order_item(db, order, item_id, data)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: str,
    ctx: MembershipContext = Depends(require(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
) -> Response:
    order = await load_order(ctx, db, order_id)
    ctx.require_order_action(OrderAction.DELETE, order.status)
    await order_service.delete_order(db, order)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# PAYMENT
# =============================================================================

@router.get("/{order_id}/payment", response_model=PaymentStatusResponse, tags=["Payments"])
async def get_payment_status(
    order_id: str,
    ctx: MembershipContext = Depends(require(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    order = await load_order(ctx, db, order_id)
    return await order_service.get_payment_status(db, order)


@router.post("/{order_id}/payment/paid", response_model=OrderResponse, tags=["Payments"])
async def mark_paid(
    order_id: str,
    data: MarkOrderPaid,
    ctx: MembershipContext = Depends(require(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    order = await load_order(ctx, db, order_id)
    ctx.require_order_action(OrderAction.MANAGE_PAYMENT, order.status)
    return await order_service.mark_order_paid(
        db,
        order,
        data.payment_method,
        paid_by=ctx.user.id,
        payment_notes=data.payment_notes,
        amount=data.amount,
    )


@router.post("/{order_id}/payment/unpaid", response_model=OrderResponse, tags=["Payments"])
async def mark_unpaid(
    order_id: str,
    data: MarkOrderUnpaid,
    ctx: MembershipContext = Depends(require(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    order = await load_order(ctx, db, order_id)
    ctx.require_order_action(OrderAction.MANAGE_PAYMENT, order.status)
    return await order_service.mark_order_unpaid(db, order, data.reason)


@router.post("/{order_id}/payment/refund", response_model=OrderResponse, tags=["Payments"])
async def refund(
    order_id: str,
    data: RefundOrder,
    ctx: MembershipContext = Depends(require(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    order = await load_order(ctx, db, order_id)
    ctx.require_order_action(OrderAction.MANAGE_PAYMENT, order.status)
    return await order_service.refund_order(db, order, data.reason)
