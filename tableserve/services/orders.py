"""
Order Lifecycle Service

Creates, edits, settles and lists orders. Route handlers check who may
do what (see ``MembershipContext``); this module enforces what the order
itself allows: the status workflow, item validation against the
organization's menus, totals and payment state.

Status workflow:
    PENDING -> CONFIRMED | CANCELLED
    CONFIRMED -> PREPARING | READY | CANCELLED
    PREPARING -> READY | CANCELLED
    READY -> SERVED | COMPLETED | CANCELLED
    SERVED -> COMPLETED | CANCELLED
    COMPLETED, CANCELLED: terminal
"""

import logging
import math
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.core.config import get_settings
from tableserve.core.enums import (
    OrderPaymentStatus,
    OrderSource,
    OrderStatus,
    PaymentMethod,
    TERMINAL_ORDER_STATUSES,
)
from tableserve.core.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationFailedError,
)
from tableserve.models import (
    Category,
    Menu,
    MenuItem,
    Order,
    OrderItem,
    Table,
    Venue,
    User,
    utcnow,
)
from tableserve.schemas import (
    OrderCreate,
    OrderItemCreate,
    OrderItemUpdate,
    OrderUpdate,
)
from tableserve.services.tax import (
    OrderLine,
    calculate_order_totals,
    resolve_tax_settings,
    round_money,
)

logger = logging.getLogger(__name__)
settings = get_settings()


ORDER_STATUS_TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.CONFIRMED: (OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.CANCELLED),
    OrderStatus.PREPARING: (OrderStatus.READY, OrderStatus.CANCELLED),
    OrderStatus.READY: (OrderStatus.SERVED, OrderStatus.COMPLETED, OrderStatus.CANCELLED),
    OrderStatus.SERVED: (OrderStatus.COMPLETED, OrderStatus.CANCELLED),
    OrderStatus.COMPLETED: (),
    OrderStatus.CANCELLED: (),
}

SETTLED_PAYMENT_STATUSES = (OrderPaymentStatus.PAID, OrderPaymentStatus.PARTIALLY_PAID)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    if current == target:
        return True
    return target in ORDER_STATUS_TRANSITIONS.get(current, ())


def generate_order_number(now: Optional[datetime] = None) -> str:
    """``<prefix>-YYYYMMDD-XXXXXX`` with six random hex characters."""
    now = now or utcnow()
    return f"{settings.order_number_prefix}-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


# =============================================================================
# LOOKUPS
# =============================================================================

async def get_order(
    db: AsyncSession,
    order_id: str,
    organization_id: Optional[str] = None,
) -> Order:
    """Load an order with its items, venue and table."""
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if not order or (organization_id and order.organization_id != organization_id):
        raise NotFoundError(f"Order {order_id} not found")
    return order


async def _resolve_venue_and_table(
    db: AsyncSession,
    organization_id: str,
    venue_id: Optional[str],
    table_id: Optional[str],
) -> tuple[Venue, Optional[Table]]:
    table = None
    if table_id:
        table = await db.get(Table, table_id)
        if not table:
            raise NotFoundError(f"Table {table_id} not found")
        if venue_id and table.venue_id != venue_id:
            raise ValidationFailedError("Table does not belong to this venue")
        venue_id = table.venue_id

    if not venue_id:
        raise ValidationFailedError("A venue or a table is required")

    venue = await db.get(Venue, venue_id)
    if not venue or venue.organization_id != organization_id:
        raise NotFoundError(f"Venue {venue_id} not found")

    return venue, table


async def _load_menu_items(
    db: AsyncSession,
    organization_id: str,
    menu_item_ids: Iterable[str],
) -> dict[str, tuple[MenuItem, bool]]:
    """
    Load menu items that belong to one of the organization's menus, each
    paired with whether its menu and category are active.
    """
    ids = set(menu_item_ids)
    result = await db.execute(
        select(MenuItem, and_(Menu.is_active, Category.is_active).label("listed"))
        .join(Category, MenuItem.category_id == Category.id)
        .join(Menu, Category.menu_id == Menu.id)
        .where(MenuItem.id.in_(ids), Menu.organization_id == organization_id)
    )
    return {item.id: (item, bool(listed)) for item, listed in result.all()}


async def _build_order_items(
    db: AsyncSession,
    organization_id: str,
    requested: Sequence[OrderItemCreate],
) -> list[OrderItem]:
    """Snapshot names and prices of the requested items."""
    menu_items = await _load_menu_items(db, organization_id, (r.menu_item_id for r in requested))
    lines = []

    for req in requested:
        if req.menu_item_id not in menu_items:
            raise NotFoundError(f"Menu item {req.menu_item_id} not found")
        menu_item, listed = menu_items[req.menu_item_id]
        if not (listed and menu_item.is_available):
            raise ValidationFailedError(f"'{menu_item.name}' is currently unavailable")

        available_modifiers = {m.id: m for m in menu_item.modifiers}
        chosen = []
        for selection in req.modifiers:
            modifier = available_modifiers.get(selection.modifier_id)
            if not modifier:
                raise ValidationFailedError(
                    f"Modifier {selection.modifier_id} does not belong to '{menu_item.name}'"
                )
            chosen.append({"modifier_id": modifier.id, "name": modifier.name, "price": modifier.price})

        unit_price = menu_item.effective_price
        modifiers_price = round_money(sum(m["price"] for m in chosen))
        lines.append(
            OrderItem(
                menu_item_id=menu_item.id,
                name=menu_item.name,
                quantity=req.quantity,
                unit_price=unit_price,
                modifiers=chosen,
                modifiers_price=modifiers_price,
                total_price=round_money((unit_price + modifiers_price) * req.quantity),
                notes=req.notes,
            )
        )

    return lines


async def _apply_totals(db: AsyncSession, order: Order, items: Sequence[OrderItem]) -> None:
    tax = await resolve_tax_settings(db, order.organization_id, order.service_type)
    totals = calculate_order_totals(
        (OrderLine(i.unit_price, i.quantity, i.modifiers_price) for i in items),
        tax,
        order.service_type,
    )
    order.subtotal_amount = totals.subtotal_amount
    order.tax_amount = totals.tax_amount
    order.total_amount = totals.total_amount
    order.tax_rate = totals.tax_rate
    order.tax_type = totals.tax_type
    order.is_tax_exempt = totals.is_tax_exempt
    order.is_price_inclusive = totals.is_price_inclusive


# =============================================================================
# CREATE & EDIT
# =============================================================================

async def create_order(
    db: AsyncSession,
    organization_id: str,
    data: OrderCreate,
    source: OrderSource = OrderSource.STAFF,
) -> Order:
    """
    Create an order from menu item references.

    Args:
        db: Database session
        organization_id: Owning organization
        data: Venue/table, customer details and items
        source: STAFF for dashboard orders, PUBLIC for guest orders

    Returns:
        Order: The persisted order, reloaded with its relationships
    """
    venue, table = await _resolve_venue_and_table(db, organization_id, data.venue_id, data.table_id)
    items = await _build_order_items(db, organization_id, data.items)

    status = data.status or OrderStatus.PENDING
    if source == OrderSource.PUBLIC:
        status = OrderStatus.PENDING

    order = Order(
        order_number=generate_order_number(),
        organization_id=organization_id,
        venue_id=venue.id,
        table_id=table.id if table else None,
        customer_name=data.customer_name,
        customer_email=data.customer_email,
        customer_phone=data.customer_phone,
        room_number=data.room_number,
        party_size=data.party_size,
        notes=data.notes,
        service_type=data.service_type,
        status=status,
        source=source,
        payment_status=OrderPaymentStatus.UNPAID,
        completed_at=utcnow() if status == OrderStatus.COMPLETED else None,
    )
    await _apply_totals(db, order, items)
    order.items.extend(items)

    db.add(order)
    await db.commit()

    logger.info(
        f"Order {order.order_number} created ({source.value}) at venue {venue.id} "
        f"- {len(items)} items - total {order.total_amount:.2f}"
    )
    return await get_order(db, order.id)


async def update_order(db: AsyncSession, order: Order, data: OrderUpdate) -> Order:
    """
    Edit an open order's details and items, then recompute its totals.

    Raises:
        ConflictError: order is completed or cancelled
    """
    if order.status in TERMINAL_ORDER_STATUSES:
        raise ConflictError(f"Order {order.order_number} is {order.status.value} and cannot be edited")

    fields = data.model_dump(
        exclude_unset=True,
        exclude={"add_items", "remove_item_ids", "update_items", "status", "table_id"},
    )
    for key, value in fields.items():
        setattr(order, key, value)

    if "table_id" in data.model_fields_set:
        if data.table_id:
            _, table = await _resolve_venue_and_table(db, order.organization_id, order.venue_id, data.table_id)
            order.table_id = table.id
        else:
            order.table_id = None

    items_by_id = {item.id: item for item in order.items}

    for item_id in data.remove_item_ids:
        item = items_by_id.pop(item_id, None)
        if not item:
            raise NotFoundError(f"Order item {item_id} not found")
        order.items.remove(item)

    for change in data.update_items:
        item = items_by_id.get(change.item_id)
        if not item:
            raise NotFoundError(f"Order item {change.item_id} not found")
        if change.quantity == 0:
            order.items.remove(item)
            items_by_id.pop(change.item_id)
            continue
        item.quantity = change.quantity
        item.total_price = round_money((item.unit_price + item.modifiers_price) * item.quantity)
        if change.notes is not None:
            item.notes = change.notes

    if data.add_items:
        order.items.extend(await _build_order_items(db, order.organization_id, data.add_items))

    if not order.items:
        raise ValidationFailedError("An order must keep at least one item")

    if data.status is not None:
        _apply_status(order, data.status)

    await _apply_totals(db, order, order.items)
    await db.commit()

    logger.info(f"Order {order.order_number} updated")
    return await get_order(db, order.id)


async def update_order_item(
    db: AsyncSession,
    order: Order,
    item_id: str,
    data: OrderItemUpdate,
) -> Order:
    if order.status in TERMINAL_ORDER_STATUSES:
        raise ConflictError(f"Order {order.order_number} is {order.status.value} and cannot be edited")

    item = next((i for i in order.items if i.id == item_id), None)
    if not item:
        raise NotFoundError(f"Order item {item_id} not found")

    if data.quantity is not None:
        item.quantity = data.quantity
        item.total_price = round_money((item.unit_price + item.modifiers_price) * item.quantity)
    if data.notes is not None:
        item.notes = data.notes
    if data.status is not None:
        item.status = data.status

    await _apply_totals(db, order, order.items)
    await db.commit()
    return await get_order(db, order.id)


# =============================================================================
# STATUS
# =============================================================================

def _apply_status(order: Order, target: OrderStatus) -> bool:
    """Move the order along the workflow. Returns False for a no-op."""
    if order.status == target:
        return False

    if not can_transition(order.status, target):
        raise ValidationFailedError(
            f"Cannot change order status from {order.status.value} to {target.value}"
        )

    order.status = target
    if target == OrderStatus.COMPLETED:
        order.completed_at = utcnow()
    return True


async def update_order_status(db: AsyncSession, order: Order, target: OrderStatus) -> Order:
    previous = order.status
    if not _apply_status(order, target):
        return order

    await db.commit()
    logger.info(f"Order {order.order_number}: {previous.value} -> {target.value}")
    return await get_order(db, order.id)


async def cancel_order(db: AsyncSession, order: Order) -> Order:
    return await update_order_status(db, order, OrderStatus.CANCELLED)


async def delete_order(db: AsyncSession, order: Order) -> None:
    await db.delete(order)
    await db.commit()
    logger.info(f"Order {order.order_number} deleted")


# =============================================================================
# PAYMENT
# =============================================================================

def _append_note(existing: Optional[str], note: str) -> str:
    return f"{existing}\n{note}" if existing else note


async def mark_order_paid(
    db: AsyncSession,
    order: Order,
    payment_method: PaymentMethod,
    paid_by: Optional[str],
    payment_notes: Optional[str] = None,
    amount: Optional[float] = None,
) -> Order:
    """Record a payment. Less than the total leaves the order PARTIALLY_PAID."""
    if order.status == OrderStatus.CANCELLED:
        raise ConflictError("Cancelled orders cannot be paid")

    amount = round_money(amount if amount is not None else order.total_amount)
    order.paid_amount = amount
    order.payment_method = payment_method
    order.payment_status = (
        OrderPaymentStatus.PARTIALLY_PAID if amount < order.total_amount else OrderPaymentStatus.PAID
    )
    order.paid_at = utcnow()
    order.paid_by = paid_by
    if payment_notes:
        order.payment_notes = payment_notes

    await db.commit()
    logger.info(
        f"Order {order.order_number} marked {order.payment_status.value} "
        f"({payment_method.value} {amount:.2f})"
    )
    return await get_order(db, order.id)


async def mark_order_unpaid(db: AsyncSession, order: Order, reason: Optional[str] = None) -> Order:
    order.payment_status = OrderPaymentStatus.UNPAID
    order.payment_method = None
    order.paid_amount = None
    order.paid_at = None
    order.paid_by = None
    if reason:
        order.payment_notes = _append_note(order.payment_notes, f"Marked unpaid: {reason}")

    await db.commit()
    logger.info(f"Order {order.order_number} marked UNPAID")
    return await get_order(db, order.id)


async def refund_order(db: AsyncSession, order: Order, reason: Optional[str] = None) -> Order:
    if order.payment_status not in SETTLED_PAYMENT_STATUSES:
        raise ConflictError(
            f"Only paid orders can be refunded (payment status is {order.payment_status.value})"
        )

    order.payment_status = OrderPaymentStatus.REFUNDED
    if reason:
        order.payment_notes = _append_note(order.payment_notes, f"Refunded: {reason}")

    await db.commit()
    logger.info(f"Order {order.order_number} refunded")
    return await get_order(db, order.id)


async def get_payment_status(db: AsyncSession, order: Order) -> dict:
    paid_by_name = None
    if order.paid_by:
        user = await db.get(User, order.paid_by)
        paid_by_name = user.name if user else None

    paid = order.paid_amount or 0.0
    if order.payment_status == OrderPaymentStatus.REFUNDED:
        balance = 0.0
    else:
        balance = round_money(max(order.total_amount - paid, 0.0))

    return {
        "order_id": order.id,
        "payment_status": order.payment_status,
        "paid_at": order.paid_at,
        "paid_by": order.paid_by,
        "paid_by_name": paid_by_name,
        "payment_method": order.payment_method,
        "payment_notes": order.payment_notes,
        "paid_amount": order.paid_amount,
        "total_amount": order.total_amount,
        "balance_due": balance,
    }


# =============================================================================
# LISTING
# =============================================================================

@dataclass
class OrderFilters:
    venue_id: Optional[str] = None
    table_id: Optional[str] = None
    status: Optional[OrderStatus] = None
    payment_status: Optional[OrderPaymentStatus] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    room_number: Optional[str] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None
    page: int = 1
    limit: int = 20


def _filtered_query(
    organization_id: str,
    filters: OrderFilters,
    allowed_statuses: Optional[Sequence[OrderStatus]] = None,
    venue_scope: Optional[Sequence[str]] = None,
):
    conditions = [Order.organization_id == organization_id]

    if venue_scope is not None:
        conditions.append(Order.venue_id.in_(list(venue_scope)))
    if allowed_statuses is not None:
        conditions.append(Order.status.in_(list(allowed_statuses)))

    if filters.venue_id:
        conditions.append(Order.venue_id == filters.venue_id)
    if filters.table_id:
        conditions.append(Order.table_id == filters.table_id)
    if filters.status:
        conditions.append(Order.status == filters.status)
    if filters.payment_status:
        conditions.append(Order.payment_status == filters.payment_status)
    if filters.customer_name:
        conditions.append(Order.customer_name.ilike(f"%{filters.customer_name}%"))
    if filters.customer_email:
        conditions.append(Order.customer_email.ilike(f"%{filters.customer_email}%"))
    if filters.customer_phone:
        conditions.append(Order.customer_phone.ilike(f"%{filters.customer_phone}%"))
    if filters.room_number:
        conditions.append(Order.room_number == filters.room_number)
    if filters.created_after:
        conditions.append(Order.created_at >= filters.created_after)
    if filters.created_before:
        conditions.append(Order.created_at <= filters.created_before)

    return conditions


async def list_orders(
    db: AsyncSession,
    organization_id: str,
    filters: OrderFilters,
    allowed_statuses: Optional[Sequence[OrderStatus]] = None,
    venue_scope: Optional[Sequence[str]] = None,
) -> dict:
    """
    Paginated, newest-first order listing.

    ``allowed_statuses`` and ``venue_scope`` restrict the listing for
    callers that may only see part of the organization's orders.
    """
    page = max(filters.page, 1)
    limit = min(max(filters.limit, 1), settings.max_page_size)
    conditions = _filtered_query(organization_id, filters, allowed_statuses, venue_scope)

    total = (await db.execute(select(func.count(Order.id)).where(*conditions))).scalar() or 0

    result = await db.execute(
        select(Order)
        .where(*conditions)
        .order_by(Order.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    orders = list(result.scalars().all())
    total_pages = math.ceil(total / limit) if total else 0

    return {
        "data": orders,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_previous_page": page > 1,
    }


async def list_unpaid_orders(
    db: AsyncSession,
    organization_id: str,
    venue_id: Optional[str] = None,
    venue_scope: Optional[Sequence[str]] = None,
) -> list[Order]:
    """Orders still owing money, excluding cancelled ones."""
    conditions = [
        Order.organization_id == organization_id,
        Order.status != OrderStatus.CANCELLED,
        Order.payment_status.in_([OrderPaymentStatus.UNPAID, OrderPaymentStatus.PARTIALLY_PAID]),
    ]
    if venue_id:
        conditions.append(Order.venue_id == venue_id)
    if venue_scope is not None:
        conditions.append(Order.venue_id.in_(list(venue_scope)))

    result = await db.execute(select(Order).where(*conditions).order_by(Order.created_at.desc()))
    return list(result.scalars().all())


async def list_orders_by_phone(db: AsyncSession, phone: str, limit: int) -> list[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.customer_phone == phone)
        .order_by(Order.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
