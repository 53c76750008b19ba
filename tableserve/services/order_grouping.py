"""
Order Grouping for Display

Groups orders that belong together on the floor: the same table and
customer, the same table, or the same customer phone. Works on ORM
orders, response models and plain dicts alike.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

from tableserve.core.enums import ACTIVE_ORDER_STATUSES, OrderStatus


def _get(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _created_at(order: Any) -> datetime:
    value = _get(order, "created_at")
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value is None:
        return datetime.min
    # Compare naive and aware timestamps on the same footing
    return value.replace(tzinfo=None)


def _table_name(order: Any) -> Optional[str]:
    table = _get(order, "table")
    return _get(table, "name") if table is not None else None


@dataclass
class OrderGroup:
    key: str
    table_name: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    orders: list = field(default_factory=list)
    latest_order_time: Optional[datetime] = None
    total_amount: float = 0.0
    active_orders_count: int = 0

    @property
    def has_multiple_orders(self) -> bool:
        return len(self.orders) > 1

    @property
    def display_name(self) -> str:
        return get_group_display_name(self)

    @property
    def summary(self) -> str:
        if len(self.orders) == 1:
            return "1 order"
        if self.active_orders_count:
            return f"{len(self.orders)} orders ({self.active_orders_count} active)"
        return f"{len(self.orders)} orders"

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "display_name": self.display_name,
            "table_name": self.table_name,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "orders": self.orders,
            "has_multiple_orders": self.has_multiple_orders,
            "latest_order_time": self.latest_order_time,
            "total_amount": round(self.total_amount, 2),
            "active_orders_count": self.active_orders_count,
        }


def group_key(order: Any) -> str:
    table_id = _get(order, "table_id")
    phone = _get(order, "customer_phone")

    if table_id and phone:
        return f"table-{table_id}-customer-{phone}"
    if table_id:
        return f"table-{table_id}"
    if phone:
        return f"customer-{phone}"
    return f"individual-{_get(order, 'id')}"


def group_orders_for_display(orders: Iterable[Any]) -> dict:
    """
    Group orders by table and customer.

    Returns:
        dict with ``groups`` (newest activity first, orders inside newest
        first) and ``should_show_grouped`` (any group holds more than one
        order)
    """
    groups: dict[str, OrderGroup] = {}

    for order in orders:
        key = group_key(order)
        group = groups.get(key)
        if group is None:
            group = OrderGroup(
                key=key,
                table_name=_table_name(order) if _get(order, "table_id") else None,
                customer_name=_get(order, "customer_name"),
                customer_phone=_get(order, "customer_phone"),
                latest_order_time=_get(order, "created_at"),
            )
            groups[key] = group

        group.orders.append(order)
        group.total_amount += float(_get(order, "total_amount", 0) or 0)

        if group.latest_order_time is None or _created_at(order) > _created_at(
            {"created_at": group.latest_order_time}
        ):
            group.latest_order_time = _get(order, "created_at")

        if OrderStatus(_get(order, "status")) in ACTIVE_ORDER_STATUSES:
            group.active_orders_count += 1

    result = list(groups.values())
    for group in result:
        group.orders.sort(key=_created_at, reverse=True)
    result.sort(key=lambda g: _created_at({"created_at": g.latest_order_time}), reverse=True)

    return {
        "groups": result,
        "should_show_grouped": any(g.has_multiple_orders for g in result),
    }


def get_group_display_name(group: OrderGroup) -> str:
    if group.table_name and group.customer_name:
        return f"{group.table_name} - {group.customer_name}"
    if group.table_name:
        return group.table_name
    if group.customer_name:
        return group.customer_name
    if group.customer_phone:
        return group.customer_phone
    return "Walk-in Order"
