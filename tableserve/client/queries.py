"""
Cached order queries and mutations.

``OrderQueries`` pairs the ``OrderService`` endpoints with the
``QueryClient`` cache: reads go through ``fetch_query`` with per-view stale
times, writes go through ``mutate`` with optimistic cache updates that are
rolled back when the server rejects the change.

``RoleBasedOrders`` layers the membership rules on top: which venue and
status filters a member may use, which orders they see and which actions
they may take.
"""

import logging
from typing import Any, Callable, Iterable, Optional

from tableserve.client.query_cache import QueryClient
from tableserve.client.query_keys import AnalyticsKeys, OrderKeys, get_related_query_keys
from tableserve.client.services import OrderService, Payload
from tableserve.core.enums import MemberRole, OrderPaymentStatus, OrderStatus, StaffType
from tableserve.core.permissions import (
    OrderAction,
    can_perform_order_action,
    get_allowed_order_statuses,
    get_order_page_info,
)

logger = logging.getLogger(__name__)

LIST_STALE_TIME = 2 * 60
VENUE_STALE_TIME = 3 * 60
FILTERED_STALE_TIME = 3 * 60
ORGANIZATION_STALE_TIME = 5 * 60
DETAIL_STALE_TIME = 60
INFINITE_PAGE_SIZE = 100


def next_page_param(page: Optional[dict]) -> Optional[int]:
    """Next page number of a paginated listing, or None on the last page."""
    if page and page.get("has_next_page") and page.get("data"):
        return page["page"] + 1
    return None


def patch_order_in(data: Any, order_id: str, changes: dict[str, Any]) -> Any:
    """
    Apply ``changes`` to one order wherever it sits in cached list data.

    Handles plain lists, paginated listings (``{"data": [...]}``) and
    infinite queries (``{"pages": [{"data": [...]}, ...]}``); anything else
    is returned unchanged.
    """

    def patch_list(orders: list) -> list:
        return [
            {**order, **changes} if isinstance(order, dict) and order.get("id") == order_id else order
            for order in orders
        ]

    if isinstance(data, list):
        return patch_list(data)
    if isinstance(data, dict):
        if isinstance(data.get("pages"), list):
            return {**data, "pages": [patch_order_in(page, order_id, changes) for page in data["pages"]]}
        if isinstance(data.get("data"), list):
            return {**data, "data": patch_list(data["data"])}
    return data


def _status_value(status: Any) -> Optional[str]:
    return getattr(status, "value", status)


class OrderQueries:
    """Order reads and writes for one organization."""

    def __init__(self, orders: OrderService, cache: QueryClient, organization_id: str):
        self.orders = orders
        self.cache = cache
        self.organization_id = organization_id

    # =========================================================================
    # READS
    # =========================================================================

    async def list_orders(self, filters: Optional[dict[str, Any]] = None) -> Any:
        filters = dict(filters or {})
        return await self.cache.fetch_query(
            OrderKeys.list({"organization_id": self.organization_id, **filters}),
            lambda: self.orders.get_filtered(self.organization_id, filters),
            stale_time=LIST_STALE_TIME,
        )

    async def by_organization(self, status: Optional[OrderStatus] = None) -> Any:
        return await self.cache.fetch_query(
            OrderKeys.by_organization(self.organization_id, status),
            lambda: self.orders.get_all_for_organization(self.organization_id, status=status),
            stale_time=ORGANIZATION_STALE_TIME,
        )

    async def by_venue(self, venue_id: str, status: Optional[OrderStatus] = None) -> Any:
        return await self.cache.fetch_query(
            OrderKeys.by_venue(venue_id, status),
            lambda: self.orders.get_all_for_venue(self.organization_id, venue_id, status=status),
            stale_time=VENUE_STALE_TIME,
        )

    async def filtered(self, filters: dict[str, Any]) -> Any:
        return await self.cache.fetch_query(
            OrderKeys.filtered({"organization_id": self.organization_id, **filters}),
            lambda: self.orders.get_filtered(self.organization_id, filters),
            stale_time=FILTERED_STALE_TIME,
        )

    def infinite_key(self, filters: dict[str, Any]) -> tuple:
        return OrderKeys.infinite({"organization_id": self.organization_id, **filters})

    def _page_fetcher(self, filters: dict[str, Any]) -> Callable:
        async def fetch(page: int) -> Any:
            return await self.orders.get_filtered(
                self.organization_id,
                {**filters, "page": page, "limit": INFINITE_PAGE_SIZE},
            )
        return fetch

    async def infinite_filtered(self, filters: dict[str, Any]) -> dict[str, list]:
        return await self.cache.fetch_infinite_query(
            self.infinite_key(filters),
            self._page_fetcher(filters),
            initial_page_param=1,
            stale_time=FILTERED_STALE_TIME,
        )

    async def fetch_next_filtered_page(self, filters: dict[str, Any]) -> Optional[dict[str, list]]:
        return await self.cache.fetch_next_page(
            self.infinite_key(filters),
            self._page_fetcher(filters),
            next_page_param,
        )

    def has_next_filtered_page(self, filters: dict[str, Any]) -> bool:
        return self.cache.has_next_page(self.infinite_key(filters), next_page_param)

    async def detail(self, order_id: str) -> Any:
        return await self.cache.fetch_query(
            OrderKeys.detail(order_id),
            lambda: self.orders.get_by_id(self.organization_id, order_id),
            stale_time=DETAIL_STALE_TIME,
        )

    async def active_count(self) -> Any:
        return await self.cache.fetch_query(
            OrderKeys.active_count(self.organization_id),
            lambda: self.orders.get_active_count(self.organization_id),
            stale_time=LIST_STALE_TIME,
        )

    async def recent_active(self, limit: int = 10) -> Any:
        return await self.cache.fetch_query(
            OrderKeys.recent_active(self.organization_id),
            lambda: self.orders.get_recent_active(self.organization_id, limit),
            stale_time=LIST_STALE_TIME,
        )

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def _snapshot(self, order_id: str) -> dict[str, Any]:
        return {
            "detail": self.cache.get_query_data(OrderKeys.detail(order_id)),
            "lists": self.cache.get_queries_data(OrderKeys.lists()),
        }

    def _restore(self, order_id: str, context: Optional[dict[str, Any]]) -> None:
        if not context:
            return
        if context.get("detail") is not None:
            self.cache.set_query_data(OrderKeys.detail(order_id), context["detail"])
        for key, data in (context.get("lists") or {}).items():
            self.cache.set_query_data(key, data)

    def _patch_everywhere(self, order_id: str, changes: dict[str, Any]) -> None:
        previous = self.cache.get_query_data(OrderKeys.detail(order_id))
        if previous is not None:
            self.cache.set_query_data(OrderKeys.detail(order_id), {**previous, **changes})
        self.cache.set_queries_data(OrderKeys.lists(), lambda data: patch_order_in(data, order_id, changes))

    def _invalidate_related(self, order_id: str) -> None:
        for key in get_related_query_keys("order", order_id):
            self.cache.invalidate_queries(key)
        self.cache.invalidate_queries(OrderKeys.analytics())

    def _invalidate_lists(self, venue_id: Optional[str] = None) -> None:
        self.cache.invalidate_queries(OrderKeys.lists())
        self.cache.invalidate_queries(OrderKeys.analytics())
        self.cache.invalidate_queries(AnalyticsKeys.dashboard())
        if venue_id:
            self.cache.invalidate_queries(OrderKeys.by_venue(venue_id))

    async def create_order(self, data: Payload) -> Any:
        def on_success(order, variables, context):
            self._invalidate_lists(order.get("venue_id"))
            self.cache.set_query_data(OrderKeys.detail(order["id"]), order)
            logger.info(f"Order {order.get('order_number')} created")

        return await self.cache.mutate(
            lambda payload: self.orders.create(self.organization_id, payload),
            data,
            on_success=on_success,
        )

    async def update_order(self, order_id: str, data: Payload) -> Any:
        changes = data if isinstance(data, dict) else data.model_dump(exclude_unset=True, mode="json")
        scalar_changes = {k: v for k, v in changes.items() if not isinstance(v, (list, dict))}

        async def on_mutate(variables):
            await self.cache.cancel_queries(OrderKeys.detail(order_id))
            context = self._snapshot(order_id)
            previous = context["detail"]
            if previous is not None:
                self.cache.set_query_data(OrderKeys.detail(order_id), {**previous, **scalar_changes})
            return context

        def on_success(order, variables, context):
            self._invalidate_related(order_id)
            self.cache.set_query_data(OrderKeys.detail(order_id), order)

        def on_error(error, variables, context):
            self._restore(order_id, context)

        return await self.cache.mutate(
            lambda payload: self.orders.update(self.organization_id, order_id, payload),
            data,
            on_mutate=on_mutate,
            on_success=on_success,
            on_error=on_error,
        )

    async def update_status(self, order_id: str, status: OrderStatus) -> Any:
        status_value = _status_value(status)

        async def on_mutate(variables):
            await self.cache.cancel_queries(OrderKeys.detail(order_id))
            context = self._snapshot(order_id)
            self._patch_everywhere(order_id, {"status": status_value})
            return context

        def on_success(order, variables, context):
            # Lists keep the patched status until their refetch
            self._invalidate_related(order_id)
            self.cache.set_query_data(OrderKeys.detail(order_id), order)
            self.cache.set_queries_data(
                OrderKeys.lists(),
                lambda data: patch_order_in(data, order_id, {"status": order["status"]}),
            )

        def on_error(error, variables, context):
            self._restore(order_id, context)
            logger.warning(f"Status change of order {order_id} to {status_value} failed: {error}")

        def on_settled(order, error, variables, context):
            if error is not None:
                self.cache.invalidate_queries(OrderKeys.detail(order_id), exact=True)

        return await self.cache.mutate(
            lambda value: self.orders.update_status(self.organization_id, order_id, value),
            status_value,
            on_mutate=on_mutate,
            on_success=on_success,
            on_error=on_error,
            on_settled=on_settled,
        )

    async def update_payment_status(self, order_id: str, is_paid: bool, data: Optional[Payload] = None) -> Any:
        payment_status = OrderPaymentStatus.PAID.value if is_paid else OrderPaymentStatus.UNPAID.value

        async def on_mutate(variables):
            await self.cache.cancel_queries(OrderKeys.detail(order_id))
            context = self._snapshot(order_id)
            self._patch_everywhere(order_id, {"payment_status": payment_status})
            return context

        def on_success(order, variables, context):
            self._invalidate_related(order_id)
            self.cache.set_query_data(OrderKeys.detail(order_id), order)

        def on_error(error, variables, context):
            self._restore(order_id, context)

        async def send(payload):
            if is_paid:
                return await self.orders.mark_as_paid(self.organization_id, order_id, payload)
            return await self.orders.mark_as_unpaid(self.organization_id, order_id, payload)

        return await self.cache.mutate(
            send,
            data,
            on_mutate=on_mutate,
            on_success=on_success,
            on_error=on_error,
        )

    async def update_item(self, order_id: str, item_id: str, data: Payload) -> Any:
        def on_success(order, variables, context):
            self.cache.set_query_data(OrderKeys.detail(order_id), order)
            self.cache.invalidate_queries(OrderKeys.lists())

        return await self.cache.mutate(
            lambda payload: self.orders.update_item(self.organization_id, order_id, item_id, payload),
            data,
            on_success=on_success,
        )

    async def delete_order(self, order_id: str) -> None:
        def on_success(result, variables, context):
            self.cache.remove_queries(OrderKeys.detail(order_id), exact=True)
            self._invalidate_lists()

        await self.cache.mutate(
            lambda oid: self.orders.delete(self.organization_id, oid),
            order_id,
            on_success=on_success,
        )


class RoleBasedOrders:
    """
    Order listing as seen by one member.

    ``membership`` is the body of ``GET /api/organizations/{id}/me``.
    """

    def __init__(
        self,
        queries: OrderQueries,
        membership: dict[str, Any],
        current_venue_id: Optional[str] = None,
        current_venue_name: Optional[str] = None,
    ):
        self.queries = queries
        self.role = MemberRole(membership["role"]) if membership.get("role") else None
        self.staff_type = StaffType(membership["staff_type"]) if membership.get("staff_type") else None
        self.venue_ids: list[str] = list(membership.get("venue_ids") or [])
        self.current_venue_id = current_venue_id
        self.current_venue_name = current_venue_name

    @property
    def allowed_statuses(self) -> Optional[tuple[OrderStatus, ...]]:
        if self.role is None:
            return None
        return get_allowed_order_statuses(self.role, self.staff_type)

    @property
    def available_status_filters(self) -> list[OrderStatus]:
        allowed = self.allowed_statuses
        return list(OrderStatus) if allowed is None else list(allowed)

    def build_filters(self, status: Optional[str] = None, venue_id: Optional[str] = None) -> dict[str, Any]:
        """
        Combine the requested filters with role restrictions.

        Staff can only narrow to one of their own venues; a request for any
        other venue is dropped and the server's venue scoping applies.
        """
        filters: dict[str, Any] = {}

        target_venue = venue_id or self.current_venue_id
        if target_venue:
            if self.role != MemberRole.STAFF or target_venue in self.venue_ids:
                filters["venue_id"] = target_venue

        if status:
            filters["status"] = _status_value(status)
        return filters

    def _visible(self, orders: Iterable[dict]) -> list[dict]:
        allowed = self.allowed_statuses
        if allowed is None:
            return list(orders)
        allowed_values = {s.value for s in allowed}
        return [o for o in orders if o.get("status") in allowed_values]

    async def orders(self, status: Optional[str] = None, venue_id: Optional[str] = None) -> list[dict]:
        data = await self.queries.infinite_filtered(self.build_filters(status, venue_id))
        return self._visible(order for page in data["pages"] for order in (page or {}).get("data", []))

    async def fetch_next_page(self, status: Optional[str] = None, venue_id: Optional[str] = None) -> list[dict]:
        data = await self.queries.fetch_next_filtered_page(self.build_filters(status, venue_id))
        if not data:
            return []
        return self._visible(order for page in data["pages"] for order in (page or {}).get("data", []))

    def has_next_page(self, status: Optional[str] = None, venue_id: Optional[str] = None) -> bool:
        return self.queries.has_next_filtered_page(self.build_filters(status, venue_id))

    # Action checks

    def _can(self, action: OrderAction, order_status: Optional[str] = None) -> bool:
        if self.role is None:
            return False
        status = OrderStatus(order_status) if order_status else None
        return can_perform_order_action(action, self.role, self.staff_type, status)

    @property
    def can_create_order(self) -> bool:
        return self._can(OrderAction.CREATE)

    def can_edit_order(self, order_status: Optional[str] = None) -> bool:
        return self._can(OrderAction.EDIT, order_status)

    def can_cancel_order(self, order_status: Optional[str] = None) -> bool:
        return self._can(OrderAction.CANCEL, order_status)

    def can_update_order_status(self, order_status: Optional[str] = None) -> bool:
        return self._can(OrderAction.UPDATE_STATUS, order_status)

    def can_delete_order(self, order_status: Optional[str] = None) -> bool:
        return self._can(OrderAction.DELETE, order_status)

    def can_manage_payment(self, order_status: Optional[str] = None) -> bool:
        return self._can(OrderAction.MANAGE_PAYMENT, order_status)

    @property
    def page_info(self) -> dict[str, str]:
        return get_order_page_info(self.role, self.staff_type, self.current_venue_name, self.venue_ids)
