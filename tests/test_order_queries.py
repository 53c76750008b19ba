import pytest

from tableserve.client.api import ApiError
from tableserve.client.queries import OrderQueries, RoleBasedOrders, next_page_param, patch_order_in
from tableserve.client.query_cache import QueryClient
from tableserve.client.query_keys import (
    AnalyticsKeys,
    AuthKeys,
    NotificationKeys,
    OrderKeys,
    PlanKeys,
    PublicKeys,
    QrCodeKeys,
    SubscriptionKeys,
    UploadKeys,
    get_cache_tags,
    get_related_query_keys,
    normalize_filters,
)
from tableserve.core.enums import OrderStatus


class TestQueryKeys:
    def test_filters_are_normalized(self):
        assert normalize_filters({"b": 2, "a": 1, "c": None}) == (("a", 1), ("b", 2))
        assert OrderKeys.list({"status": OrderStatus.READY}) == ("orders", "list", (("status", "READY"),))
        assert OrderKeys.list({"a": 1, "b": None}) == OrderKeys.list({"a": 1})

    def test_keys_share_prefixes(self):
        detail = OrderKeys.detail("o1")
        assert detail[: len(OrderKeys.all)] == OrderKeys.all
        assert OrderKeys.by_venue("v1", "PENDING") == ("orders", "list", "venue", "v1", "PENDING")
        assert OrderKeys.by_venue("v1") == ("orders", "list", "venue", "v1")
        assert AnalyticsKeys.dashboard_by_org("org", days=7) == ("analytics", "dashboard", "org", 7)

    def test_public_menu_key(self):
        assert PublicKeys.menu("luigis", "v1") == ("public", "menu", "luigis", (("venue_id", "v1"),))

    def test_every_namespace_has_its_own_root(self):
        keys = [
            AuthKeys.user(),
            PlanKeys.detail("p1"),
            SubscriptionKeys.summary("org"),
            QrCodeKeys.by_organization("org", "v1"),
            UploadKeys.image("img"),
            NotificationKeys.list({"unread": True}),
        ]
        assert [k[0] for k in keys] == ["auth", "plans", "subscriptions", "qr_codes", "uploads", "notifications"]
        assert QrCodeKeys.by_organization("org") == ("qr_codes", "organization", "org")
        assert NotificationKeys.unread_count() == ("notifications", "unread_count")

    def test_related_keys(self):
        assert OrderKeys.lists() in get_related_query_keys("order", "o1")
        assert get_related_query_keys("plan", "p1") == []

    def test_cache_tags(self):
        assert get_cache_tags(OrderKeys.detail("o1")) == ["order"]
        assert get_cache_tags(("unrelated",)) == []


class TestPaging:
    def test_next_page_param(self):
        assert next_page_param({"page": 1, "has_next_page": True, "data": [1]}) == 2
        assert next_page_param({"page": 1, "has_next_page": False, "data": [1]}) is None
        assert next_page_param({"page": 3, "has_next_page": True, "data": []}) is None
        assert next_page_param(None) is None

    def test_patch_order_in_every_shape(self):
        orders = [{"id": "a", "status": "PENDING"}, {"id": "b", "status": "PENDING"}]
        assert patch_order_in(orders, "a", {"status": "READY"})[0]["status"] == "READY"

        paged = patch_order_in({"data": orders, "total": 2}, "b", {"status": "READY"})
        assert paged["data"][1]["status"] == "READY"
        assert paged["total"] == 2

        infinite = patch_order_in({"pages": [{"data": orders}]}, "a", {"status": "SERVED"})
        assert infinite["pages"][0]["data"][0]["status"] == "SERVED"
        assert patch_order_in(5, "a", {}) == 5


class FakeOrders:
    """Stands in for OrderService; records calls and serves canned data."""

    def __init__(self):
        self.calls = []
        self.error = None
        self.orders = {
            "o1": {"id": "o1", "status": "PENDING", "payment_status": "UNPAID", "venue_id": "v1"},
        }

    async def get_filtered(self, organization_id, filters=None):
        self.calls.append(("get_filtered", dict(filters or {})))
        page = (filters or {}).get("page", 1)
        return {
            "data": [{"id": f"p{page}", "status": "PENDING"}, {"id": f"r{page}", "status": "READY"}],
            "page": page,
            "has_next_page": page < 2,
        }

    async def get_by_id(self, organization_id, order_id):
        self.calls.append(("get_by_id", order_id))
        return dict(self.orders[order_id])

    async def update_status(self, organization_id, order_id, status):
        self.calls.append(("update_status", status))
        if self.error:
            raise self.error
        self.orders[order_id]["status"] = status
        return dict(self.orders[order_id])

    async def update(self, organization_id, order_id, data):
        self.calls.append(("update", dict(data)))
        if self.error:
            raise self.error
        self.orders[order_id].update(data)
        return dict(self.orders[order_id])

    async def mark_as_paid(self, organization_id, order_id, data):
        if self.error:
            raise self.error
        self.orders[order_id]["payment_status"] = "PAID"
        return dict(self.orders[order_id])

    async def mark_as_unpaid(self, organization_id, order_id, data=None):
        if self.error:
            raise self.error
        self.orders[order_id]["payment_status"] = "UNPAID"
        return dict(self.orders[order_id])


@pytest.fixture
def fake_orders():
    return FakeOrders()


@pytest.fixture
def order_queries(fake_orders):
    return OrderQueries(fake_orders, QueryClient(retry_delay=lambda n: 0), "org1")


class TestOrderQueries:
    async def test_detail_is_cached(self, order_queries, fake_orders):
        await order_queries.detail("o1")
        await order_queries.detail("o1")
        assert fake_orders.calls == [("get_by_id", "o1")]

    async def test_status_change_updates_detail_and_lists(self, order_queries):
        cache = order_queries.cache
        await order_queries.detail("o1")
        cache.set_query_data(OrderKeys.list({"organization_id": "org1"}), {"data": [{"id": "o1", "status": "PENDING"}]})

        order = await order_queries.update_status("o1", OrderStatus.CONFIRMED)

        assert order["status"] == "CONFIRMED"
        assert cache.get_query_data(OrderKeys.detail("o1"))["status"] == "CONFIRMED"
        listed = cache.get_query_data(OrderKeys.list({"organization_id": "org1"}))
        assert listed["data"][0]["status"] == "CONFIRMED"

    async def test_rejected_status_change_is_rolled_back(self, order_queries, fake_orders):
        cache = order_queries.cache
        await order_queries.detail("o1")
        list_key = OrderKeys.list({"organization_id": "org1"})
        cache.set_query_data(list_key, [{"id": "o1", "status": "PENDING"}])
        fake_orders.error = ApiError(400, "Cannot change order status from PENDING to READY")

        with pytest.raises(ApiError):
            await order_queries.update_status("o1", OrderStatus.READY)

        assert cache.get_query_data(OrderKeys.detail("o1"))["status"] == "PENDING"
        assert cache.get_query_data(list_key) == [{"id": "o1", "status": "PENDING"}]
        assert cache.is_stale(OrderKeys.detail("o1"))

    async def test_successful_change_marks_related_queries_stale(self, order_queries):
        cache = order_queries.cache
        await order_queries.detail("o1")
        list_key = OrderKeys.list({"organization_id": "org1"})
        dashboard_key = AnalyticsKeys.dashboard_by_org("org1")

        async def listed():
            return [{"id": "o1", "status": "PENDING"}]

        async def dashboard():
            return {"total_orders": 1}

        await cache.fetch_query(list_key, listed, stale_time=60)
        await cache.fetch_query(dashboard_key, dashboard, stale_time=60)
        assert not cache.is_stale(list_key)

        await order_queries.update_status("o1", OrderStatus.CONFIRMED)

        assert cache.is_stale(list_key)
        assert cache.is_stale(dashboard_key)
        assert cache.get_query_data(list_key) == [{"id": "o1", "status": "CONFIRMED"}]
        assert not cache.is_stale(OrderKeys.detail("o1"))

    async def test_mark_paid(self, order_queries):
        await order_queries.detail("o1")
        await order_queries.update_payment_status("o1", True, {"payment_method": "CASH"})
        assert order_queries.cache.get_query_data(OrderKeys.detail("o1"))["payment_status"] == "PAID"

    async def test_rejected_update_is_rolled_back(self, order_queries, fake_orders):
        cache = order_queries.cache
        await order_queries.detail("o1")
        list_key = OrderKeys.list({"organization_id": "org1"})
        listed = {"data": [{"id": "o1", "status": "PENDING"}], "total": 1}
        cache.set_query_data(list_key, listed)
        fake_orders.error = ApiError(400, "Only pending orders can be edited")

        with pytest.raises(ApiError):
            await order_queries.update_order(
                "o1",
                {"notes": "no onions", "items": [{"menu_item_id": "i1", "quantity": 2}]},
            )

        detail = cache.get_query_data(OrderKeys.detail("o1"))
        assert "notes" not in detail
        assert detail["status"] == "PENDING"
        assert cache.get_query_data(list_key) == listed

    async def test_update_applies_the_server_copy(self, order_queries, fake_orders):
        await order_queries.detail("o1")
        order = await order_queries.update_order("o1", {"notes": "no onions"})
        assert order["notes"] == "no onions"
        assert order_queries.cache.get_query_data(OrderKeys.detail("o1"))["notes"] == "no onions"
        assert fake_orders.calls[-1] == ("update", {"notes": "no onions"})

    @pytest.mark.parametrize("is_paid, before", [(True, "UNPAID"), (False, "PAID")])
    async def test_rejected_payment_change_is_rolled_back(self, order_queries, fake_orders, is_paid, before):
        cache = order_queries.cache
        fake_orders.orders["o1"]["payment_status"] = before
        await order_queries.detail("o1")
        list_key = OrderKeys.by_venue("v1")
        cache.set_query_data(list_key, {"pages": [{"data": [{"id": "o1", "payment_status": before}]}]})
        fake_orders.error = ApiError(400, "Cancelled orders cannot change payment status")

        with pytest.raises(ApiError):
            await order_queries.update_payment_status("o1", is_paid, {"payment_method": "CASH"})

        assert cache.get_query_data(OrderKeys.detail("o1"))["payment_status"] == before
        assert cache.get_query_data(list_key) == {"pages": [{"data": [{"id": "o1", "payment_status": before}]}]}

    async def test_infinite_listing(self, order_queries, fake_orders):
        first = await order_queries.infinite_filtered({"status": "PENDING"})
        assert len(first["pages"]) == 1
        key = OrderKeys.infinite({"organization_id": "org1", "status": "PENDING"})
        assert order_queries.cache.get_query_data(key) == first
        assert order_queries.has_next_filtered_page({"status": "PENDING"})

        await order_queries.fetch_next_filtered_page({"status": "PENDING"})
        assert not order_queries.has_next_filtered_page({"status": "PENDING"})
        assert [c[1]["page"] for c in fake_orders.calls] == [1, 2]
        assert fake_orders.calls[0][1]["limit"] == 100


class TestRoleBasedOrders:
    def membership(self, role, staff_type=None, venue_ids=()):
        return {"role": role, "staff_type": staff_type, "venue_ids": list(venue_ids)}

    async def test_kitchen_sees_kitchen_statuses_only(self, order_queries):
        view = RoleBasedOrders(order_queries, self.membership("STAFF", "KITCHEN"))
        orders = await view.orders()
        assert [o["id"] for o in orders] == ["r1"]
        assert view.available_status_filters == [OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY]

    async def test_owner_sees_everything(self, order_queries):
        view = RoleBasedOrders(order_queries, self.membership("OWNER"))
        assert len(await view.orders()) == 2
        assert len(await view.fetch_next_page()) == 4
        assert not view.has_next_page()

    def test_staff_cannot_filter_foreign_venues(self, order_queries):
        staff = RoleBasedOrders(order_queries, self.membership("STAFF", "FRONT_OF_HOUSE", ["v1"]))
        assert staff.build_filters(venue_id="v2") == {}
        assert staff.build_filters("READY", "v1") == {"venue_id": "v1", "status": "READY"}

        manager = RoleBasedOrders(order_queries, self.membership("MANAGER"), current_venue_id="v2")
        assert manager.build_filters() == {"venue_id": "v2"}

    def test_action_checks(self, order_queries):
        kitchen = RoleBasedOrders(order_queries, self.membership("STAFF", "KITCHEN"))
        assert kitchen.can_update_order_status("PREPARING")
        assert not kitchen.can_update_order_status("PENDING")
        assert not kitchen.can_create_order
        assert kitchen.page_info["title"] == "Kitchen Orders"

        nobody = RoleBasedOrders(order_queries, {})
        assert not nobody.can_edit_order("PENDING")
