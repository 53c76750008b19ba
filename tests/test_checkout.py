import pytest

from tableserve.client.api import ApiError
from tableserve.client.cart import Cart, CartStore
from tableserve.client.checkout import CheckoutFlow, ViewState, short_order_number, validate_customer

CURRY = {"id": "i1", "name": "Paneer Curry", "description": "Cottage cheese in gravy", "price": 10.0}
NAAN = {"id": "i2", "name": "Garlic Naan", "description": None, "price": 4.0}

MENU = {
    "organization": {"slug": "spice-route"},
    "venue": {"id": "v1", "name": "Downtown"},
    "table": {"id": "t2", "name": "T2"},
    "menus": [
        {"categories": [{"id": "c1", "items": [CURRY]}, {"id": "c2", "items": [NAAN]}]},
    ],
}

GUEST = {"customer_name": "Alex Guest", "customer_phone": "555-123-4567"}


class FakeMenus:
    def __init__(self, error=None):
        self.error = error

    async def get_menu(self, org_slug, venue_id=None, table_id=None):
        if self.error:
            raise self.error
        return MENU


class FakeOrders:
    def __init__(self):
        self.created = []
        self.create_error = None
        self.phone_orders = []

    async def create_order(self, payload, venue_id=None):
        if self.create_error:
            raise self.create_error
        self.created.append((payload, venue_id))
        return {"id": "abcdef1234567890", "status": "PENDING"}

    async def get_order_status(self, order_id):
        if order_id == "missing":
            raise ApiError(404, "Order missing not found")
        return {"id": order_id, "status": "CONFIRMED"}

    async def find_by_phone(self, phone):
        return self.phone_orders


@pytest.fixture
def orders():
    return FakeOrders()


@pytest.fixture
def flow(orders):
    return CheckoutFlow(FakeMenus(), orders)


def test_validate_customer():
    assert validate_customer(GUEST) == {}
    errors = validate_customer({"customer_name": " A ", "customer_phone": "555-1234"})
    assert set(errors) == {"customer_name", "customer_phone"}


def test_short_order_number():
    assert short_order_number("abcdef1234567890") == "ABCDEF12"


class TestMenu:
    async def test_load_selects_first_category(self, flow):
        await flow.load_menu("spice-route", "v1")
        assert flow.venue_id == "v1"
        assert flow.active_category == "c1"
        assert [c["id"] for c in flow.categories] == ["c1", "c2"]

    async def test_load_failure(self, orders):
        flow = CheckoutFlow(FakeMenus(ApiError(404, "Organization 'x' not found")), orders)
        assert await flow.load_menu("x") is None
        assert flow.error == "Failed to load menu. Please try again."

    async def test_search(self, flow):
        await flow.load_menu("spice-route")
        assert [i["id"] for i in flow.search("cheese")] == ["i1"]
        assert flow.active_category is None

        assert flow.search("  ") == []
        assert flow.active_category == "c1"

    async def test_scanned_table_is_stored(self, flow):
        await flow.load_menu("spice-route", "v1", "t2")
        assert flow.cart.table_id == "t2"
        assert flow.pending_table_change is None


class TestTableChange:
    async def test_new_table_with_items_needs_confirmation(self, orders):
        cart = Cart(table_id="t1", customer_phone="555-123-4567")
        cart.add_item(CURRY)
        orders.phone_orders = [
            {"id": "o1", "status": "PREPARING"},
            {"id": "o2", "status": "COMPLETED"},
        ]
        flow = CheckoutFlow(FakeMenus(), orders, cart=cart)

        await flow.load_menu("spice-route", "v1", "t2")

        change = flow.pending_table_change
        assert change.current_table_id == "t1"
        assert change.new_table_name == "T2"
        assert [o["id"] for o in change.active_orders] == ["o1"]
        assert flow.cart.table_id == "t1"

        flow.confirm_table_change()
        assert flow.cart.table_id == "t2"
        assert flow.cart.total_items == 1

    async def test_empty_cart_moves_silently(self, orders):
        flow = CheckoutFlow(FakeMenus(), orders, cart=Cart(table_id="t1"))
        await flow.load_menu("spice-route", "v1", "t2")
        assert flow.pending_table_change is None
        assert flow.cart.table_id == "t2"

    async def test_decline_keeps_the_old_table(self, orders):
        cart = Cart(table_id="t1")
        cart.add_item(NAAN)
        flow = CheckoutFlow(FakeMenus(), orders, cart=cart)
        await flow.load_menu("spice-route", "v1", "t2")

        flow.decline_table_change()
        assert flow.pending_table_change is None
        assert flow.cart.table_id == "t1"


class TestPlaceOrder:
    async def test_empty_cart(self, flow):
        assert not flow.proceed_to_checkout()
        assert await flow.place_order(GUEST) is None
        assert flow.error == "Your cart is empty"

    async def test_invalid_form(self, flow):
        flow.add_to_cart(CURRY)
        assert await flow.place_order({"customer_name": "Al", "customer_phone": "123"}) is None
        assert "customer_phone" in flow.form_errors

    async def test_venue_order_without_table(self, flow, orders):
        await flow.load_menu("spice-route", "v1")
        flow.add_to_cart(CURRY, 2)
        assert flow.proceed_to_checkout()
        assert flow.view_state == ViewState.CHECKOUT

        confirmed = await flow.place_order({**GUEST, "notes": "no onions"})

        payload, venue_id = orders.created[0]
        assert venue_id == "v1"
        assert payload["notes"] == "no onions"
        assert confirmed.order_number == "ABCDEF12"
        assert confirmed.total_amount == 20.0
        assert confirmed.items[0]["name"] == "Paneer Curry"
        assert flow.view_state == ViewState.CONFIRMATION
        assert flow.cart.is_empty

    async def test_table_order_goes_to_the_generic_endpoint(self, flow, orders):
        await flow.load_menu("spice-route", "v1", "t2")
        flow.add_to_cart(NAAN)
        await flow.place_order(GUEST)
        payload, venue_id = orders.created[0]
        assert venue_id is None
        assert payload["table_id"] == "t2"

    async def test_second_round_goes_to_the_same_table(self, flow, orders):
        await flow.load_menu("spice-route", "v1", "t2")
        flow.add_to_cart(CURRY)
        await flow.place_order(GUEST)
        assert flow.cart.is_empty
        assert flow.cart.customer_phone == ""

        flow.start_new_order()
        flow.add_to_cart(NAAN)
        await flow.place_order(GUEST)

        (first, first_venue), (second, second_venue) = orders.created
        assert first["table_id"] == second["table_id"] == "t2"
        assert first_venue is second_venue is None

    async def test_server_rejection_keeps_the_cart(self, flow, orders):
        orders.create_error = ApiError(400, "Menu item Garlic Naan is not available")
        flow.add_to_cart(NAAN)
        flow.proceed_to_checkout()

        assert await flow.place_order(GUEST) is None
        assert flow.error == "Menu item Garlic Naan is not available"
        assert flow.view_state == ViewState.CHECKOUT
        assert not flow.cart.is_empty
        assert not flow.is_submitting

    async def test_cart_is_persisted(self, tmp_path, orders):
        store = CartStore(tmp_path / "cart.json")
        flow = CheckoutFlow(FakeMenus(), orders, store=store)
        flow.add_to_cart(CURRY)
        assert store.load().total_items == 1

        await flow.load_menu("spice-route", "v1")
        await flow.place_order(GUEST)
        assert store.load().is_empty


class TestTracking:
    async def test_track_confirmed_order(self, flow):
        flow.add_to_cart(CURRY)
        await flow.load_menu("spice-route", "v1")
        await flow.place_order(GUEST)

        tracked = await flow.track_order()
        assert tracked == {"id": "abcdef1234567890", "status": "CONFIRMED"}
        assert flow.view_state == ViewState.TRACK_ORDER

    async def test_unknown_order(self, flow):
        assert await flow.track_order("missing") is None
        assert flow.error == "Order not found"

    async def test_start_new_order(self, flow):
        await flow.track_order("o1")
        flow.start_new_order()
        assert flow.view_state == ViewState.MENU
        assert flow.tracked_order is None
