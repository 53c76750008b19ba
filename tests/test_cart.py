import pytest

from tableserve.client.cart import Cart, CartStore

CURRY = {"id": "i1", "name": "Paneer Curry", "price": 10.0, "discount_price": None}
NAAN = {"id": "i2", "name": "Garlic Naan", "price": 4.0, "discount_price": 3.5}


@pytest.fixture
def cart():
    cart = Cart()
    cart.add_item(CURRY, 2, modifiers=[{"modifier_id": "m1", "name": "Extra rice", "price": 2.0}])
    cart.add_item(NAAN)
    return cart


def test_totals_use_discount_and_modifiers(cart):
    assert cart.items[0].unit_price == 12.0
    assert cart.items[1].unit_price == 3.5
    assert cart.total_items == 3
    assert cart.total_amount == 27.5


def test_adding_the_same_item_raises_quantity(cart):
    cart.add_item(NAAN, 2)
    assert len(cart.items) == 2
    assert cart.items[1].quantity == 3


def test_quantity_below_one_removes_the_line(cart):
    cart.update_quantity(1, 0)
    assert [i.menu_item_id for i in cart.items] == ["i1"]

    cart.update_quantity(0, 5)
    assert cart.total_items == 5


def test_order_payload(cart):
    cart.customer_name = "Alex Guest"
    cart.customer_phone = "555-123-4567"
    cart.table_id = "t1"
    cart.update_notes(1, "well done")

    payload = cart.to_order_payload("no onions")
    assert payload == {
        "table_id": "t1",
        "customer_name": "Alex Guest",
        "customer_phone": "555-123-4567",
        "notes": "no onions",
        "items": [
            {"menu_item_id": "i1", "quantity": 2, "notes": None, "modifiers": [{"modifier_id": "m1"}]},
            {"menu_item_id": "i2", "quantity": 1, "notes": "well done", "modifiers": []},
        ],
    }


def test_clear(cart):
    cart.customer_name = "Alex"
    cart.table_id = "t1"
    cart.clear()
    assert cart.is_empty
    assert cart.table_id is None
    assert cart.customer_name == ""


class TestCartStore:
    def test_round_trip(self, tmp_path, cart):
        store = CartStore(tmp_path / "carts" / "guest.json")
        cart.table_id = "t1"
        store.save(cart)

        loaded = store.load()
        assert loaded.total_amount == 27.5
        assert loaded.table_id == "t1"
        assert loaded.items[0].modifiers[0].name == "Extra rice"

    def test_missing_file_gives_empty_cart(self, tmp_path):
        assert CartStore(tmp_path / "nothing.json").load().is_empty
        assert CartStore(tmp_path / "no-dir" / "cart.json").load().is_empty

    def test_corrupt_file_gives_empty_cart(self, tmp_path):
        path = tmp_path / "cart.json"
        path.write_text("{not json", encoding="utf-8")
        assert CartStore(path).load().is_empty

    def test_clear(self, tmp_path, cart):
        store = CartStore(tmp_path / "cart.json")
        store.save(cart)
        store.clear()
        assert not store.path.exists()
        store.clear()
