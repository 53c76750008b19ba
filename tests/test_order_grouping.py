from datetime import datetime

from tableserve.services.order_grouping import group_key, group_orders_for_display


def _order(id, created, status="PENDING", table_id=None, table_name=None, phone=None, name=None, total=10.0):
    return {
        "id": id,
        "created_at": created,
        "status": status,
        "table_id": table_id,
        "table": {"id": table_id, "name": table_name} if table_id else None,
        "customer_phone": phone,
        "customer_name": name,
        "total_amount": total,
    }


def test_group_keys():
    assert group_key({"id": "1", "table_id": "t1", "customer_phone": "555"}) == "table-t1-customer-555"
    assert group_key({"id": "1", "table_id": "t1"}) == "table-t1"
    assert group_key({"id": "1", "customer_phone": "555"}) == "customer-555"
    assert group_key({"id": "1"}) == "individual-1"


def test_orders_at_the_same_table_are_grouped():
    orders = [
        _order("a", datetime(2024, 5, 1, 12, 0), table_id="t1", table_name="T1", total=12.5),
        _order("b", datetime(2024, 5, 1, 12, 30), status="COMPLETED", table_id="t1", table_name="T1", total=7.5),
        _order("c", datetime(2024, 5, 1, 11, 0), phone="5551234567", name="Sam"),
    ]

    result = group_orders_for_display(orders)
    groups = result["groups"]

    assert result["should_show_grouped"] is True
    assert [g.key for g in groups] == ["table-t1", "customer-5551234567"]

    table_group = groups[0]
    assert [o["id"] for o in table_group.orders] == ["b", "a"]
    assert table_group.total_amount == 20.0
    assert table_group.active_orders_count == 1
    assert table_group.display_name == "T1"
    assert table_group.summary == "2 orders (1 active)"
    assert groups[1].display_name == "Sam"


def test_single_orders_do_not_need_grouping():
    result = group_orders_for_display([_order("a", "2024-05-01T12:00:00Z")])
    assert result["should_show_grouped"] is False
    assert result["groups"][0].display_name == "Walk-in Order"
    assert result["groups"][0].summary == "1 order"


def test_table_and_customer_display_name():
    group = group_orders_for_display(
        [_order("a", datetime(2024, 5, 1), table_id="t2", table_name="Patio 2", phone="555", name="Ana")]
    )["groups"][0]
    assert group.display_name == "Patio 2 - Ana"
    assert group.to_dict()["has_multiple_orders"] is False
