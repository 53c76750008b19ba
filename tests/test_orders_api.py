import re
from types import SimpleNamespace

from conftest import add_member, auth, register_user
from tableserve.api import analytics as analytics_api


async def create_order(client, seeded, token=None, **overrides):
    body = {
        "venue_id": seeded["venue_id"],
        "table_id": seeded["table_id"],
        "customer_name": "Walk In",
        "customer_phone": "5551234567",
        "items": [
            {"menu_item_id": seeded["item_id"], "quantity": 2, "modifiers": [{"modifier_id": seeded["modifier_id"]}]},
            {"menu_item_id": seeded["naan_id"], "quantity": 1},
        ],
    }
    body.update(overrides)
    return await client.post(f"{seeded['base']}/orders", json=body, headers=auth(token or seeded["token"]))


async def set_status(client, seeded, order_id, status, token=None):
    return await client.patch(
        f"{seeded['base']}/orders/{order_id}/status",
        json={"status": status},
        headers=auth(token or seeded["token"]),
    )


class TestCreateOrder:
    async def test_totals_and_snapshot(self, client, seeded):
        response = await create_order(client, seeded)
        assert response.status_code == 201, response.text
        order = response.json()

        assert re.fullmatch(r"ORD-\d{8}-[0-9A-F]{6}", order["order_number"])
        assert order["status"] == "PENDING"
        assert order["source"] == "STAFF"
        assert order["payment_status"] == "UNPAID"
        assert order["subtotal_amount"] == 28.0
        assert order["tax_rate"] == 5.0
        assert order["tax_amount"] == 1.4
        assert order["total_amount"] == 29.4
        assert order["table"]["name"] == "T1"

        curry = next(i for i in order["items"] if i["name"] == "Paneer Curry")
        assert curry["modifiers_price"] == 2.0
        assert curry["total_price"] == 24.0

    async def test_unknown_menu_item(self, client, seeded):
        response = await create_order(client, seeded, items=[{"menu_item_id": "missing", "quantity": 1}])
        assert response.status_code == 404
        assert response.json()["success"] is False

    async def test_unavailable_item(self, client, seeded):
        await client.patch(
            f"{seeded['base']}/items/{seeded['naan_id']}/availability",
            json={"is_available": False},
            headers=auth(seeded["token"]),
        )
        response = await create_order(client, seeded, items=[{"menu_item_id": seeded["naan_id"], "quantity": 1}])
        assert response.status_code == 400
        assert "unavailable" in response.json()["detail"]

    async def test_requires_items(self, client, seeded):
        response = await create_order(client, seeded, items=[])
        assert response.status_code == 422

    async def test_tax_configuration_applies(self, client, seeded):
        response = await client.post(
            f"{seeded['base']}/tax-configurations",
            json={"name": "GST incl", "tax_rate": 12.0, "is_price_inclusive": True, "is_default": True},
            headers=auth(seeded["token"]),
        )
        assert response.status_code == 201, response.text

        order = (await create_order(client, seeded, items=[{"menu_item_id": seeded["item_id"], "quantity": 1}])).json()
        assert order["is_price_inclusive"] is True
        assert order["total_amount"] == order["subtotal_amount"] == 10.0
        assert order["tax_amount"] == 1.07


class TestAuthentication:
    async def test_missing_token(self, client, seeded):
        response = await client.get(f"{seeded['base']}/orders")
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    async def test_unknown_token(self, client, seeded):
        response = await client.get(f"{seeded['base']}/orders", headers=auth("nope"))
        assert response.status_code == 401

    async def test_non_member(self, client, seeded):
        outsider = await register_user(client, "Olly Outsider", "outsider@example.com")
        response = await client.get(f"{seeded['base']}/orders", headers=auth(outsider["token"]))
        assert response.status_code == 403


class TestStatusWorkflow:
    async def test_forward_transitions(self, client, seeded):
        order_id = (await create_order(client, seeded)).json()["id"]

        for status in ("CONFIRMED", "PREPARING", "READY", "SERVED", "COMPLETED"):
            response = await set_status(client, seeded, order_id, status)
            assert response.status_code == 200, response.text
            assert response.json()["status"] == status

        assert response.json()["completed_at"] is not None

    async def test_skipping_ahead_is_rejected(self, client, seeded):
        order_id = (await create_order(client, seeded)).json()["id"]
        response = await set_status(client, seeded, order_id, "PREPARING")
        assert response.status_code == 400
        assert "PENDING to PREPARING" in response.json()["detail"]

    async def test_same_status_is_a_no_op(self, client, seeded):
        order_id = (await create_order(client, seeded)).json()["id"]
        response = await set_status(client, seeded, order_id, "PENDING")
        assert response.status_code == 200
        assert response.json()["status"] == "PENDING"

    async def test_cancelled_orders_are_final(self, client, seeded):
        order_id = (await create_order(client, seeded)).json()["id"]
        response = await client.post(f"{seeded['base']}/orders/{order_id}/cancel", headers=auth(seeded["token"]))
        assert response.json()["status"] == "CANCELLED"

        assert (await set_status(client, seeded, order_id, "CONFIRMED")).status_code == 400

        response = await client.patch(
            f"{seeded['base']}/orders/{order_id}",
            json={"notes": "too late"},
            headers=auth(seeded["token"]),
        )
        assert response.status_code == 409


class TestEditOrder:
    async def test_update_items_recomputes_totals(self, client, seeded):
        order = (await create_order(client, seeded)).json()
        naan_line = next(i for i in order["items"] if i["name"] == "Garlic Naan")

        response = await client.patch(
            f"{seeded['base']}/orders/{order['id']}",
            json={"update_items": [{"item_id": naan_line["id"], "quantity": 3}], "notes": "no onions"},
            headers=auth(seeded["token"]),
        )
        assert response.status_code == 200, response.text
        updated = response.json()
        assert updated["subtotal_amount"] == 36.0
        assert updated["total_amount"] == 37.8
        assert updated["notes"] == "no onions"

    async def test_order_keeps_at_least_one_item(self, client, seeded):
        order = (await create_order(client, seeded, items=[{"menu_item_id": seeded["naan_id"], "quantity": 1}])).json()
        response = await client.patch(
            f"{seeded['base']}/orders/{order['id']}",
            json={"remove_item_ids": [order["items"][0]["id"]]},
            headers=auth(seeded["token"]),
        )
        assert response.status_code == 400

    async def test_delete(self, client, seeded):
        order_id = (await create_order(client, seeded)).json()["id"]
        response = await client.delete(f"{seeded['base']}/orders/{order_id}", headers=auth(seeded["token"]))
        assert response.status_code == 204
        response = await client.get(f"{seeded['base']}/orders/{order_id}", headers=auth(seeded["token"]))
        assert response.status_code == 404


class TestPayments:
    async def test_partial_full_and_refund(self, client, seeded):
        order_id = (await create_order(client, seeded)).json()["id"]
        base = f"{seeded['base']}/orders/{order_id}/payment"
        headers = auth(seeded["token"])

        response = await client.post(f"{base}/paid", json={"payment_method": "CASH", "amount": 10}, headers=headers)
        assert response.json()["payment_status"] == "PARTIALLY_PAID"

        status = (await client.get(base, headers=headers)).json()
        assert status["balance_due"] == 19.4
        assert status["paid_by_name"] == "Olivia Owner"

        response = await client.post(f"{base}/paid", json={"payment_method": "UPI"}, headers=headers)
        assert response.json()["payment_status"] == "PAID"
        assert response.json()["paid_amount"] == 29.4

        response = await client.post(f"{base}/refund", json={"reason": "cold food"}, headers=headers)
        assert response.json()["payment_status"] == "REFUNDED"
        assert "Refunded: cold food" in response.json()["payment_notes"]

        response = await client.post(f"{base}/refund", json={}, headers=headers)
        assert response.status_code == 409

    async def test_mark_unpaid(self, client, seeded):
        order_id = (await create_order(client, seeded)).json()["id"]
        base = f"{seeded['base']}/orders/{order_id}/payment"
        headers = auth(seeded["token"])

        await client.post(f"{base}/paid", json={"payment_method": "CASH"}, headers=headers)
        response = await client.post(f"{base}/unpaid", json={"reason": "card bounced"}, headers=headers)
        assert response.json()["payment_status"] == "UNPAID"
        assert response.json()["paid_amount"] is None

        unpaid = (await client.get(f"{seeded['base']}/orders/unpaid", headers=headers)).json()
        assert [o["id"] for o in unpaid] == [order_id]

    async def test_cancelled_orders_cannot_be_paid(self, client, seeded):
        order_id = (await create_order(client, seeded)).json()["id"]
        headers = auth(seeded["token"])
        await client.post(f"{seeded['base']}/orders/{order_id}/cancel", headers=headers)
        response = await client.post(
            f"{seeded['base']}/orders/{order_id}/payment/paid",
            json={"payment_method": "CASH"},
            headers=headers,
        )
        assert response.status_code == 409


class TestStaffAccess:
    async def test_kitchen_staff(self, client, seeded):
        cook = await add_member(client, seeded, "Kai Cook", "cook@example.com", "STAFF", "KITCHEN")
        pending_id = (await create_order(client, seeded)).json()["id"]
        confirmed_id = (await create_order(client, seeded)).json()["id"]
        await set_status(client, seeded, confirmed_id, "CONFIRMED")

        listing = (await client.get(f"{seeded['base']}/orders", headers=auth(cook["token"]))).json()
        assert [o["id"] for o in listing["data"]] == [confirmed_id]
        assert listing["total"] == 1

        assert (await set_status(client, seeded, pending_id, "CONFIRMED", cook["token"])).status_code == 403
        assert (await set_status(client, seeded, confirmed_id, "PREPARING", cook["token"])).status_code == 200
        assert (await set_status(client, seeded, confirmed_id, "CANCELLED", cook["token"])).status_code == 403

        assert (await create_order(client, seeded, token=cook["token"])).status_code == 403

    async def test_hidden_statuses_cannot_be_read_by_id(self, client, seeded):
        cook = await add_member(client, seeded, "Kai Cook", "cook@example.com", "STAFF", "KITCHEN")
        pending_id = (await create_order(client, seeded)).json()["id"]
        confirmed_id = (await create_order(client, seeded)).json()["id"]
        await set_status(client, seeded, confirmed_id, "CONFIRMED")

        response = await client.get(f"{seeded['base']}/orders/{pending_id}", headers=auth(cook["token"]))
        assert response.status_code == 403
        response = await client.get(f"{seeded['base']}/orders/{pending_id}/payment", headers=auth(cook["token"]))
        assert response.status_code == 403
        response = await client.get(f"{seeded['base']}/orders/{confirmed_id}", headers=auth(cook["token"]))
        assert response.status_code == 200

    async def test_front_of_house_staff(self, client, seeded):
        waiter = await add_member(client, seeded, "Wren Waiter", "waiter@example.com", "STAFF", "FRONT_OF_HOUSE")
        response = await create_order(client, seeded, token=waiter["token"])
        assert response.status_code == 201
        order_id = response.json()["id"]

        response = await client.post(
            f"{seeded['base']}/orders/{order_id}/payment/paid",
            json={"payment_method": "CASH"},
            headers=auth(waiter["token"]),
        )
        assert response.status_code == 200

        response = await client.delete(f"{seeded['base']}/orders/{order_id}", headers=auth(waiter["token"]))
        assert response.status_code == 403

    async def test_member_is_read_only(self, client, seeded):
        viewer = await add_member(client, seeded, "Vic Viewer", "viewer@example.com", "MEMBER")
        order_id = (await create_order(client, seeded)).json()["id"]

        response = await client.get(f"{seeded['base']}/orders/{order_id}", headers=auth(viewer["token"]))
        assert response.status_code == 200
        assert (await set_status(client, seeded, order_id, "CONFIRMED", viewer["token"])).status_code == 403

    async def test_my_access(self, client, seeded):
        cook = await add_member(client, seeded, "Kai Cook", "cook@example.com", "STAFF", "KITCHEN")
        me = (await client.get(f"{seeded['base']}/me", headers=auth(cook["token"]))).json()
        assert me["dashboard_route"] == "/kitchen-dashboard"
        assert me["allowed_order_statuses"] == ["CONFIRMED", "PREPARING", "READY"]
        assert "VIEW_KITCHEN_ORDERS" in me["permissions"]


class TestListings:
    async def test_filters_and_pagination(self, client, seeded):
        headers = auth(seeded["token"])
        for _ in range(3):
            await create_order(client, seeded)
        await create_order(client, seeded, table_id=None, customer_name="Takeaway Tom", customer_phone="5559990000")

        page = (await client.get(f"{seeded['base']}/orders", params={"limit": 2}, headers=headers)).json()
        assert page["total"] == 4
        assert page["total_pages"] == 2
        assert page["has_next_page"] is True
        assert len(page["data"]) == 2

        page = (
            await client.get(f"{seeded['base']}/orders", params={"customer_name": "tom"}, headers=headers)
        ).json()
        assert [o["customer_name"] for o in page["data"]] == ["Takeaway Tom"]

    async def test_grouped(self, client, seeded):
        headers = auth(seeded["token"])
        await create_order(client, seeded)
        await create_order(client, seeded)

        grouped = (await client.get(f"{seeded['base']}/orders/grouped", headers=headers)).json()
        assert grouped["should_show_grouped"] is True
        assert grouped["groups"][0]["display_name"] == "T1 - Walk In"
        assert len(grouped["groups"][0]["orders"]) == 2

    async def test_active_count_and_recent(self, client, seeded):
        headers = auth(seeded["token"])
        first = (await create_order(client, seeded)).json()["id"]
        await create_order(client, seeded)
        await client.post(f"{seeded['base']}/orders/{first}/cancel", headers=headers)

        count = (await client.get(f"{seeded['base']}/orders/active-count", headers=headers)).json()
        assert count["active_count"] == 1

        recent = (await client.get(f"{seeded['base']}/orders/recent-active", headers=headers)).json()
        assert len(recent) == 1


class TestAnalytics:
    async def test_dashboard(self, client, seeded):
        headers = auth(seeded["token"])
        order_id = (await create_order(client, seeded)).json()["id"]
        await client.post(
            f"{seeded['base']}/orders/{order_id}/payment/paid",
            json={"payment_method": "CASH"},
            headers=headers,
        )

        response = await client.get(f"{seeded['base']}/analytics/dashboard", headers=headers)
        assert response.status_code == 200, response.text
        stats = response.json()
        assert stats["total_orders"] == 1
        assert stats["active_orders"] == 1
        assert stats["revenue"] == 29.4
        assert stats["top_items"][0]["name"] == "Paneer Curry"

    async def test_payment_report_and_export(self, client, seeded, monkeypatch):
        queued = []

        def fake_delay(organization_id, rows):
            queued.append((organization_id, rows))
            return SimpleNamespace(id="task-123")

        monkeypatch.setattr(analytics_api.export_payment_report, "delay", fake_delay)
        headers = auth(seeded["token"])

        order_id = (await create_order(client, seeded)).json()["id"]
        await client.post(
            f"{seeded['base']}/orders/{order_id}/payment/paid",
            json={"payment_method": "CREDIT_CARD"},
            headers=headers,
        )

        report = (await client.get(f"{seeded['base']}/reports/payments", headers=headers)).json()
        assert report["paid_orders"] == 1
        assert report["total_collected"] == 29.4

        response = await client.post(f"{seeded['base']}/reports/payments/export", headers=headers)
        assert response.json() == {"success": True, "message": "Export queued", "task_id": "task-123", "rows": 1}
        assert queued[0][0] == seeded["org_id"]

    async def test_members_cannot_see_analytics(self, client, seeded):
        viewer = await add_member(client, seeded, "Vic Viewer", "viewer@example.com", "MEMBER")
        response = await client.get(f"{seeded['base']}/analytics/dashboard", headers=auth(viewer["token"]))
        assert response.status_code == 403
