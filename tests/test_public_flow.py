from conftest import auth

GUEST = {"customer_name": "Alex Guest", "customer_phone": "555-123-4567"}


async def place_order(client, seeded, path="/api/public/orders", **overrides):
    body = {**GUEST, "items": [{"menu_item_id": seeded["item_id"], "quantity": 1}], **overrides}
    return await client.post(path, json=body)


class TestPublicMenu:
    async def test_menu_with_venue_and_table(self, client, seeded):
        response = await client.get(
            f"/api/public/menus/{seeded['slug']}",
            params={"venueId": seeded["venue_id"], "tableId": seeded["table_id"]},
        )
        assert response.status_code == 200, response.text
        body = response.json()

        assert body["organization"]["slug"] == seeded["slug"]
        assert body["venue"]["name"] == "Downtown"
        assert body["table"]["name"] == "T1"
        items = body["menus"][0]["categories"][0]["items"]
        assert {i["name"] for i in items} == {"Paneer Curry", "Garlic Naan"}

    async def test_unavailable_items_are_hidden(self, client, seeded):
        await client.patch(
            f"{seeded['base']}/items/{seeded['naan_id']}/availability",
            json={"is_available": False},
            headers=auth(seeded["token"]),
        )
        body = (await client.get(f"/api/public/menus/{seeded['slug']}")).json()
        assert [i["name"] for i in body["menus"][0]["categories"][0]["items"]] == ["Paneer Curry"]
        assert body["venue"] is None

    async def test_inactive_menus_are_hidden(self, client, seeded):
        await client.patch(
            f"{seeded['base']}/menus/{seeded['menu_id']}",
            json={"is_active": False},
            headers=auth(seeded["token"]),
        )
        body = (await client.get(f"/api/public/menus/{seeded['slug']}")).json()
        assert body["menus"] == []

    async def test_unknown_organization(self, client, seeded):
        response = await client.get("/api/public/menus/no-such-place")
        assert response.status_code == 404

    async def test_table_from_another_venue(self, client, seeded):
        response = await client.get(
            f"/api/public/menus/{seeded['slug']}",
            params={"venueId": "elsewhere", "tableId": seeded["table_id"]},
        )
        assert response.status_code == 404


class TestPublicOrders:
    async def test_order_from_table(self, client, seeded):
        response = await place_order(client, seeded, table_id=seeded["table_id"])
        assert response.status_code == 201, response.text
        order = response.json()

        assert order["status"] == "PENDING"
        assert order["venue_id"] == seeded["venue_id"]
        assert order["table_id"] == seeded["table_id"]
        assert order["total_amount"] == 10.5

        staff_view = (
            await client.get(f"{seeded['base']}/orders/{order['id']}", headers=auth(seeded["token"]))
        ).json()
        assert staff_view["source"] == "PUBLIC"

    async def test_order_for_venue(self, client, seeded):
        response = await place_order(client, seeded, path=f"/api/public/venues/{seeded['venue_id']}/orders")
        assert response.status_code == 201
        assert response.json()["table_id"] is None

    async def test_venue_or_table_required(self, client, seeded):
        response = await place_order(client, seeded)
        assert response.status_code == 400

    async def test_inactive_venue(self, client, seeded):
        await client.patch(
            f"{seeded['base']}/venues/{seeded['venue_id']}",
            json={"is_active": False},
            headers=auth(seeded["token"]),
        )
        response = await place_order(client, seeded, venue_id=seeded["venue_id"])
        assert response.status_code == 404

    async def test_items_of_inactive_menus_cannot_be_ordered(self, client, seeded):
        await client.patch(
            f"{seeded['base']}/menus/{seeded['menu_id']}",
            json={"is_active": False},
            headers=auth(seeded["token"]),
        )
        response = await place_order(client, seeded, table_id=seeded["table_id"])
        assert response.status_code == 400
        assert "unavailable" in response.json()["detail"]

    async def test_items_of_inactive_categories_cannot_be_ordered(self, client, seeded):
        await client.patch(
            f"{seeded['base']}/categories/{seeded['category_id']}",
            json={"is_active": False},
            headers=auth(seeded["token"]),
        )
        response = await place_order(client, seeded, table_id=seeded["table_id"])
        assert response.status_code == 400

    async def test_inactive_table(self, client, seeded):
        response = await client.patch(
            f"{seeded['base']}/venues/{seeded['venue_id']}/tables/{seeded['table_id']}",
            json={"is_active": False},
            headers=auth(seeded["token"]),
        )
        assert response.status_code == 200

        response = await place_order(client, seeded, table_id=seeded["table_id"])
        assert response.status_code == 404
        menu = await client.get(f"/api/public/menus/{seeded['slug']}", params={"tableId": seeded["table_id"]})
        assert menu.status_code == 404

    async def test_phone_needs_ten_digits(self, client, seeded):
        response = await place_order(client, seeded, table_id=seeded["table_id"], customer_phone="555-12-34ab")
        assert response.status_code == 422


class TestTracking:
    async def test_status_and_full_order(self, client, seeded):
        order = (await place_order(client, seeded, table_id=seeded["table_id"])).json()
        await client.patch(
            f"{seeded['base']}/orders/{order['id']}/status",
            json={"status": "CONFIRMED"},
            headers=auth(seeded["token"]),
        )

        status = (await client.get(f"/api/public/orders/{order['id']}/status")).json()
        assert status["status"] == "CONFIRMED"
        assert status["payment_status"] == "UNPAID"
        assert status["order_number"] == order["order_number"]

        full = (await client.get(f"/api/public/orders/{order['id']}")).json()
        assert full["items"][0]["name"] == "Paneer Curry"

    async def test_unknown_order(self, client, seeded):
        response = await client.get("/api/public/orders/missing/status")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Not Found", "detail": "Order missing not found"}

    async def test_lookup_by_phone(self, client, seeded):
        first = (await place_order(client, seeded, table_id=seeded["table_id"])).json()
        second = (await place_order(client, seeded, table_id=seeded["table_id"])).json()
        await place_order(client, seeded, table_id=seeded["table_id"], customer_phone="555-000-1111")

        orders = (await client.get(f"/api/public/orders/phone/{GUEST['customer_phone']}")).json()
        assert {o["id"] for o in orders} == {first["id"], second["id"]}

        assert (await client.get("/api/public/orders/phone/999-999-9999")).json() == []
