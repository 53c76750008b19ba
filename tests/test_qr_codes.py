from conftest import add_member, auth

from tableserve.services.qr_codes import build_qr_url


async def create_qr(client, seeded, **overrides):
    body = {
        "venue_id": seeded["venue_id"],
        "menu_id": seeded["menu_id"],
        "table_id": seeded["table_id"],
        "name": "Table 1 sticker",
        **overrides,
    }
    return await client.post(f"{seeded['base']}/qr-codes", json=body, headers=auth(seeded["token"]))


def test_build_qr_url():
    assert build_qr_url("luigis", "v1") == "http://localhost:5173/luigis?venueId=v1"
    assert build_qr_url("luigis", "v1", "t4") == "http://localhost:5173/luigis?venueId=v1&tableId=t4"


class TestQrCodes:
    async def test_create_points_at_public_menu(self, client, seeded):
        response = await create_qr(client, seeded)
        assert response.status_code == 201, response.text
        qr = response.json()

        assert f"/spice-route?venueId={seeded['venue_id']}&tableId={seeded['table_id']}" in qr["qr_code_url"]
        assert qr["scan_count"] == 0
        assert qr["is_active"] is True

    async def test_unknown_venue(self, client, seeded):
        response = await create_qr(client, seeded, venue_id="elsewhere")
        assert response.status_code == 404

    async def test_png_image(self, client, seeded):
        qr = (await create_qr(client, seeded)).json()
        response = await client.get(f"{seeded['base']}/qr-codes/{qr['id']}/image", headers=auth(seeded["token"]))
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(b"\x89PNG")

    async def test_dropping_the_table_updates_the_url(self, client, seeded):
        qr = (await create_qr(client, seeded)).json()
        response = await client.patch(
            f"{seeded['base']}/qr-codes/{qr['id']}",
            json={"table_id": None, "name": "Counter"},
            headers=auth(seeded["token"]),
        )
        body = response.json()
        assert body["name"] == "Counter"
        assert body["table_id"] is None
        assert "tableId" not in body["qr_code_url"]

    async def test_list_and_delete(self, client, seeded):
        headers = auth(seeded["token"])
        qr = (await create_qr(client, seeded)).json()

        listed = (await client.get(f"{seeded['base']}/qr-codes", headers=headers)).json()
        assert [q["id"] for q in listed] == [qr["id"]]

        assert (await client.delete(f"{seeded['base']}/qr-codes/{qr['id']}", headers=headers)).status_code == 204
        assert (await client.get(f"{seeded['base']}/qr-codes/{qr['id']}", headers=headers)).status_code == 404

    async def test_member_cannot_generate(self, client, seeded):
        member = await add_member(client, seeded, "Max Member", "max@example.com", "MEMBER")
        response = await client.post(
            f"{seeded['base']}/qr-codes",
            json={"venue_id": seeded["venue_id"], "menu_id": seeded["menu_id"], "name": "Door"},
            headers=auth(member["token"]),
        )
        assert response.status_code == 403


class TestScans:
    async def test_scan_counts_and_redirects(self, client, seeded):
        qr = (await create_qr(client, seeded)).json()

        await client.post(f"/api/public/qr-codes/{qr['id']}/scan")
        response = await client.post(f"/api/public/qr-codes/{qr['id']}/scan")

        assert response.json() == {
            "qr_code_id": qr["id"],
            "redirect_url": qr["qr_code_url"],
            "scan_count": 2,
        }

    async def test_inactive_codes_cannot_be_scanned(self, client, seeded):
        qr = (await create_qr(client, seeded)).json()
        await client.patch(
            f"{seeded['base']}/qr-codes/{qr['id']}",
            json={"is_active": False},
            headers=auth(seeded["token"]),
        )

        response = await client.post(f"/api/public/qr-codes/{qr['id']}/scan")
        assert response.status_code == 404
