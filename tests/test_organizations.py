from conftest import add_member, auth, register_user


class TestOrganizations:
    async def test_slug_is_unique(self, client, seeded):
        response = await client.post(
            "/api/organizations", json={"name": "Spice Route"}, headers=auth(seeded["token"])
        )
        assert response.status_code == 201
        assert response.json()["slug"] == "spice-route-2"

    async def test_public_lookup_by_slug(self, client, seeded):
        response = await client.get("/api/organizations/slug/spice-route")
        assert response.status_code == 200
        assert response.json()["id"] == seeded["org_id"]

    async def test_list_only_my_organizations(self, client, seeded):
        stranger = await register_user(client, "Sam Stranger", "sam@example.com")
        assert (await client.get("/api/organizations", headers=auth(stranger["token"]))).json() == []

        mine = (await client.get("/api/organizations", headers=auth(seeded["token"]))).json()
        assert [o["slug"] for o in mine] == ["spice-route"]

    async def test_details_include_stats_and_usage(self, client, seeded):
        body = (
            await client.get(f"{seeded['base']}/details", headers=auth(seeded["token"]))
        ).json()
        assert body["stats"]["venue_count"] == 1
        assert body["stats"]["member_count"] == 1
        assert body["stats"]["menu_count"] == 1
        assert body["subscription"] == {
            "plan_name": None,
            "status": None,
            "venues_included": 1,
            "venues_used": 1,
            "current_period_end": None,
        }

    async def test_rename_and_delete(self, client, seeded):
        headers = auth(seeded["token"])
        response = await client.patch(seeded["base"], json={"description": "Curries"}, headers=headers)
        assert response.json()["description"] == "Curries"

        assert (await client.delete(seeded["base"], headers=headers)).status_code == 204
        assert (await client.get("/api/organizations/slug/spice-route")).status_code == 404

    async def test_admin_cannot_delete(self, client, seeded):
        admin = await add_member(client, seeded, "Ada Admin", "ada@example.com", "ADMIN")
        response = await client.delete(seeded["base"], headers=auth(admin["token"]))
        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden"

    async def test_my_access_for_owner(self, client, seeded):
        body = (await client.get(f"{seeded['base']}/me", headers=auth(seeded["token"]))).json()
        assert body["role"] == "OWNER"
        assert "MANAGE_BILLING" in body["permissions"]
        assert body["allowed_order_statuses"] is None
        assert body["dashboard_route"] == "/dashboard"


class TestMembers:
    async def test_add_and_list(self, client, seeded):
        cook = await add_member(client, seeded, "Kai Cook", "kai@example.com", "STAFF", "KITCHEN", [seeded["venue_id"]])

        members = (
            await client.get(f"{seeded['base']}/members", headers=auth(seeded["token"]))
        ).json()
        added = next(m for m in members if m["id"] == cook["member_id"])
        assert added["staff_type"] == "KITCHEN"
        assert added["venue_ids"] == [seeded["venue_id"]]
        assert added["user"]["email"] == "kai@example.com"

    async def test_staff_type_defaults_to_general(self, client, seeded):
        await register_user(client, "Gus General", "gus@example.com")
        response = await client.post(
            f"{seeded['base']}/members",
            json={"email": "gus@example.com", "role": "STAFF"},
            headers=auth(seeded["token"]),
        )
        assert response.json()["staff_type"] == "GENERAL"

    async def test_unknown_email(self, client, seeded):
        response = await client.post(
            f"{seeded['base']}/members",
            json={"email": "nobody@example.com", "role": "MANAGER"},
            headers=auth(seeded["token"]),
        )
        assert response.status_code == 404

    async def test_duplicate_member(self, client, seeded):
        response = await client.post(
            f"{seeded['base']}/members",
            json={"email": "owner@example.com", "role": "MANAGER"},
            headers=auth(seeded["token"]),
        )
        assert response.status_code == 409

    async def test_unknown_venue_assignment(self, client, seeded):
        await register_user(client, "Vic Venue", "vic@example.com")
        response = await client.post(
            f"{seeded['base']}/members",
            json={"email": "vic@example.com", "role": "STAFF", "venue_ids": ["nowhere"]},
            headers=auth(seeded["token"]),
        )
        assert response.status_code == 400

    async def test_manager_cannot_add_members(self, client, seeded):
        manager = await add_member(client, seeded, "Mia Manager", "mia@example.com", "MANAGER")
        await register_user(client, "Nia New", "nia@example.com")

        headers = auth(manager["token"])
        assert (await client.get(f"{seeded['base']}/members", headers=headers)).status_code == 200
        response = await client.post(
            f"{seeded['base']}/members", json={"email": "nia@example.com"}, headers=headers
        )
        assert response.status_code == 403

    async def test_promote_staff_clears_staff_type(self, client, seeded):
        cook = await add_member(client, seeded, "Kai Cook", "kai@example.com", "STAFF", "KITCHEN")
        response = await client.patch(
            f"{seeded['base']}/members/{cook['member_id']}",
            json={"role": "MANAGER"},
            headers=auth(seeded["token"]),
        )
        assert response.json()["role"] == "MANAGER"
        assert response.json()["staff_type"] is None


class TestLastOwner:
    async def _owner_member_id(self, client, seeded):
        members = (
            await client.get(f"{seeded['base']}/members", headers=auth(seeded["token"]))
        ).json()
        return next(m["id"] for m in members if m["user_id"] == seeded["user_id"])

    async def test_cannot_demote_remove_or_leave(self, client, seeded):
        headers = auth(seeded["token"])
        member_id = await self._owner_member_id(client, seeded)

        demote = await client.patch(f"{seeded['base']}/members/{member_id}", json={"role": "ADMIN"}, headers=headers)
        assert demote.status_code == 409
        assert (await client.delete(f"{seeded['base']}/members/{member_id}", headers=headers)).status_code == 409
        assert (await client.post(f"{seeded['base']}/leave", headers=headers)).status_code == 409

    async def test_second_owner_allows_leaving(self, client, seeded):
        await add_member(client, seeded, "Oscar Owner", "oscar@example.com", "OWNER")

        assert (await client.post(f"{seeded['base']}/leave", headers=auth(seeded["token"]))).status_code == 204
        assert (await client.get(seeded["base"], headers=auth(seeded["token"]))).status_code == 403
