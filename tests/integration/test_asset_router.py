"""Integration tests for the asset API endpoints."""


class TestAssetRouter:
    async def _setup(self, client, admin_headers):
        """Create two bases and one rifle at the first."""
        alpha = (await client.post("/bases", json={
            "name": "Fort Alpha", "location": "North",
        }, headers=admin_headers)).json()
        bravo = (await client.post("/bases", json={
            "name": "Camp Bravo", "location": "South",
        }, headers=admin_headers)).json()
        rifle = (await client.post("/assets", json={
            "serial_number": "RF-1", "type": "WEAPON",
            "name": "Rifle", "base_id": alpha["id"],
        }, headers=admin_headers)).json()
        return alpha, bravo, rifle

    async def test_health_needs_no_auth(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["service"] == "armory-engine"

    async def test_missing_api_key(self, client):
        resp = await client.get("/assets", headers={
            "X-Armory-Actor-Id": "x", "X-Armory-Actor-Role": "ADMIN",
        })
        assert resp.status_code == 422

    async def test_wrong_api_key(self, client, admin_headers):
        resp = await client.get("/assets", headers={
            **admin_headers, "X-Armory-Api-Key": "wrong",
        })
        assert resp.status_code == 403

    async def test_unknown_role(self, client, actor_headers):
        resp = await client.get("/assets", headers=actor_headers("GENERAL"))
        assert resp.status_code == 403

    async def test_create_asset(self, client, admin_headers):
        alpha, _, rifle = await self._setup(client, admin_headers)
        assert rifle["status"] == "AVAILABLE"
        assert rifle["base_id"] == alpha["id"]

    async def test_duplicate_serial_is_409(self, client, admin_headers):
        alpha, _, _ = await self._setup(client, admin_headers)
        resp = await client.post("/assets", json={
            "serial_number": "RF-1", "type": "WEAPON",
            "name": "Rifle", "base_id": alpha["id"],
        }, headers=admin_headers)
        assert resp.status_code == 409
        assert resp.json()["code"] == "CONFLICT"

    async def test_officer_other_base_forbidden(self, client, admin_headers, actor_headers):
        _, bravo, rifle = await self._setup(client, admin_headers)
        resp = await client.get(
            f"/assets/{rifle['id']}",
            headers=actor_headers("LOGISTICS_OFFICER", bravo["id"]),
        )
        assert resp.status_code == 403

    async def test_list_defaults_to_own_base(self, client, admin_headers, actor_headers):
        alpha, bravo, rifle = await self._setup(client, admin_headers)
        await client.post("/assets", json={
            "serial_number": "VH-1", "type": "VEHICLE",
            "name": "Jeep", "base_id": bravo["id"],
        }, headers=admin_headers)

        resp = await client.get(
            "/assets", headers=actor_headers("BASE_COMMANDER", alpha["id"]),
        )
        assert resp.status_code == 200
        assert [a["id"] for a in resp.json()] == [rifle["id"]]

        everything = await client.get("/assets", headers=admin_headers)
        assert len(everything.json()) == 2

    async def test_actor_without_base_cannot_list(self, client, admin_headers, actor_headers):
        alpha, bravo, _ = await self._setup(client, admin_headers)
        await client.post("/assets", json={
            "serial_number": "VH-1", "type": "VEHICLE",
            "name": "Jeep", "base_id": bravo["id"],
        }, headers=admin_headers)
        baseless = actor_headers("BASE_COMMANDER")

        for path in ("/assets", "/transfers", "/purchases", "/purchases/summary"):
            resp = await client.get(path, headers=baseless)
            assert resp.status_code == 403, path

        resp = await client.get(f"/assets?base_id={alpha['id']}", headers=baseless)
        assert resp.status_code == 403

    async def test_assign_and_expend(self, client, admin_headers, actor_headers):
        alpha, _, rifle = await self._setup(client, admin_headers)
        user = (await client.post("/users", json={
            "email": "pvt@army.example", "role": "LOGISTICS_OFFICER", "base_id": alpha["id"],
        }, headers=admin_headers)).json()
        commander = actor_headers("BASE_COMMANDER", alpha["id"])

        resp = await client.post(
            f"/assets/{rifle['id']}/assign",
            json={"assigned_to_id": user["id"]}, headers=commander,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "ASSIGNED"

        resp = await client.post(f"/assets/{rifle['id']}/expend", headers=commander)
        assert resp.status_code == 200
        assert resp.json()["status"] == "EXPENDED"

        resp = await client.post(f"/assets/{rifle['id']}/expend", headers=commander)
        assert resp.status_code == 409
        assert resp.json()["code"] == "INVALID_STATE"

    async def test_officer_cannot_expend(self, client, admin_headers, actor_headers):
        alpha, _, rifle = await self._setup(client, admin_headers)
        resp = await client.post(
            f"/assets/{rifle['id']}/expend",
            headers=actor_headers("LOGISTICS_OFFICER", alpha["id"]),
        )
        assert resp.status_code == 403

    async def test_patch_rejects_status(self, client, admin_headers):
        _, _, rifle = await self._setup(client, admin_headers)
        resp = await client.patch(
            f"/assets/{rifle['id']}", json={"status": "EXPENDED"}, headers=admin_headers,
        )
        assert resp.status_code == 422

    async def test_patch_name(self, client, admin_headers):
        _, _, rifle = await self._setup(client, admin_headers)
        resp = await client.patch(
            f"/assets/{rifle['id']}", json={"name": "Carbine"}, headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Carbine"

    async def test_missing_asset(self, client, admin_headers):
        resp = await client.get("/assets/nope", headers=admin_headers)
        assert resp.status_code == 404

    async def test_pagination(self, client, admin_headers):
        alpha, _, _ = await self._setup(client, admin_headers)
        for n in range(3):
            await client.post("/assets", json={
                "serial_number": f"AM-{n}", "type": "AMMUNITION",
                "name": "Crate", "base_id": alpha["id"],
            }, headers=admin_headers)

        first = await client.get("/assets?limit=3", headers=admin_headers)
        rest = await client.get("/assets?limit=3&offset=3", headers=admin_headers)
        assert len(first.json()) == 3
        assert len(rest.json()) == 1
        assert not {a["id"] for a in first.json()} & {a["id"] for a in rest.json()}
