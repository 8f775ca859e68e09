"""Integration tests for the audit log API endpoints."""

from sqlalchemy import update

from labgate.audit.models import AuditEntryModel


class TestAuditRouter:
    async def _setup(self, client, admin_headers):
        """Create a technician and edit it, producing CREATE and UPDATE entries."""
        resp = await client.post("/users", json={
            "name": "Tina Tech", "email": "tech@calibra.com.br",
            "role": "technician", "password": "secret123",
        }, headers=admin_headers)
        user = resp.json()
        await client.put(
            f"/users/{user['id']}", json={"name": "Tina T."}, headers=admin_headers,
        )
        return user

    async def test_list_newest_first(self, client, admin_headers):
        await self._setup(client, admin_headers)
        resp = await client.get("/audit-logs", headers=admin_headers)
        assert resp.status_code == 200
        actions = [e["action"] for e in resp.json()]
        assert actions == ["UPDATE", "CREATE", "LOGIN"]

    async def test_entries_carry_request_context(self, client, admin_headers):
        await self._setup(client, admin_headers)
        entries = (await client.get("/audit-logs", headers=admin_headers)).json()
        for e in entries:
            assert e["user_name"] == "Ana Admin"
            assert e["user_agent"].startswith("python-httpx")
            assert len(e["entry_hash"]) == 64
            assert len(e["signature"]) == 64

    async def test_filter_by_table_and_record(self, client, admin_headers):
        user = await self._setup(client, admin_headers)
        resp = await client.get(
            "/audit-logs", params={"action": "UPDATE", "table_name": "users"},
            headers=admin_headers,
        )
        entries = resp.json()
        assert len(entries) == 1
        assert entries[0]["record_id"] == user["id"]

    async def test_filter_by_actor(self, client, admin_headers):
        await self._setup(client, admin_headers)
        admin = (await client.get("/auth/verify", headers=admin_headers)).json()["user"]
        resp = await client.get(
            "/audit-logs", params={"user_id": admin["id"]}, headers=admin_headers,
        )
        assert len(resp.json()) == 3
        resp = await client.get(
            "/audit-logs", params={"user_id": "someone-else"}, headers=admin_headers,
        )
        assert resp.json() == []

    async def test_pagination(self, client, admin_headers):
        await self._setup(client, admin_headers)
        resp = await client.get(
            "/audit-logs", params={"limit": 1, "offset": 1}, headers=admin_headers,
        )
        assert [e["action"] for e in resp.json()] == ["CREATE"]

    async def test_limit_bounds(self, client, admin_headers):
        resp = await client.get(
            "/audit-logs", params={"limit": 501}, headers=admin_headers,
        )
        assert resp.status_code == 422

    async def test_recent_activity_open_to_any_role(self, client, admin_headers, make_user, login):
        await self._setup(client, admin_headers)
        await make_user("cli@cliente.com.br", role="customer", name="Carla")
        headers = await login("cli@cliente.com.br")
        resp = await client.get("/audit-logs/recent", params={"limit": 2}, headers=headers)
        assert resp.status_code == 200
        data = resp.json()
        assert len(data) == 2
        assert data[0]["action"] == "LOGIN"
        assert set(data[0]) == {"action", "table_name", "user_name", "created_at"}

    async def test_customer_cannot_list(self, client, make_user, login):
        await make_user("cli@cliente.com.br", role="customer")
        headers = await login("cli@cliente.com.br")
        resp = await client.get("/audit-logs", headers=headers)
        assert resp.status_code == 403

    async def test_technician_cannot_verify(self, client, make_user, login):
        await make_user("tech@calibra.com.br", role="technician")
        headers = await login("tech@calibra.com.br")
        resp = await client.get("/audit-logs/verify", headers=headers)
        assert resp.status_code == 403

    async def test_verify_endpoint(self, client, admin_headers):
        await self._setup(client, admin_headers)
        resp = await client.get("/audit-logs/verify", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json() == {"valid": True, "entries_checked": 3, "break_at": None}

    async def test_verify_detects_tampering(self, client, admin_headers):
        await self._setup(client, admin_headers)
        entries = (await client.get(
            "/audit-logs", params={"action": "CREATE"}, headers=admin_headers,
        )).json()

        from labgate.deps import get_db
        async with get_db().get_session() as session:
            await session.execute(
                update(AuditEntryModel)
                .where(AuditEntryModel.id == entries[0]["id"])
                .values(action="LOGIN")
            )

        resp = await client.get("/audit-logs/verify", headers=admin_headers)
        data = resp.json()
        assert data["valid"] is False
        assert data["break_at"] == entries[0]["id"]

    async def test_no_write_routes(self, client, admin_headers):
        resp = await client.delete("/audit-logs", headers=admin_headers)
        assert resp.status_code == 405
