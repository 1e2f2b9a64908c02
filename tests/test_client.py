"""
BackendClient against the in-memory project
"""

import pytest
import pytest_asyncio

from fake_backend import ANON_KEY, SERVICE_KEY
from supaprobe.core.client import BackendClient, normalize_error
from supaprobe.models.operations import WhereClause

URL = "https://demo-project.supabase.co"


@pytest_asyncio.fixture
async def anon(backend):
    async with BackendClient(URL, ANON_KEY, transport=backend.transport) as client:
        yield client


@pytest_asyncio.fixture
async def service(backend):
    async with BackendClient(URL, SERVICE_KEY, transport=backend.transport, tier="service") as client:
        yield client


def test_requires_url_and_key():
    with pytest.raises(ValueError):
        BackendClient("", ANON_KEY)
    with pytest.raises(ValueError):
        BackendClient(URL, "")


class TestTables:
    """PostgREST calls"""

    @pytest.mark.asyncio
    async def test_insert_select_update_delete(self, anon, backend):
        created = await anon.insert("clients", {"name": "PROBE_TEST Acme", "status": "Lead"})
        assert created.ok
        assert created.status_code == 201
        client_id = created.data["id"]

        found = await anon.select("clients", where=[WhereClause(field="id", value=client_id)], single=True)
        assert found.data["name"] == "PROBE_TEST Acme"

        updated = await anon.update("clients", {"status": "Active"}, [WhereClause(field="id", value=client_id)])
        assert updated.data["status"] == "Active"

        deleted = await anon.delete("clients", [WhereClause(field="id", value=client_id)])
        assert deleted.ok
        assert deleted.count == 1
        assert backend.tables["clients"] == []

    @pytest.mark.asyncio
    async def test_single_with_no_rows_is_an_error(self, anon):
        response = await anon.select("clients", where=[WhereClause(field="id", value="missing")], single=True)
        assert not response.ok
        assert response.error.code == "PGRST116"
        assert response.error.status_code == 406

    @pytest.mark.asyncio
    async def test_unknown_table(self, anon):
        response = await anon.select("no_such_table")
        assert response.error.code == "42P01"
        assert "does not exist" in response.error.message

    @pytest.mark.asyncio
    async def test_count_uses_content_range(self, anon, backend):
        for status in ("Lead", "Lead", "Active"):
            backend.seed("clients", name="c", status=status)
        response = await anon.count("clients", [WhereClause(field="status", value="Lead")])
        assert response.ok
        assert response.data == 2
        assert backend.requests[-1].method == "HEAD"
        assert backend.requests[-1].headers["prefer"] == "count=exact"

    @pytest.mark.asyncio
    async def test_writes_refuse_without_filter(self, anon):
        with pytest.raises(ValueError):
            await anon.update("clients", {"status": "x"}, [])
        with pytest.raises(ValueError):
            await anon.delete("clients", [])

    @pytest.mark.asyncio
    async def test_rpc(self, anon, backend):
        backend.functions["test_auth_access"] = lambda params: {"role": "anon", "ok": True}
        response = await anon.rpc("test_auth_access")
        assert response.data == {"role": "anon", "ok": True}

        missing = await anon.rpc("nope")
        assert missing.error.code == "PGRST202"

    @pytest.mark.asyncio
    async def test_sends_key_headers(self, anon, backend):
        await anon.select("clients")
        request = backend.requests[-1]
        assert request.headers["apikey"] == ANON_KEY
        assert request.headers["authorization"] == f"Bearer {ANON_KEY}"


class TestAuth:
    """GoTrue calls and the locally held session"""

    @pytest.mark.asyncio
    async def test_sign_in_sets_session_and_bearer(self, anon, backend):
        backend.add_user("demo@example.com", "pw-123")
        response = await anon.sign_in_with_password("demo@example.com", "pw-123")
        assert response.ok
        assert response.data["user"]["email"] == "demo@example.com"
        assert anon.session is not None

        await anon.select("clients")
        assert backend.requests[-1].headers["authorization"] == f"Bearer {anon.session.access_token}"

        user = await anon.get_user()
        assert user.data["email"] == "demo@example.com"

        await anon.sign_out()
        assert anon.session is None
        assert anon.get_session().data == {"session": None}

    @pytest.mark.asyncio
    async def test_invalid_credentials(self, anon, backend):
        backend.add_user("demo@example.com", "pw-123")
        response = await anon.sign_in_with_password("demo@example.com", "wrong")
        assert not response.ok
        assert response.error.message == "Invalid login credentials"
        assert response.error.code == "invalid_credentials"
        assert anon.session is None

    @pytest.mark.asyncio
    async def test_get_user_without_session(self, anon, backend):
        response = await anon.get_user()
        assert response.error.code == "session_missing"
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_sign_up_pending_confirmation(self, anon):
        response = await anon.sign_up("new@example.com", "pw-123")
        assert response.ok
        assert response.data["session"] is None
        assert response.data["user"]["email"] == "new@example.com"
        assert anon.session is None


class TestAdmin:
    """Service-role user administration"""

    @pytest.mark.asyncio
    async def test_create_list_update_delete(self, service, anon):
        created = await service.admin_create_user("admin@example.com", "first-pw")
        assert created.ok
        user_id = created.data["id"]
        assert created.data["email_confirmed_at"]

        listed = await service.admin_list_users()
        assert [u["email"] for u in listed.data] == ["admin@example.com"]

        await service.admin_update_user(user_id, {"password": "second-pw"})
        assert (await anon.sign_in_with_password("admin@example.com", "second-pw")).ok

        assert (await service.admin_delete_user(user_id)).ok
        assert (await service.admin_list_users()).data == []

    @pytest.mark.asyncio
    async def test_anon_key_is_refused(self, anon):
        response = await anon.admin_list_users()
        assert response.error.status_code == 403
        assert response.error.message == "User not allowed"


class TestNormalizeError:

    def test_postgrest_body(self):
        error = normalize_error(400, {"code": "23505", "message": "duplicate key", "details": "Key exists", "hint": None})
        assert (error.code, error.message, error.details) == ("23505", "duplicate key", "Key exists")

    def test_gotrue_body(self):
        error = normalize_error(400, {"error": "invalid_grant", "error_description": "Invalid login credentials"})
        assert error.message == "Invalid login credentials"
        assert error.code == "invalid_grant"

    def test_plain_text_body(self):
        assert normalize_error(502, "Bad Gateway").message == "Bad Gateway"
        assert normalize_error(500, None).message == "HTTP 500"
