"""
Tests for api.deps request-scoped Supabase clients.

Authenticated requests get their own client carrying the caller's JWT;
it must be closed when the request ends, and the shared client must not.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from api.deps import get_auth_provider, get_request_client, get_settings, get_supabase_async_client_required
from backend.main import create_app
from tests.fakes import FakeAuthProvider, user


def _request_client() -> MagicMock:
    client = MagicMock()
    client.postgrest.aclose = AsyncMock()
    client.auth.close = AsyncMock()
    client.rpc.return_value.execute = AsyncMock(return_value=MagicMock(data=[]))
    return client


@pytest.fixture
def request_client():
    return _request_client()


@pytest.fixture
def create_client(monkeypatch, request_client):
    create = AsyncMock(return_value=request_client)
    monkeypatch.setattr("api.deps.create_async_client", create)
    return create


class TestGetRequestClient:
    @pytest.mark.asyncio
    async def test_anonymous_shares_process_client(self, test_settings, create_client):
        shared = _request_client()
        dependency = get_request_client(token=None, client=shared, settings=test_settings)

        assert await dependency.__anext__() is shared
        with pytest.raises(StopAsyncIteration):
            await dependency.__anext__()

        create_client.assert_not_called()
        shared.postgrest.aclose.assert_not_awaited()
        shared.auth.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_authenticated_client_forwards_jwt(self, test_settings, create_client, request_client):
        dependency = get_request_client(token="jwt-1", client=_request_client(), settings=test_settings)

        assert await dependency.__anext__() is request_client

        args, kwargs = create_client.call_args
        assert args == (test_settings.supabase_url, test_settings.supabase_key)
        assert kwargs["options"].headers["Authorization"] == "Bearer jwt-1"
        request_client.postgrest.aclose.assert_not_awaited()
        await dependency.aclose()

    @pytest.mark.asyncio
    async def test_authenticated_client_closed_after_request(self, test_settings, create_client, request_client):
        shared = _request_client()
        dependency = get_request_client(token="jwt-1", client=shared, settings=test_settings)
        await dependency.__anext__()

        with pytest.raises(StopAsyncIteration):
            await dependency.__anext__()

        request_client.postgrest.aclose.assert_awaited_once()
        request_client.auth.close.assert_awaited_once()
        shared.postgrest.aclose.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_closed_when_handler_raises(self, test_settings, create_client, request_client):
        dependency = get_request_client(token="jwt-1", client=_request_client(), settings=test_settings)
        await dependency.__anext__()

        with pytest.raises(RuntimeError, match="boom"):
            await dependency.athrow(RuntimeError("boom"))

        request_client.postgrest.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_failure_is_logged(self, test_settings, create_client, request_client, caplog):
        request_client.postgrest.aclose.side_effect = RuntimeError("already closed")
        dependency = get_request_client(token="jwt-1", client=_request_client(), settings=test_settings)
        await dependency.__anext__()

        with pytest.raises(StopAsyncIteration):
            await dependency.__anext__()

        assert "Failed to close per-request Supabase client" in caplog.text


class TestRequestClientLifecycle:
    def test_each_authenticated_request_closes_its_client(self, test_settings, create_client, request_client):
        shared = _request_client()
        app = create_app(settings=test_settings)
        app.dependency_overrides[get_settings] = lambda: test_settings
        app.dependency_overrides[get_supabase_async_client_required] = lambda: shared
        app.dependency_overrides[get_auth_provider] = lambda: FakeAuthProvider(user("m-1"))

        with TestClient(app) as client:
            first = client.get("/api/sessions/s-1/participants", headers={"Authorization": "Bearer jwt-1"})
            second = client.get("/api/sessions/s-1/participants", headers={"Authorization": "Bearer jwt-1"})

        assert first.status_code == 200
        assert second.json() == []
        assert create_client.await_count == 2
        assert request_client.postgrest.aclose.await_count == 2
        shared.postgrest.aclose.assert_not_awaited()
        app.dependency_overrides.clear()
