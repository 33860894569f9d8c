"""Tests for the bearer-token gate in front of protected routes."""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from chatrelay.app import create_app
from chatrelay.service.auth import (
    AuthService,
    SupabaseIdentityProvider,
    extract_bearer,
)
from chatrelay.service.errors import AuthenticationError, ForbiddenError
from chatrelay.service.runtime import Runtime

PROTECTED_ROUTES = [
    ("post", "/auth/logout", None),
    ("post", "/chat/new", {"messageToSend": "hi", "from": "user"}),
    ("post", "/chat/abc", {"conversationId": "abc", "from": "user", "messageToSend": "hi"}),
    ("get", "/chat/conversations", None),
    ("get", "/chat/abc", None),
]


class TestExtractBearer:
    def test_returns_second_field(self):
        assert extract_bearer("Bearer abc.def") == "abc.def"

    def test_scheme_is_not_checked(self):
        assert extract_bearer("Token abc") == "abc"

    @pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer   ", "abc"])
    def test_missing_token(self, header):
        assert extract_bearer(header) is None

    def test_extra_whitespace_between_fields(self):
        assert extract_bearer("Bearer    abc") == "abc"


@pytest.mark.parametrize("method,path,body", PROTECTED_ROUTES)
def test_missing_credential_is_401_without_collaborator_calls(
    client, identity_provider, store, completions, method, path, body
):
    kwargs = {"json": body} if body is not None else {}
    response = getattr(client, method)(path, **kwargs)

    assert response.status_code == 401
    assert response.json() == {"error": "Authentication token is required"}
    assert identity_provider.calls == []
    assert store.conversations == {}
    assert store.messages == []
    assert completions.calls == []


def test_scheme_without_token_is_401(client, identity_provider):
    response = client.get("/chat/conversations", headers={"Authorization": "Bearer"})

    assert response.status_code == 401
    assert identity_provider.calls == []


@pytest.mark.parametrize("method,path,body", PROTECTED_ROUTES)
def test_rejected_credential_is_403(client, identity_provider, method, path, body):
    kwargs = {"json": body} if body is not None else {}
    response = getattr(client, method)(
        path, headers={"Authorization": "Bearer not-a-real-token"}, **kwargs
    )

    assert response.status_code == 403
    assert response.json() == {"error": "Invalid token or user not found"}
    assert identity_provider.calls == [("resolve_identity", "not-a-real-token")]


def test_provider_fault_is_403_and_not_leaked(settings, store):
    supabase_client = MagicMock()
    supabase_client.auth.get_user.side_effect = RuntimeError("connection reset by peer")
    provider = SupabaseIdentityProvider(supabase_client, lambda: MagicMock())
    client = TestClient(
        create_app(Runtime(settings, store=store, identity_provider=provider))
    )

    response = client.get(
        "/chat/conversations", headers={"Authorization": "Bearer some-token"}
    )

    assert response.status_code == 403
    assert response.json() == {"error": "Invalid token or user not found"}
    assert "connection reset" not in response.text
    supabase_client.auth.get_user.assert_called_once_with("some-token")


def test_valid_credential_reaches_handler(client, auth_headers):
    response = client.get("/chat/conversations", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == []


class TestAuthService:
    async def test_authenticate_returns_identity(self, identity_provider):
        identity_provider.register("user@example.com", "pw")
        token = identity_provider.authenticate("user@example.com", "pw").value
        service = AuthService(identity_provider)

        identity = await service.authenticate(f"Bearer {token}")

        assert identity.email == "user@example.com"
        assert identity.token == token
        assert identity.user_id

    async def test_authenticate_without_token_raises_401(self, identity_provider):
        service = AuthService(identity_provider)

        with pytest.raises(AuthenticationError) as excinfo:
            await service.authenticate(None)

        assert excinfo.value.status_code == 401
        assert identity_provider.calls == []

    async def test_authenticate_rejected_token_raises_403(self, identity_provider):
        service = AuthService(identity_provider)

        with pytest.raises(ForbiddenError) as excinfo:
            await service.authenticate("Bearer nope")

        assert excinfo.value.status_code == 403
        assert excinfo.value.message == "Invalid token or user not found"
