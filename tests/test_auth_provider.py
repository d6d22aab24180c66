"""認証プロバイダー連携のテスト

HTTP実装の応答ステータスごとの扱いを httpx.MockTransport で検証する
"""

from collections.abc import Callable
from datetime import UTC, datetime

import httpx
import pytest

from todoapp.core.exceptions import ConflictError, ExternalServiceError
from todoapp.services.auth_provider import AuthAccount, HttpAuthProvider

ACCOUNT = {
    "id": "acc-1",
    "email": "taro@example.com",
    "name": "太郎",
    "email_verified": True,
    "created_at": "2024-01-02T03:04:05Z",
}


def provider_with(handler: Callable[[httpx.Request], httpx.Response]) -> HttpAuthProvider:
    return HttpAuthProvider("https://auth.example.com/", api_key="secret", transport=httpx.MockTransport(handler))


class TestHttpAuthProvider:
    """HTTP実装のテスト"""

    @pytest.mark.asyncio
    async def test_find_by_id(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=ACCOUNT)

        account = await provider_with(handler).find_account_by_id("acc-1")

        assert account == AuthAccount(
            id="acc-1",
            email="taro@example.com",
            name="太郎",
            email_verified=True,
            created_at=datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC),
        )
        assert requests[0].url == "https://auth.example.com/accounts/acc-1"
        assert requests[0].headers["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_find_by_email_sends_query(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["email"] == "taro@example.com"
            return httpx.Response(200, json=ACCOUNT)

        account = await provider_with(handler).find_account_by_email("taro@example.com")

        assert account is not None
        assert account.id == "acc-1"

    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        provider = provider_with(lambda request: httpx.Response(404))

        assert await provider.find_account_by_id("missing") is None
        assert await provider.find_account_by_email("missing@example.com") is None

    @pytest.mark.asyncio
    async def test_create_account(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            return httpx.Response(201, json={"id": "acc-2", "email": "hanako@example.com"})

        account = await provider_with(handler).create_account("hanako@example.com", "", "password")

        assert account.id == "acc-2"
        assert account.name == "hanako"

    @pytest.mark.asyncio
    async def test_conflict(self) -> None:
        provider = provider_with(lambda request: httpx.Response(409))

        with pytest.raises(ConflictError):
            await provider.create_account("taro@example.com", "太郎", "password")

    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        provider = provider_with(lambda request: httpx.Response(503))

        with pytest.raises(ExternalServiceError) as exc_info:
            await provider.find_account_by_id("acc-1")

        assert exc_info.value.service == "auth_provider"
        assert exc_info.value.details == {"status_code": 503}

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ExternalServiceError):
            await provider_with(handler).find_account_by_email("taro@example.com")

    @pytest.mark.asyncio
    async def test_malformed_payload(self) -> None:
        provider = provider_with(lambda request: httpx.Response(200, json={"name": "IDなし"}))

        with pytest.raises(ExternalServiceError):
            await provider.find_account_by_id("acc-1")
