"""外部認証プロバイダー連携

アカウント（認証情報）は外部の認証プロバイダーが管理する
このモジュールはプロバイダーへの最小限のインターフェースとHTTP実装を提供する
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import httpx

from todoapp.core.constants import ErrorMessages
from todoapp.core.exceptions import ConflictError, ExternalServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "auth_provider"


@dataclass(frozen=True)
class AuthAccount:
    """認証プロバイダー上のアカウント"""

    id: str
    email: str
    name: str
    email_verified: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "AuthAccount":
        return cls(
            id=str(data["id"]),
            email=data["email"],
            name=data.get("name") or data["email"].split("@")[0],
            email_verified=bool(data.get("email_verified", False)),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class AuthProvider(ABC):
    """認証プロバイダーのインターフェース"""

    @abstractmethod
    async def create_account(self, email: str, name: str, password: str) -> AuthAccount:
        """アカウントを作成（サインアップ）"""
        pass

    @abstractmethod
    async def find_account_by_id(self, account_id: str) -> AuthAccount | None:
        """IDでアカウントを取得"""
        pass

    @abstractmethod
    async def find_account_by_email(self, email: str) -> AuthAccount | None:
        """メールアドレスでアカウントを取得"""
        pass


class HttpAuthProvider(AuthProvider):
    """HTTP APIで認証プロバイダーと通信する実装

    - 404 は「存在しない」として None を返す
    - 通信エラー・5xx は ExternalServiceError
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return httpx.AsyncClient(
            base_url=self._base_url, headers=headers, timeout=self._timeout, transport=self._transport
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response | None:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"認証プロバイダーとの通信に失敗しました: {method} {path}: {e}")
            raise ExternalServiceError(service=SERVICE_NAME) from e

        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        if response.status_code == httpx.codes.CONFLICT:
            raise ConflictError(ErrorMessages.EMAIL_ALREADY_EXISTS)
        if response.is_error:
            logger.error(f"認証プロバイダーがエラーを返しました: {method} {path}: status={response.status_code}")
            raise ExternalServiceError(details={"status_code": response.status_code}, service=SERVICE_NAME)
        return response

    def _to_account(self, response: httpx.Response) -> AuthAccount:
        try:
            return AuthAccount.from_payload(response.json())
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"認証プロバイダーの応答を解析できません: {e}")
            raise ExternalServiceError(service=SERVICE_NAME) from e

    async def create_account(self, email: str, name: str, password: str) -> AuthAccount:
        response = await self._request("POST", "/accounts", json={"email": email, "name": name, "password": password})
        if response is None:
            raise ExternalServiceError(service=SERVICE_NAME)
        account = self._to_account(response)
        logger.info(f"認証プロバイダーにアカウントを作成しました: id={account.id}")
        return account

    async def find_account_by_id(self, account_id: str) -> AuthAccount | None:
        response = await self._request("GET", f"/accounts/{account_id}")
        return self._to_account(response) if response is not None else None

    async def find_account_by_email(self, email: str) -> AuthAccount | None:
        response = await self._request("GET", "/accounts", params={"email": email})
        return self._to_account(response) if response is not None else None


def account_timestamp(value: datetime | None) -> datetime:
    """アカウントの日時（未提供の場合は現在時刻）"""
    return value or datetime.now(UTC)
