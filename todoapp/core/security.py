"""セキュリティ・認証モジュール

認証プロバイダーが発行したJWTを検証し、操作者のIDを取り出す
パスワードやセッションは認証プロバイダー側で管理する
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from todoapp.core.config import Settings, settings
from todoapp.core.constants import ErrorMessages
from todoapp.core.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """認証済みの操作者

    Attributes:
        user_id: ユーザーID（JWT の sub クレーム）
        session_id: 認証プロバイダーのセッションID（任意）
        claims: デコード済みの全クレーム
    """

    user_id: str
    session_id: str | None = None
    claims: dict[str, Any] | None = None


def decode_access_token(token: str, config: Settings | None = None) -> AuthenticatedIdentity:
    """アクセストークンを検証して操作者を返す

    Args:
        token: JWT文字列
        config: 設定（未指定時はグローバル設定）

    Returns:
        AuthenticatedIdentity

    Raises:
        UnauthorizedError: トークンが無効・期限切れ、または sub が無い場合
    """
    config = config or settings
    try:
        payload: dict[str, Any] = jwt.decode(
            token, config.AUTH_JWT_SECRET, algorithms=[config.AUTH_JWT_ALGORITHM], options={"require": ["sub"]}
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("トークンの有効期限が切れています") from None
    except jwt.InvalidTokenError as e:
        logger.debug(f"トークン検証に失敗しました: {e}")
        raise UnauthorizedError(ErrorMessages.INVALID_TOKEN) from None

    user_id = str(payload["sub"]).strip()
    if not user_id:
        raise UnauthorizedError(ErrorMessages.INVALID_TOKEN)

    return AuthenticatedIdentity(user_id=user_id, session_id=payload.get("sid"), claims=payload)


def create_access_token(
    user_id: str,
    config: Settings | None = None,
    expires_delta: timedelta | None = None,
    **claims: Any,
) -> str:
    """アクセストークンを発行（開発・テスト用）

    本番では認証プロバイダーが発行したトークンを使用する
    """
    config = config or settings
    now = datetime.now(UTC)
    payload = {"sub": str(user_id), "iat": now, "exp": now + (expires_delta or timedelta(minutes=30)), **claims}
    return jwt.encode(payload, config.AUTH_JWT_SECRET, algorithm=config.AUTH_JWT_ALGORITHM)
