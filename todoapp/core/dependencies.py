"""依存性注入設定モジュール

コンテナ・サービス・認証済み操作者の依存性注入を管理
"""

from functools import lru_cache

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from todoapp.core.constants import ErrorMessages, RoleConstants
from todoapp.core.container import AppContainer, create_container
from todoapp.core.exceptions import ForbiddenError, UnauthorizedError, ValidationError
from todoapp.core.security import AuthenticatedIdentity, decode_access_token
from todoapp.dtos.user import UserDTO
from todoapp.services.todo import TodoService
from todoapp.services.user import UserService

# JWT Bearer認証
security = HTTPBearer(auto_error=False)

# モジュールレベルの依存関数（Lint警告回避のため設定）
security_dependency = Depends(security)


@lru_cache
def get_container() -> AppContainer:
    """アプリケーションコンテナの依存性注入

    lru_cacheでシングルトン化
    """
    return create_container()


def reset_container_cache() -> None:
    """コンテナキャッシュをリセット（主にテスト用）"""
    get_container.cache_clear()


container_dependency = Depends(get_container)


def get_todo_service(container: AppContainer = container_dependency) -> TodoService:
    return container.todo_service


def get_user_service(container: AppContainer = container_dependency) -> UserService:
    return container.user_service


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = security_dependency,
    container: AppContainer = container_dependency,
) -> AuthenticatedIdentity:
    """Bearerトークンから操作者を取得

    Raises:
        UnauthorizedError: トークンが無い・無効な場合
    """
    if not credentials:
        raise UnauthorizedError(ErrorMessages.UNAUTHORIZED)
    return decode_access_token(credentials.credentials, container.settings)


identity_dependency = Depends(get_current_identity)


async def get_current_user(
    identity: AuthenticatedIdentity = identity_dependency,
    container: AppContainer = container_dependency,
) -> UserDTO:
    """現在のユーザーを取得

    Raises:
        UnauthorizedError: ユーザーが存在しない場合
        ForbiddenError: アカウントが無効な場合
    """
    try:
        user = await container.user_service.get_user_by_id(identity.user_id)
    except ValidationError:
        raise UnauthorizedError(ErrorMessages.INVALID_TOKEN) from None
    if user is None:
        raise UnauthorizedError(ErrorMessages.USER_NOT_FOUND)
    if not user.is_active:
        raise ForbiddenError("アカウントが無効です")
    return user


current_user_dependency = Depends(get_current_user)


async def require_admin(current_user: UserDTO = current_user_dependency) -> UserDTO:
    """管理者ロールを要求

    Raises:
        ForbiddenError: 管理者ロールを持たない場合
    """
    if not current_user.has_role(RoleConstants.ADMIN_ROLE):
        raise ForbiddenError(ErrorMessages.FORBIDDEN)
    return current_user
