"""ユーザーAPIエンドポイント

ユーザープロフィール管理と、管理者向けユーザー管理のREST APIを提供
"""

# FastAPIの依存注入システム（Depends, Query）はLint警告の対象外とする
# ruff: noqa: B008

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi import status as http_status

from todoapp.core.constants import ErrorMessages, UserConstants
from todoapp.core.context import RepositoryContext
from todoapp.core.dependencies import get_current_user, get_user_service, require_admin
from todoapp.core.exceptions import NotFoundError
from todoapp.dtos.user import UserDTO
from todoapp.schemas.todo import SortOrder
from todoapp.schemas.user import (
    EmailChangeRequest,
    UserCreateRequest,
    UserFilterQuery,
    UserListResponse,
    UserProfileUpdateRequest,
    UserResponse,
    UserSortField,
    UserUpdateRequest,
)
from todoapp.services.user import UserService

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(*, current_user: UserDTO = Depends(get_current_user)) -> UserResponse:
    """現在のユーザープロフィールを取得"""
    return UserResponse.model_validate(current_user)


@router.patch("/me/profile", response_model=UserResponse)
async def update_current_user_profile(
    *,
    current_user: UserDTO = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    profile_in: UserProfileUpdateRequest,
) -> UserResponse:
    """自分のプロフィールを更新"""
    user = await user_service.update_user_profile(current_user.id, profile_in)
    if user is None:
        raise NotFoundError(ErrorMessages.USER_NOT_FOUND)
    return UserResponse.model_validate(user)


@router.put("/me/email", response_model=UserResponse)
async def change_current_user_email(
    *,
    current_user: UserDTO = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    email_in: EmailChangeRequest,
) -> UserResponse:
    """自分のメールアドレスを変更"""
    user = await user_service.change_email(current_user.id, str(email_in.email))
    return UserResponse.model_validate(user)


@router.delete("/me", status_code=http_status.HTTP_204_NO_CONTENT)
async def delete_current_user(
    *,
    current_user: UserDTO = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
) -> None:
    """自分のアカウントを削除（Todoも削除される）"""
    await user_service.delete_user(current_user.id)


# =============================================================================
# 管理者用エンドポイント
# =============================================================================


@router.get("/", response_model=UserListResponse)
async def get_users(
    *,
    _admin: UserDTO = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
    email: str | None = Query(default=None, min_length=1, description="メール部分一致"),
    roles: list[str] | None = Query(default=None, description="いずれかのロールを持つユーザー"),
    is_active: bool | None = Query(default=None, description="有効状態で絞り込み"),
    limit: int = Query(
        default=UserConstants.LIST_DEFAULT_LIMIT, ge=1, le=UserConstants.LIST_MAX_LIMIT, description="取得件数"
    ),
    skip: int = Query(default=0, ge=0, description="スキップ件数"),
    sort_by: UserSortField = Query(default="created_at", description="ソートフィールド"),
    order: SortOrder = Query(default="desc", description="ソート順序（asc/desc）"),
) -> UserListResponse:
    """ユーザー一覧を取得（管理者のみ）"""
    query = UserFilterQuery(
        email=email, roles=roles, is_active=is_active, limit=limit, skip=skip, sort_by=sort_by, order=order
    )
    users = await user_service.get_all_users(query)
    total = await user_service.get_user_count(query)
    return UserListResponse(items=[UserResponse.model_validate(user) for user in users], total=total)


@router.post("/", response_model=UserResponse, status_code=http_status.HTTP_201_CREATED)
async def create_user(
    *,
    admin: UserDTO = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
    user_in: UserCreateRequest,
) -> UserResponse:
    """ユーザーを作成（管理者のみ）"""
    user = await user_service.create_user(user_in, RepositoryContext.for_user(admin.id))
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    *,
    _admin: UserDTO = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
    user_id: UUID,
) -> UserResponse:
    """ユーザーを取得（管理者のみ）"""
    user = await user_service.get_user_by_id(user_id)
    if user is None:
        raise NotFoundError(ErrorMessages.USER_NOT_FOUND, details={"user_id": str(user_id)})
    return UserResponse.model_validate(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    *,
    admin: UserDTO = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
    user_id: UUID,
    user_in: UserUpdateRequest,
) -> UserResponse:
    """ユーザーを更新（管理者のみ・指定されたフィールドのみ）"""
    user = await user_service.update_user(user_id, user_in, RepositoryContext.for_user(admin.id))
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", status_code=http_status.HTTP_204_NO_CONTENT)
async def delete_user(
    *,
    admin: UserDTO = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
    user_id: UUID,
) -> None:
    """ユーザーを削除（管理者のみ）"""
    await user_service.delete_user(user_id, RepositoryContext.for_user(admin.id))
