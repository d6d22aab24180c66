"""ユーザーサービス層

ユーザー管理のビジネスロジックを提供
"""

import logging
from typing import Any
from uuid import UUID

from todoapp.core.constants import ErrorMessages, UserConstants
from todoapp.core.context import RepositoryContext
from todoapp.core.exceptions import ConflictError, NotFoundError, ValidationError
from todoapp.dtos.user import UserDTO
from todoapp.repositories.user import UserRepositoryInterface
from todoapp.schemas.user import UserCreateRequest, UserFilterQuery, UserProfileUpdateRequest, UserUpdateRequest

logger = logging.getLogger(__name__)


class UserService:
    """ユーザーサービス

    - メールアドレスの重複はリポジトリ呼び出し前に確認する
    - 更新はリクエストに含まれるフィールドに対応する専用メソッドへ振り分ける
    """

    def __init__(self, repository: UserRepositoryInterface, default_roles: list[str] | None = None) -> None:
        self.repository = repository
        self.default_roles = list(default_roles or UserConstants.DEFAULT_ROLES)

    async def create_user(self, request: UserCreateRequest, context: RepositoryContext | None = None) -> UserDTO:
        """ユーザーを作成

        Args:
            request: 作成リクエスト
            context: 操作コンテキスト（未指定時はシステム操作）

        Returns:
            作成されたUserDTO

        Raises:
            ConflictError: メールアドレスが既に登録されている場合
            ValidationError: 入力値が不正な場合
            BusinessRuleError: 存在しないロールが指定された場合
        """
        email = str(request.email).strip().lower()
        if await self.repository.find_by_email(email):
            logger.info(f"メールアドレスが既に登録されています: email={email}")
            raise ConflictError(ErrorMessages.EMAIL_ALREADY_EXISTS, details={"email": email})

        payload: dict[str, Any] = {
            "email": email,
            "name": request.name,
            "roles": request.roles or self.default_roles,
            "is_active": True,
        }
        for field in ("bio", "avatar", "website"):
            value = getattr(request, field)
            if value is not None:
                payload[field] = value

        user = await self.repository.create(payload, context or RepositoryContext.system("ユーザー登録"))
        logger.info(f"ユーザーを登録しました: id={user.id}, roles={user.roles}")
        return user

    async def get_user_by_id(self, user_id: UUID | str) -> UserDTO | None:
        """IDでユーザーを取得

        Raises:
            ValidationError: IDが空の場合
        """
        if not str(user_id).strip():
            raise ValidationError(ErrorMessages.USER_ID_REQUIRED)
        return await self.repository.find_by_id(user_id)

    async def get_user_by_email(self, email: str) -> UserDTO | None:
        """メールアドレスでユーザーを取得

        Raises:
            ValidationError: メールアドレスが空の場合
        """
        if not email or not email.strip():
            raise ValidationError(ErrorMessages.EMAIL_REQUIRED)
        return await self.repository.find_by_email(email.strip().lower())

    async def update_user(
        self, user_id: UUID | str, request: UserUpdateRequest, context: RepositoryContext | None = None
    ) -> UserDTO:
        """ユーザーを更新

        リクエストに含まれるフィールドに応じて専用の更新だけを行う
        - name / bio / avatar / website → update_basic_info
        - roles → update_roles
        - is_active → update_status

        Args:
            user_id: ユーザーID
            request: 更新リクエスト
            context: 操作コンテキスト

        Returns:
            更新後のUserDTO

        Raises:
            NotFoundError: ユーザーが存在しない場合
        """
        context = context or RepositoryContext.for_user(user_id)
        await self._get_user_or_raise(user_id)

        fields = request.model_fields_set
        basic_info = request.basic_info_changes()
        if basic_info:
            await self.repository.update_basic_info(user_id, basic_info, context)
        if "roles" in fields and request.roles is not None:
            await self.repository.update_roles(user_id, {"roles": request.roles}, context)
        if "is_active" in fields and request.is_active is not None:
            await self.repository.update_status(user_id, {"is_active": request.is_active}, context)

        return await self._get_user_or_raise(user_id)

    async def update_user_profile(
        self, user_id: UUID | str, request: UserProfileUpdateRequest, context: RepositoryContext | None = None
    ) -> UserDTO | None:
        """プロフィールを部分更新（ユーザーが存在しない場合は None）"""
        return await self.repository.update_profile(
            user_id, request.model_dump(exclude_unset=True), context or RepositoryContext.for_user(user_id)
        )

    async def change_email(
        self, user_id: UUID | str, email: str, context: RepositoryContext | None = None
    ) -> UserDTO:
        """メールアドレスを変更

        Raises:
            NotFoundError: ユーザーが存在しない場合
            ConflictError: 他のユーザーが使用中のメールアドレスの場合
        """
        current = await self._get_user_or_raise(user_id)
        email = email.strip().lower()
        if email == current.email:
            return current

        owner = await self.repository.find_by_email(email)
        if owner and owner.id != current.id:
            raise ConflictError(ErrorMessages.EMAIL_ALREADY_EXISTS, details={"email": email})

        await self.repository.update_email(user_id, {"email": email}, context or RepositoryContext.for_user(user_id))
        return await self._get_user_or_raise(user_id)

    async def delete_user(self, user_id: UUID | str, context: RepositoryContext | None = None) -> None:
        """ユーザーを削除（Todo・ロール関連付けもカスケード削除）"""
        await self.repository.delete(user_id, context or RepositoryContext.for_user(user_id))

    async def get_all_users(self, filter: UserFilterQuery | None = None) -> list[UserDTO]:
        return await self.repository.find_all(filter)

    async def get_user_count(self, filter: UserFilterQuery | None = None) -> int:
        return await self.repository.count(filter)

    async def _get_user_or_raise(self, user_id: UUID | str) -> UserDTO:
        user = await self.repository.find_by_id(user_id)
        if user is None:
            raise NotFoundError(ErrorMessages.USER_NOT_FOUND, details={"user_id": str(user_id)})
        return user
