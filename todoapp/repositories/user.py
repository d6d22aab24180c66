"""ユーザーリポジトリ

ユーザーデータアクセス層の抽象化

- ロールは正規化テーブル（roles / user_roles）から集約して UserDTO に含める
- 更新はフィールドごとの専用メソッドで行う
- 認証プロバイダー連携版（AuthProviderUserRepository）は読み取りをプロバイダー経由で行い、作成は受け付けない
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from todoapp.core.constants import AuditAction, ErrorMessages, UserConstants
from todoapp.core.context import RepositoryContext
from todoapp.core.database import DatabaseManager
from todoapp.core.exceptions import BusinessRuleError, ConflictError, DomainError, ExternalServiceError, NotFoundError
from todoapp.dtos.user import UserDTO
from todoapp.models.role import Role
from todoapp.models.user import User
from todoapp.models.user_role import UserRole
from todoapp.repositories.audit import AuditLogRepository
from todoapp.repositories.base import BaseRepository
from todoapp.repositories.role import fetch_role_names, replace_user_roles, resolve_role_ids, store_user_roles
from todoapp.schemas.payloads import (
    UserAvatarUpdate,
    UserBasicInfoUpdate,
    UserBioUpdate,
    UserCreateInput,
    UserEmailUpdate,
    UserNameUpdate,
    UserProfileUpdate,
    UserRolesUpdate,
    UserStatusUpdate,
    UserWebsiteUpdate,
)
from todoapp.schemas.repository import (
    RepoUserAvatarSchema,
    RepoUserBasicInfoSchema,
    RepoUserBioSchema,
    RepoUserCreateSchema,
    RepoUserEmailSchema,
    RepoUserNameSchema,
    RepoUserProfileSchema,
    RepoUserRolesSchema,
    RepoUserStatusSchema,
    RepoUserWebsiteSchema,
)
from todoapp.schemas.user import UserFilterQuery
from todoapp.services.auth_provider import AuthAccount, AuthProvider, account_timestamp
from todoapp.utils.error_handler import handle_repository_errors
from todoapp.utils.validation import PayloadSchema, safe_uuid_convert

logger = logging.getLogger(__name__)


class UserRepositoryInterface(ABC):
    """ユーザーリポジトリのインターフェース"""

    @abstractmethod
    async def create(self, input: UserCreateInput | Mapping[str, Any], context: RepositoryContext | None) -> UserDTO:
        """ユーザーを作成"""
        pass

    @abstractmethod
    async def find_by_id(self, user_id: UUID | str) -> UserDTO | None:
        """IDでユーザーを取得"""
        pass

    @abstractmethod
    async def find_by_email(self, email: str) -> UserDTO | None:
        """メールアドレスでユーザーを取得"""
        pass

    @abstractmethod
    async def delete(self, user_id: UUID | str, context: RepositoryContext | None) -> None:
        """ユーザーを物理削除（Todo・ロール関連付けもカスケード削除）"""
        pass

    @abstractmethod
    async def update_basic_info(
        self, user_id: UUID | str, input: UserBasicInfoUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        """名前・自己紹介・アバター・Webサイトを部分更新"""
        pass

    @abstractmethod
    async def update_roles(
        self, user_id: UUID | str, input: UserRolesUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        """ロールを全置換"""
        pass

    @abstractmethod
    async def update_email(
        self, user_id: UUID | str, input: UserEmailUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        """メールアドレスを更新"""
        pass

    @abstractmethod
    async def update_status(
        self, user_id: UUID | str, input: UserStatusUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        """有効/無効を更新"""
        pass

    @abstractmethod
    async def update_profile(
        self, user_id: UUID | str, input: UserProfileUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> UserDTO | None:
        """プロフィールを部分更新して更新後のユーザーを返す（存在しない場合はNone）"""
        pass

    @abstractmethod
    async def update_name(
        self, user_id: UUID | str, input: UserNameUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        pass

    @abstractmethod
    async def update_bio(
        self, user_id: UUID | str, input: UserBioUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        pass

    @abstractmethod
    async def update_avatar(
        self, user_id: UUID | str, input: UserAvatarUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        pass

    @abstractmethod
    async def update_website(
        self, user_id: UUID | str, input: UserWebsiteUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        pass

    @abstractmethod
    async def find_all(self, filter: UserFilterQuery | None = None) -> list[UserDTO]:
        """ユーザー一覧を取得"""
        pass

    @abstractmethod
    async def count(self, filter: UserFilterQuery | None = None) -> int:
        """ユーザー件数を取得"""
        pass


class UserRepository(BaseRepository, UserRepositoryInterface):
    """ユーザーリポジトリの実装（リレーショナルストア）"""

    entity_name = "users"

    def __init__(
        self,
        database: DatabaseManager,
        audit_log: AuditLogRepository,
        default_roles: list[str] | None = None,
    ) -> None:
        super().__init__(database, audit_log)
        self.default_roles = list(default_roles or UserConstants.DEFAULT_ROLES)

    # =========================================================================
    # 作成・取得・削除
    # =========================================================================

    @handle_repository_errors("ユーザー作成")
    async def create(self, input: UserCreateInput | Mapping[str, Any], context: RepositoryContext | None) -> UserDTO:
        payload = RepoUserCreateSchema.parse(input)
        operated_by = self._operator(context, "create")
        role_names = payload.get("roles") or self.default_roles
        user = User(
            email=payload["email"],
            name=payload["name"],
            bio=payload.get("bio"),
            avatar=payload.get("avatar"),
            website=payload.get("website"),
            is_active=payload.get("is_active", True),
        )

        def write_audit(session: AsyncSession) -> None:
            self._audit(session, user.id, AuditAction.CREATE, operated_by, context, {**payload, "roles": role_names})

        try:
            async with self.database.transaction() as session:
                resolved, missing = await resolve_role_ids(session, role_names)
                if missing:
                    raise BusinessRuleError(ErrorMessages.ROLES_NOT_FOUND, details={"missing_roles": missing})

                role_ids = [resolved[name] for name in role_names]
                session.add(user)
                await session.flush()
                if self.database.supports_transactions:
                    await replace_user_roles(session, user.id, role_ids)
                    write_audit(session)

            if not self.database.supports_transactions:
                # ユーザーの確定後、ロールを別ステップで付与する
                await store_user_roles(self.database, user.id, role_ids, write_audit)
        except IntegrityError as e:
            raise ConflictError(ErrorMessages.EMAIL_ALREADY_EXISTS, details={"email": payload["email"]}) from e

        logger.info(f"ユーザーを作成しました: id={user.id}, roles={role_names}, operated_by={operated_by}")
        return UserDTO.from_model(user, role_names)

    @handle_repository_errors("ユーザー取得")
    async def find_by_id(self, user_id: UUID | str) -> UserDTO | None:
        async with self.database.session() as session:
            user = await session.get(User, safe_uuid_convert(user_id, "user_id"))
            return await self._to_dto(session, user) if user else None

    @handle_repository_errors("メールアドレスでのユーザー取得")
    async def find_by_email(self, email: str) -> UserDTO | None:
        async with self.database.session() as session:
            result = await session.execute(select(User).where(User.email == email.strip().lower()))
            user = result.scalar_one_or_none()
            return await self._to_dto(session, user) if user else None

    @handle_repository_errors("ユーザー削除")
    async def delete(self, user_id: UUID | str, context: RepositoryContext | None) -> None:
        operated_by = self._operator(context, "delete")

        async with self.database.transaction() as session:
            user = await self._get_or_raise(session, user_id)
            await session.execute(delete(User).where(User.id == user.id))
            self._audit(session, user.id, AuditAction.DELETE, operated_by, context, {"email": user.email})

        logger.info(f"ユーザーを削除しました: id={user_id}, operated_by={operated_by}")

    # =========================================================================
    # 専用更新メソッド
    # =========================================================================

    @handle_repository_errors("ユーザー基本情報更新")
    async def update_basic_info(
        self, user_id: UUID | str, input: UserBasicInfoUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        await self._apply_update(RepoUserBasicInfoSchema, "update_basic_info", user_id, input, context)

    @handle_repository_errors("ユーザーロール更新")
    async def update_roles(
        self, user_id: UUID | str, input: UserRolesUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        payload = RepoUserRolesSchema.parse(input)
        operated_by = self._operator(context, "update_roles")
        role_names = payload["roles"]

        async with self.database.session() as session:
            user = await self._get_or_raise(session, user_id)
            resolved, missing = await resolve_role_ids(session, role_names)
        if missing:
            raise NotFoundError(ErrorMessages.ROLES_NOT_FOUND, details={"missing_roles": missing})

        def write_audit(session: AsyncSession) -> None:
            self._audit(session, user.id, AuditAction.UPDATE, operated_by, context, {"roles": role_names})

        await store_user_roles(self.database, user.id, [resolved[name] for name in role_names], write_audit)
        logger.info(f"ユーザーのロールを更新しました: id={user_id}, roles={role_names}, operated_by={operated_by}")

    @handle_repository_errors("メールアドレス更新")
    async def update_email(
        self, user_id: UUID | str, input: UserEmailUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        try:
            await self._apply_update(RepoUserEmailSchema, "update_email", user_id, input, context)
        except IntegrityError as e:
            raise ConflictError(ErrorMessages.EMAIL_ALREADY_EXISTS) from e

    @handle_repository_errors("ユーザー状態更新")
    async def update_status(
        self, user_id: UUID | str, input: UserStatusUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        await self._apply_update(RepoUserStatusSchema, "update_status", user_id, input, context)

    @handle_repository_errors("プロフィール更新")
    async def update_profile(
        self, user_id: UUID | str, input: UserProfileUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> UserDTO | None:
        try:
            return await self._apply_update(RepoUserProfileSchema, "update_profile", user_id, input, context)
        except NotFoundError:
            return None

    @handle_repository_errors("ユーザー名更新")
    async def update_name(
        self, user_id: UUID | str, input: UserNameUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        await self._apply_update(RepoUserNameSchema, "update_name", user_id, input, context)

    @handle_repository_errors("自己紹介更新")
    async def update_bio(
        self, user_id: UUID | str, input: UserBioUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        await self._apply_update(RepoUserBioSchema, "update_bio", user_id, input, context)

    @handle_repository_errors("アバター更新")
    async def update_avatar(
        self, user_id: UUID | str, input: UserAvatarUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        await self._apply_update(RepoUserAvatarSchema, "update_avatar", user_id, input, context)

    @handle_repository_errors("Webサイト更新")
    async def update_website(
        self, user_id: UUID | str, input: UserWebsiteUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        await self._apply_update(RepoUserWebsiteSchema, "update_website", user_id, input, context)

    # =========================================================================
    # 一覧・件数
    # =========================================================================

    @handle_repository_errors("ユーザー一覧取得")
    async def find_all(self, filter: UserFilterQuery | None = None) -> list[UserDTO]:
        filter = filter or UserFilterQuery()
        stmt = self._apply_filters(select(User), filter)
        stmt = self._order(stmt, User, filter.sort_by, filter.order)
        stmt = self._paginate(stmt, filter.skip, filter.limit)

        async with self.database.session() as session:
            result = await session.execute(stmt)
            users = list(result.scalars().all())
            role_map = await fetch_role_names(session, [user.id for user in users])

        return [UserDTO.from_model(user, role_map[user.id]) for user in users]

    @handle_repository_errors("ユーザー件数取得")
    async def count(self, filter: UserFilterQuery | None = None) -> int:
        filter = filter or UserFilterQuery()
        stmt = self._apply_filters(select(func.count()).select_from(User), filter)

        async with self.database.session() as session:
            result = await session.execute(stmt)
            return result.scalar() or 0

    # =========================================================================
    # 内部ヘルパー
    # =========================================================================

    def _apply_filters(self, stmt: Select, filter: UserFilterQuery) -> Select:
        """フィルタリング条件を適用"""
        if filter.email:
            stmt = stmt.where(User.email.ilike(f"%{filter.email}%"))
        if filter.is_active is not None:
            stmt = stmt.where(User.is_active.is_(filter.is_active))
        if filter.roles:
            role_holders = (
                select(UserRole.user_id)
                .join(Role, UserRole.role_id == Role.id)
                .where(Role.name.in_(filter.roles))
            )
            stmt = stmt.where(User.id.in_(role_holders))
        return stmt

    async def _to_dto(self, session: AsyncSession, user: User) -> UserDTO:
        role_map = await fetch_role_names(session, [user.id])
        return UserDTO.from_model(user, role_map[user.id])

    async def _get_or_raise(self, session: AsyncSession, user_id: UUID | str) -> User:
        user = await session.get(User, safe_uuid_convert(user_id, "user_id"))
        if user is None:
            raise NotFoundError(ErrorMessages.USER_NOT_FOUND, details={"user_id": str(user_id)})
        return user

    async def _apply_update(
        self,
        schema: PayloadSchema[Any],
        operation: str,
        user_id: UUID | str,
        input: Mapping[str, Any],
        context: RepositoryContext | None,
    ) -> UserDTO:
        """検証済みペイロードのフィールドだけを書き込み、更新後のユーザーを返す"""
        payload = schema.parse(input)
        operated_by = self._operator(context, operation)

        async with self.database.transaction() as session:
            user = await self._get_or_raise(session, user_id)
            for field, value in payload.items():
                setattr(user, field, value)
            self._audit(session, user.id, AuditAction.UPDATE, operated_by, context, dict(payload))
            await session.flush()
            dto = await self._to_dto(session, user)

        logger.info(f"ユーザーを更新しました: id={user_id}, fields={sorted(payload)}, operated_by={operated_by}")
        return dto


class AuthProviderUserRepository(UserRepository):
    """認証プロバイダー連携版ユーザーリポジトリ

    - find_by_id / find_by_email はプロバイダーのアカウントを正とし、ローカルのプロフィール・ロールで補完する
    - create はプロバイダーのサインアップ経由で行う必要があるため BusinessRuleError
    - 更新系・一覧はローカルのユーザーテーブルに対して行う
    """

    def __init__(
        self,
        database: DatabaseManager,
        audit_log: AuditLogRepository,
        auth_provider: AuthProvider,
        default_roles: list[str] | None = None,
    ) -> None:
        super().__init__(database, audit_log, default_roles)
        self.auth_provider = auth_provider

    async def create(self, input: UserCreateInput | Mapping[str, Any], context: RepositoryContext | None) -> UserDTO:
        raise BusinessRuleError(ErrorMessages.USER_CREATE_VIA_AUTH_PROVIDER)

    async def find_by_id(self, user_id: UUID | str) -> UserDTO | None:
        account = await self._call_provider("find_account_by_id", str(user_id))
        return await self._enrich(account) if account else None

    async def find_by_email(self, email: str) -> UserDTO | None:
        account = await self._call_provider("find_account_by_email", email.strip().lower())
        return await self._enrich(account) if account else None

    async def _call_provider(self, method: str, *args: Any) -> AuthAccount | None:
        try:
            return await getattr(self.auth_provider, method)(*args)
        except DomainError:
            raise
        except Exception as e:
            logger.error(f"認証プロバイダー呼び出しに失敗しました: {method}: {e}")
            raise ExternalServiceError(service="auth_provider") from e

    @handle_repository_errors("アカウント情報の補完")
    async def _enrich(self, account: AuthAccount) -> UserDTO:
        account_id = safe_uuid_convert(account.id, "user_id")
        async with self.database.session() as session:
            user = await session.get(User, account_id)
            if user is not None:
                local = await self._to_dto(session, user)
                return UserDTO(
                    id=local.id,
                    created_at=local.created_at,
                    updated_at=local.updated_at,
                    email=account.email,
                    name=account.name,
                    bio=local.bio,
                    avatar=local.avatar,
                    website=local.website,
                    is_active=local.is_active,
                    email_verified=account.email_verified,
                    roles=local.roles,
                )

        # ローカルにプロフィールが無いアカウント（ロール未付与）
        return UserDTO(
            id=account_id,
            created_at=account_timestamp(account.created_at),
            updated_at=account_timestamp(account.updated_at),
            email=account.email,
            name=account.name,
            email_verified=account.email_verified,
        )
