"""ロールリポジトリ

ロールのCRUDと、ユーザー-ロール関連付けの管理を提供

- assign_role_to_user は冪等（既に付与済みでもエラーにしない）
- set_user_roles / update_user_roles_bulk は全置換。トランザクション対応のストレージでは原子的に行う
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import delete, distinct, exists, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from todoapp.core.constants import AuditAction, ErrorMessages
from todoapp.core.context import RepositoryContext
from todoapp.core.database import DatabaseManager
from todoapp.core.exceptions import ConflictError, NotFoundError
from todoapp.dtos.role import RoleDTO
from todoapp.models.role import Role
from todoapp.models.user import User
from todoapp.models.user_role import UserRole
from todoapp.repositories.base import BaseRepository
from todoapp.schemas.payloads import (
    RoleBasicInfoPartialUpdate,
    RoleBasicInfoUpdate,
    RoleCreateInput,
    RoleDescriptionUpdate,
    RoleNameUpdate,
    UserRoleAssignment,
    UserRolesBulkUpdate,
    UserRolesSet,
)
from todoapp.schemas.repository import (
    RepoRoleBasicInfoPartialSchema,
    RepoRoleBasicInfoSchema,
    RepoRoleCreateSchema,
    RepoRoleDescriptionSchema,
    RepoRoleNameSchema,
    RepoUserRoleAssignmentSchema,
    RepoUserRolesBulkSchema,
    RepoUserRolesSetSchema,
)
from todoapp.schemas.role import RoleFilterQuery, UserRoleFilterQuery
from todoapp.utils.error_handler import handle_repository_errors
from todoapp.utils.validation import PayloadSchema, safe_uuid_convert

logger = logging.getLogger(__name__)

USER_ROLES_ENTITY = "user_roles"


# =============================================================================
# セッション内で使う共通クエリ（ユーザーリポジトリからも利用）
# =============================================================================


async def resolve_role_ids(session: AsyncSession, names: Iterable[str]) -> tuple[dict[str, UUID], list[str]]:
    """ロール名をIDに解決

    Returns:
        (名前→IDの辞書, 見つからなかった名前のリスト)
    """
    names = list(names)
    if not names:
        return {}, []

    result = await session.execute(select(Role.name, Role.id).where(Role.name.in_(names)))
    resolved = {name: role_id for name, role_id in result.all()}
    missing = [name for name in names if name not in resolved]
    return resolved, missing


async def replace_user_roles(session: AsyncSession, user_id: UUID, role_ids: Iterable[UUID]) -> None:
    """ユーザーのロール関連付けを全置換（コミットは呼び出し側）"""
    await session.execute(delete(UserRole).where(UserRole.user_id == user_id))
    session.add_all([UserRole.create_association(user_id, role_id) for role_id in dict.fromkeys(role_ids)])
    await session.flush()


async def store_user_roles(
    database: DatabaseManager,
    user_id: UUID,
    role_ids: list[UUID],
    write_audit: Callable[[AsyncSession], None],
) -> None:
    """ユーザーのロールを全置換して確定

    トランザクション対応のストレージでは削除と追加を1つのトランザクションで行う。
    非対応の場合は削除と追加を別々に確定する（その間ロールが空になる）
    """
    if database.supports_transactions:
        async with database.transaction() as session:
            await replace_user_roles(session, user_id, role_ids)
            write_audit(session)
        return

    logger.warning(f"トランザクション非対応のためロールを2段階で置換します: user_id={user_id}")
    async with database.session() as session:
        await session.execute(delete(UserRole).where(UserRole.user_id == user_id))
        await session.commit()
    async with database.session() as session:
        session.add_all([UserRole.create_association(user_id, role_id) for role_id in dict.fromkeys(role_ids)])
        write_audit(session)
        await session.commit()


async def fetch_role_names(session: AsyncSession, user_ids: Iterable[UUID]) -> dict[UUID, list[str]]:
    """複数ユーザーのロール名を一括取得（N+1回避）"""
    user_ids = list(user_ids)
    role_map: dict[UUID, list[str]] = {user_id: [] for user_id in user_ids}
    if not user_ids:
        return role_map

    stmt = (
        select(UserRole.user_id, Role.name)
        .join(Role, UserRole.role_id == Role.id)
        .where(UserRole.user_id.in_(user_ids))
        .order_by(Role.name)
    )
    result = await session.execute(stmt)
    for user_id, name in result.all():
        role_map[user_id].append(name)
    return role_map


class RoleRepositoryInterface(ABC):
    """ロールリポジトリのインターフェース"""

    # ロールCRUD
    @abstractmethod
    async def create(self, input: RoleCreateInput | Mapping[str, Any], context: RepositoryContext | None) -> RoleDTO:
        """ロールを作成"""
        pass

    @abstractmethod
    async def find_by_id(self, role_id: UUID | str) -> RoleDTO | None:
        """IDでロールを取得"""
        pass

    @abstractmethod
    async def find_by_name(self, name: str) -> RoleDTO | None:
        """名前でロールを取得"""
        pass

    @abstractmethod
    async def find_by_names(self, names: list[str]) -> list[RoleDTO]:
        """複数の名前でロールを取得"""
        pass

    @abstractmethod
    async def find_all(self, filter: RoleFilterQuery | None = None) -> list[RoleDTO]:
        """ロール一覧を取得"""
        pass

    @abstractmethod
    async def update_basic_info(
        self, role_id: UUID | str, input: RoleBasicInfoUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> RoleDTO:
        """名前と説明を更新"""
        pass

    @abstractmethod
    async def update_basic_info_partial(
        self,
        role_id: UUID | str,
        input: RoleBasicInfoPartialUpdate | Mapping[str, Any],
        context: RepositoryContext | None,
    ) -> RoleDTO:
        """名前・説明を部分更新"""
        pass

    @abstractmethod
    async def update_name(
        self, role_id: UUID | str, input: RoleNameUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> RoleDTO:
        """名前のみ更新"""
        pass

    @abstractmethod
    async def update_description(
        self, role_id: UUID | str, input: RoleDescriptionUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> RoleDTO:
        """説明のみ更新"""
        pass

    @abstractmethod
    async def delete_by_id(self, role_id: UUID | str, context: RepositoryContext | None) -> None:
        """ロールを削除"""
        pass

    # ユーザー-ロール関連付け
    @abstractmethod
    async def assign_role_to_user(
        self, input: UserRoleAssignment | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        """ユーザーにロールを付与（冪等）"""
        pass

    @abstractmethod
    async def remove_role_from_user(
        self, input: UserRoleAssignment | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        """ユーザーからロールを外す"""
        pass

    @abstractmethod
    async def set_user_roles(self, input: UserRolesSet | Mapping[str, Any], context: RepositoryContext | None) -> None:
        """ロール名でユーザーのロールを全置換"""
        pass

    @abstractmethod
    async def update_user_roles_bulk(
        self, input: UserRolesBulkUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        """ロールIDでユーザーのロールを全置換"""
        pass

    # 問い合わせ
    @abstractmethod
    async def get_user_role_names(self, user_id: UUID | str) -> list[str]:
        """ユーザーのロール名一覧を取得"""
        pass

    @abstractmethod
    async def get_users_with_roles(self, filter: UserRoleFilterQuery) -> list[UUID]:
        """指定ロールを持つユーザーIDを取得"""
        pass

    @abstractmethod
    async def user_has_role(self, user_id: UUID | str, role_name: str) -> bool:
        """ロールを持つか"""
        pass

    @abstractmethod
    async def user_has_any_role(self, user_id: UUID | str, role_names: list[str]) -> bool:
        """いずれかのロールを持つか"""
        pass

    @abstractmethod
    async def user_has_all_roles(self, user_id: UUID | str, role_names: list[str]) -> bool:
        """全てのロールを持つか"""
        pass


class RoleRepository(BaseRepository, RoleRepositoryInterface):
    """ロールリポジトリの実装"""

    entity_name = "roles"

    # =========================================================================
    # ロールCRUD
    # =========================================================================

    @handle_repository_errors("ロール作成")
    async def create(self, input: RoleCreateInput | Mapping[str, Any], context: RepositoryContext | None) -> RoleDTO:
        payload = RepoRoleCreateSchema.parse(input)
        operated_by = self._operator(context, "create")

        try:
            async with self.database.transaction() as session:
                role = Role(name=payload["name"], description=payload.get("description"))
                session.add(role)
                await session.flush()
                self._audit(session, role.id, AuditAction.CREATE, operated_by, context, dict(payload))
        except IntegrityError as e:
            raise ConflictError(ErrorMessages.ROLE_NAME_DUPLICATE, details={"name": payload["name"]}) from e

        logger.info(f"ロールを作成しました: name={role.name}, operated_by={operated_by}")
        return RoleDTO.from_model(role)

    @handle_repository_errors("ロール取得")
    async def find_by_id(self, role_id: UUID | str) -> RoleDTO | None:
        async with self.database.session() as session:
            role = await session.get(Role, safe_uuid_convert(role_id, "role_id"))
            return RoleDTO.from_model(role) if role else None

    @handle_repository_errors("ロール名検索")
    async def find_by_name(self, name: str) -> RoleDTO | None:
        async with self.database.session() as session:
            result = await session.execute(select(Role).where(Role.name == name))
            role = result.scalar_one_or_none()
            return RoleDTO.from_model(role) if role else None

    @handle_repository_errors("ロール一括検索")
    async def find_by_names(self, names: list[str]) -> list[RoleDTO]:
        if not names:
            return []
        async with self.database.session() as session:
            result = await session.execute(select(Role).where(Role.name.in_(names)).order_by(Role.name))
            return [RoleDTO.from_model(role) for role in result.scalars().all()]

    @handle_repository_errors("ロール一覧取得")
    async def find_all(self, filter: RoleFilterQuery | None = None) -> list[RoleDTO]:
        filter = filter or RoleFilterQuery()
        stmt = select(Role)
        if filter.name:
            stmt = stmt.where(Role.name.ilike(f"%{filter.name}%"))
        stmt = self._paginate(stmt.order_by(Role.name), filter.skip, filter.limit)

        async with self.database.session() as session:
            result = await session.execute(stmt)
            return [RoleDTO.from_model(role) for role in result.scalars().all()]

    @handle_repository_errors("ロール基本情報更新")
    async def update_basic_info(
        self, role_id: UUID | str, input: RoleBasicInfoUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> RoleDTO:
        return await self._apply_update(RepoRoleBasicInfoSchema, "update_basic_info", role_id, input, context)

    @handle_repository_errors("ロール基本情報部分更新")
    async def update_basic_info_partial(
        self,
        role_id: UUID | str,
        input: RoleBasicInfoPartialUpdate | Mapping[str, Any],
        context: RepositoryContext | None,
    ) -> RoleDTO:
        return await self._apply_update(
            RepoRoleBasicInfoPartialSchema, "update_basic_info_partial", role_id, input, context
        )

    @handle_repository_errors("ロール名更新")
    async def update_name(
        self, role_id: UUID | str, input: RoleNameUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> RoleDTO:
        return await self._apply_update(RepoRoleNameSchema, "update_name", role_id, input, context)

    @handle_repository_errors("ロール説明更新")
    async def update_description(
        self, role_id: UUID | str, input: RoleDescriptionUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> RoleDTO:
        return await self._apply_update(RepoRoleDescriptionSchema, "update_description", role_id, input, context)

    @handle_repository_errors("ロール削除")
    async def delete_by_id(self, role_id: UUID | str, context: RepositoryContext | None) -> None:
        operated_by = self._operator(context, "delete_by_id")

        async with self.database.transaction() as session:
            role = await self._get_or_raise(session, role_id)
            await session.execute(delete(Role).where(Role.id == role.id))
            self._audit(session, role.id, AuditAction.DELETE, operated_by, context, {"name": role.name})

        logger.info(f"ロールを削除しました: name={role.name}, operated_by={operated_by}")

    # =========================================================================
    # ユーザー-ロール関連付け
    # =========================================================================

    @handle_repository_errors("ロール付与")
    async def assign_role_to_user(
        self, input: UserRoleAssignment | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        payload = RepoUserRoleAssignmentSchema.parse(input)
        operated_by = self._operator(context, "assign_role_to_user")
        user_id, role_id = payload["user_id"], payload["role_id"]

        async with self.database.session() as session:
            if await self._has_assignment(session, user_id, role_id):
                logger.debug(f"ロールは既に付与されています: user_id={user_id}, role_id={role_id}")
                return

            session.add(UserRole.create_association(user_id, role_id))
            self._audit(
                session, user_id, AuditAction.CREATE, operated_by, context, dict(payload), entity=USER_ROLES_ENTITY
            )
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                # 並行して同じ付与が行われた場合は成功扱い
                if await self._has_assignment(session, user_id, role_id):
                    logger.debug(f"ロールは既に付与されています: user_id={user_id}, role_id={role_id}")
                    return
                raise NotFoundError(
                    ErrorMessages.NOT_FOUND, details={"user_id": str(user_id), "role_id": str(role_id)}
                ) from e

        logger.info(f"ロールを付与しました: user_id={user_id}, role_id={role_id}, operated_by={operated_by}")

    @handle_repository_errors("ロール解除")
    async def remove_role_from_user(
        self, input: UserRoleAssignment | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        payload = RepoUserRoleAssignmentSchema.parse(input)
        operated_by = self._operator(context, "remove_role_from_user")

        async with self.database.transaction() as session:
            result = await session.execute(
                delete(UserRole).where(UserRole.user_id == payload["user_id"], UserRole.role_id == payload["role_id"])
            )
            if result.rowcount:
                self._audit(
                    session,
                    payload["user_id"],
                    AuditAction.DELETE,
                    operated_by,
                    context,
                    dict(payload),
                    entity=USER_ROLES_ENTITY,
                )

        logger.info(f"ロールを解除しました: user_id={payload['user_id']}, role_id={payload['role_id']}")

    @handle_repository_errors("ユーザーロール設定")
    async def set_user_roles(self, input: UserRolesSet | Mapping[str, Any], context: RepositoryContext | None) -> None:
        payload = RepoUserRolesSetSchema.parse(input)
        operated_by = self._operator(context, "set_user_roles")
        user_id, role_names = payload["user_id"], payload["role_names"]

        async with self.database.session() as session:
            await self._ensure_user_exists(session, user_id)
            resolved, missing = await resolve_role_ids(session, role_names)

        if missing:
            raise NotFoundError(ErrorMessages.ROLES_NOT_FOUND, details={"missing_roles": missing})

        await self._replace(user_id, [resolved[name] for name in role_names], operated_by, context, role_names)
        logger.info(f"ユーザーのロールを設定しました: user_id={user_id}, roles={role_names}, operated_by={operated_by}")

    @handle_repository_errors("ユーザーロール一括更新")
    async def update_user_roles_bulk(
        self, input: UserRolesBulkUpdate | Mapping[str, Any], context: RepositoryContext | None
    ) -> None:
        payload = RepoUserRolesBulkSchema.parse(input)
        operated_by = self._operator(context, "update_user_roles_bulk")
        user_id, role_ids = payload["user_id"], payload["role_ids"]

        async with self.database.session() as session:
            await self._ensure_user_exists(session, user_id)
            if role_ids:
                result = await session.execute(select(Role.id).where(Role.id.in_(role_ids)))
                found = set(result.scalars().all())
                missing = [str(role_id) for role_id in role_ids if role_id not in found]
                if missing:
                    raise NotFoundError(ErrorMessages.ROLES_NOT_FOUND, details={"missing_role_ids": missing})

        await self._replace(user_id, role_ids, operated_by, context, [str(role_id) for role_id in role_ids])
        logger.info(f"ユーザーのロールを一括更新しました: user_id={user_id}, count={len(role_ids)}")

    # =========================================================================
    # 問い合わせ
    # =========================================================================

    @handle_repository_errors("ユーザーロール名取得")
    async def get_user_role_names(self, user_id: UUID | str) -> list[str]:
        uid = safe_uuid_convert(user_id, "user_id")
        async with self.database.session() as session:
            role_map = await fetch_role_names(session, [uid])
        return role_map[uid]

    @handle_repository_errors("ロール保持ユーザー検索")
    async def get_users_with_roles(self, filter: UserRoleFilterQuery) -> list[UUID]:
        role_names = list(dict.fromkeys(filter.role_names))
        if not role_names:
            return []

        if filter.has_all_roles:
            stmt = (
                select(UserRole.user_id)
                .join(Role, UserRole.role_id == Role.id)
                .where(Role.name.in_(role_names))
                .group_by(UserRole.user_id)
                .having(func.count(distinct(Role.name)) == len(role_names))
            )
        else:
            stmt = (
                select(UserRole.user_id)
                .distinct()
                .join(Role, UserRole.role_id == Role.id)
                .where(Role.name.in_(role_names))
            )

        async with self.database.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def user_has_role(self, user_id: UUID | str, role_name: str) -> bool:
        return await self.user_has_any_role(user_id, [role_name])

    @handle_repository_errors("ロール保持確認")
    async def user_has_any_role(self, user_id: UUID | str, role_names: list[str]) -> bool:
        names = list(dict.fromkeys(role_names))
        if not names:
            return False

        stmt = select(
            exists()
            .where(UserRole.role_id == Role.id)
            .where(UserRole.user_id == safe_uuid_convert(user_id, "user_id"), Role.name.in_(names))
        )
        async with self.database.session() as session:
            return bool(await session.scalar(stmt))

    @handle_repository_errors("全ロール保持確認")
    async def user_has_all_roles(self, user_id: UUID | str, role_names: list[str]) -> bool:
        names = list(dict.fromkeys(role_names))
        if not names:
            return True

        stmt = (
            select(func.count(distinct(Role.name)))
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == safe_uuid_convert(user_id, "user_id"), Role.name.in_(names))
        )
        async with self.database.session() as session:
            return await session.scalar(stmt) == len(names)

    # =========================================================================
    # 内部ヘルパー
    # =========================================================================

    async def _replace(
        self,
        user_id: UUID,
        role_ids: list[UUID],
        operated_by: str,
        context: RepositoryContext | None,
        audit_value: list[str],
    ) -> None:
        changes = {"roles": audit_value}

        def write_audit(session: AsyncSession) -> None:
            self._audit(session, user_id, AuditAction.UPDATE, operated_by, context, changes, entity=USER_ROLES_ENTITY)

        await store_user_roles(self.database, user_id, role_ids, write_audit)

    async def _has_assignment(self, session: AsyncSession, user_id: UUID, role_id: UUID) -> bool:
        result = await session.execute(
            select(UserRole.id).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
        )
        return result.first() is not None

    async def _ensure_user_exists(self, session: AsyncSession, user_id: UUID) -> None:
        result = await session.execute(select(User.id).where(User.id == user_id))
        if result.first() is None:
            raise NotFoundError(ErrorMessages.USER_NOT_FOUND, details={"user_id": str(user_id)})

    async def _get_or_raise(self, session: AsyncSession, role_id: UUID | str) -> Role:
        role = await session.get(Role, safe_uuid_convert(role_id, "role_id"))
        if role is None:
            raise NotFoundError(ErrorMessages.ROLE_NOT_FOUND, details={"role_id": str(role_id)})
        return role

    async def _apply_update(
        self,
        schema: PayloadSchema[Any],
        operation: str,
        role_id: UUID | str,
        input: Mapping[str, Any],
        context: RepositoryContext | None,
    ) -> RoleDTO:
        payload = schema.parse(input)
        operated_by = self._operator(context, operation)

        try:
            async with self.database.transaction() as session:
                role = await self._get_or_raise(session, role_id)
                for field, value in payload.items():
                    setattr(role, field, value)
                self._audit(session, role.id, AuditAction.UPDATE, operated_by, context, dict(payload))
                await session.flush()
        except IntegrityError as e:
            raise ConflictError(ErrorMessages.ROLE_NAME_DUPLICATE, details={"name": payload.get("name")}) from e

        logger.info(f"ロールを更新しました: id={role.id}, fields={sorted(payload)}")
        return RoleDTO.from_model(role)
