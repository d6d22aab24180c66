"""ロールリポジトリテスト

ロールCRUD、ユーザーへのロール付与（冪等）、全置換、ロール保持者の検索のテスト
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from todoapp.core.container import AppContainer, create_container
from todoapp.core.exceptions import ConflictError, NotFoundError, ValidationError
from todoapp.dtos.user import UserDTO
from todoapp.models.user_role import UserRole
from todoapp.schemas.role import RoleFilterQuery, UserRoleFilterQuery
from tests.fixtures.entities import SYSTEM_CONTEXT, make_user
from tests.tests_config.database import create_test_database


async def count_assignments(container: AppContainer, user_id: object) -> int:
    async with container.database.session() as session:
        result = await session.execute(select(func.count()).select_from(UserRole).where(UserRole.user_id == user_id))
        return result.scalar() or 0


class TestRoleCrud:
    """ロールCRUDテスト"""

    @pytest.mark.asyncio
    async def test_builtin_roles_seeded(self, container: AppContainer) -> None:
        roles = await container.role_repository.find_all(RoleFilterQuery())
        assert [role.name for role in roles] == ["admin", "user"]

    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, container: AppContainer) -> None:
        assert await container.seed_default_roles() == []

    @pytest.mark.asyncio
    async def test_create_and_find(self, container: AppContainer) -> None:
        role = await container.role_repository.create({"name": " editor ", "description": "編集者"}, SYSTEM_CONTEXT)

        assert role.name == "editor"
        found = await container.role_repository.find_by_id(role.id)
        assert found is not None
        assert (found.name, found.description) == ("editor", "編集者")
        assert (await container.role_repository.find_by_name("editor")).id == role.id  # type: ignore[union-attr]
        assert [r.name for r in await container.role_repository.find_by_names(["editor", "missing"])] == ["editor"]

    @pytest.mark.asyncio
    async def test_duplicate_name(self, container: AppContainer) -> None:
        with pytest.raises(ConflictError):
            await container.role_repository.create({"name": "admin"}, SYSTEM_CONTEXT)

    @pytest.mark.asyncio
    async def test_name_too_long(self, container: AppContainer) -> None:
        with pytest.raises(ValidationError):
            await container.role_repository.create({"name": "x" * 51}, SYSTEM_CONTEXT)

    @pytest.mark.asyncio
    async def test_updates(self, container: AppContainer) -> None:
        role = await container.role_repository.create({"name": "editor"}, SYSTEM_CONTEXT)

        renamed = await container.role_repository.update_name(role.id, {"name": "writer"}, SYSTEM_CONTEXT)
        assert renamed.name == "writer"

        described = await container.role_repository.update_description(
            role.id, {"description": "記事を書く"}, SYSTEM_CONTEXT
        )
        assert described.description == "記事を書く"

        both = await container.role_repository.update_basic_info(
            role.id, {"name": "author", "description": None}, SYSTEM_CONTEXT
        )
        assert (both.name, both.description) == ("author", None)

        partial = await container.role_repository.update_basic_info_partial(
            role.id, {"description": "著者"}, SYSTEM_CONTEXT
        )
        assert (partial.name, partial.description) == ("author", "著者")

    @pytest.mark.asyncio
    async def test_rename_to_existing_name(self, container: AppContainer) -> None:
        role = await container.role_repository.create({"name": "editor"}, SYSTEM_CONTEXT)

        with pytest.raises(ConflictError):
            await container.role_repository.update_name(role.id, {"name": "admin"}, SYSTEM_CONTEXT)

    @pytest.mark.asyncio
    async def test_delete(self, container: AppContainer, test_user: UserDTO) -> None:
        """ロール削除で関連付けも削除される"""
        role = await container.role_repository.create({"name": "temporary"}, SYSTEM_CONTEXT)
        await container.role_repository.assign_role_to_user({"user_id": test_user.id, "role_id": role.id}, SYSTEM_CONTEXT)

        await container.role_repository.delete_by_id(role.id, SYSTEM_CONTEXT)

        assert await container.role_repository.find_by_id(role.id) is None
        assert await container.role_repository.get_user_role_names(test_user.id) == ["user"]
        with pytest.raises(NotFoundError):
            await container.role_repository.delete_by_id(role.id, SYSTEM_CONTEXT)


class TestUserRoleAssignment:
    """ユーザー-ロール関連付けのテスト"""

    @pytest.mark.asyncio
    async def test_assign_is_idempotent(self, container: AppContainer, test_user: UserDTO) -> None:
        admin = await container.role_repository.find_by_name("admin")
        assert admin is not None
        assignment = {"user_id": test_user.id, "role_id": admin.id}

        await container.role_repository.assign_role_to_user(assignment, SYSTEM_CONTEXT)
        await container.role_repository.assign_role_to_user(assignment, SYSTEM_CONTEXT)

        assert await container.role_repository.get_user_role_names(test_user.id) == ["admin", "user"]
        assert await count_assignments(container, test_user.id) == 2

    @pytest.mark.asyncio
    async def test_assign_unknown_role(self, container: AppContainer, test_user: UserDTO) -> None:
        with pytest.raises(NotFoundError):
            await container.role_repository.assign_role_to_user(
                {"user_id": test_user.id, "role_id": uuid4()}, SYSTEM_CONTEXT
            )

    @pytest.mark.asyncio
    async def test_remove(self, container: AppContainer, admin_user: UserDTO) -> None:
        admin = await container.role_repository.find_by_name("admin")
        assert admin is not None

        await container.role_repository.remove_role_from_user(
            {"user_id": admin_user.id, "role_id": admin.id}, SYSTEM_CONTEXT
        )

        assert await container.role_repository.get_user_role_names(admin_user.id) == ["user"]

    @pytest.mark.asyncio
    async def test_set_user_roles_replaces_exactly(self, container: AppContainer, test_user: UserDTO) -> None:
        """全置換後に古い関連付けが残らない"""
        await container.role_repository.set_user_roles(
            {"user_id": test_user.id, "role_names": ["admin", "user"]}, SYSTEM_CONTEXT
        )
        assert set(await container.role_repository.get_user_role_names(test_user.id)) == {"admin", "user"}

        await container.role_repository.set_user_roles({"user_id": test_user.id, "role_names": ["user"]}, SYSTEM_CONTEXT)
        assert await container.role_repository.get_user_role_names(test_user.id) == ["user"]
        assert await count_assignments(container, test_user.id) == 1

    @pytest.mark.asyncio
    async def test_set_user_roles_missing_role(self, container: AppContainer, test_user: UserDTO) -> None:
        """存在しないロールが含まれる場合は既存の関連付けを変更しない"""
        with pytest.raises(NotFoundError) as exc_info:
            await container.role_repository.set_user_roles(
                {"user_id": test_user.id, "role_names": ["admin", "owner"]}, SYSTEM_CONTEXT
            )

        assert exc_info.value.details["missing_roles"] == ["owner"]
        assert await container.role_repository.get_user_role_names(test_user.id) == ["user"]

    @pytest.mark.asyncio
    async def test_set_user_roles_unknown_user(self, container: AppContainer) -> None:
        with pytest.raises(NotFoundError):
            await container.role_repository.set_user_roles({"user_id": uuid4(), "role_names": ["user"]}, SYSTEM_CONTEXT)

    @pytest.mark.asyncio
    async def test_set_user_roles_without_transactions(self, container: AppContainer, tmp_path) -> None:
        """トランザクション非対応のストレージでも最終的な結果は同じ"""
        directory = tmp_path / "no_tx"
        directory.mkdir()
        manager = await create_test_database(directory, transactions_enabled=False)
        try:
            no_tx = create_container(settings=container.settings, database=manager)
            await no_tx.seed_default_roles()
            user = await make_user(no_tx, "plain@example.com", "非トランザクション")

            await no_tx.role_repository.set_user_roles({"user_id": user.id, "role_names": ["admin"]}, SYSTEM_CONTEXT)

            assert await no_tx.role_repository.get_user_role_names(user.id) == ["admin"]
        finally:
            await manager.close()

    @pytest.mark.asyncio
    async def test_update_user_roles_bulk(self, container: AppContainer, test_user: UserDTO) -> None:
        roles = await container.role_repository.find_by_names(["admin", "user"])

        await container.role_repository.update_user_roles_bulk(
            {"user_id": test_user.id, "role_ids": [role.id for role in roles]}, SYSTEM_CONTEXT
        )
        assert await container.role_repository.get_user_role_names(test_user.id) == ["admin", "user"]

        with pytest.raises(NotFoundError):
            await container.role_repository.update_user_roles_bulk(
                {"user_id": test_user.id, "role_ids": [uuid4()]}, SYSTEM_CONTEXT
            )
        assert await container.role_repository.get_user_role_names(test_user.id) == ["admin", "user"]


class TestRoleQueries:
    """ロール問い合わせのテスト"""

    @pytest.mark.asyncio
    async def test_users_with_roles(self, container: AppContainer, test_user: UserDTO, admin_user: UserDTO) -> None:
        await container.role_repository.create({"name": "editor"}, SYSTEM_CONTEXT)
        editor = await make_user(container, "editor@example.com", "編集者", roles=["editor"])

        any_of = await container.role_repository.get_users_with_roles(UserRoleFilterQuery(role_names=["admin", "editor"]))
        assert set(any_of) == {admin_user.id, editor.id}

        all_of = await container.role_repository.get_users_with_roles(
            UserRoleFilterQuery(role_names=["admin", "user"], has_all_roles=True)
        )
        assert all_of == [admin_user.id]

        assert await container.role_repository.get_users_with_roles(UserRoleFilterQuery(role_names=[])) == []
        assert test_user.id not in any_of

    @pytest.mark.asyncio
    async def test_has_role_checks(self, container: AppContainer, admin_user: UserDTO) -> None:
        repository = container.role_repository

        assert await repository.user_has_role(admin_user.id, "admin")
        assert not await repository.user_has_role(admin_user.id, "editor")
        assert await repository.user_has_any_role(admin_user.id, ["editor", "user"])
        assert not await repository.user_has_any_role(admin_user.id, ["editor"])
        assert await repository.user_has_all_roles(admin_user.id, ["admin", "user"])
        assert not await repository.user_has_all_roles(admin_user.id, ["admin", "editor"])

    @pytest.mark.asyncio
    async def test_has_role_edge_cases(self, container: AppContainer, admin_user: UserDTO) -> None:
        """重複指定・空指定・ロール未保持ユーザーの扱い"""
        repository = container.role_repository

        assert await repository.user_has_all_roles(admin_user.id, ["admin", "admin"])
        assert await repository.user_has_all_roles(admin_user.id, [])
        assert not await repository.user_has_any_role(admin_user.id, [])
        assert not await repository.user_has_role(uuid4(), "user")
        assert not await repository.user_has_all_roles(uuid4(), ["user"])
