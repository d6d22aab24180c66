"""ユーザーリポジトリテスト

作成時のロール付与・メールアドレスの一意性・専用更新・一覧検索・認証プロバイダー連携版のテスト
"""

import logging
from pathlib import Path
from uuid import uuid4

import pytest

from todoapp.core.container import AppContainer, create_container
from todoapp.core.context import RepositoryContext
from todoapp.core.exceptions import BusinessRuleError, ConflictError, ExternalServiceError, NotFoundError, ValidationError
from todoapp.dtos.user import UserDTO
from todoapp.repositories.user import AuthProviderUserRepository
from todoapp.schemas.user import UserFilterQuery
from tests.fixtures.entities import SYSTEM_CONTEXT, make_todo, make_user
from tests.tests_config.database import create_test_database
from tests.tests_config.mocks import FailingAuthProvider, InMemoryAuthProvider


class TestUserCreate:
    """ユーザー作成テスト"""

    @pytest.mark.asyncio
    async def test_create_with_default_role(self, container: AppContainer) -> None:
        """ロール未指定の場合はデフォルトロールが付与される"""
        user = await make_user(container, "New@Example.com", "新規ユーザー")

        assert user.email == "new@example.com"
        assert user.roles == ["user"]
        assert user.is_active is True
        assert user.email_verified is False

    @pytest.mark.asyncio
    async def test_create_with_roles(self, container: AppContainer) -> None:
        """指定したロールが付与される"""
        user = await make_user(container, "boss@example.com", "管理者", roles=["user", "admin", "admin"])

        assert user.roles == ["admin", "user"]
        assert user.is_admin

    @pytest.mark.asyncio
    async def test_create_with_unknown_role(self, container: AppContainer) -> None:
        """存在しないロールを指定した場合はユーザーも作成されない"""
        with pytest.raises(BusinessRuleError) as exc_info:
            await make_user(container, "ghost@example.com", "幽霊", roles=["superuser"])

        assert exc_info.value.details["missing_roles"] == ["superuser"]
        assert await container.user_repository.find_by_email("ghost@example.com") is None

    @pytest.mark.asyncio
    async def test_duplicate_email(self, container: AppContainer, test_user: UserDTO) -> None:
        """同じメールアドレスでは作成できず、重複も生じない"""
        with pytest.raises(ConflictError):
            await make_user(container, test_user.email.upper(), "重複")

        assert await container.user_repository.count(UserFilterQuery(email=test_user.email)) == 1

    @pytest.mark.asyncio
    async def test_invalid_payload(self, container: AppContainer) -> None:
        """メールアドレス・URLの形式が不正な場合は検証エラー"""
        with pytest.raises(ValidationError) as exc_info:
            await container.user_repository.create(
                {"email": "not-an-email", "name": "名前", "website": "ftp://example.com"}, SYSTEM_CONTEXT
            )

        fields = {error["field"] for error in exc_info.value.details["errors"]}
        assert fields == {"email", "website"}


class TestUserFind:
    """ユーザー取得テスト"""

    @pytest.mark.asyncio
    async def test_find_returns_none_when_absent(self, container: AppContainer) -> None:
        assert await container.user_repository.find_by_id(uuid4()) is None
        assert await container.user_repository.find_by_email("nobody@example.com") is None

    @pytest.mark.asyncio
    async def test_find_by_email_is_case_insensitive(self, container: AppContainer, test_user: UserDTO) -> None:
        found = await container.user_repository.find_by_email(" TEST@example.com ")

        assert found is not None
        assert found.id == test_user.id
        assert found.roles == ["user"]


class TestUserUpdate:
    """専用更新メソッドのテスト"""

    @pytest.mark.asyncio
    async def test_update_basic_info(self, container: AppContainer, test_user: UserDTO) -> None:
        """指定されたフィールドだけが更新される"""
        await container.user_repository.update_basic_info(
            test_user.id, {"bio": "よろしく", "website": "https://example.com"}, RepositoryContext.for_user(test_user.id)
        )

        found = await container.user_repository.find_by_id(test_user.id)
        assert found is not None
        assert found.name == test_user.name
        assert found.bio == "よろしく"
        assert found.website == "https://example.com"

    @pytest.mark.asyncio
    async def test_update_unknown_user(self, container: AppContainer) -> None:
        with pytest.raises(NotFoundError):
            await container.user_repository.update_name(uuid4(), {"name": "誰か"}, SYSTEM_CONTEXT)

    @pytest.mark.asyncio
    async def test_update_name_rejects_blank(self, container: AppContainer, test_user: UserDTO) -> None:
        with pytest.raises(ValidationError):
            await container.user_repository.update_name(test_user.id, {"name": "   "}, SYSTEM_CONTEXT)

    @pytest.mark.asyncio
    async def test_update_bio_and_avatar(self, container: AppContainer, test_user: UserDTO) -> None:
        await container.user_repository.update_bio(test_user.id, {"bio": "自己紹介"}, SYSTEM_CONTEXT)
        await container.user_repository.update_avatar(
            test_user.id, {"avatar": "https://example.com/a.png"}, SYSTEM_CONTEXT
        )
        await container.user_repository.update_website(test_user.id, {"website": None}, SYSTEM_CONTEXT)

        found = await container.user_repository.find_by_id(test_user.id)
        assert found is not None
        assert (found.bio, found.avatar, found.website) == ("自己紹介", "https://example.com/a.png", None)

    @pytest.mark.asyncio
    async def test_update_status(self, container: AppContainer, test_user: UserDTO) -> None:
        await container.user_repository.update_status(test_user.id, {"is_active": False}, SYSTEM_CONTEXT)

        found = await container.user_repository.find_by_id(test_user.id)
        assert found is not None
        assert found.is_active is False

    @pytest.mark.asyncio
    async def test_update_email_conflict(
        self, container: AppContainer, test_user: UserDTO, other_user: UserDTO
    ) -> None:
        """他人が使用中のメールアドレスには変更できない"""
        with pytest.raises(ConflictError):
            await container.user_repository.update_email(test_user.id, {"email": other_user.email}, SYSTEM_CONTEXT)

        found = await container.user_repository.find_by_id(test_user.id)
        assert found is not None
        assert found.email == test_user.email

    @pytest.mark.asyncio
    async def test_update_roles_replaces_all(self, container: AppContainer, test_user: UserDTO) -> None:
        await container.user_repository.update_roles(test_user.id, {"roles": ["admin"]}, SYSTEM_CONTEXT)

        found = await container.user_repository.find_by_id(test_user.id)
        assert found is not None
        assert found.roles == ["admin"]

    @pytest.mark.asyncio
    async def test_update_roles_unknown_role(self, container: AppContainer, test_user: UserDTO) -> None:
        """存在しないロールが含まれる場合は何も変更しない"""
        with pytest.raises(NotFoundError):
            await container.user_repository.update_roles(test_user.id, {"roles": ["admin", "owner"]}, SYSTEM_CONTEXT)

        assert (await container.user_repository.find_by_id(test_user.id)).roles == ["user"]  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_roles_without_transactions(
        self, container: AppContainer, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """トランザクション非対応のストレージでは作成・ロール更新とも2段階で確定する"""
        directory = tmp_path / "no_tx"
        directory.mkdir()
        manager = await create_test_database(directory, transactions_enabled=False)
        try:
            no_tx = create_container(settings=container.settings, database=manager)
            await no_tx.seed_default_roles()

            with caplog.at_level(logging.WARNING, logger="todoapp.repositories.role"):
                user = await make_user(no_tx, "plain@example.com", "非トランザクション", roles=["admin", "user"])
                await no_tx.user_repository.update_roles(user.id, {"roles": ["admin"]}, SYSTEM_CONTEXT)

            found = await no_tx.user_repository.find_by_id(user.id)
            assert user.roles == ["admin", "user"]
            assert found is not None
            assert found.roles == ["admin"]
            assert len([r for r in caplog.records if "2段階" in r.getMessage()]) == 2
        finally:
            await manager.close()

    @pytest.mark.asyncio
    async def test_update_roles_requires_one(self, container: AppContainer, test_user: UserDTO) -> None:
        with pytest.raises(ValidationError):
            await container.user_repository.update_roles(test_user.id, {"roles": []}, SYSTEM_CONTEXT)

    @pytest.mark.asyncio
    async def test_update_profile(self, container: AppContainer, test_user: UserDTO) -> None:
        """プロフィール更新は更新後のユーザーを返し、存在しない場合はNone"""
        updated = await container.user_repository.update_profile(
            test_user.id, {"name": "新しい名前", "email_verified": True}, SYSTEM_CONTEXT
        )

        assert updated is not None
        assert updated.name == "新しい名前"
        assert updated.email_verified is True
        assert updated.roles == ["user"]

        assert await container.user_repository.update_profile(uuid4(), {"name": "誰か"}, SYSTEM_CONTEXT) is None


class TestUserDelete:
    """ユーザー削除テスト"""

    @pytest.mark.asyncio
    async def test_delete_cascades(self, container: AppContainer, test_user: UserDTO) -> None:
        """ユーザー削除でTodoとロール関連付けも削除される"""
        todo = await make_todo(container, test_user, "消えるTodo")

        await container.user_repository.delete(test_user.id, SYSTEM_CONTEXT)

        assert await container.user_repository.find_by_id(test_user.id) is None
        assert await container.todo_repository.find_by_id(todo.id, test_user.id) is None
        assert await container.role_repository.get_user_role_names(test_user.id) == []

    @pytest.mark.asyncio
    async def test_delete_unknown_user(self, container: AppContainer) -> None:
        with pytest.raises(NotFoundError):
            await container.user_repository.delete(uuid4(), SYSTEM_CONTEXT)


class TestUserQueries:
    """一覧・件数のテスト"""

    @pytest.mark.asyncio
    async def test_filters(
        self, container: AppContainer, test_user: UserDTO, other_user: UserDTO, admin_user: UserDTO
    ) -> None:
        await container.user_repository.update_status(other_user.id, {"is_active": False}, SYSTEM_CONTEXT)

        admins = await container.user_repository.find_all(UserFilterQuery(roles=["admin"]))
        assert [user.id for user in admins] == [admin_user.id]
        assert admins[0].roles == ["admin", "user"]

        active = await container.user_repository.find_all(UserFilterQuery(is_active=True))
        assert {user.id for user in active} == {test_user.id, admin_user.id}

        by_email = await container.user_repository.find_all(UserFilterQuery(email="OTHER"))
        assert [user.id for user in by_email] == [other_user.id]

        assert await container.user_repository.count() == 3
        assert await container.user_repository.count(UserFilterQuery(roles=["user"])) == 3

    @pytest.mark.asyncio
    async def test_sort_and_paginate(self, container: AppContainer) -> None:
        for name in ("b", "a", "c"):
            await make_user(container, f"{name}@example.com", name)

        users = await container.user_repository.find_all(UserFilterQuery(sort_by="email", order="asc", skip=1, limit=1))
        assert [user.email for user in users] == ["b@example.com"]


class TestAuthProviderUserRepository:
    """認証プロバイダー連携版のテスト"""

    @pytest.mark.asyncio
    async def test_create_is_rejected(self, container: AppContainer) -> None:
        """作成はプロバイダーのサインアップ経由でのみ行う"""
        provider = InMemoryAuthProvider()
        repository = create_container(
            settings=container.settings, database=container.database, auth_provider=provider
        ).user_repository

        assert isinstance(repository, AuthProviderUserRepository)
        with pytest.raises(BusinessRuleError):
            await repository.create({"email": "x@example.com", "name": "x"}, SYSTEM_CONTEXT)
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_find_enriches_with_local_profile(self, container: AppContainer, admin_user: UserDTO) -> None:
        """プロバイダーのアカウントにローカルのロールとプロフィールを補完する"""
        provider = InMemoryAuthProvider()
        provider.add_account("admin@example.com", "プロバイダー上の名前", account_id=str(admin_user.id), email_verified=True)
        repository = create_container(
            settings=container.settings, database=container.database, auth_provider=provider
        ).user_repository

        found = await repository.find_by_email("ADMIN@example.com")

        assert found is not None
        assert found.id == admin_user.id
        assert found.name == "プロバイダー上の名前"
        assert found.email_verified is True
        assert found.roles == ["admin", "user"]

    @pytest.mark.asyncio
    async def test_find_without_local_profile(self, container: AppContainer) -> None:
        """ローカルにプロフィールが無いアカウントはロール無しで返す"""
        provider = InMemoryAuthProvider()
        account = provider.add_account("fresh@example.com", "新規")
        repository = create_container(
            settings=container.settings, database=container.database, auth_provider=provider
        ).user_repository

        found = await repository.find_by_id(account.id)

        assert found is not None
        assert found.email == "fresh@example.com"
        assert found.roles == []
        assert await repository.find_by_id(str(uuid4())) is None

    @pytest.mark.asyncio
    async def test_provider_failure(self, container: AppContainer) -> None:
        """プロバイダーの障害は外部サービスエラーとして扱う"""
        repository = create_container(
            settings=container.settings, database=container.database, auth_provider=FailingAuthProvider()
        ).user_repository

        with pytest.raises(ExternalServiceError):
            await repository.find_by_email("any@example.com")
