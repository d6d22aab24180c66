"""ユーザーサービステスト

メールアドレスの重複チェック、デフォルトロール、更新の振り分けのテスト
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from todoapp.core.constants import SYSTEM_USER_ID, ErrorMessages
from todoapp.core.container import AppContainer
from todoapp.core.exceptions import ConflictError, NotFoundError, ValidationError
from todoapp.dtos.user import UserDTO
from todoapp.repositories.user import UserRepositoryInterface
from todoapp.schemas.user import UserCreateRequest, UserProfileUpdateRequest, UserUpdateRequest
from todoapp.services.user import UserService


def build_user(**overrides: object) -> UserDTO:
    now = datetime.now(UTC)
    values: dict = {
        "id": uuid4(),
        "created_at": now,
        "updated_at": now,
        "email": "someone@example.com",
        "name": "誰か",
        "roles": ["user"],
    }
    values.update(overrides)
    return UserDTO(**values)


@pytest.fixture
def repository() -> AsyncMock:
    return AsyncMock(spec=UserRepositoryInterface)


class TestCreateUser:
    """ユーザー作成テスト"""

    @pytest.mark.asyncio
    async def test_conflict_is_checked_first(self, repository: AsyncMock) -> None:
        """登録済みのメールアドレスではリポジトリの作成を呼ばない"""
        repository.find_by_email.return_value = build_user()
        service = UserService(repository)

        with pytest.raises(ConflictError) as exc_info:
            await service.create_user(UserCreateRequest(email="Someone@Example.com", name="誰か"))

        assert exc_info.value.message == ErrorMessages.EMAIL_ALREADY_EXISTS
        repository.find_by_email.assert_awaited_once_with("someone@example.com")
        repository.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_default_roles(self, repository: AsyncMock) -> None:
        """ロール未指定時は設定されたデフォルトロールを使う"""
        repository.find_by_email.return_value = None
        repository.create.return_value = build_user(roles=["member"])
        service = UserService(repository, default_roles=["member"])

        await service.create_user(UserCreateRequest(email="new@example.com", name="新規", bio="よろしく"))

        payload, context = repository.create.await_args.args
        assert payload == {
            "email": "new@example.com",
            "name": "新規",
            "roles": ["member"],
            "is_active": True,
            "bio": "よろしく",
        }
        assert context.operated_by == SYSTEM_USER_ID

    @pytest.mark.asyncio
    async def test_create_persists(self, container: AppContainer) -> None:
        user = await container.user_service.create_user(UserCreateRequest(email="hanako@example.com", name="花子"))

        assert user.roles == ["user"]
        found = await container.user_service.get_user_by_email("HANAKO@example.com")
        assert found is not None
        assert found.id == user.id

    @pytest.mark.asyncio
    async def test_duplicate_through_service(self, container: AppContainer, test_user: UserDTO) -> None:
        with pytest.raises(ConflictError):
            await container.user_service.create_user(UserCreateRequest(email=test_user.email, name="重複"))


class TestGetUser:
    """ユーザー取得テスト"""

    @pytest.mark.asyncio
    async def test_blank_inputs(self, repository: AsyncMock) -> None:
        service = UserService(repository)

        with pytest.raises(ValidationError) as id_error:
            await service.get_user_by_id("  ")
        with pytest.raises(ValidationError) as email_error:
            await service.get_user_by_email("")

        assert id_error.value.message == ErrorMessages.USER_ID_REQUIRED
        assert email_error.value.message == ErrorMessages.EMAIL_REQUIRED
        repository.find_by_id.assert_not_awaited()
        repository.find_by_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_user(self, container: AppContainer) -> None:
        assert await container.user_service.get_user_by_id(uuid4()) is None


class TestUpdateUser:
    """更新内容に応じた振り分けのテスト"""

    @pytest.mark.asyncio
    async def test_only_requested_updates(self, repository: AsyncMock) -> None:
        """指定されたフィールドに対応する更新だけを呼び出す"""
        user = build_user()
        repository.find_by_id.return_value = user
        service = UserService(repository)

        await service.update_user(user.id, UserUpdateRequest(name="新しい名前", bio=None))

        repository.update_basic_info.assert_awaited_once()
        assert repository.update_basic_info.await_args.args[1] == {"name": "新しい名前", "bio": None}
        repository.update_roles.assert_not_awaited()
        repository.update_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_roles_and_status(self, repository: AsyncMock) -> None:
        user = build_user()
        repository.find_by_id.return_value = user
        service = UserService(repository)

        await service.update_user(user.id, UserUpdateRequest(roles=["admin"], is_active=False))

        repository.update_basic_info.assert_not_awaited()
        assert repository.update_roles.await_args.args[1] == {"roles": ["admin"]}
        assert repository.update_status.await_args.args[1] == {"is_active": False}

    @pytest.mark.asyncio
    async def test_unknown_user(self, repository: AsyncMock) -> None:
        repository.find_by_id.return_value = None
        service = UserService(repository)

        with pytest.raises(NotFoundError):
            await service.update_user(uuid4(), UserUpdateRequest(name="誰か"))
        repository.update_basic_info.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_persists(self, container: AppContainer, test_user: UserDTO) -> None:
        updated = await container.user_service.update_user(
            test_user.id, UserUpdateRequest(website="https://example.com", roles=["admin", "user"])
        )

        assert updated.website == "https://example.com"
        assert updated.roles == ["admin", "user"]
        assert updated.name == test_user.name

    @pytest.mark.asyncio
    async def test_update_profile(self, container: AppContainer, test_user: UserDTO) -> None:
        updated = await container.user_service.update_user_profile(test_user.id, UserProfileUpdateRequest(bio="趣味は読書"))

        assert updated is not None
        assert updated.bio == "趣味は読書"
        assert await container.user_service.update_user_profile(uuid4(), UserProfileUpdateRequest(bio="x")) is None


class TestChangeEmail:
    """メールアドレス変更テスト"""

    @pytest.mark.asyncio
    async def test_change(self, container: AppContainer, test_user: UserDTO) -> None:
        updated = await container.user_service.change_email(test_user.id, "Renamed@Example.com")

        assert updated.email == "renamed@example.com"
        assert await container.user_service.get_user_by_email(test_user.email) is None

    @pytest.mark.asyncio
    async def test_same_email_is_noop(self, repository: AsyncMock) -> None:
        user = build_user()
        repository.find_by_id.return_value = user
        service = UserService(repository)

        assert await service.change_email(user.id, " SOMEONE@example.com ") == user
        repository.update_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_taken_email(self, container: AppContainer, test_user: UserDTO, other_user: UserDTO) -> None:
        with pytest.raises(ConflictError):
            await container.user_service.change_email(test_user.id, other_user.email)


class TestDeleteAndList:
    """削除・一覧のテスト"""

    @pytest.mark.asyncio
    async def test_delete(self, container: AppContainer, test_user: UserDTO) -> None:
        await container.user_service.delete_user(test_user.id)

        assert await container.user_service.get_user_by_id(test_user.id) is None
        with pytest.raises(NotFoundError):
            await container.user_service.delete_user(test_user.id)

    @pytest.mark.asyncio
    async def test_list_and_count(self, container: AppContainer, test_user: UserDTO, other_user: UserDTO) -> None:
        users = await container.user_service.get_all_users()

        assert {user.id for user in users} == {test_user.id, other_user.id}
        assert await container.user_service.get_user_count() == 2
