"""テストエンティティフィクスチャ"""

from typing import Any

import pytest_asyncio

from todoapp.core.container import AppContainer
from todoapp.core.context import RepositoryContext
from todoapp.dtos.todo import TodoDTO
from todoapp.dtos.user import UserDTO

SYSTEM_CONTEXT = RepositoryContext.system("テストデータ作成")


async def make_user(container: AppContainer, email: str, name: str, roles: list[str] | None = None) -> UserDTO:
    """リポジトリ経由でユーザーを作成"""
    payload: dict[str, Any] = {"email": email, "name": name}
    if roles is not None:
        payload["roles"] = roles
    return await container.user_repository.create(payload, SYSTEM_CONTEXT)


async def make_todo(container: AppContainer, user: UserDTO, title: str, **fields: Any) -> TodoDTO:
    """リポジトリ経由でTodoを作成"""
    return await container.todo_repository.create(
        {"title": title, "user_id": user.id, **fields}, RepositoryContext.for_user(user.id)
    )


@pytest_asyncio.fixture
async def test_user(container: AppContainer) -> UserDTO:
    """テスト用ユーザー（userロール）"""
    return await make_user(container, "test@example.com", "テストユーザー")


@pytest_asyncio.fixture
async def other_user(container: AppContainer) -> UserDTO:
    """別のテスト用ユーザー"""
    return await make_user(container, "other@example.com", "別のユーザー")


@pytest_asyncio.fixture
async def admin_user(container: AppContainer) -> UserDTO:
    """テスト用管理者"""
    return await make_user(container, "admin@example.com", "管理者", roles=["admin", "user"])


@pytest_asyncio.fixture
async def test_todo(container: AppContainer, test_user: UserDTO) -> TodoDTO:
    """テスト用Todo"""
    return await make_todo(container, test_user, "テストTodo", description="テスト用のTodoです")
