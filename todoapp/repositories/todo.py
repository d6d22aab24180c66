"""Todoリポジトリ

Todoデータアクセス層の抽象化

- すべての読み書きは (todo_id, user_id) で所有者を確認する
- 存在しないTodoと他人のTodoは区別しない（どちらも None / NotFoundError）
- 更新はフィールドごとの専用メソッドで行い、汎用のupdateは提供しない
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from todoapp.core.constants import AuditAction, ErrorMessages
from todoapp.core.context import RepositoryContext
from todoapp.core.exceptions import NotFoundError
from todoapp.dtos.todo import TodoDTO
from todoapp.models.todo import Todo
from todoapp.repositories.base import BaseRepository
from todoapp.schemas.payloads import (
    TodoContentPartialUpdate,
    TodoCreateInput,
    TodoDescriptionUpdate,
    TodoStatusUpdate,
    TodoTitleUpdate,
)
from todoapp.schemas.repository import (
    RepoTodoContentPartialSchema,
    RepoTodoCreateSchema,
    RepoTodoDescriptionSchema,
    RepoTodoStatusSchema,
    RepoTodoTitleSchema,
)
from todoapp.schemas.todo import TodoFilterQuery, TodoListOptions
from todoapp.utils.error_handler import handle_repository_errors
from todoapp.utils.validation import PayloadSchema, safe_uuid_convert

logger = logging.getLogger(__name__)


class TodoRepositoryInterface(ABC):
    """Todoリポジトリのインターフェース"""

    @abstractmethod
    async def create(self, input: TodoCreateInput | Mapping[str, Any], context: RepositoryContext | None) -> TodoDTO:
        """Todoを作成（completed は常に False）"""
        pass

    @abstractmethod
    async def find_by_id(self, todo_id: UUID | str, user_id: UUID | str) -> TodoDTO | None:
        """IDでTodoを取得（存在しない・所有者でない場合はNone）"""
        pass

    @abstractmethod
    async def delete(self, todo_id: UUID | str, user_id: UUID | str, context: RepositoryContext | None) -> None:
        """Todoを物理削除"""
        pass

    @abstractmethod
    async def update_content(
        self,
        todo_id: UUID | str,
        input: TodoContentPartialUpdate | Mapping[str, Any],
        user_id: UUID | str,
        context: RepositoryContext | None,
    ) -> TodoDTO:
        """タイトル・説明を部分更新"""
        pass

    @abstractmethod
    async def update_status(
        self,
        todo_id: UUID | str,
        input: TodoStatusUpdate | Mapping[str, Any],
        user_id: UUID | str,
        context: RepositoryContext | None,
    ) -> TodoDTO:
        """完了状態を更新"""
        pass

    @abstractmethod
    async def update_title(
        self,
        todo_id: UUID | str,
        input: TodoTitleUpdate | Mapping[str, Any],
        user_id: UUID | str,
        context: RepositoryContext | None,
    ) -> TodoDTO:
        """タイトルのみ更新"""
        pass

    @abstractmethod
    async def update_description(
        self,
        todo_id: UUID | str,
        input: TodoDescriptionUpdate | Mapping[str, Any],
        user_id: UUID | str,
        context: RepositoryContext | None,
    ) -> TodoDTO:
        """説明のみ更新"""
        pass

    @abstractmethod
    async def toggle_completion(
        self, todo_id: UUID | str, user_id: UUID | str, context: RepositoryContext | None
    ) -> TodoDTO:
        """完了状態を反転"""
        pass

    @abstractmethod
    async def find_by_user_id(self, user_id: UUID | str, options: TodoListOptions | None = None) -> list[TodoDTO]:
        """ユーザーのTodo一覧を取得"""
        pass

    @abstractmethod
    async def find_by_status(self, user_id: UUID | str, completed: bool) -> list[TodoDTO]:
        """完了状態でTodo一覧を取得"""
        pass

    @abstractmethod
    async def count_by_user_id(self, user_id: UUID | str, completed: bool | None = None) -> int:
        """ユーザーのTodo件数を取得"""
        pass

    @abstractmethod
    async def find_all(self, filter: TodoFilterQuery | None = None) -> list[TodoDTO]:
        """全ユーザー横断でTodoを検索（管理者用）"""
        pass


class TodoRepository(BaseRepository, TodoRepositoryInterface):
    """Todoリポジトリの実装"""

    entity_name = "todos"

    # =========================================================================
    # 作成・取得・削除
    # =========================================================================

    @handle_repository_errors("Todo作成")
    async def create(self, input: TodoCreateInput | Mapping[str, Any], context: RepositoryContext | None) -> TodoDTO:
        payload = RepoTodoCreateSchema.parse(input)
        operated_by = self._operator(context, "create")

        try:
            async with self.database.transaction() as session:
                todo = Todo(
                    user_id=payload["user_id"],
                    title=payload["title"],
                    description=payload.get("description"),
                    completed=False,
                )
                session.add(todo)
                await session.flush()
                self._audit(session, todo.id, AuditAction.CREATE, operated_by, context, dict(payload))
        except IntegrityError as e:
            # 所有者ユーザーが存在しない（外部キー違反）
            raise NotFoundError(ErrorMessages.USER_NOT_FOUND, details={"user_id": str(payload["user_id"])}) from e

        logger.info(f"Todoを作成しました: id={todo.id}, user_id={todo.user_id}, operated_by={operated_by}")
        return TodoDTO.from_model(todo)

    @handle_repository_errors("Todo取得")
    async def find_by_id(self, todo_id: UUID | str, user_id: UUID | str) -> TodoDTO | None:
        async with self.database.session() as session:
            todo = await self._find_owned(session, todo_id, user_id)
            return TodoDTO.from_model(todo) if todo else None

    @handle_repository_errors("Todo削除")
    async def delete(self, todo_id: UUID | str, user_id: UUID | str, context: RepositoryContext | None) -> None:
        operated_by = self._operator(context, "delete")

        async with self.database.transaction() as session:
            todo = await self._get_owned_or_raise(session, todo_id, user_id)
            await session.execute(delete(Todo).where(Todo.id == todo.id))
            self._audit(session, todo.id, AuditAction.DELETE, operated_by, context)

        logger.info(f"Todoを削除しました: id={todo_id}, operated_by={operated_by}")

    # =========================================================================
    # 専用更新メソッド
    # =========================================================================

    @handle_repository_errors("Todo内容更新")
    async def update_content(
        self,
        todo_id: UUID | str,
        input: TodoContentPartialUpdate | Mapping[str, Any],
        user_id: UUID | str,
        context: RepositoryContext | None,
    ) -> TodoDTO:
        return await self._apply_update(RepoTodoContentPartialSchema, "update_content", todo_id, input, user_id, context)

    @handle_repository_errors("Todoステータス更新")
    async def update_status(
        self,
        todo_id: UUID | str,
        input: TodoStatusUpdate | Mapping[str, Any],
        user_id: UUID | str,
        context: RepositoryContext | None,
    ) -> TodoDTO:
        return await self._apply_update(RepoTodoStatusSchema, "update_status", todo_id, input, user_id, context)

    @handle_repository_errors("Todoタイトル更新")
    async def update_title(
        self,
        todo_id: UUID | str,
        input: TodoTitleUpdate | Mapping[str, Any],
        user_id: UUID | str,
        context: RepositoryContext | None,
    ) -> TodoDTO:
        return await self._apply_update(RepoTodoTitleSchema, "update_title", todo_id, input, user_id, context)

    @handle_repository_errors("Todo説明更新")
    async def update_description(
        self,
        todo_id: UUID | str,
        input: TodoDescriptionUpdate | Mapping[str, Any],
        user_id: UUID | str,
        context: RepositoryContext | None,
    ) -> TodoDTO:
        return await self._apply_update(
            RepoTodoDescriptionSchema, "update_description", todo_id, input, user_id, context
        )

    @handle_repository_errors("Todo完了状態切り替え")
    async def toggle_completion(
        self, todo_id: UUID | str, user_id: UUID | str, context: RepositoryContext | None
    ) -> TodoDTO:
        # 読み取り→反転→書き込み。同時に切り替えた場合は後勝ち
        operated_by = self._operator(context, "toggle_completion")

        async with self.database.transaction() as session:
            todo = await self._get_owned_or_raise(session, todo_id, user_id)
            todo.completed = not todo.completed
            self._audit(session, todo.id, AuditAction.UPDATE, operated_by, context, {"completed": todo.completed})
            await session.flush()

        logger.info(f"Todoの完了状態を切り替えました: id={todo.id}, completed={todo.completed}")
        return TodoDTO.from_model(todo)

    # =========================================================================
    # 一覧・件数
    # =========================================================================

    @handle_repository_errors("ユーザーのTodo一覧取得")
    async def find_by_user_id(self, user_id: UUID | str, options: TodoListOptions | None = None) -> list[TodoDTO]:
        options = options or TodoListOptions()
        owner_id = safe_uuid_convert(user_id, "user_id")

        stmt = select(Todo).where(Todo.user_id == owner_id)
        if options.include_completed is False:
            stmt = stmt.where(Todo.completed.is_(False))

        stmt = self._order(stmt, Todo, options.sort_by, options.order)
        stmt = self._paginate(stmt, options.skip, options.limit)

        async with self.database.session() as session:
            result = await session.execute(stmt)
            todos = [TodoDTO.from_model(todo) for todo in result.scalars().all()]

        logger.debug(f"ユーザーのTodoを取得しました: user_id={owner_id}, count={len(todos)}")
        return todos

    @handle_repository_errors("ステータス別Todo取得")
    async def find_by_status(self, user_id: UUID | str, completed: bool) -> list[TodoDTO]:
        owner_id = safe_uuid_convert(user_id, "user_id")
        stmt = (
            select(Todo)
            .where(Todo.user_id == owner_id, Todo.completed.is_(completed))
            .order_by(Todo.created_at.desc())
        )

        async with self.database.session() as session:
            result = await session.execute(stmt)
            return [TodoDTO.from_model(todo) for todo in result.scalars().all()]

    @handle_repository_errors("Todo件数取得")
    async def count_by_user_id(self, user_id: UUID | str, completed: bool | None = None) -> int:
        owner_id = safe_uuid_convert(user_id, "user_id")
        stmt = select(func.count()).select_from(Todo).where(Todo.user_id == owner_id)
        if completed is not None:
            stmt = stmt.where(Todo.completed.is_(completed))

        async with self.database.session() as session:
            result = await session.execute(stmt)
            return result.scalar() or 0

    @handle_repository_errors("Todo横断検索")
    async def find_all(self, filter: TodoFilterQuery | None = None) -> list[TodoDTO]:
        filter = filter or TodoFilterQuery()

        stmt = select(Todo)
        if filter.user_id is not None:
            stmt = stmt.where(Todo.user_id == filter.user_id)
        if filter.completed is not None:
            stmt = stmt.where(Todo.completed.is_(filter.completed))
        if filter.title:
            stmt = stmt.where(Todo.title.ilike(f"%{filter.title}%"))

        stmt = self._order(stmt, Todo, filter.sort_by, filter.order)
        stmt = self._paginate(stmt, filter.skip, filter.limit)

        async with self.database.session() as session:
            result = await session.execute(stmt)
            return [TodoDTO.from_model(todo) for todo in result.scalars().all()]

    # =========================================================================
    # 内部ヘルパー
    # =========================================================================

    async def _find_owned(self, session: AsyncSession, todo_id: UUID | str, user_id: UUID | str) -> Todo | None:
        stmt = select(Todo).where(
            Todo.id == safe_uuid_convert(todo_id, "todo_id"),
            Todo.user_id == safe_uuid_convert(user_id, "user_id"),
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def _get_owned_or_raise(self, session: AsyncSession, todo_id: UUID | str, user_id: UUID | str) -> Todo:
        todo = await self._find_owned(session, todo_id, user_id)
        if todo is None:
            raise NotFoundError(ErrorMessages.TODO_NOT_FOUND_OR_NOT_OWNED, details={"todo_id": str(todo_id)})
        return todo

    async def _apply_update(
        self,
        schema: PayloadSchema[Any],
        operation: str,
        todo_id: UUID | str,
        input: Mapping[str, Any],
        user_id: UUID | str,
        context: RepositoryContext | None,
    ) -> TodoDTO:
        """検証済みペイロードのフィールドだけを書き込む"""
        payload = schema.parse(input)
        operated_by = self._operator(context, operation)

        async with self.database.transaction() as session:
            todo = await self._get_owned_or_raise(session, todo_id, user_id)
            for field, value in payload.items():
                setattr(todo, field, value)
            self._audit(session, todo.id, AuditAction.UPDATE, operated_by, context, dict(payload))
            await session.flush()

        logger.info(f"Todoを更新しました: id={todo.id}, fields={sorted(payload)}, operated_by={operated_by}")
        return TodoDTO.from_model(todo)
