"""Todoサービス層

Todoのビジネスロジックを提供
"""

import asyncio
import logging
from typing import Any
from uuid import UUID

from todoapp.core.constants import ErrorMessages, TodoConstants
from todoapp.core.context import RepositoryContext
from todoapp.core.exceptions import NotFoundError, ValidationError
from todoapp.dtos.todo import TodoDTO, TodoStatsDTO
from todoapp.repositories.todo import TodoRepositoryInterface
from todoapp.schemas.todo import TodoCreateRequest, TodoFilterQuery, TodoListOptions, TodoUpdateRequest

logger = logging.getLogger(__name__)


class TodoService:
    """Todoサービス

    入力の業務検証と、更新内容に応じた専用メソッドへの振り分けを担う
    永続化・所有者チェックはリポジトリ層で実施
    """

    def __init__(self, repository: TodoRepositoryInterface) -> None:
        self.repository = repository

    async def create_todo(
        self, user_id: UUID | str, request: TodoCreateRequest, context: RepositoryContext | None = None
    ) -> TodoDTO:
        """Todoを作成

        Args:
            user_id: 所有者ID
            request: 作成リクエスト
            context: 操作コンテキスト（未指定時は所有者本人の操作として扱う）

        Returns:
            作成されたTodoDTO

        Raises:
            ValidationError: タイトル・説明が不正な場合
        """
        title = self._validate_title(request.title)
        description = self._validate_description(request.description)

        payload: dict[str, Any] = {"title": title, "user_id": user_id}
        if description is not None:
            payload["description"] = description

        return await self.repository.create(payload, context or RepositoryContext.for_user(user_id))

    async def get_todos(self, user_id: UUID | str, options: TodoListOptions | None = None) -> list[TodoDTO]:
        """ユーザーのTodo一覧を取得"""
        return await self.repository.find_by_user_id(user_id, options)

    async def get_todo_by_id(self, todo_id: UUID | str, user_id: UUID | str) -> TodoDTO | None:
        """Todoを取得（存在しない・他人のTodoは None）"""
        return await self.repository.find_by_id(todo_id, user_id)

    async def get_all_todos(self, filter: TodoFilterQuery | None = None) -> list[TodoDTO]:
        """全ユーザーのTodoを横断検索（管理者用）"""
        return await self.repository.find_all(filter)

    async def update_todo(
        self,
        todo_id: UUID | str,
        user_id: UUID | str,
        request: TodoUpdateRequest,
        context: RepositoryContext | None = None,
    ) -> TodoDTO:
        """Todoを更新

        リクエストに含まれるフィールドに応じて専用の更新メソッドだけを呼び出す
        - title / description → update_content
        - completed → update_status

        Args:
            todo_id: TodoID
            user_id: 所有者ID
            request: 更新リクエスト
            context: 操作コンテキスト

        Returns:
            更新後のTodoDTO

        Raises:
            NotFoundError: Todoが存在しない、または所有者でない場合
            ValidationError: 入力値が不正な場合
        """
        context = context or RepositoryContext.for_user(user_id)

        existing = await self.repository.find_by_id(todo_id, user_id)
        if existing is None:
            raise NotFoundError(ErrorMessages.TODO_NOT_FOUND, details={"todo_id": str(todo_id)})

        content: dict[str, Any] = {}
        if "title" in request.model_fields_set:
            content["title"] = self._validate_title(request.title)
        if "description" in request.model_fields_set:
            content["description"] = self._validate_description(request.description)

        updated = existing
        if request.has_content_changes:
            updated = await self.repository.update_content(todo_id, content, user_id, context)
        if request.has_status_change:
            updated = await self.repository.update_status(
                todo_id, {"completed": request.completed}, user_id, context
            )

        if updated is existing:
            logger.debug(f"更新対象のフィールドがありません: todo_id={todo_id}")
        return updated

    async def toggle_todo(
        self, todo_id: UUID | str, user_id: UUID | str, context: RepositoryContext | None = None
    ) -> TodoDTO:
        """完了状態を切り替え"""
        return await self.repository.toggle_completion(
            todo_id, user_id, context or RepositoryContext.for_user(user_id)
        )

    async def delete_todo(
        self, todo_id: UUID | str, user_id: UUID | str, context: RepositoryContext | None = None
    ) -> None:
        """Todoを削除

        Raises:
            NotFoundError: Todoが存在しない、または所有者でない場合
        """
        await self.repository.delete(todo_id, user_id, context or RepositoryContext.for_user(user_id))

    async def get_todo_stats(self, user_id: UUID | str) -> TodoStatsDTO:
        """Todo統計を取得

        総件数と完了件数を並行して取得し、未完了件数は差分で算出する
        """
        total, completed = await asyncio.gather(
            self.repository.count_by_user_id(user_id),
            self.repository.count_by_user_id(user_id, completed=True),
        )
        return TodoStatsDTO.from_counts(total, completed)

    # =========================================================================
    # 入力検証
    # =========================================================================

    @staticmethod
    def _validate_title(title: Any) -> str:
        if not isinstance(title, str) or not title.strip():
            raise ValidationError(
                ErrorMessages.TODO_TITLE_REQUIRED,
                details={"errors": [{"field": "title", "message": ErrorMessages.TODO_TITLE_REQUIRED}]},
            )

        title = title.strip()
        if len(title) > TodoConstants.TITLE_MAX_LENGTH:
            raise ValidationError(
                ErrorMessages.TODO_TITLE_TOO_LONG,
                details={"errors": [{"field": "title", "message": ErrorMessages.TODO_TITLE_TOO_LONG}]},
            )
        return title

    @staticmethod
    def _validate_description(description: Any) -> str | None:
        if description is None:
            return None
        if not isinstance(description, str):
            raise ValidationError(
                ErrorMessages.VALIDATION_ERROR,
                details={"errors": [{"field": "description", "message": ErrorMessages.VALIDATION_ERROR}]},
            )

        description = description.strip()
        if len(description) > TodoConstants.DESCRIPTION_MAX_LENGTH:
            raise ValidationError(
                ErrorMessages.TODO_DESCRIPTION_TOO_LONG,
                details={"errors": [{"field": "description", "message": ErrorMessages.TODO_DESCRIPTION_TOO_LONG}]},
            )
        return description or None
