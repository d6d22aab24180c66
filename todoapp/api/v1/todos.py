"""Todo APIエンドポイント

Todoの作成、取得、更新、削除のREST APIを提供
ドメイン例外はアプリケーションの例外ハンドラーでHTTP応答に変換される
"""

# FastAPIの依存注入システム（Depends, Query）はLint警告の対象外とする
# ruff: noqa: B008

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi import status as http_status

from todoapp.core.constants import APIConstants, ErrorMessages
from todoapp.core.context import RepositoryContext
from todoapp.core.dependencies import get_current_user, get_todo_service, require_admin
from todoapp.core.exceptions import NotFoundError
from todoapp.dtos.user import UserDTO
from todoapp.schemas.todo import (
    SortOrder,
    TodoCreateRequest,
    TodoFilterQuery,
    TodoListOptions,
    TodoResponse,
    TodoSortField,
    TodoStatsResponse,
    TodoUpdateRequest,
)
from todoapp.services.todo import TodoService

router = APIRouter()


@router.get("/", response_model=list[TodoResponse])
async def get_todos(
    *,
    current_user: UserDTO = Depends(get_current_user),
    todo_service: TodoService = Depends(get_todo_service),
    include_completed: bool | None = Query(default=None, description="完了済みを含めるか"),
    limit: int | None = Query(
        default=None, ge=APIConstants.MIN_PAGE_SIZE, le=APIConstants.MAX_PAGE_SIZE, description="取得件数"
    ),
    skip: int | None = Query(default=None, ge=0, description="スキップ件数"),
    sort_by: TodoSortField = Query(default="created_at", description="ソートフィールド"),
    order: SortOrder = Query(default="desc", description="ソート順序（asc/desc）"),
) -> list[TodoResponse]:
    """自分のTodo一覧を取得"""
    options = TodoListOptions(
        include_completed=include_completed, limit=limit, skip=skip, sort_by=sort_by, order=order
    )
    todos = await todo_service.get_todos(current_user.id, options)
    return [TodoResponse.model_validate(todo) for todo in todos]


@router.post("/", response_model=TodoResponse, status_code=http_status.HTTP_201_CREATED)
async def create_todo(
    *,
    current_user: UserDTO = Depends(get_current_user),
    todo_service: TodoService = Depends(get_todo_service),
    todo_in: TodoCreateRequest,
) -> TodoResponse:
    """Todoを作成"""
    todo = await todo_service.create_todo(current_user.id, todo_in)
    return TodoResponse.model_validate(todo)


@router.get("/stats", response_model=TodoStatsResponse)
async def get_todo_stats(
    *,
    current_user: UserDTO = Depends(get_current_user),
    todo_service: TodoService = Depends(get_todo_service),
) -> TodoStatsResponse:
    """自分のTodo統計を取得"""
    stats = await todo_service.get_todo_stats(current_user.id)
    return TodoStatsResponse.model_validate(stats)


@router.get("/admin/all", response_model=list[TodoResponse])
async def get_all_todos(
    *,
    _admin: UserDTO = Depends(require_admin),
    todo_service: TodoService = Depends(get_todo_service),
    user_id: UUID | None = Query(default=None, description="所有者IDで絞り込み"),
    completed: bool | None = Query(default=None, description="完了状態で絞り込み"),
    title: str | None = Query(default=None, min_length=1, description="タイトル部分一致"),
    limit: int = Query(
        default=APIConstants.DEFAULT_PAGE_SIZE,
        ge=APIConstants.MIN_PAGE_SIZE,
        le=APIConstants.MAX_PAGE_SIZE,
        description="取得件数",
    ),
    skip: int = Query(default=0, ge=0, description="スキップ件数"),
) -> list[TodoResponse]:
    """全ユーザーのTodoを横断検索（管理者のみ）"""
    query = TodoFilterQuery(user_id=user_id, completed=completed, title=title, limit=limit, skip=skip)
    todos = await todo_service.get_all_todos(query)
    return [TodoResponse.model_validate(todo) for todo in todos]


@router.get("/{todo_id}", response_model=TodoResponse)
async def get_todo(
    *,
    current_user: UserDTO = Depends(get_current_user),
    todo_service: TodoService = Depends(get_todo_service),
    todo_id: UUID,
) -> TodoResponse:
    """特定のTodoを取得"""
    todo = await todo_service.get_todo_by_id(todo_id, current_user.id)
    if todo is None:
        raise NotFoundError(ErrorMessages.TODO_NOT_FOUND, details={"todo_id": str(todo_id)})
    return TodoResponse.model_validate(todo)


@router.patch("/{todo_id}", response_model=TodoResponse)
async def update_todo(
    *,
    current_user: UserDTO = Depends(get_current_user),
    todo_service: TodoService = Depends(get_todo_service),
    todo_id: UUID,
    todo_in: TodoUpdateRequest,
) -> TodoResponse:
    """Todoを更新（指定されたフィールドのみ）"""
    todo = await todo_service.update_todo(
        todo_id, current_user.id, todo_in, RepositoryContext.for_user(current_user.id)
    )
    return TodoResponse.model_validate(todo)


@router.post("/{todo_id}/toggle", response_model=TodoResponse)
async def toggle_todo(
    *,
    current_user: UserDTO = Depends(get_current_user),
    todo_service: TodoService = Depends(get_todo_service),
    todo_id: UUID,
) -> TodoResponse:
    """完了状態を切り替え"""
    todo = await todo_service.toggle_todo(todo_id, current_user.id)
    return TodoResponse.model_validate(todo)


@router.delete("/{todo_id}", status_code=http_status.HTTP_204_NO_CONTENT)
async def delete_todo(
    *,
    current_user: UserDTO = Depends(get_current_user),
    todo_service: TodoService = Depends(get_todo_service),
    todo_id: UUID,
) -> None:
    """Todoを削除"""
    await todo_service.delete_todo(todo_id, current_user.id)
