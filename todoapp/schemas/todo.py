"""Todo関連のPydanticスキーマ

API・サービス層のリクエスト/レスポンス、一覧取得オプションを提供
入力値の詳細な検証（トリム・必須・文字数）はサービス層とリポジトリ層で行う
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from todoapp.core.constants import APIConstants, TodoConstants

SortOrder = Literal["asc", "desc"]
TodoSortField = Literal["created_at", "updated_at", "title", "completed"]


class TodoCreateRequest(BaseModel):
    """Todo作成リクエストスキーマ"""

    title: str = Field(..., description="タイトル", examples=["牛乳を買う"])

    description: str | None = Field(
        None,
        description=f"詳細説明（{TodoConstants.DESCRIPTION_MAX_LENGTH}文字以内）",
        examples=["低脂肪のもの"],
    )


class TodoUpdateRequest(BaseModel):
    """Todo更新リクエストスキーマ（部分更新対応）

    指定されたフィールドだけが更新される
    """

    title: str | None = Field(None, description="タイトル")
    description: str | None = Field(None, description="詳細説明（nullで削除）")
    completed: bool | None = Field(None, description="完了フラグ")

    @property
    def has_content_changes(self) -> bool:
        return bool({"title", "description"} & self.model_fields_set)

    @property
    def has_status_change(self) -> bool:
        return "completed" in self.model_fields_set and self.completed is not None


class TodoResponse(BaseModel):
    """Todo応答スキーマ"""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="TodoID")
    user_id: UUID = Field(..., description="所有者ID")
    title: str = Field(..., description="タイトル")
    description: str | None = Field(None, description="詳細説明")
    completed: bool = Field(..., description="完了フラグ")
    created_at: datetime = Field(..., description="作成日時")
    updated_at: datetime = Field(..., description="更新日時")


class TodoStatsResponse(BaseModel):
    """Todo統計応答スキーマ"""

    model_config = ConfigDict(from_attributes=True)

    total: int = Field(..., description="総件数")
    completed: int = Field(..., description="完了件数")
    pending: int = Field(..., description="未完了件数")


class TodoListOptions(BaseModel):
    """ユーザーのTodo一覧取得オプション

    include_completed が False の場合のみ完了済みを除外する
    """

    include_completed: bool | None = Field(None, description="完了済みを含めるか")
    limit: int | None = Field(
        None, ge=APIConstants.MIN_PAGE_SIZE, le=APIConstants.MAX_PAGE_SIZE, description="取得件数"
    )
    skip: int | None = Field(None, ge=0, description="スキップ件数")
    sort_by: TodoSortField = Field(default="created_at", description="ソートフィールド")
    order: SortOrder = Field(default="desc", description="ソート順序")


class TodoFilterQuery(BaseModel):
    """Todo横断検索クエリ（管理者用）"""

    user_id: UUID | None = Field(None, description="所有者IDで絞り込み")
    completed: bool | None = Field(None, description="完了状態で絞り込み")
    title: str | None = Field(None, min_length=1, max_length=TodoConstants.TITLE_MAX_LENGTH, description="タイトル部分一致")
    limit: int = Field(
        default=APIConstants.DEFAULT_PAGE_SIZE,
        ge=APIConstants.MIN_PAGE_SIZE,
        le=APIConstants.MAX_PAGE_SIZE,
        description="取得件数",
    )
    skip: int = Field(default=0, ge=0, description="スキップ件数")
    sort_by: TodoSortField = Field(default="created_at", description="ソートフィールド")
    order: SortOrder = Field(default="desc", description="ソート順序")
