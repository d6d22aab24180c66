"""ユーザー関連のPydanticスキーマ

ユーザーの作成、更新、応答、一覧取得クエリのスキーマを提供
"""

from datetime import datetime
from typing import ClassVar, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from todoapp.core.constants import UserConstants
from todoapp.schemas.todo import SortOrder

UserSortField = Literal["created_at", "updated_at", "name", "email"]


class UserCreateRequest(BaseModel):
    """ユーザー作成リクエストスキーマ

    roles を省略した場合はデフォルトロール（最小権限）が付与される
    """

    email: EmailStr = Field(..., description="メールアドレス", examples=["user@example.com"])
    name: str = Field(..., description="表示名", examples=["山田太郎"])
    roles: list[str] | None = Field(None, description="ロール名のリスト", examples=[["user"]])
    bio: str | None = Field(None, description="自己紹介")
    avatar: str | None = Field(None, description="アバター画像URL")
    website: str | None = Field(None, description="WebサイトURL")


class UserUpdateRequest(BaseModel):
    """ユーザー更新リクエストスキーマ（部分更新対応）

    指定されたフィールドに対応する専用更新だけが実行される
    """

    name: str | None = Field(None, description="表示名")
    bio: str | None = Field(None, description="自己紹介")
    avatar: str | None = Field(None, description="アバター画像URL")
    website: str | None = Field(None, description="WebサイトURL")
    roles: list[str] | None = Field(None, description="ロール名のリスト（完全置換）")
    is_active: bool | None = Field(None, description="アカウント有効フラグ")

    BASIC_INFO_FIELDS: ClassVar[frozenset[str]] = frozenset({"name", "bio", "avatar", "website"})

    def basic_info_changes(self) -> dict:
        """指定された基本情報フィールドだけを返す"""
        return {key: getattr(self, key) for key in self.model_fields_set & self.BASIC_INFO_FIELDS}


class UserProfileUpdateRequest(BaseModel):
    """プロフィール更新リクエストスキーマ（本人用）"""

    name: str | None = Field(None, description="表示名")
    bio: str | None = Field(None, description="自己紹介")
    avatar: str | None = Field(None, description="アバター画像URL")
    website: str | None = Field(None, description="WebサイトURL")


class EmailChangeRequest(BaseModel):
    """メールアドレス変更リクエスト"""

    email: EmailStr = Field(..., description="新しいメールアドレス")


class UserResponse(BaseModel):
    """ユーザー応答スキーマ"""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="ユーザーID")
    email: str = Field(..., description="メールアドレス")
    name: str = Field(..., description="表示名")
    roles: list[str] = Field(default_factory=list, description="ロール名のリスト")
    bio: str | None = Field(None, description="自己紹介")
    avatar: str | None = Field(None, description="アバター画像URL")
    website: str | None = Field(None, description="WebサイトURL")
    is_active: bool = Field(..., description="アカウント有効フラグ")
    email_verified: bool = Field(..., description="メールアドレス認証済みフラグ")
    created_at: datetime = Field(..., description="作成日時")
    updated_at: datetime = Field(..., description="更新日時")


class UserFilterQuery(BaseModel):
    """ユーザー一覧取得クエリ"""

    email: str | None = Field(None, min_length=1, max_length=UserConstants.EMAIL_MAX_LENGTH, description="メール部分一致")
    roles: list[str] | None = Field(None, description="いずれかのロールを持つユーザー")
    is_active: bool | None = Field(None, description="有効状態で絞り込み")
    limit: int = Field(
        default=UserConstants.LIST_DEFAULT_LIMIT, ge=1, le=UserConstants.LIST_MAX_LIMIT, description="取得件数"
    )
    skip: int = Field(default=0, ge=0, description="スキップ件数")
    sort_by: UserSortField = Field(default="created_at", description="ソートフィールド")
    order: SortOrder = Field(default="desc", description="ソート順序")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        return v.strip().lower() if v else None


class UserListResponse(BaseModel):
    """ユーザー一覧応答スキーマ"""

    items: list[UserResponse] = Field(..., description="ユーザー一覧")
    total: int = Field(..., description="条件に一致する総件数")
