"""ロール関連のPydanticスキーマ"""

from pydantic import BaseModel, Field

from todoapp.core.constants import APIConstants, RoleConstants


class RoleFilterQuery(BaseModel):
    """ロール一覧取得クエリ"""

    name: str | None = Field(None, min_length=1, max_length=RoleConstants.NAME_MAX_LENGTH, description="名前部分一致")
    limit: int = Field(default=APIConstants.MAX_PAGE_SIZE, ge=1, le=APIConstants.MAX_PAGE_SIZE, description="取得件数")
    skip: int = Field(default=0, ge=0, description="スキップ件数")


class UserRoleFilterQuery(BaseModel):
    """ロールによるユーザー検索クエリ

    has_all_roles が True の場合は全ロールを持つユーザー、False の場合はいずれかを持つユーザー
    """

    role_names: list[str] = Field(default_factory=list, description="ロール名のリスト")
    has_all_roles: bool = Field(default=False, description="全ロールを要求するか")
