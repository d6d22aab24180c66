"""リポジトリ変更操作のペイロード型

各変更操作が受け取るフィールドだけを持つ狭い型
対応する検証スキーマは todoapp.schemas.repository で matches() により結び付けられる
"""

from typing import NotRequired, TypedDict
from uuid import UUID

from pydantic import EmailStr

# =============================================================================
# Todo
# =============================================================================


class TodoCreateInput(TypedDict):
    title: str
    description: NotRequired[str | None]
    user_id: UUID


class TodoContentPartialUpdate(TypedDict, total=False):
    title: str
    description: str | None


class TodoStatusUpdate(TypedDict):
    completed: bool


class TodoTitleUpdate(TypedDict):
    title: str


class TodoDescriptionUpdate(TypedDict):
    description: str | None


# =============================================================================
# ユーザー
# =============================================================================


class UserCreateInput(TypedDict):
    email: EmailStr
    name: str
    roles: NotRequired[list[str]]
    bio: NotRequired[str | None]
    avatar: NotRequired[str | None]
    website: NotRequired[str | None]
    is_active: NotRequired[bool]


class UserBasicInfoUpdate(TypedDict, total=False):
    name: str
    bio: str | None
    avatar: str | None
    website: str | None


class UserProfileUpdate(TypedDict, total=False):
    name: str
    bio: str | None
    avatar: str | None
    website: str | None
    email_verified: bool


class UserRolesUpdate(TypedDict):
    roles: list[str]


class UserEmailUpdate(TypedDict):
    email: EmailStr


class UserStatusUpdate(TypedDict):
    is_active: bool


class UserNameUpdate(TypedDict):
    name: str


class UserBioUpdate(TypedDict):
    bio: str | None


class UserAvatarUpdate(TypedDict):
    avatar: str | None


class UserWebsiteUpdate(TypedDict):
    website: str | None


# =============================================================================
# ロール
# =============================================================================


class RoleCreateInput(TypedDict):
    name: str
    description: NotRequired[str | None]


class RoleBasicInfoUpdate(TypedDict):
    name: str
    description: str | None


class RoleBasicInfoPartialUpdate(TypedDict, total=False):
    name: str
    description: str | None


class RoleNameUpdate(TypedDict):
    name: str


class RoleDescriptionUpdate(TypedDict):
    description: str | None


class UserRoleAssignment(TypedDict):
    user_id: UUID
    role_id: UUID


class UserRolesSet(TypedDict):
    user_id: UUID
    role_names: list[str]


class UserRolesBulkUpdate(TypedDict):
    user_id: UUID
    role_ids: list[UUID]
