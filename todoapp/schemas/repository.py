"""リポジトリ変更操作の検証スキーマ

各スキーマは matches() でペイロード型と結び付けられており、
フィールドがずれるとインポート時に TypeError になる
"""

from typing import Self
from urllib.parse import urlparse
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from todoapp.core.constants import ErrorMessages, RoleConstants, TodoConstants, UserConstants
from todoapp.schemas.payloads import (
    RoleBasicInfoPartialUpdate,
    RoleBasicInfoUpdate,
    RoleCreateInput,
    RoleDescriptionUpdate,
    RoleNameUpdate,
    TodoContentPartialUpdate,
    TodoCreateInput,
    TodoDescriptionUpdate,
    TodoStatusUpdate,
    TodoTitleUpdate,
    UserAvatarUpdate,
    UserBasicInfoUpdate,
    UserBioUpdate,
    UserCreateInput,
    UserEmailUpdate,
    UserNameUpdate,
    UserProfileUpdate,
    UserRoleAssignment,
    UserRolesBulkUpdate,
    UserRolesSet,
    UserRolesUpdate,
    UserStatusUpdate,
    UserWebsiteUpdate,
)
from todoapp.utils.validation import matches

NO_FIELDS_TO_UPDATE = "更新するフィールドを1つ以上指定してください"


# =============================================================================
# 共通バリデーション関数
# =============================================================================


def _required_text(v: str, max_length: int, required_message: str, too_long_message: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(required_message)
    if len(v) > max_length:
        raise ValueError(too_long_message)
    return v


def _optional_text(v: str | None, max_length: int, too_long_message: str) -> str | None:
    if v is None:
        return None
    v = v.strip()
    if len(v) > max_length:
        raise ValueError(too_long_message)
    return v or None


def _optional_url(v: str | None) -> str | None:
    v = _optional_text(v, UserConstants.URL_MAX_LENGTH, ErrorMessages.URL_TOO_LONG)
    if v is None:
        return None
    parsed = urlparse(v)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("有効なURL（http/https）を入力してください")
    return v


def _role_names(v: list[str]) -> list[str]:
    names = []
    for name in v:
        name = name.strip()
        if not name:
            raise ValueError(ErrorMessages.ROLE_NAME_REQUIRED)
        if len(name) > RoleConstants.NAME_MAX_LENGTH:
            raise ValueError(ErrorMessages.ROLE_NAME_TOO_LONG)
        names.append(name)
    # 重複を除去（順序は維持）
    return list(dict.fromkeys(names))


class RepositoryPayloadModel(BaseModel):
    """リポジトリペイロード検証モデルの基底クラス"""

    model_config = ConfigDict(extra="forbid")


class PartialPayloadModel(RepositoryPayloadModel):
    """部分更新用の基底クラス（最低1フィールドの指定が必要）"""

    @model_validator(mode="after")
    def require_any_field(self) -> Self:
        if not self.model_fields_set:
            raise ValueError(NO_FIELDS_TO_UPDATE)
        return self


# =============================================================================
# Todo
# =============================================================================


class TodoFieldsMixin(BaseModel):
    @field_validator("title", check_fields=False)
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _required_text(
            v, TodoConstants.TITLE_MAX_LENGTH, ErrorMessages.TODO_TITLE_REQUIRED, ErrorMessages.TODO_TITLE_TOO_LONG
        )

    @field_validator("description", check_fields=False)
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        return _optional_text(v, TodoConstants.DESCRIPTION_MAX_LENGTH, ErrorMessages.TODO_DESCRIPTION_TOO_LONG)


class RepoTodoCreateModel(TodoFieldsMixin, RepositoryPayloadModel):
    title: str
    description: str | None = None
    user_id: UUID


class RepoTodoContentPartialModel(TodoFieldsMixin, PartialPayloadModel):
    title: str = ""
    description: str | None = None


class RepoTodoStatusModel(RepositoryPayloadModel):
    completed: bool = Field(..., strict=True)


class RepoTodoTitleModel(TodoFieldsMixin, RepositoryPayloadModel):
    title: str


class RepoTodoDescriptionModel(TodoFieldsMixin, RepositoryPayloadModel):
    description: str | None


RepoTodoCreateSchema = matches(TodoCreateInput)(RepoTodoCreateModel)
RepoTodoContentPartialSchema = matches(TodoContentPartialUpdate)(RepoTodoContentPartialModel)
RepoTodoStatusSchema = matches(TodoStatusUpdate)(RepoTodoStatusModel)
RepoTodoTitleSchema = matches(TodoTitleUpdate)(RepoTodoTitleModel)
RepoTodoDescriptionSchema = matches(TodoDescriptionUpdate)(RepoTodoDescriptionModel)


# =============================================================================
# ユーザー
# =============================================================================


class UserFieldsMixin(BaseModel):
    @field_validator("name", check_fields=False)
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _required_text(
            v, UserConstants.NAME_MAX_LENGTH, ErrorMessages.NAME_REQUIRED, ErrorMessages.NAME_TOO_LONG
        )

    @field_validator("bio", check_fields=False)
    @classmethod
    def validate_bio(cls, v: str | None) -> str | None:
        return _optional_text(v, UserConstants.BIO_MAX_LENGTH, ErrorMessages.BIO_TOO_LONG)

    @field_validator("avatar", "website", check_fields=False)
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        return _optional_url(v)

    @field_validator("email", check_fields=False)
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("roles", check_fields=False)
    @classmethod
    def validate_roles(cls, v: list[str]) -> list[str]:
        names = _role_names(v)
        if not names:
            raise ValueError(ErrorMessages.ROLES_REQUIRED)
        return names


class RepoUserCreateModel(UserFieldsMixin, RepositoryPayloadModel):
    email: EmailStr
    name: str
    roles: list[str] = Field(default_factory=lambda: list(UserConstants.DEFAULT_ROLES), min_length=1)
    bio: str | None = None
    avatar: str | None = None
    website: str | None = None
    is_active: bool = True


class RepoUserBasicInfoModel(UserFieldsMixin, PartialPayloadModel):
    name: str = ""
    bio: str | None = None
    avatar: str | None = None
    website: str | None = None


class RepoUserProfileModel(UserFieldsMixin, PartialPayloadModel):
    name: str = ""
    bio: str | None = None
    avatar: str | None = None
    website: str | None = None
    email_verified: bool = False


class RepoUserRolesModel(UserFieldsMixin, RepositoryPayloadModel):
    roles: list[str] = Field(..., min_length=1)


class RepoUserEmailModel(UserFieldsMixin, RepositoryPayloadModel):
    email: EmailStr


class RepoUserStatusModel(RepositoryPayloadModel):
    is_active: bool = Field(..., strict=True)


class RepoUserNameModel(UserFieldsMixin, RepositoryPayloadModel):
    name: str


class RepoUserBioModel(UserFieldsMixin, RepositoryPayloadModel):
    bio: str | None


class RepoUserAvatarModel(UserFieldsMixin, RepositoryPayloadModel):
    avatar: str | None


class RepoUserWebsiteModel(UserFieldsMixin, RepositoryPayloadModel):
    website: str | None


RepoUserCreateSchema = matches(UserCreateInput)(RepoUserCreateModel)
RepoUserBasicInfoSchema = matches(UserBasicInfoUpdate)(RepoUserBasicInfoModel)
RepoUserProfileSchema = matches(UserProfileUpdate)(RepoUserProfileModel)
RepoUserRolesSchema = matches(UserRolesUpdate)(RepoUserRolesModel)
RepoUserEmailSchema = matches(UserEmailUpdate)(RepoUserEmailModel)
RepoUserStatusSchema = matches(UserStatusUpdate)(RepoUserStatusModel)
RepoUserNameSchema = matches(UserNameUpdate)(RepoUserNameModel)
RepoUserBioSchema = matches(UserBioUpdate)(RepoUserBioModel)
RepoUserAvatarSchema = matches(UserAvatarUpdate)(RepoUserAvatarModel)
RepoUserWebsiteSchema = matches(UserWebsiteUpdate)(RepoUserWebsiteModel)


# =============================================================================
# ロール
# =============================================================================


class RoleFieldsMixin(BaseModel):
    @field_validator("name", check_fields=False)
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _required_text(
            v, RoleConstants.NAME_MAX_LENGTH, ErrorMessages.ROLE_NAME_REQUIRED, ErrorMessages.ROLE_NAME_TOO_LONG
        )

    @field_validator("description", check_fields=False)
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        return _optional_text(v, RoleConstants.DESCRIPTION_MAX_LENGTH, ErrorMessages.ROLE_DESCRIPTION_TOO_LONG)

    @field_validator("role_names", check_fields=False)
    @classmethod
    def validate_role_names(cls, v: list[str]) -> list[str]:
        return _role_names(v)

    @field_validator("role_ids", check_fields=False)
    @classmethod
    def dedupe_role_ids(cls, v: list[UUID]) -> list[UUID]:
        return list(dict.fromkeys(v))


class RepoRoleCreateModel(RoleFieldsMixin, RepositoryPayloadModel):
    name: str
    description: str | None = None


class RepoRoleBasicInfoModel(RoleFieldsMixin, RepositoryPayloadModel):
    name: str
    description: str | None


class RepoRoleBasicInfoPartialModel(RoleFieldsMixin, PartialPayloadModel):
    name: str = ""
    description: str | None = None


class RepoRoleNameModel(RoleFieldsMixin, RepositoryPayloadModel):
    name: str


class RepoRoleDescriptionModel(RoleFieldsMixin, RepositoryPayloadModel):
    description: str | None


class RepoUserRoleAssignmentModel(RepositoryPayloadModel):
    user_id: UUID
    role_id: UUID


class RepoUserRolesSetModel(RoleFieldsMixin, RepositoryPayloadModel):
    user_id: UUID
    role_names: list[str]


class RepoUserRolesBulkModel(RoleFieldsMixin, RepositoryPayloadModel):
    user_id: UUID
    role_ids: list[UUID]


RepoRoleCreateSchema = matches(RoleCreateInput)(RepoRoleCreateModel)
RepoRoleBasicInfoSchema = matches(RoleBasicInfoUpdate)(RepoRoleBasicInfoModel)
RepoRoleBasicInfoPartialSchema = matches(RoleBasicInfoPartialUpdate)(RepoRoleBasicInfoPartialModel)
RepoRoleNameSchema = matches(RoleNameUpdate)(RepoRoleNameModel)
RepoRoleDescriptionSchema = matches(RoleDescriptionUpdate)(RepoRoleDescriptionModel)
RepoUserRoleAssignmentSchema = matches(UserRoleAssignment)(RepoUserRoleAssignmentModel)
RepoUserRolesSetSchema = matches(UserRolesSet)(RepoUserRolesSetModel)
RepoUserRolesBulkSchema = matches(UserRolesBulkUpdate)(RepoUserRolesBulkModel)
