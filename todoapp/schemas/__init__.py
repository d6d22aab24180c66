"""スキーマパッケージ

Pydanticスキーマを提供
"""

from todoapp.schemas.role import RoleFilterQuery, UserRoleFilterQuery
from todoapp.schemas.todo import (
    TodoCreateRequest,
    TodoFilterQuery,
    TodoListOptions,
    TodoResponse,
    TodoStatsResponse,
    TodoUpdateRequest,
)
from todoapp.schemas.user import (
    EmailChangeRequest,
    UserCreateRequest,
    UserFilterQuery,
    UserListResponse,
    UserProfileUpdateRequest,
    UserResponse,
    UserUpdateRequest,
)

__all__ = [
    "EmailChangeRequest",
    "RoleFilterQuery",
    "TodoCreateRequest",
    "TodoFilterQuery",
    "TodoListOptions",
    "TodoResponse",
    "TodoStatsResponse",
    "TodoUpdateRequest",
    "UserCreateRequest",
    "UserFilterQuery",
    "UserListResponse",
    "UserProfileUpdateRequest",
    "UserResponse",
    "UserRoleFilterQuery",
    "UserUpdateRequest",
]
