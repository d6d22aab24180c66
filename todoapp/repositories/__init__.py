"""リポジトリパッケージ

データアクセス層の抽象化を提供
入力の検証・所有者スコープ・監査ログをカプセル化し、ビジネスロジックとの分離を実現
"""

from todoapp.repositories.audit import AuditLogRepository, AuditLogRepositoryInterface
from todoapp.repositories.role import RoleRepository, RoleRepositoryInterface
from todoapp.repositories.todo import TodoRepository, TodoRepositoryInterface
from todoapp.repositories.user import AuthProviderUserRepository, UserRepository, UserRepositoryInterface

__all__ = [
    # Interfaces
    "TodoRepositoryInterface",
    "UserRepositoryInterface",
    "RoleRepositoryInterface",
    "AuditLogRepositoryInterface",
    # Implementations
    "TodoRepository",
    "UserRepository",
    "AuthProviderUserRepository",
    "RoleRepository",
    "AuditLogRepository",
]
