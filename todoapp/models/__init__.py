"""モデルパッケージ

すべてのSQLAlchemyモデルをインポートするためのエントリーポイント
"""

from todoapp.models.audit_log import AuditLog
from todoapp.models.base import Base
from todoapp.models.role import Role
from todoapp.models.todo import Todo
from todoapp.models.user import User
from todoapp.models.user_role import UserRole

__all__ = [
    "Base",
    "User",
    "Todo",
    "Role",
    "UserRole",
    "AuditLog",
]
