"""ユーザー-ロール中間テーブルモデル

ユーザーとロールの多対多関係を管理
"""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from todoapp.models.base import Base

# 循環インポート回避のための型チェック時
if TYPE_CHECKING:
    from todoapp.models.role import Role  # noqa: F401
    from todoapp.models.user import User  # noqa: F401


class UserRole(Base):
    """ユーザー-ロール中間テーブルモデル

    - 重複関連の防止
    - ユーザー・ロールどちらの削除でもカスケード削除
    """

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, comment="ユーザーID"
    )

    role_id: Mapped[UUID] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, comment="ロールID"
    )

    # リレーション定義（Repository パターンでクエリを組み立てるため、デフォルトは遅延読み込み）
    user: Mapped["User"] = relationship("User", back_populates="user_roles", lazy="select")

    role: Mapped["Role"] = relationship("Role", back_populates="user_roles", lazy="select")

    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),
        Index("ix_user_roles_user_id", "user_id"),
        Index("ix_user_roles_role_id", "role_id"),
    )

    @classmethod
    def create_association(cls, user_id: UUID, role_id: UUID) -> "UserRole":
        """ユーザーとロールの関連付けを作成"""
        return cls(user_id=user_id, role_id=role_id)

    def __repr__(self) -> str:
        return f"<UserRole(user_id={self.user_id}, role_id={self.role_id})>"
