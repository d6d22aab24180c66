"""Todoモデル

ユーザーごとのTodo項目を管理
"""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from todoapp.core.constants import ErrorMessages, TodoConstants
from todoapp.models.base import Base

# 循環インポート回避のための型チェック時
if TYPE_CHECKING:
    from todoapp.models.user import User  # noqa: F401


class Todo(Base):
    """Todoモデル

    すべての読み書きは所有者ID（user_id）で絞り込まれる
    削除は物理削除
    """

    # 所有者（外部キー）
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True, comment="Todoの所有者ID"
    )

    title: Mapped[str] = mapped_column(String(TodoConstants.TITLE_MAX_LENGTH), nullable=False, comment="タイトル")

    description: Mapped[str | None] = mapped_column(Text, nullable=True, comment="詳細説明")

    completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=TodoConstants.DEFAULT_COMPLETED, comment="完了フラグ"
    )

    owner: Mapped["User"] = relationship("User", back_populates="todos", lazy="select")

    __table_args__ = (
        Index("ix_todos_user_completed", "user_id", "completed"),
        Index("ix_todos_user_created_at", "user_id", "created_at"),
    )

    @validates("title")
    def validate_title(self, key: str, title: str) -> str:  # noqa: ARG002
        if not title or not title.strip():
            raise ValueError(ErrorMessages.TODO_TITLE_REQUIRED)
        return title.strip()

    def __repr__(self) -> str:
        return f"<Todo(title={self.title}, completed={self.completed})>"
