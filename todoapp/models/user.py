"""ユーザーモデル

プロフィール、アカウント状態、ロールの関連を管理
認証情報は外部の認証プロバイダーが保持する
"""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from todoapp.core.constants import UserConstants
from todoapp.models.base import Base

# 循環インポート回避のための型チェック時のみインポート
if TYPE_CHECKING:
    from todoapp.models.todo import Todo  # noqa: F401
    from todoapp.models.user_role import UserRole  # noqa: F401


class User(Base):
    """ユーザーモデル"""

    email: Mapped[str] = mapped_column(
        String(UserConstants.EMAIL_MAX_LENGTH), unique=True, nullable=False, index=True, comment="メールアドレス"
    )

    # プロフィール情報
    name: Mapped[str] = mapped_column(String(UserConstants.NAME_MAX_LENGTH), nullable=False, comment="表示名")

    bio: Mapped[str | None] = mapped_column(Text, nullable=True, comment="自己紹介")

    avatar: Mapped[str | None] = mapped_column(
        String(UserConstants.URL_MAX_LENGTH), nullable=True, comment="アバター画像URL"
    )

    website: Mapped[str | None] = mapped_column(
        String(UserConstants.URL_MAX_LENGTH), nullable=True, comment="WebサイトURL"
    )

    # アカウント状態管理
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, comment="アカウント有効フラグ")

    email_verified: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, comment="メールアドレス認証済みフラグ"
    )

    # リレーション定義（遅延読み込み）
    todos: Mapped[list["Todo"]] = relationship(
        "Todo", back_populates="owner", cascade="all, delete-orphan", lazy="select", passive_deletes=True
    )

    user_roles: Mapped[list["UserRole"]] = relationship(
        "UserRole", back_populates="user", cascade="all, delete-orphan", lazy="select", passive_deletes=True
    )

    __table_args__ = (Index("ix_users_email_active", "email", "is_active"),)

    @validates("email")
    def validate_email(self, key: str, email: str) -> str:  # noqa: ARG002
        if not email:
            raise ValueError("メールアドレスは必須です")
        return email.lower().strip()

    def __repr__(self) -> str:
        return f"<User(email={self.email}, name={self.name}, active={self.is_active})>"
