"""ロールモデル"""

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from todoapp.core.constants import RoleConstants
from todoapp.models.base import Base

if TYPE_CHECKING:
    from todoapp.models.user_role import UserRole  # noqa: F401


class Role(Base):
    """ロールモデル

    ユーザーとは中間テーブル（user_roles）を介して多対多で関連付けられる
    """

    name: Mapped[str] = mapped_column(
        String(RoleConstants.NAME_MAX_LENGTH), unique=True, nullable=False, index=True, comment="ロール名"
    )

    description: Mapped[str | None] = mapped_column(
        String(RoleConstants.DESCRIPTION_MAX_LENGTH), nullable=True, comment="ロールの説明"
    )

    user_roles: Mapped[list["UserRole"]] = relationship(
        "UserRole", back_populates="role", cascade="all, delete-orphan", lazy="select", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Role(name={self.name})>"
