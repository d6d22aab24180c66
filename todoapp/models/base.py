"""SQLAlchemyベースモデル

すべてのモデルの基底クラスを提供
UUIDプライマリキー、タイムスタンプ、ネーミング規則を統一
"""

import re
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, MetaData, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

# 制約命名規則の統一
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",  # インデックス
        "uq": "uq_%(table_name)s_%(column_0_name)s",  # ユニーク制約
        "ck": "ck_%(table_name)s_%(constraint_name)s",  # チェック制約
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",  # 外部キー
        "pk": "pk_%(table_name)s",  # プライマリキー
    }
)


def utc_now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """SQLAlchemy 2.x準拠のベースクラス

    全てのモデルはこのクラスを継承する
    - UUID主キー（アプリケーション側で採番）
    - 作成・更新タイムスタンプ（UTC）
    - テーブル名自動生成
    """

    metadata = metadata

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True, comment="プライマリキー（UUID）"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False, comment="作成日時（UTC）"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
        comment="更新日時（UTC）",
    )

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """テーブル名を自動生成

        例: Todo -> todos, UserRole -> user_roles
        """
        name = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", cls.__name__)
        return re.sub("([a-z0-9])([A-Z])", r"\1_\2", name).lower() + "s"

    def __repr__(self) -> str:
        """デバッグ用の文字列表現"""
        return f"<{self.__class__.__name__}(id={self.id})>"

    def to_dict(self) -> dict[str, Any]:
        """モデルを辞書形式に変換"""
        return {column.name: getattr(self, column.name) for column in self.__table__.columns}
