"""監査ログモデル

変更系リポジトリ操作の操作者と変更内容を記録
"""

from typing import Any

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from todoapp.models.base import Base


class AuditLog(Base):
    """監査ログモデル

    対象エンティティは外部キーで参照しない（削除後もログを残すため）
    """

    entity: Mapped[str] = mapped_column(String(50), nullable=False, comment="対象テーブル名")

    entity_id: Mapped[str] = mapped_column(String(64), nullable=False, comment="対象エンティティID")

    action: Mapped[str] = mapped_column(String(20), nullable=False, comment="操作種別（create, update, delete）")

    operated_by: Mapped[str] = mapped_column(String(64), nullable=False, comment="操作者ID（またはsystem）")

    reason: Mapped[str | None] = mapped_column(String(255), nullable=True, comment="操作理由")

    changes: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True, comment="書き込んだフィールドの内容")

    __table_args__ = (
        Index("ix_audit_logs_entity", "entity", "entity_id"),
        Index("ix_audit_logs_operated_by", "operated_by"),
    )

    def __repr__(self) -> str:
        return f"<AuditLog(entity={self.entity}, action={self.action}, operated_by={self.operated_by})>"
