"""監査ログリポジトリ

変更系リポジトリ操作と同じセッション（トランザクション）で監査ログを書き込む
"""

from abc import ABC, abstractmethod
from typing import Any

from fastapi.encoders import jsonable_encoder
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from todoapp.core.database import DatabaseManager
from todoapp.models.audit_log import AuditLog
from todoapp.utils.error_handler import handle_repository_errors


class AuditLogRepositoryInterface(ABC):
    """監査ログリポジトリのインターフェース"""

    @abstractmethod
    def record(
        self,
        session: AsyncSession,
        *,
        entity: str,
        entity_id: Any,
        action: str,
        operated_by: str,
        reason: str | None = None,
        changes: dict[str, Any] | None = None,
    ) -> None:
        """監査ログを現在のセッションに追加"""
        pass

    @abstractmethod
    async def find_by_entity(self, entity: str, entity_id: Any) -> list[dict[str, Any]]:
        """エンティティの監査ログを古い順に取得"""
        pass


class AuditLogRepository(AuditLogRepositoryInterface):
    """監査ログリポジトリの実装"""

    def __init__(self, database: DatabaseManager, enabled: bool = True) -> None:
        self.database = database
        self.enabled = enabled

    def record(
        self,
        session: AsyncSession,
        *,
        entity: str,
        entity_id: Any,
        action: str,
        operated_by: str,
        reason: str | None = None,
        changes: dict[str, Any] | None = None,
    ) -> None:
        if not self.enabled:
            return

        session.add(
            AuditLog(
                entity=entity,
                entity_id=str(entity_id),
                action=action,
                operated_by=operated_by,
                reason=reason,
                changes=jsonable_encoder(changes) if changes else None,
            )
        )

    @handle_repository_errors("監査ログ取得")
    async def find_by_entity(self, entity: str, entity_id: Any) -> list[dict[str, Any]]:
        async with self.database.session() as session:
            stmt = (
                select(AuditLog)
                .where(AuditLog.entity == entity, AuditLog.entity_id == str(entity_id))
                .order_by(AuditLog.created_at.asc())
            )
            result = await session.execute(stmt)
            return [log.to_dict() for log in result.scalars().all()]
