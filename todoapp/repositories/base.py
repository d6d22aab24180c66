"""リポジトリ基底クラス

セッション管理・操作者の解決・監査ログ記録など、各リポジトリ共通の処理を提供
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from todoapp.core.context import RepositoryContext, resolve_operated_by
from todoapp.core.database import DatabaseManager
from todoapp.repositories.audit import AuditLogRepository

logger = logging.getLogger(__name__)


class BaseRepository:
    """SQLAlchemyリポジトリの基底クラス

    各メソッド呼び出しごとに専用のセッションを開くため、
    同一リポジトリへの並行呼び出しでもセッションを共有しない
    """

    entity_name: str = ""

    def __init__(self, database: DatabaseManager, audit_log: AuditLogRepository) -> None:
        self.database = database
        self.audit_log = audit_log

    def _operator(self, context: RepositoryContext | None, operation: str) -> str:
        """操作者IDを解決（未指定時はシステムユーザー + 警告ログ）"""
        return resolve_operated_by(context, f"{self.__class__.__name__}.{operation}")

    def _audit(
        self,
        session: AsyncSession,
        entity_id: Any,
        action: str,
        operated_by: str,
        context: RepositoryContext | None,
        changes: dict[str, Any] | None = None,
        entity: str | None = None,
    ) -> None:
        self.audit_log.record(
            session,
            entity=entity or self.entity_name,
            entity_id=entity_id,
            action=action,
            operated_by=operated_by,
            reason=context.reason if context else None,
            changes=changes,
        )

    @staticmethod
    def _paginate(stmt: Select, skip: int | None, limit: int | None) -> Select:
        if skip:
            stmt = stmt.offset(skip)
        if limit:
            stmt = stmt.limit(limit)
        return stmt

    @staticmethod
    def _order(stmt: Select, model: Any, sort_by: str, order: str, default_field: str = "created_at") -> Select:
        """ソート条件を適用（存在しないフィールドはデフォルトソート）"""
        sort_field = getattr(model, sort_by, None)
        if sort_field is None:
            sort_field = getattr(model, default_field)
        return stmt.order_by(sort_field.asc() if order == "asc" else sort_field.desc())
