"""リポジトリ操作コンテキスト

変更系のリポジトリ操作に「誰が・なぜ」操作したかを明示的に渡すための値オブジェクト
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from todoapp.core.constants import SYSTEM_USER_ID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepositoryContext:
    """リポジトリ操作コンテキスト

    Attributes:
        operated_by: 操作者のユーザーID（不明な場合はNone）
        reason: 操作理由（任意）
        metadata: 追加情報（任意）
    """

    operated_by: str | None = None
    reason: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_user(cls, user_id: Any, reason: str | None = None) -> "RepositoryContext":
        """ユーザー操作用のコンテキストを作成"""
        return cls(operated_by=str(user_id), reason=reason)

    @classmethod
    def system(cls, reason: str | None = None) -> "RepositoryContext":
        """システム操作用のコンテキストを作成"""
        return cls(operated_by=SYSTEM_USER_ID, reason=reason)


def resolve_operated_by(context: RepositoryContext | None, operation: str = "") -> str:
    """操作者IDを解決

    操作者が指定されていない場合はシステムユーザーにフォールバックし、警告を記録する

    Args:
        context: リポジトリ操作コンテキスト
        operation: ログ出力用の操作名

    Returns:
        操作者ID
    """
    if context is not None and context.operated_by:
        return context.operated_by

    logger.warning(f"操作者が指定されていないため、システムユーザーとして処理します: operation={operation or 'unknown'}")
    return SYSTEM_USER_ID
