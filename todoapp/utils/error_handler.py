"""エラーハンドリング関連ユーティリティ

リポジトリ層の例外変換、ログ出力を提供
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar
from uuid import UUID

from todoapp.core.context import RepositoryContext
from todoapp.core.exceptions import DomainError, PersistenceError

T = TypeVar("T")


def get_logger(name: str) -> logging.Logger:
    """統一フォーマットのロガー取得

    Args:
        name: ロガー名（通常は __name__ を渡す）

    Returns:
        設定済みのロガーインスタンス
    """
    return logging.getLogger(name)


def log_error(logger: logging.Logger, operation: str, error: Exception, **context: Any) -> None:
    """統一されたエラーログ出力

    Args:
        logger: ロガーインスタンス
        operation: 操作名
        error: 発生した例外
        **context: 追加のコンテキスト情報
    """
    context_str = ", ".join(f"{k}={v}" for k, v in context.items()) if context else ""
    log_message = f"{operation}エラー: {error}"
    if context_str:
        log_message += f" (context: {context_str})"

    logger.error(log_message)


def _collect_context(func: Callable[..., Any], args: tuple, kwargs: dict) -> dict[str, Any]:
    """呼び出し引数からログ用のコンテキスト（ID類と操作者）を抽出"""
    try:
        bound = inspect.signature(func).bind(*args, **kwargs)
    except TypeError:
        return {}

    context: dict[str, Any] = {}
    for name, value in bound.arguments.items():
        if name == "self":
            continue
        if isinstance(value, RepositoryContext):
            context["operated_by"] = value.operated_by
        elif name.endswith("_id") and isinstance(value, UUID | str):
            context[name] = value
    return context


def handle_repository_errors(
    operation_name: str,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """リポジトリ操作用デコレータ

    - ドメイン例外（NotFound, Validation など）はそのまま再送出
    - それ以外の例外は操作名・ID・操作者と共に一度だけログを出し、PersistenceErrorに変換

    Args:
        operation_name: 操作名（ログ出力用）

    Usage:
        @handle_repository_errors("Todo作成")
        async def create(self, input, context):
            ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await func(*args, **kwargs)
            except DomainError:
                raise
            except Exception as e:
                logger = get_logger(func.__module__)
                log_error(logger, operation_name, e, **_collect_context(func, args, kwargs))
                raise PersistenceError(details={"operation": operation_name}) from e

        return wrapper

    return decorator
