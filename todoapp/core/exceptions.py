"""ドメイン例外モジュール

リポジトリ・サービス層で発生するエラーの分類を定義
各例外はエラーコードとHTTPステータスを持ち、API層で一貫したレスポンスに変換される
"""

from typing import Any

from todoapp.core.constants import ErrorMessages


class DomainError(Exception):
    """ドメイン例外の基底クラス

    Attributes:
        code: 機械可読なエラーコード
        http_status: 対応するHTTPステータスコード
        message: 人間可読なメッセージ
        details: 追加情報（フィールドエラー一覧など）
    """

    code: str = "DOMAIN_ERROR"
    http_status: int = 500
    default_message: str = ErrorMessages.SERVER_ERROR

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None) -> None:
        self.message = message or self.default_message
        self.details: dict[str, Any] = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """レスポンス用の辞書に変換"""
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(code={self.code}, message={self.message!r})>"


class NotFoundError(DomainError):
    """リソースが存在しない、または所有者でない"""

    code = "NOT_FOUND"
    http_status = 404
    default_message = ErrorMessages.NOT_FOUND


class ValidationError(DomainError):
    """入力値の検証エラー"""

    code = "VALIDATION_ERROR"
    http_status = 400
    default_message = ErrorMessages.VALIDATION_ERROR


class UnauthorizedError(DomainError):
    """認証されていない"""

    code = "UNAUTHORIZED"
    http_status = 401
    default_message = ErrorMessages.UNAUTHORIZED


class ForbiddenError(DomainError):
    """権限がない"""

    code = "FORBIDDEN"
    http_status = 403
    default_message = ErrorMessages.FORBIDDEN


class ConflictError(DomainError):
    """一意制約などの競合"""

    code = "CONFLICT"
    http_status = 409
    default_message = ErrorMessages.CONFLICT


class BusinessRuleError(DomainError):
    """業務ルール違反"""

    code = "BUSINESS_RULE_VIOLATION"
    http_status = 422
    default_message = ErrorMessages.BUSINESS_RULE_VIOLATION


class ExternalServiceError(DomainError):
    """外部サービス（認証プロバイダーなど）の障害"""

    code = "EXTERNAL_SERVICE_ERROR"
    http_status = 502
    default_message = ErrorMessages.EXTERNAL_SERVICE_ERROR

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        service: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.service = service


class PersistenceError(DomainError):
    """ストレージ層の予期しないエラー"""

    code = "PERSISTENCE_ERROR"
    http_status = 500
    default_message = ErrorMessages.DATABASE_ERROR


# クライアントへ詳細を返さない例外
OPAQUE_ERRORS: tuple[type[DomainError], ...] = (ExternalServiceError, PersistenceError)
