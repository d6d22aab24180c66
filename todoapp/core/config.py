"""アプリケーション設定管理モジュール

Pydantic V2 BaseSettingsを使用した設定システムを提供
"""

import logging
from typing import TYPE_CHECKING, Annotated, Any, ClassVar
from urllib.parse import quote_plus

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from todoapp.core.constants import DatabaseConstants, SecurityConstants, UserConstants

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """アプリケーション設定

    Pydantic V2を使用して環境変数から設定を読み込む（設定は自動的に検証・型チェックされる）
    """

    # =============================================================================
    # Pydantic V2 設定
    # =============================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        validate_assignment=True,
    )

    # =============================================================================
    # アプリケーション設定
    # =============================================================================
    PROJECT_NAME: str = "Todo API"
    PROJECT_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    API_V1_STR: str = "/api/v1"

    # =============================================================================
    # データベース設定
    # =============================================================================
    DATABASE_URL: str | None = Field(default=None)
    DB_USER: str = Field(default="postgres")
    DB_PASSWORD: str = Field(default="postgres")
    DB_NAME: str = Field(default="todoapp")
    DB_HOST: str = Field(default="localhost")
    DB_PORT: int = Field(default=5432)
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)
    # ストレージがトランザクションをサポートするか
    DB_TRANSACTIONS_ENABLED: bool = Field(default=True)

    # =============================================================================
    # リポジトリ設定
    # =============================================================================
    AUDIT_LOG_ENABLED: bool = Field(default=True)
    DEFAULT_USER_ROLES: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(UserConstants.DEFAULT_ROLES)
    )

    # =============================================================================
    # 認証設定（外部認証プロバイダー）
    # =============================================================================
    AUTH_JWT_SECRET: str = Field(default="change-me-in-production-please-32chars")
    AUTH_JWT_ALGORITHM: str = Field(default="HS256")
    AUTH_PROVIDER_URL: str | None = Field(default=None)
    AUTH_PROVIDER_API_KEY: str | None = Field(default=None)
    AUTH_PROVIDER_TIMEOUT: int = Field(default=10)

    # =============================================================================
    # CORS設定
    # =============================================================================
    BACKEND_CORS_ORIGINS: Annotated[list[str], NoDecode] = []

    # =============================================================================
    # ログレベル設定
    # =============================================================================
    VALID_LOG_LEVELS: ClassVar[list[str]] = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

    # =============================================================================
    # バリデーター（Pydantic V2）
    # =============================================================================

    @field_validator("AUTH_JWT_ALGORITHM")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        if v not in SecurityConstants.ALLOWED_JWT_ALGORITHMS:
            raise ValueError(f"AUTH_JWT_ALGORITHM must be one of: {', '.join(SecurityConstants.ALLOWED_JWT_ALGORITHMS)}")
        return v

    @field_validator("AUTH_PROVIDER_TIMEOUT")
    @classmethod
    def validate_auth_provider_timeout(cls, v: int) -> int:
        if not (SecurityConstants.AUTH_PROVIDER_TIMEOUT_MIN <= v <= SecurityConstants.AUTH_PROVIDER_TIMEOUT_MAX):
            raise ValueError(
                f"AUTH_PROVIDER_TIMEOUT must be between "
                f"{SecurityConstants.AUTH_PROVIDER_TIMEOUT_MIN} and {SecurityConstants.AUTH_PROVIDER_TIMEOUT_MAX}"
            )
        return v

    @field_validator("DB_POOL_SIZE")
    @classmethod
    def validate_db_pool_size(cls, v: int) -> int:
        if not (DatabaseConstants.DB_POOL_SIZE_MIN <= v <= DatabaseConstants.DB_POOL_SIZE_MAX):
            raise ValueError(
                f"DB_POOL_SIZE must be between "
                f"{DatabaseConstants.DB_POOL_SIZE_MIN} and {DatabaseConstants.DB_POOL_SIZE_MAX}"
            )
        return v

    @field_validator("DB_MAX_OVERFLOW")
    @classmethod
    def validate_db_max_overflow(cls, v: int) -> int:
        if not (DatabaseConstants.DB_MAX_OVERFLOW_MIN <= v <= DatabaseConstants.DB_MAX_OVERFLOW_MAX):
            raise ValueError(
                f"DB_MAX_OVERFLOW must be between "
                f"{DatabaseConstants.DB_MAX_OVERFLOW_MIN} and {DatabaseConstants.DB_MAX_OVERFLOW_MAX}"
            )
        return v

    @field_validator("DEFAULT_USER_ROLES", mode="before")
    @classmethod
    def assemble_default_roles(cls, v: str | list[str] | None) -> list[str]:
        """デフォルトロールをカンマ区切り文字列またはリストから解析"""
        if isinstance(v, str):
            roles = [role.strip() for role in v.split(",") if role.strip()]
        elif isinstance(v, list):
            roles = v
        else:
            roles = []
        if not roles:
            raise ValueError("DEFAULT_USER_ROLES must contain at least one role")
        return roles

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: str | list[str] | None) -> list[str]:
        """CORS originをカンマ区切り文字列またはリストから解析"""
        if isinstance(v, str) and v:
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        elif isinstance(v, list):
            return v
        return []

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v.upper() not in cls.VALID_LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of: {', '.join(cls.VALID_LOG_LEVELS)}")
        return v.upper()

    # =============================================================================
    # 計算プロパティ（Pydantic V2）
    # =============================================================================

    @computed_field  # type: ignore[prop-decorator]
    @property
    def database_url_async(self) -> str:
        """非同期接続URLを生成（DATABASE_URLが指定されていればそれを優先）"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        encoded_password = quote_plus(self.DB_PASSWORD)
        return f"postgresql+asyncpg://{self.DB_USER}:{encoded_password}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_development(self) -> bool:
        """開発環境で実行中かチェック"""
        return self.ENVIRONMENT.lower() == "development"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        """本番環境で実行中かチェック"""
        return self.ENVIRONMENT.lower() == "production"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_testing(self) -> bool:
        """テスト環境で実行中かチェック"""
        return self.ENVIRONMENT.lower() == "testing"

    @property
    def uses_auth_provider(self) -> bool:
        """外部認証プロバイダーを利用するかどうか"""
        return bool(self.AUTH_PROVIDER_URL)

    # =============================================================================
    # ヘルパーメソッド
    # =============================================================================

    def get_cors_config(self) -> dict[str, Any]:
        return {
            "allow_origins": self.BACKEND_CORS_ORIGINS,
            "allow_credentials": True,
            "allow_methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            "allow_headers": ["*"],
        }

    # =============================================================================
    # セキュリティ・検証メソッド
    # =============================================================================

    def validate_production_security(self) -> None:
        """本番環境のセキュリティ設定を検証"""
        if not self.is_production:
            return

        issues = []

        if len(self.AUTH_JWT_SECRET) < SecurityConstants.MIN_JWT_SECRET_LENGTH:
            issues.append(f"AUTH_JWT_SECRET must be at least {SecurityConstants.MIN_JWT_SECRET_LENGTH} characters")

        if not self.DATABASE_URL and len(self.DB_PASSWORD) < SecurityConstants.MIN_DB_PASSWORD_LENGTH_PRODUCTION:
            issues.append(
                f"DB_PASSWORD must be at least {SecurityConstants.MIN_DB_PASSWORD_LENGTH_PRODUCTION} characters"
            )

        if self.DEBUG:
            issues.append("DEBUG should be False in production")

        if issues:
            raise ValueError(f"Production security issues: {'; '.join(issues)}")


# =============================================================================
# グローバル設定インスタンス（シングルトン）
# =============================================================================

_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """シングルトンパターンで設定インスタンスを取得"""
    global _settings_instance

    if _settings_instance is None:
        _settings_instance = Settings()

        # 本番環境セキュリティ検証（実行時のみ）
        if not TYPE_CHECKING:
            try:
                _settings_instance.validate_production_security()
            except ValueError as e:
                if _settings_instance.is_production:
                    raise
                logger.warning(f"開発モードセキュリティ通知: {e}")

    return _settings_instance


# グローバル設定インスタンス（アプリケーション全体で共有）
settings = get_settings()

