"""データベース接続管理モジュール

SQLAlchemy 2.x 非同期エンジンによる接続管理、セッション・トランザクション、
ヘルスチェック機能を提供

エンジンは初回アクセス時に遅延生成され、同時に複数の呼び出しがあっても
生成されるのは1つだけになるようロックで保護される
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from todoapp.core.config import settings

logger = logging.getLogger(__name__)


class DatabaseConnectionError(Exception):
    """データベース接続関連のエラー"""

    pass


class DatabaseManager:
    """データベース接続を管理するクラス

    SQLAlchemy 2.x準拠の非同期エンジンとセッション管理を提供
    ストレージアダプターとしてトランザクション対応の有無も公開する
    """

    def __init__(self, database_url: str | None = None, transactions_enabled: bool | None = None) -> None:
        self._database_url = database_url or settings.database_url_async
        self._transactions_enabled = (
            settings.DB_TRANSACTIONS_ENABLED if transactions_enabled is None else transactions_enabled
        )
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._init_lock = asyncio.Lock()
        self.engine_creation_count = 0

    @property
    def is_sqlite(self) -> bool:
        return self._database_url.startswith("sqlite")

    def _engine_kwargs(self) -> dict[str, Any]:
        if self.is_sqlite:
            return {"poolclass": NullPool, "echo": False}

        # 開発環境ではNullPoolを使用（デバッグがしやすいため）
        if settings.is_development:
            pool_kwargs: dict[str, Any] = {"poolclass": NullPool}
        else:
            pool_kwargs = {
                "pool_size": settings.DB_POOL_SIZE,
                "max_overflow": settings.DB_MAX_OVERFLOW,
                "pool_timeout": 30,
                "pool_recycle": 3600,  # 1時間でコネクションを再作成
                "pool_pre_ping": True,
            }

        return {
            "echo": settings.is_development and settings.DEBUG,
            "connect_args": {
                "server_settings": {
                    "application_name": f"{settings.PROJECT_NAME}-{settings.ENVIRONMENT}",
                    "timezone": "UTC",
                }
            },
            **pool_kwargs,
        }

    def create_engine(self) -> AsyncEngine:
        """非同期SQLAlchemyエンジンを作成（作成済みの場合は既存のものを返す）"""
        if self._engine is not None:
            return self._engine

        try:
            engine = create_async_engine(self._database_url, **self._engine_kwargs())
        except Exception as e:
            logger.error(f"データベースエンジンの作成に失敗しました: {e}")
            raise

        if self.is_sqlite:
            # SQLiteで外部キー制約を有効化
            @event.listens_for(engine.sync_engine, "connect")
            def _enable_sqlite_foreign_keys(dbapi_conn: Any, connection_record: Any) -> None:
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        self._engine = engine
        self.engine_creation_count += 1
        logger.info(f"データベースエンジンが作成されました: {engine.url.render_as_string(hide_password=True)}")
        return engine

    def create_session_factory(self) -> async_sessionmaker[AsyncSession]:
        """非同期セッションファクトリーを作成"""
        if self._session_factory is not None:
            return self._session_factory

        engine = self.create_engine()
        self._session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,  # コミット後もオブジェクトを使用可能
            autoflush=True,
        )

        logger.info("データベースセッションファクトリーが作成されました")
        return self._session_factory

    async def ensure_ready(self) -> async_sessionmaker[AsyncSession]:
        """エンジンとセッションファクトリーを初期化して返す

        初回のみロック内で生成する。並行して呼ばれても生成は1回だけ
        """
        if self._session_factory is not None:
            return self._session_factory

        async with self._init_lock:
            # ロック取得後に再確認
            if self._session_factory is None:
                self.create_session_factory()

        if self._session_factory is None:
            raise DatabaseConnectionError("セッションファクトリが初期化されていません")
        return self._session_factory

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """読み取り・単発書き込み用のセッションを取得

        例外発生時はロールバックしてから再送出する
        """
        factory = await self.ensure_ready()
        async with factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession]:
        """トランザクションを開始

        正常終了時にコミット、例外時にロールバックする
        """
        factory = await self.ensure_ready()
        async with factory() as session:
            try:
                yield session
                await session.commit()
                logger.debug("トランザクションをコミットしました")
            except Exception as e:
                await session.rollback()
                logger.debug(f"トランザクションをロールバックしました: {type(e).__name__}")
                raise

    @property
    def supports_transactions(self) -> bool:
        """ストレージが複数ステップのトランザクションをサポートするか"""
        return self._transactions_enabled

    async def check_connection(self) -> bool:
        """データベース接続の健全性をチェック

        Returns:
            接続が正常な場合True、それ以外False
        """
        try:
            await self.ensure_ready()
            engine = self.create_engine()

            async with engine.begin() as conn:
                result = await conn.execute(text("SELECT 1"))
                result.scalar()

            logger.info("データベース接続チェック: 正常")
            return True

        except SQLAlchemyError as e:
            logger.error(f"データベース接続チェック失敗: {e}")
            return False

    async def create_tables(self) -> None:
        """すべてのテーブルを作成（開発・テスト用）"""
        # 循環インポート回避のため遅延インポート
        from todoapp.models import Base

        await self.ensure_ready()
        async with self.create_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("すべてのテーブルが作成されました")

    async def close(self) -> None:
        """データベースエンジンとセッションを終了

        アプリケーション終了時に呼び出す
        """
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("データベースエンジンを閉じました")
            self._engine = None
            self._session_factory = None

    @property
    def engine(self) -> AsyncEngine | None:
        """現在のエンジンインスタンスを取得"""
        return self._engine

    @property
    def is_connected(self) -> bool:
        """エンジンが作成済みかどうかを確認"""
        return self._engine is not None


# アプリケーションライフサイクル管理
async def init_database(manager: DatabaseManager) -> None:
    """エンジンを初期化し、接続を確認する"""
    try:
        is_connected = await manager.check_connection()
        if not is_connected:
            raise DatabaseConnectionError("データベースへの接続に失敗しました")

        logger.info("データベースの初期化が完了しました")

    except Exception as e:
        logger.error(f"データベース初期化中にエラーが発生しました: {e}")
        raise


async def close_database(manager: DatabaseManager) -> None:
    """データベース接続を終了"""
    try:
        await manager.close()
        logger.info("データベース接続を正常に閉じました")

    except SQLAlchemyError as e:
        logger.error(f"データベース接続の終了中にエラーが発生しました: {e}")


async def health_check(manager: DatabaseManager) -> dict:
    """データベースのヘルスチェックを実行

    Returns:
        ヘルスチェック結果を含む辞書
    """
    is_connected = await manager.check_connection()

    if is_connected:
        return {
            "status": "healthy",
            "database": "connected",
            "transactions": manager.supports_transactions,
        }
    return {
        "status": "unhealthy",
        "database": "disconnected",
        "error": "Connection failed",
    }
