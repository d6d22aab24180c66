"""FastAPIアプリケーションのメインモジュール

ミドルウェア、ルーティング、例外ハンドラー、ライフサイクル管理を提供
"""

import logging
import time
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any, cast

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from todoapp.api.v1.router import api_router
from todoapp.core.config import settings
from todoapp.core.database import close_database, init_database
from todoapp.core.database import health_check as db_health_check
from todoapp.core.dependencies import get_container
from todoapp.core.exceptions import OPAQUE_ERRORS, DomainError

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL), format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """アプリケーションライフサイクル管理"""
    container = app.dependency_overrides.get(get_container, get_container)()

    logger.info(f"🚀 {settings.PROJECT_NAME} を起動しています...")
    try:
        logger.info("📊 データベース接続を初期化中...")
        await init_database(container.database)

        # 本番環境のスキーマはマイグレーションで管理する
        if not settings.is_production:
            await container.database.create_tables()

        await container.seed_default_roles()
        logger.info("✅ すべてのサービスが正常に初期化されました")

    except Exception as e:
        logger.error(f"❌ 初期化中にエラーが発生しました: {e}")
        raise

    yield

    logger.info(f"🛑 {settings.PROJECT_NAME} を終了しています...")
    await close_database(container.database)
    logger.info("✅ すべてのサービスが正常に終了しました")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """セキュリティヘッダーを追加するミドルウェア"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """リクエストを処理し、セキュリティヘッダーを追加"""
        start_time = time.time()
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # 開発環境では処理時間を表示
        if settings.is_development:
            response.headers["X-Process-Time"] = str(time.time() - start_time)

        return cast("Response", response)


def create_application() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        description="マルチユーザー対応TodoアプリケーションのAPI",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url=f"{settings.API_V1_STR}/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    setup_middleware(app)

    setup_routes(app)

    setup_exception_handlers(app)

    return app


def setup_middleware(app: FastAPI) -> None:
    app.add_middleware(SecurityHeadersMiddleware)

    cors_config = settings.get_cors_config()
    app.add_middleware(CORSMiddleware, **cors_config)

    logger.debug("ミドルウェアの設定が完了しました")


def setup_routes(app: FastAPI) -> None:
    @app.get("/health", response_model=None)
    async def health_check() -> dict[str, Any] | JSONResponse:
        container = app.dependency_overrides.get(get_container, get_container)()
        try:
            db_health = await db_health_check(container.database)
            return {
                "status": db_health.get("status", "unhealthy"),
                "timestamp": datetime.now(UTC).isoformat(),
                "version": settings.PROJECT_VERSION,
                "environment": settings.ENVIRONMENT,
                "services": {"database": db_health},
            }

        except Exception as e:
            logger.error(f"ヘルスチェック中にエラーが発生しました: {e}")
            return JSONResponse(
                status_code=503,
                content={
                    "error": "health_check_failed",
                    "message": "ヘルスチェックに失敗しました",
                    "details": {},
                    "path": "/health",
                    "timestamp": datetime.now(UTC).isoformat(),
                },
            )

    @app.get("/")
    async def root() -> dict[str, Any]:
        return {
            "message": f"Welcome to {settings.PROJECT_NAME}",
            "version": settings.PROJECT_VERSION,
            "environment": settings.ENVIRONMENT,
            "docs_url": "/docs" if settings.is_development else None,
            "health_url": "/health",
        }

    app.include_router(api_router, prefix=settings.API_V1_STR)

    logger.debug("ルーティングの設定が完了しました")


def setup_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError) -> JSONResponse:
        if isinstance(exc, OPAQUE_ERRORS):
            # 詳細は送出元で記録済み。クライアントには汎用メッセージのみ返す
            message, details = exc.default_message, {}
        else:
            message, details = exc.message, exc.details

        headers = {"WWW-Authenticate": "Bearer"} if exc.http_status == 401 else None
        return JSONResponse(
            status_code=exc.http_status,
            content={
                "error": exc.code,
                "message": message,
                "details": details,
                "path": str(request.url.path),
                "timestamp": datetime.now(UTC).isoformat(),
            },
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "error": "REQUEST_VALIDATION_ERROR",
                "message": "リクエストの形式が正しくありません",
                "details": {
                    "errors": [
                        {
                            "field": ".".join(str(loc) for loc in error["loc"]),
                            "message": error["msg"],
                            "type": error["type"],
                        }
                        for error in exc.errors()
                    ]
                },
                "path": str(request.url.path),
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"予期しない例外が発生しました: {exc}", exc_info=True)

        return JSONResponse(
            status_code=500,
            content={
                "error": "INTERNAL_SERVER_ERROR",
                "message": "内部サーバーエラーが発生しました",
                "details": {},
                "path": str(request.url.path),
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )

    logger.debug("例外ハンドラーの設定が完了しました")


# アプリケーションのインスタンスを作成
app = create_application()


if __name__ == "__main__":
    import uvicorn

    # 開発サーバー起動
    if settings.is_development:
        uvicorn.run(
            "todoapp.main:app",
            host="0.0.0.0",  # nosec B104 # noqa: S104 # 開発環境のみ全インターフェースにバインド
            port=8000,
            reload=True,
            log_level=settings.LOG_LEVEL.lower(),
            access_log=True,
        )
    else:
        logger.warning("本番環境では uvicorn todoapp.main:app で起動してください")
