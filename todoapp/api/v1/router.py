"""API v1 ルーター統合

すべてのv1 APIエンドポイントを統合
"""

from typing import Any

from fastapi import APIRouter

from todoapp.api.v1 import todos, users
from todoapp.core.constants import ErrorMessages

# メインのAPIルーター
api_router = APIRouter()

# ユーザー管理エンドポイント
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["ユーザー管理"],
    dependencies=[],  # 認証は各エンドポイントで個別に設定
    responses={
        401: {"description": ErrorMessages.UNAUTHORIZED},
        403: {"description": ErrorMessages.FORBIDDEN},
        404: {"description": ErrorMessages.USER_NOT_FOUND},
    },
)

# Todo管理エンドポイント
api_router.include_router(
    todos.router,
    prefix="/todos",
    tags=["Todo管理"],
    dependencies=[],  # 認証は各エンドポイントで個別に設定
    responses={
        400: {"description": ErrorMessages.VALIDATION_ERROR},
        401: {"description": ErrorMessages.UNAUTHORIZED},
        404: {"description": ErrorMessages.TODO_NOT_FOUND_OR_NOT_OWNED},
    },
)


# ルーター情報（デバッグ用）
@api_router.get("/", include_in_schema=False)
async def api_info() -> dict[str, Any]:
    """API情報を取得（デバッグ用）"""
    return {
        "message": "Todo API v1",
        "endpoints": {"users": "/users/*", "todos": "/todos/*"},
        "documentation": {"swagger": "/docs", "redoc": "/redoc", "openapi": "/openapi.json"},
    }


__all__ = ["api_router"]
