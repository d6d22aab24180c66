"""pytest設定とテスト環境インフラ

基本的なフィクスチャとテスト設定のエントリーポイント
"""

import os

# 設定モジュールの読み込み前にテスト用環境変数を設定する
os.environ["ENVIRONMENT"] = "testing"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["AUTH_JWT_SECRET"] = "test-secret-key-at-least-32-characters-long"
os.environ.pop("AUTH_PROVIDER_URL", None)

from collections.abc import AsyncGenerator  # noqa: E402
from pathlib import Path  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from todoapp.core.config import Settings, get_settings  # noqa: E402
from todoapp.core.container import AppContainer, create_container  # noqa: E402
from todoapp.core.database import DatabaseManager  # noqa: E402
from todoapp.core.dependencies import reset_container_cache  # noqa: E402
from tests.fixtures.auth import *  # noqa: E402, F403, F401
from tests.fixtures.entities import *  # noqa: E402, F403, F401
from tests.tests_config.app_factory import create_test_app  # noqa: E402
from tests.tests_config.database import create_test_database  # noqa: E402


@pytest_asyncio.fixture
async def test_settings() -> Settings:
    """テスト用設定"""
    return get_settings()


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[DatabaseManager]:
    """テストごとに独立したSQLiteデータベース"""
    manager = await create_test_database(tmp_path)
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def container(test_settings: Settings, database: DatabaseManager) -> AppContainer:
    """組み込みロール作成済みのコンテナ"""
    app_container = create_container(settings=test_settings, database=database)
    await app_container.seed_default_roles()
    return app_container


@pytest_asyncio.fixture
async def async_client(container: AppContainer) -> AsyncGenerator[AsyncClient]:
    """テスト用非同期HTTPクライアント"""
    app = create_test_app(container)

    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
        reset_container_cache()
