"""テスト用データベース設定"""

from pathlib import Path

from todoapp.core.database import DatabaseManager


async def create_test_database(directory: Path, transactions_enabled: bool = True) -> DatabaseManager:
    """ファイルベースのSQLiteデータベースを作成し、テーブルを用意する

    セッションごとに接続を張り直すため、インメモリではなくファイルを使用する
    """
    manager = DatabaseManager(
        f"sqlite+aiosqlite:///{directory / 'test.db'}", transactions_enabled=transactions_enabled
    )
    await manager.create_tables()
    return manager
