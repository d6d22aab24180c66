"""アプリケーションコンテナ

設定・データベース・リポジトリ・サービスの組み立てを一箇所で行う
"""

import logging
from dataclasses import dataclass

from todoapp.core.config import Settings, get_settings
from todoapp.core.constants import RoleConstants
from todoapp.core.context import RepositoryContext
from todoapp.core.database import DatabaseManager
from todoapp.repositories.audit import AuditLogRepository
from todoapp.repositories.role import RoleRepository
from todoapp.repositories.todo import TodoRepository
from todoapp.repositories.user import AuthProviderUserRepository, UserRepository
from todoapp.services.auth_provider import AuthProvider, HttpAuthProvider
from todoapp.services.todo import TodoService
from todoapp.services.user import UserService


@dataclass
class AppContainer:
    """組み立て済みの依存関係一式"""

    settings: Settings
    logger: logging.Logger
    database: DatabaseManager
    audit_log_repository: AuditLogRepository
    todo_repository: TodoRepository
    user_repository: UserRepository
    role_repository: RoleRepository
    todo_service: TodoService
    user_service: UserService
    auth_provider: AuthProvider | None = None

    async def seed_default_roles(self) -> list[str]:
        """組み込みロール（user / admin）とデフォルトロールを作成（既存はスキップ）

        Returns:
            新たに作成したロール名
        """
        names = dict.fromkeys(
            [RoleConstants.USER_ROLE, RoleConstants.ADMIN_ROLE, *self.settings.DEFAULT_USER_ROLES]
        )
        existing = {role.name for role in await self.role_repository.find_by_names(list(names))}

        created = []
        context = RepositoryContext.system("組み込みロールの初期化")
        for name in names:
            if name not in existing:
                await self.role_repository.create({"name": name}, context)
                created.append(name)

        if created:
            self.logger.info(f"ロールを作成しました: {created}")
        return created


def create_container(
    settings: Settings | None = None,
    database: DatabaseManager | None = None,
    auth_provider: AuthProvider | None = None,
) -> AppContainer:
    """コンテナを作成

    認証プロバイダーが渡された場合（または AUTH_PROVIDER_URL が設定されている場合）は
    プロバイダー連携版のユーザーリポジトリを使用する

    Args:
        settings: 設定（未指定時はグローバル設定）
        database: データベースマネージャー（未指定時は設定から作成）
        auth_provider: 認証プロバイダー

    Returns:
        AppContainer
    """
    settings = settings or get_settings()
    logger = logging.getLogger("todoapp")
    database = database or DatabaseManager(settings.database_url_async, settings.DB_TRANSACTIONS_ENABLED)

    if auth_provider is None and settings.uses_auth_provider:
        auth_provider = HttpAuthProvider(
            settings.AUTH_PROVIDER_URL,
            api_key=settings.AUTH_PROVIDER_API_KEY,
            timeout=settings.AUTH_PROVIDER_TIMEOUT,
        )

    audit_log_repository = AuditLogRepository(database, enabled=settings.AUDIT_LOG_ENABLED)
    todo_repository = TodoRepository(database, audit_log_repository)
    role_repository = RoleRepository(database, audit_log_repository)

    user_repository: UserRepository
    if auth_provider is not None:
        user_repository = AuthProviderUserRepository(
            database, audit_log_repository, auth_provider, settings.DEFAULT_USER_ROLES
        )
        logger.info("認証プロバイダー連携版のユーザーリポジトリを使用します")
    else:
        user_repository = UserRepository(database, audit_log_repository, settings.DEFAULT_USER_ROLES)

    return AppContainer(
        settings=settings,
        logger=logger,
        database=database,
        audit_log_repository=audit_log_repository,
        todo_repository=todo_repository,
        user_repository=user_repository,
        role_repository=role_repository,
        todo_service=TodoService(todo_repository),
        user_service=UserService(user_repository, settings.DEFAULT_USER_ROLES),
        auth_provider=auth_provider,
    )
