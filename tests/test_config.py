"""設定読み込みのテスト"""

import pytest
from pydantic import ValidationError

from todoapp.core.config import Settings


class TestListSettings:
    """カンマ区切りで指定するリスト設定のテスト"""

    def test_default_roles_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DEFAULT_USER_ROLES", "user, editor")

        settings = Settings(_env_file=None)

        assert settings.DEFAULT_USER_ROLES == ["user", "editor"]

    def test_default_roles_single_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DEFAULT_USER_ROLES", "member")

        assert Settings(_env_file=None).DEFAULT_USER_ROLES == ["member"]

    def test_default_roles_must_not_be_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DEFAULT_USER_ROLES", " , ")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_cors_origins_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BACKEND_CORS_ORIGINS", "http://localhost:3000,https://example.com")

        settings = Settings(_env_file=None)

        assert settings.BACKEND_CORS_ORIGINS == ["http://localhost:3000", "https://example.com"]

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("DEFAULT_USER_ROLES", raising=False)
        monkeypatch.delenv("BACKEND_CORS_ORIGINS", raising=False)

        settings = Settings(_env_file=None)

        assert settings.DEFAULT_USER_ROLES == ["user"]
        assert settings.BACKEND_CORS_ORIGINS == []
