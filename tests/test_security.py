"""トークン検証のテスト"""

from datetime import timedelta

import jwt
import pytest

from todoapp.core.config import Settings, get_settings
from todoapp.core.exceptions import UnauthorizedError
from todoapp.core.security import create_access_token, decode_access_token


@pytest.fixture
def test_settings() -> Settings:
    return get_settings()


class TestDecodeAccessToken:
    """アクセストークン検証のテスト"""

    def test_valid_token(self, test_settings: Settings) -> None:
        token = create_access_token("user-1", test_settings, sid="session-1", role="user")

        identity = decode_access_token(token, test_settings)

        assert identity.user_id == "user-1"
        assert identity.session_id == "session-1"
        assert identity.claims is not None
        assert identity.claims["role"] == "user"

    def test_expired_token(self, test_settings: Settings) -> None:
        token = create_access_token("user-1", test_settings, expires_delta=timedelta(seconds=-1))

        with pytest.raises(UnauthorizedError, match="有効期限"):
            decode_access_token(token, test_settings)

    def test_wrong_secret(self, test_settings: Settings) -> None:
        token = jwt.encode({"sub": "user-1"}, "another-secret-key-at-least-32-chars!!", algorithm="HS256")

        with pytest.raises(UnauthorizedError):
            decode_access_token(token, test_settings)

    def test_missing_subject(self, test_settings: Settings) -> None:
        token = jwt.encode({"sid": "session-1"}, test_settings.AUTH_JWT_SECRET, algorithm=test_settings.AUTH_JWT_ALGORITHM)

        with pytest.raises(UnauthorizedError):
            decode_access_token(token, test_settings)

    def test_garbage(self, test_settings: Settings) -> None:
        with pytest.raises(UnauthorizedError):
            decode_access_token("not-a-jwt", test_settings)
