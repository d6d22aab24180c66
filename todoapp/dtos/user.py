"""ユーザーDTO

ユーザーデータの転送オブジェクト
"""

from dataclasses import dataclass, field

from todoapp.core.constants import RoleConstants
from todoapp.dtos.base import BaseDTO
from todoapp.models.user import User


@dataclass(frozen=True)
class UserDTO(BaseDTO):
    """ユーザーDTO

    roles は正規化テーブルから集約したロール名（名前順）
    """

    email: str
    name: str
    bio: str | None = None
    avatar: str | None = None
    website: str | None = None
    is_active: bool = True
    email_verified: bool = False
    roles: list[str] = field(default_factory=list)

    @classmethod
    def from_model(cls, user: User, roles: list[str]) -> "UserDTO":
        return cls(
            id=user.id,
            created_at=user.created_at,
            updated_at=user.updated_at,
            email=user.email,
            name=user.name,
            bio=user.bio,
            avatar=user.avatar,
            website=user.website,
            is_active=user.is_active,
            email_verified=user.email_verified,
            roles=sorted(roles),
        )

    def has_role(self, role_name: str) -> bool:
        return role_name in self.roles

    @property
    def is_admin(self) -> bool:
        return self.has_role(RoleConstants.ADMIN_ROLE)
