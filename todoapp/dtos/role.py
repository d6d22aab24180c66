"""ロールDTO"""

from dataclasses import dataclass

from todoapp.dtos.base import BaseDTO
from todoapp.models.role import Role


@dataclass(frozen=True)
class RoleDTO(BaseDTO):
    """ロールDTO"""

    name: str
    description: str | None

    @classmethod
    def from_model(cls, role: Role) -> "RoleDTO":
        return cls(
            id=role.id,
            created_at=role.created_at,
            updated_at=role.updated_at,
            name=role.name,
            description=role.description,
        )
