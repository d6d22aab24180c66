"""Todo DTO

Todoデータの転送オブジェクト
"""

from dataclasses import dataclass
from uuid import UUID

from todoapp.dtos.base import BaseDTO
from todoapp.models.todo import Todo


@dataclass(frozen=True)
class TodoDTO(BaseDTO):
    """Todo DTO"""

    user_id: UUID
    title: str
    description: str | None
    completed: bool

    @classmethod
    def from_model(cls, todo: Todo) -> "TodoDTO":
        return cls(
            id=todo.id,
            created_at=todo.created_at,
            updated_at=todo.updated_at,
            user_id=todo.user_id,
            title=todo.title,
            description=todo.description,
            completed=todo.completed,
        )


@dataclass(frozen=True)
class TodoStatsDTO:
    """Todo統計DTO

    pending は常に total - completed
    """

    total: int
    completed: int
    pending: int

    @classmethod
    def from_counts(cls, total: int, completed: int) -> "TodoStatsDTO":
        return cls(total=total, completed=completed, pending=total - completed)

    @property
    def completion_rate(self) -> float:
        """完了率（0.0〜1.0、Todoが無い場合は0.0）"""
        if self.total == 0:
            return 0.0
        return self.completed / self.total
