"""DTOパッケージ

Data Transfer Objectsを提供
リポジトリ層から上位層へのデータ転送を担当する
"""

from todoapp.dtos.base import BaseDTO
from todoapp.dtos.role import RoleDTO
from todoapp.dtos.todo import TodoDTO, TodoStatsDTO
from todoapp.dtos.user import UserDTO

__all__ = [
    "BaseDTO",
    "RoleDTO",
    "TodoDTO",
    "TodoStatsDTO",
    "UserDTO",
]
