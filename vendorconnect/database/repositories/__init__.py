"""
Repository classes for database operations.

Each repository is bound to one AsyncSession; services own the
transaction boundary.
"""

from .tasks import TaskRepository
from .reference import ReferenceRepository, DELETABLE_KINDS
from .users import UserRepository
from .projects import ProjectRepository

__all__ = [
    "TaskRepository",
    "ReferenceRepository",
    "DELETABLE_KINDS",
    "UserRepository",
    "ProjectRepository",
]
