"""Abstract interfaces for infrastructure abstraction."""

from gtd_recurrence.interfaces.field_cipher import IFieldCipher
from gtd_recurrence.interfaces.task_repository import ITaskRepository

__all__ = [
    "IFieldCipher",
    "ITaskRepository",
]
