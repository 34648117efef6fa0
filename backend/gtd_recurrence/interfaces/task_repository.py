"""
Task repository interface.

Defines the contract for task persistence operations the recurrence engine
relies on. Implementations: SQLite
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from gtd_recurrence.models.task import Task, TaskCreate, TaskUpdate


class ITaskRepository(ABC):
    """Abstract interface for task persistence."""

    @abstractmethod
    async def create(self, user_id: str, task: TaskCreate) -> Task:
        """
        Insert a new task.

        Args:
            user_id: Owner user ID
            task: Task creation data (free-text fields already encrypted)

        Returns:
            Created task with generated ID and timestamps
        """
        pass

    @abstractmethod
    async def get(self, user_id: str, task_id: UUID) -> Optional[Task]:
        """
        Get a task by ID.

        Returns:
            Task if found, None otherwise
        """
        pass

    @abstractmethod
    async def update(self, user_id: str, task_id: UUID, update: TaskUpdate) -> Task:
        """
        Update an existing task.

        Only fields explicitly set on `update` are written.

        Raises:
            NotFoundError: If the task does not exist
        """
        pass

    @abstractmethod
    async def delete(self, user_id: str, task_id: UUID) -> bool:
        """
        Delete a task.

        Returns:
            True if deleted, False if not found
        """
        pass

    @abstractmethod
    async def delete_by_template(self, user_id: str, template_id: UUID) -> int:
        """
        Delete every instance that references a template.

        Returns:
            Number of deleted instances
        """
        pass

    @abstractmethod
    async def list_templates(self, user_id: str) -> list[Task]:
        """List recurring series templates."""
        pass

    @abstractmethod
    async def list_instances(
        self, user_id: str, template_id: Optional[UUID] = None
    ) -> list[Task]:
        """
        List tasks generated from templates.

        Args:
            user_id: Owner user ID
            template_id: Restrict to one series (None = all series)
        """
        pass

    @abstractmethod
    async def list_template_owners(self) -> list[str]:
        """List IDs of users that own at least one series template."""
        pass
