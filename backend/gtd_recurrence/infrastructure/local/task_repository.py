"""
SQLite implementation of Task repository.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gtd_recurrence.core.exceptions import NotFoundError, StorageError
from gtd_recurrence.core.logger import setup_logger
from gtd_recurrence.infrastructure.local.database import TaskORM, get_session_factory
from gtd_recurrence.interfaces.task_repository import ITaskRepository
from gtd_recurrence.models.enums import GtdStatus
from gtd_recurrence.models.recurrence import (
    dump_recurrence_rule,
    end_condition_from_columns,
    end_condition_to_columns,
    parse_recurrence_rule,
)
from gtd_recurrence.models.task import Task, TaskCreate, TaskUpdate

logger = setup_logger(__name__)


class SqliteTaskRepository(ITaskRepository):
    """SQLite implementation of task repository."""

    def __init__(self, session_factory=None):
        """
        Initialize repository.

        Args:
            session_factory: Optional session factory (for testing)
        """
        self._session_factory = session_factory or get_session_factory()

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[AsyncSession]:
        """Open a session, surfacing driver failures as StorageError."""
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error(f"Task store failed to {action}: {exc}")
            raise StorageError(f"Task store failed to {action}", details=str(exc)) from exc

    def _orm_to_model(self, orm: TaskORM) -> Task:
        """Convert ORM object to Pydantic model."""
        return Task(
            id=UUID(orm.id),
            user_id=orm.user_id,
            text=orm.text,
            comment=orm.comment,
            category_id=orm.category_id,
            project_id=orm.project_id,
            priority_id=orm.priority_id,
            context_id=orm.context_id,
            gtd_status=GtdStatus(orm.gtd_status),
            completed=bool(orm.completed),
            due_date=orm.due_date,
            is_template=bool(orm.is_template),
            template_id=UUID(orm.template_id) if orm.template_id else None,
            recurrence_rule=(
                parse_recurrence_rule(orm.recurrence_rule) if orm.recurrence_rule else None
            ),
            end_condition=end_condition_from_columns(orm.end_type, orm.end_date, orm.end_count),
            occurrence_count=orm.occurrence_count or 0,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    async def _get_orm(self, session: AsyncSession, user_id: str, task_id: UUID) -> Optional[TaskORM]:
        result = await session.execute(
            select(TaskORM).where(
                and_(TaskORM.id == str(task_id), TaskORM.user_id == user_id)
            )
        )
        return result.scalar_one_or_none()

    async def create(self, user_id: str, task: TaskCreate) -> Task:
        """Insert a new task."""
        end_type, end_date, end_count = end_condition_to_columns(task.end_condition)
        async with self._session("create task") as session:
            orm = TaskORM(
                id=str(uuid4()),
                user_id=user_id,
                text=task.text,
                comment=task.comment,
                category_id=task.category_id,
                project_id=task.project_id,
                priority_id=task.priority_id,
                context_id=task.context_id,
                gtd_status=task.gtd_status.value,
                completed=task.completed,
                due_date=task.due_date,
                is_template=task.is_template,
                template_id=str(task.template_id) if task.template_id else None,
                recurrence_rule=(
                    dump_recurrence_rule(task.recurrence_rule) if task.recurrence_rule else None
                ),
                end_type=end_type if task.is_template else None,
                end_date=end_date,
                end_count=end_count,
                occurrence_count=task.occurrence_count,
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def get(self, user_id: str, task_id: UUID) -> Optional[Task]:
        """Get a task by ID."""
        async with self._session("read task") as session:
            orm = await self._get_orm(session, user_id, task_id)
            return self._orm_to_model(orm) if orm else None

    async def update(self, user_id: str, task_id: UUID, update: TaskUpdate) -> Task:
        """Update an existing task."""
        async with self._session("update task") as session:
            orm = await self._get_orm(session, user_id, task_id)
            if not orm:
                raise NotFoundError(f"Task {task_id} not found")

            for field in update.model_fields_set:
                value = getattr(update, field)
                if field == "end_condition":
                    if value is None:
                        orm.end_type, orm.end_date, orm.end_count = "never", None, None
                    else:
                        orm.end_type, orm.end_date, orm.end_count = end_condition_to_columns(value)
                    continue
                if field == "recurrence_rule":
                    value = dump_recurrence_rule(value) if value is not None else None
                elif field == "template_id":
                    value = str(value) if value else None
                elif field == "gtd_status":
                    if value is None:
                        continue
                    value = value.value
                elif field in ("completed", "occurrence_count", "text") and value is None:
                    continue
                setattr(orm, field, value)

            orm.updated_at = datetime.utcnow()
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def delete(self, user_id: str, task_id: UUID) -> bool:
        """Delete a task."""
        async with self._session("delete task") as session:
            orm = await self._get_orm(session, user_id, task_id)
            if not orm:
                return False

            await session.delete(orm)
            await session.commit()
            return True

    async def delete_by_template(self, user_id: str, template_id: UUID) -> int:
        """Delete every instance that references a template."""
        async with self._session("delete series instances") as session:
            result = await session.execute(
                delete(TaskORM).where(
                    and_(
                        TaskORM.user_id == user_id,
                        TaskORM.template_id == str(template_id),
                    )
                )
            )
            await session.commit()
            return result.rowcount or 0

    async def list_templates(self, user_id: str) -> list[Task]:
        """List recurring series templates."""
        async with self._session("list templates") as session:
            result = await session.execute(
                select(TaskORM)
                .where(and_(TaskORM.user_id == user_id, TaskORM.is_template.is_(True)))
                .order_by(TaskORM.created_at)
            )
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def list_instances(
        self, user_id: str, template_id: Optional[UUID] = None
    ) -> list[Task]:
        """List tasks generated from templates."""
        async with self._session("list instances") as session:
            conditions = [TaskORM.user_id == user_id]
            if template_id is not None:
                conditions.append(TaskORM.template_id == str(template_id))
            else:
                conditions.append(TaskORM.template_id.is_not(None))

            result = await session.execute(
                select(TaskORM)
                .where(and_(*conditions))
                .order_by(TaskORM.due_date, TaskORM.created_at)
            )
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def list_template_owners(self) -> list[str]:
        """List IDs of users that own at least one series template."""
        async with self._session("list template owners") as session:
            result = await session.execute(
                select(TaskORM.user_id)
                .where(TaskORM.is_template.is_(True))
                .distinct()
                .order_by(TaskORM.user_id)
            )
            return list(result.scalars().all())
