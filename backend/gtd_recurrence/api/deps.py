"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the infrastructure
implementations and the per-request recurrence service.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header

from gtd_recurrence.core.config import Settings, get_settings
from gtd_recurrence.core.security import FernetFieldCipher
from gtd_recurrence.interfaces.field_cipher import IFieldCipher
from gtd_recurrence.interfaces.task_repository import ITaskRepository
from gtd_recurrence.services.recurrence_series_service import RecurrenceSeriesService


# ===========================================
# Infrastructure Dependencies
# ===========================================


@lru_cache()
def get_task_repository() -> ITaskRepository:
    """Get task repository instance."""
    from gtd_recurrence.infrastructure.local.task_repository import SqliteTaskRepository

    return SqliteTaskRepository()


@lru_cache()
def get_field_cipher() -> IFieldCipher:
    """Get field cipher instance keyed from settings."""
    return FernetFieldCipher.from_settings(get_settings())


# ===========================================
# User Context
# ===========================================


async def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
    settings: Settings = Depends(get_settings),
) -> str:
    """
    Get the acting user's ID.

    Authentication happens upstream; the gateway forwards the user in the
    X-User-Id header. Without it, the configured default user is used.
    """
    return x_user_id or settings.DEFAULT_USER_ID


# ===========================================
# Type Aliases for Dependency Injection
# ===========================================

TaskRepo = Annotated[ITaskRepository, Depends(get_task_repository)]
FieldCipher = Annotated[IFieldCipher, Depends(get_field_cipher)]
CurrentUserId = Annotated[str, Depends(get_current_user_id)]


async def get_recurrence_service(
    user_id: CurrentUserId,
    task_repo: TaskRepo,
    cipher: FieldCipher,
) -> RecurrenceSeriesService:
    """Build the recurrence service for the acting user."""
    return RecurrenceSeriesService(user_id=user_id, task_repo=task_repo, cipher=cipher)


RecurrenceService = Annotated[RecurrenceSeriesService, Depends(get_recurrence_service)]
