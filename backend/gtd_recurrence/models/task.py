"""
Task model definitions.

A task is either a plain task, a recurring series template (hidden from task
lists, owns the rule) or an instance generated from a template.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from gtd_recurrence.models.enums import GtdStatus
from gtd_recurrence.models.recurrence import EndCondition, NeverEnd, RecurrenceRule


class TaskData(BaseModel):
    """User-entered task fields (plaintext) used to create or rewrite a task."""

    text: str = Field(..., min_length=1, max_length=2000)
    comment: Optional[str] = Field(None, max_length=5000)
    category_id: Optional[str] = None
    project_id: Optional[str] = None
    priority_id: Optional[str] = None
    context_id: Optional[str] = None
    gtd_status: Optional[GtdStatus] = None
    due_date: Optional[date] = None


class TaskBase(BaseModel):
    """Fields shared by stored tasks and create payloads.

    `text` and `comment` carry ciphertext once they reach the repository.
    """

    text: str
    comment: Optional[str] = None
    category_id: Optional[str] = None
    project_id: Optional[str] = None
    priority_id: Optional[str] = None
    context_id: Optional[str] = None
    gtd_status: GtdStatus = GtdStatus.INBOX
    completed: bool = False
    due_date: Optional[date] = None
    is_template: bool = False
    template_id: Optional[UUID] = None
    recurrence_rule: Optional[RecurrenceRule] = None
    end_condition: EndCondition = Field(default_factory=NeverEnd)
    occurrence_count: int = Field(0, ge=0)


class TaskCreate(TaskBase):
    """Insert payload for the task store."""

    pass


class TaskUpdate(BaseModel):
    """Partial update payload; only fields that are set are written."""

    text: Optional[str] = None
    comment: Optional[str] = None
    category_id: Optional[str] = None
    project_id: Optional[str] = None
    priority_id: Optional[str] = None
    context_id: Optional[str] = None
    gtd_status: Optional[GtdStatus] = None
    completed: Optional[bool] = None
    due_date: Optional[date] = None
    template_id: Optional[UUID] = None
    recurrence_rule: Optional[RecurrenceRule] = None
    end_condition: Optional[EndCondition] = None
    occurrence_count: Optional[int] = Field(None, ge=0)


class Task(TaskBase):
    """Stored task with metadata."""

    id: UUID
    user_id: str
    created_at: datetime
    updated_at: datetime

    @property
    def is_instance(self) -> bool:
        return self.template_id is not None
