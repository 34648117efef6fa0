"""
Recurring series service.

Owns the template/instance protocol: a template holds the rule, the end
condition and the occurrence counter; instances are ordinary tasks linked to
it through `template_id`. Storage calls are awaited one after another so a
template always exists before any instance references it. Nothing is rolled
back: a failed instance write after a successful template write leaves the
template in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional
from uuid import UUID

from gtd_recurrence.core.exceptions import NotFoundError
from gtd_recurrence.core.logger import setup_logger
from gtd_recurrence.interfaces.field_cipher import IFieldCipher
from gtd_recurrence.interfaces.task_repository import ITaskRepository
from gtd_recurrence.models.enums import GtdStatus, SeriesState
from gtd_recurrence.models.recurrence import (
    EndAfterCount,
    EndCondition,
    NeverEnd,
    RecurrenceRule,
)
from gtd_recurrence.models.task import Task, TaskCreate, TaskData, TaskUpdate
from gtd_recurrence.services import end_condition as end_conditions
from gtd_recurrence.services.occurrence_calculator import next_n_occurrences, next_occurrence
from gtd_recurrence.services.rule_builder import ensure_valid_rule

logger = setup_logger(__name__)


@dataclass
class CompletionResult:
    """Outcome of completing a task."""

    task: Task
    next_instance: Optional[Task] = None


class RecurrenceSeriesService:
    """Service for creating, advancing and tearing down recurring series."""

    def __init__(
        self,
        user_id: str,
        task_repo: ITaskRepository,
        cipher: IFieldCipher,
    ):
        self.user_id = user_id
        self.task_repo = task_repo
        self.cipher = cipher
        self._templates: dict[UUID, Task] = {}

    # ===========================================
    # Template cache
    # ===========================================

    def _remember(self, template: Task) -> Task:
        self._templates[template.id] = template
        return template

    def _forget(self, template_id: UUID) -> None:
        self._templates.pop(template_id, None)

    async def get_template(self, template_id: UUID) -> Optional[Task]:
        """Template from the local cache, falling back to the store."""
        cached = self._templates.get(template_id)
        if cached is not None:
            return cached
        template = await self.task_repo.get(self.user_id, template_id)
        if template is None or not template.is_template:
            return None
        return self._remember(template)

    async def _require_template(self, template_id: UUID) -> Task:
        template = await self.get_template(template_id)
        if template is None:
            raise NotFoundError(f"Recurring template {template_id} not found")
        return template

    # ===========================================
    # Helpers
    # ===========================================

    def decrypt_task(self, task: Task) -> Task:
        """Copy of a stored task with plaintext text/comment."""
        return task.model_copy(
            update={
                "text": self.cipher.decrypt(task.text),
                "comment": self.cipher.decrypt_optional(task.comment),
            }
        )

    def _template_payload(
        self,
        task_data: TaskData,
        rule: RecurrenceRule,
        end_condition: EndCondition,
        occurrence_count: int,
        encrypted_text: str,
        encrypted_comment: Optional[str],
    ) -> TaskCreate:
        return TaskCreate(
            text=encrypted_text,
            comment=encrypted_comment,
            category_id=task_data.category_id,
            project_id=task_data.project_id,
            priority_id=task_data.priority_id,
            context_id=task_data.context_id,
            gtd_status=GtdStatus.SCHEDULED,
            due_date=task_data.due_date,
            is_template=True,
            recurrence_rule=rule,
            end_condition=end_condition,
            occurrence_count=occurrence_count,
        )

    async def _set_occurrence_count(self, template: Task, count: int) -> Task:
        updated = await self.task_repo.update(
            self.user_id, template.id, TaskUpdate(occurrence_count=count)
        )
        return self._remember(updated)

    # ===========================================
    # Series operations
    # ===========================================

    async def create_series(
        self,
        task_data: TaskData,
        rule: RecurrenceRule,
        end_condition: Optional[EndCondition] = None,
    ) -> Task:
        """
        Create a template and its first instance.

        Raises:
            ValidationError: If the rule is invalid (nothing is written)
            StorageError: If a write fails
        """
        rule = ensure_valid_rule(rule)
        end_condition = end_condition or NeverEnd()

        encrypted_text = self.cipher.encrypt(task_data.text)
        encrypted_comment = self.cipher.encrypt_optional(task_data.comment)

        template = await self.task_repo.create(
            self.user_id,
            self._template_payload(
                task_data, rule, end_condition, 0, encrypted_text, encrypted_comment
            ),
        )
        self._remember(template)

        instance = await self.task_repo.create(
            self.user_id,
            TaskCreate(
                text=encrypted_text,
                comment=encrypted_comment,
                category_id=task_data.category_id,
                project_id=task_data.project_id,
                priority_id=task_data.priority_id,
                context_id=task_data.context_id,
                gtd_status=task_data.gtd_status or GtdStatus.SCHEDULED,
                due_date=task_data.due_date,
                template_id=template.id,
            ),
        )

        await self._set_occurrence_count(template, 1)
        logger.info(
            f"Created recurring series {template.id} ({rule.kind}) with first instance {instance.id}"
        )
        return self.decrypt_task(instance)

    async def generate_next(
        self, template_id: UUID, from_date: date, today: Optional[date] = None
    ) -> Optional[Task]:
        """
        Generate the instance that follows from_date.

        Returns None when the series has ended or no further occurrence fits.

        Raises:
            NotFoundError: If the template does not exist
        """
        template = await self._require_template(template_id)
        today = today or date.today()

        if end_conditions.has_ended(template.end_condition, template.occurrence_count, today):
            logger.info(f"Recurrence ended for template {template_id}")
            return None

        rule = template.recurrence_rule
        if rule is None:
            logger.error(f"No recurrence rule on template {template_id}")
            return None

        next_due = next_occurrence(rule, from_date)
        if next_due is None:
            logger.error(f"Could not calculate next occurrence for {template_id} from {from_date}")
            return None

        new_count = template.occurrence_count + 1
        if end_conditions.would_exceed(template.end_condition, next_due, new_count):
            logger.info(
                f"Next occurrence {next_due} (#{new_count}) of {template_id} is past the series end"
            )
            return None

        instance = await self.task_repo.create(
            self.user_id,
            TaskCreate(
                text=template.text,
                comment=template.comment,
                category_id=template.category_id,
                project_id=template.project_id,
                priority_id=template.priority_id,
                context_id=template.context_id,
                gtd_status=GtdStatus.SCHEDULED,
                due_date=next_due,
                template_id=template.id,
            ),
        )
        await self._set_occurrence_count(template, new_count)
        logger.info(f"Generated occurrence #{new_count} of {template_id} due {next_due}")
        return self.decrypt_task(instance)

    async def check_pending_catch_up(
        self,
        templates: list[Task],
        tasks: list[Task],
        today: Optional[date] = None,
    ) -> list[Task]:
        """
        Resume series that went stale while the user was away.

        For each live template, the latest instance (by due date) is examined;
        if it is completed and overdue, one next instance is generated from
        its due date. At most one instance per template per call.
        """
        today = today or date.today()
        generated: list[Task] = []

        for template in templates:
            if template.recurrence_rule is None:
                continue
            if end_conditions.has_ended(template.end_condition, template.occurrence_count, today):
                continue

            latest = _latest_instance(
                [task for task in tasks if task.template_id == template.id]
            )
            if latest is None or latest.due_date is None:
                continue

            if latest.completed and latest.due_date < today:
                logger.info(f"Generating catch-up occurrence for template {template.id}")
                self._remember(template)
                instance = await self.generate_next(template.id, latest.due_date, today)
                if instance is not None:
                    generated.append(instance)

        return generated

    async def run_catch_up(self, today: Optional[date] = None) -> list[Task]:
        """Load this user's series from the store and run the catch-up check."""
        templates = await self.task_repo.list_templates(self.user_id)
        instances = await self.task_repo.list_instances(self.user_id)
        return await self.check_pending_catch_up(templates, instances, today)

    async def complete_instance(
        self, task_id: UUID, today: Optional[date] = None
    ) -> CompletionResult:
        """
        Mark a task done; for a series instance, generate the next one.

        Completing an already completed task changes nothing.

        Raises:
            NotFoundError: If the task does not exist
        """
        task = await self.task_repo.get(self.user_id, task_id)
        if task is None or task.is_template:
            raise NotFoundError(f"Task {task_id} not found")
        if task.completed:
            return CompletionResult(task=self.decrypt_task(task))

        completed = await self.task_repo.update(
            self.user_id,
            task_id,
            TaskUpdate(completed=True, gtd_status=GtdStatus.DONE),
        )

        next_instance = None
        if completed.template_id is not None:
            anchor = completed.due_date or today or date.today()
            next_instance = await self.generate_next(completed.template_id, anchor, today)

        return CompletionResult(task=self.decrypt_task(completed), next_instance=next_instance)

    async def stop_series(self, template_id: UUID) -> Task:
        """
        Freeze a series at its current length; nothing is deleted.

        Raises:
            NotFoundError: If the template does not exist
        """
        template = await self._require_template(template_id)
        updated = await self.task_repo.update(
            self.user_id,
            template_id,
            TaskUpdate(end_condition=EndAfterCount(count=template.occurrence_count)),
        )
        logger.info(f"Stopped recurring series {template_id} at {template.occurrence_count}")
        return self._remember(updated)

    async def delete_series(self, template_id: UUID) -> int:
        """
        Delete every instance of a series, then its template.

        Not transactional: if the template delete fails after the instances
        are gone, the template is left orphaned.

        Returns:
            Number of deleted instances

        Raises:
            NotFoundError: If the template does not exist
        """
        await self._require_template(template_id)
        deleted = await self.task_repo.delete_by_template(self.user_id, template_id)
        await self.task_repo.delete(self.user_id, template_id)
        self._forget(template_id)
        logger.info(f"Deleted recurring series {template_id} ({deleted} instances)")
        return deleted

    async def convert_to_recurring(
        self,
        task_id: UUID,
        task_data: TaskData,
        rule: RecurrenceRule,
        end_condition: Optional[EndCondition] = None,
    ) -> Task:
        """
        Turn an existing task into instance #1 of a new series.

        Raises:
            ValidationError: If the rule is invalid (nothing is written)
            NotFoundError: If the task does not exist
        """
        rule = ensure_valid_rule(rule)
        end_condition = end_condition or NeverEnd()

        existing = await self.task_repo.get(self.user_id, task_id)
        if existing is None:
            raise NotFoundError(f"Task {task_id} not found")

        encrypted_text = self.cipher.encrypt(task_data.text)
        encrypted_comment = self.cipher.encrypt_optional(task_data.comment)

        template = await self.task_repo.create(
            self.user_id,
            self._template_payload(
                task_data, rule, end_condition, 1, encrypted_text, encrypted_comment
            ),
        )
        self._remember(template)

        linked = await self.task_repo.update(
            self.user_id,
            task_id,
            TaskUpdate(
                text=encrypted_text,
                comment=encrypted_comment,
                category_id=task_data.category_id,
                project_id=task_data.project_id,
                priority_id=task_data.priority_id,
                context_id=task_data.context_id,
                gtd_status=task_data.gtd_status or GtdStatus.SCHEDULED,
                due_date=task_data.due_date,
                template_id=template.id,
            ),
        )
        logger.info(f"Converted task {task_id} into recurring series {template.id}")
        return self.decrypt_task(linked)

    async def update_rule(
        self,
        template_id: UUID,
        rule: RecurrenceRule,
        end_condition: Optional[EndCondition] = None,
    ) -> Task:
        """
        Replace a template's rule and end condition.

        Already generated instances are left as they are. The end condition
        changes only when one is given; a looser one re-opens an ended series.

        Raises:
            ValidationError: If the rule is invalid
            NotFoundError: If the template does not exist
        """
        rule = ensure_valid_rule(rule)
        await self._require_template(template_id)
        fields: dict = {"recurrence_rule": rule}
        if end_condition is not None:
            fields["end_condition"] = end_condition
        updated = await self.task_repo.update(self.user_id, template_id, TaskUpdate(**fields))
        logger.info(f"Updated recurrence rule of series {template_id}")
        return self._remember(updated)

    # ===========================================
    # Read helpers
    # ===========================================

    def series_state(self, template: Task, today: Optional[date] = None) -> SeriesState:
        return end_conditions.series_state(
            template.end_condition, template.occurrence_count, today or date.today()
        )

    def preview(
        self, rule: RecurrenceRule, n: int, start_date: Optional[date] = None
    ) -> list[date]:
        return next_n_occurrences(rule, n, start_date)


def _latest_instance(instances: list[Task]) -> Optional[Task]:
    """Latest instance by due date; dated instances win over undated ones."""
    latest: Optional[Task] = None
    for instance in instances:
        if latest is None:
            latest = instance
        elif instance.due_date is None:
            continue
        elif latest.due_date is None or instance.due_date > latest.due_date:
            latest = instance
    return latest
