"""
Unit tests for the background catch-up scheduler.
"""

from datetime import date
from unittest.mock import AsyncMock

import pytest

from gtd_recurrence.core.exceptions import StorageError
from gtd_recurrence.infrastructure.local.task_repository import SqliteTaskRepository
from gtd_recurrence.models.enums import GtdStatus
from gtd_recurrence.models.recurrence import DailyRule
from gtd_recurrence.models.task import TaskData, TaskUpdate
from gtd_recurrence.services.background_scheduler import BackgroundScheduler
from gtd_recurrence.services.recurrence_series_service import RecurrenceSeriesService


async def _stale_series(repo, cipher, user_id):
    """Create a daily series whose only instance is completed."""
    service = RecurrenceSeriesService(user_id=user_id, task_repo=repo, cipher=cipher)
    first = await service.create_series(
        TaskData(text="Stretch", due_date=date(2024, 1, 2)),
        DailyRule(anchor_date=date(2024, 1, 2)),
    )
    await repo.update(user_id, first.id, TaskUpdate(completed=True, gtd_status=GtdStatus.DONE))
    return first


class TestRunCatchUp:
    """Tests for the periodic catch-up job body."""

    @pytest.mark.asyncio
    async def test_runs_for_every_owner(self, session_factory, cipher):
        repo = SqliteTaskRepository(session_factory=session_factory)
        await _stale_series(repo, cipher, "alice")
        await _stale_series(repo, cipher, "bob")
        scheduler = BackgroundScheduler(task_repo=repo, cipher=cipher)

        generated = await scheduler.run_catch_up(today=date(2024, 1, 10))

        assert generated == 2
        for user_id in ("alice", "bob"):
            instances = await repo.list_instances(user_id)
            assert [i.due_date for i in instances] == [date(2024, 1, 2), date(2024, 1, 3)]

    @pytest.mark.asyncio
    async def test_failure_for_one_user_does_not_stop_others(self, cipher):
        repo = AsyncMock()
        repo.list_template_owners.return_value = ["alice", "bob"]
        repo.list_templates.side_effect = [StorageError("locked"), []]
        repo.list_instances.return_value = []
        scheduler = BackgroundScheduler(task_repo=repo, cipher=cipher)

        generated = await scheduler.run_catch_up(today=date(2024, 1, 10))

        assert generated == 0
        assert repo.list_templates.await_count == 2


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_is_disabled_under_tests(self, cipher):
        scheduler = BackgroundScheduler(task_repo=AsyncMock(), cipher=cipher)

        await scheduler.start()

        assert scheduler.running is False
        await scheduler.stop()
